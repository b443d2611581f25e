# MIT License
# Copyright (c) 2025 Hashborn

from pydantic import BaseModel, Field
from typing import Dict, List
from .common import EpochStatus, DepositStatus, TransferDirection


class Epoch(BaseModel):
    epochid: int                # monotonic, first epoch is 1
    start_date: int             # scheduled start (unix time)
    end_date: int               # start_date + epoch_duration
    started_at: int = 0         # 0 while pending; >= start_date once set
    ended_at: int = 0           # 0 until closed by the coordinator

    @property
    def status(self) -> EpochStatus:
        if self.ended_at:
            return EpochStatus.ENDED
        if self.started_at:
            return EpochStatus.STARTED
        return EpochStatus.PENDING

    @property
    def is_pending(self) -> bool:
        return self.status == EpochStatus.PENDING

    @property
    def is_started(self) -> bool:
        return self.status == EpochStatus.STARTED

    @property
    def is_ended(self) -> bool:
        return self.status == EpochStatus.ENDED


class Deposit(BaseModel):
    depositid: str              # sha256(staker | nonce | created_at)
    staker: str                 # staker address
    in_epochid: int             # epoch current at creation
    created_at: int             # unix time
    amount: int                 # smallest token unit, immutable

    out_epochid: int = 0        # epoch current at unstake request (0 = still staked)
    unstaked: bool = False
    unstaked_at: int = 0
    withdrawn: bool = False
    withdrawn_at: int = 0

    @property
    def status(self) -> DepositStatus:
        if self.withdrawn:
            return DepositStatus.WITHDRAWN
        if self.unstaked:
            return DepositStatus.UNSTAKING
        return DepositStatus.ACTIVE

    def is_active_in(self, epochid: int) -> bool:
        """
        Whether this deposit earns in the given epoch.

        A deposit earns from its creation epoch up to, but not including,
        the epoch in which unstake was requested.
        """
        if self.in_epochid > epochid:
            return False
        return not self.unstaked or self.out_epochid > epochid


class TransferIntent(BaseModel):
    """Instruction for the custody collaborator; the core never moves tokens itself."""
    direction: TransferDirection
    account: str
    token: str
    amount: int
    reason: str


class CommissionReceipt(BaseModel):
    epochid: int
    token: str
    commission: int
    distributed: int
    retained: int               # dust + undistributable remainder, goes to treasury
    applied_count: int          # stakers credited with a non-zero reward
    rewards: Dict[str, int] = Field(default_factory=dict)   # staker -> credited amount


class EpochSummary(BaseModel):
    epoch: Epoch
    stakers: int                # stakers with active stake in the epoch
    stakepool: int              # total active stake in the epoch
    collected: int              # commission collected for the token
    released: int               # rewards claimed out of the epoch's credits


class StakerDepositsPage(BaseModel):
    deposits: List[Deposit]
    total: int

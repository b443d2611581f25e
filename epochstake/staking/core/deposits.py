# MIT License
# Copyright (c) 2025 Hashborn

"""
Deposit registry.

Owns every Deposit record, keyed by id and grouped per staker in
registration order. Active stake per epoch is served from checkpoints
updated on deposit/unstake, so queries never rescan deposit history.
"""

import logging
from bisect import bisect_right
from typing import Dict, List, Optional

from ...protocol.types.staking import Deposit, Epoch, StakerDepositsPage
from ...protocol.types.common import (
    InvalidAmount,
    InvalidState,
    DepositNotFound,
    NotOwner,
)
from ...protocol.crypto.hash import deposit_id

logger = logging.getLogger(__name__)


class StakeCheckpoints:
    """
    Running value indexed by epoch id.

    The value for epoch E is the latest checkpoint at or before E.
    Writes only ever land on the newest epoch.
    """

    def __init__(self):
        self._epochs: List[int] = []
        self._values: List[int] = []

    def add(self, epochid: int, delta: int) -> int:
        if self._epochs and epochid < self._epochs[-1]:
            raise ValueError(f"Checkpoint for epoch {epochid} is older than {self._epochs[-1]}")

        if self._epochs and self._epochs[-1] == epochid:
            self._values[-1] += delta
        else:
            self._epochs.append(epochid)
            self._values.append(self.latest() + delta)
        return self._values[-1]

    def latest(self) -> int:
        return self._values[-1] if self._values else 0

    def at(self, epochid: int) -> int:
        i = bisect_right(self._epochs, epochid)
        return self._values[i - 1] if i else 0


class DepositRegistry:
    def __init__(self):
        self._deposits: Dict[str, Deposit] = {}
        # staker -> deposit ids; dict order is staker registration order
        self._by_staker: Dict[str, List[str]] = {}
        self._staker_stake: Dict[str, StakeCheckpoints] = {}
        self._total_stake = StakeCheckpoints()
        self._staker_count = StakeCheckpoints()
        self._nonce = 0
        # Bumped on every stake change; lets strategies cache per-epoch aggregates
        self.revision = 0

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def deposit(self, staker: str, amount: int, now: int, epochid: int) -> Deposit:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"Deposit amount must be a positive integer, got {amount!r}")
        if not staker:
            raise InvalidState("Deposit requires a staker address")

        depositid = deposit_id(staker, self._nonce, now)
        self._nonce += 1

        deposit = Deposit(
            depositid=depositid,
            staker=staker,
            in_epochid=epochid,
            created_at=now,
            amount=amount,
        )
        self._deposits[depositid] = deposit
        self._by_staker.setdefault(staker, []).append(depositid)
        self._apply_stake_change(staker, epochid, amount)

        logger.info(f"Deposit {depositid[:16]}... created: {staker} staked {amount} in epoch {epochid}")
        return deposit

    def request_unstake(self, depositid: str, staker: str, now: int, epochid: int) -> Deposit:
        deposit = self._require_owned(depositid, staker)
        if deposit.unstaked:
            raise InvalidState(f"Deposit {depositid} is already unstaked")
        if epochid < deposit.in_epochid:
            raise InvalidState(f"Cannot unstake deposit {depositid} in epoch {epochid} before its creation epoch")

        deposit.unstaked = True
        deposit.unstaked_at = now
        deposit.out_epochid = epochid
        self._apply_stake_change(staker, epochid, -deposit.amount)

        logger.info(f"Deposit {depositid[:16]}... unstake requested in epoch {epochid} ({deposit.amount})")
        return deposit

    def withdraw(self, depositid: str, staker: str, now: int, out_epoch: Epoch) -> Deposit:
        """
        Finalize an unstaked deposit.

        Principal stays locked until the epoch in which unstake was
        requested has ended. An unstake epoch that never started is not
        locking anything, so it does not block withdrawal.
        """
        deposit = self._require_owned(depositid, staker)
        if not deposit.unstaked:
            raise InvalidState(f"Deposit {depositid} is still staked")
        if deposit.withdrawn:
            raise InvalidState(f"Deposit {depositid} is already withdrawn")
        if out_epoch.epochid != deposit.out_epochid:
            raise InvalidState(f"Epoch {out_epoch.epochid} is not the unstake epoch of deposit {depositid}")
        if out_epoch.is_started:
            raise InvalidState(
                f"Deposit {depositid} is locked until epoch {out_epoch.epochid} ends (at or after {out_epoch.end_date})"
            )

        deposit.withdrawn = True
        deposit.withdrawn_at = now

        logger.info(f"Deposit {depositid[:16]}... withdrawn by {staker} ({deposit.amount})")
        return deposit

    def _require_owned(self, depositid: str, staker: str) -> Deposit:
        deposit = self._deposits.get(depositid)
        if deposit is None:
            raise DepositNotFound(f"Unknown deposit {depositid}")
        if deposit.staker != staker:
            raise NotOwner(f"Deposit {depositid} does not belong to {staker}")
        return deposit

    def _apply_stake_change(self, staker: str, epochid: int, delta: int):
        checkpoints = self._staker_stake.setdefault(staker, StakeCheckpoints())
        before = checkpoints.latest()
        after = checkpoints.add(epochid, delta)
        self._total_stake.add(epochid, delta)

        if before == 0 and after > 0:
            self._staker_count.add(epochid, 1)
        elif before > 0 and after == 0:
            self._staker_count.add(epochid, -1)
        self.revision += 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_deposit(self, depositid: str) -> Optional[Deposit]:
        return self._deposits.get(depositid)

    def active_stake(self, staker: str, epochid: int) -> int:
        checkpoints = self._staker_stake.get(staker)
        return checkpoints.at(epochid) if checkpoints else 0

    def total_active_stake(self, epochid: int) -> int:
        return self._total_stake.at(epochid)

    def active_staker_count(self, epochid: int) -> int:
        return self._staker_count.at(epochid)

    def active_stakers(self, epochid: int) -> List[str]:
        """Stakers with non-zero active stake in the epoch, in registration order."""
        return [
            staker for staker, checkpoints in self._staker_stake.items()
            if checkpoints.at(epochid) > 0
        ]

    def active_deposits(self, staker: str, epochid: int) -> List[Deposit]:
        """The staker's deposits earning in the epoch, in creation order."""
        deposits = (self._deposits[d] for d in self._by_staker.get(staker, []))
        return [d for d in deposits if d.is_active_in(epochid)]

    def stake_of(self, staker: str) -> int:
        """Principal currently staked (not yet unstaked)."""
        checkpoints = self._staker_stake.get(staker)
        return checkpoints.latest() if checkpoints else 0

    def stakers(self) -> List[str]:
        return list(self._by_staker)

    def staker_deposits(self, staker: str, offset: int, limit: int) -> StakerDepositsPage:
        ids = self._by_staker.get(staker, [])
        offset = max(offset, 0)
        page = [self._deposits[d].model_copy() for d in ids[offset:offset + limit]]
        return StakerDepositsPage(deposits=page, total=len(ids))

    def total_deposits(self) -> int:
        return len(self._deposits)

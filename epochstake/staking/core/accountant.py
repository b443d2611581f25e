# MIT License
# Copyright (c) 2025 Hashborn

"""
Reward accountant.

Turns reported commission into per-staker claimable balances.

Flow (per collect_commission call):
1. Walk active stakers of the epoch in registration order
2. Ask the installed RewardCalculator for each staker's share
3. Reject the whole round if any share is negative or the sum exceeds
   the commission (CalculatorFault); nothing is credited in that case
4. Credit claimable balances
5. Route the remainder (integer dust, or everything when no stake is
   active) to the per-token treasury pool

Invariant per call: distributed + retained == commission.
"""

import logging
from typing import Dict, List, Tuple

from ...protocol.types.staking import CommissionReceipt, TransferIntent
from ...protocol.types.common import (
    TransferDirection,
    InvalidAmount,
    CalculatorFault,
    NothingToClaim,
)
from .deposits import DepositRegistry
from .rewards import RewardCalculator

logger = logging.getLogger(__name__)


class RewardAccountant:
    def __init__(self, registry: DepositRegistry, calculator: RewardCalculator):
        self.registry = registry
        self.calculator = calculator

        # token -> staker -> amount
        self._claimable: Dict[str, Dict[str, int]] = {}
        self._paid_out: Dict[str, Dict[str, int]] = {}
        # (staker, token) -> (epochid, depositid) -> credited but not yet claimed
        self._outstanding: Dict[Tuple[str, str], Dict[Tuple[int, str], int]] = {}
        # (depositid, token) -> epochid -> claimed
        self._deposit_paid_out: Dict[Tuple[str, str], Dict[int, int]] = {}
        # (epochid, token) -> amount
        self._epoch_collected: Dict[Tuple[int, str], int] = {}
        self._epoch_released: Dict[Tuple[int, str], int] = {}
        # token -> amount
        self._treasury: Dict[str, int] = {}
        self.total_collected: Dict[str, int] = {}
        self.total_distributed: Dict[str, int] = {}
        self.total_claimed: Dict[str, int] = {}

    def collect_commission(self, commission: int, now: int, epochid: int, token: str) -> CommissionReceipt:
        if isinstance(commission, bool) or not isinstance(commission, int) or commission <= 0:
            raise InvalidAmount(f"Commission must be a positive integer, got {commission!r}")

        stakers = self.registry.active_stakers(epochid)
        if not stakers:
            logger.warning(f"No active stake in epoch {epochid}, retaining commission {commission} {token}")

        rewards: Dict[str, int] = {}
        distributed = 0
        for staker in stakers:
            reward = self.calculator.calculate_reward(staker, commission)
            if isinstance(reward, bool) or not isinstance(reward, int) or reward < 0:
                raise CalculatorFault(f"Calculator returned invalid reward {reward!r} for {staker}")

            distributed += reward
            if distributed > commission:
                raise CalculatorFault(
                    f"Calculator over-allocated: {distributed} > commission {commission} in epoch {epochid}"
                )
            if reward > 0:
                rewards[staker] = reward

        retained = commission - distributed

        # All checks passed; apply
        claimable = self._claimable.setdefault(token, {})
        for staker, reward in rewards.items():
            claimable[staker] = claimable.get(staker, 0) + reward
            outstanding = self._outstanding.setdefault((staker, token), {})
            for depositid, share in self._split_by_deposit(staker, reward, epochid):
                key = (epochid, depositid)
                outstanding[key] = outstanding.get(key, 0) + share

        key = (epochid, token)
        self._epoch_collected[key] = self._epoch_collected.get(key, 0) + commission
        self.total_collected[token] = self.total_collected.get(token, 0) + commission
        self.total_distributed[token] = self.total_distributed.get(token, 0) + distributed
        if retained:
            self._treasury[token] = self._treasury.get(token, 0) + retained

        logger.info(
            f"Collected {commission} {token} in epoch {epochid}: "
            f"distributed {distributed} to {len(rewards)} staker(s), retained {retained}"
        )

        return CommissionReceipt(
            epochid=epochid,
            token=token,
            commission=commission,
            distributed=distributed,
            retained=retained,
            applied_count=len(rewards),
            rewards=rewards,
        )

    def claim(self, staker: str, now: int, token: str) -> TransferIntent:
        amount = self.claimable(staker, token)
        if amount == 0:
            raise NothingToClaim(f"{staker} has no claimable {token}")

        self._claimable[token][staker] = 0
        paid = self._paid_out.setdefault(token, {})
        paid[staker] = paid.get(staker, 0) + amount
        self.total_claimed[token] = self.total_claimed.get(token, 0) + amount

        for (epochid, depositid), credited in self._outstanding.pop((staker, token), {}).items():
            key = (epochid, token)
            self._epoch_released[key] = self._epoch_released.get(key, 0) + credited
            per_epoch = self._deposit_paid_out.setdefault((depositid, token), {})
            per_epoch[epochid] = per_epoch.get(epochid, 0) + credited

        logger.info(f"{staker} claimed {amount} {token}")
        return TransferIntent(
            direction=TransferDirection.OUT,
            account=staker,
            token=token,
            amount=amount,
            reason="reward_claim",
        )

    def _split_by_deposit(self, staker: str, reward: int, epochid: int) -> List[Tuple[str, int]]:
        """
        Attribute a staker's reward to their earning deposits pro rata by
        amount. The integer remainder goes to the last deposit so the shares
        add up to `reward` exactly.
        """
        deposits = self.registry.active_deposits(staker, epochid)
        total = sum(d.amount for d in deposits)
        shares = []
        assigned = 0
        for deposit in deposits[:-1]:
            share = reward * deposit.amount // total
            shares.append((deposit.depositid, share))
            assigned += share
        shares.append((deposits[-1].depositid, reward - assigned))
        return shares

    def sweep_treasury(self, token: str) -> int:
        """Empty the treasury pool for a token and return the swept amount."""
        amount = self._treasury.get(token, 0)
        if amount == 0:
            raise NothingToClaim(f"Treasury holds no {token}")
        self._treasury[token] = 0
        logger.info(f"Treasury swept {amount} {token}")
        return amount

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def claimable(self, staker: str, token: str) -> int:
        return self._claimable.get(token, {}).get(staker, 0)

    def paid_out(self, staker: str, token: str) -> int:
        return self._paid_out.get(token, {}).get(staker, 0)

    def epoch_collected(self, epochid: int, token: str) -> int:
        return self._epoch_collected.get((epochid, token), 0)

    def deposit_paid_out(self, depositid: str, token: str) -> int:
        return sum(self._deposit_paid_out.get((depositid, token), {}).values())

    def deposit_epoch_paid_out(self, depositid: str, token: str, epochid: int) -> int:
        return self._deposit_paid_out.get((depositid, token), {}).get(epochid, 0)

    def epoch_released(self, epochid: int, token: str) -> int:
        return self._epoch_released.get((epochid, token), 0)

    def treasury_balance(self, token: str) -> int:
        return self._treasury.get(token, 0)

    def total_claimable(self, token: str) -> int:
        return sum(self._claimable.get(token, {}).values())

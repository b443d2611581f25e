# MIT License
# Copyright (c) 2025 Hashborn

"""
Reward calculation strategies.

Converts one commission amount into the share owed to a single staker
for the current epoch. The accountant calls the installed strategy once
per active staker and rejects any round whose shares add up to more than
the commission.

Strategies:
- ProportionalStrategy: commission * stake / total_stake
- FlatStrategy: commission / active_stakers
- TieredStrategy: stake weighted by tier multiplier, then proportional

All use integer division; the remainder (dust) stays with the protocol.
"""

import logging
from typing import Optional, Protocol, Tuple

from ...protocol.config.params import StakingConfig, CURRENT_NETWORK
from .deposits import DepositRegistry
from .epochs import EpochLedger

logger = logging.getLogger(__name__)

BPS = 10_000


class RewardCalculator(Protocol):
    def calculate_reward(self, staker: str, commission: int) -> int:
        ...


class StakeWeightedStrategy:
    """Shared wiring: every strategy reads stakes for the ledger's current epoch."""

    def __init__(self, registry: DepositRegistry, ledger: EpochLedger, config: Optional[StakingConfig] = None):
        self.registry = registry
        self.ledger = ledger
        self.config = config or CURRENT_NETWORK

    def current_epochid(self) -> int:
        return self.ledger.current_epoch().epochid


class ProportionalStrategy(StakeWeightedStrategy):
    def calculate_reward(self, staker: str, commission: int) -> int:
        epochid = self.current_epochid()
        total = self.registry.total_active_stake(epochid)
        if total == 0:
            return 0
        return (commission * self.registry.active_stake(staker, epochid)) // total


class FlatStrategy(StakeWeightedStrategy):
    def calculate_reward(self, staker: str, commission: int) -> int:
        epochid = self.current_epochid()
        count = self.registry.active_staker_count(epochid)
        if count == 0 or self.registry.active_stake(staker, epochid) == 0:
            return 0
        return commission // count


class TieredStrategy(StakeWeightedStrategy):
    """
    Larger positions earn a bonus weight.

    weight = stake * multiplier_bps(tier of stake) / BPS, where the tier is
    the highest threshold the stake reaches (config.tier_thresholds).
    """

    def __init__(self, registry: DepositRegistry, ledger: EpochLedger, config: Optional[StakingConfig] = None):
        super().__init__(registry, ledger, config)
        self._cache_key: Optional[Tuple[int, int]] = None
        self._cached_total_weight = 0

    def multiplier_bps(self, stake: int) -> int:
        multiplier = self.config.tier_multipliers_bps[0]
        for threshold, bps in zip(self.config.tier_thresholds, self.config.tier_multipliers_bps):
            if stake >= threshold:
                multiplier = bps
        return multiplier

    def weight(self, stake: int) -> int:
        return stake * self.multiplier_bps(stake) // BPS

    def total_weight(self, epochid: int) -> int:
        key = (epochid, self.registry.revision)
        if key != self._cache_key:
            self._cached_total_weight = sum(
                self.weight(self.registry.active_stake(s, epochid))
                for s in self.registry.active_stakers(epochid)
            )
            self._cache_key = key
        return self._cached_total_weight

    def calculate_reward(self, staker: str, commission: int) -> int:
        epochid = self.current_epochid()
        total_weight = self.total_weight(epochid)
        if total_weight == 0:
            return 0
        return (commission * self.weight(self.registry.active_stake(staker, epochid))) // total_weight

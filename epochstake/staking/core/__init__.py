# MIT License
# Copyright (c) 2025 Hashborn

from .epochs import EpochLedger
from .deposits import DepositRegistry, StakeCheckpoints
from .rewards import RewardCalculator, ProportionalStrategy, FlatStrategy, TieredStrategy
from .accountant import RewardAccountant
from .buy4stake import Buy4StakePool
from .events import EventBus
from .engine import StakingEngine

__all__ = [
    "EpochLedger",
    "DepositRegistry",
    "StakeCheckpoints",
    "RewardCalculator",
    "ProportionalStrategy",
    "FlatStrategy",
    "TieredStrategy",
    "RewardAccountant",
    "Buy4StakePool",
    "EventBus",
    "StakingEngine",
]

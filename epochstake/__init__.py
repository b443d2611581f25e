# MIT License
# Copyright (c) 2025 Hashborn

"""
epochstake: epoch staking and commission reward-accounting core.
"""

from .protocol.config.params import StakingConfig, get_network_config
from .staking.core import (
    StakingEngine,
    ProportionalStrategy,
    FlatStrategy,
    TieredStrategy,
    EventBus,
)

__version__ = "0.1.0"

__all__ = [
    "StakingConfig",
    "get_network_config",
    "StakingEngine",
    "ProportionalStrategy",
    "FlatStrategy",
    "TieredStrategy",
    "EventBus",
]

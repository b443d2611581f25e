# MIT License
# Copyright (c) 2025 Hashborn

import os
from typing import Dict, Optional, Tuple

# Global Constants
STAKE_TOKEN = "orcy"
DEFAULT_REWARD_TOKEN = "usdc"
DECIMALS = 18

DAY = 24 * 60 * 60
EPOCH_DURATION = 7 * DAY

NETWORK_ENV_VAR = "EPOCHSTAKE_NETWORK"

# Special address receiving dust and undistributable commission
TREASURY_ADDRESS = "stk1treasury000000000000000000000000000000000000000000"


class StakingConfig:
    def __init__(self,
                 network_id: str,
                 epoch_duration: int = EPOCH_DURATION,
                 genesis_time: int = 0,
                 stake_token: str = STAKE_TOKEN,
                 default_reward_token: str = DEFAULT_REWARD_TOKEN,
                 treasury_address: str = TREASURY_ADDRESS,
                 # Query params
                 deposits_page_size: int = 50,
                 # TieredStrategy params: stake thresholds (ascending) and multipliers in bps
                 tier_thresholds: Tuple[int, ...] = (0, 1_000 * 10**DECIMALS, 10_000 * 10**DECIMALS),
                 tier_multipliers_bps: Tuple[int, ...] = (10_000, 11_000, 12_500),
                 # Buy-for-stake (None = disabled until governance sets a token)
                 buy4stake_token: Optional[str] = None,
                 buy4stake_decimals: int = DECIMALS):
        if epoch_duration <= 0:
            raise ValueError(f"epoch_duration must be positive, got {epoch_duration}")
        if len(tier_thresholds) != len(tier_multipliers_bps):
            raise ValueError("tier_thresholds and tier_multipliers_bps must have the same length")
        if list(tier_thresholds) != sorted(tier_thresholds):
            raise ValueError("tier_thresholds must be ascending")
        if deposits_page_size <= 0:
            raise ValueError(f"deposits_page_size must be positive, got {deposits_page_size}")

        self.network_id = network_id
        self.epoch_duration = epoch_duration
        self.genesis_time = genesis_time
        self.stake_token = stake_token
        self.default_reward_token = default_reward_token
        self.treasury_address = treasury_address
        self.deposits_page_size = deposits_page_size
        self.tier_thresholds = tuple(tier_thresholds)
        self.tier_multipliers_bps = tuple(tier_multipliers_bps)
        self.buy4stake_token = buy4stake_token
        self.buy4stake_decimals = buy4stake_decimals

    def copy(self, **overrides) -> 'StakingConfig':
        """Returns a new config with selected fields replaced (used by tests and genesis tooling)."""
        params = dict(vars(self))
        params.update(overrides)
        return StakingConfig(**params)


NETWORKS: Dict[str, StakingConfig] = {
    "devnet": StakingConfig(
        network_id="devnet",
        epoch_duration=60 * 60,         # 1 hour epochs for local testing
        deposits_page_size=10,
    ),
    "testnet": StakingConfig(
        network_id="testnet",
        epoch_duration=DAY,
    ),
    "mainnet": StakingConfig(
        network_id="mainnet",
        epoch_duration=EPOCH_DURATION,
        genesis_time=1_735_689_600,     # 2025-01-01T00:00:00Z
    ),
}


def get_network_config(name: Optional[str] = None) -> StakingConfig:
    """
    Resolve a network preset.

    Args:
        name: Preset name; falls back to $EPOCHSTAKE_NETWORK, then devnet

    Returns:
        The preset StakingConfig
    """
    network = name or os.environ.get(NETWORK_ENV_VAR, "devnet")
    if network not in NETWORKS:
        raise ValueError(f"Unknown network: {network} (expected one of {', '.join(NETWORKS)})")
    return NETWORKS[network]


# Default to devnet for now
CURRENT_NETWORK = NETWORKS["devnet"]

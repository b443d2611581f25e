# MIT License
# Copyright (c) 2025 Hashborn

from .params import StakingConfig, NETWORKS, CURRENT_NETWORK, get_network_config

__all__ = ["StakingConfig", "NETWORKS", "CURRENT_NETWORK", "get_network_config"]

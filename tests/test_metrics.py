# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus metrics tests.

Collectors are process-wide, so assertions compare before/after values.
"""

import pytest

from epochstake.protocol.config.params import StakingConfig
from epochstake.protocol.types.common import CalculatorFault
from epochstake.staking.core.engine import StakingEngine
from epochstake.staking.observability import metrics_registry

GENESIS = 1000


def _value(name, labels=None):
    return metrics_registry.get_sample_value(name, labels or {}) or 0


class GreedyStrategy:
    def __init__(self, registry, ledger, config):
        pass

    def calculate_reward(self, staker, commission):
        return commission


@pytest.fixture
def config():
    return StakingConfig(network_id="test", epoch_duration=100, genesis_time=GENESIS)


def test_counters_follow_committed_calls(config):
    engine = StakingEngine(config)
    deposits = _value("epochstake_deposits_total")
    started = _value("epochstake_epochs_started_total")
    collected = _value("epochstake_commission_collected_total", {"token": "usdc"})
    retained = _value("epochstake_commission_retained_total", {"token": "usdc"})
    claimed = _value("epochstake_rewards_claimed_total", {"token": "usdc"})

    engine.deposit("alice", 1, GENESIS)
    engine.deposit("bob", 2, GENESIS)
    engine.collect_commission(10, GENESIS + 1)
    engine.claim("bob", GENESIS + 2)

    assert _value("epochstake_deposits_total") == deposits + 2
    assert _value("epochstake_epochs_started_total") == started + 1
    assert _value("epochstake_commission_collected_total", {"token": "usdc"}) == collected + 10
    assert _value("epochstake_commission_retained_total", {"token": "usdc"}) == retained + 1
    assert _value("epochstake_rewards_claimed_total", {"token": "usdc"}) == claimed + 6


def test_gauges_track_current_epoch(config):
    engine = StakingEngine(config)
    engine.deposit("alice", 40, GENESIS)
    engine.deposit("bob", 60, GENESIS)

    assert _value("epochstake_current_epoch") == 1
    assert _value("epochstake_total_active_stake") == 100
    assert _value("epochstake_active_stakers") == 2


def test_calculator_fault_counted(config):
    engine = StakingEngine(config, calculator=GreedyStrategy)
    engine.deposit("alice", 1, GENESIS)
    engine.deposit("bob", 1, GENESIS)
    faults = _value("epochstake_calculator_faults_total")

    with pytest.raises(CalculatorFault):
        engine.collect_commission(10, GENESIS + 1)

    assert _value("epochstake_calculator_faults_total") == faults + 1

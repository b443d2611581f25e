# MIT License
# Copyright (c) 2025 Hashborn

"""
Reward accountant tests: crediting, dust retention, faults, claims.
"""

import pytest

from epochstake.protocol.config.params import StakingConfig
from epochstake.protocol.types.common import (
    TransferDirection,
    InvalidAmount,
    CalculatorFault,
    NothingToClaim,
)
from epochstake.staking.core.accountant import RewardAccountant
from epochstake.staking.core.deposits import DepositRegistry
from epochstake.staking.core.epochs import EpochLedger
from epochstake.staking.core.rewards import ProportionalStrategy


class GreedyCalculator:
    """Hands every staker the whole commission."""

    def calculate_reward(self, staker, commission):
        return commission


class NegativeCalculator:
    def calculate_reward(self, staker, commission):
        return -1


@pytest.fixture
def registry():
    registry = DepositRegistry()
    for staker in ("alice", "bob", "carol"):
        registry.deposit(staker, 100, 1, 1)
    return registry


@pytest.fixture
def accountant(registry):
    config = StakingConfig(network_id="test", epoch_duration=100)
    return RewardAccountant(registry, ProportionalStrategy(registry, EpochLedger(config), config))


def test_collect_credits_and_retains_dust(accountant):
    receipt = accountant.collect_commission(10, 50, 1, "usdc")

    assert receipt.distributed == 9
    assert receipt.retained == 1
    assert receipt.applied_count == 3
    assert receipt.rewards == {"alice": 3, "bob": 3, "carol": 3}
    assert receipt.distributed + receipt.retained == receipt.commission

    assert accountant.claimable("alice", "usdc") == 3
    assert accountant.treasury_balance("usdc") == 1
    assert accountant.epoch_collected(1, "usdc") == 10
    assert accountant.total_claimable("usdc") == 9


def test_commission_without_stakers_is_retained():
    registry = DepositRegistry()
    config = StakingConfig(network_id="test", epoch_duration=100)
    accountant = RewardAccountant(registry, ProportionalStrategy(registry, EpochLedger(config), config))

    receipt = accountant.collect_commission(10, 50, 1, "usdc")
    assert receipt.distributed == 0
    assert receipt.applied_count == 0
    assert accountant.treasury_balance("usdc") == 10


def test_invalid_commission(accountant):
    with pytest.raises(InvalidAmount):
        accountant.collect_commission(0, 50, 1, "usdc")
    with pytest.raises(InvalidAmount):
        accountant.collect_commission(-10, 50, 1, "usdc")


@pytest.mark.parametrize("calculator", [GreedyCalculator(), NegativeCalculator()])
def test_faulty_calculator_credits_nothing(registry, calculator):
    accountant = RewardAccountant(registry, calculator)

    with pytest.raises(CalculatorFault):
        accountant.collect_commission(10, 50, 1, "usdc")

    for staker in ("alice", "bob", "carol"):
        assert accountant.claimable(staker, "usdc") == 0
    assert accountant.epoch_collected(1, "usdc") == 0
    assert accountant.treasury_balance("usdc") == 0


def test_claim(accountant):
    accountant.collect_commission(30, 50, 1, "usdc")

    intent = accountant.claim("alice", 60, "usdc")
    assert intent.direction == TransferDirection.OUT
    assert intent.account == "alice"
    assert intent.token == "usdc"
    assert intent.amount == 10
    assert intent.reason == "reward_claim"

    assert accountant.claimable("alice", "usdc") == 0
    assert accountant.paid_out("alice", "usdc") == 10
    assert accountant.epoch_released(1, "usdc") == 10

    with pytest.raises(NothingToClaim):
        accountant.claim("alice", 61, "usdc")


def test_tokens_are_independent(accountant):
    accountant.collect_commission(30, 50, 1, "usdc")
    accountant.collect_commission(60, 51, 1, "dai")

    assert accountant.claimable("bob", "usdc") == 10
    assert accountant.claimable("bob", "dai") == 20

    accountant.claim("bob", 52, "dai")
    assert accountant.claimable("bob", "usdc") == 10
    assert accountant.paid_out("bob", "usdc") == 0


def test_sweep_treasury(accountant):
    accountant.collect_commission(10, 50, 1, "usdc")
    assert accountant.sweep_treasury("usdc") == 1
    assert accountant.treasury_balance("usdc") == 0

    with pytest.raises(NothingToClaim):
        accountant.sweep_treasury("usdc")


def test_rewards_attributed_to_deposits():
    registry = DepositRegistry()
    small = registry.deposit("alice", 100, 1, 1).depositid
    large = registry.deposit("alice", 200, 2, 1).depositid
    other = registry.deposit("bob", 300, 3, 1).depositid
    config = StakingConfig(network_id="test", epoch_duration=100)
    accountant = RewardAccountant(registry, ProportionalStrategy(registry, EpochLedger(config), config))

    accountant.collect_commission(601, 50, 1, "usdc")
    # Credited but unclaimed rewards are not paid out yet
    assert accountant.deposit_paid_out(small, "usdc") == 0

    accountant.claim("alice", 60, "usdc")
    assert accountant.deposit_paid_out(small, "usdc") == 100
    assert accountant.deposit_paid_out(large, "usdc") == 200
    assert accountant.deposit_epoch_paid_out(large, "usdc", 1) == 200
    assert accountant.deposit_epoch_paid_out(large, "usdc", 2) == 0
    assert accountant.deposit_paid_out(other, "usdc") == 0
    assert accountant.deposit_paid_out(small, "dai") == 0


def test_deposit_shares_sum_to_staker_reward():
    registry = DepositRegistry()
    first = registry.deposit("alice", 1, 1, 1).depositid
    second = registry.deposit("alice", 2, 2, 1).depositid
    config = StakingConfig(network_id="test", epoch_duration=100)
    accountant = RewardAccountant(registry, ProportionalStrategy(registry, EpochLedger(config), config))

    accountant.collect_commission(7, 50, 1, "usdc")
    intent = accountant.claim("alice", 60, "usdc")

    assert accountant.deposit_paid_out(first, "usdc") == 2
    assert accountant.deposit_paid_out(second, "usdc") == 5
    assert intent.amount == 7


@pytest.mark.parametrize("commission", [True, 10.0, "10"])
def test_commission_must_be_integer(accountant, commission):
    with pytest.raises(InvalidAmount):
        accountant.collect_commission(commission, 50, 1, "usdc")


def test_boolean_reward_is_a_fault(registry):
    class BooleanCalculator:
        def calculate_reward(self, staker, commission):
            return True

    accountant = RewardAccountant(registry, BooleanCalculator())
    with pytest.raises(CalculatorFault):
        accountant.collect_commission(10, 50, 1, "usdc")

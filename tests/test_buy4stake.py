# MIT License
# Copyright (c) 2025 Hashborn

"""
Buy-for-stake tests: donations, conversion, fills.
"""

import pytest

from epochstake.protocol.config.params import StakingConfig, DECIMALS
from epochstake.protocol.types.common import (
    TransferDirection,
    InvalidAmount,
    InvalidState,
    EpochNotReady,
    UnsupportedToken,
    InsufficientPool,
)
from epochstake.staking.core.buy4stake import Buy4StakePool, convert_to_stake_units
from epochstake.staking.core.engine import StakingEngine

GENESIS = 1000
USDT = 10**6
ORCY = 10**DECIMALS


@pytest.fixture
def engine():
    config = StakingConfig(
        network_id="test",
        epoch_duration=100,
        genesis_time=GENESIS,
        buy4stake_token="usdt",
        buy4stake_decimals=6,
    )
    return StakingEngine(config)


def test_convert_to_stake_units():
    assert convert_to_stake_units(5, 18, 18) == 5
    assert convert_to_stake_units(5 * USDT, 6, 18) == 5 * ORCY
    assert convert_to_stake_units(3 * 10**24, 24, 18) == 3 * ORCY
    assert convert_to_stake_units(10**5, 24, 18) == 0


def test_pool_accounting():
    pool = Buy4StakePool()
    assert pool.donate("dao", 100) == 100

    with pytest.raises(InvalidAmount):
        pool.donate("dao", 0)
    with pytest.raises(InvalidAmount):
        pool.donate("dao", True)
    with pytest.raises(InsufficientPool):
        pool.take(101)

    assert pool.take(40) == 60
    assert pool.total_donated == 100
    assert pool.total_filled == 40


def test_donate(engine):
    intent = engine.donate_buy4stake("dao", 10 * ORCY, GENESIS)
    assert intent.direction == TransferDirection.IN
    assert intent.token == engine.config.stake_token
    assert intent.amount == 10 * ORCY
    assert engine.buy4stake_pool.balance == 10 * ORCY


def test_buy4stake_fills_from_pool(engine):
    engine.donate_buy4stake("dao", 10 * ORCY, GENESIS)
    engine.deposit("alice", 100, GENESIS)

    dep = engine.buy4stake("bob", "usdt", 5 * USDT, GENESIS + 10)
    assert dep.staker == "bob"
    assert dep.amount == 5 * ORCY
    assert dep.in_epochid == 1

    # Payment went to the stakers active before the purchase
    assert engine.claimable("alice", "usdt") == 5 * USDT
    assert engine.claimable("bob", "usdt") == 0
    assert engine.buy4stake_pool.balance == 5 * ORCY
    assert engine.stake_of("bob") == 5 * ORCY


def test_buy4stake_rejections(engine):
    engine.donate_buy4stake("dao", 10 * ORCY, GENESIS)

    with pytest.raises(EpochNotReady):
        engine.buy4stake("bob", "usdt", 5 * USDT, GENESIS + 1)

    engine.deposit("alice", 100, GENESIS + 2)

    with pytest.raises(UnsupportedToken):
        engine.buy4stake("bob", "dai", 5 * USDT, GENESIS + 3)
    with pytest.raises(InvalidAmount):
        engine.buy4stake("bob", "usdt", 0, GENESIS + 3)
    with pytest.raises(InvalidAmount):
        engine.buy4stake("bob", "usdt", True, GENESIS + 3)
    with pytest.raises(InvalidState):
        engine.buy4stake("", "usdt", 5 * USDT, GENESIS + 3)
    with pytest.raises(InsufficientPool):
        engine.buy4stake("bob", "usdt", 20 * USDT, GENESIS + 3)

    assert engine.claimable("alice", "usdt") == 0
    assert engine.buy4stake_pool.balance == 10 * ORCY


def test_buy4stake_disabled_by_default():
    engine = StakingEngine(StakingConfig(network_id="test", epoch_duration=100, genesis_time=GENESIS))
    with pytest.raises(UnsupportedToken):
        engine.buy4stake("bob", "usdt", 1, GENESIS)

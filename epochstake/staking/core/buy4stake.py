# MIT License
# Copyright (c) 2025 Hashborn

"""
Buy-for-stake pool.

Holders donate stake tokens into a shared pool. A buyer pays commission in
the configured buy4stake token; that payment is distributed to current
stakers and the buyer receives a fresh deposit of the same value in stake
tokens taken from the pool.
"""

import logging

from ...protocol.types.common import InvalidAmount, InsufficientPool

logger = logging.getLogger(__name__)


class Buy4StakePool:
    def __init__(self):
        self.balance = 0
        self.total_donated = 0
        self.total_filled = 0

    def donate(self, donor: str, amount: int) -> int:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"Donation must be a positive integer, got {amount!r}")
        self.balance += amount
        self.total_donated += amount
        logger.info(f"{donor} donated {amount} to buy4stake pool (balance {self.balance})")
        return self.balance

    def ensure_available(self, amount: int):
        if amount > self.balance:
            raise InsufficientPool(f"Buy4stake pool holds {self.balance}, requested {amount}")

    def take(self, amount: int) -> int:
        self.ensure_available(amount)
        self.balance -= amount
        self.total_filled += amount
        return self.balance


def convert_to_stake_units(amount: int, from_decimals: int, stake_decimals: int) -> int:
    """1:1 by value; rescales between token precisions (floor)."""
    if from_decimals == stake_decimals:
        return amount
    if stake_decimals > from_decimals:
        return amount * 10 ** (stake_decimals - from_decimals)
    return amount // 10 ** (from_decimals - stake_decimals)

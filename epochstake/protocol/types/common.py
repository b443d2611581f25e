# MIT License
# Copyright (c) 2025 Hashborn

from enum import Enum


class EpochStatus(str, Enum):
    PENDING = "PENDING"
    STARTED = "STARTED"
    ENDED = "ENDED"


class DepositStatus(str, Enum):
    ACTIVE = "ACTIVE"
    UNSTAKING = "UNSTAKING"
    WITHDRAWN = "WITHDRAWN"   # terminal


class TransferDirection(str, Enum):
    IN = "IN"       # custody pulls tokens from the account
    OUT = "OUT"     # custody pays tokens out to the account


class EventType(str, Enum):
    EPOCH_STARTED = "epoch_started"
    EPOCH_ENDED = "epoch_ended"
    DEPOSIT_CREATED = "deposit_created"
    UNSTAKE_REQUESTED = "unstake_requested"
    WITHDRAWN = "withdrawn"
    COMMISSION_COLLECTED = "commission_collected"
    COMMISSION_RETAINED = "commission_retained"
    REWARD_CLAIMED = "reward_claimed"
    BUY4STAKE_DONATED = "buy4stake_donated"
    BUY4STAKE_FILLED = "buy4stake_filled"
    TREASURY_SWEPT = "treasury_swept"


class ProtocolError(Exception):
    pass


class StakingError(ProtocolError):
    """Base for every error an entry point reports to its caller."""
    pass


class InvalidAmount(StakingError):
    pass


class InvalidState(StakingError):
    pass


class DepositNotFound(InvalidState):
    pass


class NotOwner(StakingError):
    pass


class EpochNotReady(StakingError):
    pass


class CalculatorFault(StakingError):
    pass


class NothingToClaim(StakingError):
    pass


class UnsupportedToken(StakingError):
    pass


class InsufficientPool(StakingError):
    pass

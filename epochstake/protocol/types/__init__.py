# MIT License
# Copyright (c) 2025 Hashborn

from .common import (
    EpochStatus,
    DepositStatus,
    TransferDirection,
    EventType,
    ProtocolError,
    StakingError,
    InvalidAmount,
    InvalidState,
    DepositNotFound,
    NotOwner,
    EpochNotReady,
    CalculatorFault,
    NothingToClaim,
    UnsupportedToken,
    InsufficientPool,
)
from .staking import (
    Epoch,
    Deposit,
    TransferIntent,
    CommissionReceipt,
    EpochSummary,
    StakerDepositsPage,
)

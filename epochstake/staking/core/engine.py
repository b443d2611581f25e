# MIT License
# Copyright (c) 2025 Hashborn

"""
Staking engine (coordinator).

Composes EpochLedger, DepositRegistry, RewardCalculator and
RewardAccountant behind the public entry points.

Every mutating call:
1. Runs the lazy epoch tick (advance_if_due, then ensure_started)
2. Performs its own validation, then its mutations
3. Commits: queued events are emitted and metrics refreshed

A call that raises leaves no trace: the tick is rolled back and queued
events are discarded. Components validate before mutating, so the epoch
tick is the only state that needs explicit undo.

State machines:
    deposit: ACTIVE -> UNSTAKING -> WITHDRAWN
    epoch:   PENDING -> STARTED -> ENDED (chains to next PENDING)
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Tuple

from ...protocol.types.staking import (
    Epoch,
    Deposit,
    TransferIntent,
    CommissionReceipt,
    EpochSummary,
    StakerDepositsPage,
)
from ...protocol.types.common import (
    EventType,
    TransferDirection,
    InvalidAmount,
    InvalidState,
    EpochNotReady,
    CalculatorFault,
    UnsupportedToken,
)
from ...protocol.config.params import StakingConfig, CURRENT_NETWORK, DECIMALS
from ..observability import metrics
from .epochs import EpochLedger
from .deposits import DepositRegistry
from .rewards import RewardCalculator, ProportionalStrategy
from .accountant import RewardAccountant
from .buy4stake import Buy4StakePool, convert_to_stake_units
from .events import EventBus

logger = logging.getLogger(__name__)

CalculatorFactory = Callable[[DepositRegistry, EpochLedger, StakingConfig], RewardCalculator]


class StakingEngine:
    """
    Top-level coordinator.

    Usage:
        engine = StakingEngine(config, genesis_time=now)
        dep = engine.deposit("alice", 100, now)
        engine.collect_commission(10, now + 60)
        engine.claim("alice", now + 120)
    """

    def __init__(self,
                 config: Optional[StakingConfig] = None,
                 calculator: Optional[CalculatorFactory] = None,
                 event_bus: Optional[EventBus] = None,
                 genesis_time: Optional[int] = None):
        self.config = config or CURRENT_NETWORK
        self.ledger = EpochLedger(self.config, genesis_time)
        self.registry = DepositRegistry()
        factory = calculator or ProportionalStrategy
        self.calculator = factory(self.registry, self.ledger, self.config)
        self.accountant = RewardAccountant(self.registry, self.calculator)
        self.buy4stake_pool = Buy4StakePool()
        self.events = event_bus or EventBus()

        self._pending_events: List[Tuple[EventType, Dict[str, Any]]] = []
        self._last_now: Optional[int] = None
        # Epoch created by the tick of the call in progress
        self._created: Optional[Epoch] = None

    # ------------------------------------------------------------------
    # Call scope
    # ------------------------------------------------------------------

    @contextmanager
    def _call(self, now: int):
        if self._last_now is not None and now < self._last_now:
            raise InvalidState(f"Time went backwards: {now} < {self._last_now}")

        mark = self.ledger.mark()
        self._pending_events = []
        try:
            self._created = self._tick(now)
            yield
        except Exception as e:
            self.ledger.rollback(mark)
            self._pending_events = []
            if isinstance(e, CalculatorFault):
                metrics.calculator_faults_total.inc()
                logger.warning(f"Commission round rejected: {e}")
            raise

        self._last_now = now
        events, self._pending_events = self._pending_events, []
        for event_type, data in events:
            metrics.record_event(event_type, data)
            self.events.emit(event_type, **data)
        metrics.update_metrics(self)

    def _queue(self, event_type: EventType, **data: Any):
        self._pending_events.append((event_type, data))

    def _tick(self, now: int) -> Optional[Epoch]:
        """Lazy epoch rollover; creates at most one epoch per call."""
        closing = self.ledger.current_epoch()
        created = self.ledger.advance_if_due(now)
        if created is not None:
            self._queue(
                EventType.EPOCH_ENDED,
                epochid=closing.epochid,
                started_at=closing.started_at,
                ended_at=closing.ended_at,
            )
        self._start_if_ready(now)
        return created

    def _start_if_ready(self, now: int):
        epochid = self.ledger.current_epoch().epochid
        has_stakers = self.registry.total_active_stake(epochid) > 0
        started = self.ledger.ensure_started(now, has_stakers)
        if started is not None:
            self._queue(
                EventType.EPOCH_STARTED,
                epochid=started.epochid,
                start_date=started.start_date,
                started_at=started.started_at,
            )

    def _require_started_epoch(self) -> Epoch:
        epoch = self.ledger.current_epoch()
        if not epoch.is_started:
            raise EpochNotReady(f"Epoch {epoch.epochid} has not started yet")
        return epoch

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def deposit(self, staker: str, amount: int, now: int) -> Deposit:
        """
        Stake `amount` into the current epoch. The first deposit at or after
        a pending epoch's scheduled start also starts that epoch.
        """
        with self._call(now):
            epoch = self.ledger.current_epoch()
            deposit = self.registry.deposit(staker, amount, now, epoch.epochid)
            self._queue(
                EventType.DEPOSIT_CREATED,
                depositid=deposit.depositid,
                staker=staker,
                epochid=epoch.epochid,
                amount=amount,
                created_at=now,
                transfer=TransferIntent(
                    direction=TransferDirection.IN,
                    account=staker,
                    token=self.config.stake_token,
                    amount=amount,
                    reason="stake",
                ),
            )
            self._start_if_ready(now)
            return deposit.model_copy()

    def request_unstake(self, staker: str, depositid: str, now: int) -> Deposit:
        with self._call(now):
            epoch = self.ledger.current_epoch()
            deposit = self.registry.request_unstake(depositid, staker, now, epoch.epochid)
            self._queue(
                EventType.UNSTAKE_REQUESTED,
                depositid=depositid,
                staker=staker,
                out_epochid=epoch.epochid,
                amount=deposit.amount,
                unstaked_at=now,
            )
            return deposit.model_copy()

    def withdraw(self, staker: str, depositid: str, now: int) -> TransferIntent:
        with self._call(now):
            known = self.registry.get_deposit(depositid)
            out_epochid = known.out_epochid if known is not None else 0
            out_epoch = self.ledger.get_epoch(out_epochid) or self.ledger.current_epoch()

            deposit = self.registry.withdraw(depositid, staker, now, out_epoch)
            intent = TransferIntent(
                direction=TransferDirection.OUT,
                account=staker,
                token=self.config.stake_token,
                amount=deposit.amount,
                reason="withdraw",
            )
            self._queue(
                EventType.WITHDRAWN,
                depositid=depositid,
                staker=staker,
                amount=deposit.amount,
                withdrawn_at=now,
                transfer=intent,
            )
            return intent

    def collect_commission(self, commission: int, now: int, token: Optional[str] = None) -> CommissionReceipt:
        """Distribute reported commission to stakers active in the current epoch."""
        token = token or self.config.default_reward_token
        with self._call(now):
            epoch = self._require_started_epoch()
            receipt = self.accountant.collect_commission(commission, now, epoch.epochid, token)
            self._queue_commission(receipt, now)
            return receipt

    def claim(self, staker: str, now: int, token: Optional[str] = None) -> TransferIntent:
        token = token or self.config.default_reward_token
        with self._call(now):
            intent = self.accountant.claim(staker, now, token)
            self._queue(
                EventType.REWARD_CLAIMED,
                staker=staker,
                token=token,
                amount=intent.amount,
                claimed_at=now,
                transfer=intent,
            )
            return intent

    def advance_epoch(self, now: int) -> Optional[Epoch]:
        """
        Explicit tick for hosts that want rollover without other activity.

        Returns:
            The epoch created by this tick, or None
        """
        with self._call(now):
            created = self._created
        return created.model_copy() if created else None

    def donate_buy4stake(self, donor: str, amount: int, now: int) -> TransferIntent:
        with self._call(now):
            balance = self.buy4stake_pool.donate(donor, amount)
            intent = TransferIntent(
                direction=TransferDirection.IN,
                account=donor,
                token=self.config.stake_token,
                amount=amount,
                reason="buy4stake_donation",
            )
            self._queue(
                EventType.BUY4STAKE_DONATED,
                donor=donor,
                amount=amount,
                pool_balance=balance,
                transfer=intent,
            )
            return intent

    def buy4stake(self, staker: str, token: str, amount: int, now: int) -> Deposit:
        """
        Pay `amount` of the buy4stake token as commission and receive a new
        deposit of equal value in stake tokens from the donation pool.
        """
        with self._call(now):
            if self.config.buy4stake_token is None or token != self.config.buy4stake_token:
                raise UnsupportedToken(f"Token {token} is not accepted for buy4stake")
            if not staker:
                raise InvalidState("Buy4stake requires a staker address")
            if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
                raise InvalidAmount(f"Buy4stake amount must be a positive integer, got {amount!r}")

            stake_amount = convert_to_stake_units(amount, self.config.buy4stake_decimals, DECIMALS)
            if stake_amount <= 0:
                raise InvalidAmount(f"Buy4stake amount {amount} is below one stake unit")
            self.buy4stake_pool.ensure_available(stake_amount)
            epoch = self._require_started_epoch()

            # Payment is distributed before the new deposit exists
            receipt = self.accountant.collect_commission(amount, now, epoch.epochid, token)
            self._queue_commission(receipt, now)

            self.buy4stake_pool.take(stake_amount)
            deposit = self.registry.deposit(staker, stake_amount, now, epoch.epochid)
            self._queue(
                EventType.BUY4STAKE_FILLED,
                staker=staker,
                token=token,
                paid=amount,
                depositid=deposit.depositid,
                amount=stake_amount,
                pool_balance=self.buy4stake_pool.balance,
                transfer=TransferIntent(
                    direction=TransferDirection.IN,
                    account=staker,
                    token=token,
                    amount=amount,
                    reason="buy4stake_payment",
                ),
            )
            self._queue(
                EventType.DEPOSIT_CREATED,
                depositid=deposit.depositid,
                staker=staker,
                epochid=epoch.epochid,
                amount=stake_amount,
                created_at=now,
                transfer=None,
            )
            return deposit.model_copy()

    def sweep_treasury(self, token: str, now: int) -> TransferIntent:
        with self._call(now):
            amount = self.accountant.sweep_treasury(token)
            intent = TransferIntent(
                direction=TransferDirection.OUT,
                account=self.config.treasury_address,
                token=token,
                amount=amount,
                reason="treasury_sweep",
            )
            self._queue(EventType.TREASURY_SWEPT, token=token, amount=amount, transfer=intent)
            return intent

    def _queue_commission(self, receipt: CommissionReceipt, now: int):
        self._queue(
            EventType.COMMISSION_COLLECTED,
            epochid=receipt.epochid,
            token=receipt.token,
            commission=receipt.commission,
            distributed=receipt.distributed,
            applied_count=receipt.applied_count,
            collected_at=now,
        )
        if receipt.retained:
            self._queue(
                EventType.COMMISSION_RETAINED,
                epochid=receipt.epochid,
                token=receipt.token,
                retained=receipt.retained,
            )

    # ------------------------------------------------------------------
    # Queries (read-only)
    # ------------------------------------------------------------------

    def current_epoch(self) -> Epoch:
        return self.ledger.current_epoch().model_copy()

    def get_epoch(self, epochid: int) -> Optional[Epoch]:
        epoch = self.ledger.get_epoch(epochid)
        return epoch.model_copy() if epoch else None

    def get_deposit(self, depositid: str) -> Optional[Deposit]:
        deposit = self.registry.get_deposit(depositid)
        return deposit.model_copy() if deposit else None

    def active_stake(self, staker: str, epochid: Optional[int] = None) -> int:
        if epochid is None:
            epochid = self.ledger.current_epoch().epochid
        return self.registry.active_stake(staker, epochid)

    def total_active_stake(self, epochid: Optional[int] = None) -> int:
        if epochid is None:
            epochid = self.ledger.current_epoch().epochid
        return self.registry.total_active_stake(epochid)

    def voting_power(self, staker: str, epochid: Optional[int] = None) -> int:
        """Stake snapshot eligible for voting in the given epoch."""
        return self.active_stake(staker, epochid)

    def stake_of(self, staker: str) -> int:
        return self.registry.stake_of(staker)

    def claimable(self, staker: str, token: Optional[str] = None) -> int:
        return self.accountant.claimable(staker, token or self.config.default_reward_token)

    def paid_out(self, staker: str, token: Optional[str] = None) -> int:
        return self.accountant.paid_out(staker, token or self.config.default_reward_token)

    def deposit_paid_out(self, depositid: str, token: Optional[str] = None) -> int:
        """Rewards claimed so far that were earned by this deposit."""
        return self.accountant.deposit_paid_out(depositid, token or self.config.default_reward_token)

    def deposit_epoch_paid_out(self, depositid: str, epochid: int, token: Optional[str] = None) -> int:
        return self.accountant.deposit_epoch_paid_out(
            depositid, token or self.config.default_reward_token, epochid
        )

    def treasury_balance(self, token: Optional[str] = None) -> int:
        return self.accountant.treasury_balance(token or self.config.default_reward_token)

    def staker_deposits(self, staker: str, offset: int = 0) -> StakerDepositsPage:
        return self.registry.staker_deposits(staker, offset, self.config.deposits_page_size)

    def epoch_summary(self, epochid: int, token: Optional[str] = None) -> Optional[EpochSummary]:
        epoch = self.ledger.get_epoch(epochid)
        if epoch is None:
            return None
        token = token or self.config.default_reward_token
        return EpochSummary(
            epoch=epoch.model_copy(),
            stakers=self.registry.active_staker_count(epochid),
            stakepool=self.registry.total_active_stake(epochid),
            collected=self.accountant.epoch_collected(epochid, token),
            released=self.accountant.epoch_released(epochid, token),
        )

# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus Metrics Exporter

Exports staking metrics in Prometheus format.

Metrics:
- Current epoch, epoch transitions
- Active stake, staker count, deposit lifecycle counters
- Commission collected / distributed / retained / claimed per token
- Calculator faults
"""

import logging
from typing import Any, Dict

from prometheus_client import Counter, Gauge, CollectorRegistry

from ...protocol.types.common import EventType

logger = logging.getLogger(__name__)

# Create registry for metrics
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# EPOCH METRICS
# ═══════════════════════════════════════════════════════════════════

current_epoch = Gauge(
    'epochstake_current_epoch',
    'Current epoch id',
    registry=metrics_registry
)

epochs_started_total = Counter(
    'epochstake_epochs_started_total',
    'Total number of epochs started',
    registry=metrics_registry
)

epochs_ended_total = Counter(
    'epochstake_epochs_ended_total',
    'Total number of epochs ended',
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# STAKE METRICS
# ═══════════════════════════════════════════════════════════════════

total_active_stake = Gauge(
    'epochstake_total_active_stake',
    'Active stake in the current epoch',
    registry=metrics_registry
)

active_stakers = Gauge(
    'epochstake_active_stakers',
    'Stakers with active stake in the current epoch',
    registry=metrics_registry
)

deposits_total = Counter(
    'epochstake_deposits_total',
    'Total number of deposits created',
    registry=metrics_registry
)

unstakes_total = Counter(
    'epochstake_unstakes_total',
    'Total number of unstake requests',
    registry=metrics_registry
)

withdrawals_total = Counter(
    'epochstake_withdrawals_total',
    'Total number of withdrawals',
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# ECONOMIC METRICS
# ═══════════════════════════════════════════════════════════════════

commission_collected = Counter(
    'epochstake_commission_collected',
    'Commission collected',
    ['token'],
    registry=metrics_registry
)

rewards_distributed = Counter(
    'epochstake_rewards_distributed',
    'Commission credited to stakers',
    ['token'],
    registry=metrics_registry
)

commission_retained = Counter(
    'epochstake_commission_retained',
    'Dust and undistributable commission routed to treasury',
    ['token'],
    registry=metrics_registry
)

rewards_claimed = Counter(
    'epochstake_rewards_claimed',
    'Rewards paid out to stakers',
    ['token'],
    registry=metrics_registry
)

calculator_faults_total = Counter(
    'epochstake_calculator_faults_total',
    'Commission rounds rejected for over-allocation',
    registry=metrics_registry
)


# ═══════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════

def record_event(event_type: EventType, data: Dict[str, Any]) -> None:
    """
    Update counters for a committed event.

    Args:
        event_type: Committed event
        data: Event payload
    """
    if event_type == EventType.EPOCH_STARTED:
        epochs_started_total.inc()
    elif event_type == EventType.EPOCH_ENDED:
        epochs_ended_total.inc()
    elif event_type == EventType.DEPOSIT_CREATED:
        deposits_total.inc()
    elif event_type == EventType.UNSTAKE_REQUESTED:
        unstakes_total.inc()
    elif event_type == EventType.WITHDRAWN:
        withdrawals_total.inc()
    elif event_type == EventType.COMMISSION_COLLECTED:
        commission_collected.labels(token=data["token"]).inc(data["commission"])
        rewards_distributed.labels(token=data["token"]).inc(data["distributed"])
    elif event_type == EventType.COMMISSION_RETAINED:
        commission_retained.labels(token=data["token"]).inc(data["retained"])
    elif event_type == EventType.REWARD_CLAIMED:
        rewards_claimed.labels(token=data["token"]).inc(data["amount"])


def update_metrics(engine) -> None:
    """
    Refresh gauges from engine state.
    Only updates Gauges, not Counters.

    Args:
        engine: StakingEngine instance
    """
    epoch = engine.current_epoch()
    current_epoch.set(epoch.epochid)
    total_active_stake.set(engine.total_active_stake(epoch.epochid))
    active_stakers.set(engine.registry.active_staker_count(epoch.epochid))
    logger.debug(f"Metrics updated at epoch {epoch.epochid}")

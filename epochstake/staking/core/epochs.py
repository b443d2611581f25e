# MIT License
# Copyright (c) 2025 Hashborn

"""
Epoch ledger.

Owns the ordered sequence of epochs and the "current epoch" pointer.
Transitions are driven lazily by the coordinator (no timers):

    PENDING --(now >= start_date and stakers exist)--> STARTED
    STARTED --(now >= end_date)--> ENDED, next epoch created PENDING

Next epoch scheduling: start_date = previous end_date, rolled forward by
whole durations while it is a full duration or more behind `now`, so the
new epoch always satisfies start_date <= now < end_date. A pending epoch
whose start was deferred past its end_date is realigned the same way when
it finally starts.
"""

import logging
from typing import List, Optional, Tuple

from ...protocol.types.staking import Epoch
from ...protocol.config.params import StakingConfig

logger = logging.getLogger(__name__)


class EpochLedger:
    def __init__(self, config: StakingConfig, genesis_time: Optional[int] = None):
        self.config = config
        start = config.genesis_time if genesis_time is None else genesis_time
        self._epochs: List[Epoch] = [self._new_epoch(1, start)]

    def _new_epoch(self, epochid: int, start_date: int) -> Epoch:
        return Epoch(
            epochid=epochid,
            start_date=start_date,
            end_date=start_date + self.config.epoch_duration,
        )

    def current_epoch(self) -> Epoch:
        return self._epochs[-1]

    def get_epoch(self, epochid: int) -> Optional[Epoch]:
        if 1 <= epochid <= len(self._epochs):
            return self._epochs[epochid - 1]
        return None

    def epochs(self) -> List[Epoch]:
        return [e.model_copy() for e in self._epochs]

    def ensure_started(self, now: int, has_stakers: bool) -> Optional[Epoch]:
        """
        Start the current epoch if it is pending, its scheduled start has
        passed and at least one staker is active. Otherwise the start is
        deferred and the epoch stays pending.

        Returns:
            The epoch that was started, or None
        """
        epoch = self.current_epoch()
        if not epoch.is_pending or now < epoch.start_date:
            return None

        if not has_stakers:
            logger.debug(f"Epoch {epoch.epochid} start deferred: no active stakers")
            return None

        # A start deferred past the scheduled end realigns the window on `now`
        if now >= epoch.end_date:
            self._roll_forward(epoch, now)

        epoch.started_at = now
        delay = now - epoch.start_date
        logger.info(f"Epoch {epoch.epochid} started at {now} (scheduled {epoch.start_date}, delay {delay}s)")
        return epoch

    def advance_if_due(self, now: int) -> Optional[Epoch]:
        """
        Close the current epoch once its scheduled end has passed and open
        the next one in pending state. No-op for pending or ended epochs.

        Returns:
            The newly created epoch, or None
        """
        epoch = self.current_epoch()
        if not epoch.is_started or now < epoch.end_date:
            return None

        epoch.ended_at = now

        next_epoch = self._new_epoch(epoch.epochid + 1, epoch.end_date)
        self._roll_forward(next_epoch, now)
        self._epochs.append(next_epoch)

        logger.info(
            f"=== Epoch {epoch.epochid} ended at {now}; "
            f"epoch {next_epoch.epochid} scheduled {next_epoch.start_date}..{next_epoch.end_date} ==="
        )
        return next_epoch

    def _roll_forward(self, epoch: Epoch, now: int):
        """Shift a not-yet-started window by whole durations until start <= now < end."""
        duration = self.config.epoch_duration
        if now - epoch.start_date >= duration:
            epoch.start_date += ((now - epoch.start_date) // duration) * duration
            epoch.end_date = epoch.start_date + duration

    def mark(self) -> Tuple[int, Epoch]:
        """Snapshot the mutable tail so a failed call can be undone."""
        return len(self._epochs), self._epochs[-1].model_copy()

    def rollback(self, mark: Tuple[int, Epoch]) -> None:
        length, tail = mark
        del self._epochs[length:]
        self._epochs[length - 1] = tail

"""Periodic backup service.

Runs one repeating timer per configured backup policy. The service is
owned by a store instance: it is started explicitly and cancelled when the
store is closed. The backup callable takes the store's I/O lock and only
copies the file on disk, so a scheduled run never reads in-memory state
and never interleaves with a save. A failing run is logged and the policy
is rescheduled.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Sequence

from dataorbit.infrastructure.config import BackupPolicy
from dataorbit.infrastructure.logging import get_logger

SECONDS_PER_DAY = 24 * 60 * 60

logger = get_logger(__name__)


class BackupService:
    """Cancellable repeating backups, one timer chain per policy."""

    def __init__(
        self,
        backup: Callable[[], Path | None],
        policies: Sequence[BackupPolicy],
        seconds_per_unit: float = SECONDS_PER_DAY,
    ) -> None:
        """Initialize the service.

        Args:
            backup: Takes one backup and returns its path, or None when
                there was nothing to copy.
            policies: Backup policies; ``interval`` is in days.
            seconds_per_unit: Length of one interval unit (a day by default).
        """
        self._backup = backup
        self._policies = list(policies)
        self._seconds_per_unit = seconds_per_unit
        self._lock = threading.Lock()
        self._timers: dict[int, threading.Timer] = {}
        self._running = False
        self._completed = 0
        self._failed = 0
        self._skipped = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def completed(self) -> int:
        return self._completed

    @property
    def failed(self) -> int:
        return self._failed

    @property
    def skipped(self) -> int:
        return self._skipped

    def start(self) -> None:
        """Schedule the first run of every policy."""
        with self._lock:
            if self._running:
                return
            self._running = True
            for slot in range(len(self._policies)):
                self._schedule(slot)
        logger.info("backup_service_started", policies=len(self._policies))

    def stop(self) -> None:
        """Cancel every pending timer. A backup already copying finishes."""
        with self._lock:
            self._running = False
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        logger.info("backup_service_stopped")

    def _schedule(self, slot: int) -> None:
        interval = self._policies[slot].interval * self._seconds_per_unit
        timer = threading.Timer(interval, self._run, args=(slot,))
        timer.daemon = True
        self._timers[slot] = timer
        timer.start()

    def _run(self, slot: int) -> None:
        with self._lock:
            if not self._running:
                return
        try:
            path = self._backup()
            if path is None:
                self._skipped += 1
                logger.info("scheduled_backup_skipped", reason="no data file")
            else:
                self._completed += 1
                logger.info("scheduled_backup_completed", backup=str(path))
        except Exception as e:
            self._failed += 1
            logger.error("scheduled_backup_failed", error=f"{type(e).__name__}: {e}")
        finally:
            with self._lock:
                if self._running:
                    self._schedule(slot)

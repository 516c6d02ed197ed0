"""Scan scheduler — initial scan at startup plus periodic wall-clock ticks.

The lifespan awaits ``run_initial()`` BEFORE marking the app ready, so the
first scan completes before any API request is served. ``start()`` then
launches a background asyncio task that fires on wall-clock minutes divisible
by the interval (cron ``*/N * * * *``): with N=5, ticks land on :00, :05,
:10, … of every hour.

Failures never kill the loop:
  - FatalScanError       → logged, next tick retries from scratch
  - ScanInProgressError  → a manual scan is running; tick skipped
  - anything else        → logged with type, next tick retries
Cancellation (shutdown) propagates cleanly.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from securecoda.constants import MAX_SCAN_INTERVAL_MINUTES
from securecoda.errors import FatalScanError, ScanInProgressError
from securecoda.scanner.orchestrator import ScanOrchestrator
from securecoda.utils.logger import get_logger

logger = get_logger(__name__)


def next_run_after(now: datetime, interval_minutes: int) -> datetime:
    """Return the next cron ``*/interval_minutes`` tick strictly after ``now``.

    Ticks are the minutes of the hour divisible by ``interval_minutes``; when
    none remain in the current hour the next tick is the top of the next hour.

    Raises:
        ValueError: ``interval_minutes`` is outside 1..59, which a cron minute
                    field cannot express.
    """
    if not 1 <= interval_minutes <= MAX_SCAN_INTERVAL_MINUTES:
        raise ValueError(
            f"interval_minutes must be between 1 and {MAX_SCAN_INTERVAL_MINUTES}, "
            f"got {interval_minutes}"
        )
    base = now.replace(second=0, microsecond=0)
    next_minute = (base.minute // interval_minutes + 1) * interval_minutes
    if next_minute >= 60:
        return base.replace(minute=0) + timedelta(hours=1)
    return base.replace(minute=next_minute)


class ScanScheduler:
    """Periodic trigger for ScanOrchestrator.run().

    Args:
        orchestrator:     The scan entry point shared with the manual trigger.
        interval_minutes: Tick period (cron ``*/N`` alignment).
        clock:            Returns the current UTC time.
    """

    def __init__(
        self,
        orchestrator: ScanOrchestrator,
        interval_minutes: int,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._orchestrator = orchestrator
        self._interval = interval_minutes
        self._clock = clock
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_initial(self) -> None:
        """Run the startup scan to completion. Failures are logged, not raised."""
        logger.info("Running initial security scan...")
        await self._run_once(trigger="startup")
        logger.info("Initial scan complete.")

    def start(self) -> None:
        """Launch the periodic scan task (idempotent)."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="securecoda-scan-scheduler")
        logger.info("Scan scheduler started", interval_minutes=self._interval)

    async def stop(self) -> None:
        """Cancel the periodic task and wait for it to finish."""
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Scan scheduler stopped")

    async def _loop(self) -> None:
        while True:
            now = self._clock()
            next_run = next_run_after(now, self._interval)
            sleep_seconds = max(0.0, (next_run - now).total_seconds())
            logger.debug(
                "scan_scheduled",
                next_run_utc=next_run.isoformat(),
                sleep_seconds=sleep_seconds,
            )
            await asyncio.sleep(sleep_seconds)
            logger.info(f"Scheduled scan running (every {self._interval} minutes)")
            await self._run_once(trigger="scheduled")

    async def _run_once(self, trigger: str) -> None:
        try:
            await self._orchestrator.run(trigger=trigger)
        except ScanInProgressError:
            logger.info("scheduled_scan_skipped", trigger=trigger, reason="scan already in progress")
        except FatalScanError as exc:
            logger.error("Scan failed", trigger=trigger, error=str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Scan failed with unexpected error",
                trigger=trigger,
                error=str(exc),
                error_type=type(exc).__name__,
            )

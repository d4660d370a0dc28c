"""Minute-based trigger for capture sessions."""

from __future__ import annotations

import asyncio
import contextlib
from datetime import datetime
from typing import Callable, Optional

from .config import Config
from .logger import log
from .models import BannerIdentity

# Wake just after the minute turns so the tick sees the new minute.
MINUTE_BOUNDARY_SLACK_S = 0.05


class CaptureScheduler:
    """Fires a capture session when the wall-clock minute hits a banner slot.

    The X minute probes X then Y, the Y minute probes Y then X. A slot fires
    at most once per wall-clock minute, never while a session is in flight,
    and never within the minimum spacing of the previous trigger.
    """

    def __init__(self, orchestrator, settings: Config,
                 clock: Optional[Callable[[], datetime]] = None) -> None:
        self.orchestrator = orchestrator
        self.settings = settings
        self.clock = clock or datetime.now
        self._loop_task: Optional[asyncio.Task] = None
        self._session_task: Optional[asyncio.Task] = None
        self._last_slot: Optional[tuple] = None
        self._last_trigger: Optional[datetime] = None
        self.triggers = 0

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def session_in_flight(self) -> bool:
        if self._session_task is not None and not self._session_task.done():
            return True
        return bool(self.orchestrator.is_busy)

    def order_for_minute(self, minute: int) -> Optional[tuple[BannerIdentity, ...]]:
        if minute == self.settings.x_banner_minute:
            return (BannerIdentity.X, BannerIdentity.Y)
        if minute == self.settings.y_banner_minute:
            return (BannerIdentity.Y, BannerIdentity.X)
        return None

    def tick(self, now: Optional[datetime] = None) -> bool:
        """Check the clock once and start a session if a slot is due.

        Returns:
            True if a session was started.
        """
        now = now or self.clock()
        order = self.order_for_minute(now.minute)
        if order is None:
            return False

        slot = (now.date(), now.hour, now.minute)
        if slot == self._last_slot:
            return False

        if self.session_in_flight:
            log.warning(f"Minute {now.minute}: capture still in progress, not starting another")
            return False

        if self._last_trigger is not None:
            elapsed_ms = (now - self._last_trigger).total_seconds() * 1000
            if elapsed_ms < self.settings.min_time_between_captures_ms:
                log.info(f"Minute {now.minute}: last capture {elapsed_ms / 1000:.0f}s ago, skipping")
                return False

        self._last_slot = slot
        self._last_trigger = now
        self.triggers += 1
        log.info(f"Minute {now.minute}: starting capture ({order[0].value} first)")
        self._session_task = asyncio.create_task(
            self.orchestrator.run_session(order, reason=f"scheduled {order[0].value}")
        )
        return True

    def seconds_until_next_tick(self, now: Optional[datetime] = None) -> float:
        """Delay before the next tick, never past the start of the next minute."""
        now = now or self.clock()
        to_boundary = 60 - now.second - now.microsecond / 1e6 + MINUTE_BOUNDARY_SLACK_S
        return max(0.0, min(self.settings.scheduler_tick_seconds, to_boundary))

    async def _run(self) -> None:
        log.info(f"Scheduler started (X at :{self.settings.x_banner_minute:02d}, "
                 f"Y at :{self.settings.y_banner_minute:02d})")
        while True:
            try:
                self.tick()
            except Exception as e:
                log.error(f"Scheduler tick failed: {e}")
            await asyncio.sleep(self.seconds_until_next_tick())

    def start(self) -> None:
        if self.is_running:
            return
        self._loop_task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop ticking and cancel any in-flight session (its teardown still runs)."""
        for task in (self._loop_task, self._session_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._loop_task = None
        self._session_task = None
        log.info("Scheduler stopped")

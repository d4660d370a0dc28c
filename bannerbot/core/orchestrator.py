"""Capture session orchestration.

A session acquires a freshly navigated browser, probes for each expected
banner in order, dispatches the non-duplicate matches and always tears
the browser and the OCR engine down again, whatever happened.
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

from .config import Config
from .dedup import DedupCache
from .exceptions import ClassificationError, CaptureError, DispatchError, LifecycleError
from .logger import log
from .models import (
    BannerIdentity,
    CaptureAttempt,
    Fidelity,
    ProbeOutcome,
    SessionReport,
    SessionState,
)
from .overlay_handler import clear_overlays_before_capture, skip_ads
from ..automation.error_handler import Disposition, ErrorHandler
from ..chat.notifier import NotificationSink, NotifyEvent, NotifyKind
from ..utils.file_utils import read_banner_message
from ..utils.helpers import sleep_ms
from ..vision.screencap import capture_region

T = TypeVar("T")

DEFAULT_ORDER = (BannerIdentity.X, BannerIdentity.Y)


class CaptureOrchestrator:
    """Runs capture sessions; exactly one at a time."""

    def __init__(
        self,
        settings: Config,
        browser: Any,
        classifier: Any,
        sink: NotificationSink,
        dedup: Optional[DedupCache] = None,
        error_handler: Optional[ErrorHandler] = None,
    ) -> None:
        self.settings = settings
        self.browser = browser
        self.classifier = classifier
        self.sink = sink
        self.dedup = dedup or DedupCache(settings.hash_cache_size)
        self.error_handler = error_handler or ErrorHandler()

        self.state = SessionState.IDLE
        self.is_busy = False
        self.last_capture_time: Optional[float] = None
        self.last_sent_at: dict[BannerIdentity, Optional[float]] = {
            identity: None for identity in BannerIdentity
        }
        self.last_report: Optional[SessionReport] = None
        self.session_count = 0

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def _set_state(self, state: SessionState, report: Optional[SessionReport] = None,
                   details: Optional[dict[str, Any]] = None) -> None:
        self.state = state
        if report is not None:
            report.state = state
        log.log_session_state(state.value, details)

    def seconds_since_last_capture(self, now: Optional[float] = None) -> Optional[float]:
        if self.last_capture_time is None:
            return None
        return (now if now is not None else time.time()) - self.last_capture_time

    def within_min_spacing(self, now: Optional[float] = None) -> bool:
        """True if a capture was triggered less than the minimum spacing ago."""
        elapsed = self.seconds_since_last_capture(now)
        return elapsed is not None and elapsed * 1000 < self.settings.min_time_between_captures_ms

    async def run_session(
        self,
        order: Iterable[BannerIdentity] = DEFAULT_ORDER,
        reason: str = "scheduled",
    ) -> SessionReport:
        """Run one capture session probing banners in *order*.

        Never raises for component failures: they end up in the returned
        report and, when persistent, in an error notification.
        """
        report = SessionReport(reason=reason, order=tuple(order))
        if self.is_busy:
            log.warning(f"Capture already in progress, skipping {reason} session")
            report.skipped = True
            report.error = "capture already in progress"
            return report

        self.is_busy = True
        self.session_count += 1
        self.last_capture_time = time.time()
        self.last_report = report
        log.info(f"Starting {reason} capture session #{self.session_count} "
                 f"({' -> '.join(i.value for i in report.order)})")

        try:
            # Identity suppression is per session; only the hash history may be retained.
            if self.settings.dedup_reset_per_session:
                self.dedup.reset()
            else:
                self.dedup.reset_identities()

            self._set_state(SessionState.ACQUIRING_BROWSER, report)
            try:
                page = await self.browser.ensure_ready()
            except LifecycleError as e:
                await self._fail(report, e, "Failed to load the livestream")
                return report

            await clear_overlays_before_capture(page)
            await skip_ads(page, self.settings.ad_skip_settle_seconds)

            try:
                await self.classifier.initialize()
            except ClassificationError as e:
                await self._fail(report, e, "OCR engine unavailable")
                return report

            for identity in report.order:
                self._set_state(SessionState.probing(identity), report)
                report.outcomes[identity] = await self.probe_banner(identity)

            self._set_state(SessionState.DISPATCHING, report)
            await self._dispatch(report)

        except LifecycleError as e:
            await self._fail(report, e, "Browser could not be recovered")
        except Exception as e:
            log.exception(f"Unexpected error in capture session: {e}")
            await self._fail(report, e, "Capture session aborted")
        finally:
            self._set_state(SessionState.TEARING_DOWN)
            await self._release_resources()
            report.finished_at = time.time()
            if not report.failed:
                report.state = SessionState.IDLE
            self._set_state(SessionState.IDLE)
            self.is_busy = False
            log.info(f"Session finished in {report.duration:.1f}s: "
                     + ", ".join(f"{i.value}={o.summary()}" for i, o in report.outcomes.items()))

        return report

    async def probe_banner(self, identity: BannerIdentity) -> ProbeOutcome:
        """Poll the probe region until *identity* is on screen or attempts run out.

        Raises:
            LifecycleError: If a periodic health check needed a restart that failed.
        """
        settings = self.settings
        outcome = ProbeOutcome(identity=identity)
        every = settings.health_check_every_attempts

        for attempt in range(1, settings.ocr_max_attempts + 1):
            if every and attempt > 1 and (attempt - 1) % every == 0:
                await self.browser.maintain()

            # The page handle may change after a recovery restart.
            page = self.browser.page
            try:
                probe = await capture_region(page, settings.ocr_area, Fidelity.LOW,
                                             quality=settings.ocr_probe_quality)
                text, matched = await self.classifier.classify(probe)
            except (CaptureError, ClassificationError) as e:
                self._absorb(e, {"identity": identity.value, "attempt": attempt})
                await sleep_ms(settings.ocr_attempt_delay_ms)
                continue

            outcome.attempts.append(CaptureAttempt(settings.ocr_area, text, matched))
            log.log_capture_attempt(identity.value, attempt, matched.label if matched else None)

            if matched is identity:
                try:
                    image = await capture_region(page, settings.banner_area(identity), Fidelity.FULL)
                except CaptureError as e:
                    self._absorb(e, {"identity": identity.value, "attempt": attempt})
                    await sleep_ms(settings.ocr_attempt_delay_ms)
                    continue

                outcome.image = image
                outcome.label = identity.label
                if self.dedup.should_suppress_by_identity(identity, identity.label):
                    log.info(f"{identity.label} already sent, suppressing")
                    outcome.suppressed = True
                elif self.dedup.is_duplicate(image):
                    outcome.duplicate = True
                else:
                    log.success(f"{identity.label} captured after {attempt} attempt(s)")
                return outcome

            await sleep_ms(settings.ocr_attempt_delay_ms)

        outcome.error = f"no {identity.label} after {settings.ocr_max_attempts} attempts"
        log.warning(f"Giving up on {identity.label}: {outcome.error}")
        return outcome

    async def _dispatch(self, report: SessionReport) -> None:
        for identity in report.order:
            outcome = report.outcomes.get(identity)
            if outcome is None or not outcome.deliverable:
                continue

            announce = self.settings.announces(identity)
            caption = ""
            if announce:
                caption = read_banner_message(self.settings.get_banner_message_path(),
                                              self.settings.banner_message_fallback)
            event = NotifyEvent(kind=NotifyKind.BANNER, image=outcome.image, caption=caption,
                                ping_role=announce, identity=identity)
            try:
                await self.sink.notify(event)
            except DispatchError as e:
                # Never resent: a partial send may already be visible.
                self._absorb(e, {"identity": identity.value})
                outcome.error = str(e)
                continue

            outcome.sent = True
            self.dedup.record_sent(identity, outcome.label)
            self.last_sent_at[identity] = time.time()

    def _absorb(self, error: Exception, context: dict[str, Any]) -> None:
        """Record an error the session can live with; re-raise one it cannot."""
        record = self.error_handler.handle_error(error, context)
        if record["disposition"] == Disposition.ESCALATE.value:
            raise error

    async def _fail(self, report: SessionReport, error: Exception, summary: str) -> None:
        self.error_handler.handle_error(error, {"reason": report.reason, "state": self.state.value})
        report.error = f"{summary}: {error}"
        self._set_state(SessionState.FAILED, report, {"error": str(error)})
        await self.notify_error(report.error)

    async def notify_error(self, message: str) -> None:
        try:
            await self.sink.notify(NotifyEvent.error(message))
        except DispatchError as e:
            self.error_handler.handle_error(e, {"message": message})

    async def _release_resources(self) -> None:
        """Tear down the browser and terminate the OCR engine; both always run."""
        try:
            await self.browser.teardown()
        except Exception as e:
            log.error(f"Browser teardown failed: {e}")
        try:
            await self.classifier.terminate()
        except Exception as e:
            log.error(f"OCR engine termination failed: {e}")

    # ------------------------------------------------------------------
    # Manual operations
    # ------------------------------------------------------------------
    async def capture_single(self, identity: BannerIdentity) -> SessionReport:
        """Manual capture of one banner, honouring the minimum spacing."""
        if self.within_min_spacing():
            wait = self.settings.min_time_between_captures_ms / 1000 - (self.seconds_since_last_capture() or 0)
            report = SessionReport(reason=f"manual {identity.value}", order=(identity,), skipped=True)
            report.error = f"too soon after the last capture, wait {wait:.0f}s"
            return report
        return await self.run_session((identity,), reason=f"manual {identity.value}")

    async def run_page_command(self, action: Callable[[Any], Awaitable[T]]) -> T:
        """Run *action* against the live page, or a temporary browser when idle.

        Raises:
            LifecycleError: If no page could be acquired.
        """
        if self.is_busy:
            if not self.browser.is_alive():
                raise LifecycleError("A capture session is acquiring the browser")
            return await action(self.browser.page)

        self.is_busy = True
        try:
            page = await self.browser.ensure_ready()
            return await action(page)
        finally:
            try:
                await self.browser.teardown()
            finally:
                self.is_busy = False

    async def restart_browser(self) -> bool:
        """Verify a cold browser launch.

        Returns False while a session is running: the session owns the page and
        restarts it through its own health checks.
        """
        if self.is_busy:
            log.warning("Capture in progress, not restarting the browser")
            return False

        async def _noop(page: Any) -> bool:
            return page is not None

        return await self.run_page_command(_noop)

    async def capture_test_screenshots(self) -> dict[BannerIdentity, bytes]:
        """Full-fidelity capture of both banner areas without OCR."""

        async def _grab(page: Any) -> dict[BannerIdentity, bytes]:
            await clear_overlays_before_capture(page)
            return {
                identity: await capture_region(page, self.settings.banner_area(identity), Fidelity.FULL)
                for identity in BannerIdentity
            }

        return await self.run_page_command(_grab)

    async def shutdown(self) -> None:
        log.info("Shutting down capture orchestrator")
        await self._release_resources()
        self.state = SessionState.IDLE
        self.is_busy = False

    def get_status(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "busy": self.is_busy,
            "sessions": self.session_count,
            "last_capture_time": self.last_capture_time,
            "last_sent_at": dict(self.last_sent_at),
            "dedup_size": len(self.dedup),
            "errors": self.error_handler.get_error_summary()["total_errors"],
        }

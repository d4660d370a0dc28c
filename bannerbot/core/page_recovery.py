"""Health checks and targeted recovery for the livestream page.

Each detected issue maps to the cheapest remedy that can fix it. A full
browser restart is reserved for an invalid browser or page handle, or for
issues that survive targeted recovery.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .config import Config
from .exceptions import HealthCheckFailure, LifecycleError
from .logger import log
from .overlay_handler import get_video_status, has_error_page, is_context_lost
from ..utils.validation import is_target_url

# HTMLMediaElement.HAVE_CURRENT_DATA
READY_STATE_PLAYABLE = 2


class HealthIssue(Enum):
    """Failing health checks, in evaluation order."""
    BROWSER_UNAVAILABLE = "Browser or page not available"
    OFF_TARGET = "Not on target site"
    VIDEO_MISSING = "Video element not found"
    VIDEO_STALLED = "Video not working properly"
    ERROR_PAGE = "Error page detected"


class RecoveryStrategy(Enum):
    """Remedies, cheapest first."""
    RELOAD = "reload"
    START_VIDEO = "start_video"
    RENAVIGATE = "renavigate"
    FULL_RESTART = "full_restart"


ISSUE_STRATEGIES: Dict[HealthIssue, RecoveryStrategy] = {
    HealthIssue.ERROR_PAGE: RecoveryStrategy.RELOAD,
    HealthIssue.VIDEO_MISSING: RecoveryStrategy.START_VIDEO,
    HealthIssue.VIDEO_STALLED: RecoveryStrategy.START_VIDEO,
    HealthIssue.OFF_TARGET: RecoveryStrategy.RENAVIGATE,
    HealthIssue.BROWSER_UNAVAILABLE: RecoveryStrategy.FULL_RESTART,
}

STRATEGY_ORDER = [
    RecoveryStrategy.RELOAD,
    RecoveryStrategy.RENAVIGATE,
    RecoveryStrategy.START_VIDEO,
]


@dataclass
class HealthReport:
    """Outcome of one health check. ``issues`` lists every failing check."""
    issues: List[HealthIssue] = field(default_factory=list)
    checked_at: float = field(default_factory=time.time)

    @property
    def healthy(self) -> bool:
        return not self.issues

    def describe(self) -> List[str]:
        return [issue.value for issue in self.issues]


@dataclass
class RecoveryAttempt:
    """Represents a recovery attempt with details."""
    strategy: RecoveryStrategy
    success: bool
    duration: float
    error_message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


def strategies_for(issues: List[HealthIssue]) -> List[RecoveryStrategy]:
    """Map issues to the remedies to run, in execution order."""
    if HealthIssue.BROWSER_UNAVAILABLE in issues:
        return [RecoveryStrategy.FULL_RESTART]
    wanted = {ISSUE_STRATEGIES[issue] for issue in issues}
    return [strategy for strategy in STRATEGY_ORDER if strategy in wanted]


class PageRecoveryManager:
    """Runs health checks against a browser manager and applies remedies.

    The browser manager must expose ``page``, ``is_alive()``, ``reload()``,
    ``renavigate()``, ``start_video()`` and ``restart()``.
    """

    def __init__(self, browser: Any, settings: Config):
        self.browser = browser
        self.settings = settings
        self.recovery_history: List[RecoveryAttempt] = []
        self.last_report: Optional[HealthReport] = None
        self.consecutive_failures = 0

    async def check_health(self) -> HealthReport:
        """Evaluate every check and return all failing ones."""
        page = self.browser.page
        if not self.browser.is_alive() or page is None or page.is_closed():
            report = HealthReport([HealthIssue.BROWSER_UNAVAILABLE])
            self.last_report = report
            return report

        issues: List[HealthIssue] = []
        try:
            if not is_target_url(page.url, self.settings.livestream_url, self.settings.stream_domains):
                issues.append(HealthIssue.OFF_TARGET)

            status = await get_video_status(page)
            if not status.get("exists"):
                issues.append(HealthIssue.VIDEO_MISSING)
            elif not status.get("playing") and status.get("readyState", 0) < READY_STATE_PLAYABLE:
                issues.append(HealthIssue.VIDEO_STALLED)

            if await has_error_page(page):
                issues.append(HealthIssue.ERROR_PAGE)

        except Exception as e:
            if is_context_lost(e) or page.is_closed():
                log.warning(f"Health check lost the page: {e}")
                issues = [HealthIssue.BROWSER_UNAVAILABLE]
            else:
                log.error(f"Health check error: {e}")
                issues.append(HealthIssue.ERROR_PAGE)

        report = HealthReport(issues)
        self.last_report = report
        if report.healthy:
            log.debug("Health check passed")
        else:
            log.warning(f"Health issues detected: {', '.join(report.describe())}")
        return report

    async def recover(self, issues: List[HealthIssue]) -> bool:
        """Apply the targeted remedy for each issue.

        Raises:
            HealthCheckFailure: If a targeted remedy fails.
            LifecycleError: If a full restart was needed and failed.
        """
        if not issues:
            return True

        for strategy in strategies_for(issues):
            started = time.time()
            log.info(f"Recovery strategy: {strategy.value}")
            try:
                await self._execute(strategy)
            except LifecycleError as e:
                self._record(strategy, False, started, str(e))
                raise
            except Exception as e:
                self._record(strategy, False, started, str(e))
                self.consecutive_failures += 1
                raise HealthCheckFailure(issues, f"{strategy.value} failed: {e}") from e
            self._record(strategy, True, started)

        self.consecutive_failures = 0
        if self.settings.recovery_settle_seconds:
            await asyncio.sleep(self.settings.recovery_settle_seconds)
        return True

    async def maintain(self) -> HealthReport:
        """Check, recover, re-check, and fall back to a full restart.

        Raises:
            LifecycleError: If the full restart fails.
        """
        report = await self.check_health()
        if report.healthy:
            return report

        try:
            await self.recover(report.issues)
            if HealthIssue.BROWSER_UNAVAILABLE in report.issues:
                return await self.check_health()
            report = await self.check_health()
            if report.healthy:
                log.success("Targeted recovery resolved health issues")
                return report
            log.warning(f"Issues persist after recovery: {', '.join(report.describe())}")
        except HealthCheckFailure as e:
            log.warning(str(e))

        log.warning("Escalating to full browser restart")
        started = time.time()
        try:
            await self.browser.restart()
        except LifecycleError as e:
            self._record(RecoveryStrategy.FULL_RESTART, False, started, str(e))
            raise
        self._record(RecoveryStrategy.FULL_RESTART, True, started)
        return await self.check_health()

    async def _execute(self, strategy: RecoveryStrategy) -> None:
        if strategy is RecoveryStrategy.RELOAD:
            await self.browser.reload()
        elif strategy is RecoveryStrategy.RENAVIGATE:
            await self.browser.renavigate()
        elif strategy is RecoveryStrategy.START_VIDEO:
            await self.browser.start_video()
        else:
            await self.browser.restart()

    def _record(self, strategy: RecoveryStrategy, success: bool, started: float,
                error_message: Optional[str] = None) -> None:
        self.recovery_history.append(
            RecoveryAttempt(strategy, success, time.time() - started, error_message)
        )
        if len(self.recovery_history) > 50:
            self.recovery_history = self.recovery_history[-50:]

    def get_recovery_stats(self) -> Dict[str, Any]:
        """Get recovery statistics."""
        total = len(self.recovery_history)
        successful = sum(1 for attempt in self.recovery_history if attempt.success)
        return {
            "total_attempts": total,
            "successful_attempts": successful,
            "success_rate": (successful / total * 100) if total else 0.0,
            "consecutive_failures": self.consecutive_failures,
            "last_issues": self.last_report.describe() if self.last_report else [],
        }

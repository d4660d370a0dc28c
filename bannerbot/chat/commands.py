"""Operator commands served over the chat channel.

Every command is a request/reply: the handler returns the reply text and
never touches the schedule.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from ..automation.error_handler import ErrorHandler
from ..core.config import Config
from ..core.exceptions import BannerBotError
from ..core.logger import log
from ..core.models import BannerIdentity, SessionReport
from ..core.overlay_handler import detect_ads, format_video_status, get_video_status, skip_ads
from ..utils.file_utils import format_clock, read_banner_message
from ..utils.helpers import format_duration, truncate_message
from ..utils.performance import PerformanceMonitor
from .notifier import NotifyEvent, NotifyKind


class Command(Enum):
    CAPTURE_BANNERS = "capture-banners"
    TEST_X = "test-x"
    TEST_Y = "test-y"
    TEST_SINGLE_CAPTURE = "test-single-capture"
    TEST_ALTERNATING_CAPTURE = "test-alternating-capture"
    TEST_SCREENSHOT = "test-screenshot"
    STATUS = "status"
    BANNER_STATUS = "banner-status"
    RESTART_BROWSER = "restart-browser"
    START_VIDEO = "start-video"
    CHECK_VIDEO = "check-video"
    SKIP_ADS = "skip-ads"
    CHECK_ADS = "check-ads"
    EXTENSION_STATUS = "extension-status"
    BANNER_CONFIG = "banner-config"


def format_report(title: str, report: SessionReport) -> str:
    if report.skipped:
        return f"⏳ {title} skipped: {report.error}"
    if report.failed:
        return f"❌ {title} failed: {report.error}"
    lines = [f"{title} completed in {format_duration(report.duration)}!"]
    for identity in report.order:
        outcome = report.outcomes.get(identity)
        lines.append(f"{identity.value} Banner: {outcome.summary() if outcome else '🚫 Not captured'}")
    return "\n".join(lines)


class CommandRouter:
    """Maps command text to async handlers returning reply strings."""

    def __init__(self, settings: Config, orchestrator, scheduler, browser,
                 monitor: Optional[PerformanceMonitor] = None) -> None:
        self.settings = settings
        self.orchestrator = orchestrator
        self.scheduler = scheduler
        self.browser = browser
        self.monitor = monitor or PerformanceMonitor()
        self.handlers: Dict[Command, Callable[[], Awaitable[str]]] = self._load_handlers()

    @property
    def error_handler(self) -> ErrorHandler:
        return self.orchestrator.error_handler

    def parse(self, text: str) -> Optional[Command]:
        content = (text or "").strip()
        prefix = self.settings.command_prefix
        if not content.startswith(prefix):
            return None
        try:
            return Command(content[len(prefix):])
        except ValueError:
            return None

    async def handle(self, text: str) -> Optional[str]:
        """Run the command named by *text*; None when it is not a command."""
        command = self.parse(text)
        if command is None:
            return None

        log.info(f"Command received: {command.value}")
        try:
            reply = await self.handlers[command]()
        except BannerBotError as e:
            self.error_handler.handle_error(e, {"command": command.value})
            reply = f"❌ Error running {command.value}: {e}"
        except Exception as e:
            log.exception(f"Command {command.value} failed: {e}")
            reply = f"❌ Error running {command.value}: {e}"
        return truncate_message(reply)

    def _load_handlers(self) -> Dict[Command, Callable[[], Awaitable[str]]]:
        return {
            Command.CAPTURE_BANNERS: self._capture_banners,
            Command.TEST_X: lambda: self._capture_single(BannerIdentity.X),
            Command.TEST_Y: lambda: self._capture_single(BannerIdentity.Y),
            Command.TEST_SINGLE_CAPTURE: lambda: self._capture_single(BannerIdentity.X),
            Command.TEST_ALTERNATING_CAPTURE: self._alternating_capture,
            Command.TEST_SCREENSHOT: self._test_screenshot,
            Command.STATUS: self._status,
            Command.BANNER_STATUS: self._banner_status,
            Command.RESTART_BROWSER: self._restart_browser,
            Command.START_VIDEO: self._start_video,
            Command.CHECK_VIDEO: self._check_video,
            Command.SKIP_ADS: self._skip_ads,
            Command.CHECK_ADS: self._check_ads,
            Command.EXTENSION_STATUS: self._extension_status,
            Command.BANNER_CONFIG: self._banner_config,
        }

    # ------------------------------------------------------------------
    # Capture commands
    # ------------------------------------------------------------------
    async def _capture_banners(self) -> str:
        report = await self.orchestrator.run_session(reason="manual")
        return format_report("🎯 Banner capture", report)

    async def _capture_single(self, identity: BannerIdentity) -> str:
        report = await self.orchestrator.capture_single(identity)
        return format_report(f"📸 {identity.label.title()} capture", report)

    async def _alternating_capture(self) -> str:
        report = await self.orchestrator.run_session(
            (BannerIdentity.X, BannerIdentity.Y), reason="alternating test"
        )
        return format_report("🔄 Alternating capture test", report)

    async def _test_screenshot(self) -> str:
        images = await self.orchestrator.capture_test_screenshots()
        for identity, image in images.items():
            await self.orchestrator.sink.notify(NotifyEvent(
                kind=NotifyKind.BANNER,
                image=image,
                caption=f"🧪 Test screenshot of the {identity.value} banner area",
                identity=identity,
            ))
        return f"📸 Test screenshots sent ({len(images)} regions)"

    # ------------------------------------------------------------------
    # Status commands
    # ------------------------------------------------------------------
    async def _status(self) -> str:
        status = self.orchestrator.get_status()
        return "\n".join([
            "📊 **Bot Status**",
            f"Scheduler: {'running' if self.scheduler.is_running else 'stopped'}",
            f"Capture in progress: {'Yes' if status['busy'] else 'No'}",
            f"Sessions run: {status['sessions']}",
            f"Last capture: {format_clock(status['last_capture_time'])}",
            f"X Banner last sent: {format_clock(status['last_sent_at'][BannerIdentity.X])}",
            f"Y Banner last sent: {format_clock(status['last_sent_at'][BannerIdentity.Y])}",
            f"Memory: {self.monitor.format_memory()}",
            f"Recent errors: {status['errors']}",
        ])

    async def _banner_status(self) -> str:
        status = self.orchestrator.get_status()
        return "\n".join([
            "📊 **Banner Status**",
            f"Last Capture Time: {format_clock(status['last_capture_time'], 'None')}",
            f"Recent Hashes: {status['dedup_size']}",
            f"X Banner Last: {format_clock(status['last_sent_at'][BannerIdentity.X])}",
            f"Y Banner Last: {format_clock(status['last_sent_at'][BannerIdentity.Y])}",
            f"Schedule: X at :{self.settings.x_banner_minute:02d}, Y at :{self.settings.y_banner_minute:02d}",
            f"Bot Running: {'Yes' if self.scheduler.is_running else 'No'}",
        ])

    async def _extension_status(self) -> str:
        status = self.browser.extension_status()
        lines = ["🔌 **Extension Status**", f"📁 Path: {status['path']}"]
        if not status["exists"]:
            lines.append("❌ Extension directory not found")
        elif not status["manifest"]:
            lines.append("❌ manifest.json not found")
        else:
            lines += [
                "✅ manifest.json found",
                f"📦 Name: {status['name']}",
                f"📦 Version: {status['version']}",
                f"📦 Min Chrome: {status['min_chrome'] or 'Not specified'}",
            ]

        if self.browser.is_alive():
            loaded = self.browser.loaded_extensions()
            lines.append("✅ Extension loaded in browser" if loaded else "⚠️ Extension not detected in browser")
        else:
            lines.append("⚠️ Browser not running (launched per capture session)")
        return "\n".join(lines)

    async def _banner_config(self) -> str:
        lines = ["📋 **Banner Configuration Status**", ""]
        if self.settings.role_ping:
            lines += [f"✅ **Role ID Configured:** {self.settings.role_id}",
                      "📢 Role will be pinged when announced banners are sent", ""]
        else:
            lines += ["❌ **Role ID Not Configured**", "📝 Set ROLE_ID in your .env file", ""]

        path = self.settings.get_banner_message_path()
        message = read_banner_message(path, self.settings.banner_message_fallback)
        if os.path.isfile(path):
            lines += [f"✅ **Text File Found:** {self.settings.banner_message_file}",
                      f"📄 **Current Message:** \"{message}\"", ""]
        else:
            lines += [f"❌ **Text File Missing:** {self.settings.banner_message_file}",
                      "📝 Create this file to customize banner messages", ""]

        announced = [i.value for i in BannerIdentity if self.settings.announces(i)]
        lines.append(f"📢 Announced banners: {', '.join(announced) or 'none'}")
        lines.append("📤 **Example Message Format:**")
        preview = f"{self.settings.role_ping} {message}".strip()
        lines.append(f"```\n{preview}\n```")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Page commands
    # ------------------------------------------------------------------
    async def _restart_browser(self) -> str:
        if not await self.orchestrator.restart_browser():
            return "⏳ Capture in progress, the session will recover the browser itself"
        return "🔄 Browser restarted!"

    async def _start_video(self) -> str:
        async def _start(page: Any) -> bool:
            return await self.browser.start_video()

        started = await self.orchestrator.run_page_command(_start)
        return "▶️ Video started" if started else "⚠️ Video start attempted (playback not confirmed)"

    async def _check_video(self) -> str:
        async def _check(page: Any) -> str:
            status = await get_video_status(page)
            report = await self.browser.check_health()
            health = "✅ Healthy" if report.healthy else "⚠️ " + ", ".join(report.describe())
            return f"{format_video_status(status)}\n• Health: {health}"

        return await self.orchestrator.run_page_command(_check)

    async def _skip_ads(self) -> str:
        report = await self.orchestrator.run_page_command(skip_ads)
        if report.skipped:
            return f"⏩ Ad skip completed ({report.skipped} button(s) clicked)"
        return "⏩ Ad skip attempt completed! No skippable ads found."

    async def _check_ads(self) -> str:
        report = await self.orchestrator.run_page_command(detect_ads)
        return report.format()

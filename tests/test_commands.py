"""Operator command parsing and replies."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from bannerbot.automation.error_handler import ErrorHandler
from bannerbot.chat.commands import Command, CommandRouter
from bannerbot.core.exceptions import LifecycleError
from bannerbot.core.models import BannerIdentity, ProbeOutcome, SessionReport

X, Y = BannerIdentity.X, BannerIdentity.Y


def make_router(settings):
    orchestrator = MagicMock()
    orchestrator.error_handler = ErrorHandler()
    orchestrator.get_status.return_value = {
        "state": "idle",
        "busy": False,
        "sessions": 3,
        "last_capture_time": None,
        "last_sent_at": {X: None, Y: None},
        "dedup_size": 2,
        "errors": 0,
    }
    scheduler = MagicMock(is_running=True)
    browser = MagicMock()
    browser.is_alive.return_value = False
    monitor = MagicMock()
    monitor.format_memory.return_value = "120.0MB bot"
    return CommandRouter(settings, orchestrator, scheduler, browser, monitor=monitor), orchestrator


def sent_report(*identities):
    report = SessionReport(reason="manual", order=identities)
    for identity in identities:
        report.outcomes[identity] = ProbeOutcome(identity=identity, image=b"png", label=identity.label, sent=True)
    return report


def test_parse(settings):
    router, _ = make_router(settings)

    assert router.parse("!status") is Command.STATUS
    assert router.parse("  !test-x ") is Command.TEST_X
    assert router.parse("status") is None
    assert router.parse("!unknown") is None
    assert router.parse("hello there") is None


@pytest.mark.asyncio
async def test_non_command_gets_no_reply(settings):
    router, _ = make_router(settings)

    assert await router.handle("just chatting") is None


@pytest.mark.asyncio
async def test_banner_status(settings):
    router, _ = make_router(settings)

    reply = await router.handle("!banner-status")

    assert "Recent Hashes: 2" in reply
    assert "X Banner Last: Never" in reply
    assert "Bot Running: Yes" in reply


@pytest.mark.asyncio
async def test_status_includes_memory(settings):
    router, _ = make_router(settings)

    reply = await router.handle("!status")

    assert "Scheduler: running" in reply
    assert "120.0MB bot" in reply


@pytest.mark.asyncio
async def test_alternating_capture_reports_each_banner(settings):
    router, orchestrator = make_router(settings)
    report = sent_report(X, Y)
    report.outcomes[Y] = ProbeOutcome(identity=Y, error="no Y BANNER after 10 attempts")
    orchestrator.run_session = AsyncMock(return_value=report)

    reply = await router.handle("!test-alternating-capture")

    orchestrator.run_session.assert_awaited_once_with((X, Y), reason="alternating test")
    assert "X Banner: ✅ Captured" in reply
    assert "Y Banner: 🚫 Not captured" in reply


@pytest.mark.asyncio
async def test_single_capture_uses_manual_path(settings):
    router, orchestrator = make_router(settings)
    orchestrator.capture_single = AsyncMock(return_value=sent_report(Y))

    reply = await router.handle("!test-y")

    orchestrator.capture_single.assert_awaited_once_with(Y)
    assert "✅ Captured" in reply


@pytest.mark.asyncio
async def test_lifecycle_errors_become_replies(settings):
    router, orchestrator = make_router(settings)
    orchestrator.run_page_command = AsyncMock(side_effect=LifecycleError("Navigation failed"))

    reply = await router.handle("!check-ads")

    assert reply.startswith("❌")
    assert "Navigation failed" in reply
    assert orchestrator.error_handler.get_error_summary()["total_errors"] == 1


@pytest.mark.asyncio
async def test_banner_config_previews_message(settings, tmp_path):
    (tmp_path / "banner-message.txt").write_text("Go go go", encoding="utf-8")
    router, _ = make_router(settings)

    reply = await router.handle("!banner-config")

    assert "Role ID Configured" in reply
    assert "<@&5678> Go go go" in reply


@pytest.mark.asyncio
async def test_extension_status_without_browser(settings, tmp_path):
    router, _ = make_router(settings)
    router.browser.extension_status.return_value = {
        "path": str(tmp_path), "exists": False, "manifest": False,
        "name": None, "version": None, "min_chrome": None,
    }

    reply = await router.handle("!extension-status")

    assert "Extension directory not found" in reply
    assert "Browser not running" in reply


@pytest.mark.asyncio
async def test_restart_is_deferred_while_capturing(settings):
    router, orchestrator = make_router(settings)
    orchestrator.restart_browser = AsyncMock(return_value=False)

    reply = await router.handle("!restart-browser")

    assert "Capture in progress" in reply
    orchestrator.restart_browser.assert_awaited_once()

"""Health checks and targeted recovery."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from bannerbot.core.exceptions import LifecycleError
from bannerbot.core.page_recovery import (
    HealthIssue,
    PageRecoveryManager,
    RecoveryStrategy,
    strategies_for,
)

from conftest import FakePage


def make_browser(page):
    browser = MagicMock()
    browser.page = page
    browser.is_alive = MagicMock(return_value=page is not None and not page.is_closed())
    browser.reload = AsyncMock()
    browser.renavigate = AsyncMock()
    browser.start_video = AsyncMock(return_value=True)
    browser.restart = AsyncMock()
    return browser


@pytest.fixture
def live_page(settings):
    return FakePage(url=settings.livestream_url + "&t=30s")


class TestCheckHealth:

    @pytest.mark.asyncio
    async def test_healthy_page(self, settings, live_page):
        manager = PageRecoveryManager(make_browser(live_page), settings)

        report = await manager.check_health()

        assert report.healthy
        assert report.issues == []

    @pytest.mark.asyncio
    async def test_reports_every_failing_check(self, settings, live_page):
        live_page.url = "https://example.com/elsewhere"
        live_page.video_status = {"exists": False}
        live_page.error_page = True
        manager = PageRecoveryManager(make_browser(live_page), settings)

        report = await manager.check_health()

        assert report.issues == [HealthIssue.OFF_TARGET, HealthIssue.VIDEO_MISSING, HealthIssue.ERROR_PAGE]

    @pytest.mark.asyncio
    async def test_paused_unbuffered_video_is_stalled(self, settings, live_page):
        live_page.video_status = {"exists": True, "playing": False, "paused": True, "readyState": 1}
        manager = PageRecoveryManager(make_browser(live_page), settings)

        report = await manager.check_health()

        assert report.issues == [HealthIssue.VIDEO_STALLED]

    @pytest.mark.asyncio
    async def test_paused_but_buffered_video_is_ready(self, settings, live_page):
        live_page.video_status = {"exists": True, "playing": False, "paused": True, "readyState": 4}
        manager = PageRecoveryManager(make_browser(live_page), settings)

        assert (await manager.check_health()).healthy

    @pytest.mark.asyncio
    async def test_closed_page_short_circuits(self, settings, live_page):
        live_page.closed = True
        manager = PageRecoveryManager(make_browser(live_page), settings)

        report = await manager.check_health()

        assert report.issues == [HealthIssue.BROWSER_UNAVAILABLE]


class TestRecover:

    @pytest.mark.asyncio
    async def test_missing_video_restarts_playback_only(self, settings, live_page):
        browser = make_browser(live_page)
        manager = PageRecoveryManager(browser, settings)

        assert await manager.recover([HealthIssue.VIDEO_MISSING])

        browser.start_video.assert_awaited_once()
        browser.restart.assert_not_awaited()
        browser.reload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unavailable_browser_gets_full_restart(self, settings):
        browser = make_browser(None)
        manager = PageRecoveryManager(browser, settings)

        await manager.recover([HealthIssue.BROWSER_UNAVAILABLE, HealthIssue.VIDEO_MISSING])

        browser.restart.assert_awaited_once()
        browser.start_video.assert_not_awaited()

    def test_strategy_order(self):
        issues = [HealthIssue.VIDEO_STALLED, HealthIssue.OFF_TARGET, HealthIssue.ERROR_PAGE]

        assert strategies_for(issues) == [
            RecoveryStrategy.RELOAD,
            RecoveryStrategy.RENAVIGATE,
            RecoveryStrategy.START_VIDEO,
        ]


class TestMaintain:

    @pytest.mark.asyncio
    async def test_persistent_issue_escalates_to_restart(self, settings, live_page):
        live_page.error_page = True
        browser = make_browser(live_page)
        manager = PageRecoveryManager(browser, settings)

        await manager.maintain()

        browser.reload.assert_awaited_once()
        browser.restart.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_remedy_escalates_to_restart(self, settings, live_page):
        live_page.video_status = {"exists": False}
        browser = make_browser(live_page)
        browser.start_video.side_effect = RuntimeError("Execution context was destroyed")
        manager = PageRecoveryManager(browser, settings)

        await manager.maintain()

        browser.restart.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_restart_raises(self, settings, live_page):
        live_page.error_page = True
        browser = make_browser(live_page)
        browser.restart.side_effect = LifecycleError("launch failed")
        manager = PageRecoveryManager(browser, settings)

        with pytest.raises(LifecycleError):
            await manager.maintain()

        assert manager.get_recovery_stats()["successful_attempts"] == 1

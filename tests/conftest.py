"""Shared fixtures and fakes for the banner bot tests."""

from typing import Any, List, Optional
from unittest.mock import AsyncMock

import pytest

from bannerbot.core.config import Config
from bannerbot.core.exceptions import DispatchError, LifecycleError
from bannerbot.core.overlay_handler import DETECT_ADS_JS, ERROR_PAGE_JS, VIDEO_STATUS_JS

PNG_BANNER = b"\x89PNG\r\n\x1a\nX-banner-pixels"


@pytest.fixture
def settings(tmp_path):
    """Configuration with every delay zeroed and the caption file in a temp dir."""
    return Config(
        _env_file=None,
        discord_token="test-token",
        channel_id=1234,
        role_id="5678",
        livestream_url="https://www.youtube.com/watch?v=live123",
        x_banner_minute=1,
        y_banner_minute=31,
        min_time_between_captures_ms=0,
        ocr_attempt_delay_ms=0,
        ocr_max_attempts=10,
        health_check_every_attempts=0,
        page_settle_seconds=0,
        ad_skip_settle_seconds=0,
        recovery_settle_seconds=0,
        navigation_retry_delay_s=0,
        browser_launch_retries=0,
        banner_message_file=str(tmp_path / "banner-message.txt"),
        logs_dir=str(tmp_path / "logs"),
    )


class FakePage:
    """Stands in for a Playwright page."""

    def __init__(self, url: str = "about:blank", full_image: bytes = PNG_BANNER):
        self.url = url
        self.full_image = full_image
        self.full_images: List[bytes] = []
        self.closed = False
        self.screenshots: List[dict] = []
        self.goto_calls: List[dict] = []
        self.goto_errors: List[Exception] = []
        self.video_status = {"exists": True, "playing": True, "paused": False,
                             "currentTime": 12.0, "duration": -1, "readyState": 4}
        self.error_page = False
        self.skip_buttons: List[dict] = []
        self.skip_clicks = 0
        self.evaluated: List[str] = []

    def is_closed(self) -> bool:
        return self.closed

    async def close(self) -> None:
        self.closed = True

    async def screenshot(self, **options: Any) -> bytes:
        self.screenshots.append(options)
        if options.get("type") == "jpeg":
            return f"probe-{len(self.screenshots)}".encode()
        if self.full_images:
            return self.full_images.pop(0)
        return self.full_image

    async def goto(self, url: str, wait_until: str = "load", timeout: int = 0) -> None:
        self.goto_calls.append({"url": url, "wait_until": wait_until, "timeout": timeout})
        if self.goto_errors:
            raise self.goto_errors.pop(0)
        self.url = url

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.evaluated.append(script)
        if script == DETECT_ADS_JS:
            return {"skipButtons": list(self.skip_buttons), "ads": []}
        if script == VIDEO_STATUS_JS:
            return self.video_status
        if script == ERROR_PAGE_JS:
            return self.error_page
        return 0

    async def query_selector(self, selector: str) -> Optional["FakeButton"]:
        if any(b["selector"] == selector for b in self.skip_buttons):
            return FakeButton(self)
        return None

    def count(self, image_type: str) -> int:
        return sum(1 for shot in self.screenshots if shot.get("type") == image_type)


class FakeButton:
    def __init__(self, page: FakePage):
        self.page = page

    async def click(self, timeout: int = 0) -> None:
        self.page.skip_clicks += 1
        self.page.skip_buttons.clear()


class FakeClassifier:
    """Returns scripted identities, one per probe."""

    def __init__(self, identities: Optional[list] = None):
        self.identities = list(identities or [])
        self.initialize_calls = 0
        self.terminate_calls = 0

    def script(self, identities: list) -> None:
        self.identities = list(identities)

    async def initialize(self):
        self.initialize_calls += 1
        return self

    async def classify(self, image_bytes: bytes):
        identity = self.identities.pop(0) if self.identities else None
        return (identity.label if identity else ""), identity

    async def terminate(self) -> None:
        self.terminate_calls += 1


class FakeSink:
    def __init__(self, fail: bool = False):
        self.events: list = []
        self.fail = fail

    async def notify(self, event) -> None:
        if self.fail:
            raise DispatchError("channel rejected message")
        self.events.append(event)


class FakeBrowserManager:
    """Minimal browser lifecycle double with call counters."""

    def __init__(self, page: Optional[FakePage] = None, fail: bool = False):
        self.template_page = page or FakePage(url="https://www.youtube.com/watch?v=live123")
        self.page: Optional[FakePage] = None
        self.fail = fail
        self.ensure_ready_calls = 0
        self.teardown_calls = 0
        self.maintain = AsyncMock()
        self.restart = AsyncMock()

    def is_alive(self) -> bool:
        return self.page is not None and not self.page.is_closed()

    async def ensure_ready(self):
        self.ensure_ready_calls += 1
        if self.fail:
            raise LifecycleError("Navigation failed after 3 attempts: timeout")
        self.page = self.template_page
        return self.page

    async def teardown(self) -> None:
        self.teardown_calls += 1
        self.page = None


@pytest.fixture
def page():
    return FakePage(url="https://www.youtube.com/watch?v=live123")


@pytest.fixture
def browser(page):
    return FakeBrowserManager(page)


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def sink():
    return FakeSink()

"""Browser lifecycle management for the livestream page.

One persistent Chromium context with exactly one page. The manager is
created once and the browser itself may be launched, torn down and
relaunched many times; every capture session ends with ``teardown()``.
"""

import asyncio
import os
import time
from pathlib import Path
from typing import Any, Optional

from playwright.async_api import BrowserContext, Page, Playwright, async_playwright

from .config import Config, config
from .exceptions import LifecycleError
from .logger import log
from .overlay_handler import dismiss_overlays, skip_ads, start_video
from .page_recovery import HealthIssue, HealthReport, PageRecoveryManager
from ..utils.file_utils import load_json
from ..utils.helpers import retry_with_backoff
from ..utils.validation import is_target_url

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-breakpad",
    "--disable-component-update",
    "--disable-default-apps",
    "--disable-sync",
    "--disable-translate",
    "--disable-features=Translate,MediaRouter,OptimizationHints",
    "--metrics-recording-only",
    "--no-first-run",
    "--no-default-browser-check",
    "--mute-audio",
    "--autoplay-policy=no-user-gesture-required",
]

STEALTH_INIT_JS = """
Object.defineProperty(navigator, 'webdriver', {get: () => undefined});
Object.defineProperty(navigator, 'languages', {get: () => ['en-US', 'en']});
Object.defineProperty(navigator, 'plugins', {get: () => [1, 2, 3, 4, 5]});
Object.defineProperty(navigator, 'hardwareConcurrency', {get: () => 8});
window.chrome = window.chrome || {runtime: {}};
"""

EXTRA_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Upgrade-Insecure-Requests": "1",
}


class BrowserLifecycleManager:
    """Launches, navigates, checks and tears down the livestream browser."""

    def __init__(self, settings: Optional[Config] = None) -> None:
        self.settings = settings or config
        self._playwright: Optional[Playwright] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.created_at: Optional[float] = None
        self._alive = False
        self._lock = asyncio.Lock()
        self.recovery = PageRecoveryManager(self, self.settings)
        self.restart_count = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def is_alive(self) -> bool:
        """True while the context is open and the page is usable."""
        if not self._alive or self.context is None or self.page is None:
            return False
        try:
            return not self.page.is_closed()
        except Exception:
            return False

    @property
    def uptime(self) -> float:
        return time.time() - self.created_at if self.created_at else 0.0

    async def ensure_ready(self) -> Page:
        """Return a navigated page, launching the browser if needed.

        Raises:
            LifecycleError: After all launch attempts fail. Partially created
                resources are released before raising.
        """
        async with self._lock:
            if self.is_alive():
                return self.page

            try:
                await retry_with_backoff(
                    self._start,
                    max_retries=self.settings.browser_launch_retries,
                    base_delay=self.settings.navigation_retry_delay_s,
                    exceptions=(LifecycleError,),
                )
            except LifecycleError:
                await self.teardown()
                raise
            return self.page

    async def _start(self) -> None:
        try:
            await self._launch_browser()
            await self._navigate()
            await self._prepare_page()
        except LifecycleError:
            await self.teardown()
            raise
        except Exception as e:
            await self.teardown()
            raise LifecycleError(f"Browser startup failed: {e}") from e

    async def _launch_browser(self) -> None:
        log.info("Launching browser...")
        args = list(CHROMIUM_ARGS)
        extension_path = self._extension_path()
        if (extension_path / "manifest.json").is_file():
            args += [
                f"--disable-extensions-except={extension_path}",
                f"--load-extension={extension_path}",
            ]
            log.info(f"Loading ad-blocking extension from {extension_path}")
        else:
            log.warning(f"Extension not found at {extension_path}, continuing without it")

        os.makedirs(self.settings.browser_user_data_dir, exist_ok=True)
        self._playwright = await async_playwright().start()
        self.context = await self._playwright.chromium.launch_persistent_context(
            user_data_dir=self.settings.browser_user_data_dir,
            headless=self.settings.browser_headless,
            args=args,
            ignore_default_args=["--enable-automation", "--disable-extensions"],
            viewport={"width": self.settings.viewport_width, "height": self.settings.viewport_height},
            user_agent=self.settings.user_agent,
            locale="en-US",
        )
        self.context.on("close", self._on_context_close)
        self._alive = True
        self.created_at = time.time()

        # Persistent contexts open with a blank tab; keep a single page.
        pages = list(self.context.pages)
        self.page = pages[0] if pages else await self.context.new_page()
        for extra in pages[1:]:
            await extra.close()
        await self._apply_stealth(self.page)
        log.success("Browser launched")

    def _on_context_close(self, *_: Any) -> None:
        self._alive = False
        log.warning("Browser context closed")

    async def _apply_stealth(self, page: Page) -> None:
        await page.add_init_script(STEALTH_INIT_JS)
        await page.set_extra_http_headers(EXTRA_HEADERS)

    async def _new_page(self) -> Page:
        if self.context is None:
            raise LifecycleError("No browser context")
        if self.page is not None and not self.page.is_closed():
            await self.page.close()
        self.page = await self.context.new_page()
        await self._apply_stealth(self.page)
        return self.page

    def navigation_plan(self) -> list[tuple[str, int]]:
        """``(wait_until, timeout_ms)`` per attempt: strict first, then lenient."""
        plan = [("networkidle", self.settings.navigation_timeout_strict_ms)]
        plan += [("domcontentloaded", self.settings.navigation_timeout_lenient_ms)] * (
            self.settings.navigation_attempts - 1
        )
        return plan

    async def _navigate(self) -> None:
        url = self.settings.livestream_url
        plan = self.navigation_plan()
        last_error: Optional[Exception] = None

        for attempt, (wait_until, timeout_ms) in enumerate(plan, start=1):
            try:
                if attempt > 1:
                    await asyncio.sleep(self.settings.navigation_retry_delay_s)
                    if self.page is None or self.page.is_closed():
                        await self._new_page()
                log.info(f"Navigating to {url} (attempt {attempt}/{len(plan)}, wait_until={wait_until})")
                await self.page.goto(url, wait_until=wait_until, timeout=timeout_ms)
            except LifecycleError:
                raise
            except Exception as e:
                last_error = e
                log.warning(f"Navigation attempt {attempt} failed: {e}")
                continue

            current_url = self.page.url
            if is_target_url(current_url, url, self.settings.stream_domains):
                log.success(f"Page loaded: {current_url}")
                return
            last_error = LifecycleError(f"Landed on unexpected URL {current_url}")
            log.warning(str(last_error))

        raise LifecycleError(f"Navigation failed after {len(plan)} attempts: {last_error}")

    async def _prepare_page(self) -> None:
        await dismiss_overlays(self.page)
        await skip_ads(self.page, self.settings.ad_skip_settle_seconds)
        await start_video(self.page, self.settings.video_wait_timeout_ms)
        await asyncio.sleep(self.settings.page_settle_seconds)

    async def teardown(self) -> None:
        """Close page, context and driver. Safe to call repeatedly."""
        page, context, driver = self.page, self.context, self._playwright
        self.page = self.context = self._playwright = None
        self._alive = False
        self.created_at = None

        if page is not None:
            try:
                if not page.is_closed():
                    await page.close()
            except Exception as e:
                log.debug(f"Error closing page: {e}")
        if context is not None:
            try:
                await context.close()
            except Exception as e:
                log.debug(f"Error closing browser context: {e}")
        if driver is not None:
            try:
                await driver.stop()
            except Exception as e:
                log.debug(f"Error stopping playwright: {e}")
            log.info("Browser closed")

    async def restart(self) -> Page:
        """Full teardown and relaunch.

        Raises:
            LifecycleError: If the relaunch fails.
        """
        log.info("Restarting browser...")
        self.restart_count += 1
        await self.teardown()
        return await self.ensure_ready()

    # ------------------------------------------------------------------
    # Targeted remedies
    # ------------------------------------------------------------------
    def _require_page(self) -> Page:
        if not self.is_alive():
            raise LifecycleError("Browser or page not available")
        return self.page

    async def reload(self) -> None:
        page = self._require_page()
        log.info("Reloading page")
        await page.reload(wait_until="domcontentloaded", timeout=self.settings.reload_timeout_ms)
        await start_video(page, self.settings.video_wait_timeout_ms)

    async def renavigate(self) -> None:
        page = self._require_page()
        log.info("Re-navigating to livestream")
        await page.goto(
            self.settings.livestream_url,
            wait_until="domcontentloaded",
            timeout=self.settings.renavigate_timeout_ms,
        )
        await dismiss_overlays(page)
        await start_video(page, self.settings.video_wait_timeout_ms)

    async def start_video(self) -> bool:
        page = self._require_page()
        return await start_video(page, self.settings.video_wait_timeout_ms)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------
    async def check_health(self) -> HealthReport:
        return await self.recovery.check_health()

    async def recover(self, issues: list[HealthIssue]) -> bool:
        return await self.recovery.recover(issues)

    async def maintain(self) -> HealthReport:
        return await self.recovery.maintain()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def _extension_path(self) -> Path:
        return Path(self.settings.extension_dir).resolve()

    def extension_status(self) -> dict[str, Any]:
        """Whether the ad-blocking extension is present on disk."""
        path = self._extension_path()
        manifest_path = path / "manifest.json"
        status: dict[str, Any] = {
            "path": str(path),
            "exists": path.is_dir(),
            "manifest": manifest_path.is_file(),
            "name": None,
            "version": None,
            "min_chrome": None,
        }
        if status["manifest"]:
            manifest = load_json(str(manifest_path)) or {}
            status["name"] = manifest.get("name")
            status["version"] = manifest.get("version")
            status["min_chrome"] = manifest.get("minimum_chrome_version")
        return status

    def loaded_extensions(self) -> list[str]:
        """Extension URLs registered in the live context, if any."""
        if self.context is None:
            return []
        targets = list(self.context.service_workers) + list(self.context.background_pages)
        return [t.url for t in targets if t.url.startswith("chrome-extension://")]

    def get_status(self) -> dict[str, Any]:
        return {
            "alive": self.is_alive(),
            "url": self.page.url if self.is_alive() else None,
            "uptime": self.uptime,
            "restarts": self.restart_count,
        }

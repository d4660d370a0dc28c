"""Best-effort page hygiene for the livestream player.

Consent and overlay dismissal, ad skipping, video start and error-page
detection. Everything here is heuristic: when nothing matches the
functions quietly do nothing. The video player subtree is always
excluded so the stream is never paused or seeked by accident.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .logger import log

PLAYER_SCOPES = [".html5-video-player", ".ytp-player", "video"]

OVERLAY_SELECTORS = [
    '[role="dialog"]:not([data-video-id])',
    ".modal:not(.html5-video-player)",
    ".popup:not(.ytp-player)",
    ".overlay:not(.ytp-video-container)",
    ".ytp-popup",
    ".ytp-pause-overlay",
    ".ytp-gradient-top",
    ".ytp-gradient-bottom",
    '[class*="consent" i]',
    '[class*="cookie" i]',
    '[class*="privacy" i]',
    '[class*="gdpr" i]',
    '[class*="paywall" i]',
]

BACKDROP_SELECTORS = [".backdrop", ".modal-backdrop", ".overlay-backdrop"]

# Player chrome hidden right before probing so it never covers the banner.
CAPTURE_CLEAR_SELECTORS = [
    ".ytp-popup",
    ".ytp-pause-overlay",
    ".ytp-gradient-top",
    ".ytp-gradient-bottom",
    ".ytp-chrome-top",
    ".ytp-chrome-bottom",
]

AFFIRMATIVE_WORDS = ["accept", "agree", "continue", "ok", "allow"]

SKIP_BUTTON_SELECTORS = [
    ".ytp-ad-skip-button",
    ".ytp-ad-skip-button-modern",
    ".ytp-skip-ad-button",
    'button[aria-label*="Skip" i]',
    'button[title*="Skip" i]',
]

AD_SELECTORS = [
    ".ytp-ad-overlay",
    ".ytp-ad-overlay-container",
    ".ytp-ad-overlay-slot",
    ".ytp-ad-feedback-dialog-container",
    '[class*="ytp-ad"]',
    '[class*="videoAd" i]',
    '[class*="displayAd" i]',
    '[class*="sponsored" i]',
    "[data-ad]",
    "[data-ads]",
]

PLAY_BUTTON_SELECTORS = [
    ".ytp-large-play-button",
    ".ytp-play-button",
    'button[aria-label*="Play" i]',
    'button[title*="Play" i]',
    '[class*="play-button" i]',
]

ERROR_PHRASES = [
    "something went wrong",
    "something's wrong",
    "sorry",
    "unavailable",
    "try again",
    "error occurred",
]

ERROR_CONTAINER_SELECTORS = [
    'div[class*="error" i]',
    'div[class*="problem" i]',
    'div[class*="wrong" i]',
    'div[class*="sorry" i]',
    'div[class*="unavailable" i]',
]

DISMISS_OVERLAYS_JS = """
({overlays, backdrops, words, scopes}) => {
    const inPlayer = (el) => scopes.some((s) => el.closest(s));
    let hidden = 0;
    let clicked = 0;
    for (const selector of overlays) {
        for (const el of document.querySelectorAll(selector)) {
            if (inPlayer(el)) continue;
            el.style.display = 'none';
            el.style.visibility = 'hidden';
            el.style.opacity = '0';
            el.style.pointerEvents = 'none';
            hidden++;
        }
    }
    for (const selector of backdrops) {
        for (const el of document.querySelectorAll(selector)) {
            if (inPlayer(el)) continue;
            el.style.display = 'none';
            hidden++;
        }
    }
    for (const button of document.querySelectorAll('button')) {
        if (inPlayer(button)) continue;
        const text = (button.textContent || '').trim().toLowerCase();
        const aria = (button.getAttribute('aria-label') || '').toLowerCase();
        const matches = words.some((w) => {
            const re = new RegExp('\\\\b' + w + '\\\\b');
            return re.test(text) || re.test(aria);
        });
        if (matches) {
            button.click();
            clicked++;
        }
    }
    for (const el of document.querySelectorAll('[style*="position: fixed"]')) {
        const rect = el.getBoundingClientRect();
        if (rect.width > 200 && rect.height > 100 && !inPlayer(el)) {
            el.style.display = 'none';
            hidden++;
        }
    }
    document.body.style.overflow = 'auto';
    document.documentElement.style.overflow = 'auto';
    return {hidden, clicked};
}
"""

CLEAR_FOR_CAPTURE_JS = """
(selectors) => {
    let hidden = 0;
    for (const selector of selectors) {
        for (const el of document.querySelectorAll(selector)) {
            el.style.display = 'none';
            el.style.visibility = 'hidden';
            el.style.opacity = '0';
            el.style.pointerEvents = 'none';
            hidden++;
        }
    }
    for (const el of document.querySelectorAll('[style*="position: fixed"]')) {
        const rect = el.getBoundingClientRect();
        if (rect.width > 200 && rect.height > 100 && !el.querySelector('video')) {
            el.style.display = 'none';
            hidden++;
        }
    }
    return hidden;
}
"""

DETECT_ADS_JS = """
({skipSelectors, adSelectors}) => {
    const inView = (r) => r.top >= 0 && r.left >= 0 &&
        r.bottom <= window.innerHeight && r.right <= window.innerWidth;
    const skipButtons = [];
    for (const selector of skipSelectors) {
        for (const el of document.querySelectorAll(selector)) {
            const r = el.getBoundingClientRect();
            if (r.width > 0 && r.height > 0 && inView(r)) {
                skipButtons.push({selector, text: (el.textContent || '').trim().slice(0, 50), visible: true});
            }
        }
    }
    const ads = [];
    for (const selector of adSelectors) {
        for (const el of document.querySelectorAll(selector)) {
            const r = el.getBoundingClientRect();
            if (r.width > 0 && r.height > 0) {
                ads.push({selector, text: (el.textContent || '').trim().slice(0, 50), visible: inView(r)});
            }
        }
    }
    return {skipButtons, ads};
}
"""

PLAY_VIDEO_JS = """
async () => {
    const video = document.querySelector('video');
    if (!video) return false;
    try {
        await video.play();
        return !video.paused;
    } catch (e) {
        return false;
    }
}
"""

VIDEO_STATUS_JS = """
() => {
    const video = document.querySelector('video');
    if (!video) return {exists: false, playing: false, paused: false, currentTime: 0, duration: 0, readyState: 0};
    return {
        exists: true,
        playing: !video.paused,
        paused: video.paused,
        currentTime: video.currentTime,
        duration: isFinite(video.duration) ? video.duration : -1,
        readyState: video.readyState,
    };
}
"""

ERROR_PAGE_JS = """
({selectors, phrases}) => {
    for (const selector of selectors) {
        for (const el of document.querySelectorAll(selector)) {
            const text = (el.innerText || '').toLowerCase();
            if (phrases.some((p) => text.includes(p))) return true;
        }
    }
    const body = (document.body && document.body.innerText || '').toLowerCase();
    return ['something went wrong', "something's wrong", 'error occurred', 'try again later']
        .some((p) => body.includes(p));
}
"""

_CONTEXT_LOST_MARKERS = (
    "Execution context was destroyed",
    "Target closed",
    "Target page, context or browser has been closed",
    "Protocol error",
)


def is_context_lost(exc: BaseException) -> bool:
    """True if *exc* means the page navigated away or was closed underneath us."""
    message = str(exc)
    return any(marker in message for marker in _CONTEXT_LOST_MARKERS)


@dataclass
class AdReport:
    """Ad elements found on the page."""

    skip_buttons: List[Dict[str, Any]] = field(default_factory=list)
    ads: List[Dict[str, Any]] = field(default_factory=list)
    skipped: int = 0

    @property
    def has_ads(self) -> bool:
        return bool(self.ads or self.skip_buttons)

    @property
    def visible_ads(self) -> int:
        return sum(1 for ad in self.ads if ad.get("visible"))

    def format(self, limit: int = 5) -> str:
        """Chat-ready summary."""
        lines = [
            "🛡️ **Ad Detection Results:**",
            f"• Total ads detected: {len(self.ads)}",
            f"• Visible ads: {self.visible_ads}",
            f"• Skip buttons: {len(self.skip_buttons)}",
            f"• Has ads: {'❌ Yes' if self.has_ads else '✅ No'}",
        ]
        if self.ads:
            lines.append("")
            lines.append("**Ad Details:**")
            for index, ad in enumerate(self.ads[:limit], start=1):
                state = "(Visible)" if ad.get("visible") else "(Hidden)"
                lines.append(f"{index}. {ad.get('selector')} - \"{ad.get('text', '')}\" {state}")
        return "\n".join(lines)


async def dismiss_overlays(page: Any, settle_seconds: float = 2.0) -> Dict[str, int]:
    """Hide consent/cookie/paywall overlays and click affirmative buttons."""
    try:
        result = await page.evaluate(
            DISMISS_OVERLAYS_JS,
            {
                "overlays": OVERLAY_SELECTORS,
                "backdrops": BACKDROP_SELECTORS,
                "words": AFFIRMATIVE_WORDS,
                "scopes": PLAYER_SCOPES,
            },
        )
    except Exception as e:
        if is_context_lost(e):
            log.warning("Execution context was destroyed during overlay handling")
            return {"hidden": 0, "clicked": 0}
        log.error(f"Error handling overlays: {e}")
        return {"hidden": 0, "clicked": 0}

    log.info(f"Overlays handled: hidden={result.get('hidden', 0)}, clicked={result.get('clicked', 0)}")
    if settle_seconds:
        await asyncio.sleep(settle_seconds)
    return result


async def clear_overlays_before_capture(page: Any) -> int:
    """Hide player chrome and large fixed overlays ahead of probing."""
    try:
        hidden = await page.evaluate(CLEAR_FOR_CAPTURE_JS, CAPTURE_CLEAR_SELECTORS)
    except Exception as e:
        log.debug(f"Could not clear overlays: {e}")
        return 0
    return int(hidden or 0)


async def detect_ads(page: Any) -> AdReport:
    """Report skip controls and ad elements currently on the page."""
    try:
        data = await page.evaluate(
            DETECT_ADS_JS,
            {"skipSelectors": SKIP_BUTTON_SELECTORS, "adSelectors": AD_SELECTORS},
        )
    except Exception as e:
        if is_context_lost(e):
            log.warning("Execution context was destroyed during ad detection")
        else:
            log.error(f"Error detecting ads: {e}")
        return AdReport()
    return AdReport(skip_buttons=data.get("skipButtons", []), ads=data.get("ads", []))


async def skip_ads(page: Any, settle_seconds: float = 1.5) -> AdReport:
    """Click any visible skip control. Silently no-ops when none is found."""
    report = await detect_ads(page)
    if not report.skip_buttons:
        log.debug("No skippable ads detected")
        return report

    log.info(f"Found {len(report.skip_buttons)} skip button(s)")
    for selector in dict.fromkeys(b["selector"] for b in report.skip_buttons):
        try:
            button = await page.query_selector(selector)
            if button is None:
                continue
            await button.click(timeout=2000)
            report.skipped += 1
            log.info(f"Clicked skip button: {selector}")
            await asyncio.sleep(settle_seconds)
        except Exception as e:
            if is_context_lost(e):
                log.warning("Execution context was destroyed during ad skipping")
                break
            log.warning(f"Error clicking skip button {selector}: {e}")
            continue

        remaining = await detect_ads(page)
        if not remaining.skip_buttons:
            log.success("Ad successfully skipped")
            break
    return report


async def start_video(page: Any, wait_timeout_ms: int = 10000) -> bool:
    """Start playback: ``video.play()``, then play buttons, then a centre click.

    Returns:
        True if ``video.play()`` reported playback; False if a fallback click
        was needed or nothing could be done.
    """
    try:
        await page.wait_for_selector("video", timeout=wait_timeout_ms)
        await asyncio.sleep(0.5)

        if await page.evaluate(PLAY_VIDEO_JS):
            log.success("Video started via video.play()")
            return True

        log.info("video.play() was blocked, looking for play buttons...")
        for selector in PLAY_BUTTON_SELECTORS:
            if page.is_closed():
                log.warning("Page was closed during video start attempt")
                return False
            button = await page.query_selector(selector)
            if button is None:
                continue
            try:
                await button.click(timeout=2000)
                log.info(f"Clicked play button: {selector}")
                await asyncio.sleep(1.5)
                break
            except Exception as e:
                if is_context_lost(e):
                    raise
                log.warning(f"Error with play button {selector}: {e}")

        video = await page.query_selector("video")
        if video is not None:
            box = await video.bounding_box()
            if box:
                await page.mouse.click(box["x"] + box["width"] / 2, box["y"] + box["height"] / 2)
                log.info("Clicked center of video area")
                await asyncio.sleep(0.5)
        return False

    except Exception as e:
        if is_context_lost(e):
            log.warning("Execution context was destroyed during video start")
        else:
            log.error(f"Error starting video: {e}")
        return False


async def get_video_status(page: Any) -> Dict[str, Any]:
    """Current ``<video>`` element state."""
    return await page.evaluate(VIDEO_STATUS_JS)


def format_video_status(status: Dict[str, Any]) -> str:
    lines = ["📺 **Video Status:**",
             f"• Video element exists: {'✅ Yes' if status.get('exists') else '❌ No'}"]
    if status.get("exists"):
        lines += [
            f"• Video playing: {'✅ Yes' if status.get('playing') else '❌ No'}",
            f"• Current time: {float(status.get('currentTime', 0)):.2f}s",
            f"• Duration: {float(status.get('duration', 0)):.2f}s",
            f"• Ready state: {status.get('readyState')}",
        ]
    return "\n".join(lines)


async def has_error_page(page: Any) -> bool:
    """Detect "something went wrong"-style error pages from visible text."""
    return bool(
        await page.evaluate(
            ERROR_PAGE_JS,
            {"selectors": ERROR_CONTAINER_SELECTORS, "phrases": ERROR_PHRASES},
        )
    )

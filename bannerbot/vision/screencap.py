"""Region screenshot capture.

Two fidelity modes are supported: a compressed JPEG used only for OCR
probing (speed over visual quality, only the text matters) and a lossless
PNG that is delivered downstream. Nothing is written to disk.
"""

from __future__ import annotations

import time
from typing import Any

from ..core.exceptions import CaptureError
from ..core.logger import log
from ..core.models import CaptureRegion, Fidelity

DEFAULT_PROBE_QUALITY = 60


def _screenshot_options(region: CaptureRegion, fidelity: Fidelity, quality: int) -> dict[str, Any]:
    options: dict[str, Any] = {"clip": region.as_clip()}
    if fidelity is Fidelity.LOW:
        options["type"] = "jpeg"
        options["quality"] = quality
    else:
        options["type"] = "png"
    return options


async def capture_region(
    page: Any,
    region: CaptureRegion,
    fidelity: Fidelity,
    *,
    quality: int = DEFAULT_PROBE_QUALITY,
) -> bytes:
    """Capture *region* of *page* and return the encoded image bytes.

    Args:
        page: Browser page exposing ``screenshot`` and ``is_closed``.
        region: Rectangle in page pixels.
        fidelity: ``Fidelity.LOW`` for JPEG probes, ``Fidelity.FULL`` for PNG.
        quality: JPEG quality for low-fidelity captures.

    Raises:
        CaptureError: If the page is unavailable or the draw call fails.
    """
    if page is None:
        raise CaptureError("No page attached")

    try:
        if page.is_closed():
            raise CaptureError("Page is closed")
    except CaptureError:
        raise
    except Exception as e:
        raise CaptureError(f"Page state unavailable: {e}") from e

    started = time.perf_counter()
    try:
        data = await page.screenshot(**_screenshot_options(region, fidelity, quality))
    except Exception as e:
        # Navigation away mid-capture surfaces here as a protocol/target error.
        raise CaptureError(f"{fidelity.value} capture of {region.as_clip()} failed: {e}") from e

    if not data:
        raise CaptureError("Screenshot returned no data")

    log.log_performance(f"{fidelity.value} capture", (time.perf_counter() - started) * 1000)
    return data

"""Region capture fidelity modes and failures."""

import pytest

from bannerbot.core.exceptions import CaptureError
from bannerbot.core.models import CaptureRegion, Fidelity
from bannerbot.vision.screencap import capture_region

from conftest import FakePage

REGION = CaptureRegion(10, 20, 300, 100)


@pytest.mark.asyncio
async def test_low_fidelity_is_jpeg_with_quality():
    page = FakePage()

    await capture_region(page, REGION, Fidelity.LOW, quality=60)

    assert page.screenshots == [{"clip": REGION.as_clip(), "type": "jpeg", "quality": 60}]


@pytest.mark.asyncio
async def test_full_fidelity_is_png():
    page = FakePage()

    data = await capture_region(page, REGION, Fidelity.FULL)

    assert data == page.full_image
    assert page.screenshots[0]["type"] == "png"
    assert "quality" not in page.screenshots[0]


@pytest.mark.asyncio
async def test_missing_or_closed_page_fails():
    page = FakePage()
    page.closed = True

    with pytest.raises(CaptureError):
        await capture_region(None, REGION, Fidelity.LOW)
    with pytest.raises(CaptureError):
        await capture_region(page, REGION, Fidelity.LOW)


@pytest.mark.asyncio
async def test_draw_error_is_wrapped():
    page = FakePage()

    async def broken(**options):
        raise RuntimeError("Execution context was destroyed")

    page.screenshot = broken

    with pytest.raises(CaptureError, match="Execution context"):
        await capture_region(page, REGION, Fidelity.FULL)

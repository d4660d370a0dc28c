"""Text normalisation, identity extraction and OCR failure handling."""

from unittest.mock import AsyncMock

import pytest

from bannerbot.core.exceptions import ClassificationError
from bannerbot.core.models import BannerIdentity
from bannerbot.vision.engine import BannerClassifier, extract_identity, normalize_text


@pytest.mark.parametrize("text, expected", [
    ("X BANNER", BannerIdentity.X),
    ("EVENT Y BANNER LIVE", BannerIdentity.Y),
    ("NOW SHOWING  X   BANNER", BannerIdentity.X),
    ("XBANNER", None),
    ("X BANNERS", None),
    ("MAX BANNER", None),
    ("BANNER X", None),
    ("", None),
])
def test_extract_identity(text, expected):
    assert extract_identity(text) is expected


def test_normalize_text_keeps_alphanumerics():
    assert normalize_text("  x-banner!\n\n live ") == "X BANNER LIVE"
    assert normalize_text("y_banner") == "Y BANNER"
    assert normalize_text(None) == ""


@pytest.mark.asyncio
async def test_ocr_failure_counts_as_no_match(settings):
    classifier = BannerClassifier(settings)
    classifier.recognize_text = AsyncMock(side_effect=ClassificationError("tesseract crashed"))

    text, identity = await classifier.classify(b"probe")

    assert text == ""
    assert identity is None


@pytest.mark.asyncio
async def test_classify_uses_recognized_text(settings):
    classifier = BannerClassifier(settings)
    classifier.recognize_text = AsyncMock(return_value="THE Y BANNER")

    assert await classifier.classify(b"probe") == ("THE Y BANNER", BannerIdentity.Y)


@pytest.mark.asyncio
async def test_terminate_without_engine_is_noop(settings):
    classifier = BannerClassifier(settings)

    await classifier.terminate()
    await classifier.terminate()

    assert classifier.engine is None

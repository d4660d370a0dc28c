"""Configuration validation and helpers."""

import pytest

from bannerbot.core.config import Config
from bannerbot.core.models import BannerIdentity, CaptureRegion


def test_defaults_are_valid():
    settings = Config(_env_file=None)

    assert settings.validate_config()
    assert settings.hash_cache_size == 5
    assert settings.ocr_attempt_delay_ms == 250
    assert settings.x_banner_announce and not settings.y_banner_announce


def test_region_outside_viewport_rejected(settings):
    settings.ocr_area = CaptureRegion(1800, 50, 500, 150)

    with pytest.raises(ValueError, match="ocr_area"):
        settings.validate_config()


def test_equal_minutes_rejected(settings):
    settings.y_banner_minute = settings.x_banner_minute

    with pytest.raises(ValueError):
        settings.validate_config()


def test_minute_range_enforced():
    with pytest.raises(ValueError):
        Config(_env_file=None, x_banner_minute=60)


def test_region_parsed_from_mapping():
    settings = Config(_env_file=None, ocr_area={"x": 1, "y": 2, "width": 3, "height": 4})

    assert settings.ocr_area == CaptureRegion(1, 2, 3, 4)


def test_role_ping_ignores_placeholder(settings):
    assert settings.role_ping == "<@&5678>"
    settings.role_id = "your_role_id_here"
    assert settings.role_ping == ""
    settings.role_id = None
    assert settings.role_ping == ""


def test_per_identity_lookups(settings):
    settings.y_banner_area = CaptureRegion(0, 0, 10, 10)

    assert settings.banner_area(BannerIdentity.X) == settings.x_banner_area
    assert settings.banner_area(BannerIdentity.Y) == CaptureRegion(0, 0, 10, 10)
    assert settings.announces(BannerIdentity.X)
    assert not settings.announces(BannerIdentity.Y)

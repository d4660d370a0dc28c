"""Validation utility functions for the banner bot."""

from __future__ import annotations

from typing import Tuple
from urllib.parse import urlparse

from ..core.logger import log
from ..core.models import CaptureRegion


def validate_region(region: CaptureRegion, max_width: int = 1920,
                    max_height: int = 1080) -> Tuple[bool, str]:
    """Validate a capture rectangle against the viewport.

    Args:
        region: Region to validate.
        max_width: Viewport width.
        max_height: Viewport height.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if region.width <= 0 or region.height <= 0:
        return False, f"Region size must be positive, got {region.width}x{region.height}"

    if region.x < 0 or region.y < 0:
        return False, f"Region origin ({region.x}, {region.y}) is negative"

    if region.right() > max_width or region.bottom() > max_height:
        log.warning(f"Region {region} exceeds viewport {max_width}x{max_height}")
        return False, f"Region exceeds viewport {max_width}x{max_height}"

    return True, ""


def _host(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def is_target_url(current_url: str, target_url: str, domains: list[str]) -> bool:
    """Check whether *current_url* is the livestream page or the same site family.

    The query string is ignored because the platform appends tracking parameters.
    """
    if not current_url:
        return False

    target_base = target_url.split("?")[0]
    if target_base and target_base in current_url:
        return True

    host = _host(current_url)
    if not host:
        return False

    family = {d.lower() for d in domains}
    target_host = _host(target_url)
    if target_host:
        family.add(target_host)

    return any(host == d or host.endswith("." + d) for d in family)

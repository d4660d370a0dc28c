"""Utility functions for the banner capture bot.

This sub-package provides utility functions for:
- File and caption handling
- Region and URL validation
- Performance monitoring
- Common async helpers
"""

from .file_utils import format_clock, get_timestamp, load_json, read_banner_message
from .validation import is_target_url, validate_region
from .performance import PerformanceMonitor
from .helpers import retry_with_backoff, sleep_ms

__all__ = [
    "format_clock",
    "get_timestamp",
    "load_json",
    "read_banner_message",
    "is_target_url",
    "validate_region",
    "PerformanceMonitor",
    "retry_with_backoff",
    "sleep_ms",
]

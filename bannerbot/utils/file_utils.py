"""File utility functions for the banner bot."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any, Optional

from ..core.logger import log


def get_timestamp() -> str:
    """Get current timestamp as a string.

    Returns:
        Timestamp string in format YYYY-MM-DD_HH-MM-SS.
    """
    return time.strftime("%Y-%m-%d_%H-%M-%S")


def format_clock(timestamp: Optional[float], default: str = "Never") -> str:
    """Render an epoch timestamp as local wall-clock time."""
    if not timestamp:
        return default
    return time.strftime("%H:%M:%S", time.localtime(timestamp))


def load_json(filepath: str) -> Optional[Any]:
    """Load data from a JSON file.

    Args:
        filepath: Path to the JSON file.

    Returns:
        Loaded data or None if failed.
    """
    try:
        if not os.path.exists(filepath):
            log.warning(f"JSON file not found: {filepath}")
            return None

        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)

        log.debug(f"Data loaded from {filepath}")
        return data

    except (OSError, ValueError) as e:
        log.error(f"Failed to load JSON from {filepath}: {e}")
        return None


def read_banner_message(filepath: str, fallback: str) -> str:
    """Read the operator caption, falling back when missing, empty or unreadable.

    The file is read on every call so edits apply to the next send.
    """
    path = Path(filepath)
    try:
        if path.is_file():
            message = path.read_text(encoding="utf-8").strip()
            return message or fallback
    except (OSError, UnicodeDecodeError) as e:
        log.error(f"Error reading banner message file {filepath}: {e}")
    return fallback

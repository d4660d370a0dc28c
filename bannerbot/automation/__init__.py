"""Error classification for capture sessions."""

from .error_handler import Disposition, ErrorHandler

__all__ = [
    "Disposition",
    "ErrorHandler",
]

"""Screen capture and OCR classification of the banner region."""

from .engine import BannerClassifier, OcrEngine, extract_identity, normalize_text
from .screencap import capture_region

__all__ = [
    "BannerClassifier",
    "OcrEngine",
    "capture_region",
    "extract_identity",
    "normalize_text",
]

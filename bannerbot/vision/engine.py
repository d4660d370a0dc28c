"""OCR engine and banner identity classifier."""

from __future__ import annotations

import asyncio
import concurrent.futures
import os
import re
from typing import Optional

import cv2  # type: ignore
import numpy as np
import pytesseract  # type: ignore
from loguru import logger

from ..core.config import Config
from ..core.exceptions import ClassificationError
from ..core.models import BannerIdentity

CHAR_WHITELIST = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"

# Whole-word "<letter> BANNER"; "XBANNER" and "X BANNERS" do not match.
BANNER_PATTERN = re.compile(r"\b([XY])\s+BANNER\b")

_DISALLOWED = re.compile(r"[^A-Z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(raw: str) -> str:
    """Uppercase OCR output and restrict it to alphanumerics and single spaces."""
    upper = (raw or "").upper()
    return _WHITESPACE.sub(" ", _DISALLOWED.sub(" ", upper)).strip()


def extract_identity(text: str) -> Optional[BannerIdentity]:
    """Return the banner identity named in normalized *text*, if any."""
    match = BANNER_PATTERN.search(text or "")
    if not match:
        return None
    return BannerIdentity(match.group(1))


class OcrEngine:
    """Tesseract wrapper running recognition on a private worker thread."""

    def __init__(self, lang: str = "eng", psm: int = 6, threshold: bool = False) -> None:
        self.lang = lang
        self.threshold = threshold
        self.tesseract_config = f"--psm {psm} -c tessedit_char_whitelist={CHAR_WHITELIST}"
        # Single worker: recognitions are sequential within a session.
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = (
            concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="ocr")
        )

    @property
    def closed(self) -> bool:
        return self._executor is None

    def _preprocess(self, image_bytes: bytes) -> np.ndarray:
        buffer = np.frombuffer(image_bytes, dtype=np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        if image is None:
            raise ClassificationError("Could not decode probe image")

        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        if self.threshold:
            _, gray = cv2.threshold(gray, 150, 255, cv2.THRESH_BINARY | cv2.THRESH_OTSU)
        return gray

    def _recognize_sync(self, image_bytes: bytes) -> str:
        prepared = self._preprocess(image_bytes)
        return pytesseract.image_to_string(prepared, lang=self.lang, config=self.tesseract_config)

    async def version(self) -> str:
        if self._executor is None:
            raise ClassificationError("OCR engine terminated")
        loop = asyncio.get_running_loop()
        version = await loop.run_in_executor(self._executor, pytesseract.get_tesseract_version)
        return str(version)

    async def recognize(self, image_bytes: bytes) -> str:
        """Return raw recognized text for *image_bytes*."""
        if self._executor is None:
            raise ClassificationError("OCR engine terminated")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._recognize_sync, image_bytes)

    def terminate(self) -> None:
        """Release the worker thread."""
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
            self._executor = None


class BannerClassifier:
    """Classify probe captures as X banner, Y banner, or neither.

    Owns the ``OcrEngine`` exclusively. ``terminate()`` is part of the
    capture session teardown and must run on every exit path.
    """

    def __init__(self, settings: Config) -> None:
        self.settings = settings
        self._engine: Optional[OcrEngine] = None

        tesseract_cmd = settings.tesseract_cmd or os.getenv("TESSERACT_CMD")
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    @property
    def engine(self) -> Optional[OcrEngine]:
        return self._engine

    async def initialize(self) -> OcrEngine:
        """Create the OCR engine, or return the live one.

        Raises:
            ClassificationError: If Tesseract is not installed or not runnable.
        """
        if self._engine is not None and not self._engine.closed:
            return self._engine

        engine = OcrEngine(
            lang=self.settings.ocr_lang,
            psm=self.settings.ocr_psm,
            threshold=self.settings.ocr_threshold,
        )
        try:
            version = await engine.version()
        except Exception as exc:
            engine.terminate()
            raise ClassificationError(f"Tesseract unavailable: {exc}") from exc

        logger.info(f"BannerClassifier: Tesseract {version} initialized")
        self._engine = engine
        return engine

    async def recognize_text(self, image_bytes: bytes) -> str:
        """Run OCR over a probe image and return normalized text.

        Raises:
            ClassificationError: If the engine fails.
        """
        engine = await self.initialize()
        try:
            raw = await engine.recognize(image_bytes)
        except ClassificationError:
            raise
        except Exception as exc:
            raise ClassificationError(f"OCR failed: {exc}") from exc
        return normalize_text(raw)

    def extract_identity(self, text: str) -> Optional[BannerIdentity]:
        return extract_identity(text)

    async def classify(self, image_bytes: bytes) -> tuple[str, Optional[BannerIdentity]]:
        """Recognize and classify a probe; OCR failures count as no match."""
        try:
            text = await self.recognize_text(image_bytes)
        except ClassificationError as exc:
            logger.debug(f"BannerClassifier: treating OCR failure as no match ({exc})")
            return "", None
        return text, self.extract_identity(text)

    async def terminate(self) -> None:
        """Tear down the OCR engine. Safe to call repeatedly."""
        engine, self._engine = self._engine, None
        if engine is None:
            return
        # Shutdown joins the worker thread; keep it off the event loop.
        await asyncio.to_thread(engine.terminate)
        logger.info("BannerClassifier: OCR engine terminated")

"""Banner bot structured logging system."""

from __future__ import annotations

import os
import sys
from typing import Any

from loguru import logger

from .config import config


class Logger:
    """Structured logging system for the banner bot."""

    def __init__(self, name: str = "BannerBot") -> None:
        """Initialize and configure a *Loguru* logger instance."""
        self.name = name
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Configure the logger with proper formatting and handlers."""
        # Remove default handler
        logger.remove()

        logs_dir = config.logs_dir
        os.makedirs(logs_dir, exist_ok=True)

        # ------------------------------------------------------------------
        # Console handler
        # ------------------------------------------------------------------
        console_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level:<8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

        logger.add(
            sys.stdout,
            format=console_format,
            level=config.log_level,
            colorize=True,
        )

        # ------------------------------------------------------------------
        # File handlers
        # ------------------------------------------------------------------
        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | "
            "{name}:{function}:{line} | {message}"
        )

        logger.add(
            os.path.join(logs_dir, "bannerbot_{time:YYYY-MM-DD}.log"),
            format=file_format,
            level="DEBUG",
            rotation="1 day",
            retention="14 days",
            compression="zip",
        )

        # Separate error log
        logger.add(
            os.path.join(logs_dir, "errors_{time:YYYY-MM-DD}.log"),
            format=file_format,
            level="ERROR",
            rotation="1 day",
            retention="30 days",
            compression="zip",
        )

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        logger.info(f"[{self.name}] {message}", **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        logger.debug(f"[{self.name}] {message}", **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        logger.warning(f"[{self.name}] {message}", **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        logger.error(f"[{self.name}] {message}", **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        """Log critical message."""
        logger.critical(f"[{self.name}] {message}", **kwargs)

    def success(self, message: str, **kwargs: Any) -> None:
        """Log success message."""
        logger.success(f"[{self.name}] {message}", **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log error message with the active traceback."""
        logger.opt(exception=True).error(f"[{self.name}] {message}", **kwargs)

    def log_capture_attempt(
        self,
        identity: str,
        attempt: int,
        label: str | None,
    ) -> None:
        """Log one OCR probe of the retry loop."""
        self.debug(f"PROBE [{identity}] attempt {attempt}: label={label or 'none'}")

    def log_session_state(self, state: str, details: dict[str, Any] | None = None) -> None:
        """Log a capture session state transition."""
        message = f"SESSION STATE: {state}"
        if details:
            message += f" | Details: {details}"
        self.info(message)

    def log_resource_usage(self, memory_mb: float, cpu_percent: float) -> None:
        """Log resource usage metrics."""
        self.debug(f"RESOURCE USAGE: Memory: {memory_mb:.1f}MB, CPU: {cpu_percent:.1f}%")

    def log_performance(self, operation: str, duration_ms: float) -> None:
        """Log performance metrics."""
        self.debug(f"PERFORMANCE: {operation} took {duration_ms:.2f}ms")


# Global logger instance
log = Logger()

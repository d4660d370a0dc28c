"""Exception taxonomy for the capture pipeline."""

from __future__ import annotations

from typing import Sequence


class BannerBotError(RuntimeError):
    """Base class for all banner bot errors."""


class CaptureError(BannerBotError):
    """Region screenshot failed (page gone, detached context, draw error)."""


class ClassificationError(BannerBotError):
    """The OCR engine failed or is unavailable."""


class LifecycleError(BannerBotError):
    """The browser or page could not be created or navigated."""


class HealthCheckFailure(BannerBotError):
    """Health issues that targeted recovery could not resolve."""

    def __init__(self, issues: Sequence[object], message: str | None = None) -> None:
        self.issues = list(issues)
        detail = ", ".join(str(getattr(i, "value", i)) for i in self.issues)
        super().__init__(message or f"Unresolved health issues: {detail}")


class DispatchError(BannerBotError):
    """The notification sink rejected or failed to deliver a message."""

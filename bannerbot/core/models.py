"""Data models shared by the capture pipeline."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(slots=True)
class CaptureRegion:
    """Axis-aligned rectangle (x, y, width, height) in page pixel coordinates."""

    x: int
    y: int
    width: int
    height: int

    def right(self) -> int:
        """Right edge in pixels."""
        return self.x + self.width

    def bottom(self) -> int:
        """Bottom edge in pixels."""
        return self.y + self.height

    def as_clip(self) -> dict[str, int]:
        """Return the region as a browser screenshot ``clip`` mapping."""
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


class BannerIdentity(Enum):
    """Which of the two alternating banners is on screen."""

    X = "X"
    Y = "Y"

    @property
    def label(self) -> str:
        """Normalized on-screen label, e.g. ``"X BANNER"``."""
        return f"{self.value} BANNER"

    def other(self) -> BannerIdentity:
        return BannerIdentity.Y if self is BannerIdentity.X else BannerIdentity.X


class Fidelity(Enum):
    """Screenshot encoding modes."""

    LOW = "low"    # JPEG, OCR probing only
    FULL = "full"  # PNG, delivered downstream


class SessionState(Enum):
    """Capture session state machine."""

    IDLE = "idle"
    ACQUIRING_BROWSER = "acquiring_browser"
    PROBING_X = "probing_x"
    PROBING_Y = "probing_y"
    DISPATCHING = "dispatching"
    TEARING_DOWN = "tearing_down"
    FAILED = "failed"

    @classmethod
    def probing(cls, identity: BannerIdentity) -> SessionState:
        return cls.PROBING_X if identity is BannerIdentity.X else cls.PROBING_Y


@dataclass(slots=True)
class CaptureAttempt:
    """One low-fidelity probe inside a retry loop. Never persisted."""

    region: CaptureRegion
    recognized_text: str
    matched_identity: Optional[BannerIdentity] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class ProbeOutcome:
    """Result of probing for a single expected banner."""

    identity: BannerIdentity
    image: Optional[bytes] = None
    label: Optional[str] = None
    attempts: list[CaptureAttempt] = field(default_factory=list)
    duplicate: bool = False
    suppressed: bool = False
    sent: bool = False
    error: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.image is not None

    @property
    def deliverable(self) -> bool:
        return self.matched and not self.duplicate and not self.suppressed

    def summary(self) -> str:
        """Short human-readable outcome used in command replies."""
        if self.sent:
            return "✅ Captured"
        if self.suppressed or self.duplicate:
            return "🚫 Duplicate, not sent"
        if self.matched:
            return "⚠️ Captured but not delivered"
        return f"🚫 Not captured ({self.error or 'no match'})"


@dataclass
class SessionReport:
    """Summary of one capture session."""

    reason: str
    order: tuple[BannerIdentity, ...]
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None
    outcomes: dict[BannerIdentity, ProbeOutcome] = field(default_factory=dict)
    state: SessionState = SessionState.IDLE
    error: Optional[str] = None
    skipped: bool = False

    @property
    def failed(self) -> bool:
        return self.state is SessionState.FAILED

    @property
    def duration(self) -> float:
        end = self.finished_at or time.time()
        return end - self.started_at

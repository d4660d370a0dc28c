"""Core components of the banner capture bot."""

from .config import Config, config
from .exceptions import (
    BannerBotError,
    CaptureError,
    ClassificationError,
    DispatchError,
    HealthCheckFailure,
    LifecycleError,
)
from .logger import Logger, log
from .models import BannerIdentity, CaptureRegion, Fidelity, SessionState

__all__ = [
    "BannerBotError",
    "BannerIdentity",
    "CaptureError",
    "CaptureRegion",
    "ClassificationError",
    "Config",
    "DispatchError",
    "Fidelity",
    "HealthCheckFailure",
    "LifecycleError",
    "Logger",
    "SessionState",
    "config",
    "log",
]

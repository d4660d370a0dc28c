"""Discord delivery and operator command surface."""

from .notifier import DiscordNotifier, NotificationSink, NotifyEvent, NotifyKind

__all__ = [
    "DiscordNotifier",
    "NotificationSink",
    "NotifyEvent",
    "NotifyKind",
]

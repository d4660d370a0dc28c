"""Notification sink for captured banners and session errors."""

from __future__ import annotations

import io
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

import discord

from ..core.config import Config
from ..core.exceptions import DispatchError
from ..core.logger import log
from ..core.models import BannerIdentity
from ..utils.file_utils import get_timestamp
from ..utils.helpers import truncate_message


class NotifyKind(Enum):
    BANNER = "banner"
    ERROR = "error"
    TEXT = "text"


@dataclass
class NotifyEvent:
    """One outbound message. Banner events carry a full-fidelity PNG."""

    kind: NotifyKind
    image: Optional[bytes] = None
    caption: str = ""
    ping_role: bool = False
    identity: Optional[BannerIdentity] = None

    @classmethod
    def error(cls, message: str) -> NotifyEvent:
        return cls(kind=NotifyKind.ERROR, caption=message)

    @classmethod
    def text(cls, message: str) -> NotifyEvent:
        return cls(kind=NotifyKind.TEXT, caption=message)


class NotificationSink(Protocol):
    async def notify(self, event: NotifyEvent) -> None:
        """Deliver *event*. Raises ``DispatchError`` on failure."""
        ...


def attachment_name(identity: Optional[BannerIdentity], timestamp: Optional[str] = None) -> str:
    prefix = identity.value if identity is not None else "Unknown"
    return f"{prefix}_Banner_{timestamp or get_timestamp()}.png"


class DiscordNotifier:
    """Posts events to the configured Discord channel."""

    def __init__(self, client: discord.Client, settings: Config) -> None:
        self.client = client
        self.settings = settings
        self._channel: Optional[discord.abc.Messageable] = None

    async def _get_channel(self) -> discord.abc.Messageable:
        if self._channel is not None:
            return self._channel
        channel = self.client.get_channel(self.settings.channel_id)
        if channel is None:
            try:
                channel = await self.client.fetch_channel(self.settings.channel_id)
            except discord.DiscordException as e:
                raise DispatchError(f"Channel {self.settings.channel_id} unavailable: {e}") from e
        self._channel = channel
        return channel

    def render(self, event: NotifyEvent) -> str:
        """Message text for *event*."""
        if event.kind is NotifyKind.ERROR:
            return truncate_message(f"❌ **Error:** {event.caption}")
        if event.kind is NotifyKind.BANNER and event.ping_role:
            return truncate_message(f"{self.settings.role_ping} {event.caption}".strip())
        return truncate_message(event.caption)

    async def notify(self, event: NotifyEvent) -> None:
        """Send *event* once. Failures are wrapped, never retried here.

        Raises:
            DispatchError: If the channel is unavailable or the send fails.
        """
        channel = await self._get_channel()
        content = self.render(event) or None
        try:
            if event.kind is NotifyKind.BANNER and event.image:
                file = discord.File(io.BytesIO(event.image), filename=attachment_name(event.identity))
                await channel.send(content=content, file=file)
            else:
                await channel.send(content=content)
        except discord.DiscordException as e:
            raise DispatchError(f"Send failed: {e}") from e
        except OSError as e:
            raise DispatchError(f"Send failed: {e}") from e

        log.info(f"Notification sent ({event.kind.value})")

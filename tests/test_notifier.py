"""Discord delivery of banner and error events."""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from bannerbot.chat.notifier import DiscordNotifier, NotifyEvent, NotifyKind, attachment_name
from bannerbot.core.exceptions import DispatchError
from bannerbot.core.models import BannerIdentity


def make_notifier(settings, channel):
    client = MagicMock()
    client.get_channel.return_value = channel
    return DiscordNotifier(client, settings)


@pytest.mark.asyncio
async def test_announced_banner_has_ping_and_attachment(settings):
    channel = MagicMock()
    channel.send = AsyncMock()
    notifier = make_notifier(settings, channel)

    await notifier.notify(NotifyEvent(kind=NotifyKind.BANNER, image=b"png", caption="New!",
                                      ping_role=True, identity=BannerIdentity.X))

    kwargs = channel.send.await_args.kwargs
    assert kwargs["content"] == "<@&5678> New!"
    assert isinstance(kwargs["file"], discord.File)
    assert kwargs["file"].filename.startswith("X_Banner_")


@pytest.mark.asyncio
async def test_silent_banner_is_image_only(settings):
    channel = MagicMock()
    channel.send = AsyncMock()
    notifier = make_notifier(settings, channel)

    await notifier.notify(NotifyEvent(kind=NotifyKind.BANNER, image=b"png", identity=BannerIdentity.Y))

    assert channel.send.await_args.kwargs["content"] is None


@pytest.mark.asyncio
async def test_error_event_format(settings):
    channel = MagicMock()
    channel.send = AsyncMock()
    notifier = make_notifier(settings, channel)

    await notifier.notify(NotifyEvent.error("page failed to load"))

    assert channel.send.await_args.kwargs["content"] == "❌ **Error:** page failed to load"


@pytest.mark.asyncio
async def test_send_failure_becomes_dispatch_error(settings):
    channel = MagicMock()
    channel.send = AsyncMock(side_effect=discord.DiscordException("rate limited"))
    notifier = make_notifier(settings, channel)

    with pytest.raises(DispatchError):
        await notifier.notify(NotifyEvent.text("hello"))
    assert channel.send.await_count == 1


def test_attachment_name():
    assert attachment_name(BannerIdentity.Y, "2026-01-01_10-01-00") == "Y_Banner_2026-01-01_10-01-00.png"

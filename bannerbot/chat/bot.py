"""Discord gateway client hosting the scheduler and operator commands."""

from __future__ import annotations

from typing import Optional

import discord

from ..core.config import Config
from ..core.logger import log
from .commands import CommandRouter


class BannerBot(discord.Client):
    """Starts the capture scheduler once connected and answers commands."""

    def __init__(self, settings: Config, **options) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(intents=intents, **options)
        self.settings = settings
        self.router: Optional[CommandRouter] = None
        self.scheduler = None

    def attach(self, router: CommandRouter, scheduler) -> None:
        self.router = router
        self.scheduler = scheduler

    async def on_ready(self) -> None:
        log.success(f"Logged in as {self.user}")
        # on_ready fires again after reconnects.
        if self.scheduler is not None and not self.scheduler.is_running:
            self.scheduler.start()

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or self.router is None:
            return

        reply = await self.router.handle(message.content)
        if reply is None:
            return
        try:
            await message.reply(reply)
        except discord.DiscordException as e:
            log.error(f"Failed to reply to command: {e}")

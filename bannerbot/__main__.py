"""Entry point: ``python -m bannerbot`` or the ``bannerbot`` script."""

import argparse
import asyncio
import contextlib
import signal
import sys
from typing import Any, Dict

from .chat.bot import BannerBot
from .chat.commands import CommandRouter
from .chat.notifier import DiscordNotifier
from .core.browser_manager import BrowserLifecycleManager
from .core.config import Config, config
from .core.logger import log
from .core.orchestrator import CaptureOrchestrator
from .core.scheduler import CaptureScheduler
from .vision.engine import BannerClassifier


async def shutdown(client: BannerBot, scheduler: CaptureScheduler,
                   orchestrator: CaptureOrchestrator) -> None:
    """Single release path: scheduler, then browser and OCR, then the chat client."""
    log.info("Shutting down...")
    try:
        await scheduler.stop()
    finally:
        try:
            await orchestrator.shutdown()
        finally:
            if not client.is_closed():
                await client.close()
    log.info("Shutdown complete")


async def run_bot(settings: Config) -> int:
    """Wire the components together and run until signalled or failed."""
    client = BannerBot(settings)
    notifier = DiscordNotifier(client, settings)
    browser = BrowserLifecycleManager(settings)
    classifier = BannerClassifier(settings)
    orchestrator = CaptureOrchestrator(settings, browser, classifier, notifier)
    scheduler = CaptureScheduler(orchestrator, settings)
    client.attach(CommandRouter(settings, orchestrator, scheduler, browser), scheduler)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows event loops.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    def _handle_loop_exception(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        error = context.get("exception")
        log.critical(f"Unhandled error in event loop: {error or context.get('message')}")
        stop_event.set()

    loop.set_exception_handler(_handle_loop_exception)

    client_task = asyncio.create_task(client.start(settings.discord_token))
    stop_task = asyncio.create_task(stop_event.wait())
    exit_code = 0
    try:
        done, _ = await asyncio.wait({client_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if client_task in done:
            client_task.result()
        else:
            log.info("Stop signal received")
    except Exception as e:
        exit_code = 1
        log.exception(f"Fatal error: {e}")
        if client.is_ready():
            await orchestrator.notify_error(f"Bot is stopping after a fatal error: {e}")
    finally:
        await shutdown(client, scheduler, orchestrator)
        for task in (client_task, stop_task):
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError, Exception):
                    await task
    return exit_code


def main() -> int:
    """Main function."""
    parser = argparse.ArgumentParser(description="Livestream banner capture bot")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--check-config", action="store_true", help="Validate configuration and exit")
    args = parser.parse_args()

    settings = config
    if args.headed:
        settings.browser_headless = False

    try:
        settings.validate_config()
    except ValueError as e:
        log.critical(f"Invalid configuration: {e}")
        return 1

    if args.check_config:
        log.success("Configuration is valid")
        return 0

    if not settings.discord_token:
        log.critical("DISCORD_TOKEN is not set")
        return 1

    try:
        return asyncio.run(run_bot(settings))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())

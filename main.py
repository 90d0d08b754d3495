#!/usr/bin/env python3
"""
Binance Telegram Bot - Main Entry Point
"""
import asyncio
import logging
import signal
from typing import Optional

from telegram.ext import Application

from binance_bot.bot import CommandDispatcher
from binance_bot.core.exceptions import ConfigurationError
from binance_bot.exchange import BinanceClient
from binance_bot.exchange.binance.binance_models import Credential
from binance_bot.services import NotificationManager, OrderPnLCalculator, TelegramService
from binance_bot.websocket import StreamSession
from config import settings

logger = logging.getLogger(__name__)


def setup_logging():
    """Configure logging for the application."""
    from config.logging_config import setup_production_logging

    logging_config = setup_production_logging(settings.LOG_DIR, settings.LOG_LEVEL)

    # Reduce noise from third-party libraries
    logging.getLogger('aiohttp').setLevel(logging.WARNING)
    logging.getLogger('websockets').setLevel(logging.WARNING)
    logging.getLogger('telegram').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)

    return logging_config


def load_credential() -> Optional[Credential]:
    """Credential from the environment, None when it is incomplete."""
    try:
        return settings.get_binance_credential()
    except ConfigurationError as e:
        logger.error(f"❌ {e} - running without authenticated features")
        return None


async def run() -> None:
    """Wire the components and run until SIGINT/SIGTERM."""
    client = BinanceClient(load_credential(), settings.get_exchange_config())
    pnl_calculator = OrderPnLCalculator(client)

    telegram_service = TelegramService(settings.get_notification_config())
    notification_manager = NotificationManager(telegram_service=telegram_service)

    stream_session = StreamSession(client, settings.get_websocket_config())
    notification_manager.attach(stream_session)

    application = None
    if settings.TELEGRAM_BOT_TOKEN:
        application = Application.builder().token(settings.TELEGRAM_BOT_TOKEN).build()
        CommandDispatcher(client, pnl_calculator).register(application)
    else:
        logger.warning("TELEGRAM_BOT_TOKEN not set - chat commands disabled")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Not available on Windows event loops
            pass

    logger.info("🚀 Starting Binance Telegram Bot...")
    await stream_session.start()

    try:
        if application is not None:
            async with application:
                await application.start()
                await application.updater.start_polling()
                logger.info("📡 Telegram polling started")

                await stop_event.wait()

                # Stream goes first so no fill is forwarded while polling winds down.
                # The close in finally covers the error paths and is a no-op here.
                await stream_session.close()
                await application.updater.stop()
                await application.stop()
        else:
            await stop_event.wait()
    finally:
        logger.info("🛑 Shutting down...")
        await stream_session.close()
        await notification_manager.close()


def main():
    """Main entry point for the bot."""
    setup_logging()
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("🛑 Interrupted")
    except Exception as e:
        logger.error(f"❌ Error in main: {str(e)}")
        raise


if __name__ == "__main__":
    main()

import logging
from typing import Optional
from telegram import Bot
from telegram.error import TelegramError
from .notification_models import NotificationConfig

logger = logging.getLogger(__name__)


class TelegramService:
    """Core Telegram service for direct API interactions"""

    def __init__(self, config: NotificationConfig, bot: Optional[Bot] = None):
        """Initialize the Telegram service"""
        self.config = config
        self._validate_config()
        self.bot = bot if bot is not None else self._initialize_bot()
        self._bot_ready = False

    def _validate_config(self) -> None:
        """Validate the notification configuration"""
        if not self.config.bot_token:
            logger.warning("Telegram bot token not configured - notifications will be disabled")
            self.config.enabled = False

        if not self.config.chat_id:
            logger.warning("Telegram chat ID not configured - notifications will be disabled")
            self.config.enabled = False

    def _initialize_bot(self) -> Optional[Bot]:
        """Initialize the Telegram bot"""
        if not self.config.enabled:
            return None

        try:
            return Bot(token=self.config.bot_token)
        except Exception as e:
            logger.error(f"Failed to initialize Telegram bot: {e}")
            self.config.enabled = False
            return None

    async def send_message(self, message: str, parse_mode: Optional[str] = None) -> bool:
        """
        Send a message to the configured Telegram chat

        Args:
            message: The message to send
            parse_mode: Message parse mode (HTML, Markdown, etc.)

        Returns:
            True if message sent successfully, False otherwise
        """
        if not self.config.enabled or not self.bot:
            logger.info(f"Telegram notification (disabled): {message[:100]}...")
            return False

        try:
            if not self._bot_ready:
                await self.bot.initialize()
                self._bot_ready = True

            await self.bot.send_message(
                chat_id=self.config.chat_id,
                text=message,
                parse_mode=parse_mode or self.config.parse_mode
            )
            logger.info(f"Message sent: {message[:100]}")
            return True
        except TelegramError as e:
            logger.error(f"❌ Failed to send Telegram notification: {e}")
            return False

    async def send_notification(self, message: str) -> bool:
        """Send a message with the notification prefix"""
        return await self.send_message(f"{self.config.notification_prefix}{message}")

    def is_enabled(self) -> bool:
        """Check if the Telegram service is enabled"""
        return self.config.enabled

    async def close(self) -> None:
        """Release the bot's HTTP resources."""
        if self.bot and self._bot_ready:
            try:
                await self.bot.shutdown()
            except TelegramError as e:
                logger.warning(f"Failed to shut down Telegram bot: {e}")
            finally:
                self._bot_ready = False

import logging
from typing import Optional

from ...websocket.core.stream_session import StreamSession
from ...websocket.handlers.handler_models import FillEvent
from .telegram_service import TelegramService
from .message_formatter import MessageFormatter
from .notification_models import NotificationConfig

logger = logging.getLogger(__name__)


class NotificationManager:
    """Forwards stream events and status messages to Telegram"""

    def __init__(
        self,
        telegram_config: Optional[NotificationConfig] = None,
        telegram_service: Optional[TelegramService] = None
    ):
        """Initialize the notification manager"""
        if telegram_service is None:
            telegram_service = TelegramService(telegram_config or NotificationConfig(bot_token=None, chat_id=None))
        self.telegram_service = telegram_service
        self.message_formatter = MessageFormatter()
        self.enabled = self.telegram_service.is_enabled()

        if not self.enabled:
            logger.warning("Notification service is disabled - no notifications will be sent")

    def attach(self, stream_session: StreamSession) -> None:
        """Forward every FillEvent of the stream session"""
        stream_session.subscribe(self.handle_fill_event)

    def detach(self, stream_session: StreamSession) -> None:
        stream_session.unsubscribe(self.handle_fill_event)

    async def handle_fill_event(self, fill: FillEvent) -> bool:
        """Send one order fill notification"""
        message = self.message_formatter.format_fill_event(fill)
        return await self.telegram_service.send_notification(message)

    async def send_system_status(self, message: str) -> bool:
        """Send a system status notification"""
        return await self.telegram_service.send_notification(message)

    async def close(self) -> None:
        await self.telegram_service.close()

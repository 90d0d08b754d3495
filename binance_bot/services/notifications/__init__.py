from .notification_manager import NotificationManager
from .telegram_service import TelegramService
from .message_formatter import MessageFormatter
from .notification_models import NotificationConfig

__all__ = [
    'NotificationManager',
    'TelegramService',
    'MessageFormatter',
    'NotificationConfig'
]

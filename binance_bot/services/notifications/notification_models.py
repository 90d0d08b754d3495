from dataclasses import dataclass
from typing import Optional


@dataclass
class NotificationConfig:
    """Configuration for notification service"""
    bot_token: Optional[str]
    chat_id: Optional[str]
    enabled: bool = True
    # Reports are plain text
    parse_mode: Optional[str] = None
    notification_prefix: str = "🔔 Notification: "

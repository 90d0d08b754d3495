"""
Binance Telegram Bot - P&L analytics and notification services
"""

from .analytics import (
    OrderPnLCalculator, OrderWithPnL, PnLResult, PnLSummary, AnalyticsConfig
)

from .notifications import (
    NotificationManager, TelegramService, MessageFormatter, NotificationConfig
)

__all__ = [
    'OrderPnLCalculator', 'OrderWithPnL', 'PnLResult', 'PnLSummary', 'AnalyticsConfig',
    'NotificationManager', 'TelegramService', 'MessageFormatter', 'NotificationConfig'
]

"""
Binance account client, user-data stream and P&L notifier for Telegram.
"""

__version__ = "1.0.0"

"""
Exchange Module

This module contains all exchange-related functionality.
"""

from .core import ExchangeConfig
from .binance import (
    BinanceClient, BinanceAuth, Credential, StreamCredential,
    Balance, Order, MarketPrice, AccountSnapshot
)

__all__ = [
    'ExchangeConfig',
    'BinanceClient',
    'BinanceAuth',
    'Credential',
    'StreamCredential',
    'Balance',
    'Order',
    'MarketPrice',
    'AccountSnapshot'
]

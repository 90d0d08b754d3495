"""
Binance Exchange Module

This module contains the Binance spot REST client, request signing and models.
"""

from .binance_auth import BinanceAuth, SignedRequest, sign, build_query_string
from .binance_client import BinanceClient
from .binance_models import (
    Credential, StreamCredential, Balance, Order, MarketPrice, AccountSnapshot
)

__all__ = [
    'BinanceAuth',
    'SignedRequest',
    'sign',
    'build_query_string',
    'BinanceClient',
    'Credential',
    'StreamCredential',
    'Balance',
    'Order',
    'MarketPrice',
    'AccountSnapshot'
]

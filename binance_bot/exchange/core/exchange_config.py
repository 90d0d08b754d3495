"""
Exchange Configuration

Centralized configuration for the Binance spot REST client.
Credentials live in binance_models.Credential, not here.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


BINANCE_REST_BASE = "https://api.binance.com"

# Spot REST endpoints
ACCOUNT_ENDPOINT = "/api/v3/account"
OPEN_ORDERS_ENDPOINT = "/api/v3/openOrders"
MY_TRADES_ENDPOINT = "/api/v3/myTrades"
TICKER_PRICE_ENDPOINT = "/api/v3/ticker/price"
USER_DATA_STREAM_ENDPOINT = "/api/v3/userDataStream"

API_KEY_HEADER = "X-MBX-APIKEY"


@dataclass
class ExchangeConfig:
    """
    Configuration for exchange operations.

    Centralizes all exchange-related configuration to avoid
    scattered configuration throughout the codebase.
    """

    base_url: str = BINANCE_REST_BASE

    # Connection Settings
    request_timeout: float = 10.0

    # Sent as recvWindow on signed requests when set
    recv_window: Optional[int] = None

    # Trade history
    default_history_limit: int = 10

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.base_url:
            raise ValueError("Base URL is required")

        self.base_url = self.base_url.rstrip("/")

        if self.request_timeout <= 0:
            raise ValueError("Request timeout must be positive")

        if self.recv_window is not None and not 0 < self.recv_window <= 60000:
            raise ValueError("recvWindow must be between 1 and 60000 ms")

        if self.default_history_limit <= 0:
            raise ValueError("History limit must be positive")

    def url(self, path: str) -> str:
        """Build an absolute URL for an API path."""
        return f"{self.base_url}{path}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            'base_url': self.base_url,
            'request_timeout': self.request_timeout,
            'recv_window': self.recv_window,
            'default_history_limit': self.default_history_limit
        }

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(f"Exchange configuration: {self.to_dict()}")

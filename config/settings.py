import os
import logging
from typing import Optional

from dotenv import load_dotenv

from binance_bot.core.exceptions import ConfigurationError
from binance_bot.exchange.binance.binance_models import Credential
from binance_bot.exchange.core.exchange_config import ExchangeConfig, BINANCE_REST_BASE
from binance_bot.services.notifications.notification_models import NotificationConfig
from binance_bot.websocket.core.websocket_config import WebSocketConfig

logger = logging.getLogger(__name__)


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name, "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def _float(name: str, default: str) -> float:
    value = os.getenv(name, default).strip() or default
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e


# Read once at import, values do not change for the life of the process
load_dotenv()

# Binance
BINANCE_API_KEY = os.getenv("BINANCE_API_KEY")
BINANCE_API_SECRET = os.getenv("BINANCE_API_SECRET")
BINANCE_BASE_URL = os.getenv("BINANCE_BASE_URL", BINANCE_REST_BASE)
BINANCE_STREAM_URL = os.getenv("BINANCE_STREAM_URL", "wss://stream.binance.com:9443")
BINANCE_RECV_WINDOW = _optional_int("BINANCE_RECV_WINDOW")
REQUEST_TIMEOUT = _float("REQUEST_TIMEOUT", "10")

# User data stream
STREAM_RECONNECT_DELAY = _float("STREAM_RECONNECT_DELAY", "5")
STREAM_MAX_RECONNECT_ATTEMPTS = _optional_int("STREAM_MAX_RECONNECT_ATTEMPTS")

# Telegram Bot Configuration
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")
TELEGRAM_CHAT_ID = os.getenv("TELEGRAM_CHAT_ID")

# Logging
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def get_binance_credential() -> Credential:
    """
    Build the API credential from the environment

    Returns:
        Credential

    Raises:
        ConfigurationError: key or secret missing
    """
    return Credential(api_key=BINANCE_API_KEY or "", api_secret=BINANCE_API_SECRET or "")


def get_exchange_config() -> ExchangeConfig:
    return ExchangeConfig(
        base_url=BINANCE_BASE_URL,
        request_timeout=REQUEST_TIMEOUT,
        recv_window=BINANCE_RECV_WINDOW
    )


def get_websocket_config() -> WebSocketConfig:
    return WebSocketConfig(
        stream_base_url=BINANCE_STREAM_URL,
        reconnect_delay=STREAM_RECONNECT_DELAY,
        max_reconnect_attempts=STREAM_MAX_RECONNECT_ATTEMPTS
    )


def get_notification_config() -> NotificationConfig:
    return NotificationConfig(bot_token=TELEGRAM_BOT_TOKEN, chat_id=TELEGRAM_CHAT_ID)

"""
WebSocket configuration and constants for the Binance spot user-data stream.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class WebSocketConfig:
    """Configuration for the user-data stream session."""

    # Base endpoint, the listen key is appended as /ws/<listenKey>
    stream_base_url: str = "wss://stream.binance.com:9443"

    # Connection settings
    open_timeout: float = 10.0
    ping_interval: Optional[float] = 20.0
    ping_timeout: Optional[float] = 20.0

    # Reconnection settings: fixed delay, unbounded unless a limit is set
    reconnect_delay: float = 5.0
    max_reconnect_attempts: Optional[int] = None

    # Listen key issuance failures
    retry_credential_issuance: bool = True
    credential_retry_base_delay: float = 5.0
    credential_retry_max_delay: float = 300.0
    exponential_backoff_base: float = 2.0

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.stream_base_url = self.stream_base_url.rstrip("/")

        if self.open_timeout <= 0:
            raise ValueError("Open timeout must be positive")

        if self.reconnect_delay < 0:
            raise ValueError("Reconnect delay cannot be negative")

        if self.max_reconnect_attempts is not None and self.max_reconnect_attempts < 0:
            raise ValueError("Max reconnect attempts cannot be negative")

        if self.credential_retry_base_delay < 0 or self.credential_retry_max_delay < 0:
            raise ValueError("Credential retry delays cannot be negative")

    def user_data_stream_url(self, listen_key: str) -> str:
        """Get user data stream URL for a listen key."""
        return f"{self.stream_base_url}/ws/{listen_key}"

    def get_credential_retry_delay(self, attempt: int) -> float:
        """Calculate exponential backoff delay after a failed listen key issuance."""
        if attempt <= 1:
            return self.credential_retry_base_delay

        delay = self.credential_retry_base_delay * (self.exponential_backoff_base ** (attempt - 1))
        return min(delay, self.credential_retry_max_delay)

"""
Binance Authentication Handler

Handles Binance API authentication: HMAC-SHA256 request signing and
API-key header management.
"""

import time
import hmac
import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode
import logging

from ...core.exceptions import ConfigurationError
from ..core.exchange_config import API_KEY_HEADER
from .binance_models import Credential

logger = logging.getLogger(__name__)


def sign(secret: str, query_string: str) -> str:
    """
    Generate a Binance API signature.

    Args:
        secret: API secret used as the HMAC key
        query_string: Exact query string that will be sent

    Returns:
        Hex encoded HMAC-SHA256 digest
    """
    if not secret:
        raise ConfigurationError("Cannot sign request: API secret is missing")

    return hmac.new(
        secret.encode('utf-8'),
        query_string.encode('utf-8'),
        hashlib.sha256
    ).hexdigest()


def build_query_string(params: Mapping[str, Any]) -> str:
    """Serialize params as key=value pairs joined by '&', in iteration order."""
    return urlencode([(key, str(value)) for key, value in params.items()])


def current_timestamp_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SignedRequest:
    """A request whose query string has been signed."""

    method: str
    path: str
    params: Dict[str, str]
    timestamp: int
    signature: str

    @property
    def query_string(self) -> str:
        """The exact string sent on the wire, signature last."""
        return f"{build_query_string(self.params)}&signature={self.signature}"


class BinanceAuth:
    """
    Binance authentication handler.

    Signs the serialized query string with the account secret and
    provides the API-key header for authenticated and key-only endpoints.
    """

    def __init__(self, credential: Credential, recv_window: Optional[int] = None):
        """
        Initialize Binance authentication.

        Args:
            credential: API key pair
            recv_window: Optional recvWindow to attach to signed requests
        """
        self.credential = credential
        self.recv_window = recv_window

    def headers(self) -> Dict[str, str]:
        """API-key header required by signed and key-only endpoints."""
        return {API_KEY_HEADER: self.credential.api_key}

    def sign_request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        timestamp: Optional[int] = None
    ) -> SignedRequest:
        """
        Build a signed request.

        timestamp is always the first parameter, followed by recvWindow
        (when configured) and then the caller's params in their given order.

        Args:
            method: HTTP method
            path: API path
            params: Extra query parameters, order preserved
            timestamp: Milliseconds since epoch, captured now when omitted

        Returns:
            SignedRequest ready to be sent
        """
        ts = timestamp if timestamp is not None else current_timestamp_ms()

        ordered: Dict[str, str] = {'timestamp': str(ts)}
        if self.recv_window is not None:
            ordered['recvWindow'] = str(self.recv_window)
        for key, value in (params or {}).items():
            if key in ('timestamp', 'signature'):
                continue
            ordered[key] = str(value)

        signature = sign(self.credential.api_secret, build_query_string(ordered))

        return SignedRequest(
            method=method,
            path=path,
            params=ordered,
            timestamp=ts,
            signature=signature
        )

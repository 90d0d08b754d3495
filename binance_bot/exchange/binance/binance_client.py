"""
Binance Spot REST Client

Authenticated account operations (snapshot, balances, open orders, trade
history), the public price table and listen-key issuance for the user-data
stream. Every call has an explicit timeout; every failure is logged with
its operation and re-raised as a typed error.
"""

import asyncio
import json
import logging
from decimal import InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

import aiohttp
from yarl import URL

from ...core.exceptions import (
    BinanceBotError, ConfigurationError, NetworkError, ExchangeAPIError,
    AuthenticationError, ExchangeResponseError
)
from ..core.exchange_config import (
    ExchangeConfig, ACCOUNT_ENDPOINT, OPEN_ORDERS_ENDPOINT, MY_TRADES_ENDPOINT,
    TICKER_PRICE_ENDPOINT, USER_DATA_STREAM_ENDPOINT
)
from .binance_auth import BinanceAuth, build_query_string
from .binance_models import (
    Credential, StreamCredential, AccountSnapshot, Balance, Order, MarketPrice
)

logger = logging.getLogger(__name__)

# Venue error codes that mean the key or signature was rejected
AUTH_ERROR_CODES = {-1022, -2014, -2015}

T = TypeVar("T")


class BinanceClient:
    """
    Binance spot REST client.

    Holds no mutable state besides the immutable credential and config,
    so a single instance can serve concurrent callers.
    """

    def __init__(
        self,
        credential: Optional[Credential] = None,
        config: Optional[ExchangeConfig] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize the client.

        Args:
            credential: API key pair; None disables authenticated operations
            config: Exchange configuration
            session: Shared aiohttp session; a short-lived one is used per
                request when omitted
        """
        self.credential = credential
        self.config = config or ExchangeConfig()
        self.auth = BinanceAuth(credential, self.config.recv_window) if credential else None
        self._session = session

        if credential:
            logger.info(f"BinanceClient initialized with API key {credential.masked_key}")
        else:
            logger.warning("BinanceClient initialized without credentials - authenticated operations disabled")

    @property
    def has_credentials(self) -> bool:
        return self.auth is not None

    def _require_auth(self, operation: str) -> BinanceAuth:
        if self.auth is None:
            raise ConfigurationError(f"{operation} requires Binance API credentials")
        return self.auth

    # Account Operations
    async def get_account_snapshot(self) -> AccountSnapshot:
        """Get spot account information, balances included."""
        data = await self._request(
            "GET", ACCOUNT_ENDPOINT,
            operation="get account snapshot",
            signed=True
        )
        data = self._expect_dict(data, "get account snapshot")
        return self._decode(data, "get account snapshot", lambda: AccountSnapshot.from_dict(data))

    async def get_wallet_balance(self) -> List[Balance]:
        """Get balances with a non-zero free or locked amount, in venue order."""
        snapshot = await self.get_account_snapshot()
        return self._decode(snapshot.raw, "get wallet balance", lambda: snapshot.active_balances)

    # Order Operations
    async def get_open_orders(self, symbol: Optional[str] = None) -> List[Order]:
        """
        Get open orders.

        Args:
            symbol: Restrict to one symbol (optional)

        Returns:
            List of open orders
        """
        params: Dict[str, Any] = {}
        if symbol:
            params['symbol'] = symbol

        data = await self._request(
            "GET", OPEN_ORDERS_ENDPOINT,
            operation="get open orders",
            params=params,
            signed=True
        )
        rows = self._expect_list(data, "get open orders")
        return self._decode(data, "get open orders", lambda: [Order.from_dict(row) for row in rows])

    async def get_order_history(self, symbol: Optional[str] = None, limit: Optional[int] = None) -> List[Order]:
        """
        Get recent account trades as filled order rows.

        Args:
            symbol: Restrict to one symbol (optional)
            limit: Maximum number of rows, defaults to 10

        Returns:
            List of filled orders, venue order preserved
        """
        if limit is None:
            limit = self.config.default_history_limit

        params: Dict[str, Any] = {'limit': limit}
        if symbol:
            params['symbol'] = symbol

        data = await self._request(
            "GET", MY_TRADES_ENDPOINT,
            operation="get order history",
            params=params,
            signed=True
        )
        rows = self._expect_list(data, "get order history")
        return self._decode(data, "get order history", lambda: [Order.from_trade_dict(row) for row in rows])

    # Market Data
    async def get_current_prices(self, symbols: Iterable[str]) -> List[MarketPrice]:
        """
        Get latest prices for a set of symbols.

        The whole public price table is fetched and filtered locally.
        Nothing is cached: every call hits the venue.

        Args:
            symbols: Symbols to keep

        Returns:
            List of market prices for the requested symbols that the venue knows
        """
        wanted = set(symbols)
        if not wanted:
            return []

        data = await self._request(
            "GET", TICKER_PRICE_ENDPOINT,
            operation="get current prices"
        )
        rows = self._expect_list(data, "get current prices")
        return self._decode(
            data, "get current prices",
            lambda: [MarketPrice.from_dict(row) for row in rows if row.get('symbol') in wanted]
        )

    # User Data Stream
    async def create_listen_key(self) -> StreamCredential:
        """Issue a listen key for the user-data stream (API-key header only)."""
        data = await self._request(
            "POST", USER_DATA_STREAM_ENDPOINT,
            operation="create listen key",
            api_key=True
        )
        try:
            credential = StreamCredential.from_dict(data)
        except (ValueError, AttributeError) as e:
            logger.error(f"create listen key failed: {e}")
            raise ExchangeResponseError(
                f"Unexpected listen key response: {e}",
                status=200,
                body=json.dumps(data) if data is not None else None
            ) from e

        logger.info("Obtained new listen key")
        return credential

    # Transport
    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
        signed: bool = False,
        api_key: bool = False
    ) -> Any:
        """
        Send one request and decode the JSON body.

        Signed requests carry the signature over the exact query string
        that is put on the wire. Unsigned requests never carry the API-key
        header unless api_key is set.
        """
        headers: Dict[str, str] = {}
        try:
            if signed:
                auth = self._require_auth(operation)
                query = auth.sign_request(method, path, params).query_string
                headers.update(auth.headers())
            else:
                if api_key:
                    headers.update(self._require_auth(operation).headers())
                query = build_query_string(params) if params else ""
        except ConfigurationError as e:
            logger.error(f"{operation} failed: {e}")
            raise

        url = self.config.url(path)
        if query:
            url = f"{url}?{query}"

        timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)

        try:
            if self._session is not None:
                return await self._send(self._session, method, url, headers, timeout, operation)
            async with aiohttp.ClientSession() as session:
                return await self._send(session, method, url, headers, timeout, operation)
        except BinanceBotError as e:
            logger.error(f"{operation} failed: {e}")
            raise
        except asyncio.TimeoutError as e:
            logger.error(f"{operation} timed out after {self.config.request_timeout}s")
            raise NetworkError(
                f"{operation} timed out after {self.config.request_timeout}s",
                context={'method': method, 'path': path}
            ) from e
        except aiohttp.ClientError as e:
            logger.error(f"{operation} failed: {e}")
            raise NetworkError(
                f"{operation} failed: {e}",
                context={'method': method, 'path': path}
            ) from e

    async def _send(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        headers: Dict[str, str],
        timeout: aiohttp.ClientTimeout,
        operation: str
    ) -> Any:
        # encoded=True keeps the signed query string byte-for-byte
        async with session.request(method, URL(url, encoded=True), headers=headers, timeout=timeout) as response:
            status = response.status
            body = await response.text()

        if status >= 400:
            raise self._api_error(operation, status, body)

        if not body:
            return {}

        try:
            return json.loads(body)
        except ValueError as e:
            raise ExchangeResponseError(
                f"{operation}: response is not valid JSON",
                status=status,
                body=body[:500]
            ) from e

    @staticmethod
    def _api_error(operation: str, status: int, body: str) -> ExchangeAPIError:
        """Map a non-2xx response onto a typed error, keeping status and body."""
        code = None
        msg = body[:500]
        try:
            payload = json.loads(body)
            if isinstance(payload, dict):
                code = payload.get('code')
                msg = payload.get('msg', msg)
        except ValueError:
            pass

        message = f"Binance HTTP {status} ({operation}): code={code} msg={msg}"
        if status in (401, 403) or code in AUTH_ERROR_CODES:
            return AuthenticationError(message, status=status, body=body, code=code)
        return ExchangeAPIError(message, status=status, body=body, code=code)

    @staticmethod
    def _expect_dict(data: Any, operation: str) -> Dict[str, Any]:
        if not isinstance(data, dict):
            logger.error(f"{operation} failed: expected an object, got {type(data).__name__}")
            raise ExchangeResponseError(
                f"{operation}: expected an object, got {type(data).__name__}",
                status=200,
                body=json.dumps(data)[:500]
            )
        return data

    @staticmethod
    def _expect_list(data: Any, operation: str) -> List[Dict[str, Any]]:
        if not isinstance(data, list):
            logger.error(f"{operation} failed: expected a list, got {type(data).__name__}")
            raise ExchangeResponseError(
                f"{operation}: expected a list, got {type(data).__name__}",
                status=200,
                body=json.dumps(data)[:500]
            )
        return data

    @staticmethod
    def _decode(data: Any, operation: str, build: Callable[[], T]) -> T:
        """Run a row decoder, turning bad venue rows into ExchangeResponseError."""
        try:
            return build()
        except (AttributeError, TypeError, ValueError, InvalidOperation) as e:
            logger.error(f"{operation} failed: malformed row in response: {e!r}")
            raise ExchangeResponseError(
                f"{operation}: malformed row in response: {e!r}",
                status=200,
                body=json.dumps(data, default=str)[:500]
            ) from e

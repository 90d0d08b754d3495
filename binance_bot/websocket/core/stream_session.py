"""
User-data stream session.

Owns the listen key and the single push connection, and runs the
issue-credential / connect / reconnect state machine.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from ...core.exceptions import (
    ConfigurationError, AuthenticationError, MalformedMessageError
)
from ...exchange.binance.binance_client import BinanceClient
from ...exchange.binance.binance_models import StreamCredential
from ..handlers.user_data_handler import UserDataHandler
from .event_dispatcher import EventDispatcher, FILL_EVENT
from .websocket_config import WebSocketConfig

logger = logging.getLogger(__name__)


class StreamState(Enum):
    IDLE = "idle"
    ISSUING_CREDENTIAL = "issuing_credential"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    CLOSED = "closed"
    STOPPED = "stopped"


class StreamSession:
    """
    Binance user-data stream session.

    Features:
    - Fresh listen key on every (re)connect
    - Fixed-delay restart after a transport error or remote close
    - Backoff retry when listen key issuance fails
    - At most one pending restart; close() cancels it
    - FILLED execution reports published to subscribers as FillEvents
    """

    def __init__(
        self,
        client: BinanceClient,
        config: Optional[WebSocketConfig] = None,
        event_dispatcher: Optional[EventDispatcher] = None,
        user_data_handler: Optional[UserDataHandler] = None,
        connector: Optional[Callable[..., Any]] = None
    ):
        """
        Initialize the stream session.

        Args:
            client: REST client used to issue listen keys
            config: Stream configuration
            event_dispatcher: Dispatcher that fans FillEvents out to subscribers
            user_data_handler: Parser for raw stream payloads
            connector: Coroutine function opening a connection, websockets.connect by default
        """
        self.client = client
        self.config = config or WebSocketConfig()
        self.event_dispatcher = event_dispatcher or EventDispatcher()
        self.user_data_handler = user_data_handler or UserDataHandler()
        self._connect = connector or websockets.connect

        self.state = StreamState.IDLE
        self.stream_credential: Optional[StreamCredential] = None
        self.reconnect_attempts = 0
        self.credential_failures = 0

        self._connection: Optional[Any] = None
        self._cycle_task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._closing = False

    @property
    def is_connected(self) -> bool:
        return self.state == StreamState.CONNECTED and self._connection is not None

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    def subscribe(self, handler: Callable) -> None:
        """Register a sync or async callable receiving every FillEvent."""
        self.event_dispatcher.register_handler(FILL_EVENT, handler)

    def unsubscribe(self, handler: Callable) -> None:
        self.event_dispatcher.unregister_handler(FILL_EVENT, handler)

    async def start(self) -> bool:
        """
        Start the session.

        Returns:
            bool: False when credentials are missing and the stream stays disabled
        """
        if not self.client.has_credentials:
            logger.error(
                f"{ConfigurationError.__name__}: Binance API credentials are missing - "
                "user data stream disabled"
            )
            return False

        if self._cycle_task and not self._cycle_task.done() or self._reconnect_handle is not None:
            logger.warning("User data stream is already running")
            return True

        self._closing = False
        self.reconnect_attempts = 0
        self.credential_failures = 0
        self._begin_cycle()
        return True

    async def close(self) -> None:
        """
        Stop the session for good.

        The closing flag is set and the pending restart cancelled before the
        first await, so no restart can be scheduled once close() has begun.
        """
        self._closing = True
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

        if self.state == StreamState.STOPPED and self._cycle_task is None:
            return

        task, self._cycle_task = self._cycle_task, None
        connection, self._connection = self._connection, None
        self._set_state(StreamState.STOPPED)

        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if connection is not None:
            try:
                await connection.close()
            except Exception as e:
                logger.warning(f"Error closing WebSocket connection: {e}")

        self.stream_credential = None
        logger.info("User data stream closed")

    def _set_state(self, state: StreamState) -> None:
        if self.state != state:
            logger.debug(f"Stream state {self.state.value} -> {state.value}")
        self.state = state

    def _begin_cycle(self) -> None:
        self._reconnect_handle = None
        if self._closing:
            return
        self._cycle_task = asyncio.get_running_loop().create_task(self._run_cycle())

    async def _run_cycle(self) -> None:
        """Issue a listen key, connect, and read until the connection ends."""
        self._set_state(StreamState.ISSUING_CREDENTIAL)
        try:
            self.stream_credential = await self.client.create_listen_key()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._handle_credential_failure(e)
            return

        self.credential_failures = 0
        url = self.config.user_data_stream_url(self.stream_credential.listen_key)

        self._set_state(StreamState.CONNECTING)
        try:
            connection = await self._connect(
                url,
                open_timeout=self.config.open_timeout,
                ping_interval=self.config.ping_interval,
                ping_timeout=self.config.ping_timeout
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._handle_disconnect(StreamState.ERROR, f"connect failed: {e}")
            return

        if self._closing:
            await connection.close()
            return

        self._connection = connection
        self.reconnect_attempts = 0
        self._set_state(StreamState.CONNECTED)
        logger.info("WebSocket connection opened")

        try:
            async for message in connection:
                await self._handle_message(message)
        except asyncio.CancelledError:
            raise
        except ConnectionClosedOK as e:
            self._handle_disconnect(StreamState.CLOSED, f"connection closed: {e}")
            return
        except ConnectionClosed as e:
            self._handle_disconnect(StreamState.ERROR, f"connection lost: {e}")
            return
        except Exception as e:
            self._handle_disconnect(StreamState.ERROR, f"transport error: {e}")
            return

        self._handle_disconnect(StreamState.CLOSED, "remote closed the connection")

    async def _handle_message(self, message: Any) -> None:
        try:
            fill = self.user_data_handler.handle_message(message)
        except MalformedMessageError as e:
            logger.error(f"Error parsing WebSocket message: {e}")
            return

        if fill is not None:
            await self.event_dispatcher.dispatch(FILL_EVENT, fill)

    def _handle_credential_failure(self, error: Exception) -> None:
        self.stream_credential = None
        logger.error(f"Failed to initialize user stream: {error}")

        if self._closing:
            return

        retryable = not isinstance(error, (ConfigurationError, AuthenticationError))
        if not (self.config.retry_credential_issuance and retryable):
            self._set_state(StreamState.IDLE)
            return

        self.credential_failures += 1
        delay = self.config.get_credential_retry_delay(self.credential_failures)
        self._set_state(StreamState.ERROR)
        logger.warning(f"Retrying listen key issuance in {delay}s (failure {self.credential_failures})")
        self._schedule_restart(delay)

    def _handle_disconnect(self, state: StreamState, reason: str) -> None:
        """Record the transport loss and schedule one restart."""
        self._connection = None

        if self._closing:
            logger.info(f"User data stream ended during shutdown: {reason}")
            return

        self._set_state(state)
        logger.warning(f"WebSocket {state.value} ({reason}). Reconnecting in {self.config.reconnect_delay}s")
        self._schedule_restart(self.config.reconnect_delay)

    def _schedule_restart(self, delay: float) -> bool:
        """
        Schedule a full restart (new listen key, new connection).

        Returns:
            bool: True if a new restart was scheduled
        """
        if self._closing:
            return False

        if self._reconnect_handle is not None:
            logger.debug("Restart already scheduled")
            return False

        max_attempts = self.config.max_reconnect_attempts
        if max_attempts is not None and self.reconnect_attempts >= max_attempts:
            logger.error(f"Giving up on user data stream after {self.reconnect_attempts} reconnect attempts")
            self._set_state(StreamState.IDLE)
            return False

        self.reconnect_attempts += 1
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay, self._begin_cycle)
        return True

    def get_status(self) -> Dict[str, Any]:
        """
        Get the current session status.

        Returns:
            Dict: Session status information
        """
        return {
            'state': self.state.value,
            'is_connected': self.is_connected,
            'listen_key': self.stream_credential is not None,
            'reconnect_pending': self.reconnect_pending,
            'reconnect_attempts': self.reconnect_attempts,
            'credential_failures': self.credential_failures,
            'fills_received': len(self.user_data_handler.fill_history),
            'registered_handlers': self.event_dispatcher.get_registered_handlers()
        }

"""
WebSocket module for the Binance user-data stream.
Provides the stream session, event dispatching and payload handling.
"""

from .core.stream_session import StreamSession, StreamState
from .core.event_dispatcher import EventDispatcher, FILL_EVENT
from .core.websocket_config import WebSocketConfig
from .handlers.user_data_handler import UserDataHandler
from .handlers.handler_models import ExecutionReport, FillEvent

__all__ = [
    'StreamSession',
    'StreamState',
    'EventDispatcher',
    'FILL_EVENT',
    'WebSocketConfig',
    'UserDataHandler',
    'ExecutionReport',
    'FillEvent'
]

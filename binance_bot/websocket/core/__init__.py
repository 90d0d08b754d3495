from .event_dispatcher import EventDispatcher, FILL_EVENT
from .stream_session import StreamSession, StreamState
from .websocket_config import WebSocketConfig

__all__ = [
    'EventDispatcher',
    'FILL_EVENT',
    'StreamSession',
    'StreamState',
    'WebSocketConfig'
]

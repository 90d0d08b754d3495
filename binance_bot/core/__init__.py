from .exceptions import (
    ErrorCode, BinanceBotError, ConfigurationError, NetworkError,
    ExchangeAPIError, AuthenticationError, ExchangeResponseError,
    MalformedMessageError, ComputationError
)

__all__ = [
    'ErrorCode',
    'BinanceBotError',
    'ConfigurationError',
    'NetworkError',
    'ExchangeAPIError',
    'AuthenticationError',
    'ExchangeResponseError',
    'MalformedMessageError',
    'ComputationError'
]

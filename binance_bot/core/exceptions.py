"""
Standardized exceptions for consistent error handling across services.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Standardized error codes for consistent error handling."""
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    EXCHANGE_ERROR = "EXCHANGE_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    NETWORK_ERROR = "NETWORK_ERROR"
    MALFORMED_MESSAGE = "MALFORMED_MESSAGE"
    COMPUTATION_ERROR = "COMPUTATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class BinanceBotError(Exception):
    """Base class for all errors raised by the bot."""

    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary format."""
        result = {
            "error": self.message,
            "error_code": self.error_code.value,
        }
        if self.context:
            result["context"] = self.context
        return result


class ConfigurationError(BinanceBotError):
    """Missing or invalid configuration. Permanent, never retried."""
    error_code = ErrorCode.CONFIGURATION_ERROR


class NetworkError(BinanceBotError):
    """Transport failure (connection refused, DNS, timeout)."""
    error_code = ErrorCode.NETWORK_ERROR


class ExchangeAPIError(BinanceBotError):
    """The venue answered with a non-2xx status."""
    error_code = ErrorCode.EXCHANGE_ERROR

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
        code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context)
        self.status = status
        self.body = body
        self.code = code

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["status"] = self.status
        result["body"] = self.body
        if self.code is not None:
            result["code"] = self.code
        return result


class AuthenticationError(ExchangeAPIError):
    """The venue rejected the API key or the request signature."""
    error_code = ErrorCode.AUTHENTICATION_ERROR


class ExchangeResponseError(ExchangeAPIError):
    """The venue answered 2xx but the body could not be decoded."""
    error_code = ErrorCode.INVALID_RESPONSE


class MalformedMessageError(BinanceBotError):
    """A stream payload could not be parsed."""
    error_code = ErrorCode.MALFORMED_MESSAGE


class ComputationError(BinanceBotError):
    """Degenerate numeric input for a single P&L computation."""
    error_code = ErrorCode.COMPUTATION_ERROR

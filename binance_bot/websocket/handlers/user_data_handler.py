"""
User data handler for processing user account-related WebSocket events.
Turns raw stream payloads into execution reports and fill events.
"""

import json
import logging
from typing import Dict, Any, Optional, List

from ...core.exceptions import MalformedMessageError
from .handler_models import ExecutionReport, FillEvent

logger = logging.getLogger(__name__)

EXECUTION_REPORT_EVENT = "executionReport"

MAX_HISTORY = 1000


class UserDataHandler:
    """
    Handles user data events from the WebSocket stream.
    """

    def __init__(self):
        """Initialize user data handler."""
        self.fill_history: List[FillEvent] = []

    @staticmethod
    def parse_message(message: Any) -> Dict[str, Any]:
        """
        Decode one raw stream message.

        Args:
            message: Raw text (or bytes) frame

        Returns:
            Dict: Decoded JSON object

        Raises:
            MalformedMessageError: frame is not a JSON object
        """
        if isinstance(message, (bytes, bytearray)):
            try:
                message = message.decode('utf-8')
            except UnicodeDecodeError as e:
                raise MalformedMessageError(f"Stream frame is not UTF-8: {e}") from e

        try:
            data = json.loads(message)
        except (TypeError, ValueError) as e:
            raise MalformedMessageError(
                f"Stream frame is not valid JSON: {e}",
                context={'message': str(message)[:200]}
            ) from e

        if not isinstance(data, dict):
            raise MalformedMessageError(
                f"Stream frame is not a JSON object: {type(data).__name__}",
                context={'message': str(message)[:200]}
            )
        return data

    @staticmethod
    def parse_execution_report(event_data: Dict[str, Any]) -> Optional[ExecutionReport]:
        """
        Extract an execution report from a decoded payload.

        Returns:
            Optional[ExecutionReport]: None for any other event type
        """
        if event_data.get('e') != EXECUTION_REPORT_EVENT:
            return None

        order_id = event_data.get('i')
        return ExecutionReport(
            symbol=event_data.get('s', ''),
            side=event_data.get('S', ''),
            status=event_data.get('X', ''),
            quantity=str(event_data.get('q', '0')),
            price=str(event_data.get('p', '0')),
            order_id=str(order_id) if order_id is not None else None,
            order_type=event_data.get('o'),
            event_time=event_data.get('E')
        )

    def handle_message(self, message: Any) -> Optional[FillEvent]:
        """
        Process one raw stream message.

        Args:
            message: Raw frame from the connection

        Returns:
            Optional[FillEvent]: Set only for FILLED execution reports

        Raises:
            MalformedMessageError: frame could not be decoded
        """
        event_data = self.parse_message(message)

        report = self.parse_execution_report(event_data)
        if report is None:
            logger.debug(f"Ignoring stream event: {event_data.get('e', 'unknown')}")
            return None

        logger.debug(f"Execution Report: {report.symbol} {report.order_id} - {report.status}")

        if not report.is_filled:
            return None

        fill = report.to_fill_event()
        logger.info(f"✅ Order FILLED: {fill.side} {fill.symbol} {fill.quantity} @ {fill.price}")

        self.fill_history.append(fill)
        if len(self.fill_history) > MAX_HISTORY:
            self.fill_history = self.fill_history[-MAX_HISTORY:]

        return fill

    def get_fill_history(self, symbol: Optional[str] = None, limit: int = 100) -> List[FillEvent]:
        """
        Get fills seen on the stream.

        Args:
            symbol: Filter by symbol (optional)
            limit: Maximum number of records to return
        """
        history = self.fill_history

        if symbol:
            history = [fill for fill in history if fill.symbol == symbol]

        return history[-limit:]

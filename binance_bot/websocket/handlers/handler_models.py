"""
Data models for WebSocket handlers.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional


@dataclass(frozen=True)
class FillEvent:
    """An order that reached FILLED on the user-data stream."""
    symbol: str
    side: str
    quantity: str
    price: str
    order_id: Optional[str] = None
    event_time: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'side': self.side,
            'quantity': self.quantity,
            'price': self.price,
            'order_id': self.order_id,
            'event_time': self.event_time
        }


@dataclass(frozen=True)
class ExecutionReport:
    """Model for executionReport events."""
    symbol: str
    side: str
    status: str
    quantity: str
    price: str
    order_id: Optional[str] = None
    order_type: Optional[str] = None
    event_time: Optional[int] = None

    @property
    def is_filled(self) -> bool:
        return self.status == "FILLED"

    def to_fill_event(self) -> FillEvent:
        return FillEvent(
            symbol=self.symbol,
            side=self.side,
            quantity=self.quantity,
            price=self.price,
            order_id=self.order_id,
            event_time=self.event_time
        )

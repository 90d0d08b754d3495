from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Dict, Any

from ...exchange.binance.binance_models import Order


@dataclass(frozen=True)
class OrderWithPnL:
    """An open order with its unrealized P&L against the current market price"""
    order: Order
    current_price: Optional[str] = None
    profit_loss: Optional[str] = None
    profit_loss_percent: Optional[str] = None
    # Unrounded values, kept for aggregation
    profit_loss_value: Optional[Decimal] = field(default=None, repr=False, compare=False)
    profit_loss_percent_value: Optional[Decimal] = field(default=None, repr=False, compare=False)

    @property
    def has_pnl(self) -> bool:
        return self.profit_loss is not None

    @property
    def symbol(self) -> str:
        return self.order.symbol

    def to_dict(self) -> Dict[str, Any]:
        result = self.order.to_dict()
        if self.has_pnl:
            result['currentPrice'] = self.current_price
            result['profitLoss'] = self.profit_loss
            result['profitLossPercent'] = self.profit_loss_percent
        return result


@dataclass(frozen=True)
class PnLResult:
    """Unrounded P&L figures for one order"""
    profit_loss: Decimal
    profit_loss_percent: Decimal
    capped: bool = False


@dataclass(frozen=True)
class PnLSummary:
    """Aggregate P&L across a batch of open orders"""
    total_orders: int
    priced_orders: int
    unpriced_orders: int
    total_notional: str
    total_profit_loss: str
    total_profit_loss_percent: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalOrders': self.total_orders,
            'pricedOrders': self.priced_orders,
            'unpricedOrders': self.unpriced_orders,
            'totalNotional': self.total_notional,
            'totalProfitLoss': self.total_profit_loss,
            'totalProfitLossPercent': self.total_profit_loss_percent
        }


@dataclass
class AnalyticsConfig:
    """Configuration for P&L analytics"""
    # SELL-side P&L is clamped to this share of the order notional
    sell_cap_ratio: Decimal = Decimal("0.2")
    money_decimal_places: int = 2

    def __post_init__(self):
        if self.sell_cap_ratio < 0:
            raise ValueError("Sell cap ratio cannot be negative")
        if self.money_decimal_places < 0:
            raise ValueError("Decimal places cannot be negative")

    @property
    def money_quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.money_decimal_places)

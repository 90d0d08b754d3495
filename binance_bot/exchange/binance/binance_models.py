"""
Binance Data Models

Data models for Binance spot account operations.
Numeric fields keep the venue's decimal strings; Decimal accessors are
provided for arithmetic.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Mapping
from decimal import Decimal

from ...core.exceptions import ConfigurationError


SIDE_BUY = "BUY"
SIDE_SELL = "SELL"

ORDER_STATUS_NEW = "NEW"
ORDER_STATUS_PARTIALLY_FILLED = "PARTIALLY_FILLED"
ORDER_STATUS_FILLED = "FILLED"
ORDER_STATUS_CANCELED = "CANCELED"


def to_decimal(value: Any) -> Decimal:
    """Convert a venue value (str, int, float) to Decimal without float noise."""
    return Decimal(str(value))


@dataclass(frozen=True)
class Credential:
    """API key pair. Immutable for the lifetime of the client."""

    api_key: str
    api_secret: str = field(repr=False)

    def __post_init__(self):
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError("Binance API key is missing")
        if not self.api_secret or not self.api_secret.strip():
            raise ConfigurationError("Binance API secret is missing")

    @property
    def masked_key(self) -> str:
        """API key safe for logs."""
        if len(self.api_key) <= 15:
            return "***"
        return f"{self.api_key[:10]}...{self.api_key[-5:]}"


@dataclass(frozen=True)
class StreamCredential:
    """Listen key authorizing one user-data stream connection."""

    listen_key: str = field(repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'StreamCredential':
        listen_key = data.get('listenKey')
        if not listen_key:
            raise ValueError("Response does not contain a listenKey")
        return cls(listen_key=str(listen_key))


@dataclass(frozen=True)
class Balance:
    """Data model for a spot asset balance."""

    asset: str
    free: str
    locked: str

    @property
    def free_amount(self) -> Decimal:
        return to_decimal(self.free)

    @property
    def locked_amount(self) -> Decimal:
        return to_decimal(self.locked)

    @property
    def total(self) -> Decimal:
        return self.free_amount + self.locked_amount

    @property
    def is_active(self) -> bool:
        """True when anything is free or locked."""
        return self.free_amount > 0 or self.locked_amount > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'asset': self.asset,
            'free': self.free,
            'locked': self.locked
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Balance':
        """Create from dictionary representation."""
        return cls(
            asset=data.get('asset', ''),
            free=str(data.get('free', '0')),
            locked=str(data.get('locked', '0'))
        )


@dataclass(frozen=True)
class Order:
    """Data model for Binance order information."""

    symbol: str
    order_id: str
    price: str
    orig_qty: str
    executed_qty: str
    status: str
    order_type: str
    side: str
    time: Optional[int] = None
    # Only set for rows that came from the trade history endpoint
    trade_id: Optional[str] = None
    commission: Optional[str] = None
    commission_asset: Optional[str] = None

    @property
    def price_amount(self) -> Decimal:
        return to_decimal(self.price)

    @property
    def quantity(self) -> Decimal:
        return to_decimal(self.orig_qty)

    @property
    def notional(self) -> Decimal:
        return self.price_amount * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        result = {
            'symbol': self.symbol,
            'orderId': self.order_id,
            'price': self.price,
            'origQty': self.orig_qty,
            'executedQty': self.executed_qty,
            'status': self.status,
            'type': self.order_type,
            'side': self.side,
            'time': self.time
        }
        if self.trade_id is not None:
            result['tradeId'] = self.trade_id
            result['commission'] = self.commission
            result['commissionAsset'] = self.commission_asset
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Order':
        """Create from an openOrders row."""
        return cls(
            symbol=data.get('symbol', ''),
            order_id=str(data.get('orderId', '')),
            price=str(data.get('price', '0')),
            orig_qty=str(data.get('origQty', '0')),
            executed_qty=str(data.get('executedQty', '0')),
            status=data.get('status', ORDER_STATUS_NEW),
            order_type=data.get('type', ''),
            side=data.get('side', ''),
            time=data.get('time')
        )

    @classmethod
    def from_trade_dict(cls, data: Mapping[str, Any]) -> 'Order':
        """
        Create from a myTrades row.

        A trade is a filled leg of an order, so status is FILLED and the
        traded quantity is both the original and the executed quantity.
        """
        qty = str(data.get('qty', '0'))
        return cls(
            symbol=data.get('symbol', ''),
            order_id=str(data.get('orderId', '')),
            price=str(data.get('price', '0')),
            orig_qty=qty,
            executed_qty=qty,
            status=ORDER_STATUS_FILLED,
            order_type='',
            side=SIDE_BUY if data.get('isBuyer') else SIDE_SELL,
            time=data.get('time'),
            trade_id=str(data.get('id', '')),
            commission=str(data.get('commission', '0')),
            commission_asset=data.get('commissionAsset', '')
        )


@dataclass(frozen=True)
class MarketPrice:
    """Latest price for one symbol."""

    symbol: str
    price: str

    @property
    def price_amount(self) -> Decimal:
        return to_decimal(self.price)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'MarketPrice':
        return cls(symbol=data.get('symbol', ''), price=str(data.get('price', '0')))


@dataclass(frozen=True)
class AccountSnapshot:
    """Spot account information as returned by /api/v3/account."""

    balances: List[Balance]
    can_trade: bool = False
    can_withdraw: bool = False
    can_deposit: bool = False
    account_type: str = ""
    update_time: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def active_balances(self) -> List[Balance]:
        return [balance for balance in self.balances if balance.is_active]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'AccountSnapshot':
        """Create from dictionary representation."""
        return cls(
            balances=[Balance.from_dict(b) for b in data.get('balances', [])],
            can_trade=bool(data.get('canTrade', False)),
            can_withdraw=bool(data.get('canWithdraw', False)),
            can_deposit=bool(data.get('canDeposit', False)),
            account_type=data.get('accountType', ''),
            update_time=data.get('updateTime'),
            raw=dict(data)
        )

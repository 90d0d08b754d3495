import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Dict, Iterable, List, Optional, Sequence

from ...core.exceptions import ComputationError
from ...exchange.binance.binance_client import BinanceClient
from ...exchange.binance.binance_models import Order, MarketPrice, SIDE_BUY, SIDE_SELL, to_decimal
from .analytics_models import OrderWithPnL, PnLResult, PnLSummary, AnalyticsConfig

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


class OrderPnLCalculator:
    """Joins open orders with live market prices and computes unrealized P&L"""

    def __init__(self, client: BinanceClient, config: Optional[AnalyticsConfig] = None):
        """Initialize the P&L calculator"""
        self.client = client
        self.config = config or AnalyticsConfig()

    async def get_open_orders_with_pnl(self, symbol: Optional[str] = None) -> List[OrderWithPnL]:
        """
        Get open orders with P&L against current prices

        Orders are fetched first; prices for exactly the symbols found are
        fetched in one call afterwards. Nothing is fetched for prices when
        there are no open orders.

        Args:
            symbol: Restrict to one symbol (optional)

        Returns:
            Orders in venue order, with P&L fields where a price was found
        """
        orders = await self.client.get_open_orders(symbol)
        if not orders:
            return []

        symbols = {order.symbol for order in orders}
        prices = await self.client.get_current_prices(symbols)

        return self.attach_pnl(orders, prices)

    def attach_pnl(self, orders: Sequence[Order], prices: Iterable[MarketPrice]) -> List[OrderWithPnL]:
        """
        Combine orders with a batch of market prices

        Args:
            orders: Open orders
            prices: Prices fetched in the same batch

        Returns:
            One OrderWithPnL per order, in the same order
        """
        price_by_symbol: Dict[str, MarketPrice] = {price.symbol: price for price in prices}
        results = []

        for order in orders:
            market_price = price_by_symbol.get(order.symbol)
            if market_price is None:
                logger.debug(f"No market price for {order.symbol}, order {order.order_id} left without P&L")
                results.append(OrderWithPnL(order=order))
                continue

            try:
                pnl = self.calculate_order_pnl(order, market_price.price_amount)
                item = OrderWithPnL(
                    order=order,
                    current_price=market_price.price,
                    profit_loss=self.format_money(pnl.profit_loss),
                    profit_loss_percent=self.format_money(pnl.profit_loss_percent),
                    profit_loss_value=pnl.profit_loss,
                    profit_loss_percent_value=pnl.profit_loss_percent
                )
            except (ComputationError, InvalidOperation) as e:
                logger.warning(f"Skipping P&L for order {order.order_id} ({order.symbol}): {e!r}")
                item = OrderWithPnL(order=order)

            results.append(item)

        return results

    def calculate_order_pnl(self, order: Order, current_price: Decimal) -> PnLResult:
        """
        Calculate unrealized P&L for one order

        BUY: (current - price) * quantity.
        SELL: (price - current) * quantity, clamped to +/- sell_cap_ratio of
        the order notional. The percentage is never clamped.

        Args:
            order: Open order
            current_price: Current market price

        Returns:
            PnLResult with unrounded values

        Raises:
            ComputationError: zero order price, non-numeric or non-finite input,
                or unknown side
        """
        try:
            order_price = order.price_amount
            quantity = order.quantity
        except InvalidOperation as e:
            raise ComputationError(
                f"Order {order.order_id} has non-numeric price or quantity",
                context={'price': order.price, 'quantity': order.orig_qty}
            ) from e

        for name, value in (('price', order_price), ('quantity', quantity), ('current price', current_price)):
            if not value.is_finite():
                raise ComputationError(
                    f"Order {order.order_id} has non-finite {name} {value}",
                    context={'symbol': order.symbol}
                )

        if order_price == 0:
            raise ComputationError(
                f"Order {order.order_id} has zero price",
                context={'symbol': order.symbol}
            )

        side = order.side.upper()
        if side == SIDE_BUY:
            difference = current_price - order_price
        elif side == SIDE_SELL:
            difference = order_price - current_price
        else:
            raise ComputationError(f"Order {order.order_id} has unknown side {order.side!r}")

        profit_loss = difference * quantity
        profit_loss_percent = difference / order_price * HUNDRED
        capped = False

        if side == SIDE_SELL:
            cap = abs(order_price * quantity * self.config.sell_cap_ratio)
            clamped = max(-cap, min(cap, profit_loss))
            capped = clamped != profit_loss
            profit_loss = clamped

        if not (profit_loss.is_finite() and profit_loss_percent.is_finite()):
            raise ComputationError(f"Order {order.order_id} P&L is not finite", context={'symbol': order.symbol})

        return PnLResult(
            profit_loss=profit_loss,
            profit_loss_percent=profit_loss_percent,
            capped=capped
        )

    def summarize(self, orders_with_pnl: Sequence[OrderWithPnL]) -> PnLSummary:
        """
        Aggregate P&L across a batch

        Args:
            orders_with_pnl: Result of get_open_orders_with_pnl

        Returns:
            PnLSummary over the priced orders
        """
        priced = [item for item in orders_with_pnl if item.profit_loss_value is not None]

        total_notional = sum((item.order.notional for item in priced), Decimal(0))
        total_profit_loss = sum((item.profit_loss_value for item in priced), Decimal(0))

        total_percent = None
        if total_notional != 0:
            total_percent = self.format_money(total_profit_loss / total_notional * HUNDRED)

        return PnLSummary(
            total_orders=len(orders_with_pnl),
            priced_orders=len(priced),
            unpriced_orders=len(orders_with_pnl) - len(priced),
            total_notional=self.format_money(total_notional),
            total_profit_loss=self.format_money(total_profit_loss),
            total_profit_loss_percent=total_percent
        )

    def format_money(self, value: Decimal) -> str:
        """Round to the configured money precision, half up, without negative zero"""
        value = to_decimal(value)
        with localcontext() as ctx:
            # quantize needs every integer digit plus the decimal places
            ctx.prec = max(ctx.prec, value.adjusted() + self.config.money_decimal_places + 2)
            rounded = value.quantize(self.config.money_quantum, rounding=ROUND_HALF_UP)
        if rounded == 0:
            rounded = abs(rounded)
        return str(rounded)

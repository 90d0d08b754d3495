from datetime import datetime, timezone
from typing import Optional, Sequence

from ...exchange.binance.binance_models import Balance, Order
from ...websocket.handlers.handler_models import FillEvent
from ..analytics.analytics_models import OrderWithPnL, PnLSummary

COMMANDS_TEXT = """Available commands:
/balance - Get your wallet balance
/orders - Get your open orders
/pnl - Get open orders with profit/loss
/history [SYMBOL] - Get your recent trades
/help - Show this help message"""


def _format_time(timestamp_ms: Optional[int]) -> str:
    if not timestamp_ms:
        return "n/a"
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


def _pnl_emoji(value: str) -> str:
    return "🔴" if value.startswith("-") else "🟢"


class MessageFormatter:
    """Handles formatting of plain-text reports and notifications"""

    @staticmethod
    def format_welcome() -> str:
        return (
            "🚀 Welcome to Binance Telegram Bot!\n\n"
            f"{COMMANDS_TEXT}\n\n"
            "Your bot is now connected to Binance! 📈"
        )

    @staticmethod
    def format_help() -> str:
        return (
            "🤖 Binance Telegram Bot Help\n\n"
            "/start - Start the bot and see welcome message\n"
            f"{COMMANDS_TEXT}\n\n"
            "The bot connects to your Binance account and provides real-time "
            "information about your trading activities."
        )

    @staticmethod
    def format_unknown_command() -> str:
        return "Unknown command. Use /help to see available commands."

    @staticmethod
    def format_balances(balances: Sequence[Balance]) -> str:
        """Format wallet balances, 8 decimal places"""
        if not balances:
            return "💰 No balances found in your wallet."

        message = "💰 Wallet Balance:\n\n"
        for balance in balances:
            message += f"{balance.asset}:\n"
            message += f"  Free: {balance.free_amount:.8f}\n"
            message += f"  Locked: {balance.locked_amount:.8f}\n"
            message += f"  Total: {balance.total:.8f}\n\n"

        return message.rstrip()

    @staticmethod
    def format_open_orders(orders: Sequence[Order]) -> str:
        if not orders:
            return "📋 No open orders found."

        message = "📋 Open Orders:\n\n"
        for order in orders:
            message += f"{order.symbol} {order.side}\n"
            message += f"  Price: {order.price}\n"
            message += f"  Quantity: {order.orig_qty}\n"
            message += f"  Status: {order.status}\n"
            message += f"  Type: {order.order_type}\n\n"

        return message.rstrip()

    @staticmethod
    def format_orders_with_pnl(items: Sequence[OrderWithPnL], summary: Optional[PnLSummary] = None) -> str:
        """Format open orders with their P&L, followed by the summary when given"""
        if not items:
            return "📋 No open orders found."

        message = "📊 Open Orders P&L:\n\n"
        for item in items:
            order = item.order
            message += f"{order.symbol} {order.side}\n"
            message += f"  Price: {order.price}\n"
            message += f"  Quantity: {order.orig_qty}\n"
            if item.has_pnl:
                message += f"  Current Price: {item.current_price}\n"
                message += f"  P&L: {_pnl_emoji(item.profit_loss)} {item.profit_loss} ({item.profit_loss_percent}%)\n\n"
            else:
                message += "  P&L: n/a (no market price)\n\n"

        if summary is not None:
            message += MessageFormatter.format_pnl_summary(summary)

        return message.rstrip()

    @staticmethod
    def format_pnl_summary(summary: PnLSummary) -> str:
        message = "💼 Summary:\n"
        message += f"  Orders: {summary.total_orders} ({summary.priced_orders} priced)\n"
        message += f"  Notional: {summary.total_notional}\n"
        message += f"  Total P&L: {_pnl_emoji(summary.total_profit_loss)} {summary.total_profit_loss}"
        if summary.total_profit_loss_percent is not None:
            message += f" ({summary.total_profit_loss_percent}%)"
        return message

    @staticmethod
    def format_order_history(orders: Sequence[Order]) -> str:
        if not orders:
            return "🕘 No recent trades found."

        message = "🕘 Recent Trades:\n\n"
        for order in orders:
            message += f"{order.symbol} {order.side}\n"
            message += f"  Price: {order.price}\n"
            message += f"  Quantity: {order.executed_qty}\n"
            if order.commission is not None:
                message += f"  Commission: {order.commission} {order.commission_asset}\n"
            message += f"  Time: {_format_time(order.time)}\n\n"

        return message.rstrip()

    @staticmethod
    def format_fill_event(fill: FillEvent) -> str:
        return f"✅ Order FILLED: {fill.side} {fill.symbol} {fill.quantity} @ {fill.price}"

    @staticmethod
    def format_error(action: str) -> str:
        return f"❌ Failed to {action}. Please check your API credentials."

    @staticmethod
    def format_unexpected_error() -> str:
        return "❌ An error occurred while processing your request."

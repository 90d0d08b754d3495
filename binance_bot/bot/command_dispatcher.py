import logging
from typing import Awaitable, Callable, Optional

from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from ..core.exceptions import BinanceBotError
from ..exchange.binance.binance_client import BinanceClient
from ..services.analytics.pnl_calculator import OrderPnLCalculator
from ..services.notifications.message_formatter import MessageFormatter

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Answers Telegram chat commands with account reports"""

    def __init__(
        self,
        client: BinanceClient,
        pnl_calculator: OrderPnLCalculator,
        formatter: Optional[MessageFormatter] = None
    ):
        self.client = client
        self.pnl_calculator = pnl_calculator
        self.formatter = formatter or MessageFormatter()

    def register(self, application: Application) -> None:
        """Attach command handlers to a telegram Application"""
        application.add_handler(CommandHandler("start", self.start))
        application.add_handler(CommandHandler("help", self.help))
        application.add_handler(CommandHandler("balance", self.balance))
        application.add_handler(CommandHandler("orders", self.orders))
        application.add_handler(CommandHandler("pnl", self.pnl))
        application.add_handler(CommandHandler("history", self.history))
        # Anything else that looks like a command
        application.add_handler(MessageHandler(filters.COMMAND, self.unknown))
        application.add_error_handler(self.on_error)
        logger.info("Telegram command handlers registered")

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._reply(update, self.formatter.format_welcome())

    async def help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._reply(update, self.formatter.format_help())

    async def unknown(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._reply(update, self.formatter.format_unknown_command())

    async def balance(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        async def build() -> str:
            balances = await self.client.get_wallet_balance()
            return self.formatter.format_balances(balances)

        await self._run_report(update, "get wallet balance", build)

    async def orders(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        async def build() -> str:
            orders = await self.client.get_open_orders(self._symbol_argument(context))
            return self.formatter.format_open_orders(orders)

        await self._run_report(update, "get open orders", build)

    async def pnl(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        async def build() -> str:
            items = await self.pnl_calculator.get_open_orders_with_pnl(self._symbol_argument(context))
            summary = self.pnl_calculator.summarize(items) if items else None
            return self.formatter.format_orders_with_pnl(items, summary)

        await self._run_report(update, "get orders with P&L", build)

    async def history(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        async def build() -> str:
            trades = await self.client.get_order_history(self._symbol_argument(context))
            return self.formatter.format_order_history(trades)

        await self._run_report(update, "get order history", build)

    async def _run_report(self, update: Update, action: str, build: Callable[[], Awaitable[str]]) -> None:
        """
        Build a report and reply with it

        Args:
            update: Incoming Telegram update
            action: Human readable name used in the failure reply
            build: Coroutine factory producing the report text
        """
        try:
            text = await build()
        except BinanceBotError as e:
            logger.error(f"Command failed to {action}: {e}")
            text = self.formatter.format_error(action)
        except Exception:
            logger.exception(f"Unexpected error while trying to {action}")
            text = self.formatter.format_unexpected_error()
        await self._reply(update, text)

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Last resort for errors raised outside the report builders"""
        logger.error(f"Error while handling Telegram update: {context.error}", exc_info=context.error)
        if isinstance(update, Update):
            await self._reply(update, self.formatter.format_unexpected_error())

    @staticmethod
    def _symbol_argument(context: ContextTypes.DEFAULT_TYPE) -> Optional[str]:
        args = getattr(context, "args", None) or []
        return args[0].upper() if args else None

    @staticmethod
    async def _reply(update: Update, text: str) -> None:
        if update.message is None:
            return
        await update.message.reply_text(text)

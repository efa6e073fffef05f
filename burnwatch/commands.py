"""Read-only chat commands: /price, /rank, /start.

Thin glue over the same oracles and rank table the alerts use.
"""

from __future__ import annotations

import logging

from telegram import LinkPreviewOptions, Update
from telegram.constants import ParseMode
from telegram.ext import Application, CommandHandler, ContextTypes

from burnwatch import formatting
from burnwatch.config import AlertSettings, TokenSettings
from burnwatch.oracles import PriceOracle, SupplyOracle, market_cap
from burnwatch.ranks import RankTable

log = logging.getLogger("burnwatch.commands")


class CommandReplies:
    """Builds reply texts; kept separate from Telegram for testing."""

    def __init__(
        self,
        token: TokenSettings,
        alerts: AlertSettings,
        prices: PriceOracle,
        supply: SupplyOracle,
        ranks: RankTable,
    ):
        self.token = token
        self.alerts = alerts
        self.prices = prices
        self.supply = supply
        self.ranks = ranks

    async def price(self) -> str:
        quote = await self.prices.get_price()
        if quote is None:
            return formatting.price_reply(symbol=self.token.symbol, price=None, market_cap=0.0,
                                          supply=self.supply.metrics(self.token.total_supply))
        metrics = await self.supply.get_metrics()
        return formatting.price_reply(
            symbol=self.token.symbol,
            price=quote,
            market_cap=market_cap(quote, metrics.current_supply),
            supply=metrics,
        )

    def rank(self) -> str:
        lowest, highest = self.ranks.tiers[-1], self.ranks.tiers[0]
        return formatting.rank_reply(
            symbol=self.token.symbol,
            lowest=(lowest.name, lowest.minimum_balance),
            highest=(highest.name, highest.minimum_balance),
            tier_count=len(self.ranks),
            alerts=self.alerts,
        )

    def start(self) -> str:
        return formatting.start_reply(symbol=self.token.symbol, alerts=self.alerts)


def register_commands(application: Application, replies: CommandReplies) -> None:
    """Attach /price, /rank and /start handlers to a PTB application."""

    async def _reply(update: Update, text: str) -> None:
        message = update.effective_message
        if message is None:
            return
        await message.reply_text(text, parse_mode=ParseMode.HTML, link_preview_options=LinkPreviewOptions(is_disabled=True))

    async def price(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await _reply(update, await replies.price())

    async def rank(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await _reply(update, replies.rank())

    async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await _reply(update, replies.start())

    async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        log.warning("Command failed: %s", context.error)

    application.add_handlers([
        CommandHandler("price", price),
        CommandHandler("rank", rank),
        CommandHandler("start", start),
    ])
    application.add_error_handler(on_error)

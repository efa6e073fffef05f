"""Event -> notification.

Prices the event, applies the USD floors, derives supply metrics and the
buyer's rank, and renders the caption. Returns None whenever the alert
should be suppressed (price unavailable, below threshold).
"""

from __future__ import annotations

import logging

from burnwatch import formatting
from burnwatch.config import AlertSettings, TokenSettings
from burnwatch.models import Burn, Buy, Event
from burnwatch.notifier import QueuedNotification
from burnwatch.oracles import PriceOracle, SupplyOracle, market_cap
from burnwatch.ranks import RankTable, buy_emojis

log = logging.getLogger("burnwatch.alerts")


class AlertBuilder:
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

    def is_arbitrage(self, buy: Buy) -> bool:
        """Buyer ends below the active-holder balance: a bot round-trip."""
        return buy.resulting_balance < self.alerts.arb_balance_threshold

    async def build(self, event: Event) -> QueuedNotification | None:
        if isinstance(event, Burn):
            return await self.build_burn(event)
        if isinstance(event, Buy):
            return await self.build_buy(event)
        return None

    async def build_burn(self, burn: Burn) -> QueuedNotification | None:
        price = await self.prices.get_price()
        if price is None:
            log.info("Skipping burn %s, price unavailable", burn.signature)
            return None

        usd_value = burn.amount * price.usd
        metrics = await self.supply.get_metrics()
        caption = formatting.burn_caption(
            symbol=self.token.symbol,
            amount=burn.amount,
            usd_value=usd_value,
            supply=metrics,
            signature=burn.signature,
            alerts=self.alerts,
        )
        log.info("Burn detected: %.2f %s by %s", burn.amount, self.token.symbol, burn.actor)
        return QueuedNotification(image_url=self.alerts.burn_image_url, caption=caption, pin=True)

    async def build_buy(self, buy: Buy) -> QueuedNotification | None:
        price = await self.prices.get_price()
        if price is None:
            log.info("Skipping buy %s, price unavailable", buy.signature)
            return None

        usd_value = buy.amount * price.usd
        arbitrage = self.is_arbitrage(buy)
        floor = self.alerts.min_arb_usd if arbitrage else self.alerts.min_buy_usd
        if usd_value < floor:
            log.info("Skipping small %s: $%.2f", "arb" if arbitrage else "buy", usd_value)
            return None

        metrics = await self.supply.get_metrics()
        rank = self.ranks.rank_for(buy.resulting_balance)
        image = self.alerts.arb_image_url if arbitrage else self.ranks.image_url_for(rank)
        caption = formatting.buy_caption(
            symbol=self.token.symbol,
            emojis=buy_emojis(usd_value, arbitrage),
            amount=buy.amount,
            usd_value=usd_value,
            price=price,
            market_cap=market_cap(price, metrics.current_supply),
            supply=metrics,
            signature=buy.signature,
            buyer=buy.buyer,
            balance=buy.resulting_balance,
            rank=rank,
            arbitrage=arbitrage,
            alerts=self.alerts,
        )
        log.info(
            "Buy detected: %s %s ($%.2f) by %s...",
            formatting.format_number(buy.amount),
            self.token.symbol,
            usd_value,
            buy.buyer[:8],
        )
        return QueuedNotification(image_url=image, caption=caption)

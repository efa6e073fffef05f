"""Telegram HTML rendering for alerts and command replies."""

from __future__ import annotations

import math
from html import escape

from burnwatch.config import AlertSettings
from burnwatch.oracles import PriceSnapshot, SupplyMetrics


def format_number(n: float) -> str:
    if n >= 1_000_000:
        return f"{n / 1_000_000:.2f}M"
    if n >= 1_000:
        return f"{n / 1_000:.2f}K"
    return f"{n:.2f}"


def format_market_cap(n: float) -> str:
    if n >= 1_000_000:
        return f"{n / 1_000_000:.2f}M"
    if n >= 1_000:
        return f"{n / 1_000:.1f}K"
    return f"{n:.0f}"


def to_precision(x: float, digits: int = 4) -> str:
    """Fixed-point string with ``digits`` significant digits, trailing zeros kept."""
    if x == 0:
        return f"{0:.{digits - 1}f}"
    exponent = math.floor(math.log10(abs(x)))
    # rounding can carry into the next decade, e.g. 0.0099996 -> 0.01000
    if round(abs(x), digits - 1 - exponent) >= 10 ** (exponent + 1):
        exponent += 1
    return f"{x:.{max(0, digits - 1 - exponent)}f}"


def format_price(usd: float, decimals: int = 5) -> str:
    """Sub-cent prices keep 4 significant digits, the rest fixed decimals."""
    if usd < 0.01:
        return to_precision(usd, 4)
    return f"{usd:.{decimals}f}"


def link(url: str, label: str) -> str:
    return f'<a href="{escape(url, quote=True)}">{escape(label)}</a>'


def tx_url(alerts: AlertSettings, signature: str) -> str:
    return f"{alerts.explorer_url.rstrip('/')}/tx/{signature}"


def account_url(alerts: AlertSettings, address: str) -> str:
    return f"{alerts.explorer_url.rstrip('/')}/account/{address}"


def burn_caption(
    *,
    symbol: str,
    amount: float,
    usd_value: float,
    supply: SupplyMetrics,
    signature: str,
    alerts: AlertSettings,
) -> str:
    sym = escape(symbol)
    return (
        f"🔥🔥🔥 <b>{sym} BURNED</b> 🔥🔥🔥\n"
        f"\n"
        f"🗑️ <b>{format_number(amount)} {sym}</b> (${usd_value:.2f}) burned.\n"
        f"\n"
        f"🔥 Total Burned: {format_number(supply.burned)}\n"
        f"🟣 Supply: {format_number(supply.current_supply)}\n"
        f"\n"
        f"{link(alerts.chart_url, 'Chart')} | {link(tx_url(alerts, signature), 'TX')}"
    )


def buy_caption(
    *,
    symbol: str,
    emojis: str,
    amount: float,
    usd_value: float,
    price: PriceSnapshot,
    market_cap: float,
    supply: SupplyMetrics,
    signature: str,
    buyer: str,
    balance: float,
    rank: str,
    arbitrage: bool,
    alerts: AlertSettings,
) -> str:
    sym = escape(symbol)
    bought = f"💸 Bought {format_number(amount)} {sym} (${usd_value:.2f})"
    if not arbitrage:
        bought += f" ({link(account_url(alerts, buyer), 'View')})"

    lines = [
        emojis,
        bought,
        f"🟣 {sym} Price: ${format_price(price.usd)}",
        f"💰 Market Cap: ${format_market_cap(market_cap)}",
        f"🔥 Total Burned: {format_number(supply.burned)} {sym}",
        f"🔥 Burned: {supply.percent_burned:.3f}%",
        "📈 "
        + " | ".join(
            [
                link(alerts.chart_url, "Chart"),
                link(tx_url(alerts, signature), "TX"),
                link(alerts.website_url, "Web"),
            ]
        ),
    ]
    if arbitrage:
        lines.append("⚠️ Arbitrage Transaction")
    else:
        lines.append(f"⚖️ Balance: {format_number(balance)} {sym}")
        lines.append(f"🛡️ Rank: {sym} {escape(rank)}")
    return "\n".join(lines)


def price_reply(
    *,
    symbol: str,
    price: PriceSnapshot | None,
    market_cap: float,
    supply: SupplyMetrics,
) -> str:
    if price is None:
        return "⚠️ Price unavailable"
    sym = escape(symbol)
    return (
        f"🟣 <b>{sym} Price</b>\n\n"
        f"💵 ${format_price(price.usd, decimals=6)}\n"
        f"💰 Market Cap: ${format_market_cap(market_cap)}\n"
        f"🔥 Burned: {format_number(supply.burned)} ({supply.percent_burned:.2f}%)\n"
        f"📊 Supply: {format_number(supply.current_supply)}"
    )


def rank_reply(*, symbol: str, lowest: tuple[str, float], highest: tuple[str, float], tier_count: int, alerts: AlertSettings) -> str:
    sym = escape(symbol)
    return (
        f"🛡️ <b>{sym} Rank System</b>\n\n"
        f"Your rank is based on your {sym} balance after buying.\n"
        f"From 🧑‍🌾 <b>{sym} {escape(lowest[0])}</b> ({format_number(lowest[1])}+ {sym}) "
        f"to 👑 <b>{sym} {escape(highest[0])}</b> ({format_number(highest[1])}+ {sym}).\n\n"
        f"There are {tier_count} unique ranks, each with a custom character.\n"
        f"Buy {sym} to ascend through the ranks!\n\n"
        f"📈 {link(alerts.chart_url, 'Buy on DexScreener')}"
    )


def start_reply(*, symbol: str, alerts: AlertSettings) -> str:
    sym = escape(symbol)
    links = [f"🌐 {link(alerts.website_url, 'Website')}", f"📈 {link(alerts.chart_url, 'Chart')}"]
    if alerts.twitter_url:
        links.append(f"🐦 {link(alerts.twitter_url, 'Twitter')}")
    return (
        f"🟣 <b>Welcome to {sym}</b>\n\n"
        f"Every buy and burn of {sym}, live.\n\n"
        f"Commands:\n"
        f"/price - Current {sym} price &amp; stats\n"
        f"/rank - {sym} Rank system info\n\n"
        + " | ".join(links)
    )

"""Tests for number formatting and caption rendering."""

from __future__ import annotations

import pytest

from burnwatch import formatting
from burnwatch.config import AlertSettings
from burnwatch.oracles import PriceSnapshot, SupplyMetrics

ALERTS = AlertSettings()
SUPPLY = SupplyMetrics(current_supply=90_000_000, burned=10_000_000, percent_burned=10.0)
PRICE = PriceSnapshot(usd=0.0123, native=0.00006, captured_at=0)


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "0.00"),
        (12.3456, "12.35"),
        (2_500, "2.50K"),
        (1_234_567, "1.23M"),
    ],
)
def test_format_number(value, expected):
    assert formatting.format_number(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (999, "999"),
        (900_000, "900.0K"),
        (2_500_000, "2.50M"),
    ],
)
def test_format_market_cap(value, expected):
    assert formatting.format_market_cap(value) == expected


def test_format_price():
    assert formatting.format_price(0.0123) == "0.01230"
    assert formatting.format_price(1.5, decimals=2) == "1.50"


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.000012341, "0.00001234"),
        (0.0000123, "0.00001230"),
        (0.0012, "0.001200"),
        (0.0099996, "0.01000"),
        (0, "0.000"),
    ],
)
def test_sub_cent_prices_are_fixed_point(value, expected):
    """Four significant digits, never scientific notation."""
    assert formatting.format_price(value) == expected
    assert "e" not in formatting.format_price(value)


def test_to_precision_large_values():
    assert formatting.to_precision(1234.7) == "1235"
    assert formatting.to_precision(12.3456) == "12.35"


def test_link_escapes():
    html = formatting.link('https://x.org/?a=1&b="2"', "<Chart>")
    assert html == '<a href="https://x.org/?a=1&amp;b=&quot;2&quot;">&lt;Chart&gt;</a>'


class TestCaptions:
    """HTML captions for alerts."""

    def test_burn_caption(self):
        caption = formatting.burn_caption(
            symbol="VOID", amount=1_500, usd_value=18.45, supply=SUPPLY, signature="abc", alerts=ALERTS,
        )
        assert caption.startswith("🔥🔥🔥 <b>VOID BURNED</b>")
        assert "<b>1.50K VOID</b> ($18.45)" in caption
        assert "Total Burned: 10.00M" in caption
        assert 'href="https://solscan.io/tx/abc"' in caption

    def _buy(self, arbitrage: bool, price: PriceSnapshot = PRICE) -> str:
        return formatting.buy_caption(
            symbol="VOID",
            emojis="🟣🔥",
            amount=5_000,
            usd_value=61.5,
            price=price,
            market_cap=1_107_000,
            supply=SUPPLY,
            signature="abc",
            buyer="Buyer111",
            balance=12_000,
            rank="Acolyte",
            arbitrage=arbitrage,
            alerts=ALERTS,
        )

    def test_buy_caption(self):
        caption = self._buy(arbitrage=False)
        lines = caption.split("\n")
        assert lines[0] == "🟣🔥"
        assert lines[1].startswith("💸 Bought 5.00K VOID ($61.50)")
        assert 'href="https://solscan.io/account/Buyer111"' in lines[1]
        assert "🟣 VOID Price: $0.01230" in caption
        assert "💰 Market Cap: $1.11M" in caption
        assert lines[-2] == "⚖️ Balance: 12.00K VOID"
        assert lines[-1] == "🛡️ Rank: VOID Acolyte"

    def test_tiny_price_in_caption(self):
        """Sub-$0.0001 prices render in fixed point."""
        caption = self._buy(arbitrage=False, price=PriceSnapshot(usd=0.0000123, native=0, captured_at=0))
        assert [line for line in caption.split("\n") if "Price:" in line] == ["🟣 VOID Price: $0.00001230"]

    def test_burn_caption_uses_symbol_only(self):
        caption = formatting.burn_caption(
            symbol="ABC", amount=10, usd_value=1, supply=SUPPLY, signature="abc", alerts=ALERTS,
        )
        assert "<b>10.00 ABC</b> ($1.00) burned." in caption
        assert "Void" not in caption

    def test_arbitrage_caption(self):
        caption = self._buy(arbitrage=True)
        assert caption.endswith("⚠️ Arbitrage Transaction")
        assert "account/Buyer111" not in caption
        assert "Rank:" not in caption

    def test_symbol_is_escaped(self):
        caption = formatting.burn_caption(
            symbol="<V&D>", amount=1, usd_value=1, supply=SUPPLY, signature="abc", alerts=ALERTS,
        )
        assert "&lt;V&amp;D&gt; BURNED" in caption


class TestReplies:
    """Command reply texts."""

    def test_price_unavailable(self):
        assert formatting.price_reply(symbol="VOID", price=None, market_cap=0, supply=SUPPLY) == "⚠️ Price unavailable"

    def test_price_reply(self):
        text = formatting.price_reply(symbol="VOID", price=PRICE, market_cap=1_107_000, supply=SUPPLY)
        assert "💵 $0.012300" in text
        assert "(10.00%)" in text

    def test_price_reply_tiny_price(self):
        tiny = PriceSnapshot(usd=0.000012341, native=0, captured_at=0)
        text = formatting.price_reply(symbol="VOID", price=tiny, market_cap=1_110, supply=SUPPLY)
        assert "💵 $0.00001234\n" in text

    def test_start_reply_links(self):
        text = formatting.start_reply(symbol="VOID", alerts=AlertSettings(twitter_url="https://x.com/v"))
        assert "/price" in text
        assert "&amp; stats" in text
        assert ">Twitter</a>" in text
        assert ">Twitter</a>" not in formatting.start_reply(symbol="VOID", alerts=ALERTS)

"""Price and supply lookups.

PriceOracle keeps one cached snapshot from DexScreener for a short TTL;
SupplyOracle reads the mint supply from the ledger and derives the burn
metrics. Neither raises on lookup failure: the price degrades to None
(callers suppress the alert) and the supply to the launch total (0%
burned).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from burnwatch.clients.dexscreener import DexScreenerClient, best_pair
from burnwatch.clients.solana_rpc import SolanaRPCClient

log = logging.getLogger("burnwatch.oracles")


@dataclass(frozen=True)
class PriceSnapshot:
    usd: float
    native: float
    captured_at: float


@dataclass(frozen=True)
class SupplyMetrics:
    current_supply: float
    burned: float
    percent_burned: float


class PriceOracle:
    """USD / native price of the tracked mint, cached for ``ttl`` seconds."""

    def __init__(
        self,
        client: DexScreenerClient,
        mint: str,
        ttl: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.mint = mint
        self.ttl = ttl
        self.clock = clock
        self._snapshot: PriceSnapshot | None = None

    @property
    def snapshot(self) -> PriceSnapshot | None:
        return self._snapshot

    def _fresh(self, now: float) -> PriceSnapshot | None:
        snap = self._snapshot
        if snap is not None and now - snap.captured_at < self.ttl:
            return snap
        return None

    async def get_price(self) -> PriceSnapshot | None:
        cached = self._fresh(self.clock())
        if cached is not None:
            return cached

        try:
            pairs = await self.client.get_token_pairs(self.mint)
        except Exception as e:
            log.warning("Price fetch error: %s", e)
            return None

        pair = best_pair(pairs)
        if pair is None or not pair.get("priceUsd"):
            log.info("No priced pair listed for %s", self.mint)
            return None

        try:
            usd = float(pair["priceUsd"])
            native = float(pair.get("priceNative") or 0)
        except (TypeError, ValueError):
            log.warning("Unparseable price in pair %s", pair.get("pairAddress", "?"))
            return None

        snap = PriceSnapshot(usd=usd, native=native, captured_at=self.clock())
        self._snapshot = snap
        return snap


class SupplyOracle:
    """Current supply and burn metrics against the launch total."""

    def __init__(self, rpc: SolanaRPCClient, mint: str, total_supply: float):
        self.rpc = rpc
        self.mint = mint
        self.total_supply = total_supply

    async def get_supply(self) -> float:
        try:
            return await self.rpc.get_token_supply(self.mint)
        except Exception as e:
            log.warning("Supply fetch error, assuming launch supply: %s", e)
            return self.total_supply

    def metrics(self, current_supply: float) -> SupplyMetrics:
        burned = max(self.total_supply - current_supply, 0.0)
        return SupplyMetrics(
            current_supply=current_supply,
            burned=burned,
            percent_burned=burned / self.total_supply * 100,
        )

    async def get_metrics(self) -> SupplyMetrics:
        return self.metrics(await self.get_supply())


def market_cap(price: PriceSnapshot, current_supply: float) -> float:
    return price.usd * current_supply

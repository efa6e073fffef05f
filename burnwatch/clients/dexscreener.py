"""DexScreener API client (free, no-auth market data).

Endpoint:
- Token pairs (latest/dex/tokens/{mint}): every DEX pair listing the mint,
  with priceUsd / priceNative / liquidity.
"""

from __future__ import annotations

from typing import Any

import httpx

from burnwatch.clients.base import BaseClient


class DexScreenerClient:
    """DexScreener free API, no auth required.

    Rate limit: ~60 req/min (undocumented but generous for free tier).
    """

    BASE_URL = "https://api.dexscreener.com"

    def __init__(self, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        self._client = BaseClient(
            base_url=self.BASE_URL,
            headers={
                "Accept": "application/json",
                "User-Agent": "burnwatch/1.0",
            },
            rate_limit=1.0,
            timeout=timeout,
            provider_name="dexscreener",
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.close()

    async def get_token_pairs(self, token_address: str) -> list[dict[str, Any]]:
        """GET /latest/dex/tokens/{tokenAddress}: pairs for one token.

        Returns the raw pair objects (possibly empty):
        - baseToken, quoteToken, dexId, pairAddress, url
        - priceUsd, priceNative, liquidity.usd
        """
        data = await self._client.get(f"/latest/dex/tokens/{token_address}")
        if isinstance(data, list):
            return data
        if not isinstance(data, dict):
            return []
        return data.get("pairs") or []


def best_pair(pairs: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Pick the pair with the highest USD liquidity.

    Pairs without liquidity data count as zero, and ties keep API order,
    so the first listed pair wins when nothing better is known.
    """
    best: dict[str, Any] | None = None
    best_liq = -1.0
    for pair in pairs:
        if not isinstance(pair, dict):
            continue
        try:
            liq = float((pair.get("liquidity") or {}).get("usd", 0) or 0)
        except (TypeError, ValueError):
            liq = 0.0
        if liq > best_liq:
            best, best_liq = pair, liq
    return best

"""Solana JSON-RPC client.

Only the three calls the watcher needs:
- getSignaturesForAddress (paged signature stream for the mint)
- getTransaction (jsonParsed, with token balance snapshots)
- getTokenSupply (current mint supply)

Each call is a single attempt so that a 429 reaches the poll loop, which
owns the backoff policy.
"""

from __future__ import annotations

from typing import Any

import httpx

from burnwatch.clients.base import APIError, BaseClient, RateLimitedError
from burnwatch.models import SignatureInfo


class RPCError(APIError):
    """JSON-RPC error object in an otherwise successful HTTP response."""


class SolanaRPCClient:
    """Thin JSON-RPC wrapper over BaseClient."""

    def __init__(
        self,
        rpc_url: str,
        commitment: str = "confirmed",
        timeout: float = 15.0,
        rate_limit: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        # The URL is passed per request: provider URLs carry the API key as a
        # query string, which a base_url merge would mangle.
        self.rpc_url = rpc_url
        self.commitment = commitment
        self._client = BaseClient(
            rate_limit=rate_limit,
            timeout=timeout,
            provider_name="solana-rpc",
            transport=transport,
        )
        self._next_id = 0

    async def call(self, method: str, params: list[Any]) -> Any:
        """Issue one JSON-RPC call and return its ``result``."""
        self._next_id += 1
        body = await self._client.post(
            self.rpc_url,
            json_data={
                "jsonrpc": "2.0",
                "id": self._next_id,
                "method": method,
                "params": params,
            },
        )
        if not isinstance(body, dict):
            raise RPCError(f"{method}: malformed response", provider="solana-rpc")

        error = body.get("error")
        if error:
            code = error.get("code", 0) if isinstance(error, dict) else 0
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            if code == 429 or "429" in str(message) or "too many requests" in str(message).lower():
                raise RateLimitedError(f"{method}: {message}", provider="solana-rpc")
            raise RPCError(f"{method}: {message}", status_code=int(code or 0), provider="solana-rpc")

        return body.get("result")

    async def get_signatures_for_address(
        self,
        address: str,
        limit: int = 10,
        until: str | None = None,
    ) -> list[SignatureInfo]:
        """Newest-first page of signatures, stopping before ``until``."""
        options: dict[str, Any] = {"limit": limit, "commitment": self.commitment}
        if until:
            options["until"] = until
        result = await self.call("getSignaturesForAddress", [address, options])
        if not isinstance(result, list):
            return []
        return [SignatureInfo.from_rpc(item) for item in result if isinstance(item, dict) and item.get("signature")]

    async def get_transaction(self, signature: str) -> dict[str, Any] | None:
        """jsonParsed transaction, or None if the node doesn't have it."""
        return await self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "maxSupportedTransactionVersion": 0,
                    "commitment": self.commitment,
                },
            ],
        )

    async def get_token_supply(self, mint: str) -> float:
        """Current supply in whole tokens."""
        result = await self.call("getTokenSupply", [mint, {"commitment": self.commitment}])
        value = (result or {}).get("value") if isinstance(result, dict) else None
        if not isinstance(value, dict) or "amount" not in value:
            raise RPCError(f"getTokenSupply: no supply for {mint}", provider="solana-rpc")
        decimals = int(value.get("decimals", 0))
        return int(value["amount"]) / 10 ** decimals

    async def close(self) -> None:
        await self._client.close()

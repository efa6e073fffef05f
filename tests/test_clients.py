"""Tests for the HTTP clients against httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from burnwatch.clients.base import APIError, BaseClient, RateLimitedError
from burnwatch.clients.dexscreener import DexScreenerClient, best_pair
from burnwatch.clients.solana_rpc import RPCError, SolanaRPCClient
from tests.mocks.mock_dexscreener import NO_PAIRS_RESPONSE, TOKEN_PAIRS_RESPONSE
from tests.mocks.mock_rpc import MINT, POOL, RATE_LIMITED_RESPONSE, SIMPLE_BUY_TX, SUPPLY_RESPONSE, signature_page

RPC_URL = "https://rpc.example.org/?api-key=secret"


def _rpc_client(handler) -> SolanaRPCClient:
    return SolanaRPCClient(RPC_URL, rate_limit=1000, transport=httpx.MockTransport(handler))


class TestBaseClient:
    """Status code -> error mapping."""

    @pytest.mark.asyncio
    async def test_429_is_rate_limited(self):
        client = BaseClient(
            base_url="https://api.example.org",
            rate_limit=1000,
            provider_name="example",
            transport=httpx.MockTransport(lambda request: httpx.Response(429)),
        )
        with pytest.raises(RateLimitedError) as exc:
            await client.get("/x")
        assert exc.value.status_code == 429
        assert exc.value.retryable is True
        await client.close()

    @pytest.mark.asyncio
    async def test_5xx_is_retryable(self):
        client = BaseClient(
            base_url="https://api.example.org",
            rate_limit=1000,
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        with pytest.raises(APIError) as exc:
            await client.get("/x")
        assert exc.value.status_code == 503
        assert exc.value.retryable is True
        await client.close()

    @pytest.mark.asyncio
    async def test_4xx_is_final(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404, text="not found")

        client = BaseClient(
            base_url="https://api.example.org",
            rate_limit=1000,
            transport=httpx.MockTransport(handler),
        )
        with pytest.raises(APIError) as exc:
            await client.get("/x")
        assert exc.value.retryable is False
        assert len(calls) == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_server_error_is_single_attempt(self):
        """A 5xx surfaces to the caller without an in-client retry."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(502) if len(calls) == 1 else httpx.Response(200, json={"ok": True})

        client = BaseClient(base_url="https://api.example.org", rate_limit=1000, transport=httpx.MockTransport(handler))
        with pytest.raises(APIError) as exc:
            await client.get("/x")
        assert exc.value.status_code == 502
        assert len(calls) == 1
        assert await client.get("/x") == {"ok": True}
        await client.close()

    @pytest.mark.asyncio
    async def test_connection_error_is_retryable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = BaseClient(base_url="https://api.example.org", rate_limit=1000, transport=httpx.MockTransport(handler))
        with pytest.raises(APIError) as exc:
            await client.get("/x")
        assert exc.value.retryable is True
        await client.close()


class TestSolanaRPC:
    """JSON-RPC request shape and error mapping."""

    @pytest.mark.asyncio
    async def test_signatures_request(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": signature_page("b", "a")})

        client = _rpc_client(handler)
        page = await client.get_signatures_for_address(MINT, limit=10, until="z")
        await client.close()

        assert [i.signature for i in page] == ["b", "a"]
        assert seen["url"] == RPC_URL
        assert seen["body"]["method"] == "getSignaturesForAddress"
        assert seen["body"]["params"] == [MINT, {"limit": 10, "commitment": "confirmed", "until": "z"}]

    @pytest.mark.asyncio
    async def test_signatures_without_cursor(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": []})

        client = _rpc_client(handler)
        assert await client.get_signatures_for_address(MINT, limit=1) == []
        await client.close()
        assert "until" not in seen["body"]["params"][1]

    @pytest.mark.asyncio
    async def test_get_transaction(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": SIMPLE_BUY_TX})

        client = _rpc_client(handler)
        result = await client.get_transaction("sig1")
        await client.close()

        assert result["meta"]["preTokenBalances"][0]["owner"] == POOL
        options = seen["body"]["params"][1]
        assert options["encoding"] == "jsonParsed"
        assert options["maxSupportedTransactionVersion"] == 0

    @pytest.mark.asyncio
    async def test_token_supply(self):
        client = _rpc_client(lambda request: httpx.Response(200, json=SUPPLY_RESPONSE))
        assert await client.get_token_supply(MINT) == 90_000_000
        await client.close()

    @pytest.mark.asyncio
    async def test_jsonrpc_429_is_rate_limited(self):
        client = _rpc_client(lambda request: httpx.Response(200, json=RATE_LIMITED_RESPONSE))
        with pytest.raises(RateLimitedError):
            await client.get_signatures_for_address(MINT)
        await client.close()

    @pytest.mark.asyncio
    async def test_http_429_is_rate_limited(self):
        client = _rpc_client(lambda request: httpx.Response(429))
        with pytest.raises(RateLimitedError):
            await client.get_transaction("sig1")
        await client.close()

    @pytest.mark.asyncio
    async def test_other_rpc_error(self):
        body = {"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid param"}}
        client = _rpc_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(RPCError) as exc:
            await client.get_transaction("sig1")
        assert exc.value.status_code == -32602
        assert not isinstance(exc.value, RateLimitedError)
        await client.close()


class TestDexScreener:
    """Pair lookup and selection."""

    @pytest.mark.asyncio
    async def test_token_pairs(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json=TOKEN_PAIRS_RESPONSE)

        client = DexScreenerClient(transport=httpx.MockTransport(handler))
        pairs = await client.get_token_pairs(MINT)
        await client.close()

        assert len(pairs) == 2
        assert seen["url"] == f"https://api.dexscreener.com/latest/dex/tokens/{MINT}"

    @pytest.mark.asyncio
    async def test_null_pairs(self):
        client = DexScreenerClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=NO_PAIRS_RESPONSE)))
        assert await client.get_token_pairs(MINT) == []
        await client.close()

    def test_best_pair_by_liquidity(self):
        assert best_pair(TOKEN_PAIRS_RESPONSE["pairs"])["pairAddress"] == POOL

    def test_best_pair_tie_keeps_first(self):
        pairs = [{"pairAddress": "a", "liquidity": {"usd": 10}}, {"pairAddress": "b", "liquidity": {"usd": 10}}]
        assert best_pair(pairs)["pairAddress"] == "a"

    def test_best_pair_without_liquidity(self):
        pairs = [{"pairAddress": "a"}, {"pairAddress": "b", "liquidity": None}]
        assert best_pair(pairs)["pairAddress"] == "a"
        assert best_pair([]) is None

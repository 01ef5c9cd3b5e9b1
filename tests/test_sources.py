"""Price source adapters against a mocked HTTP transport."""

import asyncio
from decimal import Decimal

import httpx

from pegasus.pricing.sources import (
    AdapterUnavailable,
    CallWindow,
    CoinGeckoPriceSource,
    OneInchQuoteSource,
    SourceQuote,
    TokenPair,
)
from pegasus.tokens.constants import TOKEN_ADDRESSES

ARB = TOKEN_ADDRESSES[42161]


def _run(source_factory, handler, pair, amount):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await source_factory(client).fetch_quote(pair, Decimal(amount))

    return asyncio.run(go())


class TestOneInch:
    def test_converts_units_both_ways(self, registry):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers.get("authorization")
            # 1.5 WETH -> 3675 USDC (6 decimals)
            return httpx.Response(200, json={"dstAmount": "3675000000"})

        result = _run(
            lambda c: OneInchQuoteSource(c, registry, api_key="k3y"),
            handler,
            TokenPair("WETH", "USDC", 42161),
            "1.5",
        )

        assert isinstance(result, SourceQuote)
        assert result.source == "1inch"
        assert result.to_amount == Decimal("3675")
        assert seen["path"] == "/swap/v6.0/42161/quote"
        assert seen["params"] == {"src": ARB["WETH"], "dst": ARB["USDC"], "amount": "1500000000000000000"}
        assert seen["auth"] == "Bearer k3y"

    def test_http_error_is_unavailable(self, registry):
        result = _run(
            lambda c: OneInchQuoteSource(c, registry),
            lambda request: httpx.Response(429, json={"error": "Too Many Requests"}),
            TokenPair("WETH", "USDC", 42161),
            "1",
        )
        assert isinstance(result, AdapterUnavailable)
        assert result.reason == "HTTP 429"

    def test_transport_error_is_unavailable(self, registry):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        result = _run(lambda c: OneInchQuoteSource(c, registry), handler, TokenPair("WETH", "USDC", 42161), "1")
        assert isinstance(result, AdapterUnavailable)
        assert "ConnectTimeout" in result.reason

    def test_malformed_body_is_unavailable(self, registry):
        result = _run(
            lambda c: OneInchQuoteSource(c, registry),
            lambda request: httpx.Response(200, json={"toAmount": "1"}),
            TokenPair("WETH", "USDC", 42161),
            "1",
        )
        assert isinstance(result, AdapterUnavailable)

    def test_unknown_token_never_calls_upstream(self, registry):
        def handler(request):
            raise AssertionError("upstream should not be called")

        result = _run(lambda c: OneInchQuoteSource(c, registry), handler, TokenPair("NOPE", "USDC", 42161), "1")
        assert isinstance(result, AdapterUnavailable)
        assert "no address" in result.reason


class TestCoinGecko:
    def test_cross_rate(self, registry):
        def handler(request):
            assert request.url.path.endswith("/simple/price")
            assert request.headers.get("x-cg-demo-api-key") == "cg"
            return httpx.Response(200, json={"ethereum": {"usd": 2500}, "wrapped-bitcoin": {"usd": 50000}})

        result = _run(
            lambda c: CoinGeckoPriceSource(c, registry, api_key="cg"),
            handler,
            TokenPair("ETH", "WBTC", 42161),
            "2",
        )
        assert isinstance(result, SourceQuote)
        assert result.source == "coingecko"
        assert result.to_amount == Decimal("0.1")

    def test_stablecoin_pinned_when_missing(self, registry):
        result = _run(
            lambda c: CoinGeckoPriceSource(c, registry),
            lambda request: httpx.Response(200, json={"ethereum": {"usd": 2000}}),
            TokenPair("ETH", "USDC", 42161),
            "1",
        )
        assert result.to_amount == Decimal("2000")

    def test_quantized_to_destination_decimals(self, registry):
        result = _run(
            lambda c: CoinGeckoPriceSource(c, registry),
            lambda request: httpx.Response(200, json={"usd-coin": {"usd": 1}, "ethereum": {"usd": 3}}),
            TokenPair("ETH", "USDC", 42161),
            "1.0000001",
        )
        assert result.to_amount == Decimal("3.000000")

    def test_rate_limited_without_calling_upstream(self, registry):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"ethereum": {"usd": 2000}})

        window = CallWindow(max_calls=1, window=60.0, clock=lambda: 0.0)
        window.try_acquire()
        result = _run(
            lambda c: CoinGeckoPriceSource(c, registry, window=window),
            handler,
            TokenPair("ETH", "USDC", 42161),
            "1",
        )
        assert isinstance(result, AdapterUnavailable)
        assert result.reason == "rate limited"
        assert calls == []


class TestCallWindow:
    def test_slides(self):
        now = [0.0]
        window = CallWindow(max_calls=2, window=60.0, clock=lambda: now[0])
        assert window.try_acquire()
        assert window.try_acquire()
        assert not window.try_acquire()
        assert window.remaining == 0
        now[0] = 60.0
        assert window.try_acquire()
        assert window.remaining == 1

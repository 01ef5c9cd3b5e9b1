"""Upstream price sources. Each adapter answers one quote or reports itself unavailable.

Adapters own unit conversion: they take a human-unit amount, speak smallest units
to APIs that want them, and hand back a human-unit `to_amount` for the
destination token. No exception leaves `fetch_quote`.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, InvalidOperation, localcontext

import httpx

from pegasus.errors import UpstreamUnavailable
from pegasus.tokens.registry import UINT256_DIGITS, TokenRegistry, from_smallest_unit, to_smallest_unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    from_token: str
    to_token: str
    chain_id: int = 1


@dataclass(frozen=True)
class SourceQuote:
    source: str
    to_amount: Decimal
    success: bool = True


@dataclass(frozen=True)
class AdapterUnavailable:
    source: str
    reason: str
    success: bool = False


class PriceSource:
    """Base adapter. Subclasses implement `_fetch` and may raise UpstreamUnavailable."""

    name = "base"

    def __init__(self, client: httpx.AsyncClient, registry: TokenRegistry):
        self.client = client
        self.registry = registry

    async def fetch_quote(self, pair: TokenPair, amount: Decimal) -> SourceQuote | AdapterUnavailable:
        try:
            to_amount = await self._fetch(pair, Decimal(amount))
        except UpstreamUnavailable as e:
            logger.debug(f"{self.name} unavailable for {pair.from_token}->{pair.to_token}: {e}")
            return AdapterUnavailable(self.name, str(e))
        except httpx.HTTPStatusError as e:
            return AdapterUnavailable(self.name, f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            return AdapterUnavailable(self.name, f"{type(e).__name__}: {e}")
        except (ValueError, KeyError, TypeError, InvalidOperation) as e:
            return AdapterUnavailable(self.name, f"malformed response: {e}")
        if to_amount <= 0:
            return AdapterUnavailable(self.name, f"non-positive amount {to_amount}")
        return SourceQuote(self.name, to_amount)

    async def _fetch(self, pair: TokenPair, amount: Decimal) -> Decimal:
        raise NotImplementedError


class OneInchQuoteSource(PriceSource):
    """1inch Swap API v6 quote: smallest-unit amount in, `dstAmount` out."""

    name = "1inch"

    def __init__(
        self,
        client: httpx.AsyncClient,
        registry: TokenRegistry,
        api_key: str = "",
        base_url: str = "https://api.1inch.dev",
    ):
        super().__init__(client, registry)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    async def _fetch(self, pair: TokenPair, amount: Decimal) -> Decimal:
        src = self.registry.address(pair.from_token, pair.chain_id)
        dst = self.registry.address(pair.to_token, pair.chain_id)
        if not src or not dst:
            raise UpstreamUnavailable(f"no address for {pair.from_token}/{pair.to_token} on chain {pair.chain_id}")

        raw_amount = to_smallest_unit(amount, self.registry.decimals(pair.from_token, pair.chain_id))
        if raw_amount <= 0:
            raise UpstreamUnavailable("amount below token precision")

        headers = {"accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        resp = await self.client.get(
            f"{self.base_url}/swap/v6.0/{pair.chain_id}/quote",
            params={"src": src, "dst": dst, "amount": str(raw_amount)},
            headers=headers,
        )
        resp.raise_for_status()
        data = resp.json()
        if "dstAmount" not in data:
            raise UpstreamUnavailable("no dstAmount in 1inch response")
        return from_smallest_unit(data["dstAmount"], self.registry.decimals(pair.to_token, pair.chain_id))


class CallWindow:
    """Sliding-window call budget: at most `max_calls` per `window` seconds."""

    def __init__(self, max_calls: int = 30, window: float = 60.0, clock=time.monotonic):
        self.max_calls = max_calls
        self.window = window
        self._clock = clock
        self._calls: deque[float] = deque()

    def try_acquire(self) -> bool:
        now = self._clock()
        while self._calls and now - self._calls[0] >= self.window:
            self._calls.popleft()
        if len(self._calls) >= self.max_calls:
            return False
        self._calls.append(now)
        return True

    @property
    def remaining(self) -> int:
        now = self._clock()
        return self.max_calls - sum(1 for t in self._calls if now - t < self.window)


class CoinGeckoPriceSource(PriceSource):
    """CoinGecko simple/price: converts through both tokens' USD prices."""

    name = "coingecko"

    def __init__(
        self,
        client: httpx.AsyncClient,
        registry: TokenRegistry,
        api_key: str = "",
        base_url: str = "https://api.coingecko.com/api/v3",
        window: CallWindow | None = None,
    ):
        super().__init__(client, registry)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.window = window or CallWindow()

    async def usd_prices(self, tokens: list[str], chain_id: int) -> dict[str, Decimal]:
        ids = {}
        for token in tokens:
            coin_id = self.registry.coingecko_id(token, chain_id)
            if coin_id:
                ids[token] = coin_id
            elif not self.registry.is_stablecoin(token, chain_id):
                raise UpstreamUnavailable(f"no CoinGecko id for {token}")

        prices: dict[str, Decimal] = {}
        if ids:
            if not self.window.try_acquire():
                raise UpstreamUnavailable("rate limited")
            headers = {"accept": "application/json"}
            if self.api_key:
                headers["x-cg-demo-api-key"] = self.api_key
            resp = await self.client.get(
                f"{self.base_url}/simple/price",
                params={"ids": ",".join(sorted(set(ids.values()))), "vs_currencies": "usd"},
                headers=headers,
            )
            resp.raise_for_status()
            data = resp.json()
            for token, coin_id in ids.items():
                usd = data.get(coin_id, {}).get("usd")
                if usd is not None:
                    prices[token] = Decimal(str(usd))

        for token in tokens:
            if token not in prices and self.registry.is_stablecoin(token, chain_id):
                prices[token] = Decimal(1)
            if prices.get(token, Decimal(0)) <= 0:
                raise UpstreamUnavailable(f"no USD price for {token}")
        return prices

    async def _fetch(self, pair: TokenPair, amount: Decimal) -> Decimal:
        prices = await self.usd_prices([pair.from_token, pair.to_token], pair.chain_id)
        with localcontext() as ctx:
            ctx.prec = UINT256_DIGITS
            to_amount = amount * prices[pair.from_token] / prices[pair.to_token]
        return quantize_to_decimals(to_amount, self.registry.decimals(pair.to_token, pair.chain_id))


def quantize_to_decimals(value: Decimal, decimals: int) -> Decimal:
    """Truncate a human amount to what the token can represent."""
    with localcontext() as ctx:
        ctx.prec = max(UINT256_DIGITS, value.adjusted() + 1 + decimals)
        return value.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_DOWN)

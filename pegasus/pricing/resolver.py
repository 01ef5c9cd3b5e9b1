"""Fallback resolver: one parameterized chain of price sources for every quote endpoint."""

from __future__ import annotations

import logging
import time
from decimal import Decimal, localcontext
from typing import Sequence

from pegasus.errors import AllSourcesExhausted, ValidationError
from pegasus.models.schema import PriceResult, QuoteRequest, QuoteResult
from pegasus.pricing.sources import PriceSource, SourceQuote, TokenPair, quantize_to_decimals
from pegasus.tokens.registry import UINT256_DIGITS, UINT256_MAX, TokenRegistry, to_smallest_unit

logger = logging.getLogger(__name__)

STATIC_DEFAULT_SOURCE = "static-default"
IDENTITY_SOURCE = "identity"

# Digits kept on reported rates
RATE_PLACES = 18


def _now_ms() -> int:
    return int(time.time() * 1000)


class FallbackResolver:
    """Try each source in priority order. If all fail, answer from the static table.

    Pricing unavailability never surfaces as an error. It shows up only as
    `using_fallback=True` and the `source` that produced the number.
    """

    def __init__(self, sources: Sequence[PriceSource], registry: TokenRegistry):
        self.sources = list(sources)
        self.registry = registry

    async def resolve_quote(self, request: QuoteRequest) -> QuoteResult:
        if request.amount is None or not request.amount.is_finite() or request.amount <= 0:
            raise ValidationError("amount must be a positive number")
        self._check_range(request.amount, request.from_token, request.chain_id)

        if self.registry.same_token(request.from_token, request.to_token, request.chain_id):
            return self._result(request, request.amount, IDENTITY_SOURCE, using_fallback=False)

        pair = TokenPair(request.from_token, request.to_token, request.chain_id)
        try:
            return await self._first_available(request, pair)
        except AllSourcesExhausted as e:
            logger.warning(f"All price sources failed for {pair.from_token}->{pair.to_token}, using static defaults: {e}")
        return self._static_default(request)

    async def _first_available(self, request: QuoteRequest, pair: TokenPair) -> QuoteResult:
        failures = []
        for index, source in enumerate(self.sources):
            outcome = await source.fetch_quote(pair, request.amount)
            if isinstance(outcome, SourceQuote):
                if index > 0:
                    logger.info(f"Quote {pair.from_token}->{pair.to_token} served by fallback source {source.name}")
                return self._result(request, outcome.to_amount, source.name, using_fallback=index > 0)
            failures.append(f"{outcome.source}: {outcome.reason}")
        raise AllSourcesExhausted("; ".join(failures) or "no sources configured")

    def _check_range(self, amount: Decimal, token: str, chain_id: int) -> None:
        """Reject amounts whose smallest-unit value does not fit in a uint256."""
        try:
            raw = to_smallest_unit(amount, self.registry.decimals(token, chain_id))
        except ArithmeticError as e:
            raise ValidationError(f"amount out of range for {token}") from e
        if raw > UINT256_MAX:
            raise ValidationError(f"amount out of range for {token}")

    async def resolve_price(self, from_token: str, to_token: str, chain_id: int = 1) -> PriceResult:
        """Price of one `from_token` in `to_token`, through the same chain as quotes."""
        quote = await self.resolve_quote(
            QuoteRequest(from_token=from_token, to_token=to_token, amount=Decimal(1), chain_id=chain_id)
        )
        return PriceResult(
            success=quote.success,
            from_token=from_token,
            to_token=to_token,
            price=quote.rate,
            source=quote.source,
            using_fallback=quote.using_fallback,
            timestamp=quote.timestamp,
        )

    def _static_default(self, request: QuoteRequest) -> QuoteResult:
        from_usd = self.registry.default_price(request.from_token, request.chain_id)
        to_usd = self.registry.default_price(request.to_token, request.chain_id)
        with localcontext() as ctx:
            ctx.prec = UINT256_DIGITS
            to_amount = request.amount * from_usd / to_usd
        to_amount = quantize_to_decimals(to_amount, self.registry.decimals(request.to_token, request.chain_id))
        self._check_range(to_amount, request.to_token, request.chain_id)
        return self._result(request, to_amount, STATIC_DEFAULT_SOURCE, using_fallback=True)

    def _result(self, request: QuoteRequest, to_amount: Decimal, source: str, using_fallback: bool) -> QuoteResult:
        with localcontext() as ctx:
            ctx.prec = UINT256_DIGITS
            rate = quantize_to_decimals(to_amount / request.amount, RATE_PLACES)
        return QuoteResult(
            success=True,
            from_token=request.from_token,
            to_token=request.to_token,
            from_amount=request.amount,
            to_amount=to_amount,
            rate=rate,
            source=source,
            using_fallback=using_fallback,
            chain_id=request.chain_id,
            timestamp=_now_ms(),
        )

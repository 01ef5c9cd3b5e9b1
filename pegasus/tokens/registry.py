"""Immutable token registry: decimals, per-chain addresses, logos, default prices."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_DOWN, localcontext
from types import MappingProxyType
from typing import Mapping

from pegasus.tokens.constants import (
    COINGECKO_IDS,
    DEFAULT_DECIMALS,
    DEFAULT_PRICES_USD,
    GENERIC_TOKEN_LOGO,
    STABLECOINS,
    TOKEN_ADDRESSES,
    TOKEN_DECIMALS,
    TOKEN_DECIMALS_BY_CHAIN,
    TOKEN_LOGOS,
)


def _freeze(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


# Enough significant digits for any uint256 value
UINT256_DIGITS = 78
UINT256_MAX = 2**256 - 1


def is_address(token: str) -> bool:
    return token.startswith("0x") and len(token) == 42


def to_smallest_unit(amount: Decimal, decimals: int) -> int:
    """Human amount -> integer smallest units, truncating toward zero."""
    with localcontext() as ctx:
        ctx.prec = UINT256_DIGITS
        return int((Decimal(amount) * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN))


def from_smallest_unit(raw: int | str, decimals: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = UINT256_DIGITS
        return Decimal(int(raw)).scaleb(-decimals)


@dataclass(frozen=True)
class TokenRegistry:
    addresses: Mapping[int, Mapping[str, str]] = field(default_factory=dict)
    decimals_by_symbol: Mapping[str, int] = field(default_factory=dict)
    decimals_by_chain: Mapping[int, Mapping[str, int]] = field(default_factory=dict)
    coingecko_ids: Mapping[str, str] = field(default_factory=dict)
    default_prices: Mapping[str, Decimal] = field(default_factory=dict)
    logos: Mapping[str, str] = field(default_factory=dict)
    stablecoins: frozenset[str] = frozenset()
    default_decimals: int = DEFAULT_DECIMALS

    @classmethod
    def default(cls) -> TokenRegistry:
        return cls(
            addresses=_freeze({c: _freeze(t) for c, t in TOKEN_ADDRESSES.items()}),
            decimals_by_symbol=_freeze(TOKEN_DECIMALS),
            decimals_by_chain=_freeze({c: _freeze(d) for c, d in TOKEN_DECIMALS_BY_CHAIN.items()}),
            coingecko_ids=_freeze(COINGECKO_IDS),
            default_prices=_freeze({s: Decimal(p) for s, p in DEFAULT_PRICES_USD.items()}),
            logos=_freeze(TOKEN_LOGOS),
            stablecoins=STABLECOINS,
        )

    def with_overrides(
        self,
        addresses: Mapping[int, Mapping[str, str]] | None = None,
        decimals: Mapping[str, int] | None = None,
        default_prices: Mapping[str, Decimal | str] | None = None,
        coingecko_ids: Mapping[str, str] | None = None,
    ) -> TokenRegistry:
        """Return a new registry with entries merged over this one."""
        merged_addresses = {c: dict(t) for c, t in self.addresses.items()}
        for chain_id, tokens in (addresses or {}).items():
            merged_addresses.setdefault(chain_id, {}).update(
                {s.upper(): a.lower() for s, a in tokens.items()}
            )
        return replace(
            self,
            addresses=_freeze({c: _freeze(t) for c, t in merged_addresses.items()}),
            decimals_by_symbol=_freeze(
                {**self.decimals_by_symbol, **{s.upper(): d for s, d in (decimals or {}).items()}}
            ),
            default_prices=_freeze(
                {**self.default_prices, **{s.upper(): Decimal(p) for s, p in (default_prices or {}).items()}}
            ),
            coingecko_ids=_freeze(
                {**self.coingecko_ids, **{s.upper(): i for s, i in (coingecko_ids or {}).items()}}
            ),
        )

    def symbol(self, token: str, chain_id: int) -> str | None:
        """Resolve a symbol or address to a canonical upper-case symbol."""
        if not is_address(token):
            return token.strip().upper()
        needle = token.lower()
        for sym, addr in self.addresses.get(chain_id, {}).items():
            if addr == needle:
                return sym
        return None

    def address(self, token: str, chain_id: int) -> str | None:
        if is_address(token):
            return token.lower()
        return self.addresses.get(chain_id, {}).get(token.strip().upper())

    def decimals(self, token: str, chain_id: int = 1) -> int:
        sym = self.symbol(token, chain_id)
        if sym is None:
            return self.default_decimals
        chain_specific = self.decimals_by_chain.get(chain_id, {})
        if sym in chain_specific:
            return chain_specific[sym]
        return self.decimals_by_symbol.get(sym, self.default_decimals)

    def coingecko_id(self, token: str, chain_id: int = 1) -> str | None:
        sym = self.symbol(token, chain_id)
        return self.coingecko_ids.get(sym) if sym else None

    def is_stablecoin(self, token: str, chain_id: int = 1) -> bool:
        return self.symbol(token, chain_id) in self.stablecoins

    def default_price(self, token: str, chain_id: int = 1) -> Decimal:
        sym = self.symbol(token, chain_id)
        return self.default_prices.get(sym, Decimal(1)) if sym else Decimal(1)

    def logo(self, token: str, chain_id: int = 1) -> str:
        sym = self.symbol(token, chain_id)
        return self.logos.get(sym, GENERIC_TOKEN_LOGO) if sym else GENERIC_TOKEN_LOGO

    def same_token(self, a: str, b: str, chain_id: int) -> bool:
        addr_a, addr_b = self.address(a, chain_id), self.address(b, chain_id)
        if addr_a and addr_b:
            return addr_a == addr_b
        return a.strip().lower() == b.strip().lower()

    def list_tokens(self, chain_id: int) -> list[dict]:
        return [
            {
                "symbol": sym,
                "address": addr,
                "decimals": self.decimals(sym, chain_id),
                "logo": self.logo(sym, chain_id),
            }
            for sym, addr in self.addresses.get(chain_id, {}).items()
        ]

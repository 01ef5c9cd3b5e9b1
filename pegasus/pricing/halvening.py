"""PGS halvening curve: the mint rate halves every `threshold_usd` of cumulative volume.

USD volume and token amounts are both 18-decimal fixed-point integers (wei).
Supply for volume in [n*T, (n+1)*T) accrues at base_rate / 2**n, so total supply
over infinite volume converges to 2 * T * base_rate (1000 + 500 + 250 + ... PGS
with the default 100k USD threshold and 0.01 PGS per dollar).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from web3 import Web3

WAD = 10**18

# Past this many halvings a full segment mints less than one wei.
MAX_HALVENINGS = 256

DEFAULT_MILESTONES_USD = (100_000, 200_000, 300_000, 400_000, 500_000, 1_000_000)


def usd_to_wei(usd: Decimal | int | str) -> int:
    return int(Web3.to_wei(Decimal(usd), "ether"))


def format_wei(value: int) -> str:
    return str(Web3.from_wei(value, "ether"))


@dataclass(frozen=True)
class PricePoint:
    multiplier: int
    tokens_per_dollar: int
    halvening_count: int


@dataclass(frozen=True)
class HalveningSchedule:
    threshold_usd: int = 100_000
    base_tokens_per_dollar: Decimal = Decimal("0.01")

    def __post_init__(self):
        if self.threshold_usd <= 0:
            raise ValueError("threshold_usd must be positive")
        if Decimal(self.base_tokens_per_dollar) <= 0:
            raise ValueError("base_tokens_per_dollar must be positive")

    @property
    def threshold_wei(self) -> int:
        return self.threshold_usd * WAD

    @property
    def base_rate_wei(self) -> int:
        """Token wei minted per whole USD at multiplier 1."""
        return usd_to_wei(self.base_tokens_per_dollar)

    @property
    def max_supply(self) -> int:
        return 2 * self.threshold_wei * self.base_rate_wei // WAD

    def halvenings_at(self, total_usd_wei: int) -> int:
        return max(total_usd_wei, 0) // self.threshold_wei

    def price_at(self, total_usd_wei: int) -> PricePoint:
        n = self.halvenings_at(total_usd_wei)
        return PricePoint(
            multiplier=2**n,
            tokens_per_dollar=self.base_rate_wei >> n,
            halvening_count=n,
        )

    def next_halvening_at(self, total_usd_wei: int) -> int:
        return (self.halvenings_at(total_usd_wei) + 1) * self.threshold_wei

    def _segment(self, usd_wei: int, n: int) -> int:
        return usd_wei * self.base_rate_wei // (WAD << n)

    def supply_at(self, target_usd_wei: int) -> int:
        """Cumulative token wei minted once `target_usd_wei` of volume has been swapped."""
        if target_usd_wei <= 0:
            return 0
        full, partial = divmod(target_usd_wei, self.threshold_wei)
        supply = sum(self._segment(self.threshold_wei, n) for n in range(min(full, MAX_HALVENINGS)))
        if partial and full < MAX_HALVENINGS:
            supply += self._segment(partial, full)
        return supply

    def reward_for(self, total_before_wei: int, swap_usd_wei: int) -> int:
        """Token wei owed for a swap of `swap_usd_wei` starting at `total_before_wei`.

        A swap that straddles a threshold is priced piecewise on each side of it.
        """
        if swap_usd_wei <= 0:
            return 0
        return self.supply_at(total_before_wei + swap_usd_wei) - self.supply_at(total_before_wei)

    def token_price_usd(self, multiplier: int) -> Decimal:
        return Decimal(multiplier) / Decimal(self.base_tokens_per_dollar)

    def projections(self, milestones_usd=DEFAULT_MILESTONES_USD) -> list[dict]:
        return [
            {
                "usdSwapped": milestone,
                "estimatedSupply": format_wei(self.supply_at(usd_to_wei(milestone))),
                "halveningNumber": milestone // self.threshold_usd,
            }
            for milestone in milestones_usd
        ]

    def pricing_info(self, state, milestones_usd=DEFAULT_MILESTONES_USD) -> dict:
        """Build the /pricing-info payload from a ledger `PricingState`."""
        total = state.total_usd_swapped
        multiplier = state.price_multiplier or self.price_at(total).multiplier
        tokens_per_dollar = state.tokens_per_dollar or self.base_rate_wei // multiplier
        target = state.next_halvening_at or self.next_halvening_at(total)
        percentage = Decimal(total * 10000 // target) / 100 if target > 0 else Decimal(0)

        return {
            "contract": {
                "address": state.address,
                "name": state.name,
                "symbol": state.symbol,
            },
            "currentState": {
                "priceMultiplier": str(multiplier),
                "currentRate": f"1 {state.symbol} = ${self.token_price_usd(multiplier):.2f}",
                "tokensPerDollar": format_wei(tokens_per_dollar),
                "totalUsdSwapped": format_wei(total),
                "currentSupply": format_wei(state.current_supply),
                "halveningCount": str(state.halvening_count),
            },
            "progress": {
                "current": format_wei(total),
                "target": format_wei(target),
                "percentage": f"{percentage:.2f}",
                "remaining": format_wei(max(target - total, 0)),
            },
            "nextHalvening": {
                "at": format_wei(target),
                "newRate": f"1 {state.symbol} = ${self.token_price_usd(multiplier * 2):.2f}",
                "newMultiplier": str(multiplier * 2),
            },
            "projections": self.projections(milestones_usd),
            "algorithm": {
                "description": f"Every {self.threshold_usd:,} USD swapped triggers a halvening (2x price increase)",
                "pattern": (
                    f"{format_wei(self._segment(self.threshold_wei, 0))} + "
                    f"{format_wei(self._segment(self.threshold_wei, 1))} + "
                    f"{format_wei(self._segment(self.threshold_wei, 2))} + ... "
                    f"≈ {format_wei(self.max_supply)} {state.symbol} total supply"
                ),
                "halveningThreshold": f"{self.threshold_usd:,} USD",
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

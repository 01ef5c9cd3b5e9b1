"""Halvening curve: price points, cumulative supply and piecewise rewards."""

from decimal import Decimal

import pytest

from pegasus.models.schema import PricingState
from pegasus.pricing.halvening import WAD, HalveningSchedule, format_wei, usd_to_wei

T = 100_000 * WAD


class TestPricePoints:
    def test_initial_price(self, schedule):
        point = schedule.price_at(0)
        assert point.multiplier == 1
        assert point.tokens_per_dollar == usd_to_wei("0.01")
        assert point.halvening_count == 0

    def test_first_halvening_doubles_multiplier(self, schedule):
        point = schedule.price_at(T)
        assert point.multiplier == 2
        assert point.tokens_per_dollar == usd_to_wei("0.005")
        assert point.halvening_count == 1

    def test_just_below_threshold(self, schedule):
        assert schedule.price_at(T - 1).multiplier == 1

    def test_tokens_per_dollar_is_monotonic(self, schedule):
        rates = [schedule.price_at(n * T // 3).tokens_per_dollar for n in range(40)]
        assert all(a >= b for a, b in zip(rates, rates[1:]))

    def test_next_halvening_at(self, schedule):
        assert schedule.next_halvening_at(0) == T
        assert schedule.next_halvening_at(T) == 2 * T
        assert schedule.next_halvening_at(usd_to_wei(250_000)) == 3 * T


class TestSupply:
    def test_first_period_mints_1000(self, schedule):
        assert schedule.supply_at(T) == 1000 * WAD

    def test_six_periods(self, schedule):
        assert schedule.supply_at(6 * T) == usd_to_wei("1968.75")

    def test_converges_to_twice_first_period(self, schedule):
        assert schedule.max_supply == 2000 * WAD
        supplies = [schedule.supply_at(n * T) for n in range(1, 64)]
        assert all(s < schedule.max_supply for s in supplies)
        assert all(a < b for a, b in zip(supplies[:40], supplies[1:41]))
        assert schedule.max_supply - supplies[-1] < WAD // 10**6

    def test_supply_is_zero_before_any_volume(self, schedule):
        assert schedule.supply_at(0) == 0
        assert schedule.supply_at(-5) == 0

    def test_custom_curve(self):
        schedule = HalveningSchedule(threshold_usd=1_000, base_tokens_per_dollar=Decimal("1"))
        assert schedule.supply_at(usd_to_wei(1_500)) == usd_to_wei(1_250)
        assert schedule.max_supply == usd_to_wei(2_000)

    def test_invalid_curve(self):
        with pytest.raises(ValueError):
            HalveningSchedule(threshold_usd=0)
        with pytest.raises(ValueError):
            HalveningSchedule(base_tokens_per_dollar=Decimal(0))


class TestRewards:
    def test_hundred_dollars_at_start(self, schedule):
        assert schedule.reward_for(0, usd_to_wei(100)) == WAD

    def test_hundred_dollars_after_first_halvening(self, schedule):
        assert schedule.reward_for(T, usd_to_wei(100)) == WAD // 2

    def test_swap_crossing_threshold_is_priced_piecewise(self, schedule):
        # $50 at 0.01 plus $50 at 0.005
        assert schedule.reward_for(usd_to_wei(99_950), usd_to_wei(100)) == usd_to_wei("0.75")

    def test_rewards_sum_to_supply(self, schedule):
        total = 0
        minted = 0
        for usd in (100, 25_000, 90_000, 1, 333_333):
            minted += schedule.reward_for(total, usd_to_wei(usd))
            total += usd_to_wei(usd)
        assert minted == schedule.supply_at(total)

    def test_zero_swap(self, schedule):
        assert schedule.reward_for(T, 0) == 0


class TestPricingInfo:
    def test_payload_shape(self, schedule):
        state = PricingState(
            total_usd_swapped=usd_to_wei(25_000),
            price_multiplier=1,
            halvening_count=0,
            next_halvening_at=T,
            tokens_per_dollar=usd_to_wei("0.01"),
            current_supply=usd_to_wei(250),
            address="0x" + "a1" * 20,
        )
        info = schedule.pricing_info(state)

        assert set(info) == {"contract", "currentState", "progress", "nextHalvening", "projections", "algorithm", "timestamp"}
        assert info["contract"]["symbol"] == "PGS"
        assert info["currentState"]["currentRate"] == "1 PGS = $100.00"
        assert Decimal(info["currentState"]["tokensPerDollar"]) == Decimal("0.01")
        assert info["progress"]["percentage"] == "25.00"
        assert Decimal(info["progress"]["remaining"]) == Decimal(75_000)
        assert info["nextHalvening"]["newMultiplier"] == "2"
        assert info["nextHalvening"]["newRate"] == "1 PGS = $200.00"

    def test_projections(self, schedule):
        projections = schedule.projections()
        assert [p["usdSwapped"] for p in projections] == [100_000, 200_000, 300_000, 400_000, 500_000, 1_000_000]
        assert Decimal(projections[0]["estimatedSupply"]) == Decimal(1000)
        assert Decimal(projections[1]["estimatedSupply"]) == Decimal(1500)
        assert projections[-1]["halveningNumber"] == 10

    def test_format_wei(self):
        assert Decimal(format_wei(WAD // 2)) == Decimal("0.5")

# tests/test_dispatch.py
"""Merit-order dispatch for a single period."""

import pytest

from gridrival.core.assets import AssetType
from gridrival.core.constants import PRICE_CAP_MWH, PRICE_FLOOR_MWH
from gridrival.core.dispatch import DispatchEngine, OfferBand
from gridrival.core.periods import TimePeriod


def band(team, price, mw, asset_type=AssetType.COAL, index=0, srmc=0.0, asset=None):
    return OfferBand(
        team_id=team,
        asset_id=asset or f"{team}-{asset_type.value}",
        asset_type=asset_type,
        band_index=index,
        price_mwh=price,
        offered_mw=mw,
        srmc=srmc,
    )


@pytest.fixture
def engine():
    return DispatchEngine()


class TestMeritOrder:
    """Sorting and normalisation of offer bands."""

    def test_sorted_cheapest_first(self, engine):
        ordered = engine.merit_order([band("b", 80, 100), band("a", 30, 100), band("c", 50, 10)])
        assert [b.price_mwh for b in ordered] == [30, 50, 80]

    def test_renewables_priced_at_zero_and_first_on_ties(self, engine):
        ordered = engine.merit_order([
            band("a", 0, 50),
            band("z", 45, 100, AssetType.WIND),
        ])
        assert ordered[0].asset_type is AssetType.WIND
        assert ordered[0].price_mwh == 0.0

    def test_ties_broken_by_team_asset_and_band(self, engine):
        ordered = engine.merit_order([
            band("b", 50, 10, index=0),
            band("a", 50, 10, index=1),
            band("a", 50, 10, index=0),
        ])
        assert [(b.team_id, b.band_index) for b in ordered] == [("a", 0), ("a", 1), ("b", 0)]

    def test_empty_bands_dropped(self, engine):
        assert engine.merit_order([band("a", 30, 0)]) == []


class TestDispatchScenarios:
    """Worked clearing examples."""

    def test_marginal_band_sets_price(self, engine):
        result = engine.dispatch(TimePeriod.DAY_PEAK, [band("a", 30, 100), band("b", 80, 100)], 150)

        assert result.clearing_price_mwh == 80
        assert result.dispatched_for_asset("a-coal") == pytest.approx(100)
        assert result.dispatched_for_asset("b-coal") == pytest.approx(50)
        assert result.total_dispatched_mw == pytest.approx(150)
        assert not result.is_scarcity
        assert not result.is_oversupply

    def test_pro_rata_split_of_tied_group(self, engine):
        bands = [
            band("a", 10, 60),
            band("b", 50, 50),
            band("c", 50, 30),
            band("d", 50, 20),
        ]
        result = engine.dispatch(TimePeriod.DAY_PEAK, bands, 100)

        assert result.dispatched_for_asset("b-coal") == pytest.approx(20)
        assert result.dispatched_for_asset("c-coal") == pytest.approx(12)
        assert result.dispatched_for_asset("d-coal") == pytest.approx(8)
        assert result.clearing_price_mwh == 50

    def test_scarcity_clears_at_cap_with_blended_effective_price(self, engine):
        bands = [band("a", 40, 50, srmc=35.0), band("b", 90, 30, srmc=75.0)]
        result = engine.dispatch(TimePeriod.NIGHT_PEAK, bands, 100)

        assert result.is_scarcity
        assert result.clearing_price_mwh == PRICE_CAP_MWH
        assert result.total_dispatched_mw == pytest.approx(80)
        assert result.effective_price_mwh == pytest.approx(20000 / 6 + 5 / 6 * 75.0)
        assert result.reserve_margin_percent == pytest.approx(-25.0)

    def test_scarcity_without_positive_srmc_uses_fallback(self, engine):
        result = engine.dispatch(TimePeriod.NIGHT_PEAK, [band("a", 0, 10, AssetType.WIND)], 100)
        assert result.effective_price_mwh == pytest.approx(20000 / 6 + 5 / 6 * 200.0)

    def test_no_supply_is_scarcity_not_a_fault(self, engine):
        result = engine.dispatch(TimePeriod.DAY_PEAK, [], 500)

        assert result.is_scarcity
        assert result.clearing_price_mwh == PRICE_CAP_MWH
        assert result.total_dispatched_mw == 0.0
        assert result.reserve_margin_percent == -100.0

    def test_oversupply_clears_at_floor(self, engine):
        result = engine.dispatch(TimePeriod.DAY_OFFPEAK, [band("a", 20, 400)], 100)

        assert result.is_oversupply
        assert result.clearing_price_mwh == PRICE_FLOOR_MWH
        assert result.effective_price_mwh == PRICE_FLOOR_MWH
        assert result.total_dispatched_mw == pytest.approx(100)

    def test_zero_demand_reports_lowest_offer(self, engine):
        result = engine.dispatch(TimePeriod.NIGHT_OFFPEAK, [band("a", 60, 100), band("b", 25, 100)], 0)

        assert result.clearing_price_mwh == 25
        assert result.total_dispatched_mw == 0.0
        assert not result.is_scarcity
        assert not result.is_oversupply
        assert result.reserve_margin_percent == 100.0

    def test_zero_demand_and_no_offers(self, engine):
        result = engine.dispatch(TimePeriod.NIGHT_OFFPEAK, [], 0)
        assert result.clearing_price_mwh == 0.0
        assert result.reserve_margin_percent == 0.0

    def test_single_band_exactly_meets_demand(self, engine):
        result = engine.dispatch(TimePeriod.DAY_PEAK, [band("a", 45, 100), band("b", 70, 100)], 100)

        assert result.clearing_price_mwh == 45
        assert result.dispatched_for_asset("b-coal") == 0.0

    def test_prices_outside_range_are_clamped(self, engine):
        ordered = engine.merit_order([band("a", 50_000, 10), band("b", -5_000, 10)])
        assert [b.price_mwh for b in ordered] == [PRICE_FLOOR_MWH, PRICE_CAP_MWH]

    def test_reserve_margin_uses_available_capacity(self, engine):
        result = engine.dispatch(TimePeriod.DAY_PEAK, [band("a", 30, 100)], 80, total_available_mw=200)
        assert result.reserve_margin_percent == pytest.approx(60.0)

    def test_dispatched_by_team(self, engine):
        result = engine.dispatch(TimePeriod.DAY_PEAK, [band("a", 30, 100), band("b", 80, 100)], 150)
        assert result.dispatched_by_team() == {"a": pytest.approx(100), "b": pytest.approx(50)}

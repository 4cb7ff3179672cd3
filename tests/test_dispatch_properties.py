# tests/test_dispatch_properties.py
"""
Property-based tests for dispatch invariants using Hypothesis.
"""

import numpy as np
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from gridrival.core.assets import AssetType
from gridrival.core.dispatch import DispatchEngine, OfferBand
from gridrival.core.periods import TimePeriod

# =============================================================================
# Strategies for generating test data
# =============================================================================


@st.composite
def offer_bands(draw):
    """A list of offer bands from a handful of teams."""
    count = draw(st.integers(min_value=1, max_value=12))
    bands = []
    for index in range(count):
        team = draw(st.sampled_from(["a", "b", "c"]))
        asset_type = draw(st.sampled_from([AssetType.COAL, AssetType.GAS_CCGT, AssetType.WIND]))
        bands.append(OfferBand(
            team_id=team,
            asset_id=f"{team}-{asset_type.value}",
            asset_type=asset_type,
            band_index=index,
            price_mwh=float(draw(st.integers(min_value=-1000, max_value=500))),
            offered_mw=float(draw(st.integers(min_value=1, max_value=500))),
            srmc=float(draw(st.integers(min_value=0, max_value=150))),
        ))
    return bands


demands = st.floats(min_value=0.0, max_value=5000.0, allow_nan=False, allow_infinity=False)


# =============================================================================
# Property Tests: Dispatch Invariants
# =============================================================================


class TestDispatchInvariants:
    """Invariants that hold for any set of offers."""

    @given(offer_bands(), demands)
    @settings(max_examples=100)
    def test_dispatch_bounded_by_offers_and_demand(self, bands, demand):
        result = DispatchEngine().dispatch(TimePeriod.DAY_PEAK, bands, demand)
        tolerance = 1e-6

        if result.is_scarcity:
            assert abs(result.total_dispatched_mw - result.total_offered_mw) < tolerance
            assert result.total_offered_mw < demand
        else:
            assert result.total_dispatched_mw <= result.total_offered_mw + tolerance
            assert result.total_dispatched_mw <= demand + tolerance
            assert abs(result.total_dispatched_mw - demand) < 1e-6 * max(1.0, demand)

    @given(offer_bands(), demands)
    @settings(max_examples=100)
    def test_no_band_exceeds_its_offer(self, bands, demand):
        result = DispatchEngine().dispatch(TimePeriod.DAY_PEAK, bands, demand)
        for dispatched in result.bands:
            assert -1e-9 <= dispatched.dispatched_mw <= dispatched.band.offered_mw + 1e-9

    @given(offer_bands(), demands)
    @settings(max_examples=100)
    def test_cheaper_bands_fill_before_dearer_ones(self, bands, demand):
        result = DispatchEngine().dispatch(TimePeriod.DAY_PEAK, bands, demand)
        prices_with_spare = [b.band.price_mwh for b in result.bands if b.dispatched_mw < b.band.offered_mw - 1e-9]
        prices_dispatched = [b.band.price_mwh for b in result.bands if b.dispatched_mw > 1e-9]
        if prices_with_spare and prices_dispatched:
            assert max(prices_dispatched) <= min(prices_with_spare) or result.is_scarcity

    @given(offer_bands(), demands, demands)
    @settings(max_examples=100)
    def test_clearing_price_monotone_in_demand(self, bands, first, second):
        low, high = sorted((first, second))
        assume(low > 0)
        engine = DispatchEngine()
        low_result = engine.dispatch(TimePeriod.DAY_PEAK, bands, low)
        high_result = engine.dispatch(TimePeriod.DAY_PEAK, bands, high)
        if low_result.is_oversupply or high_result.is_oversupply:
            return
        assert high_result.clearing_price_mwh >= low_result.clearing_price_mwh

    @given(offer_bands(), demands)
    @settings(max_examples=50)
    def test_resubmitting_identical_bands_is_idempotent(self, bands, demand):
        engine = DispatchEngine()
        first = engine.dispatch(TimePeriod.DAY_PEAK, bands, demand)
        second = engine.dispatch(TimePeriod.DAY_PEAK, list(bands), demand)
        assert first.clearing_price_mwh == second.clearing_price_mwh
        assert [b.dispatched_mw for b in first.bands] == [b.dispatched_mw for b in second.bands]

    @given(
        st.lists(st.integers(min_value=1, max_value=400), min_size=1, max_size=8),
        st.floats(min_value=0.1, max_value=1.0),
    )
    @settings(max_examples=100)
    def test_pro_rata_sums_to_remaining(self, sizes, fraction):
        offered = np.array(sizes, dtype=float)
        remaining = float(offered.sum()) * fraction
        shares = DispatchEngine._pro_rata(offered, remaining)
        assert abs(shares.sum() - remaining) < 1e-9 * max(1.0, remaining)

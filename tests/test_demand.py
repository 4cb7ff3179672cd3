# tests/test_demand.py
"""Demand generation and host overrides."""

import numpy as np
import pytest
from conftest import make_battery, make_thermal

from gridrival.core.conditions import RoundConditions
from gridrival.core.errors import ValidationError
from gridrival.core.periods import ROUND_PERIODS, Season, TimePeriod
from gridrival.simulation.demand import SEASON_TARGET_FRACTIONS, DemandModel


@pytest.fixture
def fleet():
    return [make_thermal("t1", capacity_mw=800.0), make_thermal("t2", capacity_mw=800.0), make_battery("t2")]


class TestDemandModel:
    """demand = fleet MW x target fraction x multiplier x (1 + noise)."""

    def test_no_variation_matches_target_fractions(self, fleet, rng):
        conditions = RoundConditions(1, Season.AUTUMN)
        demand = DemandModel().generate(conditions, fleet, 0.0, rng)

        assert demand[TimePeriod.NIGHT_OFFPEAK] == round(1600 * 0.385)
        assert demand[TimePeriod.DAY_PEAK] == round(1600 * 0.595)
        assert conditions.demand_mw == demand

    def test_batteries_excluded_from_fleet_capacity(self, fleet):
        conditions = RoundConditions(1, Season.AUTUMN)
        assert conditions.fleet_capacity_mw(fleet, TimePeriod.DAY_PEAK) == 1600.0

    def test_noise_within_variation(self, fleet, rng):
        conditions = RoundConditions(1, Season.WINTER)
        demand = DemandModel().generate(conditions, fleet, 0.1, rng)
        for period in ROUND_PERIODS:
            base = 1600 * SEASON_TARGET_FRACTIONS[Season.WINTER][period]
            assert base * 0.9 - 1 <= demand[period] <= base * 1.1 + 1
            assert float(demand[period]).is_integer()

    def test_same_seed_same_demand(self, fleet, seed):
        first = DemandModel().generate(RoundConditions(1, Season.SUMMER), fleet, 0.1, np.random.default_rng(seed))
        second = DemandModel().generate(RoundConditions(1, Season.SUMMER), fleet, 0.1, np.random.default_rng(seed))
        assert first == second

    def test_regeneration_reuses_noise(self, fleet, rng):
        model = DemandModel()
        conditions = RoundConditions(1, Season.SUMMER)
        first = model.generate(conditions, fleet, 0.1, rng)
        conditions.demand_multipliers[TimePeriod.DAY_PEAK] = 1.2
        second = model.generate(conditions, fleet, 0.1, rng)

        assert second[TimePeriod.NIGHT_OFFPEAK] == first[TimePeriod.NIGHT_OFFPEAK]
        assert second[TimePeriod.DAY_PEAK] > first[TimePeriod.DAY_PEAK]

    def test_forced_outage_shrinks_demand_base(self, fleet, rng):
        conditions = RoundConditions(1, Season.AUTUMN)
        conditions.forced_outages.add("t1-coal")
        demand = DemandModel().generate(conditions, fleet, 0.0, rng)
        assert demand[TimePeriod.DAY_PEAK] == round(800 * 0.595)

    def test_demand_never_negative(self):
        assert DemandModel().demand(1000.0, Season.SPRING, TimePeriod.DAY_PEAK, multiplier=0.0, noise=-0.5) == 0.0


class TestOverride:
    def test_partial_override(self, fleet, rng):
        conditions = RoundConditions(1, Season.AUTUMN)
        DemandModel().generate(conditions, fleet, 0.0, rng)
        DemandModel.override(conditions, {"day_peak": 1234.4})

        assert conditions.demand_mw[TimePeriod.DAY_PEAK] == 1234.0
        assert conditions.demand_mw[TimePeriod.NIGHT_OFFPEAK] == round(1600 * 0.385)
        assert conditions.demand_overridden

    @pytest.mark.parametrize("values", [{"noon": 100}, {"day_peak": "lots"}, {"day_peak": float("inf")}])
    def test_bad_override(self, values):
        conditions = RoundConditions(1, Season.AUTUMN)
        with pytest.raises(ValidationError):
            DemandModel.override(conditions, values)
        assert not conditions.demand_overridden

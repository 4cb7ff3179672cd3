# tests/test_scenarios.py
"""Scenario and surprise events applied to round conditions."""

import numpy as np
import pytest
from conftest import make_renewable, make_thermal

from gridrival.core.assets import AssetType
from gridrival.core.conditions import RoundConditions
from gridrival.core.errors import NotFoundError
from gridrival.core.periods import ROUND_PERIODS, Season, TimePeriod
from gridrival.data.rounds import DEFAULT_CATALOG
from gridrival.data.scenarios import (
    SCENARIO_EVENTS,
    SURPRISE_EVENTS,
    EffectType,
    ScenarioEffect,
    ScenarioEvent,
    get_scenario_event,
    get_surprise_event,
)
from gridrival.simulation.scenario import ScenarioEngine


@pytest.fixture
def fleet():
    return [
        make_thermal("t1", AssetType.COAL, 800.0, 35.0),
        make_thermal("t2", AssetType.COAL, 800.0, 30.0),
        make_thermal("t2", AssetType.GAS_CCGT, 350.0, 75.0, 20_000.0),
        make_renewable("t1", AssetType.WIND, 300.0),
    ]


def event(*effects):
    return ScenarioEvent("test", "Test", "", tuple(effects))


class TestCatalogue:
    def test_every_round_event_exists(self):
        for mode in DEFAULT_CATALOG.modes:
            for round_config in DEFAULT_CATALOG.rounds(mode):
                for event_id in round_config.active_scenario_events:
                    assert event_id in SCENARIO_EVENTS

    def test_unknown_ids(self):
        with pytest.raises(NotFoundError):
            get_scenario_event("alien_invasion")
        with pytest.raises(NotFoundError):
            get_surprise_event("alien_invasion")

    def test_lookup(self):
        assert get_surprise_event("generator_trip") is SURPRISE_EVENTS["generator_trip"]


class TestScenarioEngine:
    """Effects land on the working conditions, never on the assets."""

    def test_demand_multiplier_for_one_period(self, fleet, rng):
        conditions = RoundConditions(1, Season.SUMMER)
        ScenarioEngine(rng).apply_events(
            conditions, [event(ScenarioEffect(EffectType.MODIFY_DEMAND, 1.4, period=TimePeriod.DAY_PEAK))], fleet
        )
        assert conditions.demand_multipliers[TimePeriod.DAY_PEAK] == pytest.approx(1.4)
        assert conditions.demand_multipliers[TimePeriod.NIGHT_PEAK] == 1.0
        assert conditions.applied_events == ["test"]

    def test_effects_compose(self, fleet, rng):
        conditions = RoundConditions(1, Season.SUMMER)
        effect = ScenarioEffect(EffectType.MODIFY_DEMAND, 1.1)
        ScenarioEngine(rng).apply_events(conditions, [event(effect), event(effect)], fleet)
        for period in ROUND_PERIODS:
            assert conditions.demand_multipliers[period] == pytest.approx(1.21)

    def test_srmc_multiplier_and_carbon(self, fleet, rng):
        conditions = RoundConditions(1, Season.SUMMER)
        ScenarioEngine(rng).apply_events(
            conditions,
            [event(
                ScenarioEffect(EffectType.MODIFY_SRMC, 1.5, AssetType.GAS_CCGT),
                ScenarioEffect(EffectType.ADD_CARBON_COST, amount=20.0, asset_type=AssetType.COAL),
            )],
            fleet,
        )
        gas = fleet[2]
        coal = fleet[0]
        assert conditions.srmc(gas) == pytest.approx(112.5)
        assert conditions.srmc(coal) == pytest.approx(55.0)
        assert gas.srmc == 75.0

    def test_availability_derates_offer_limit(self, fleet, rng):
        conditions = RoundConditions(1, Season.SUMMER)
        ScenarioEngine(rng).apply_events(
            conditions, [event(ScenarioEffect(EffectType.MODIFY_ASSET_AVAILABILITY, 0.9, AssetType.COAL))], fleet
        )
        assert conditions.offer_limit_mw(fleet[0], TimePeriod.DAY_PEAK) == pytest.approx(720.0)
        assert fleet[0].capacity_mw == 800.0

    def test_capacity_factor_multiplier(self, fleet, rng):
        conditions = RoundConditions(1, Season.WINTER)
        ScenarioEngine(rng).apply_events(
            conditions, [event(ScenarioEffect(EffectType.MODIFY_CAPACITY_FACTOR, 0.5, AssetType.WIND))], fleet
        )
        # winter night_peak wind factor is 0.45
        assert conditions.offer_limit_mw(fleet[3], TimePeriod.NIGHT_PEAK) == pytest.approx(300 * 0.45 * 0.5)

    def test_multiplier_range_drawn_from_rng(self, fleet):
        effect = ScenarioEffect(EffectType.MODIFY_DEMAND, multiplier_range=(1.15, 1.25))
        first = RoundConditions(1, Season.SUMMER)
        second = RoundConditions(1, Season.SUMMER)
        ScenarioEngine(np.random.default_rng(7)).apply_events(first, [event(effect)], fleet)
        ScenarioEngine(np.random.default_rng(7)).apply_events(second, [event(effect)], fleet)

        value = first.demand_multipliers[TimePeriod.DAY_PEAK]
        assert 1.15 <= value <= 1.25
        assert second.demand_multipliers == first.demand_multipliers


class TestForcedOutage:
    def test_one_thermal_unit_forced_off(self, fleet, rng):
        conditions = RoundConditions(1, Season.SUMMER)
        forced = ScenarioEngine(rng).apply_events(conditions, [SURPRISE_EVENTS["generator_trip"]], fleet)

        assert len(forced) == 1
        assert forced[0] in {"t1-coal", "t2-coal", "t2-gas_ccgt"}
        outaged = next(asset for asset in fleet if asset.id == forced[0])
        assert conditions.offer_limit_mw(outaged, TimePeriod.DAY_PEAK) == 0.0

    def test_same_seed_same_unit(self, fleet):
        picks = []
        for _ in range(2):
            conditions = RoundConditions(1, Season.SUMMER)
            picks.append(ScenarioEngine(np.random.default_rng(3)).apply_events(
                conditions, [SURPRISE_EVENTS["generator_trip"]], fleet
            ))
        assert picks[0] == picks[1]

    def test_no_thermal_units(self, rng):
        conditions = RoundConditions(1, Season.SUMMER)
        forced = ScenarioEngine(rng).apply_events(
            conditions, [SURPRISE_EVENTS["generator_trip"]], [make_renewable("t1")]
        )
        assert forced == []
        assert conditions.forced_outages == set()

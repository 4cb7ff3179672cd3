# tests/test_withholding.py
"""Withholding flags during scarcity."""

import pytest
from conftest import make_renewable, make_thermal

from gridrival.analysis.withholding import WithholdingMonitor
from gridrival.core.assets import AssetType
from gridrival.core.bids import BidBook
from gridrival.core.market import RoundClearing
from gridrival.core.periods import ROUND_PERIODS, TimePeriod


@pytest.fixture
def fleet():
    return [
        make_thermal("t1", AssetType.COAL, 800.0, 35.0),
        make_thermal("t2", AssetType.COAL, 800.0, 30.0),
        make_renewable("t2", AssetType.WIND, 300.0),
    ]


def clear(fleet, conditions, offers, demand):
    for period in ROUND_PERIODS:
        conditions.demand_mw[period] = demand
    book = BidBook(1, fleet, conditions)
    book.open()
    for (team_id, asset_id), mw in offers.items():
        for period in ROUND_PERIODS:
            book.upsert(team_id, asset_id, period, [(40.0, mw)] if mw else [])
    book.close()
    result, _ = RoundClearing().clear_round(fleet, book, conditions)
    return result


class TestWithholdingMonitor:
    def test_flags_team_holding_back_during_scarcity(self, fleet, conditions):
        result = clear(fleet, conditions, {("t1", "t1-coal"): 400.0, ("t2", "t2-coal"): 800.0}, 1500.0)
        flags = WithholdingMonitor().check_round(result, fleet)

        assert {flag.team_id for flag in flags} == {"t1"}
        assert len(flags) == len(ROUND_PERIODS)
        flag = flags[0]
        assert flag.withheld_mw == pytest.approx(400.0)
        assert flag.withheld_fraction == pytest.approx(0.5)
        assert flag.withheld_by_asset == {"t1-coal": pytest.approx(400.0)}

    def test_small_holdback_not_flagged(self, fleet, conditions):
        result = clear(fleet, conditions, {("t1", "t1-coal"): 700.0, ("t2", "t2-coal"): 800.0}, 1600.0)
        assert WithholdingMonitor().check_round(result, fleet) == []

    def test_no_flags_without_scarcity(self, fleet, conditions):
        result = clear(fleet, conditions, {("t1", "t1-coal"): 0.0, ("t2", "t2-coal"): 800.0}, 500.0)
        assert result.scarcity_periods == []
        assert WithholdingMonitor().check_round(result, fleet) == []

    def test_renewables_ignored(self, fleet, conditions):
        result = clear(fleet, conditions, {("t1", "t1-coal"): 800.0, ("t2", "t2-coal"): 800.0}, 5000.0)
        assert WithholdingMonitor().check_round(result, fleet) == []

    def test_flag_to_dict(self, fleet, conditions):
        result = clear(fleet, conditions, {("t1", "t1-coal"): 0.0, ("t2", "t2-coal"): 800.0}, 1500.0)
        data = WithholdingMonitor().check_period(
            result.periods[TimePeriod.DAY_PEAK], fleet, result.available_mw[TimePeriod.DAY_PEAK]
        )[0].to_dict()
        assert data["team_id"] == "t1"
        assert data["withheld_percent"] == pytest.approx(100.0)

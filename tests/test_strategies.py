# tests/test_strategies.py
"""Automated bidding strategies produce complete, valid bid sets."""

import pytest

from gridrival.core.assets import AssetType
from gridrival.core.bids import BatteryMode, BidBook
from gridrival.core.errors import NotFoundError
from gridrival.core.periods import ROUND_PERIODS, TimePeriod
from gridrival.data.fleet import build_team_fleet
from gridrival.strategies import STRATEGIES, PriceMakerStrategy, get_strategy


@pytest.fixture
def fleet():
    return build_team_fleet("red", 0, 2, list(AssetType))


class TestStrategies:
    @pytest.mark.parametrize("name", sorted(STRATEGIES))
    def test_bids_pass_validation_and_cover_every_slot(self, name, fleet, conditions):
        bids = get_strategy(name).generate_bids(fleet, conditions)
        book = BidBook(1, fleet, conditions)
        book.open()
        book.submit("red", bids)

        assert book.is_complete("red")
        assert len(bids) == len(fleet) * len(ROUND_PERIODS)

    def test_hydro_offered_once(self, fleet, conditions):
        bids = get_strategy("srmc_bidder").generate_bids(fleet, conditions)
        hydro = [bid for bid in bids if bid.asset_id == "red-hydro" and bid.total_offered_mw > 0]
        assert [bid.period for bid in hydro] == [TimePeriod.DAY_PEAK]

    def test_battery_schedule(self, fleet, conditions):
        bids = {bid.period: bid for bid in get_strategy("portfolio").generate_bids(fleet, conditions) if bid.asset_id == "red-battery"}
        assert bids[TimePeriod.NIGHT_OFFPEAK].battery_mode is BatteryMode.CHARGE
        assert bids[TimePeriod.DAY_OFFPEAK].battery_mode is BatteryMode.IDLE
        assert bids[TimePeriod.DAY_PEAK].battery_mode is BatteryMode.DISCHARGE

    def test_price_maker_split(self, fleet, conditions):
        coal = next(asset for asset in fleet if asset.type is AssetType.COAL)
        bands = PriceMakerStrategy().bands_for(coal, 30.0, 800.0)
        assert [(b.price_mwh, b.offered_mw) for b in bands] == [(30.0, pytest.approx(480.0)), (300.0, pytest.approx(320.0))]

    def test_max_bands_respected(self, fleet, conditions):
        bids = get_strategy("price_maker").generate_bids(fleet, conditions, max_bands=1)
        assert all(len(bid.bands) <= 1 for bid in bids)

    def test_unknown_strategy(self):
        with pytest.raises(NotFoundError):
            get_strategy("clairvoyant")

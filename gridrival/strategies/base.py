"""Base class for automated bidding strategies."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

from gridrival.core.assets import Asset, BatteryKind, HydroKind
from gridrival.core.bids import AssetBid, BatteryMode, BidBand
from gridrival.core.conditions import RoundConditions
from gridrival.core.constants import DEFAULT_MAX_BID_BANDS
from gridrival.core.periods import ROUND_PERIODS, TimePeriod


class BiddingStrategy(ABC):
    """Generates a complete set of bids for one team's portfolio.

    Subclasses decide the price/quantity bands for generating assets.
    Storage follows a shared schedule: hydro is offered in a single period
    and batteries charge overnight and discharge into the peaks.
    """

    name = "base"
    hydro_period = TimePeriod.DAY_PEAK
    battery_charge_periods = (TimePeriod.NIGHT_OFFPEAK,)
    battery_discharge_periods = (TimePeriod.DAY_PEAK, TimePeriod.NIGHT_PEAK)
    battery_discharge_price = 150.0
    hydro_price = 100.0

    @abstractmethod
    def bands_for(self, asset: Asset, srmc: float, available_mw: float) -> List[BidBand]:
        """
        Price/quantity bands for a generating asset.

        Parameters
        ----------
        asset : Asset
            Asset being offered
        srmc : float
            Scenario-adjusted SRMC ($/MWh)
        available_mw : float
            Most the asset may offer this period

        Returns
        -------
        List[BidBand]
            Bands whose total does not exceed ``available_mw``
        """
        pass

    def generate_bids(
        self,
        assets: Sequence[Asset],
        conditions: RoundConditions,
        max_bands: int = DEFAULT_MAX_BID_BANDS,
    ) -> List[AssetBid]:
        """One bid for every asset and period."""
        bids = []
        for asset in assets:
            for period in ROUND_PERIODS:
                limit = conditions.offer_limit_mw(asset, period)
                if isinstance(asset.kind, BatteryKind):
                    bids.append(self._battery_bid(asset, period, limit))
                    continue
                if isinstance(asset.kind, HydroKind):
                    bands = [BidBand(self.hydro_price, limit)] if period is self.hydro_period else []
                else:
                    bands = self.bands_for(asset, conditions.srmc(asset), limit)
                bands = [band for band in bands if band.offered_mw > 0][:max_bands]
                bids.append(AssetBid(asset.team_id, asset.id, period, tuple(bands)))
        return bids

    def _battery_bid(self, asset: Asset, period: TimePeriod, limit: float) -> AssetBid:
        if period in self.battery_charge_periods:
            return AssetBid(
                asset.team_id, asset.id, period,
                battery_mode=BatteryMode.CHARGE,
                target_soc_mwh=asset.max_storage_mwh,
            )
        if period in self.battery_discharge_periods and limit > 0:
            return AssetBid(
                asset.team_id, asset.id, period,
                bands=(BidBand(self.battery_discharge_price, limit),),
                battery_mode=BatteryMode.DISCHARGE,
            )
        return AssetBid(asset.team_id, asset.id, period, battery_mode=BatteryMode.IDLE)

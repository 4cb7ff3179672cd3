"""Rule-of-thumb bidding strategies used by bots and simulations."""
from __future__ import annotations

from typing import Dict, List, Type

from gridrival.core.assets import Asset, AssetType
from gridrival.core.bids import BidBand
from gridrival.core.constants import PRICE_CAP_MWH
from gridrival.core.errors import NotFoundError
from gridrival.strategies.base import BiddingStrategy


class PriceTakerStrategy(BiddingStrategy):
    """Offer everything at $0 and accept the market price."""

    name = "price_taker"
    battery_discharge_price = 0.0
    hydro_price = 0.0

    def bands_for(self, asset: Asset, srmc: float, available_mw: float) -> List[BidBand]:
        return [BidBand(0.0, available_mw)]


class SRMCBidderStrategy(BiddingStrategy):
    """Offer everything at marginal cost."""

    name = "srmc_bidder"

    def bands_for(self, asset: Asset, srmc: float, available_mw: float) -> List[BidBand]:
        return [BidBand(srmc, available_mw)]


class PriceMakerStrategy(BiddingStrategy):
    """Most capacity at cost, the rest high to try to set the price."""

    name = "price_maker"

    def __init__(self, low_share: float = 0.6, high_price: float = 300.0):
        self.low_share = low_share
        self.high_price = high_price

    def bands_for(self, asset: Asset, srmc: float, available_mw: float) -> List[BidBand]:
        if asset.type.is_renewable:
            return [BidBand(0.0, available_mw)]
        low = available_mw * self.low_share
        return [BidBand(srmc, low), BidBand(max(srmc, self.high_price), available_mw - low)]


class PortfolioStrategy(BiddingStrategy):
    """Each asset type in its natural merit-order role."""

    name = "portfolio"
    battery_discharge_price = 200.0

    def bands_for(self, asset: Asset, srmc: float, available_mw: float) -> List[BidBand]:
        if asset.type.is_renewable:
            return [BidBand(0.0, available_mw)]
        if asset.type is AssetType.COAL:
            base = available_mw * 0.7
            return [BidBand(srmc * 0.5, base), BidBand(srmc * 1.5, available_mw - base)]
        if asset.type is AssetType.GAS_PEAKER:
            return [BidBand(max(srmc, 250.0), available_mw)]
        return [BidBand(srmc, available_mw)]


class StrategicWithdrawalStrategy(BiddingStrategy):
    """Price part of the thermal fleet at the cap to tighten supply."""

    name = "strategic_withdrawal"

    def __init__(self, withheld_share: float = 0.3):
        self.withheld_share = withheld_share

    def bands_for(self, asset: Asset, srmc: float, available_mw: float) -> List[BidBand]:
        if not asset.type.is_thermal:
            return [BidBand(srmc, available_mw)]
        offered = available_mw * (1.0 - self.withheld_share)
        return [BidBand(srmc, offered), BidBand(PRICE_CAP_MWH, available_mw - offered)]


STRATEGIES: Dict[str, Type[BiddingStrategy]] = {
    cls.name: cls
    for cls in (
        PriceTakerStrategy,
        SRMCBidderStrategy,
        PriceMakerStrategy,
        PortfolioStrategy,
        StrategicWithdrawalStrategy,
    )
}


def get_strategy(name: str) -> BiddingStrategy:
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise NotFoundError(f"Unknown bidding strategy: {name}") from None

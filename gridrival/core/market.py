"""Round clearing: dispatch and settle all four periods as one unit."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

from gridrival.core.assets import Asset, BatteryKind, HydroKind
from gridrival.core.bids import AssetBid, BatteryMode, BidBand, BidBook
from gridrival.core.conditions import RoundConditions
from gridrival.core.dispatch import DispatchEngine, DispatchResult, OfferBand
from gridrival.core.ledger import AssetPeriodResult, LedgerCalculator, StorageState, TeamRoundResult
from gridrival.core.periods import ROUND_PERIODS, TimePeriod

if TYPE_CHECKING:
    from gridrival.analysis.withholding import WithholdingFlag

logger = logging.getLogger(__name__)


def cap_bands(bands: Sequence[BidBand], cap_mw: float) -> List[Tuple[int, BidBand]]:
    """Trim bands to ``cap_mw`` keeping the cheapest capacity first.

    Returns ``(original_index, band)`` pairs with zero-MW bands removed.
    """
    remaining = max(0.0, cap_mw)
    kept = []
    for index, band in sorted(enumerate(bands), key=lambda item: (item[1].price_mwh, item[0])):
        mw = min(band.offered_mw, remaining)
        remaining -= mw
        if mw > 0:
            kept.append((index, BidBand(band.price_mwh, mw)))
    return sorted(kept, key=lambda item: item[0])


@dataclass
class PeriodOffers:
    """Everything the auction needs for one period."""

    offers: List[OfferBand] = field(default_factory=list)
    charging_mw: Dict[str, float] = field(default_factory=dict)
    available_mw: Dict[str, float] = field(default_factory=dict)


@dataclass
class RoundDispatchResult:
    """Dispatch and settlement for every period and team of a round."""

    round_number: int
    periods: Dict[TimePeriod, DispatchResult]
    team_results: Dict[str, TeamRoundResult]
    base_demand_mw: Dict[TimePeriod, float]
    charging_mw: Dict[TimePeriod, Dict[str, float]]
    available_mw: Dict[TimePeriod, Dict[str, float]]
    asset_teams: Dict[str, str]
    withholding_flags: List[WithholdingFlag] = field(default_factory=list)

    @property
    def scarcity_periods(self) -> List[TimePeriod]:
        return [period for period, result in self.periods.items() if result.is_scarcity]

    def team_reserve_margin_percent(self, team_id: str) -> Optional[float]:
        """Spare capacity a team held back across the round, as a percent of its availability.

        None when the team had nothing available.
        """
        available = 0.0
        dispatched = 0.0
        for period, result in self.periods.items():
            for asset_id, mw in self.available_mw[period].items():
                if self.asset_teams.get(asset_id) == team_id:
                    available += mw
                    dispatched += result.dispatched_for_asset(asset_id)
        if available <= 0:
            return None
        return 100.0 * (available - dispatched) / available

    def to_dict(self) -> dict:
        return {
            "round_number": self.round_number,
            "periods": {p.value: r.summary() for p, r in self.periods.items()},
            "teams": {team_id: r.to_dict() for team_id, r in self.team_results.items()},
            "withholding_flags": [flag.to_dict() for flag in self.withholding_flags],
        }


class RoundClearing:
    """Runs the dispatch engine and the ledger over the periods of a round.

    Storage state is rolled forward on a working copy; callers commit it
    to the assets only once the whole round has cleared.
    """

    def __init__(self, engine: Optional[DispatchEngine] = None, ledger: Optional[LedgerCalculator] = None):
        self.engine = engine or DispatchEngine()
        self.ledger = ledger or LedgerCalculator()

    def build_offers(
        self,
        period: TimePeriod,
        assets: Iterable[Asset],
        book: BidBook,
        conditions: RoundConditions,
        state: StorageState,
    ) -> PeriodOffers:
        """Turn stored bids into auction bands, applying storage caps and battery modes."""
        result = PeriodOffers()
        for asset in assets:
            bid: Optional[AssetBid] = book.get(asset.team_id, asset.id, period)
            rating = conditions.offer_limit_mw(asset, period)
            srmc = conditions.srmc(asset)
            kind = asset.kind
            bands: List[Tuple[int, BidBand]] = []

            if isinstance(kind, BatteryKind):
                soc = state.soc_mwh.get(asset.id, kind.soc_mwh)
                mode = bid.battery_mode if bid is not None and bid.battery_mode else BatteryMode.IDLE
                if mode is BatteryMode.CHARGE:
                    if bid.target_soc_mwh is not None:
                        charge = self.ledger.target_charge_mw(asset, soc, bid.target_soc_mwh)
                    else:
                        charge = min(bid.charge_mw or 0.0, self.ledger.charge_limit_mw(asset, soc, rating))
                    if charge > 0:
                        result.charging_mw[asset.id] = charge
                    result.available_mw[asset.id] = 0.0
                    continue
                cap = self.ledger.discharge_limit_mw(asset, soc, rating)
                result.available_mw[asset.id] = cap
                if mode is BatteryMode.DISCHARGE:
                    if bid.target_soc_mwh is not None:
                        mw = min(cap, self.ledger.target_discharge_mw(asset, soc, bid.target_soc_mwh))
                        price = bid.bands[0].price_mwh if bid.bands else 0.0
                        bands = [(0, BidBand(price, mw))]
                    else:
                        bands = cap_bands(bid.bands, cap)
            elif isinstance(kind, HydroKind):
                water = state.water_mwh.get(asset.id, kind.water_remaining_mwh)
                cap = self.ledger.hydro_limit_mw(asset, water, rating)
                result.available_mw[asset.id] = cap
                if bid is not None:
                    bands = cap_bands(bid.bands, cap)
            else:
                cap = conditions.available_mw(asset, period)
                result.available_mw[asset.id] = cap
                if bid is not None:
                    bands = cap_bands(bid.bands, cap)

            for index, band in bands:
                if band.offered_mw > 0:
                    result.offers.append(OfferBand(
                        team_id=asset.team_id,
                        asset_id=asset.id,
                        asset_type=asset.type,
                        band_index=index,
                        price_mwh=band.price_mwh,
                        offered_mw=band.offered_mw,
                        srmc=srmc,
                    ))
        return result

    def clear_round(
        self,
        assets: Sequence[Asset],
        book: BidBook,
        conditions: RoundConditions,
        team_ids: Optional[Sequence[str]] = None,
    ) -> Tuple[RoundDispatchResult, StorageState]:
        """
        Dispatch and settle all periods of a round.

        Parameters
        ----------
        assets : Sequence[Asset]
            Every asset taking part in the round
        book : BidBook
            Frozen bids for the round
        conditions : RoundConditions
            Demand and scenario-adjusted parameters
        team_ids : Sequence[str], optional
            Teams to report on, including teams without assets

        Returns
        -------
        Tuple[RoundDispatchResult, StorageState]
            Round result and the storage state to commit
        """
        state = StorageState.from_assets(assets)
        srmc = {asset.id: conditions.srmc(asset) for asset in assets}
        periods: Dict[TimePeriod, DispatchResult] = {}
        charging: Dict[TimePeriod, Dict[str, float]] = {}
        available: Dict[TimePeriod, Dict[str, float]] = {}
        lines: List[AssetPeriodResult] = []

        for period in ROUND_PERIODS:
            offers = self.build_offers(period, assets, book, conditions, state)
            demand = conditions.demand_mw.get(period, 0.0) + sum(offers.charging_mw.values())
            dispatch = self.engine.dispatch(period, offers.offers, demand, sum(offers.available_mw.values()))
            lines.extend(self.ledger.settle_period(dispatch, assets, srmc, offers.charging_mw, state))
            periods[period] = dispatch
            charging[period] = offers.charging_mw
            available[period] = offers.available_mw
            logger.info(
                "Round %d %s: demand %.0f MW, clearing $%.2f/MWh%s%s",
                conditions.round_number,
                period.value,
                dispatch.demand_mw,
                dispatch.clearing_price_mwh,
                " [scarcity]" if dispatch.is_scarcity else "",
                " [oversupply]" if dispatch.is_oversupply else "",
            )

        if team_ids is None:
            team_ids = list(dict.fromkeys(asset.team_id for asset in assets))
        team_results = {
            team_id: self.ledger.summarize(team_id, conditions.round_number, lines)
            for team_id in team_ids
        }
        result = RoundDispatchResult(
            round_number=conditions.round_number,
            periods=periods,
            team_results=team_results,
            base_demand_mw=dict(conditions.demand_mw),
            charging_mw=charging,
            available_mw=available,
            asset_teams={asset.id: asset.team_id for asset in assets},
        )
        return result, state

"""Merit-order dispatch for a single trading period."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import groupby
from typing import Dict, Iterable, List, Optional

import numpy as np

from gridrival.core.assets import AssetType
from gridrival.core.constants import (
    EMERGENCY_RESPONSE_HOURS,
    OVERSUPPLY_RATIO,
    PERIOD_HOURS,
    PRICE_CAP_MWH,
    PRICE_FLOOR_MWH,
    RESTORED_PRICE_FALLBACK_MWH,
)
from gridrival.core.periods import TimePeriod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OfferBand:
    """A bid band as it enters the auction."""

    team_id: str
    asset_id: str
    asset_type: AssetType
    band_index: int
    price_mwh: float
    offered_mw: float
    srmc: float = 0.0

    @property
    def is_renewable(self) -> bool:
        return self.asset_type.is_renewable


@dataclass
class DispatchedBand:
    """An offer band and the MW it was dispatched."""

    band: OfferBand
    dispatched_mw: float = 0.0

    @property
    def team_id(self) -> str:
        return self.band.team_id

    @property
    def asset_id(self) -> str:
        return self.band.asset_id


@dataclass
class DispatchResult:
    """Outcome of clearing one period."""

    period: TimePeriod
    demand_mw: float
    clearing_price_mwh: float
    effective_price_mwh: float
    total_offered_mw: float
    total_available_mw: float
    total_dispatched_mw: float
    reserve_margin_percent: float
    is_scarcity: bool = False
    is_oversupply: bool = False
    marginal_price_mwh: Optional[float] = None
    bands: List[DispatchedBand] = field(default_factory=list)  # merit order

    def dispatched_for_asset(self, asset_id: str) -> float:
        return sum(b.dispatched_mw for b in self.bands if b.asset_id == asset_id)

    def offered_for_asset(self, asset_id: str) -> float:
        return sum(b.band.offered_mw for b in self.bands if b.asset_id == asset_id)

    def dispatched_by_team(self) -> Dict[str, float]:
        totals: Dict[str, float] = {}
        for b in self.bands:
            totals[b.team_id] = totals.get(b.team_id, 0.0) + b.dispatched_mw
        return totals

    def summary(self) -> dict:
        return {
            "period": self.period.value,
            "demand_mw": self.demand_mw,
            "clearing_price_mwh": self.clearing_price_mwh,
            "effective_price_mwh": self.effective_price_mwh,
            "total_offered_mw": self.total_offered_mw,
            "total_available_mw": self.total_available_mw,
            "total_dispatched_mw": self.total_dispatched_mw,
            "reserve_margin_percent": self.reserve_margin_percent,
            "is_scarcity": self.is_scarcity,
            "is_oversupply": self.is_oversupply,
        }


class DispatchEngine:
    """Uniform-price merit-order auction.

    Bands are stacked cheapest first and dispatched until demand is met.
    Bands tied at the marginal price share the remaining demand pro rata.
    All dispatched bands are paid the clearing price, with two overrides:
    a supply shortfall clears at the price cap (settled at a blend of the
    cap and the restored price) and gross oversupply clears at the floor.
    """

    def __init__(
        self,
        price_cap: float = PRICE_CAP_MWH,
        price_floor: float = PRICE_FLOOR_MWH,
        oversupply_ratio: float = OVERSUPPLY_RATIO,
        period_hours: float = PERIOD_HOURS,
        emergency_hours: float = EMERGENCY_RESPONSE_HOURS,
        restored_price_fallback: float = RESTORED_PRICE_FALLBACK_MWH,
    ):
        self.price_cap = price_cap
        self.price_floor = price_floor
        self.oversupply_ratio = oversupply_ratio
        self.period_hours = period_hours
        self.emergency_hours = emergency_hours
        self.restored_price_fallback = restored_price_fallback

    def merit_order(self, bands: Iterable[OfferBand]) -> List[OfferBand]:
        """
        Normalise and sort offer bands.

        Renewable bands are priced at 0, other prices are clamped to the
        cap/floor, and empty bands are dropped.

        Returns
        -------
        List[OfferBand]
            Bands ascending by price; renewables first at equal price, then
            by team, asset and band index.
        """
        normalised = []
        for band in bands:
            if band.offered_mw <= 0:
                continue
            price = 0.0 if band.is_renewable else min(self.price_cap, max(self.price_floor, band.price_mwh))
            if price != band.price_mwh:
                band = OfferBand(
                    band.team_id, band.asset_id, band.asset_type, band.band_index,
                    price, band.offered_mw, band.srmc,
                )
            normalised.append(band)
        return sorted(
            normalised,
            key=lambda b: (b.price_mwh, 0 if b.is_renewable else 1, b.team_id, b.asset_id, b.band_index),
        )

    def dispatch(
        self,
        period: TimePeriod,
        bands: Iterable[OfferBand],
        demand_mw: float,
        total_available_mw: Optional[float] = None,
    ) -> DispatchResult:
        """
        Clear one period.

        Parameters
        ----------
        period : TimePeriod
            Period being cleared
        bands : Iterable[OfferBand]
            Every offer band across all teams
        demand_mw : float
            Demand to serve, including battery charging load
        total_available_mw : float, optional
            Available capacity for the reserve margin; defaults to total offered

        Returns
        -------
        DispatchResult
            Per-band dispatch and period prices
        """
        ordered = self.merit_order(bands)
        demand = max(0.0, float(demand_mw))
        offered = np.array([b.offered_mw for b in ordered], dtype=float)
        dispatched = np.zeros(len(ordered), dtype=float)
        total_offered = float(offered.sum())
        available = total_offered if total_available_mw is None else float(total_available_mw)

        marginal_price: Optional[float] = None
        if demand > 0:
            cumulative = 0.0
            start = 0
            for price, group_iter in groupby(ordered, key=lambda b: b.price_mwh):
                size = len(list(group_iter))
                group = slice(start, start + size)
                start += size
                group_total = float(offered[group].sum())
                marginal_price = price
                if cumulative + group_total <= demand:
                    dispatched[group] = offered[group]
                    cumulative += group_total
                    if cumulative >= demand:
                        break
                    continue
                remaining = demand - cumulative
                dispatched[group] = self._pro_rata(offered[group], remaining)
                cumulative = demand
                break

        is_scarcity = demand > 0 and total_offered < demand
        is_oversupply = demand > 0 and not is_scarcity and total_offered >= self.oversupply_ratio * demand

        if demand <= 0:
            clearing = ordered[0].price_mwh if ordered else 0.0
            effective = clearing
        elif is_scarcity:
            clearing = self.price_cap
            effective = self.emergency_price(ordered, dispatched)
        elif is_oversupply:
            clearing = self.price_floor
            effective = clearing
        else:
            clearing = marginal_price if marginal_price is not None else 0.0
            effective = clearing

        result = DispatchResult(
            period=period,
            demand_mw=demand,
            clearing_price_mwh=clearing,
            effective_price_mwh=effective,
            total_offered_mw=total_offered,
            total_available_mw=available,
            total_dispatched_mw=float(dispatched.sum()),
            reserve_margin_percent=self.reserve_margin_percent(available, demand),
            is_scarcity=is_scarcity,
            is_oversupply=is_oversupply,
            marginal_price_mwh=marginal_price,
            bands=[DispatchedBand(band, float(mw)) for band, mw in zip(ordered, dispatched)],
        )
        logger.debug(
            "%s cleared at $%.2f/MWh (effective $%.2f) for %.1f MW demand",
            period.value, result.clearing_price_mwh, result.effective_price_mwh, demand,
        )
        return result

    @staticmethod
    def _pro_rata(offered: np.ndarray, remaining: float) -> np.ndarray:
        """Split ``remaining`` across a price group in proportion to offered MW."""
        shares = remaining * offered / offered.sum()
        largest = int(np.argmax(offered))  # first of equal-largest bands
        shares[largest] += remaining - shares.sum()
        return shares

    def emergency_price(self, ordered: List[OfferBand], dispatched: np.ndarray) -> float:
        """Blend of one emergency hour at the cap and the rest at the restored price."""
        srmcs = [band.srmc for band, mw in zip(ordered, dispatched) if mw > 0 and band.srmc > 0]
        restored = max(srmcs) if srmcs else self.restored_price_fallback
        emergency_share = self.emergency_hours / self.period_hours
        return emergency_share * self.price_cap + (1.0 - emergency_share) * restored

    @staticmethod
    def reserve_margin_percent(available_mw: float, demand_mw: float) -> float:
        if available_mw <= 0:
            return -100.0 if demand_mw > 0 else 0.0
        return 100.0 * (available_mw - demand_mw) / available_mw

"""Per-round working copy of market parameters.

Scenario effects and demand are written here rather than onto the assets,
so a round's adjustments never leak into the next one.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Set

from gridrival.core.assets import Asset, AssetType, BatteryKind, HydroKind, RenewableKind
from gridrival.core.constants import PERIOD_HOURS
from gridrival.core.periods import ROUND_PERIODS, Season, TimePeriod


def _unit_multipliers() -> Dict[AssetType, float]:
    return {asset_type: 1.0 for asset_type in AssetType}


@dataclass
class RoundConditions:
    """Demand and scenario-adjusted asset parameters for one round."""

    round_number: int
    season: Season
    demand_mw: Dict[TimePeriod, float] = field(default_factory=lambda: {p: 0.0 for p in ROUND_PERIODS})
    demand_multipliers: Dict[TimePeriod, float] = field(default_factory=lambda: {p: 1.0 for p in ROUND_PERIODS})
    demand_noise: Dict[TimePeriod, float] = field(default_factory=dict)  # drawn once per round
    availability_multipliers: Dict[AssetType, float] = field(default_factory=_unit_multipliers)
    capacity_factor_multipliers: Dict[AssetType, float] = field(default_factory=_unit_multipliers)
    srmc_multipliers: Dict[AssetType, float] = field(default_factory=_unit_multipliers)
    srmc_adders: Dict[AssetType, float] = field(default_factory=lambda: {t: 0.0 for t in AssetType})
    forced_outages: Set[str] = field(default_factory=set)
    asset_derates: Dict[str, float] = field(default_factory=dict)  # asset id -> share of capacity left
    applied_events: list = field(default_factory=list)
    demand_overridden: bool = False
    period_hours: float = PERIOD_HOURS

    def srmc(self, asset: Asset) -> float:
        """Scenario-adjusted SRMC ($/MWh), never negative."""
        adjusted = asset.srmc * self.srmc_multipliers.get(asset.type, 1.0) + self.srmc_adders.get(asset.type, 0.0)
        return max(0.0, adjusted)

    def offer_limit_mw(self, asset: Asset, period: TimePeriod) -> float:
        """Largest MW a team may offer for ``asset`` in ``period``.

        Thermal units are derated (or zeroed by a forced outage), renewables
        follow their capacity factor, and storage is bounded by its power
        rating. Water and state-of-charge caps are applied at clearing time.
        """
        if asset.id in self.forced_outages:
            return 0.0
        kind = asset.kind
        if isinstance(kind, RenewableKind):
            factor = kind.capacity_factor(self.season, period) * self.capacity_factor_multipliers.get(asset.type, 1.0)
            return min(asset.capacity_mw, max(0.0, asset.capacity_mw * factor))
        if isinstance(kind, BatteryKind):
            return asset.capacity_mw
        derate = self.asset_derates.get(asset.id, 1.0)
        return max(0.0, asset.capacity_mw * self.availability_multipliers.get(asset.type, 1.0) * derate)

    def available_mw(self, asset: Asset, period: TimePeriod, soc_mwh: Optional[float] = None, water_mwh: Optional[float] = None) -> float:
        """Physically deliverable MW given current storage levels."""
        limit = self.offer_limit_mw(asset, period)
        if isinstance(asset.kind, HydroKind):
            water = asset.kind.water_remaining_mwh if water_mwh is None else water_mwh
            return min(limit, max(0.0, water) / self.period_hours)
        if isinstance(asset.kind, BatteryKind):
            soc = asset.kind.soc_mwh if soc_mwh is None else soc_mwh
            return min(limit, max(0.0, soc) / self.period_hours)
        return limit

    def fleet_capacity_mw(self, assets: Iterable[Asset], period: TimePeriod) -> float:
        """Generating capacity across the fleet for demand sizing (batteries excluded)."""
        return sum(
            self.available_mw(asset, period)
            for asset in assets
            if not isinstance(asset.kind, BatteryKind)
        )

    def to_dict(self) -> dict:
        return {
            "round_number": self.round_number,
            "season": self.season.value,
            "demand_mw": {p.value: mw for p, mw in self.demand_mw.items()},
            "forced_outages": sorted(self.forced_outages),
            "asset_derates": dict(self.asset_derates),
            "applied_events": list(self.applied_events),
            "demand_overridden": self.demand_overridden,
        }

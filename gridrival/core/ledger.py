"""Settlement: turn dispatch into revenue, cost and profit, and roll storage state forward."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from gridrival.core.assets import Asset, AssetType, BatteryKind, HydroKind, ThermalKind
from gridrival.core.constants import PERIOD_HOURS
from gridrival.core.dispatch import DispatchResult
from gridrival.core.periods import TimePeriod


@dataclass
class StorageState:
    """Working copy of the asset state that persists between periods and rounds."""

    soc_mwh: Dict[str, float] = field(default_factory=dict)
    water_mwh: Dict[str, float] = field(default_factory=dict)
    was_running: Dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_assets(cls, assets: Iterable[Asset]) -> StorageState:
        """Snapshot storage levels at the start of a round.

        Every unit starts the round as not running, so dispatch in the first
        period incurs a startup cost.
        """
        state = cls()
        for asset in assets:
            if isinstance(asset.kind, BatteryKind):
                state.soc_mwh[asset.id] = asset.kind.soc_mwh
            elif isinstance(asset.kind, HydroKind):
                state.water_mwh[asset.id] = asset.kind.water_remaining_mwh
            if isinstance(asset.kind, (ThermalKind, HydroKind)):
                state.was_running[asset.id] = False
        return state

    def commit(self, assets: Iterable[Asset]) -> None:
        """Write the working copy back onto the assets."""
        for asset in assets:
            kind = asset.kind
            if isinstance(kind, BatteryKind) and asset.id in self.soc_mwh:
                kind.soc_mwh = self.soc_mwh[asset.id]
            elif isinstance(kind, HydroKind) and asset.id in self.water_mwh:
                kind.water_remaining_mwh = self.water_mwh[asset.id]


@dataclass
class AssetPeriodResult:
    """Settlement line for one asset in one period."""

    team_id: str
    asset_id: str
    asset_type: AssetType
    period: TimePeriod
    dispatched_mw: float = 0.0
    charged_mw: float = 0.0
    price_mwh: float = 0.0
    revenue: float = 0.0
    variable_cost: float = 0.0
    charging_cost: float = 0.0
    startup_cost: float = 0.0
    storage_after_mwh: Optional[float] = None

    @property
    def total_cost(self) -> float:
        return self.variable_cost + self.charging_cost + self.startup_cost

    @property
    def profit(self) -> float:
        return self.revenue - self.total_cost


@dataclass
class AssetRoundResult:
    """An asset's settlement summed over the round."""

    asset_id: str
    asset_type: AssetType
    dispatched_mwh: float = 0.0
    charged_mwh: float = 0.0
    revenue: float = 0.0
    variable_cost: float = 0.0
    charging_cost: float = 0.0
    startup_cost: float = 0.0

    @property
    def total_cost(self) -> float:
        return self.variable_cost + self.charging_cost + self.startup_cost

    @property
    def profit(self) -> float:
        return self.revenue - self.total_cost


@dataclass
class TeamRoundResult:
    """Per-asset and total settlement for a team over one round."""

    team_id: str
    round_number: int
    assets: Dict[str, AssetRoundResult] = field(default_factory=dict)
    lines: List[AssetPeriodResult] = field(default_factory=list)

    @property
    def revenue(self) -> float:
        return sum(a.revenue for a in self.assets.values())

    @property
    def variable_cost(self) -> float:
        return sum(a.variable_cost + a.charging_cost for a in self.assets.values())

    @property
    def startup_cost(self) -> float:
        return sum(a.startup_cost for a in self.assets.values())

    @property
    def total_cost(self) -> float:
        return sum(a.total_cost for a in self.assets.values())

    @property
    def profit(self) -> float:
        return self.revenue - self.total_cost

    @property
    def dispatched_mwh(self) -> float:
        return sum(a.dispatched_mwh for a in self.assets.values())

    def profit_by_period(self) -> Dict[TimePeriod, float]:
        totals: Dict[TimePeriod, float] = {}
        for line in self.lines:
            totals[line.period] = totals.get(line.period, 0.0) + line.profit
        return totals

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "round_number": self.round_number,
            "revenue": self.revenue,
            "variable_cost": self.variable_cost,
            "startup_cost": self.startup_cost,
            "profit": self.profit,
            "assets": {
                asset_id: {
                    "type": a.asset_type.value,
                    "dispatched_mwh": a.dispatched_mwh,
                    "charged_mwh": a.charged_mwh,
                    "revenue": a.revenue,
                    "variable_cost": a.variable_cost,
                    "charging_cost": a.charging_cost,
                    "startup_cost": a.startup_cost,
                    "profit": a.profit,
                }
                for asset_id, a in self.assets.items()
            },
        }


class LedgerCalculator:
    """Settles dispatched energy and tracks battery and hydro energy budgets."""

    def __init__(self, period_hours: float = PERIOD_HOURS):
        self.period_hours = period_hours

    # ------------------------------------------------------------------
    # Limits applied before dispatch
    # ------------------------------------------------------------------
    def charge_limit_mw(self, asset: Asset, soc_mwh: float, rating_mw: Optional[float] = None) -> float:
        """Largest charging rate that fits in the remaining headroom this period."""
        kind = asset.kind
        rating = asset.capacity_mw if rating_mw is None else rating_mw
        headroom = max(0.0, asset.max_storage_mwh - soc_mwh)
        return max(0.0, min(rating, headroom / (self.period_hours * kind.charge_efficiency)))

    def discharge_limit_mw(self, asset: Asset, soc_mwh: float, rating_mw: Optional[float] = None) -> float:
        rating = asset.capacity_mw if rating_mw is None else rating_mw
        return max(0.0, min(rating, soc_mwh / self.period_hours))

    def hydro_limit_mw(self, asset: Asset, water_mwh: float, rating_mw: Optional[float] = None) -> float:
        """``min(capacity, water / period hours)``."""
        rating = asset.capacity_mw if rating_mw is None else rating_mw
        return max(0.0, min(rating, water_mwh / self.period_hours))

    def target_charge_mw(self, asset: Asset, soc_mwh: float, target_soc_mwh: float) -> float:
        """Charging rate that moves SOC toward a target within one period."""
        needed = (target_soc_mwh - soc_mwh) / (self.period_hours * asset.kind.charge_efficiency)
        return max(0.0, min(needed, self.charge_limit_mw(asset, soc_mwh)))

    def target_discharge_mw(self, asset: Asset, soc_mwh: float, target_soc_mwh: float) -> float:
        """Discharge rate that moves SOC down to a target within one period."""
        needed = (soc_mwh - target_soc_mwh) / self.period_hours
        return max(0.0, min(needed, self.discharge_limit_mw(asset, soc_mwh)))

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------
    def settle_period(
        self,
        dispatch: DispatchResult,
        assets: Iterable[Asset],
        srmc: Mapping[str, float],
        charging_mw: Mapping[str, float],
        state: StorageState,
    ) -> List[AssetPeriodResult]:
        """
        Settle every asset for one period and update ``state`` in place.

        Parameters
        ----------
        dispatch : DispatchResult
            Cleared period
        assets : Iterable[Asset]
            All assets taking part in the round
        srmc : Mapping[str, float]
            Scenario-adjusted SRMC by asset id
        charging_mw : Mapping[str, float]
            Battery charging load by asset id (already clamped to headroom)
        state : StorageState
            Working storage state, rolled forward by this period

        Returns
        -------
        List[AssetPeriodResult]
            One settlement line per asset
        """
        hours = self.period_hours
        price = dispatch.effective_price_mwh
        lines = []
        for asset in assets:
            dispatched = dispatch.dispatched_for_asset(asset.id)
            charged = charging_mw.get(asset.id, 0.0)
            line = AssetPeriodResult(
                team_id=asset.team_id,
                asset_id=asset.id,
                asset_type=asset.type,
                period=dispatch.period,
                dispatched_mw=dispatched,
                charged_mw=charged,
                price_mwh=price,
                revenue=dispatched * hours * price,
                variable_cost=dispatched * hours * srmc.get(asset.id, asset.srmc),
            )

            kind = asset.kind
            if isinstance(kind, (ThermalKind, HydroKind)):
                running = dispatched > 0
                if running and not state.was_running.get(asset.id, False):
                    line.startup_cost = asset.startup_cost
                state.was_running[asset.id] = running

            if isinstance(kind, BatteryKind):
                soc = state.soc_mwh.get(asset.id, kind.soc_mwh)
                if charged > 0:
                    line.charging_cost = charged * hours * price
                    soc = min(asset.max_storage_mwh, soc + charged * hours * kind.charge_efficiency)
                if dispatched > 0:
                    soc = max(0.0, soc - dispatched * hours)
                state.soc_mwh[asset.id] = soc
                line.storage_after_mwh = soc
            elif isinstance(kind, HydroKind):
                water = state.water_mwh.get(asset.id, kind.water_remaining_mwh)
                water = max(0.0, water - dispatched * hours)
                state.water_mwh[asset.id] = water
                line.storage_after_mwh = water

            lines.append(line)
        return lines

    def summarize(self, team_id: str, round_number: int, lines: Iterable[AssetPeriodResult]) -> TeamRoundResult:
        """Roll settlement lines up into a team's round result."""
        result = TeamRoundResult(team_id=team_id, round_number=round_number)
        hours = self.period_hours
        for line in lines:
            if line.team_id != team_id:
                continue
            total = result.assets.setdefault(line.asset_id, AssetRoundResult(line.asset_id, line.asset_type))
            total.dispatched_mwh += line.dispatched_mw * hours
            total.charged_mwh += line.charged_mw * hours
            total.revenue += line.revenue
            total.variable_cost += line.variable_cost
            total.charging_cost += line.charging_cost
            total.startup_cost += line.startup_cost
            result.lines.append(line)
        return result

"""Economic withholding check for scarcity periods."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from gridrival.core.assets import Asset, HydroKind, ThermalKind
from gridrival.core.constants import WITHHOLDING_THRESHOLD
from gridrival.core.dispatch import DispatchResult
from gridrival.core.market import RoundDispatchResult
from gridrival.core.periods import TimePeriod

logger = logging.getLogger(__name__)


@dataclass
class WithholdingFlag:
    """A team that held back too much dispatchable capacity during scarcity."""

    team_id: str
    period: TimePeriod
    withheld_mw: float
    available_mw: float
    withheld_by_asset: Dict[str, float] = field(default_factory=dict)

    @property
    def withheld_fraction(self) -> float:
        return self.withheld_mw / self.available_mw if self.available_mw > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "period": self.period.value,
            "withheld_mw": self.withheld_mw,
            "available_mw": self.available_mw,
            "withheld_percent": 100.0 * self.withheld_fraction,
            "withheld_by_asset": dict(self.withheld_by_asset),
        }


class WithholdingMonitor:
    """Flags teams whose unoffered thermal and hydro capacity exceeds a threshold.

    Only scarcity periods are examined and flags are informational.
    """

    def __init__(self, threshold: float = WITHHOLDING_THRESHOLD):
        self.threshold = threshold

    def check_period(
        self,
        dispatch: DispatchResult,
        assets: Iterable[Asset],
        available_mw: Dict[str, float],
    ) -> List[WithholdingFlag]:
        if not dispatch.is_scarcity:
            return []
        by_team: Dict[str, WithholdingFlag] = {}
        for asset in assets:
            if not isinstance(asset.kind, (ThermalKind, HydroKind)):
                continue
            available = available_mw.get(asset.id, 0.0)
            withheld = max(0.0, available - dispatch.offered_for_asset(asset.id))
            flag = by_team.setdefault(asset.team_id, WithholdingFlag(asset.team_id, dispatch.period, 0.0, 0.0))
            flag.available_mw += available
            flag.withheld_mw += withheld
            if withheld > 0:
                flag.withheld_by_asset[asset.id] = withheld

        flags = []
        for team_id in sorted(by_team):
            flag = by_team[team_id]
            if flag.available_mw > 0 and flag.withheld_mw > self.threshold * flag.available_mw:
                logger.info(
                    "Withholding flag: team %s held back %.0f of %.0f MW in %s",
                    team_id, flag.withheld_mw, flag.available_mw, dispatch.period.value,
                )
                flags.append(flag)
        return flags

    def check_round(self, result: RoundDispatchResult, assets: Iterable[Asset]) -> List[WithholdingFlag]:
        """Check every scarcity period of a cleared round."""
        assets = list(assets)
        flags: List[WithholdingFlag] = []
        for period in result.scarcity_periods:
            flags.extend(self.check_period(result.periods[period], assets, result.available_mw[period]))
        return flags

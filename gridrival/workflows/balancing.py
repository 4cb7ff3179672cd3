"""Between-round balancing checks.

A policy looks at the round that just closed and returns one
:class:`BalancingResult` per team it acts on. A result can carry a cash
penalty, a capacity derate on one asset for the next round, or neither.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence

import numpy as np

from gridrival.core.assets import AssetType, RenewableKind
from gridrival.core.constants import BALANCING_THRESHOLD_PERCENT
from gridrival.core.market import RoundDispatchResult

if TYPE_CHECKING:
    from gridrival.workflows.game import Team

logger = logging.getLogger(__name__)


@dataclass
class BalancingResult:
    """What a balancing check did to one team."""

    team_id: str
    round_number: int
    reserve_margin_percent: Optional[float]
    threshold_percent: float
    penalty_dollars: float = 0.0
    asset_id: Optional[str] = None
    derate_percent: float = 0.0
    description: str = ""

    @property
    def availability_factor(self) -> float:
        """Share of the derated asset's capacity left for the next round."""
        return 1.0 - self.derate_percent / 100.0

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "round_number": self.round_number,
            "reserve_margin_percent": self.reserve_margin_percent,
            "threshold_percent": self.threshold_percent,
            "penalty_dollars": self.penalty_dollars,
            "asset_id": self.asset_id,
            "derate_percent": self.derate_percent,
            "description": self.description,
        }


class BalancingPolicy(ABC):
    """Base class for between-round checks."""

    def __init__(self, threshold_percent: float = BALANCING_THRESHOLD_PERCENT):
        self.threshold_percent = threshold_percent

    @abstractmethod
    def evaluate(
        self,
        result: RoundDispatchResult,
        teams: Sequence[Team],
        rng: Optional[np.random.Generator] = None,
    ) -> List[BalancingResult]:
        """
        Check every team after a round.

        Parameters
        ----------
        result : RoundDispatchResult
            The round that just closed
        teams : Sequence[Team]
            Teams with their cumulative profit and fleet
        rng : np.random.Generator, optional
            The game's seeded generator

        Returns
        -------
        List[BalancingResult]
            One entry per team the policy acted on
        """
        pass


class ReserveMarginPolicy(BalancingPolicy):
    """Flags teams whose round reserve margin fell below the threshold."""

    def penalty_for(self, team_id: str, reserve_margin_percent: float, result: RoundDispatchResult) -> float:
        return 0.0

    def evaluate(
        self,
        result: RoundDispatchResult,
        teams: Sequence[Team],
        rng: Optional[np.random.Generator] = None,
    ) -> List[BalancingResult]:
        breaches = []
        for team in teams:
            margin = result.team_reserve_margin_percent(team.id)
            if margin is None or margin >= self.threshold_percent:
                continue
            penalty = max(0.0, float(self.penalty_for(team.id, margin, result)))
            logger.info(
                "Balancing: team %s reserve margin %.1f%% below %.1f%% (penalty $%.0f)",
                team.id, margin, self.threshold_percent, penalty,
            )
            breaches.append(BalancingResult(team.id, result.round_number, margin, self.threshold_percent, penalty))
        return breaches


class RecordOnlyPolicy(ReserveMarginPolicy):
    """Records reserve breaches without charging anything."""


class ReserveShortfallPolicy(ReserveMarginPolicy):
    """Charges a fixed amount per percentage point below the threshold."""

    def __init__(self, dollars_per_point: float = 10_000.0, threshold_percent: float = BALANCING_THRESHOLD_PERCENT):
        super().__init__(threshold_percent)
        self.dollars_per_point = dollars_per_point

    def penalty_for(self, team_id: str, reserve_margin_percent: float, result: RoundDispatchResult) -> float:
        return self.dollars_per_point * (self.threshold_percent - reserve_margin_percent)


class LeaderDeratePolicy(BalancingPolicy):
    """
    Unplanned maintenance for runaway leaders.

    Teams whose cumulative profit is more than ``threshold_percent`` above
    the field average lose part of their largest non-renewable unit for the
    next round. Nothing happens while the average profit is not positive.

    Parameters
    ----------
    threshold_percent : float
        Margin over the average profit that triggers a derate
    min_derate_percent, max_derate_percent : float
        Range the derate is drawn from
    """

    def __init__(
        self,
        threshold_percent: float = BALANCING_THRESHOLD_PERCENT,
        min_derate_percent: float = 30.0,
        max_derate_percent: float = 60.0,
    ):
        super().__init__(threshold_percent)
        self.min_derate_percent = min_derate_percent
        self.max_derate_percent = max_derate_percent

    def evaluate(
        self,
        result: RoundDispatchResult,
        teams: Sequence[Team],
        rng: Optional[np.random.Generator] = None,
    ) -> List[BalancingResult]:
        teams = list(teams)
        if not teams:
            return []
        average = float(np.mean([team.cumulative_profit_dollars for team in teams]))
        if average <= 0:
            return []
        rng = rng if rng is not None else np.random.default_rng()
        cutoff = average * (1.0 + self.threshold_percent / 100.0)

        derates = []
        for team in teams:
            if team.cumulative_profit_dollars <= cutoff:
                continue
            candidates = [
                asset for asset in team.assets
                if not isinstance(asset.kind, RenewableKind) and asset.type is not AssetType.BATTERY
                and asset.capacity_mw > 0
            ]
            if not candidates:
                continue
            target = max(candidates, key=lambda asset: asset.capacity_mw)
            derate = float(round(rng.uniform(self.min_derate_percent, self.max_derate_percent)))
            logger.info(
                "Balancing: team %s leads at $%.0f (cutoff $%.0f); %s derated %.0f%%",
                team.id, team.cumulative_profit_dollars, cutoff, target.id, derate,
            )
            derates.append(BalancingResult(
                team_id=team.id,
                round_number=result.round_number,
                reserve_margin_percent=result.team_reserve_margin_percent(team.id),
                threshold_percent=self.threshold_percent,
                asset_id=target.id,
                derate_percent=derate,
                description=f"Unexpected maintenance at {target.name}: capacity reduced by {derate:.0f}% next round.",
            ))
        return derates

"""Game aggregate: phase, teams and round history."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from gridrival.core.assets import Asset
from gridrival.core.bids import BidBook
from gridrival.core.conditions import RoundConditions
from gridrival.core.errors import NotFoundError
from gridrival.core.ledger import TeamRoundResult
from gridrival.core.market import RoundDispatchResult
from gridrival.data.rounds import RoundConfig
from gridrival.workflows.balancing import BalancingResult
from gridrival.workflows.config import GameConfig


class GamePhase(Enum):
    """Lifecycle phases of a game."""
    LOBBY = "lobby"
    BRIEFING = "briefing"
    BIDDING = "bidding"
    DISPATCHING = "dispatching"
    RESULTS = "results"
    FINAL = "final"


@dataclass
class Team:
    """A competing team and its portfolio."""

    id: str
    name: str
    color: str
    index: int
    assets: List[Asset] = field(default_factory=list)
    cumulative_profit_dollars: float = 0.0
    rank: int = 0
    previous_rank: Optional[int] = None
    round_history: List[TeamRoundResult] = field(default_factory=list)
    balancing_history: List[BalancingResult] = field(default_factory=list)

    def asset(self, asset_id: str) -> Asset:
        for asset in self.assets:
            if asset.id == asset_id:
                return asset
        raise NotFoundError(f"Team {self.id} has no asset {asset_id}")

    @property
    def last_round_profit(self) -> Optional[float]:
        return self.round_history[-1].profit if self.round_history else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "rank": self.rank,
            "cumulative_profit_dollars": self.cumulative_profit_dollars,
            "last_round_profit": self.last_round_profit,
            "assets": [asset.to_dict() for asset in self.assets],
        }


@dataclass
class LeaderboardEntry:
    rank: int
    team_id: str
    team_name: str
    color: str
    cumulative_profit_dollars: float
    last_round_profit: Optional[float]
    trend: str  # up, down, same or new

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "team_id": self.team_id,
            "team_name": self.team_name,
            "color": self.color,
            "cumulative_profit_dollars": self.cumulative_profit_dollars,
            "last_round_profit": self.last_round_profit,
            "trend": self.trend,
        }


@dataclass
class Game:
    """The authoritative mutable state of one game."""

    id: str
    config: GameConfig
    phase: GamePhase = GamePhase.LOBBY
    current_round_index: int = -1
    teams: Dict[str, Team] = field(default_factory=dict)
    round_results: List[RoundDispatchResult] = field(default_factory=list)
    balancing_results: List[BalancingResult] = field(default_factory=list)
    pending_derates: Dict[str, float] = field(default_factory=dict)  # applied when the next round is briefed
    bidding_time_remaining: int = 0
    round_config: Optional[RoundConfig] = None
    conditions: Optional[RoundConditions] = None
    bid_book: Optional[BidBook] = None

    @property
    def round_number(self) -> int:
        return self.current_round_index + 1

    def team(self, team_id: str) -> Team:
        try:
            return self.teams[team_id]
        except KeyError:
            raise NotFoundError(f"Unknown team {team_id} in game {self.id}") from None

    def all_assets(self) -> List[Asset]:
        return [asset for team in self.teams.values() for asset in team.assets]

    @property
    def last_result(self) -> Optional[RoundDispatchResult]:
        return self.round_results[-1] if self.round_results else None

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of the game for clients."""
        return {
            "id": self.id,
            "phase": self.phase.value,
            "mode": self.config.mode.value,
            "round_index": self.current_round_index,
            "round_number": self.round_number,
            "round": self.round_config.to_dict() if self.round_config else None,
            "bidding_time_remaining": self.bidding_time_remaining,
            "demand_mw": (
                {p.value: mw for p, mw in self.conditions.demand_mw.items()} if self.conditions else None
            ),
            "teams": [team.to_dict() for team in self.teams.values()],
        }

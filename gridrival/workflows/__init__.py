"""Game workflows: configuration, round lifecycle and the command service."""

from gridrival.workflows.balancing import (
    BalancingPolicy,
    BalancingResult,
    LeaderDeratePolicy,
    RecordOnlyPolicy,
    ReserveMarginPolicy,
    ReserveShortfallPolicy,
)
from gridrival.workflows.config import GameConfig, load_game_config
from gridrival.workflows.game import Game, GamePhase, LeaderboardEntry, Team
from gridrival.workflows.lifecycle import RoundLifecycle
from gridrival.workflows.service import HOST_COMMANDS, GameService
from gridrival.workflows.store import GameStore, SessionIdentity, SessionMap
from gridrival.workflows.timer import BiddingTimer

__all__ = [
    "BalancingPolicy",
    "BalancingResult",
    "LeaderDeratePolicy",
    "RecordOnlyPolicy",
    "ReserveMarginPolicy",
    "ReserveShortfallPolicy",
    "GameConfig",
    "load_game_config",
    "Game",
    "GamePhase",
    "LeaderboardEntry",
    "Team",
    "RoundLifecycle",
    "HOST_COMMANDS",
    "GameService",
    "GameStore",
    "SessionIdentity",
    "SessionMap",
    "BiddingTimer",
]

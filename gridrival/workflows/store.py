"""Registry of running games and the connections bound to them."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from gridrival.core.errors import NotFoundError, ValidationError
from gridrival.workflows.config import GameConfig
from gridrival.workflows.lifecycle import RoundLifecycle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionIdentity:
    """Who a command comes from."""

    game_id: str
    team_id: Optional[str] = None
    is_host: bool = False


class SessionMap:
    """Maps transport connection ids to resolved identities."""

    def __init__(self):
        self._identities: Dict[str, SessionIdentity] = {}

    def bind(self, connection_id: str, identity: SessionIdentity) -> None:
        self._identities[connection_id] = identity

    def resolve(self, connection_id: str) -> SessionIdentity:
        try:
            return self._identities[connection_id]
        except KeyError:
            raise NotFoundError(f"Unknown connection: {connection_id}") from None

    def unbind(self, connection_id: str) -> Optional[SessionIdentity]:
        return self._identities.pop(connection_id, None)

    def connections_for_game(self, game_id: str) -> List[str]:
        return [cid for cid, identity in self._identities.items() if identity.game_id == game_id]


class GameStore:
    """Running games keyed by id; each game has its own lifecycle."""

    def __init__(self, **lifecycle_options):
        self._games: Dict[str, RoundLifecycle] = {}
        self._lifecycle_options = lifecycle_options

    def create(self, config: GameConfig) -> RoundLifecycle:
        if config.game_id in self._games:
            raise ValidationError(f"Game {config.game_id} already exists")
        lifecycle = RoundLifecycle(config, **self._lifecycle_options)
        self._games[config.game_id] = lifecycle
        logger.info("Created game %s (%s, %d teams)", config.game_id, config.mode.value, config.team_count)
        return lifecycle

    def get(self, game_id: str) -> RoundLifecycle:
        try:
            return self._games[game_id]
        except KeyError:
            raise NotFoundError(f"Unknown game: {game_id}") from None

    def remove(self, game_id: str) -> None:
        lifecycle = self.get(game_id)
        lifecycle.timer.cancel()
        del self._games[game_id]
        logger.info("Removed game %s", game_id)

    @property
    def ids(self) -> List[str]:
        return list(self._games)

    def __contains__(self, game_id: str) -> bool:
        return game_id in self._games

    def __len__(self) -> int:
        return len(self._games)

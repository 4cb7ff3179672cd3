"""Command entry point: resolved identity + command name + payload -> reply dict."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from gridrival.core.errors import GridRivalError, NotAuthorizedError, NotFoundError, ValidationError
from gridrival.workflows.config import GameConfig
from gridrival.workflows.lifecycle import RoundLifecycle
from gridrival.workflows.store import GameStore, SessionIdentity, SessionMap

logger = logging.getLogger(__name__)

HOST_COMMANDS = frozenset({
    "start_round",
    "start_bidding",
    "end_bidding",
    "next_round",
    "reset_game",
    "adjust_timer",
    "set_demand",
    "apply_surprises",
    "retry_dispatch",
})


class GameService:
    """
    Applies commands to games in a :class:`GameStore`.

    Every reply is a plain dict. Successful commands return
    ``{"ok": True, "game": snapshot, ...}``; domain errors come back as
    ``{"ok": False, "error": code, "message": text}`` with the game untouched.
    """

    def __init__(self, store: Optional[GameStore] = None, sessions: Optional[SessionMap] = None):
        self.store = store or GameStore()
        self.sessions = sessions or SessionMap()
        self._handlers: Dict[str, Callable[[RoundLifecycle, Mapping[str, Any], SessionIdentity], Dict[str, Any]]] = {
            "add_team": self._add_team,
            "start_round": self._start_round,
            "start_bidding": self._start_bidding,
            "submit_bids": self._submit_bids,
            "end_bidding": self._end_bidding,
            "retry_dispatch": self._retry_dispatch,
            "next_round": self._next_round,
            "reset_game": self._reset_game,
            "adjust_timer": self._adjust_timer,
            "set_demand": self._set_demand,
            "apply_surprises": self._apply_surprises,
            "snapshot": lambda lifecycle, payload, identity: {},
            "leaderboard": self._leaderboard,
            "bid_status": lambda lifecycle, payload, identity: {"bid_status": lifecycle.bid_status()},
            "fleet_info": lambda lifecycle, payload, identity: {"fleet": lifecycle.fleet_info()},
            "last_result": self._last_result,
        }

    def handle(
        self,
        command: str,
        payload: Optional[Mapping[str, Any]] = None,
        identity: Optional[SessionIdentity] = None,
    ) -> Dict[str, Any]:
        """
        Run one command and build the reply.

        Parameters
        ----------
        command : str
            Command name, e.g. ``"submit_bids"``
        payload : Mapping, optional
            Command arguments
        identity : SessionIdentity, optional
            Resolved sender; required for everything but ``create_game``

        Returns
        -------
        Dict[str, Any]
            Reply with an ``ok`` flag
        """
        payload = payload or {}
        try:
            if command == "create_game":
                return self._create_game(payload, identity)
            if identity is None:
                raise NotAuthorizedError(f"{command} needs an identity")
            handler = self._handlers.get(command)
            if handler is None:
                raise NotFoundError(f"Unknown command: {command}")
            if command in HOST_COMMANDS and not identity.is_host:
                raise NotAuthorizedError(f"{command} is a host command")
            lifecycle = self.store.get(identity.game_id)
            reply = {"ok": True}
            reply.update(handler(lifecycle, payload, identity))
            reply["game"] = lifecycle.snapshot()
            return reply
        except GridRivalError as exc:
            logger.warning("Refused %s: %s", command, exc.message)
            return exc.to_dict()

    def handle_connection(
        self,
        connection_id: str,
        command: str,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Resolve a connection id to its identity, then :meth:`handle` the command."""
        try:
            identity = self.sessions.resolve(connection_id)
        except GridRivalError as exc:
            logger.warning("Refused %s from %s: %s", command, connection_id, exc.message)
            return exc.to_dict()
        return self.handle(command, payload, identity)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def _create_game(self, payload: Mapping[str, Any], identity: Optional[SessionIdentity]) -> Dict[str, Any]:
        if identity is not None and not identity.is_host:
            raise NotAuthorizedError("Only a host can create a game")
        config = payload.get("config", payload)
        if not isinstance(config, Mapping):
            raise ValidationError("create_game needs a config object")
        lifecycle = self.store.create(GameConfig.from_dict(config))
        return {"ok": True, "game": lifecycle.snapshot()}

    @staticmethod
    def _add_team(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        team_id = payload.get("team_id") or identity.team_id
        if not identity.is_host and identity.team_id not in (None, team_id):
            raise NotAuthorizedError("A team can only register itself")
        team = lifecycle.add_team(team_id, payload.get("name", ""), payload.get("color", ""))
        return {"team": team.to_dict()}

    @staticmethod
    def _start_round(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        return {"round": lifecycle.start_round().to_dict()}

    @staticmethod
    def _start_bidding(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        lifecycle.start_bidding()
        return {}

    @staticmethod
    def _submit_bids(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        if identity.team_id is None:
            raise NotAuthorizedError("Only teams submit bids")
        bids = lifecycle.submit_bids(identity.team_id, payload.get("bids", []))
        return {"accepted": len(bids)}

    @staticmethod
    def _end_bidding(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        return {"result": lifecycle.end_bidding().to_dict()}

    @staticmethod
    def _retry_dispatch(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        return {"result": lifecycle.retry_dispatch().to_dict()}

    @staticmethod
    def _next_round(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        round_config = lifecycle.next_round()
        return {"round": round_config.to_dict() if round_config else None}

    @staticmethod
    def _reset_game(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        lifecycle.reset_game()
        return {}

    @staticmethod
    def _adjust_timer(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        if "seconds" not in payload:
            raise ValidationError("adjust_timer needs seconds")
        return {"bidding_time_remaining": lifecycle.adjust_timer(payload["seconds"])}

    @staticmethod
    def _set_demand(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        values = payload.get("demand_mw", payload)
        if not isinstance(values, Mapping) or not values:
            raise ValidationError("set_demand needs a period -> MW mapping")
        demand = lifecycle.set_demand(values)
        return {"demand_mw": {period.value: mw for period, mw in demand.items()}}

    @staticmethod
    def _apply_surprises(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        event_ids = payload.get("event_ids")
        if not isinstance(event_ids, (list, tuple)):
            raise ValidationError("apply_surprises needs a list of event_ids")
        return {"forced_outages": lifecycle.apply_surprises(event_ids)}

    @staticmethod
    def _leaderboard(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        return {"leaderboard": [entry.to_dict() for entry in lifecycle.leaderboard()]}

    @staticmethod
    def _last_result(lifecycle: RoundLifecycle, payload: Mapping[str, Any], identity: SessionIdentity) -> Dict[str, Any]:
        result = lifecycle.last_result()
        return {"result": result.to_dict() if result is not None else None}

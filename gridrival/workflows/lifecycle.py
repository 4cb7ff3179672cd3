"""Round lifecycle state machine.

lobby -> briefing -> bidding -> dispatching -> results -> briefing (next) | final

Every public method runs under the lifecycle's lock, so commands arriving
from the countdown task and from clients are applied one at a time.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np

from gridrival.analysis.withholding import WithholdingMonitor
from gridrival.core.bids import AssetBid, BidBook
from gridrival.core.conditions import RoundConditions
from gridrival.core.constants import MIN_TEAMS
from gridrival.core.dispatch import DispatchEngine
from gridrival.core.errors import DispatchFault, NotFoundError, PhaseError, ValidationError
from gridrival.core.market import RoundClearing, RoundDispatchResult
from gridrival.core.periods import ROUND_PERIODS, TimePeriod
from gridrival.data.fleet import build_team_fleet
from gridrival.data.rounds import DEFAULT_CATALOG, RoundCatalog, RoundConfig
from gridrival.data.scenarios import get_scenario_event, get_surprise_event
from gridrival.simulation.demand import DemandModel
from gridrival.simulation.scenario import ScenarioEngine
from gridrival.workflows.balancing import BalancingPolicy, BalancingResult, RecordOnlyPolicy
from gridrival.workflows.config import GameConfig
from gridrival.workflows.game import Game, GamePhase, LeaderboardEntry, Team
from gridrival.workflows.timer import BiddingTimer

logger = logging.getLogger(__name__)


class RoundLifecycle:
    """
    Drives one game through its rounds.

    Parameters
    ----------
    config : GameConfig
        Settings fixed at game creation
    catalog : RoundCatalog, optional
        Round definitions; defaults to the built-in catalogue
    balancing_policy : BalancingPolicy, optional
        Policy applied between rounds; defaults to recording breaches only
    clearing : RoundClearing, optional
        Dispatch and settlement engine
    withholding : WithholdingMonitor, optional
        Post-dispatch withholding check
    demand_model : DemandModel, optional
        Demand generator
    timer_interval : float
        Seconds between countdown ticks
    """

    def __init__(
        self,
        config: GameConfig,
        catalog: Optional[RoundCatalog] = None,
        balancing_policy: Optional[BalancingPolicy] = None,
        clearing: Optional[RoundClearing] = None,
        withholding: Optional[WithholdingMonitor] = None,
        demand_model: Optional[DemandModel] = None,
        timer_interval: float = 1.0,
    ):
        self.config = config
        self.catalog = catalog or DEFAULT_CATALOG
        self.balancing_policy = balancing_policy or RecordOnlyPolicy(config.balancing_threshold_percent)
        self.clearing = clearing or RoundClearing(
            DispatchEngine(price_cap=config.price_cap_mwh, price_floor=config.price_floor_mwh)
        )
        self.withholding = withholding or WithholdingMonitor()
        self.demand_model = demand_model or DemandModel()
        self.rng = np.random.default_rng(config.seed)
        self.scenarios = ScenarioEngine(self.rng)
        self.game = Game(id=config.game_id, config=config)
        self.timer = BiddingTimer(config.game_id, self.tick, interval=timer_interval)
        self._lock = threading.RLock()

    @property
    def phase(self) -> GamePhase:
        return self.game.phase

    # ------------------------------------------------------------------
    # Lobby
    # ------------------------------------------------------------------
    def add_team(self, team_id: str, name: str, color: str = "") -> Team:
        """Register a team; lobby only."""
        with self._lock:
            self._require(GamePhase.LOBBY)
            game = self.game
            if not team_id or not str(name).strip():
                raise ValidationError("Teams need a non-empty id and name")
            if team_id in game.teams:
                raise ValidationError(f"Team id {team_id} is already taken")
            if any(team.name.lower() == str(name).strip().lower() for team in game.teams.values()):
                raise ValidationError(f"Team name {name!r} is already taken")
            if len(game.teams) >= self.config.team_count:
                raise ValidationError(f"Game {game.id} is full ({self.config.team_count} teams)")
            team = Team(id=team_id, name=str(name).strip(), color=color, index=len(game.teams))
            game.teams[team_id] = team
            logger.info("Team %s (%s) joined game %s", team.name, team_id, game.id)
            return team

    # ------------------------------------------------------------------
    # Round flow
    # ------------------------------------------------------------------
    def start_round(self) -> RoundConfig:
        """Brief the first round from the lobby, or the next one from results."""
        with self._lock:
            if self.game.phase is GamePhase.RESULTS:
                if self.game.current_round_index + 1 >= self.catalog.round_count(self.config.mode):
                    raise PhaseError(f"Game {self.game.id} has no rounds left")
                return self.next_round()
            self._require(GamePhase.LOBBY)
            if len(self.game.teams) < MIN_TEAMS:
                raise PhaseError(f"At least {MIN_TEAMS} teams are needed to start")
            return self._prepare_round(0)

    def start_bidding(self) -> BidBook:
        """Open a fresh bid book and start the countdown."""
        with self._lock:
            self._require(GamePhase.BRIEFING)
            game = self.game
            book = BidBook(
                game.round_number,
                game.all_assets(),
                game.conditions,
                max_bands_per_asset=game.round_config.max_bid_bands_per_asset,
                price_cap=self.config.price_cap_mwh,
                price_floor=self.config.price_floor_mwh,
            )
            for team_id in game.teams:
                book.register_team(team_id)
            book.open()
            game.bid_book = book
            game.bidding_time_remaining = game.round_config.bidding_time_limit_seconds
            game.phase = GamePhase.BIDDING
            self.timer.start(game.current_round_index)
            logger.info(
                "Bidding open for round %d of game %s (%ds)",
                game.round_number, game.id, game.bidding_time_remaining,
            )
            return book

    def submit_bids(
        self,
        team_id: str,
        submission: Union[Iterable[Union[AssetBid, Mapping[str, Any]]], Mapping[str, Any]],
    ) -> List[AssetBid]:
        """Validate a batch of bids for one team and store it only if every entry passes."""
        with self._lock:
            self._require(GamePhase.BIDDING)
            self.game.team(team_id)
            if isinstance(submission, Mapping):
                if "bids" in submission:
                    entries = submission["bids"]
                else:
                    entries = [submission]
            else:
                entries = submission
            return self.game.bid_book.submit(team_id, entries)

    def bid_status(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            book = self.game.bid_book
            return book.status() if book is not None else {}

    def tick(self, generation: Optional[int] = None) -> bool:
        """
        Advance the bidding countdown by one second.

        Parameters
        ----------
        generation : int, optional
            Timer generation of the caller; stale generations are ignored

        Returns
        -------
        bool
            True while the countdown should keep running
        """
        with self._lock:
            game = self.game
            if game.phase is not GamePhase.BIDDING:
                return False
            if generation is not None and generation != self.timer.generation:
                logger.warning("Ignoring stale tick for game %s", game.id)
                return False
            game.bidding_time_remaining = max(0, game.bidding_time_remaining - 1)
            logger.debug("Game %s: %ds of bidding left", game.id, game.bidding_time_remaining)
            if game.bidding_time_remaining > 0:
                return True
            if not self.config.auto_dispatch_on_timeout:
                logger.info("Bidding time expired for game %s; waiting for the host", game.id)
                return False
            try:
                self.end_bidding()
            except DispatchFault as exc:
                logger.error("Automatic dispatch failed for game %s: %s", game.id, exc.message)
            return False

    def adjust_timer(self, seconds: Any) -> int:
        with self._lock:
            self._require(GamePhase.BIDDING)
            try:
                seconds = int(seconds)
            except (TypeError, ValueError) as exc:
                raise ValidationError(f"Timer seconds must be an integer, got {seconds!r}") from exc
            self.game.bidding_time_remaining = max(0, seconds)
            # the countdown task exits at zero when the host dispatches by hand
            if self.game.bidding_time_remaining > 0 and not self.timer.active:
                self.timer.start(self.game.current_round_index)
            return self.game.bidding_time_remaining

    def end_bidding(self) -> RoundDispatchResult:
        """Close bidding and clear the round."""
        with self._lock:
            self._require(GamePhase.BIDDING)
            game = self.game
            game.bid_book.close()
            self.timer.cancel()
            game.phase = GamePhase.DISPATCHING
            logger.info("Bidding closed for round %d of game %s", game.round_number, game.id)
            return self._run_dispatch()

    def retry_dispatch(self) -> RoundDispatchResult:
        """Rerun clearing after a dispatch fault."""
        with self._lock:
            self._require(GamePhase.DISPATCHING)
            return self._run_dispatch()

    def next_round(self) -> Optional[RoundConfig]:
        """Apply balancing, then brief the next round; None once the game is final."""
        with self._lock:
            self._require(GamePhase.RESULTS)
            game = self.game
            if self.config.balancing_enabled and game.last_result is not None:
                self._apply_balancing(game.last_result)
            next_index = game.current_round_index + 1
            if next_index >= self.catalog.round_count(self.config.mode):
                game.phase = GamePhase.FINAL
                game.bid_book = None
                logger.info("Game %s finished after %d rounds", game.id, game.round_number)
                return None
            return self._prepare_round(next_index)

    # ------------------------------------------------------------------
    # Host adjustments during briefing
    # ------------------------------------------------------------------
    def set_demand(self, values: Mapping[Any, Any]) -> Dict[TimePeriod, float]:
        with self._lock:
            self._require(GamePhase.BRIEFING)
            demand = self.demand_model.override(self.game.conditions, values)
            logger.info("Host set demand for round %d of game %s", self.game.round_number, self.game.id)
            return demand

    def apply_surprises(self, event_ids: Sequence[str]) -> List[str]:
        """Apply surprise events; returns the ids of assets forced offline."""
        with self._lock:
            self._require(GamePhase.BRIEFING)
            events = [get_surprise_event(event_id) for event_id in event_ids]
            conditions = self.game.conditions
            forced = self.scenarios.apply_events(conditions, events, self.game.all_assets())
            if not conditions.demand_overridden:
                self.demand_model.generate(
                    conditions,
                    self.game.all_assets(),
                    self.game.round_config.demand_variability,
                    self.rng,
                )
            return forced

    def reset_game(self) -> None:
        """Return to the lobby with teams kept and all progress cleared."""
        with self._lock:
            self.timer.cancel()
            game = self.game
            game.phase = GamePhase.LOBBY
            game.current_round_index = -1
            game.round_results.clear()
            game.balancing_results.clear()
            game.pending_derates.clear()
            game.round_config = None
            game.conditions = None
            game.bid_book = None
            game.bidding_time_remaining = 0
            for team in game.teams.values():
                team.assets = []
                team.cumulative_profit_dollars = 0.0
                team.rank = 0
                team.previous_rank = None
                team.round_history.clear()
                team.balancing_history.clear()
            self.rng = np.random.default_rng(self.config.seed)
            self.scenarios.rng = self.rng
            logger.info("Game %s reset to lobby", game.id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def leaderboard(self) -> List[LeaderboardEntry]:
        """Teams by cumulative profit, ties broken by name."""
        with self._lock:
            entries = []
            for rank, team in enumerate(self._ordered_teams(), start=1):
                if team.previous_rank is None or not team.round_history:
                    trend = "new"
                elif team.rank < team.previous_rank:
                    trend = "up"
                elif team.rank > team.previous_rank:
                    trend = "down"
                else:
                    trend = "same"
                entries.append(LeaderboardEntry(
                    rank=rank,
                    team_id=team.id,
                    team_name=team.name,
                    color=team.color,
                    cumulative_profit_dollars=team.cumulative_profit_dollars,
                    last_round_profit=team.last_round_profit,
                    trend=trend,
                ))
            return entries

    def fleet_info(self) -> List[Dict[str, Any]]:
        """Fleet capacity and demand per period of the current round."""
        with self._lock:
            conditions = self.game.conditions
            if conditions is None:
                raise PhaseError(f"Game {self.game.id} has no round in progress")
            assets = self.game.all_assets()
            rows = []
            for period in ROUND_PERIODS:
                by_type: Dict[str, float] = {}
                for asset in assets:
                    by_type[asset.type.value] = by_type.get(asset.type.value, 0.0) + conditions.offer_limit_mw(asset, period)
                rows.append({
                    "period": period.value,
                    "fleet_capacity_mw": conditions.fleet_capacity_mw(assets, period),
                    "demand_mw": conditions.demand_mw.get(period, 0.0),
                    "capacity_by_type_mw": by_type,
                })
            return rows

    def last_result(self) -> Optional[RoundDispatchResult]:
        with self._lock:
            return self.game.last_result

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            data = self.game.snapshot()
            data["leaderboard"] = [entry.to_dict() for entry in self.leaderboard()]
            data["bid_status"] = self.bid_status()
            if self.game.conditions is not None:
                data["conditions"] = self.game.conditions.to_dict()
            return data

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _require(self, *phases: GamePhase) -> None:
        if self.game.phase not in phases:
            expected = " or ".join(phase.value for phase in phases)
            raise PhaseError(f"Game {self.game.id} is in {self.game.phase.value}, expected {expected}")

    def _prepare_round(self, round_index: int) -> RoundConfig:
        """Build fleets, scenario conditions and demand, then enter briefing."""
        game = self.game
        round_config = self.catalog.get(self.config.mode, round_index)
        team_count = len(game.teams)
        for team in game.teams.values():
            owned = {asset.type for asset in team.assets}
            missing = [t for t in round_config.unlocked_asset_types if t not in owned]
            if missing:
                team.assets.extend(
                    build_team_fleet(team.id, team.index, team_count, missing, self.config.asset_preset)
                )

        conditions = RoundConditions(round_number=round_config.round_number, season=round_config.season)
        conditions.asset_derates.update(game.pending_derates)
        game.pending_derates.clear()
        events = [get_scenario_event(event_id) for event_id in round_config.active_scenario_events]
        assets = game.all_assets()
        self.scenarios.apply_events(conditions, events, assets)
        self.demand_model.generate(conditions, assets, round_config.demand_variability, self.rng)

        game.current_round_index = round_index
        game.round_config = round_config
        game.conditions = conditions
        game.bid_book = None
        game.bidding_time_remaining = round_config.bidding_time_limit_seconds
        game.phase = GamePhase.BRIEFING
        logger.info(
            "Game %s briefing round %d: %s (%s)",
            game.id, round_config.round_number, round_config.name, round_config.season.value,
        )
        return round_config

    def _run_dispatch(self) -> RoundDispatchResult:
        game = self.game
        assets = game.all_assets()
        try:
            result, state = self.clearing.clear_round(assets, game.bid_book, game.conditions, list(game.teams))
            result.withholding_flags = self.withholding.check_round(result, assets)
        except Exception as exc:
            logger.exception("Dispatch failed for round %d of game %s", game.round_number, game.id)
            raise DispatchFault(f"Dispatch failed for round {game.round_number}: {exc}") from exc

        state.commit(assets)
        for team in game.teams.values():
            team_result = result.team_results[team.id]
            team.round_history.append(team_result)
            team.cumulative_profit_dollars += team_result.profit
        game.round_results.append(result)
        self._rerank(update_previous=True)
        game.phase = GamePhase.RESULTS
        logger.info(
            "Round %d of game %s cleared (%d scarcity periods, %d withholding flags)",
            game.round_number, game.id, len(result.scarcity_periods), len(result.withholding_flags),
        )
        return result

    def _apply_balancing(self, result: RoundDispatchResult) -> List[BalancingResult]:
        breaches = self.balancing_policy.evaluate(result, list(self.game.teams.values()), self.rng)
        for breach in breaches:
            team = self.game.team(breach.team_id)
            team.cumulative_profit_dollars -= breach.penalty_dollars
            if breach.asset_id is not None and breach.derate_percent > 0:
                self.game.pending_derates[breach.asset_id] = breach.availability_factor
            team.balancing_history.append(breach)
        self.game.balancing_results.extend(breaches)
        if any(breach.penalty_dollars > 0 for breach in breaches):
            self._rerank(update_previous=False)
        return breaches

    def _ordered_teams(self) -> List[Team]:
        return sorted(self.game.teams.values(), key=lambda t: (-t.cumulative_profit_dollars, t.name.lower()))

    def _rerank(self, update_previous: bool) -> None:
        for rank, team in enumerate(self._ordered_teams(), start=1):
            if update_previous:
                team.previous_rank = team.rank or None
            team.rank = rank

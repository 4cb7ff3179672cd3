#!/usr/bin/env python3
"""Play a whole GridRival game with automated bidding strategies."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

# Ensure project root is on path for package imports
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gridrival.analysis import dispatch_frame, leaderboard_frame, team_frame
from gridrival.core.errors import GridRivalError
from gridrival.data.rounds import GameMode
from gridrival.strategies import STRATEGIES, BiddingStrategy, get_strategy
from gridrival.workflows import (
    GameConfig,
    GamePhase,
    LeaderDeratePolicy,
    RecordOnlyPolicy,
    ReserveShortfallPolicy,
    RoundLifecycle,
    load_game_config,
)

BALANCING_POLICIES = {
    "record": RecordOnlyPolicy,
    "shortfall": ReserveShortfallPolicy,
    "derate": LeaderDeratePolicy,
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate a GridRival game with one bidding strategy per team.")
    parser.add_argument(
        "--mode",
        default=GameMode.FULL.value,
        choices=[mode.value for mode in GameMode],
        help="Round sequence to play (default: full)",
    )
    parser.add_argument("--teams", type=int, default=4, help="Number of teams (2-15, default: 4)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for demand and scenarios")
    parser.add_argument(
        "--strategy",
        action="append",
        choices=sorted(STRATEGIES),
        default=None,
        help="Strategy for the next team; repeat per team, cycled if fewer than --teams",
    )
    parser.add_argument(
        "--balancing",
        default="record",
        choices=sorted(BALANCING_POLICIES),
        help="Between-round balancing policy (default: record)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON game config; --mode, --teams and --seed are ignored when given",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def play_round(lifecycle: RoundLifecycle, strategies: List[BiddingStrategy]) -> None:
    game = lifecycle.game
    lifecycle.start_bidding()
    max_bands = game.round_config.max_bid_bands_per_asset
    for team, strategy in zip(game.teams.values(), strategies):
        bids = strategy.generate_bids(team.assets, game.conditions, max_bands)
        lifecycle.submit_bids(team.id, bids)
    lifecycle.end_bidding()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(message)s")

    try:
        if args.config is not None:
            config = load_game_config(args.config)
        else:
            config = GameConfig(game_id="simulation", mode=args.mode, team_count=args.teams, seed=args.seed)
    except (GridRivalError, OSError) as exc:
        logging.error("Could not load config: %s", exc)
        return 1

    names = args.strategy or ["srmc_bidder"]
    strategies = [get_strategy(names[i % len(names)]) for i in range(config.team_count)]

    policy = BALANCING_POLICIES[args.balancing](threshold_percent=config.balancing_threshold_percent)
    lifecycle = RoundLifecycle(config, balancing_policy=policy)
    for index, strategy in enumerate(strategies):
        lifecycle.add_team(f"team{index + 1}", f"Team {index + 1} ({strategy.name})")

    pd.set_option("display.width", 160)
    pd.set_option("display.max_columns", 20)

    try:
        lifecycle.start_round()
        while True:
            play_round(lifecycle, strategies)
            result = lifecycle.last_result()
            print(f"\n=== Round {result.round_number}: {lifecycle.game.round_config.name} ===")
            print(dispatch_frame(result).drop(columns=["round_number"]).to_string(index=False))
            if args.log_level == "DEBUG":
                print(team_frame(result).to_string(index=False))
            for flag in result.withholding_flags:
                print(f"  withholding: {flag.team_id} held back {flag.withheld_mw:.0f} MW in {flag.period.value}")
            lifecycle.next_round()
            for breach in lifecycle.game.balancing_results:
                if breach.round_number == result.round_number and breach.description:
                    print(f"  balancing: {breach.description}")
            if lifecycle.phase is GamePhase.FINAL:
                break
    except GridRivalError as exc:
        logging.error("Simulation stopped: %s", exc)
        return 1

    print("\n=== Final leaderboard ===")
    print(leaderboard_frame(lifecycle.leaderboard()).to_string())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

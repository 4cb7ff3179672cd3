"""Tabular views of round results."""
from __future__ import annotations

from typing import Iterable

import pandas as pd

from gridrival.core.market import RoundDispatchResult

DISPATCH_COLUMNS = [
    "round_number",
    "period",
    "demand_mw",
    "clearing_price_mwh",
    "effective_price_mwh",
    "total_offered_mw",
    "total_available_mw",
    "total_dispatched_mw",
    "reserve_margin_percent",
    "is_scarcity",
    "is_oversupply",
]


def dispatch_frame(result: RoundDispatchResult) -> pd.DataFrame:
    """One row per period with prices, volumes and flags."""
    rows = []
    for period, dispatch in result.periods.items():
        row = dispatch.summary()
        row["round_number"] = result.round_number
        row["charging_mw"] = sum(result.charging_mw.get(period, {}).values())
        rows.append(row)
    return pd.DataFrame(rows, columns=DISPATCH_COLUMNS + ["charging_mw"])


def band_frame(result: RoundDispatchResult) -> pd.DataFrame:
    """Every offer band in merit order with its dispatched MW."""
    rows = []
    for period, dispatch in result.periods.items():
        for position, dispatched in enumerate(dispatch.bands):
            band = dispatched.band
            rows.append({
                "period": period.value,
                "merit_position": position,
                "team_id": band.team_id,
                "asset_id": band.asset_id,
                "asset_type": band.asset_type.value,
                "band_index": band.band_index,
                "price_mwh": band.price_mwh,
                "offered_mw": band.offered_mw,
                "dispatched_mw": dispatched.dispatched_mw,
                "srmc": band.srmc,
            })
    columns = [
        "period", "merit_position", "team_id", "asset_id", "asset_type",
        "band_index", "price_mwh", "offered_mw", "dispatched_mw", "srmc",
    ]
    return pd.DataFrame(rows, columns=columns)


def team_frame(result: RoundDispatchResult) -> pd.DataFrame:
    """Per-team, per-asset settlement totals for the round."""
    rows = []
    for team_id, team_result in result.team_results.items():
        for asset_id, asset in team_result.assets.items():
            rows.append({
                "round_number": result.round_number,
                "team_id": team_id,
                "asset_id": asset_id,
                "asset_type": asset.asset_type.value,
                "dispatched_mwh": asset.dispatched_mwh,
                "charged_mwh": asset.charged_mwh,
                "revenue": asset.revenue,
                "variable_cost": asset.variable_cost,
                "charging_cost": asset.charging_cost,
                "startup_cost": asset.startup_cost,
                "profit": asset.profit,
            })
    columns = [
        "round_number", "team_id", "asset_id", "asset_type", "dispatched_mwh", "charged_mwh",
        "revenue", "variable_cost", "charging_cost", "startup_cost", "profit",
    ]
    return pd.DataFrame(rows, columns=columns)


def history_frame(results: Iterable[RoundDispatchResult]) -> pd.DataFrame:
    """Dispatch frames for several rounds stacked together."""
    frames = [dispatch_frame(result) for result in results]
    if not frames:
        return pd.DataFrame(columns=DISPATCH_COLUMNS + ["charging_mw"])
    return pd.concat(frames, ignore_index=True)


def leaderboard_frame(entries: Iterable) -> pd.DataFrame:
    """Leaderboard entries (anything with ``to_dict``) indexed by rank."""
    df = pd.DataFrame([entry.to_dict() for entry in entries])
    if df.empty:
        return df
    return df.set_index("rank")

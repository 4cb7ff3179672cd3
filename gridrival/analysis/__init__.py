"""Post-dispatch analysis and result tables."""

from gridrival.analysis.results import (
    band_frame,
    dispatch_frame,
    history_frame,
    leaderboard_frame,
    team_frame,
)
from gridrival.analysis.withholding import WithholdingFlag, WithholdingMonitor

__all__ = [
    "band_frame",
    "dispatch_frame",
    "history_frame",
    "leaderboard_frame",
    "team_frame",
    "WithholdingFlag",
    "WithholdingMonitor",
]

"""Core market-clearing models for GridRival."""

from gridrival.core.assets import (
    Asset,
    AssetKind,
    AssetType,
    BatteryKind,
    HydroKind,
    RenewableKind,
    ThermalKind,
)
from gridrival.core.bids import (
    AssetBid,
    BatteryMode,
    BidBand,
    BidBook,
)
from gridrival.core.conditions import RoundConditions
from gridrival.core.dispatch import (
    DispatchEngine,
    DispatchResult,
    DispatchedBand,
    OfferBand,
)
from gridrival.core.errors import (
    DispatchFault,
    GridRivalError,
    NotAuthorizedError,
    NotFoundError,
    PhaseError,
    ValidationError,
)
from gridrival.core.ledger import (
    AssetPeriodResult,
    AssetRoundResult,
    LedgerCalculator,
    StorageState,
    TeamRoundResult,
)
from gridrival.core.market import (
    RoundClearing,
    RoundDispatchResult,
    cap_bands,
)
from gridrival.core.periods import (
    ROUND_PERIODS,
    Season,
    TimePeriod,
    previous_period,
)

__all__ = [
    "Asset",
    "AssetKind",
    "AssetType",
    "BatteryKind",
    "HydroKind",
    "RenewableKind",
    "ThermalKind",
    "AssetBid",
    "BatteryMode",
    "BidBand",
    "BidBook",
    "RoundConditions",
    "DispatchEngine",
    "DispatchResult",
    "DispatchedBand",
    "OfferBand",
    "DispatchFault",
    "GridRivalError",
    "NotAuthorizedError",
    "NotFoundError",
    "PhaseError",
    "ValidationError",
    "AssetPeriodResult",
    "AssetRoundResult",
    "LedgerCalculator",
    "StorageState",
    "TeamRoundResult",
    "RoundClearing",
    "RoundDispatchResult",
    "cap_bands",
    "ROUND_PERIODS",
    "Season",
    "TimePeriod",
    "previous_period",
]

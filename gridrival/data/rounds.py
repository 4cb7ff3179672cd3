"""Round catalogue: the round sequence for each game mode."""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple

from gridrival.core.assets import AssetType
from gridrival.core.errors import NotFoundError, ValidationError
from gridrival.core.periods import Season


class GameMode(Enum):
    """Pre-built round sequences."""
    BEGINNER = "beginner"
    FIRST_RUN = "first_run"
    PROGRESSIVE = "progressive"
    FULL = "full"
    EXPERIENCED = "experienced"

    @classmethod
    def parse(cls, value) -> GameMode:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError as exc:
            raise ValidationError(f"Unknown game mode: {value!r}") from exc


@dataclass(frozen=True)
class RoundConfig:
    """Static definition of one round."""

    round_number: int
    name: str
    season: Season
    new_assets_unlocked: Tuple[AssetType, ...] = ()
    unlocked_asset_types: Tuple[AssetType, ...] = ()
    active_scenario_events: Tuple[str, ...] = ()
    bidding_time_limit_seconds: int = 240
    demand_variability: float = 0.1
    max_bid_bands_per_asset: int = 10

    def to_dict(self) -> dict:
        return {
            "round_number": self.round_number,
            "name": self.name,
            "season": self.season.value,
            "new_assets_unlocked": [t.value for t in self.new_assets_unlocked],
            "unlocked_asset_types": [t.value for t in self.unlocked_asset_types],
            "active_scenario_events": list(self.active_scenario_events),
            "bidding_time_limit_seconds": self.bidding_time_limit_seconds,
            "demand_variability": self.demand_variability,
            "max_bid_bands_per_asset": self.max_bid_bands_per_asset,
        }


_A, _S, _W, _SP = Season.AUTUMN, Season.SUMMER, Season.WINTER, Season.SPRING
_COAL = (AssetType.COAL,)
_GAS = (AssetType.GAS_CCGT, AssetType.GAS_PEAKER)
_RENEWABLES = (AssetType.WIND, AssetType.SOLAR)
_ALL = tuple(AssetType)

# name, season, unlocks, scenario events, bidding seconds, demand variability, max bands
_ROUND_TABLES: Dict[GameMode, List[tuple]] = {
    GameMode.BEGINNER: [
        ("Your First Electricity Market", _A, (AssetType.COAL, AssetType.GAS_CCGT), (), 360, 0.03, 2),
    ],
    GameMode.FIRST_RUN: [
        ("Your First Bid", _A, _COAL, (), 300, 0.05, 2),
        ("Morning & Afternoon", _A, (), (), 240, 0.05, 3),
        ("Full Day Trading", _A, (), (), 240, 0.08, 5),
        ("Gas Power Enters", _A, _GAS, (), 270, 0.10, 5),
        ("Renewables Arrive", _SP, _RENEWABLES, (), 300, 0.10, 7),
        ("Battery Storage", _SP, (AssetType.BATTERY,), (), 300, 0.10, 10),
        ("Summer Heatwave", _S, (), ("heatwave_extreme",), 240, 0.10, 10),
        ("The Full NEM", _S, (), ("heatwave_moderate", "plant_outage_random"), 300, 0.12, 10),
    ],
    GameMode.PROGRESSIVE: [
        ("Your First Bid", _A, _COAL, (), 300, 0.05, 2),
        ("Morning & Afternoon", _A, (), (), 240, 0.05, 3),
        ("Full Day Trading", _A, (), (), 240, 0.08, 5),
        ("Gas Power Enters", _A, _GAS, (), 270, 0.10, 5),
        ("Renewables + Hydro", _SP, _RENEWABLES + (AssetType.HYDRO,), (), 300, 0.10, 7),
        ("Battery Storage", _SP, (AssetType.BATTERY,), (), 300, 0.10, 10),
        ("Advanced Strategies", _A, (), (), 240, 0.10, 10),
        ("Summer Heatwave", _S, (), ("heatwave_extreme",), 240, 0.10, 10),
        ("Negative Prices", _SP, (), ("negative_prices",), 240, 0.10, 10),
        ("The Full NEM", _S, (), ("heatwave_moderate", "plant_outage_random"), 300, 0.12, 10),
    ],
    GameMode.FULL: [
        ("Guided Walkthrough: Your First Bid", _A, _COAL, (), 300, 0.0, 3),
        ("Morning vs Afternoon", _A, (), (), 240, 0.05, 3),
        ("Full Day Trading", _A, (), (), 240, 0.05, 5),
        ("Market Power & Strategy", _A, (), (), 210, 0.08, 5),
        ("Gas Enters the Market", _A, _GAS, (), 240, 0.08, 5),
        ("Renewables Revolution", _SP, _RENEWABLES, (), 270, 0.10, 7),
        ("Hydro & Opportunity Cost", _A, (AssetType.HYDRO,), (), 270, 0.10, 7),
        ("Battery Storage", _SP, (AssetType.BATTERY,), (), 300, 0.10, 10),
        ("Summer Heatwave", _S, (), ("heatwave_extreme",), 240, 0.10, 10),
        ("Winter Evening Peak", _W, (), ("cold_snap",), 240, 0.08, 10),
        ("Spring Oversupply", _SP, (), ("negative_prices",), 240, 0.10, 10),
        ("Drought & Gas Crisis", _A, (), ("drought", "fuel_price_spike"), 240, 0.08, 10),
        ("Dunkelflaute", _W, (), ("dunkelflaute",), 240, 0.08, 10),
        ("Carbon Price World", _S, (), ("carbon_price", "demand_response"), 240, 0.10, 10),
        ("The Full NEM Challenge", _S, (), ("heatwave_moderate", "plant_outage_random"), 300, 0.12, 10),
    ],
    GameMode.EXPERIENCED: [
        ("Autumn - Drought & Gas Crisis", _A, _ALL, ("drought", "fuel_price_spike"), 240, 0.10, 10),
        ("Winter - Dunkelflaute", _W, (), ("dunkelflaute", "cold_snap"), 240, 0.08, 10),
        ("Spring - Renewable Flood", _SP, (), ("negative_prices",), 240, 0.10, 10),
        ("Summer - Heatwave & Outage", _S, (), ("heatwave_extreme", "plant_outage_random"), 300, 0.12, 10),
    ],
}


class RoundCatalog:
    """Lookup of round definitions by ``(mode, round_index)``.

    ``round_index`` is zero-based; ``RoundConfig.round_number`` is one-based.
    """

    def __init__(self, tables: Optional[Dict[GameMode, List[tuple]]] = None):
        self._rounds: Dict[GameMode, List[RoundConfig]] = {}
        for mode, rows in (tables or _ROUND_TABLES).items():
            self._rounds[mode] = self._build(rows)

    @staticmethod
    def _build(rows: List[tuple]) -> List[RoundConfig]:
        configs = []
        unlocked: List[AssetType] = []
        for number, (name, season, unlocks, events, seconds, variability, bands) in enumerate(rows, start=1):
            for asset_type in unlocks:
                if asset_type not in unlocked:
                    unlocked.append(asset_type)
            configs.append(RoundConfig(
                round_number=number,
                name=name,
                season=season,
                new_assets_unlocked=tuple(unlocks),
                unlocked_asset_types=tuple(t for t in AssetType if t in unlocked),
                active_scenario_events=tuple(events),
                bidding_time_limit_seconds=seconds,
                demand_variability=variability,
                max_bid_bands_per_asset=bands,
            ))
        return configs

    @property
    def modes(self) -> List[GameMode]:
        return list(self._rounds)

    def round_count(self, mode) -> int:
        return len(self._rounds_for(mode))

    def get(self, mode, round_index: int) -> RoundConfig:
        """Round definition for a zero-based index."""
        rounds = self._rounds_for(mode)
        if not 0 <= round_index < len(rounds):
            raise NotFoundError(f"Mode {GameMode.parse(mode).value} has no round index {round_index}")
        return replace(rounds[round_index])

    def rounds(self, mode) -> List[RoundConfig]:
        return list(self._rounds_for(mode))

    def _rounds_for(self, mode) -> List[RoundConfig]:
        mode = GameMode.parse(mode)
        try:
            return self._rounds[mode]
        except KeyError:
            raise NotFoundError(f"No rounds defined for mode {mode.value}") from None


DEFAULT_CATALOG = RoundCatalog()

"""Asset archetypes, capacity-factor tables and per-team fleet construction."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from gridrival.core.assets import (
    Asset,
    AssetType,
    BatteryKind,
    HydroKind,
    RenewableKind,
    ThermalKind,
)
from gridrival.core.errors import ValidationError
from gridrival.core.periods import Season, TimePeriod

SRMC_VARIATION = 0.20  # +/- spread across teams when a preset fixes the SRMC


@dataclass(frozen=True)
class AssetArchetype:
    """Default parameters for one asset type."""

    type: AssetType
    capacity_mw: float
    srmc: float
    startup_cost: float
    available_from_round: int
    srmc_variants: Tuple[float, ...] = ()
    names: Tuple[str, ...] = ()
    duration_hours: float = 0.0
    charge_efficiency: float = 1.0
    storage_mwh: float = 0.0
    initial_fill: float = 1.0


ARCHETYPES: Dict[AssetType, AssetArchetype] = {
    AssetType.COAL: AssetArchetype(
        type=AssetType.COAL,
        capacity_mw=800.0,
        srmc=35.0,
        startup_cost=50_000.0,
        available_from_round=1,
        srmc_variants=(28, 30, 32, 34, 36, 38, 40, 42, 35, 33, 31, 37, 39, 29, 41),
        names=("Eraring", "Bayswater", "Loy Yang", "Yallourn", "Vales Point", "Mt Piper",
               "Callide", "Stanwell", "Tarong", "Gladstone", "Kogan Creek", "Millmerran"),
    ),
    AssetType.GAS_CCGT: AssetArchetype(
        type=AssetType.GAS_CCGT,
        capacity_mw=350.0,
        srmc=75.0,
        startup_cost=20_000.0,
        available_from_round=5,
        srmc_variants=(68, 72, 75, 78, 82, 70, 74, 80, 76, 73, 71, 77, 79, 69, 81),
        names=("Tallawarra", "Pelican Point", "Darling Downs", "Swanbank", "Torrens Island",
               "Osborne", "Braemar"),
    ),
    AssetType.GAS_PEAKER: AssetArchetype(
        type=AssetType.GAS_PEAKER,
        capacity_mw=150.0,
        srmc=145.0,
        startup_cost=5_000.0,
        available_from_round=5,
        srmc_variants=(130, 140, 145, 150, 155, 135, 142, 148, 152, 138, 132, 146, 158, 136, 144),
        names=("Uranquinty", "Colongra", "Mortlake", "Laverton North", "Hallett", "Quarantine",
               "Oakey"),
    ),
    AssetType.WIND: AssetArchetype(
        type=AssetType.WIND,
        capacity_mw=300.0,
        srmc=0.0,
        startup_cost=0.0,
        available_from_round=6,
        names=("Macarthur", "Stockyard Hill", "Coopers Gap", "Snowtown", "Hornsdale", "Silverton",
               "Sapphire"),
    ),
    AssetType.SOLAR: AssetArchetype(
        type=AssetType.SOLAR,
        capacity_mw=200.0,
        srmc=0.0,
        startup_cost=0.0,
        available_from_round=6,
        names=("Limondale", "Darlington Point", "Western Downs", "Bungala", "Sunraysia",
               "Finley", "Nyngan"),
    ),
    AssetType.HYDRO: AssetArchetype(
        type=AssetType.HYDRO,
        capacity_mw=250.0,
        srmc=8.0,
        startup_cost=2_000.0,
        available_from_round=7,
        names=("Tumut", "Murray", "Gordon", "Poatina", "Dartmouth", "Eildon", "Wivenhoe"),
        storage_mwh=1000.0,
        initial_fill=1.0,
    ),
    AssetType.BATTERY: AssetArchetype(
        type=AssetType.BATTERY,
        capacity_mw=500.0,
        srmc=0.0,
        startup_cost=0.0,
        available_from_round=8,
        names=("Hornsdale Power Reserve", "Victorian Big Battery", "Waratah Super Battery",
               "Wandoan South", "Broken Hill", "Capital Battery"),
        duration_hours=4.0,
        charge_efficiency=0.92,
        initial_fill=0.5,
    ),
}

# Capacity factors by season, ordered night_offpeak, day_offpeak, day_peak, night_peak
_PERIOD_ORDER = (TimePeriod.NIGHT_OFFPEAK, TimePeriod.DAY_OFFPEAK, TimePeriod.DAY_PEAK, TimePeriod.NIGHT_PEAK)


def _by_period(values: Iterable[float]) -> Dict[TimePeriod, float]:
    return dict(zip(_PERIOD_ORDER, values))


WIND_CAPACITY_FACTORS: Dict[Season, Dict[TimePeriod, float]] = {
    Season.SUMMER: _by_period((0.25, 0.20, 0.15, 0.30)),
    Season.AUTUMN: _by_period((0.35, 0.30, 0.25, 0.40)),
    Season.WINTER: _by_period((0.40, 0.35, 0.30, 0.45)),
    Season.SPRING: _by_period((0.35, 0.30, 0.25, 0.35)),
}

SOLAR_CAPACITY_FACTORS: Dict[Season, Dict[TimePeriod, float]] = {
    Season.SUMMER: _by_period((0.0, 0.60, 0.75, 0.10)),
    Season.AUTUMN: _by_period((0.0, 0.45, 0.55, 0.05)),
    Season.WINTER: _by_period((0.0, 0.30, 0.40, 0.0)),
    Season.SPRING: _by_period((0.0, 0.50, 0.65, 0.08)),
}


def fixed_startup_cost(asset_type: AssetType) -> float:
    return ARCHETYPES[asset_type].startup_cost


@dataclass
class AssetOverride:
    """Host-supplied replacement values for one asset type."""

    name: Optional[str] = None
    capacity_mw: Optional[float] = None
    srmc: Optional[float] = None
    startup_cost: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AssetOverride:
        override = cls(
            name=data.get("name"),
            capacity_mw=data.get("capacity_mw"),
            srmc=data.get("srmc"),
            startup_cost=data.get("startup_cost"),
        )
        for label in ("capacity_mw", "srmc", "startup_cost"):
            value = getattr(override, label)
            if value is not None and (not isinstance(value, (int, float)) or value < 0):
                raise ValidationError(f"Asset override {label} must be a non-negative number")
        return override


@dataclass
class AssetConfigPreset:
    """Named set of asset overrides applied when fleets are built."""

    name: str = "default"
    overrides: Dict[AssetType, AssetOverride] = field(default_factory=dict)
    vary_srmc: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AssetConfigPreset:
        overrides = {
            AssetType.parse(key): AssetOverride.from_dict(value)
            for key, value in (data.get("overrides") or {}).items()
        }
        return cls(
            name=str(data.get("name", "custom")),
            overrides=overrides,
            vary_srmc=bool(data.get("vary_srmc", True)),
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> AssetConfigPreset:
        """Read a preset from a JSON file."""
        path = Path(path)
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Preset file {path} is not valid JSON: {exc}") from exc
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "vary_srmc": self.vary_srmc,
            "overrides": {
                asset_type.value: {k: v for k, v in vars(o).items() if v is not None}
                for asset_type, o in self.overrides.items()
            },
        }


def srmc_with_variation(base_srmc: float, team_index: int, team_count: int, spread: float = SRMC_VARIATION) -> float:
    """Spread an SRMC evenly from ``-spread`` to ``+spread`` across teams."""
    if team_count <= 1:
        return base_srmc
    position = team_index / (team_count - 1)
    return float(round(base_srmc * (1.0 - spread + 2.0 * spread * position)))


def build_asset(
    team_id: str,
    team_index: int,
    team_count: int,
    asset_type: AssetType,
    preset: Optional[AssetConfigPreset] = None,
) -> Asset:
    """Create one asset for a team from its archetype and any preset override."""
    archetype = ARCHETYPES[asset_type]
    override = preset.overrides.get(asset_type) if preset is not None else None

    capacity = archetype.capacity_mw
    startup_cost = archetype.startup_cost
    if archetype.srmc_variants:
        srmc = float(archetype.srmc_variants[team_index % len(archetype.srmc_variants)])
    else:
        srmc = archetype.srmc
    if archetype.names:
        name = archetype.names[team_index % len(archetype.names)]
    else:
        name = f"{asset_type.value} {team_index + 1}"

    if override is not None:
        if override.name:
            name = f"{override.name} {team_index + 1}"
        if override.capacity_mw is not None:
            capacity = float(override.capacity_mw)
        if override.startup_cost is not None:
            startup_cost = float(override.startup_cost)
        if override.srmc is not None:
            srmc = float(override.srmc)
            if preset.vary_srmc and srmc > 0:
                srmc = srmc_with_variation(srmc, team_index, team_count)

    if asset_type is AssetType.WIND:
        kind = RenewableKind(WIND_CAPACITY_FACTORS)
    elif asset_type is AssetType.SOLAR:
        kind = RenewableKind(SOLAR_CAPACITY_FACTORS)
    elif asset_type is AssetType.BATTERY:
        max_storage = capacity * archetype.duration_hours
        kind = BatteryKind(
            duration_hours=archetype.duration_hours,
            charge_efficiency=archetype.charge_efficiency,
            soc_mwh=max_storage * archetype.initial_fill,
        )
    elif asset_type is AssetType.HYDRO:
        water = archetype.storage_mwh * archetype.initial_fill
        kind = HydroKind(initial_water_mwh=water, water_remaining_mwh=water, startup_cost=startup_cost)
    else:
        kind = ThermalKind(startup_cost=startup_cost)

    return Asset(
        id=f"{team_id}-{asset_type.value}",
        team_id=team_id,
        name=name,
        type=asset_type,
        capacity_mw=capacity,
        srmc=srmc,
        kind=kind,
        available_from_round=archetype.available_from_round,
    )


def build_team_fleet(
    team_id: str,
    team_index: int,
    team_count: int,
    asset_types: Iterable[AssetType],
    preset: Optional[AssetConfigPreset] = None,
) -> List[Asset]:
    """Build the assets of ``asset_types`` for one team, in archetype order."""
    wanted = set(asset_types)
    return [
        build_asset(team_id, team_index, team_count, asset_type, preset)
        for asset_type in AssetType
        if asset_type in wanted
    ]

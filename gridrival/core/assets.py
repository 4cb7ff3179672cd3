"""Generation and storage assets owned by teams.

Asset behaviour differs by archetype (thermal units pay startup costs,
renewables follow capacity-factor tables, batteries track state of charge,
hydro tracks a water budget). Rather than subclassing ``Asset`` the
kind-specific payload is carried in ``Asset.kind`` as one of the
``*Kind`` dataclasses below.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Union

from gridrival.core.errors import ValidationError
from gridrival.core.periods import Season, TimePeriod


class AssetType(Enum):
    """Asset archetypes available in the game."""
    COAL = "coal"
    GAS_CCGT = "gas_ccgt"
    GAS_PEAKER = "gas_peaker"
    HYDRO = "hydro"
    WIND = "wind"
    SOLAR = "solar"
    BATTERY = "battery"

    @property
    def is_renewable(self) -> bool:
        return self in (AssetType.WIND, AssetType.SOLAR)

    @property
    def is_thermal(self) -> bool:
        return self in (AssetType.COAL, AssetType.GAS_CCGT, AssetType.GAS_PEAKER)

    @classmethod
    def parse(cls, value) -> AssetType:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError as exc:
            raise ValidationError(f"Unknown asset type: {value!r}") from exc


@dataclass
class ThermalKind:
    """Coal and gas units."""
    startup_cost: float


@dataclass
class RenewableKind:
    """Wind and solar farms; output follows a seasonal capacity-factor table."""
    capacity_factors: Dict[Season, Dict[TimePeriod, float]]

    def capacity_factor(self, season: Season, period: TimePeriod) -> float:
        return self.capacity_factors.get(season, {}).get(period, 0.0)


@dataclass
class BatteryKind:
    """Battery storage. ``soc_mwh`` persists across rounds."""
    duration_hours: float
    charge_efficiency: float
    soc_mwh: float


@dataclass
class HydroKind:
    """Hydro storage. ``water_remaining_mwh`` persists across rounds."""
    initial_water_mwh: float
    water_remaining_mwh: float
    startup_cost: float


AssetKind = Union[ThermalKind, RenewableKind, BatteryKind, HydroKind]


@dataclass
class Asset:
    """A single asset in a team's portfolio."""

    id: str
    team_id: str
    name: str
    type: AssetType
    capacity_mw: float
    srmc: float  # base SRMC ($/MWh) before scenario adjustments
    kind: AssetKind
    available_from_round: int = 1
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.capacity_mw < 0:
            raise ValidationError(f"{self.id}: capacity must be non-negative")
        if isinstance(self.kind, BatteryKind):
            if not 0.0 < self.kind.charge_efficiency <= 1.0:
                raise ValidationError(f"{self.id}: charge efficiency must be in (0, 1]")
            if not 0.0 <= self.kind.soc_mwh <= self.max_storage_mwh:
                raise ValidationError(f"{self.id}: state of charge outside [0, {self.max_storage_mwh}]")
        if isinstance(self.kind, HydroKind):
            if not 0.0 <= self.kind.water_remaining_mwh <= self.kind.initial_water_mwh:
                raise ValidationError(f"{self.id}: water level outside [0, {self.kind.initial_water_mwh}]")

    @property
    def max_storage_mwh(self) -> float:
        """Energy capacity for batteries; zero for everything else."""
        if isinstance(self.kind, BatteryKind):
            return self.capacity_mw * self.kind.duration_hours
        return 0.0

    @property
    def startup_cost(self) -> float:
        if isinstance(self.kind, (ThermalKind, HydroKind)):
            return self.kind.startup_cost
        return 0.0

    @property
    def is_storage(self) -> bool:
        return isinstance(self.kind, (BatteryKind, HydroKind))

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot of the asset for clients."""
        data: Dict[str, Any] = {
            "id": self.id,
            "team_id": self.team_id,
            "name": self.name,
            "type": self.type.value,
            "capacity_mw": self.capacity_mw,
            "srmc": self.srmc,
            "startup_cost": self.startup_cost,
        }
        if isinstance(self.kind, BatteryKind):
            data["soc_mwh"] = self.kind.soc_mwh
            data["max_storage_mwh"] = self.max_storage_mwh
            data["charge_efficiency"] = self.kind.charge_efficiency
        elif isinstance(self.kind, HydroKind):
            data["water_remaining_mwh"] = self.kind.water_remaining_mwh
            data["initial_water_mwh"] = self.kind.initial_water_mwh
        return data

"""Game configuration."""
from __future__ import annotations

import json
import math
import numbers
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from gridrival.core.constants import (
    BALANCING_THRESHOLD_PERCENT,
    MAX_TEAMS,
    MIN_TEAMS,
    PRICE_CAP_MWH,
    PRICE_FLOOR_MWH,
)
from gridrival.core.errors import ValidationError
from gridrival.data.fleet import AssetConfigPreset
from gridrival.data.rounds import GameMode


def _number(value: Any, label: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise ValidationError(f"{label} must be finite")
    return number


@dataclass
class GameConfig:
    """Settings fixed when a game is created."""

    game_id: str = "game"
    mode: GameMode = GameMode.FULL
    team_count: int = 4
    seed: Optional[int] = None
    price_cap_mwh: float = PRICE_CAP_MWH
    price_floor_mwh: float = PRICE_FLOOR_MWH
    balancing_enabled: bool = True
    balancing_threshold_percent: float = BALANCING_THRESHOLD_PERCENT
    auto_dispatch_on_timeout: bool = True
    asset_preset: Optional[AssetConfigPreset] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.game_id, str) or not self.game_id:
            raise ValidationError("game_id must be a non-empty string")
        self.mode = GameMode.parse(self.mode)
        try:
            team_count = int(self.team_count)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"team_count must be an integer, got {self.team_count!r}") from exc
        self.team_count = min(MAX_TEAMS, max(MIN_TEAMS, team_count))
        if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, numbers.Integral)):
            raise ValidationError(f"seed must be an integer or null, got {self.seed!r}")
        self.balancing_threshold_percent = _number(self.balancing_threshold_percent, "balancing_threshold_percent")
        if not 0.0 <= self.balancing_threshold_percent <= 100.0:
            raise ValidationError("balancing_threshold_percent must be within [0, 100]")
        self.price_cap_mwh = _number(self.price_cap_mwh, "price_cap_mwh")
        self.price_floor_mwh = _number(self.price_floor_mwh, "price_floor_mwh")
        if self.price_floor_mwh >= self.price_cap_mwh:
            raise ValidationError(
                f"price_floor_mwh ({self.price_floor_mwh}) must be below price_cap_mwh ({self.price_cap_mwh})"
            )
        if isinstance(self.asset_preset, Mapping):
            self.asset_preset = AssetConfigPreset.from_dict(self.asset_preset)
        elif self.asset_preset is not None and not isinstance(self.asset_preset, AssetConfigPreset):
            raise ValidationError(f"asset_preset must be an object or a file path, got {self.asset_preset!r}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GameConfig:
        known = {
            "game_id", "mode", "team_count", "seed", "price_cap_mwh", "price_floor_mwh", "balancing_enabled",
            "balancing_threshold_percent", "auto_dispatch_on_timeout", "asset_preset", "metadata",
        }
        unknown = set(data) - known
        if unknown:
            raise ValidationError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        values = dict(data)
        preset = values.get("asset_preset")
        if isinstance(preset, (str, Path)):
            values["asset_preset"] = AssetConfigPreset.load(preset)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "game_id": self.game_id,
            "mode": self.mode.value,
            "team_count": self.team_count,
            "seed": self.seed,
            "price_cap_mwh": self.price_cap_mwh,
            "price_floor_mwh": self.price_floor_mwh,
            "balancing_enabled": self.balancing_enabled,
            "balancing_threshold_percent": self.balancing_threshold_percent,
            "auto_dispatch_on_timeout": self.auto_dispatch_on_timeout,
            "asset_preset": self.asset_preset.to_dict() if self.asset_preset else None,
        }


def load_game_config(path: Union[str, Path]) -> GameConfig:
    """Load a :class:`GameConfig` from a JSON file."""
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Config file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValidationError(f"Config file {path} must contain a JSON object")
    return GameConfig.from_dict(data)

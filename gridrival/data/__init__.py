"""Static game data: asset archetypes, round catalogue and scenario events."""

from gridrival.data.fleet import (
    ARCHETYPES,
    SOLAR_CAPACITY_FACTORS,
    WIND_CAPACITY_FACTORS,
    AssetArchetype,
    AssetConfigPreset,
    AssetOverride,
    build_asset,
    build_team_fleet,
    fixed_startup_cost,
    srmc_with_variation,
)
from gridrival.data.rounds import (
    DEFAULT_CATALOG,
    GameMode,
    RoundCatalog,
    RoundConfig,
)
from gridrival.data.scenarios import (
    SCENARIO_EVENTS,
    SURPRISE_EVENTS,
    EffectType,
    ScenarioEffect,
    ScenarioEvent,
    get_scenario_event,
    get_surprise_event,
)

__all__ = [
    "ARCHETYPES",
    "SOLAR_CAPACITY_FACTORS",
    "WIND_CAPACITY_FACTORS",
    "AssetArchetype",
    "AssetConfigPreset",
    "AssetOverride",
    "build_asset",
    "build_team_fleet",
    "fixed_startup_cost",
    "srmc_with_variation",
    "DEFAULT_CATALOG",
    "GameMode",
    "RoundCatalog",
    "RoundConfig",
    "SCENARIO_EVENTS",
    "SURPRISE_EVENTS",
    "EffectType",
    "ScenarioEffect",
    "ScenarioEvent",
    "get_scenario_event",
    "get_surprise_event",
]

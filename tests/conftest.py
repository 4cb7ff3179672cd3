# tests/conftest.py
"""Shared fixtures: seeds, small hand-built fleets and lifecycle factories."""

import numpy as np
import pytest

from gridrival.core.assets import (
    Asset,
    AssetType,
    BatteryKind,
    HydroKind,
    RenewableKind,
    ThermalKind,
)
from gridrival.core.conditions import RoundConditions
from gridrival.core.periods import Season
from gridrival.data.fleet import SOLAR_CAPACITY_FACTORS, WIND_CAPACITY_FACTORS
from gridrival.data.rounds import GameMode
from gridrival.workflows.config import GameConfig
from gridrival.workflows.lifecycle import RoundLifecycle


@pytest.fixture
def seed():
    """Fixed seed for reproducibility."""
    return 42


@pytest.fixture
def rng(seed):
    """Numpy random generator with fixed seed."""
    return np.random.default_rng(seed)


def make_thermal(team_id="t1", asset_type=AssetType.COAL, capacity_mw=800.0, srmc=35.0, startup_cost=50_000.0):
    return Asset(
        id=f"{team_id}-{asset_type.value}",
        team_id=team_id,
        name=f"{team_id} {asset_type.value}",
        type=asset_type,
        capacity_mw=capacity_mw,
        srmc=srmc,
        kind=ThermalKind(startup_cost=startup_cost),
    )


def make_renewable(team_id="t1", asset_type=AssetType.WIND, capacity_mw=300.0):
    factors = WIND_CAPACITY_FACTORS if asset_type is AssetType.WIND else SOLAR_CAPACITY_FACTORS
    return Asset(
        id=f"{team_id}-{asset_type.value}",
        team_id=team_id,
        name=f"{team_id} {asset_type.value}",
        type=asset_type,
        capacity_mw=capacity_mw,
        srmc=0.0,
        kind=RenewableKind(factors),
    )


def make_battery(team_id="t1", capacity_mw=500.0, soc_mwh=500.0, efficiency=0.92, duration_hours=4.0):
    return Asset(
        id=f"{team_id}-battery",
        team_id=team_id,
        name=f"{team_id} battery",
        type=AssetType.BATTERY,
        capacity_mw=capacity_mw,
        srmc=0.0,
        kind=BatteryKind(duration_hours=duration_hours, charge_efficiency=efficiency, soc_mwh=soc_mwh),
    )


def make_hydro(team_id="t1", capacity_mw=250.0, water_mwh=1000.0, initial_mwh=1000.0):
    return Asset(
        id=f"{team_id}-hydro",
        team_id=team_id,
        name=f"{team_id} hydro",
        type=AssetType.HYDRO,
        capacity_mw=capacity_mw,
        srmc=8.0,
        kind=HydroKind(initial_water_mwh=initial_mwh, water_remaining_mwh=water_mwh, startup_cost=2_000.0),
    )


@pytest.fixture
def conditions():
    """Autumn round-one conditions with no scenario effects."""
    return RoundConditions(round_number=1, season=Season.AUTUMN)


@pytest.fixture
def mixed_fleet():
    """Two teams: coal + wind for t1, gas + battery + hydro for t2."""
    return [
        make_thermal("t1", AssetType.COAL, 800.0, 35.0),
        make_renewable("t1", AssetType.WIND, 300.0),
        make_thermal("t2", AssetType.GAS_CCGT, 350.0, 75.0, 20_000.0),
        make_battery("t2"),
        make_hydro("t2"),
    ]


@pytest.fixture
def make_lifecycle(seed):
    """Factory for a lifecycle with ``teams`` teams already in the lobby."""

    def _make(teams=2, mode=GameMode.FULL, **kwargs):
        options = {key: kwargs.pop(key) for key in list(kwargs) if key in ("balancing_policy", "timer_interval", "catalog")}
        config = GameConfig(game_id="test-game", mode=mode, team_count=max(teams, 2), seed=seed, **kwargs)
        lifecycle = RoundLifecycle(config, **options)
        for index in range(teams):
            lifecycle.add_team(f"team{index + 1}", f"Team {index + 1}", f"#00000{index}")
        return lifecycle

    return _make

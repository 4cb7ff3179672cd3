# tests/test_catalog_fleet.py
"""Round catalogue, asset archetypes and presets."""

import json

import pytest

from gridrival.core.assets import AssetType, BatteryKind, HydroKind, ThermalKind
from gridrival.core.errors import NotFoundError, ValidationError
from gridrival.data.fleet import (
    AssetConfigPreset,
    build_asset,
    build_team_fleet,
    srmc_with_variation,
)
from gridrival.data.rounds import DEFAULT_CATALOG, GameMode


class TestRoundCatalog:
    @pytest.mark.parametrize(
        "mode,count",
        [
            (GameMode.FULL, 15),
            (GameMode.PROGRESSIVE, 10),
            (GameMode.FIRST_RUN, 8),
            (GameMode.EXPERIENCED, 4),
            (GameMode.BEGINNER, 1),
        ],
    )
    def test_round_counts(self, mode, count):
        assert DEFAULT_CATALOG.round_count(mode) == count

    def test_lookup_is_zero_based(self):
        first = DEFAULT_CATALOG.get("full", 0)
        assert first.round_number == 1
        assert first.unlocked_asset_types == (AssetType.COAL,)

    def test_unlocks_accumulate(self):
        battery_round = DEFAULT_CATALOG.get(GameMode.FULL, 7)
        assert set(battery_round.unlocked_asset_types) == set(AssetType)
        assert battery_round.new_assets_unlocked == (AssetType.BATTERY,)

    def test_out_of_range(self):
        with pytest.raises(NotFoundError):
            DEFAULT_CATALOG.get(GameMode.BEGINNER, 1)
        with pytest.raises(NotFoundError):
            DEFAULT_CATALOG.get(GameMode.FULL, -1)

    def test_unknown_mode(self):
        with pytest.raises(ValidationError):
            DEFAULT_CATALOG.get("speedrun", 0)

    def test_round_config_to_dict(self):
        data = DEFAULT_CATALOG.get(GameMode.FULL, 8).to_dict()
        assert data["active_scenario_events"] == ["heatwave_extreme"]
        assert data["season"] == "summer"


class TestFleet:
    def test_asset_ids_and_kinds(self):
        fleet = build_team_fleet("red", 0, 4, list(AssetType))
        by_type = {asset.type: asset for asset in fleet}

        assert by_type[AssetType.COAL].id == "red-coal"
        assert isinstance(by_type[AssetType.COAL].kind, ThermalKind)
        assert all(asset.team_id == "red" for asset in fleet)
        assert len(fleet) == len(AssetType)

    def test_battery_starts_half_full(self):
        battery = build_asset("red", 0, 4, AssetType.BATTERY)
        assert isinstance(battery.kind, BatteryKind)
        assert battery.kind.soc_mwh == pytest.approx(battery.max_storage_mwh / 2)
        assert battery.kind.charge_efficiency == pytest.approx(0.92)

    def test_hydro_starts_full(self):
        hydro = build_asset("red", 0, 4, AssetType.HYDRO)
        assert isinstance(hydro.kind, HydroKind)
        assert hydro.kind.water_remaining_mwh == hydro.kind.initial_water_mwh == 1000.0

    def test_srmc_varies_by_team(self):
        srmcs = {build_asset(f"t{i}", i, 4, AssetType.COAL).srmc for i in range(4)}
        assert len(srmcs) == 4

    def test_preset_override(self):
        preset = AssetConfigPreset.from_dict({
            "name": "cheap coal",
            "overrides": {"coal": {"name": "Big Coal", "capacity_mw": 1000, "srmc": 20, "startup_cost": 10}},
            "vary_srmc": False,
        })
        coal = build_asset("red", 2, 4, AssetType.COAL, preset)
        assert coal.name == "Big Coal 3"
        assert coal.capacity_mw == 1000.0
        assert coal.srmc == 20.0
        assert coal.startup_cost == 10.0

    def test_preset_srmc_spread(self):
        assert srmc_with_variation(100.0, 0, 5) == 80.0
        assert srmc_with_variation(100.0, 4, 5) == 120.0
        assert srmc_with_variation(100.0, 0, 1) == 100.0

    def test_preset_rejects_bad_values(self):
        with pytest.raises(ValidationError):
            AssetConfigPreset.from_dict({"overrides": {"coal": {"srmc": -5}}})
        with pytest.raises(ValidationError):
            AssetConfigPreset.from_dict({"overrides": {"fusion": {"srmc": 5}}})

    def test_preset_from_json_file(self, tmp_path):
        path = tmp_path / "preset.json"
        path.write_text(json.dumps({"name": "file", "overrides": {"gas_ccgt": {"srmc": 60}}}))
        preset = AssetConfigPreset.load(path)
        assert preset.name == "file"
        assert preset.overrides[AssetType.GAS_CCGT].srmc == 60
        assert AssetConfigPreset.from_dict(preset.to_dict()).overrides == preset.overrides

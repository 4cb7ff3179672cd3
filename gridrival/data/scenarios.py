"""Named scenario events and host surprises."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from gridrival.core.assets import AssetType
from gridrival.core.errors import NotFoundError
from gridrival.core.periods import TimePeriod


class EffectType(Enum):
    """Adjustments a scenario can make to a round."""
    MODIFY_DEMAND = "modify_demand"
    MODIFY_ASSET_AVAILABILITY = "modify_asset_availability"
    MODIFY_CAPACITY_FACTOR = "modify_capacity_factor"
    MODIFY_SRMC = "modify_srmc"
    ADD_CARBON_COST = "add_carbon_cost"
    FORCE_OUTAGE = "force_outage"


@dataclass(frozen=True)
class ScenarioEffect:
    """A single adjustment.

    ``period`` of None means every period. ``asset_type`` of None on a
    forced outage means any thermal unit. When ``multiplier_range`` is set
    the multiplier is drawn uniformly from it when the effect is applied.
    """

    type: EffectType
    multiplier: float = 1.0
    asset_type: Optional[AssetType] = None
    period: Optional[TimePeriod] = None
    amount: float = 0.0
    multiplier_range: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class ScenarioEvent:
    id: str
    name: str
    description: str
    effects: Tuple[ScenarioEffect, ...]


def _demand(period: Optional[TimePeriod], multiplier: float = 1.0, spread: Optional[Tuple[float, float]] = None) -> ScenarioEffect:
    return ScenarioEffect(EffectType.MODIFY_DEMAND, multiplier, period=period, multiplier_range=spread)


SCENARIO_EVENTS: Dict[str, ScenarioEvent] = {
    event.id: event
    for event in (
        ScenarioEvent(
            "heatwave_extreme",
            "Extreme Heatwave",
            "Air-conditioning load spikes the afternoon and evening peaks; coal units derate in the heat.",
            (
                _demand(TimePeriod.DAY_PEAK, 1.4),
                _demand(TimePeriod.NIGHT_PEAK, 1.2),
                ScenarioEffect(EffectType.MODIFY_ASSET_AVAILABILITY, 0.9, AssetType.COAL),
            ),
        ),
        ScenarioEvent(
            "heatwave_moderate",
            "Warm Spell",
            "Hot afternoons lift peak demand.",
            (_demand(TimePeriod.DAY_PEAK, 1.25), _demand(TimePeriod.NIGHT_PEAK, 1.1)),
        ),
        ScenarioEvent(
            "cold_snap",
            "Cold Snap",
            "Heating load lifts evening and overnight demand; winter storms lift wind output.",
            (
                _demand(TimePeriod.NIGHT_PEAK, 1.35),
                _demand(TimePeriod.NIGHT_OFFPEAK, 1.15),
                ScenarioEffect(EffectType.MODIFY_CAPACITY_FACTOR, 1.3, AssetType.WIND),
            ),
        ),
        ScenarioEvent(
            "drought",
            "Drought",
            "Low inflows halve the hydro capacity available to the market.",
            (ScenarioEffect(EffectType.MODIFY_ASSET_AVAILABILITY, 0.5, AssetType.HYDRO),),
        ),
        ScenarioEvent(
            "fuel_price_spike",
            "Gas Price Spike",
            "International LNG prices push gas generation costs up 60%.",
            (
                ScenarioEffect(EffectType.MODIFY_SRMC, 1.6, AssetType.GAS_CCGT),
                ScenarioEffect(EffectType.MODIFY_SRMC, 1.6, AssetType.GAS_PEAKER),
            ),
        ),
        ScenarioEvent(
            "dunkelflaute",
            "Dunkelflaute",
            "Still, overcast conditions: wind and solar output collapse.",
            (
                ScenarioEffect(EffectType.MODIFY_CAPACITY_FACTOR, 0.3, AssetType.WIND),
                ScenarioEffect(EffectType.MODIFY_CAPACITY_FACTOR, 0.4, AssetType.SOLAR),
            ),
        ),
        ScenarioEvent(
            "carbon_price",
            "Carbon Price",
            "A carbon price adds to the running cost of fossil generation.",
            (
                ScenarioEffect(EffectType.ADD_CARBON_COST, asset_type=AssetType.COAL, amount=45.0),
                ScenarioEffect(EffectType.ADD_CARBON_COST, asset_type=AssetType.GAS_CCGT, amount=20.0),
                ScenarioEffect(EffectType.ADD_CARBON_COST, asset_type=AssetType.GAS_PEAKER, amount=25.0),
            ),
        ),
        ScenarioEvent(
            "negative_prices",
            "Renewable Flood",
            "Mild sunny, windy days with low demand push the midday market toward the floor.",
            (
                _demand(TimePeriod.DAY_OFFPEAK, 0.7),
                _demand(TimePeriod.DAY_PEAK, 0.65),
                ScenarioEffect(EffectType.MODIFY_CAPACITY_FACTOR, 1.3, AssetType.SOLAR),
                ScenarioEffect(EffectType.MODIFY_CAPACITY_FACTOR, 1.2, AssetType.WIND),
            ),
        ),
        ScenarioEvent(
            "plant_outage_random",
            "Unplanned Outage",
            "One team's coal unit trips and stays offline for the round.",
            (ScenarioEffect(EffectType.FORCE_OUTAGE, asset_type=AssetType.COAL),),
        ),
        ScenarioEvent(
            "demand_response",
            "Demand Response",
            "Large users curtail load at the peaks.",
            (_demand(TimePeriod.DAY_PEAK, 0.85), _demand(TimePeriod.NIGHT_PEAK, 0.9)),
        ),
    )
}

SURPRISE_EVENTS: Dict[str, ScenarioEvent] = {
    event.id: event
    for event in (
        ScenarioEvent(
            "generator_trip",
            "Generator Trip",
            "A thermal unit somewhere in the fleet trips offline.",
            (ScenarioEffect(EffectType.FORCE_OUTAGE),),
        ),
        ScenarioEvent(
            "demand_surge_heat",
            "Heat Surge",
            "Unexpected heat lifts peak demand 15-25%.",
            (
                _demand(TimePeriod.DAY_PEAK, spread=(1.15, 1.25)),
                _demand(TimePeriod.NIGHT_PEAK, spread=(1.15, 1.25)),
            ),
        ),
        ScenarioEvent(
            "demand_drop_solar",
            "Rooftop Solar Surge",
            "Behind-the-meter solar cuts daytime demand 15-25%.",
            (
                _demand(TimePeriod.DAY_OFFPEAK, spread=(0.75, 0.85)),
                _demand(TimePeriod.DAY_PEAK, spread=(0.75, 0.85)),
            ),
        ),
        ScenarioEvent(
            "renewable_drought",
            "Renewable Drought",
            "Wind falls to 30% and solar to 40% of forecast.",
            (
                ScenarioEffect(EffectType.MODIFY_CAPACITY_FACTOR, 0.3, AssetType.WIND),
                ScenarioEffect(EffectType.MODIFY_CAPACITY_FACTOR, 0.4, AssetType.SOLAR),
            ),
        ),
        ScenarioEvent(
            "fuel_price_spike",
            "Fuel Price Spike",
            "Gas costs jump 50%.",
            (
                ScenarioEffect(EffectType.MODIFY_SRMC, 1.5, AssetType.GAS_CCGT),
                ScenarioEffect(EffectType.MODIFY_SRMC, 1.5, AssetType.GAS_PEAKER),
            ),
        ),
        ScenarioEvent(
            "interconnector_outage",
            "Interconnector Outage",
            "Imports are cut; local demand rises 10-20% in every period.",
            (_demand(None, spread=(1.10, 1.20)),),
        ),
    )
}


def get_scenario_event(event_id: str) -> ScenarioEvent:
    try:
        return SCENARIO_EVENTS[event_id]
    except KeyError:
        raise NotFoundError(f"Unknown scenario event: {event_id}") from None


def get_surprise_event(event_id: str) -> ScenarioEvent:
    try:
        return SURPRISE_EVENTS[event_id]
    except KeyError:
        raise NotFoundError(f"Unknown surprise event: {event_id}") from None

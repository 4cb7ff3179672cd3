"""Round preparation: demand generation and scenario effects."""

from gridrival.simulation.demand import SEASON_TARGET_FRACTIONS, DemandModel
from gridrival.simulation.scenario import ScenarioEngine

__all__ = [
    "SEASON_TARGET_FRACTIONS",
    "DemandModel",
    "ScenarioEngine",
]

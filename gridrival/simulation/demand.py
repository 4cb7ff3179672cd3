"""Baseline demand per period, sized from the fleet on the market."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

import numpy as np

from gridrival.core.assets import Asset
from gridrival.core.conditions import RoundConditions
from gridrival.core.errors import ValidationError
from gridrival.core.periods import ROUND_PERIODS, Season, TimePeriod

logger = logging.getLogger(__name__)

# Share of fleet capacity demanded in each period: seasonal load shape x 70% baseload share
SEASON_TARGET_FRACTIONS: Dict[Season, Dict[TimePeriod, float]] = {
    Season.SUMMER: {
        TimePeriod.NIGHT_OFFPEAK: 0.455,
        TimePeriod.DAY_OFFPEAK: 0.56,
        TimePeriod.DAY_PEAK: 0.84,
        TimePeriod.NIGHT_PEAK: 0.665,
    },
    Season.AUTUMN: {
        TimePeriod.NIGHT_OFFPEAK: 0.385,
        TimePeriod.DAY_OFFPEAK: 0.49,
        TimePeriod.DAY_PEAK: 0.595,
        TimePeriod.NIGHT_PEAK: 0.56,
    },
    Season.WINTER: {
        TimePeriod.NIGHT_OFFPEAK: 0.42,
        TimePeriod.DAY_OFFPEAK: 0.525,
        TimePeriod.DAY_PEAK: 0.63,
        TimePeriod.NIGHT_PEAK: 0.805,
    },
    Season.SPRING: {
        TimePeriod.NIGHT_OFFPEAK: 0.35,
        TimePeriod.DAY_OFFPEAK: 0.455,
        TimePeriod.DAY_PEAK: 0.56,
        TimePeriod.NIGHT_PEAK: 0.525,
    },
}


class DemandModel:
    """
    Demand generator.

    ``demand = fleet MW x season target fraction x scenario multiplier x (1 + noise)``
    where noise is uniform in ``[-variation, +variation]``. Results are
    clamped at zero and rounded to whole MW.
    """

    def __init__(self, target_fractions: Optional[Dict[Season, Dict[TimePeriod, float]]] = None):
        self.target_fractions = target_fractions or SEASON_TARGET_FRACTIONS

    def baseline(self, fleet_capacity_mw: float, season: Season, period: TimePeriod) -> float:
        return fleet_capacity_mw * self.target_fractions[season][period]

    def demand(
        self,
        fleet_capacity_mw: float,
        season: Season,
        period: TimePeriod,
        multiplier: float = 1.0,
        noise: float = 0.0,
    ) -> float:
        value = self.baseline(fleet_capacity_mw, season, period) * multiplier * (1.0 + noise)
        return float(max(0.0, round(value)))

    @staticmethod
    def draw_noise(variation: float, rng: np.random.Generator) -> Dict[TimePeriod, float]:
        """One uniform draw per period in ``[-variation, +variation]``."""
        if variation <= 0:
            return {period: 0.0 for period in ROUND_PERIODS}
        draws = rng.uniform(-variation, variation, size=len(ROUND_PERIODS))
        return {period: float(draw) for period, draw in zip(ROUND_PERIODS, draws)}

    def generate(
        self,
        conditions: RoundConditions,
        assets: Iterable[Asset],
        variation: float,
        rng: np.random.Generator,
    ) -> Dict[TimePeriod, float]:
        """Fill ``conditions.demand_mw`` for every period.

        Noise is drawn on first use and kept on ``conditions`` so later
        recomputation (after host surprises) reuses the same draws.
        """
        assets = list(assets)
        if not conditions.demand_noise:
            conditions.demand_noise = self.draw_noise(variation, rng)
        for period in ROUND_PERIODS:
            fleet_mw = conditions.fleet_capacity_mw(assets, period)
            conditions.demand_mw[period] = self.demand(
                fleet_mw,
                conditions.season,
                period,
                conditions.demand_multipliers.get(period, 1.0),
                conditions.demand_noise.get(period, 0.0),
            )
        logger.info(
            "Round %d demand: %s",
            conditions.round_number,
            ", ".join(f"{p.value}={mw:.0f} MW" for p, mw in conditions.demand_mw.items()),
        )
        return dict(conditions.demand_mw)

    @staticmethod
    def override(conditions: RoundConditions, values: Mapping[Any, Any]) -> Dict[TimePeriod, float]:
        """Replace demand for some or all periods with host-supplied values."""
        parsed = {}
        for period, mw in values.items():
            try:
                parsed[TimePeriod.parse(period)] = float(mw)
            except (TypeError, ValueError) as exc:
                raise ValidationError(f"Invalid demand override {period!r}: {mw!r}") from exc
            if not np.isfinite(parsed[TimePeriod.parse(period)]):
                raise ValidationError(f"Demand override for {period!r} must be finite")
        for period, mw in parsed.items():
            conditions.demand_mw[period] = float(max(0.0, round(mw)))
        conditions.demand_overridden = True
        return dict(conditions.demand_mw)

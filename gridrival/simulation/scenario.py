"""Apply scenario and surprise events to a round's working conditions."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

import numpy as np

from gridrival.core.assets import Asset
from gridrival.core.conditions import RoundConditions
from gridrival.core.periods import ROUND_PERIODS
from gridrival.data.scenarios import EffectType, ScenarioEffect, ScenarioEvent

logger = logging.getLogger(__name__)


class ScenarioEngine:
    """Composes scenario effects onto :class:`RoundConditions`.

    Effects compose multiplicatively in event-list order (carbon costs add).
    Random draws (multiplier ranges, forced outages) come from the supplied
    generator so a seeded game replays identically.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def apply_events(
        self,
        conditions: RoundConditions,
        events: Iterable[ScenarioEvent],
        assets: Sequence[Asset],
    ) -> List[str]:
        """Apply every effect of every event; returns the ids of assets forced offline."""
        forced: List[str] = []
        for event in events:
            for effect in event.effects:
                outage = self.apply_effect(conditions, effect, assets)
                if outage is not None:
                    forced.append(outage)
            conditions.applied_events.append(event.id)
            logger.info("Applied %s to round %d", event.id, conditions.round_number)
        return forced

    def apply_effect(
        self,
        conditions: RoundConditions,
        effect: ScenarioEffect,
        assets: Sequence[Asset],
    ) -> Optional[str]:
        if effect.type is EffectType.FORCE_OUTAGE:
            return self._force_outage(conditions, effect, assets)

        multiplier = self._multiplier(effect)
        if effect.type is EffectType.MODIFY_DEMAND:
            periods = ROUND_PERIODS if effect.period is None else (effect.period,)
            for period in periods:
                conditions.demand_multipliers[period] = max(0.0, conditions.demand_multipliers[period] * multiplier)
        elif effect.type is EffectType.MODIFY_ASSET_AVAILABILITY:
            self._scale(conditions.availability_multipliers, effect, multiplier)
        elif effect.type is EffectType.MODIFY_CAPACITY_FACTOR:
            self._scale(conditions.capacity_factor_multipliers, effect, multiplier)
        elif effect.type is EffectType.MODIFY_SRMC:
            self._scale(conditions.srmc_multipliers, effect, multiplier)
        elif effect.type is EffectType.ADD_CARBON_COST:
            targets = [effect.asset_type] if effect.asset_type else list(conditions.srmc_adders)
            for asset_type in targets:
                conditions.srmc_adders[asset_type] = max(0.0, conditions.srmc_adders[asset_type] + effect.amount)
        return None

    @staticmethod
    def _scale(table: dict, effect: ScenarioEffect, multiplier: float) -> None:
        targets = [effect.asset_type] if effect.asset_type else list(table)
        for asset_type in targets:
            table[asset_type] = max(0.0, table[asset_type] * multiplier)

    def _multiplier(self, effect: ScenarioEffect) -> float:
        if effect.multiplier_range is not None:
            low, high = effect.multiplier_range
            return float(self.rng.uniform(low, high))
        return effect.multiplier

    def _force_outage(
        self,
        conditions: RoundConditions,
        effect: ScenarioEffect,
        assets: Sequence[Asset],
    ) -> Optional[str]:
        """Take one randomly chosen thermal unit offline for the round."""
        candidates = sorted(
            (
                asset for asset in assets
                if asset.type.is_thermal
                and (effect.asset_type is None or asset.type is effect.asset_type)
                and asset.id not in conditions.forced_outages
            ),
            key=lambda asset: asset.id,
        )
        if not candidates:
            logger.info("No eligible unit for a forced outage in round %d", conditions.round_number)
            return None
        chosen = candidates[int(self.rng.integers(len(candidates)))]
        conditions.forced_outages.add(chosen.id)
        logger.info("Forced outage: %s (%s) offline for round %d", chosen.id, chosen.name, conditions.round_number)
        return chosen.id

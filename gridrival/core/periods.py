"""Seasons and the fixed four-period round structure."""
from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple


class Season(Enum):
    """Season a round is played in."""
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"
    SPRING = "spring"


class TimePeriod(Enum):
    """Six-hour trading periods, in the order they are dispatched."""
    NIGHT_OFFPEAK = "night_offpeak"  # 00:00-06:00
    DAY_OFFPEAK = "day_offpeak"  # 06:00-12:00
    DAY_PEAK = "day_peak"  # 12:00-18:00
    NIGHT_PEAK = "night_peak"  # 18:00-24:00

    @classmethod
    def parse(cls, value) -> TimePeriod:
        """Coerce a string or enum member into a TimePeriod."""
        if isinstance(value, cls):
            return value
        return cls(str(value))


ROUND_PERIODS: Tuple[TimePeriod, ...] = (
    TimePeriod.NIGHT_OFFPEAK,
    TimePeriod.DAY_OFFPEAK,
    TimePeriod.DAY_PEAK,
    TimePeriod.NIGHT_PEAK,
)


def previous_period(period: TimePeriod) -> Optional[TimePeriod]:
    """Period immediately before ``period`` in the same round, or None for the first."""
    index = ROUND_PERIODS.index(period)
    if index == 0:
        return None
    return ROUND_PERIODS[index - 1]

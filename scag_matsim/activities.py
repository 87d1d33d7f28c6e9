"""Activity-type scoring parameters for the SCAG scenario.

The demand model emits activity types with their duration baked into the
name (``work_3600.0``), so every duration bin gets its own entry next to a
list of plain, fixed-duration types.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .matsim_config import ParameterSet
from .utils import format_time

HOUR = 3600.0

DURATION_BIN_SIZE = 600
DURATION_BIN_MAX = 97200


@dataclass(frozen=True)
class ActivityParams:
    activity_type: str
    typical_duration: float
    opening_time: Optional[float] = None
    closing_time: Optional[float] = None

    def to_parameter_set(self) -> ParameterSet:
        ps = ParameterSet("activityParams")
        ps.set("activityType", self.activity_type)
        ps.set("typicalDuration", format_time(self.typical_duration))
        if self.opening_time is not None:
            ps.set("openingTime", format_time(self.opening_time))
        if self.closing_time is not None:
            ps.set("closingTime", format_time(self.closing_time))
        return ps


# base label -> (opening, closing) in seconds since midnight
DURATION_BIN_TYPES: Tuple[Tuple[str, Optional[float], Optional[float]], ...] = (
    ("home", None, None),
    ("work", 6 * HOUR, 20 * HOUR),
    ("leisure", 9 * HOUR, 27 * HOUR),
    ("shopping", 8 * HOUR, 20 * HOUR),
    ("other", None, None),
)

FIXED_ACTIVITIES: Tuple[ActivityParams, ...] = (
    ActivityParams("freight", 12 * HOUR),
    ActivityParams("home", 12 * HOUR),
    ActivityParams("work", 8 * HOUR),
    ActivityParams("university", 8 * HOUR),
    ActivityParams("school", 6 * HOUR),
    ActivityParams("escort", 1 * HOUR),
    ActivityParams("schoolescort", 1 * HOUR),
    ActivityParams("schoolpureescort", 1 * HOUR),
    ActivityParams("schoolridesharing", 1 * HOUR),
    ActivityParams("non-schoolescort", 1 * HOUR),
    ActivityParams("shop", 1 * HOUR),
    ActivityParams("maintenance", 1 * HOUR),
    ActivityParams("HHmaintenance", 1 * HOUR),
    ActivityParams("personalmaintenance", 1 * HOUR),
    ActivityParams("eatout", 1 * HOUR),
    ActivityParams("eatoutbreakfast", 1 * HOUR),
    ActivityParams("eatoutlunch", 1 * HOUR),
    ActivityParams("eatoutdinner", 1 * HOUR),
    ActivityParams("visiting", 1 * HOUR),
    ActivityParams("discretionary", 1 * HOUR),
    ActivityParams("specialevent", 1 * HOUR),
    ActivityParams("atwork", 1 * HOUR),
    ActivityParams("atworkbusiness", 1 * HOUR),
    ActivityParams("atworklunch", 1 * HOUR),
    ActivityParams("atworkother", 1 * HOUR),
    ActivityParams("business", 1 * HOUR),
)


def duration_bins() -> range:
    return range(DURATION_BIN_SIZE, DURATION_BIN_MAX + 1, DURATION_BIN_SIZE)


def duration_bin_activities() -> List[ActivityParams]:
    """One entry per base label and duration bin, named ``<label>_<seconds>.0``."""

    return [
        ActivityParams(f"{label}_{duration}.0", float(duration), opening, closing)
        for duration in duration_bins()
        for label, opening, closing in DURATION_BIN_TYPES
    ]


def activity_table() -> List[ActivityParams]:
    return duration_bin_activities() + list(FIXED_ACTIVITIES)


def find_duplicate_activity_types(table: Iterable[ActivityParams]) -> List[str]:
    counts = Counter(params.activity_type for params in table)
    return sorted(name for name, count in counts.items() if count > 1)

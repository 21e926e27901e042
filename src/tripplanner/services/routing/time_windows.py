"""Soft ordering of stops that carry a delivery time."""

from __future__ import annotations

import re
from typing import Sequence

from .errors import InvalidInput
from .models import Stop, StopKind

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")


def parse_time_window(value: str, field: str = "time_window") -> int:
    """Return minutes since midnight for an "HH:MM" or "HH:MM:SS" clock time."""
    match = _TIME_PATTERN.match(value or "")
    if not match:
        raise InvalidInput(field, f"'{value}' is not a clock time (HH:MM)")
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        raise InvalidInput(field, f"'{value}' is not a valid time of day")
    return hours * 60 + minutes


def reconcile_time_windows(stops: Sequence[Stop]) -> list[Stop]:
    """Reorder timed stops among the slots they occupy, by ascending time.

    Untimed stops keep their positions. This is a stable partition-merge over
    the optimized order, not a time-window constrained re-optimization.
    Depot-return entries stay at the end.
    """
    regular = [stop for stop in stops if stop.kind is not StopKind.DEPOT_RETURN]
    trailing = [stop for stop in stops if stop.kind is StopKind.DEPOT_RETURN]

    timed = sorted(
        (stop for stop in regular if stop.time_window),
        key=lambda stop: parse_time_window(stop.time_window),
    )
    if not timed:
        return [*regular, *trailing]

    timed_iter = iter(timed)
    merged = [next(timed_iter) if stop.time_window else stop for stop in regular]
    return [*merged, *trailing]

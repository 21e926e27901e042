"""Display helpers for distances and durations shown to dispatchers and drivers."""

from __future__ import annotations


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{round(meters)} m"
    return f"{meters / 1000:.1f} km"


def format_duration(seconds: float) -> str:
    total_minutes = int(seconds // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours} h {minutes} min"
    return f"{minutes} min"

"""Formatting and serialization of planning results."""

from .formatter import format_distance, format_duration

__all__ = ["format_distance", "format_duration"]

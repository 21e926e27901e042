"""Error taxonomy for the trip planning engine."""

from __future__ import annotations


class PlanningError(Exception):
    """Base class for every error raised by the planning engine."""


class InvalidInput(PlanningError, ValueError):
    """Malformed request. Fatal to the call and never retried."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class ProviderUnavailable(PlanningError, ConnectionError):
    """The routing backend could not produce a usable answer.

    Covers timeouts, network errors, non-"Ok" statuses and malformed payloads.
    The planner always recovers from this locally.
    """


class ConstraintMappingError(PlanningError):
    """Backend waypoint order cannot be reconciled with the injected waypoints."""

    def __init__(self, expected: int, received: int, detail: str | None = None) -> None:
        self.expected = expected
        self.received = received
        message = f"Expected {expected} waypoints in backend order, received {received}."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


class ProviderTimeout(ProviderUnavailable):
    """The routing backend did not answer within the configured timeout."""

"""Exceptions raised by the sequence planner."""

from __future__ import annotations

from typing import Optional


class SequenceUnavailable(ValueError):
    """Raised when no sequence can be generated for a request.

    The ``reason`` is meant for display to the observer.
    """

    def __init__(self, reason: str, observation_id: Optional[str] = None) -> None:
        self.reason = reason
        self.observation_id = observation_id
        if observation_id is None:
            message = reason
        else:
            message = f"Could not generate a sequence for {observation_id}: {reason}"
        super().__init__(message)


class ObservationDefinitionError(RuntimeError):
    """Raised when an observation definition file is missing or inconsistent."""


__all__ = ["ObservationDefinitionError", "SequenceUnavailable"]

"""Exposure time and count goals supplied by the integration time calculator."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class IntegrationTime:
    """How long each exposure lasts and how many are needed."""

    exposure_time: timedelta
    exposure_count: int

    def __post_init__(self) -> None:
        if self.exposure_count < 0:
            raise ValueError(
                f"exposure_count must be non-negative, got {self.exposure_count}"
            )

    @classmethod
    def from_seconds(cls, seconds: float, count: int) -> "IntegrationTime":
        return cls(timedelta(seconds=seconds), count)


__all__ = ["IntegrationTime"]

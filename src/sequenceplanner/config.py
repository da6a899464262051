"""Planning constants for GMOS long-slit sequence generation.

The values here are shared by the acquisition and science generators.  A
default instance reproduces the nominal observatory settings; alternate
instances are mainly useful for testing and for what-if planning.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import timedelta
from typing import Any, Mapping, Tuple

import numpy as np

from .utils.time import as_timedelta


@dataclass(frozen=True)
class PlannerConfig:
    """Configuration for sequence planning."""

    # ============================================================================
    # SCIENCE BLOCKS
    # ============================================================================

    science_period: timedelta = timedelta(hours=1)
    """Nominal time spent at one (wavelength dither, spatial offset) pair.

    Together with the science exposure time this fixes how many exposures fit
    in one calibration block.
    """

    cal_validity_period: timedelta = timedelta(minutes=90)
    """How long an arc or flat remains valid for the science that follows it."""

    twilight_exposure_time: timedelta = timedelta(seconds=30)
    """Exposure time used for twilight flat observations."""

    default_spatial_offsets_arcsec: Tuple[float, ...] = (0.0, 15.0, -15.0)
    """Spatial offsets in q applied when none are requested explicitly."""

    spectrophotometric_dither_fraction: float = 0.1
    """Dithers smaller than this fraction of the grating coverage are dropped
    for spectrophotometric and twilight calibrations."""

    # ============================================================================
    # ACQUISITION
    # ============================================================================

    acquisition_min_exposure: timedelta = timedelta(seconds=1)
    """Shortest acquisition image exposure."""

    acquisition_max_exposure: timedelta = timedelta(seconds=180)
    """Longest acquisition image exposure."""

    acquisition_slit_max_exposure: timedelta = timedelta(seconds=360)
    """Cap on the through-slit image exposure (three times the image time)."""

    acquisition_p10_exposure: timedelta = timedelta(seconds=20)
    """Exposure for the offset image taken with the slit in place."""

    acquisition_p_offset_arcsec: float = 10.0
    """Offset in p for the slit-in image."""

    # ============================================================================
    # VALIDATION
    # ============================================================================

    def __post_init__(self) -> None:
        """Validate configuration consistency."""
        for name in (
            "science_period",
            "cal_validity_period",
            "twilight_exposure_time",
            "acquisition_min_exposure",
            "acquisition_max_exposure",
            "acquisition_slit_max_exposure",
            "acquisition_p10_exposure",
        ):
            value = getattr(self, name)
            if value <= timedelta(0):
                raise ValueError(f"{name} must be positive, got {value}")

        if self.cal_validity_period < self.science_period:
            raise ValueError(
                "cal_validity_period must be at least science_period, got %s < %s"
                % (self.cal_validity_period, self.science_period)
            )

        if self.acquisition_min_exposure > self.acquisition_max_exposure:
            raise ValueError(
                "acquisition_min_exposure must not exceed acquisition_max_exposure"
            )

        fraction = self.spectrophotometric_dither_fraction
        if fraction < 0.0 or (fraction > 1.0 and not np.isclose(fraction, 1.0)):
            raise ValueError(
                "spectrophotometric_dither_fraction must be in [0, 1], got %s" % (fraction,)
            )

    # ============================================================================
    # CONSTRUCTION
    # ============================================================================

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "PlannerConfig":
        """Build a config from JSON-style values.

        Duration fields accept seconds.  Unknown keys raise ``ValueError``.
        """
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(values) - set(known))
        if unknown:
            raise ValueError(f"Unknown planner configuration keys: {', '.join(unknown)}")

        kwargs = {}
        for key, value in values.items():
            if isinstance(known[key].default, timedelta):
                kwargs[key] = as_timedelta(value)
            elif key == "default_spatial_offsets_arcsec":
                kwargs[key] = tuple(float(v) for v in value)
            else:
                kwargs[key] = value
        return cls(**kwargs)


DEFAULT_CONFIG = PlannerConfig()


__all__ = ["DEFAULT_CONFIG", "PlannerConfig"]

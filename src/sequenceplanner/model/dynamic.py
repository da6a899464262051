"""Dynamic (step to step) GMOS instrument configurations.

Wavelengths are integer picometres, angles integer microarcseconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional, Union

from ..enums import (
    GmosAmpCount,
    GmosAmpGain,
    GmosAmpReadMode,
    GmosDtax,
    GmosGratingOrder,
    GmosNorthFilter,
    GmosNorthFpu,
    GmosNorthGrating,
    GmosRoi,
    GmosSouthFilter,
    GmosSouthFpu,
    GmosSouthGrating,
    GmosXBinning,
    GmosYBinning,
    GuideState,
)


@dataclass(frozen=True)
class GmosCcdMode:
    """Detector readout settings."""

    x_bin: GmosXBinning = GmosXBinning.ONE
    y_bin: GmosYBinning = GmosYBinning.ONE
    amp_count: GmosAmpCount = GmosAmpCount.TWELVE
    amp_gain: GmosAmpGain = GmosAmpGain.LOW
    amp_read_mode: GmosAmpReadMode = GmosAmpReadMode.SLOW


@dataclass(frozen=True)
class GmosGratingConfig:
    """Disperser, diffraction order and central wavelength (pm)."""

    grating: Union[GmosNorthGrating, GmosSouthGrating]
    order: GmosGratingOrder
    wavelength: int


@dataclass(frozen=True)
class GmosNorthDynamic:
    """GMOS North dynamic configuration.

    The defaults form the initial state of every GMOS North sequence: no
    exposure time, unbinned slow/low readout over twelve amplifiers, zero
    detector translation, full frame, and no grating, filter or FPU.
    """

    exposure: timedelta = timedelta(0)
    readout: GmosCcdMode = field(default_factory=GmosCcdMode)
    dtax: GmosDtax = GmosDtax.ZERO
    roi: GmosRoi = GmosRoi.FULL_FRAME
    grating_config: Optional[GmosGratingConfig] = None
    filter: Optional[GmosNorthFilter] = None
    fpu: Optional[GmosNorthFpu] = None


@dataclass(frozen=True)
class GmosSouthDynamic:
    """GMOS South dynamic configuration; see :class:`GmosNorthDynamic`."""

    exposure: timedelta = timedelta(0)
    readout: GmosCcdMode = field(default_factory=GmosCcdMode)
    dtax: GmosDtax = GmosDtax.ZERO
    roi: GmosRoi = GmosRoi.FULL_FRAME
    grating_config: Optional[GmosGratingConfig] = None
    filter: Optional[GmosSouthFilter] = None
    fpu: Optional[GmosSouthFpu] = None


GmosDynamic = Union[GmosNorthDynamic, GmosSouthDynamic]


@dataclass(frozen=True)
class Offset:
    """Telescope offset in microarcseconds."""

    p: int = 0
    q: int = 0


@dataclass(frozen=True)
class TelescopeConfig:
    offset: Offset = field(default_factory=Offset)
    guiding: GuideState = GuideState.ENABLED


@dataclass(frozen=True)
class GmosStaticConfig:
    """Per-visit settings that do not change between steps."""

    site: str
    stage_mode: str
    detector: str = "Hamamatsu"
    mos_pre_imaging: bool = False


GMOS_NORTH_STATIC = GmosStaticConfig(site="GN", stage_mode="FollowXy")
GMOS_SOUTH_STATIC = GmosStaticConfig(site="GS", stage_mode="FollowXyz")


__all__ = [
    "GMOS_NORTH_STATIC",
    "GMOS_SOUTH_STATIC",
    "GmosCcdMode",
    "GmosDynamic",
    "GmosGratingConfig",
    "GmosNorthDynamic",
    "GmosSouthDynamic",
    "GmosStaticConfig",
    "Offset",
    "TelescopeConfig",
]

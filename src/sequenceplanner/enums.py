"""Enumerated instrument and sequence vocabulary.

Each member's value is its *tag*, the stable string used when hashing
configurations and when reading observation definitions.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Type, TypeVar

E = TypeVar("E", bound="TaggedEnum")


class TaggedEnum(Enum):
    """Enum whose value is a stable string tag."""

    @property
    def tag(self) -> str:
        return self.value

    @classmethod
    def from_tag(cls: Type[E], tag: str) -> E:
        for member in cls:
            if member.value == tag or member.name == tag:
                return member
        raise ValueError(f"Unknown {cls.__name__} tag: {tag!r}")


# ============================================================================
# SITES & SEQUENCES
# ============================================================================


class Site(TaggedEnum):
    GN = "GN"
    GS = "GS"


class SequenceType(TaggedEnum):
    ACQUISITION = "Acquisition"
    SCIENCE = "Science"


class ObserveClass(TaggedEnum):
    """Time accounting bucket for a step."""

    SCIENCE = "Science"
    PROGRAM_CAL = "ProgramCal"
    PARTNER_CAL = "PartnerCal"
    ACQUISITION = "Acquisition"
    ACQUISITION_CAL = "AcquisitionCal"
    NIGHT_CAL = "NightCal"
    DAY_CAL = "DayCal"


class StepType(TaggedEnum):
    BIAS = "Bias"
    DARK = "Dark"
    GCAL = "Gcal"
    SCIENCE = "Science"
    SMART_GCAL = "SmartGcal"


class SmartGcalType(TaggedEnum):
    ARC = "Arc"
    FLAT = "Flat"
    DAY_BASELINE = "DayBaseline"
    NIGHT_BASELINE = "NightBaseline"


class GuideState(TaggedEnum):
    ENABLED = "Enabled"
    DISABLED = "Disabled"


class CalibrationRole(TaggedEnum):
    TWILIGHT = "Twilight"
    PHOTOMETRIC = "Photometric"
    SPECTROPHOTOMETRIC = "SpectroPhotometric"
    TELLURIC = "Telluric"


class StepExecutionState(TaggedEnum):
    NOT_STARTED = "NotStarted"
    ONGOING = "Ongoing"
    ABORTED = "Aborted"
    COMPLETED = "Completed"
    STOPPED = "Stopped"
    ABANDONED = "Abandoned"


# ============================================================================
# GMOS DETECTOR
# ============================================================================


class GmosXBinning(TaggedEnum):
    ONE = "One"
    TWO = "Two"
    FOUR = "Four"

    @property
    def count(self) -> int:
        return _BINNING_COUNTS[self.value]


class GmosYBinning(TaggedEnum):
    ONE = "One"
    TWO = "Two"
    FOUR = "Four"

    @property
    def count(self) -> int:
        return _BINNING_COUNTS[self.value]


_BINNING_COUNTS = {"One": 1, "Two": 2, "Four": 4}


class GmosAmpReadMode(TaggedEnum):
    SLOW = "Slow"
    FAST = "Fast"


class GmosAmpGain(TaggedEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class GmosAmpCount(TaggedEnum):
    THREE = "Three"
    SIX = "Six"
    TWELVE = "Twelve"


class GmosRoi(TaggedEnum):
    FULL_FRAME = "FullFrame"
    CCD2 = "Ccd2"
    CENTRAL_SPECTRUM = "CentralSpectrum"
    CENTRAL_STAMP = "CentralStamp"
    TOP_SPECTRUM = "TopSpectrum"
    BOTTOM_SPECTRUM = "BottomSpectrum"


class GmosDtax(TaggedEnum):
    MINUS_SIX = "MinusSix"
    MINUS_FIVE = "MinusFive"
    MINUS_FOUR = "MinusFour"
    MINUS_THREE = "MinusThree"
    MINUS_TWO = "MinusTwo"
    MINUS_ONE = "MinusOne"
    ZERO = "Zero"
    ONE = "One"
    TWO = "Two"
    THREE = "Three"
    FOUR = "Four"
    FIVE = "Five"
    SIX = "Six"


class GmosGratingOrder(TaggedEnum):
    ZERO = "Zero"
    ONE = "One"
    TWO = "Two"


# ============================================================================
# GMOS OPTICS
# ============================================================================
# Wavelengths below are in picometres.


class _GmosGrating(TaggedEnum):
    @property
    def coverage(self) -> int:
        """Simultaneous wavelength coverage in picometres."""
        return _GRATING_COVERAGE_PM[self.value.split("_")[0]]

    @property
    def default_dither(self) -> int:
        """Wavelength dither (pm) needed to fill the detector chip gaps."""
        return _GRATING_DITHER_PM[self.value.split("_")[0]]


_GRATING_COVERAGE_PM = {
    "B1200": 159_000,
    "R831": 235_000,
    "B600": 276_000,
    "R600": 276_000,
    "B480": 390_000,
    "R400": 472_000,
    "R150": 1_219_000,
}

_GRATING_DITHER_PM = {
    "B1200": 5_000,
    "R831": 5_000,
    "B600": 5_000,
    "R600": 5_000,
    "B480": 5_000,
    "R400": 8_000,
    "R150": 20_000,
}


class GmosNorthGrating(_GmosGrating):
    B1200_G5301 = "B1200_G5301"
    R831_G5302 = "R831_G5302"
    R600_G5304 = "R600_G5304"
    B480_G5309 = "B480_G5309"
    R400_G5305 = "R400_G5305"
    R150_G5308 = "R150_G5308"


class GmosSouthGrating(_GmosGrating):
    B1200_G5321 = "B1200_G5321"
    R831_G5322 = "R831_G5322"
    B600_G5323 = "B600_G5323"
    R600_G5324 = "R600_G5324"
    B480_G5327 = "B480_G5327"
    R400_G5325 = "R400_G5325"
    R150_G5326 = "R150_G5326"


class _GmosFilter(TaggedEnum):
    @property
    def wavelength(self) -> int:
        """Effective wavelength in picometres."""
        return _FILTER_WAVELENGTH_PM[self.name]

    @classmethod
    def acquisition(cls) -> List["_GmosFilter"]:
        """Filters usable for acquisition imaging."""
        return [cls.G_PRIME, cls.R_PRIME, cls.I_PRIME, cls.Z_PRIME]


_FILTER_WAVELENGTH_PM = {
    "G_PRIME": 475_000,
    "R_PRIME": 630_000,
    "I_PRIME": 780_000,
    "Z_PRIME": 925_000,
    "GG455": 680_000,
    "OG515": 710_000,
    "RG610": 750_000,
    "CA_T": 860_000,
    "HA": 655_000,
    "DS920": 920_000,
}


class GmosNorthFilter(_GmosFilter):
    G_PRIME = "GPrime"
    R_PRIME = "RPrime"
    I_PRIME = "IPrime"
    Z_PRIME = "ZPrime"
    GG455 = "GG455"
    OG515 = "OG515"
    RG610 = "RG610"
    CA_T = "CaT"
    HA = "Ha"
    DS920 = "DS920"


class GmosSouthFilter(_GmosFilter):
    G_PRIME = "GPrime"
    R_PRIME = "RPrime"
    I_PRIME = "IPrime"
    Z_PRIME = "ZPrime"
    GG455 = "GG455"
    OG515 = "OG515"
    RG610 = "RG610"
    CA_T = "CaT"
    HA = "Ha"
    DS920 = "DS920"


class GmosNorthFpu(TaggedEnum):
    LONG_SLIT_0_25 = "LongSlit_0_25"
    LONG_SLIT_0_50 = "LongSlit_0_50"
    LONG_SLIT_0_75 = "LongSlit_0_75"
    LONG_SLIT_1_00 = "LongSlit_1_00"
    LONG_SLIT_1_50 = "LongSlit_1_50"
    LONG_SLIT_2_00 = "LongSlit_2_00"
    LONG_SLIT_5_00 = "LongSlit_5_00"


class GmosSouthFpu(TaggedEnum):
    LONG_SLIT_0_25 = "LongSlit_0_25"
    LONG_SLIT_0_50 = "LongSlit_0_50"
    LONG_SLIT_0_75 = "LongSlit_0_75"
    LONG_SLIT_1_00 = "LongSlit_1_00"
    LONG_SLIT_1_50 = "LongSlit_1_50"
    LONG_SLIT_2_00 = "LongSlit_2_00"
    LONG_SLIT_5_00 = "LongSlit_5_00"

"""GMOS long-slit science mode configuration.

A configuration records the requested grating, filter, slit and central
wavelength plus optional explicit overrides of detector and dither settings.
Every overridable field resolves to the explicit value when present and to a
documented default otherwise.

Two configurations are interchangeable for planning when all of their
resolved fields agree; :func:`reconcile` checks that across a group of
observations and :meth:`LongSlitConfig.hash_bytes` provides a stable binary
fingerprint of the resolved fields.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, replace
from typing import Any, ClassVar, Dict, Optional, Sequence, Tuple, Union

from ..config import DEFAULT_CONFIG
from ..enums import (
    GmosAmpCount,
    GmosAmpGain,
    GmosAmpReadMode,
    GmosNorthFilter,
    GmosNorthFpu,
    GmosNorthGrating,
    GmosRoi,
    GmosSouthFilter,
    GmosSouthFpu,
    GmosSouthGrating,
    GmosXBinning,
    GmosYBinning,
    Site,
)
from ..instruments import GMOS_NORTH, GMOS_SOUTH, DynamicAccessors
from ..model import GmosCcdMode
from ..utils.units import to_microarcseconds

DEFAULT_AMP_READ_MODE = GmosAmpReadMode.SLOW
DEFAULT_AMP_GAIN = GmosAmpGain.LOW
DEFAULT_AMP_COUNT = GmosAmpCount.TWELVE
DEFAULT_ROI = GmosRoi.FULL_FRAME

DEFAULT_SPATIAL_OFFSETS: Tuple[int, ...] = tuple(
    to_microarcseconds(q) for q in DEFAULT_CONFIG.default_spatial_offsets_arcsec
)
"""Default spatial offsets in q (microarcseconds)."""

RESOLVED_FIELDS: Tuple[str, ...] = (
    "grating",
    "filter",
    "fpu",
    "central_wavelength",
    "x_bin",
    "y_bin",
    "amp_read_mode",
    "amp_gain",
    "roi",
    "wavelength_dithers",
    "spatial_offsets",
)


def default_wavelength_dithers(grating: Union[GmosNorthGrating, GmosSouthGrating]) -> Tuple[int, ...]:
    """Dithers (pm) that fill the detector chip gaps for ``grating``."""
    dither = grating.default_dither
    return (0, dither, -dither)


@dataclass(frozen=True)
class LongSlitConfig:
    """Fields shared by the GMOS North and South long-slit configurations.

    Wavelengths and dithers are in picometres, spatial offsets in
    microarcseconds.
    """

    grating: Any
    fpu: Any
    central_wavelength: int
    filter: Optional[Any] = None
    default_x_bin: GmosXBinning = GmosXBinning.ONE
    explicit_x_bin: Optional[GmosXBinning] = None
    default_y_bin: GmosYBinning = GmosYBinning.TWO
    explicit_y_bin: Optional[GmosYBinning] = None
    explicit_amp_read_mode: Optional[GmosAmpReadMode] = None
    explicit_amp_gain: Optional[GmosAmpGain] = None
    explicit_roi: Optional[GmosRoi] = None
    explicit_wavelength_dithers: Optional[Tuple[int, ...]] = None
    explicit_spatial_offsets: Optional[Tuple[int, ...]] = None

    site: ClassVar[Site]
    accessors: ClassVar[DynamicAccessors]

    def __post_init__(self) -> None:
        # Keep list-valued overrides hashable.
        for name in ("explicit_wavelength_dithers", "explicit_spatial_offsets"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(int(v) for v in value))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @property
    def coverage(self) -> int:
        """Simultaneous wavelength coverage of the grating (pm)."""
        return self.grating.coverage

    @property
    def x_bin(self) -> GmosXBinning:
        return self.explicit_x_bin if self.explicit_x_bin is not None else self.default_x_bin

    @property
    def y_bin(self) -> GmosYBinning:
        return self.explicit_y_bin if self.explicit_y_bin is not None else self.default_y_bin

    @property
    def default_amp_read_mode(self) -> GmosAmpReadMode:
        return DEFAULT_AMP_READ_MODE

    @property
    def amp_read_mode(self) -> GmosAmpReadMode:
        if self.explicit_amp_read_mode is not None:
            return self.explicit_amp_read_mode
        return self.default_amp_read_mode

    @property
    def default_amp_gain(self) -> GmosAmpGain:
        return DEFAULT_AMP_GAIN

    @property
    def amp_gain(self) -> GmosAmpGain:
        if self.explicit_amp_gain is not None:
            return self.explicit_amp_gain
        return self.default_amp_gain

    @property
    def default_roi(self) -> GmosRoi:
        return DEFAULT_ROI

    @property
    def roi(self) -> GmosRoi:
        return self.explicit_roi if self.explicit_roi is not None else self.default_roi

    @property
    def default_wavelength_dithers(self) -> Tuple[int, ...]:
        return default_wavelength_dithers(self.grating)

    @property
    def wavelength_dithers(self) -> Tuple[int, ...]:
        if self.explicit_wavelength_dithers is not None:
            return self.explicit_wavelength_dithers
        return self.default_wavelength_dithers

    @property
    def default_spatial_offsets(self) -> Tuple[int, ...]:
        return DEFAULT_SPATIAL_OFFSETS

    @property
    def spatial_offsets(self) -> Tuple[int, ...]:
        if self.explicit_spatial_offsets is not None:
            return self.explicit_spatial_offsets
        return self.default_spatial_offsets

    @property
    def ccd_mode(self) -> GmosCcdMode:
        return GmosCcdMode(
            self.x_bin, self.y_bin, DEFAULT_AMP_COUNT, self.amp_gain, self.amp_read_mode
        )

    def resolve(self, field_name: str) -> Any:
        """Return the explicit override for ``field_name``, else its default."""
        if field_name not in RESOLVED_FIELDS:
            raise KeyError(f"Unknown long slit field: {field_name!r}")
        return getattr(self, field_name)

    def resolved(self) -> Dict[str, Any]:
        """All resolved fields, in hashing order."""
        return {name: getattr(self, name) for name in RESOLVED_FIELDS}

    def with_explicit(self, **changes: Any) -> "LongSlitConfig":
        """Copy with the given ``explicit_*`` (or other) fields replaced."""
        return replace(self, **changes)

    # ------------------------------------------------------------------
    # Hashing
    # ------------------------------------------------------------------

    def hash_bytes(self) -> bytes:
        """Deterministic encoding of the resolved fields.

        Field order is fixed: grating, filter (only when present) and FPU tags;
        central wavelength; x/y binning, amp gain, amp read mode and ROI tags;
        each wavelength dither; each spatial offset.  Tags are UTF-16BE,
        wavelengths and dithers big-endian int32 picometres, offsets
        big-endian int64 microarcseconds.

        The dither and offset lists are written without their lengths, so
        two dither/offset splits of the same bytes encode identically (for
        example dithers ``(0, 5)`` with offsets ``(0,)`` and no dithers with
        offsets ``(5, 0)``).  Use :func:`reconcile`, which compares resolved
        fields, to decide whether configurations match.
        """
        parts = [_chars(self.grating.tag)]
        if self.filter is not None:
            parts.append(_chars(self.filter.tag))
        parts.append(_chars(self.fpu.tag))
        parts.append(struct.pack(">i", self.central_wavelength))
        for value in (self.x_bin, self.y_bin, self.amp_gain, self.amp_read_mode, self.roi):
            parts.append(_chars(value.tag))
        for dither in self.wavelength_dithers:
            parts.append(struct.pack(">i", dither))
        for offset in self.spatial_offsets:
            parts.append(struct.pack(">q", offset))
        return b"".join(parts)

    def digest(self) -> str:
        """Hex MD5 digest of :meth:`hash_bytes`."""
        return hashlib.md5(self.hash_bytes()).hexdigest()


def _chars(tag: str) -> bytes:
    return tag.encode("utf-16-be")


@dataclass(frozen=True)
class GmosNorthLongSlitConfig(LongSlitConfig):
    grating: GmosNorthGrating
    fpu: GmosNorthFpu
    central_wavelength: int
    filter: Optional[GmosNorthFilter] = None

    site: ClassVar[Site] = Site.GN
    accessors: ClassVar[DynamicAccessors] = GMOS_NORTH


@dataclass(frozen=True)
class GmosSouthLongSlitConfig(LongSlitConfig):
    grating: GmosSouthGrating
    fpu: GmosSouthFpu
    central_wavelength: int
    filter: Optional[GmosSouthFilter] = None

    site: ClassVar[Site] = Site.GS
    accessors: ClassVar[DynamicAccessors] = GMOS_SOUTH


def reconcile(
    reference: LongSlitConfig, candidates: Sequence[LongSlitConfig]
) -> Optional[LongSlitConfig]:
    """Return ``reference`` if every candidate resolves identically to it.

    Candidates of a different instrument never reconcile.  Stops at the
    first mismatch.
    """
    expected = reference.resolved()
    for candidate in candidates:
        if type(candidate) is not type(reference):
            return None
        if candidate.resolved() != expected:
            return None
    return reference


__all__ = [
    "DEFAULT_SPATIAL_OFFSETS",
    "GmosNorthLongSlitConfig",
    "GmosSouthLongSlitConfig",
    "LongSlitConfig",
    "RESOLVED_FIELDS",
    "default_wavelength_dithers",
    "reconcile",
]

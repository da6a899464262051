"""Per-instrument get/set accessors over dynamic configurations.

The sequence generators are written once against :class:`DynamicAccessors`.
Each supported instrument supplies one implementation that knows its
dynamic configuration type and which grating, filter and FPU enumerations
it accepts.
"""

from __future__ import annotations

import logging
from abc import ABC
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Any, Callable, Generic, Optional, Tuple, Type, TypeVar

from ..enums import (
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
)
from ..model import GmosCcdMode, GmosGratingConfig, GmosNorthDynamic, GmosSouthDynamic
from ..sequence.state import Edit

logger = logging.getLogger(__name__)

S = TypeVar("S")
A = TypeVar("A")
B = TypeVar("B")
D = TypeVar("D")

GratingTriple = Tuple[Any, GmosGratingOrder, int]


@dataclass(frozen=True)
class Accessor(Generic[S, A]):
    """A get/set pair focusing on one part of a value."""

    get: Callable[[S], A]
    set: Callable[[S, A], S]
    name: str = ""

    def over(self, state: S, fn: Callable[[A], A]) -> S:
        """Apply ``fn`` to the focused part of ``state``."""
        return self.set(state, fn(self.get(state)))

    def compose(self, inner: "Accessor[A, B]") -> "Accessor[S, B]":
        return Accessor(
            lambda s: inner.get(self.get(s)),
            lambda s, b: self.set(s, inner.set(self.get(s), b)),
            f"{self.name}.{inner.name}" if self.name else inner.name,
        )

    def assign(self, value: A) -> Edit:
        """Edit operation setting the focused part to ``value``."""
        return Edit(lambda s: self.set(s, value), f"{self.name} := {value!r}")

    def modify(self, fn: Callable[[A], A]) -> Edit:
        return Edit(lambda s: self.over(s, fn), f"{self.name} modified")


def _field(name: str, expected: Optional[Type] = None, optional: bool = False) -> Accessor:
    def _set(state: Any, value: Any) -> Any:
        if expected is not None and not (value is None and optional):
            if not isinstance(value, expected):
                raise TypeError(
                    f"{name} expects {expected.__name__}, got {type(value).__name__}"
                )
        return replace(state, **{name: value})

    return Accessor(lambda state: getattr(state, name), _set, name)


class DynamicAccessors(ABC, Generic[D]):
    """Capability interface for editing one instrument's dynamic configuration.

    Subclasses set the class attributes naming the dynamic configuration type
    and the enumerations it accepts.
    """

    dynamic_type: Type
    grating_type: Type
    filter_type: Type
    fpu_type: Type

    def __init__(self) -> None:
        self.exposure: Accessor[D, timedelta] = _field("exposure", timedelta)
        self.readout: Accessor[D, GmosCcdMode] = _field("readout", GmosCcdMode)

        self.x_bin: Accessor[D, GmosXBinning] = self.readout.compose(
            _field("x_bin", GmosXBinning)
        )
        self.y_bin: Accessor[D, GmosYBinning] = self.readout.compose(
            _field("y_bin", GmosYBinning)
        )
        self.amp_read_mode: Accessor[D, GmosAmpReadMode] = self.readout.compose(
            _field("amp_read_mode", GmosAmpReadMode)
        )
        self.amp_gain: Accessor[D, GmosAmpGain] = self.readout.compose(
            _field("amp_gain", GmosAmpGain)
        )

        self.dtax: Accessor[D, GmosDtax] = _field("dtax", GmosDtax)
        self.roi: Accessor[D, GmosRoi] = _field("roi", GmosRoi)
        self.grating: Accessor[D, Optional[GratingTriple]] = Accessor(
            self._get_grating, self._set_grating, "grating"
        )
        self.wavelength: Accessor[D, Optional[int]] = Accessor(
            self._get_wavelength, self._set_wavelength, "wavelength"
        )
        self.filter: Accessor[D, Any] = _field("filter", self.filter_type, optional=True)
        self.fpu: Accessor[D, Any] = _field("fpu", self.fpu_type, optional=True)

    @property
    def initial(self) -> D:
        """Initial dynamic configuration for a new sequence."""
        return self.dynamic_type()

    def _get_grating(self, state: D) -> Optional[GratingTriple]:
        config = state.grating_config
        if config is None:
            return None
        return (config.grating, config.order, config.wavelength)

    def _set_grating(self, state: D, value: Optional[GratingTriple]) -> D:
        if value is None:
            return replace(state, grating_config=None)
        grating, order, wavelength = value
        if not isinstance(grating, self.grating_type):
            raise TypeError(
                f"grating expects {self.grating_type.__name__}, got {type(grating).__name__}"
            )
        return replace(state, grating_config=GmosGratingConfig(grating, order, int(wavelength)))

    def _get_wavelength(self, state: D) -> Optional[int]:
        config = state.grating_config
        return None if config is None else config.wavelength

    def _set_wavelength(self, state: D, value: Optional[int]) -> D:
        # Only meaningful with a grating in place; otherwise a no-op.
        config = state.grating_config
        if config is None:
            logger.debug("Ignoring wavelength %s without a grating", value)
            return state
        if value is None:
            return state
        return replace(state, grating_config=replace(config, wavelength=int(value)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class GmosNorthAccessors(DynamicAccessors[GmosNorthDynamic]):
    dynamic_type = GmosNorthDynamic
    grating_type = GmosNorthGrating
    filter_type = GmosNorthFilter
    fpu_type = GmosNorthFpu


class GmosSouthAccessors(DynamicAccessors[GmosSouthDynamic]):
    dynamic_type = GmosSouthDynamic
    grating_type = GmosSouthGrating
    filter_type = GmosSouthFilter
    fpu_type = GmosSouthFpu


GMOS_NORTH = GmosNorthAccessors()
GMOS_SOUTH = GmosSouthAccessors()


__all__ = [
    "Accessor",
    "DynamicAccessors",
    "GMOS_NORTH",
    "GMOS_SOUTH",
    "GmosNorthAccessors",
    "GmosSouthAccessors",
]

"""Loading long-slit observation definitions from JSON.

A definition file looks like::

    {
      "observation_id": "o-101",
      "instrument": "GmosNorth",
      "grating": "R831_G5302",
      "filter": "RG610",
      "fpu": "LongSlit_1_00",
      "central_wavelength_nm": 760,
      "x_bin": "Two",
      "wavelength_dithers_nm": [0, 5, -5],
      "spatial_offsets_arcsec": [0, 15, -15],
      "acquisition": {"exposure_time_s": 10, "exposure_count": 1},
      "science": {"exposure_time_s": 1200, "exposure_count": 6},
      "calibration_role": null,
      "planner": {"science_period": 3600}
    }

Only the instrument, grating, fpu, central wavelength and science block are
required.  Omitted overrides fall back to the mode defaults.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type

from .config import DEFAULT_CONFIG, PlannerConfig
from .enums import (
    CalibrationRole,
    GmosAmpGain,
    GmosAmpReadMode,
    GmosRoi,
    GmosXBinning,
    GmosYBinning,
    TaggedEnum,
)
from .errors import ObservationDefinitionError
from .longslit.config import GmosNorthLongSlitConfig, GmosSouthLongSlitConfig, LongSlitConfig
from .model import IntegrationTime
from .utils.units import to_microarcseconds, to_picometers

LOGGER = logging.getLogger(__name__)

_CONFIG_TYPES: Dict[str, Type[LongSlitConfig]] = {
    "GmosNorth": GmosNorthLongSlitConfig,
    "GmosSouth": GmosSouthLongSlitConfig,
}

_DEFAULT_ACQUISITION = {"exposure_time_s": 1, "exposure_count": 1}


@dataclass(frozen=True)
class ObservationDefinition:
    """Everything needed to plan one long-slit observation."""

    observation_id: Optional[str]
    config: LongSlitConfig
    acquisition_time: IntegrationTime
    science_time: IntegrationTime
    calibration_role: Optional[CalibrationRole] = None
    planner: PlannerConfig = DEFAULT_CONFIG


def _enum(cls: Type[TaggedEnum], value: Any, key: str) -> Any:
    if value is None:
        return None
    try:
        return cls.from_tag(str(value))
    except ValueError as exc:
        raise ObservationDefinitionError(f"Invalid {key}: {exc}") from exc


def _integration(block: Any, key: str) -> IntegrationTime:
    if not isinstance(block, Mapping):
        raise ObservationDefinitionError(f"'{key}' must be an object")
    try:
        return IntegrationTime.from_seconds(
            float(block["exposure_time_s"]), int(block["exposure_count"])
        )
    except KeyError as exc:
        raise ObservationDefinitionError(f"'{key}' is missing {exc.args[0]!r}") from exc
    except (TypeError, ValueError) as exc:
        raise ObservationDefinitionError(f"Invalid '{key}': {exc}") from exc


def parse_observation(data: Mapping[str, Any]) -> ObservationDefinition:
    """Build an :class:`ObservationDefinition` from decoded JSON."""
    instrument = data.get("instrument")
    config_type = _CONFIG_TYPES.get(instrument)
    if config_type is None:
        raise ObservationDefinitionError(
            f"Unsupported instrument {instrument!r}; expected one of {sorted(_CONFIG_TYPES)}"
        )
    accessors = config_type.accessors

    for key in ("grating", "fpu", "central_wavelength_nm", "science"):
        if key not in data:
            raise ObservationDefinitionError(f"Observation definition is missing '{key}'")

    dithers = data.get("wavelength_dithers_nm")
    offsets = data.get("spatial_offsets_arcsec")

    config = config_type(
        grating=_enum(accessors.grating_type, data["grating"], "grating"),
        fpu=_enum(accessors.fpu_type, data["fpu"], "fpu"),
        central_wavelength=to_picometers(float(data["central_wavelength_nm"])),
        filter=_enum(accessors.filter_type, data.get("filter"), "filter"),
        default_x_bin=_enum(GmosXBinning, data.get("default_x_bin", "One"), "default_x_bin"),
        explicit_x_bin=_enum(GmosXBinning, data.get("x_bin"), "x_bin"),
        default_y_bin=_enum(GmosYBinning, data.get("default_y_bin", "Two"), "default_y_bin"),
        explicit_y_bin=_enum(GmosYBinning, data.get("y_bin"), "y_bin"),
        explicit_amp_read_mode=_enum(GmosAmpReadMode, data.get("amp_read_mode"), "amp_read_mode"),
        explicit_amp_gain=_enum(GmosAmpGain, data.get("amp_gain"), "amp_gain"),
        explicit_roi=_enum(GmosRoi, data.get("roi"), "roi"),
        explicit_wavelength_dithers=(
            None if dithers is None else tuple(to_picometers(float(d)) for d in dithers)
        ),
        explicit_spatial_offsets=(
            None if offsets is None else tuple(to_microarcseconds(float(q)) for q in offsets)
        ),
    )

    planner_values = data.get("planner") or {}
    try:
        planner = PlannerConfig.from_dict(planner_values) if planner_values else DEFAULT_CONFIG
    except (TypeError, ValueError) as exc:
        raise ObservationDefinitionError(f"Invalid planner settings: {exc}") from exc

    return ObservationDefinition(
        observation_id=data.get("observation_id"),
        config=config,
        acquisition_time=_integration(data.get("acquisition", _DEFAULT_ACQUISITION), "acquisition"),
        science_time=_integration(data["science"], "science"),
        calibration_role=_enum(CalibrationRole, data.get("calibration_role"), "calibration_role"),
        planner=planner,
    )


def load_observation(path: Path) -> ObservationDefinition:
    """Read and parse an observation definition file."""
    path = Path(path)
    if not path.is_file():
        raise ObservationDefinitionError(f"Observation definition not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ObservationDefinitionError(f"Malformed JSON in {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ObservationDefinitionError(f"Expected a JSON object in {path}")
    LOGGER.debug("Loaded observation definition %s", path)
    return parse_observation(data)


__all__ = ["ObservationDefinition", "load_observation", "parse_observation"]

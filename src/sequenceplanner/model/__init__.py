"""Value types for dynamic configurations, steps and atoms."""

from .dynamic import (
    GMOS_NORTH_STATIC,
    GMOS_SOUTH_STATIC,
    GmosCcdMode,
    GmosDynamic,
    GmosGratingConfig,
    GmosNorthDynamic,
    GmosSouthDynamic,
    GmosStaticConfig,
    Offset,
    TelescopeConfig,
)
from .integration import IntegrationTime
from .step import (
    GcalStepConfig,
    ProtoAtom,
    ProtoStep,
    ScienceStepConfig,
    SmartGcalStepConfig,
    StepConfig,
)

__all__ = [
    "GMOS_NORTH_STATIC",
    "GMOS_SOUTH_STATIC",
    "GcalStepConfig",
    "GmosCcdMode",
    "GmosDynamic",
    "GmosGratingConfig",
    "GmosNorthDynamic",
    "GmosSouthDynamic",
    "GmosStaticConfig",
    "IntegrationTime",
    "Offset",
    "ProtoAtom",
    "ProtoStep",
    "ScienceStepConfig",
    "SmartGcalStepConfig",
    "StepConfig",
    "TelescopeConfig",
]

"""GMOS long-slit spectroscopy: configuration, acquisition and science."""

from .acquisition import AcquisitionState, AcquisitionSteps, acquisition_atoms, compute_steps
from .config import (
    GmosNorthLongSlitConfig,
    GmosSouthLongSlitConfig,
    LongSlitConfig,
    reconcile,
)
from .generator import ExecutionConfig, LongSlitPlanner
from .science import Adjustment, BlockDefinition, Goal, ScienceGenerator, instantiate

__all__ = [
    "AcquisitionState",
    "AcquisitionSteps",
    "Adjustment",
    "BlockDefinition",
    "ExecutionConfig",
    "GmosNorthLongSlitConfig",
    "GmosSouthLongSlitConfig",
    "Goal",
    "LongSlitConfig",
    "LongSlitPlanner",
    "ScienceGenerator",
    "acquisition_atoms",
    "compute_steps",
    "instantiate",
    "reconcile",
]

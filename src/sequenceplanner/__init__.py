"""Observation sequence planning for GMOS long-slit spectroscopy.

The planner turns an instrument configuration and exposure goals into lazy
streams of atoms (acquisition and science), keeps track of recorded progress
so re-planning never repeats completed work, and reports gaps in recorded
execution time.
"""

import logging

from .config import DEFAULT_CONFIG, PlannerConfig
from .coverage import CoverageMap, Interval
from .errors import ObservationDefinitionError, SequenceUnavailable
from .execution import ExecutionTimeline, StepRecord
from .longslit import (
    GmosNorthLongSlitConfig,
    GmosSouthLongSlitConfig,
    LongSlitPlanner,
    reconcile,
)
from .model import IntegrationTime, ProtoAtom, ProtoStep
from .remaining import Remaining

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CoverageMap",
    "DEFAULT_CONFIG",
    "ExecutionTimeline",
    "GmosNorthLongSlitConfig",
    "GmosSouthLongSlitConfig",
    "IntegrationTime",
    "Interval",
    "LongSlitPlanner",
    "ObservationDefinitionError",
    "PlannerConfig",
    "ProtoAtom",
    "ProtoStep",
    "Remaining",
    "SequenceUnavailable",
    "StepRecord",
    "reconcile",
]

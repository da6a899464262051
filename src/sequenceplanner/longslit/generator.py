"""Acquisition plus science sequence generation for one long-slit observation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

from ..config import DEFAULT_CONFIG, PlannerConfig
from ..enums import CalibrationRole, Site
from ..errors import SequenceUnavailable
from ..model import GMOS_NORTH_STATIC, GMOS_SOUTH_STATIC, GmosStaticConfig, IntegrationTime, ProtoAtom
from ..sequence import SmartGcalExpander
from .acquisition import AcquisitionState, steps_for
from .config import LongSlitConfig, reconcile
from .science import ScienceGenerator, instantiate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionConfig:
    """Static configuration with lazy acquisition and science atom streams.

    The acquisition stream never ends; take a prefix.
    """

    static: GmosStaticConfig
    acquisition: Iterator[ProtoAtom]
    science: Iterator[ProtoAtom]


class LongSlitPlanner:
    """Plans GMOS long-slit observations sharing one configuration."""

    def __init__(
        self,
        config: LongSlitConfig,
        planner: PlannerConfig = DEFAULT_CONFIG,
        expander: Optional[SmartGcalExpander] = None,
        observation_id: Optional[str] = None,
    ) -> None:
        self.config = config
        self.planner = planner
        self.expander = expander
        self.observation_id = observation_id

    @classmethod
    def for_group(
        cls,
        configs: Sequence[LongSlitConfig],
        planner: PlannerConfig = DEFAULT_CONFIG,
        expander: Optional[SmartGcalExpander] = None,
    ) -> Optional["LongSlitPlanner"]:
        """A planner shared by ``configs``, or ``None`` if they differ."""
        if not configs:
            return None
        shared = reconcile(configs[0], configs[1:])
        if shared is None:
            logger.info("Configurations do not reconcile; planning separately")
            return None
        return cls(shared, planner, expander)

    @property
    def static(self) -> GmosStaticConfig:
        return GMOS_NORTH_STATIC if self.config.site is Site.GN else GMOS_SOUTH_STATIC

    def acquisition(self, integration: IntegrationTime) -> AcquisitionState:
        steps = steps_for(self.config, integration.exposure_time, self.planner)
        return AcquisitionState(steps)

    def science(
        self,
        integration: IntegrationTime,
        calibration_role: Optional[CalibrationRole] = None,
    ) -> ScienceGenerator:
        return instantiate(
            self.config,
            integration,
            calibration_role,
            self.expander,
            self.planner,
            self.observation_id,
        )

    def generate(
        self,
        acquisition_time: IntegrationTime,
        science_time: IntegrationTime,
        calibration_role: Optional[CalibrationRole] = None,
    ) -> ExecutionConfig:
        """Both sequences for a fresh observation.

        Raises
        ------
        SequenceUnavailable
            If the science request cannot be satisfied.
        """
        try:
            sci = self.science(science_time, calibration_role)
        except SequenceUnavailable:
            logger.warning("No science sequence for %s", self.observation_id or self.config.digest())
            raise
        acq = self.acquisition(acquisition_time)
        return ExecutionConfig(self.static, acq.generate(), sci.generate())


__all__ = ["ExecutionConfig", "LongSlitPlanner"]

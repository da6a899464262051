"""Tests for long-slit acquisition steps and progress."""

import itertools
from datetime import datetime, timedelta

import pytest

from sequenceplanner.coverage import Interval
from sequenceplanner.enums import (
    GmosNorthFilter,
    GmosNorthFpu,
    GmosNorthGrating,
    GmosRoi,
    GmosXBinning,
    GmosYBinning,
    ObserveClass,
    SequenceType,
    StepExecutionState,
)
from sequenceplanner.execution import StepRecord
from sequenceplanner.longslit.acquisition import (
    FINE_ADJUSTMENTS_ATOM,
    INITIAL_ATOM,
    AcquisitionState,
    Phase,
    acquisition_atoms,
    choose_filter,
    steps_for,
)
from sequenceplanner.longslit.config import GmosNorthLongSlitConfig

START = datetime(2025, 3, 1, 4, 0, 0)


@pytest.fixture
def config():
    return GmosNorthLongSlitConfig(
        grating=GmosNorthGrating.R831_G5302,
        fpu=GmosNorthFpu.LONG_SLIT_1_00,
        central_wavelength=760_000,
    )


@pytest.fixture
def steps(config):
    return steps_for(config, timedelta(seconds=10))


def record(
    proto_step,
    visit_id="v1",
    sequence_type=SequenceType.ACQUISITION,
    state=StepExecutionState.COMPLETED,
):
    return StepRecord(
        id="s",
        atom_id="acq",
        visit_id=visit_id,
        proto_step=proto_step,
        sequence_type=sequence_type,
        interval=Interval(START, START + timedelta(seconds=30)),
        state=state,
    )


class TestAcquisitionSteps:
    """Tests for the three acquisition steps."""

    def test_filter_nearest_wavelength(self):
        """Test the acquisition filter is chosen by effective wavelength."""
        filters = GmosNorthFilter.acquisition()

        assert choose_filter(filters, 760_000) is GmosNorthFilter.I_PRIME
        assert choose_filter(filters, 500_000) is GmosNorthFilter.G_PRIME
        assert choose_filter(filters, 1_000_000) is GmosNorthFilter.Z_PRIME

    def test_ccd2_image(self, steps):
        """Test the binned CCD2 image through the acquisition filter."""
        value = steps.ccd2.value

        assert value.exposure == timedelta(seconds=10)
        assert value.filter is GmosNorthFilter.I_PRIME
        assert value.fpu is None
        assert value.grating_config is None
        assert value.readout.x_bin is GmosXBinning.TWO
        assert value.readout.y_bin is GmosYBinning.TWO
        assert value.roi is GmosRoi.CCD2
        assert steps.ccd2.observe_class is ObserveClass.ACQUISITION

    def test_p10_image(self, steps):
        """Test the offset image with the slit in place."""
        value = steps.p10.value

        assert value.exposure == timedelta(seconds=20)
        assert value.fpu is GmosNorthFpu.LONG_SLIT_1_00
        assert value.readout.x_bin is GmosXBinning.ONE
        assert value.roi is GmosRoi.CENTRAL_STAMP
        assert steps.p10.telescope_config.offset.p == 10_000_000
        assert steps.p10.telescope_config.offset.q == 0

    def test_slit_image(self, steps):
        """Test the through-slit image is three times the image exposure."""
        assert steps.slit.value.exposure == timedelta(seconds=30)
        assert steps.slit.value.roi is GmosRoi.CENTRAL_STAMP
        assert steps.slit.telescope_config.offset.p == 0

    @pytest.mark.parametrize(
        "requested, image, slit",
        [
            (timedelta(milliseconds=500), timedelta(seconds=1), timedelta(seconds=3)),
            (timedelta(seconds=150), timedelta(seconds=150), timedelta(seconds=360)),
            (timedelta(seconds=500), timedelta(seconds=180), timedelta(seconds=360)),
        ],
    )
    def test_exposure_limits(self, config, requested, image, slit):
        """Test acquisition exposures are clamped."""
        steps = steps_for(config, requested)

        assert steps.ccd2.value.exposure == image
        assert steps.slit.value.exposure == slit

    def test_sequence_repeats_slit_image(self, steps):
        """Test the infinite sequence: initial atom then repeated slit images."""
        atoms = list(itertools.islice(acquisition_atoms(steps), 4))

        assert [a.description for a in atoms] == [INITIAL_ATOM] + [FINE_ADJUSTMENTS_ATOM] * 3
        assert atoms[0].description == "Initial Acquisition"
        assert atoms[1].description == "Fine Adjustments"
        assert atoms[0].steps == (steps.ccd2, steps.p10, steps.slit)
        assert atoms[1].steps == (steps.slit,)


class TestAcquisitionState:
    """Tests for tracking acquisition progress within a visit."""

    def _first(self, state):
        return next(iter(state.generate()))

    def test_fresh(self, steps):
        """Test a new visit starts with the full initial atom."""
        state = AcquisitionState(steps)

        assert self._first(state) == steps.initial_atom

    def test_progress_through_phases(self, steps):
        """Test each completed step removes it from the initial atom."""
        state = AcquisitionState(steps).record_step(record(steps.ccd2))
        assert state.phase is Phase.EXPECT_P10
        assert self._first(state).steps == (steps.p10, steps.slit)

        state = state.record_step(record(steps.p10))
        assert state.phase is Phase.EXPECT_SLIT
        first = self._first(state)
        assert first.description == INITIAL_ATOM
        assert first.steps == (steps.slit,)

        state = state.record_step(record(steps.slit))
        first = self._first(state)
        assert first.description == FINE_ADJUSTMENTS_ATOM
        assert first.steps == (steps.slit,)

    def test_new_visit_resets(self, steps):
        """Test a step from another visit starts acquisition over."""
        state = AcquisitionState(steps).record_step(record(steps.ccd2))
        state = state.record_step(record(steps.p10))

        state = state.record_step(record(steps.ccd2, visit_id="v2"))

        assert state.visit_id == "v2"
        assert state.phase is Phase.EXPECT_P10

    def test_record_visit(self, steps):
        """Test recording the same visit is a no-op and a new one resets."""
        state = AcquisitionState(steps).record_step(record(steps.ccd2))

        assert state.record_visit("v1") is state
        assert state.record_visit("v2").phase is Phase.EXPECT_CCD2

    def test_science_step_resets(self, steps):
        """Test a science sequence step ends the acquisition."""
        state = AcquisitionState(steps).record_step(record(steps.ccd2))

        state = state.record_step(record(steps.slit, sequence_type=SequenceType.SCIENCE))

        assert state.phase is Phase.EXPECT_CCD2
        assert self._first(state) == steps.initial_atom

    def test_incomplete_step_is_ignored(self, steps):
        """Test that an aborted step does not advance the phase."""
        state = AcquisitionState(steps).record_step(record(steps.ccd2))

        state = state.record_step(record(steps.p10, state=StepExecutionState.ABORTED))

        assert state.phase is Phase.EXPECT_P10

"""Tests for long-slit science allocation, block definitions and generation."""

import itertools
from datetime import datetime, timedelta

import pytest

from sequenceplanner.coverage import Interval
from sequenceplanner.enums import (
    CalibrationRole,
    GmosNorthFpu,
    GmosNorthGrating,
    ObserveClass,
    SequenceType,
    StepExecutionState,
    StepType,
)
from sequenceplanner.errors import SequenceUnavailable
from sequenceplanner.execution import StepRecord
from sequenceplanner.instruments import GMOS_NORTH
from sequenceplanner.longslit.config import GmosNorthLongSlitConfig
from sequenceplanner.longslit.science import (
    Adjustment,
    Goal,
    calibration_config,
    compute_block_definitions,
    instantiate,
)
from sequenceplanner.model import IntegrationTime
from sequenceplanner.sequence import TableGcalExpander

DITHERS = (0, 5_000, -5_000)
OFFSETS = (0, 15_000_000, -15_000_000)
START = datetime(2025, 3, 1, 4, 0, 0)

_IDS = itertools.count()


@pytest.fixture
def config():
    return GmosNorthLongSlitConfig(
        grating=GmosNorthGrating.R831_G5302,
        fpu=GmosNorthFpu.LONG_SLIT_1_00,
        central_wavelength=760_000,
    )


def minutes(n):
    return timedelta(minutes=n)


def record(proto_step, at, atom_id="a0", visit_id="v1", state=StepExecutionState.COMPLETED):
    """A step executed at ``START + at`` lasting one minute."""
    created = START + at
    return StepRecord(
        id=f"s{next(_IDS)}",
        atom_id=atom_id,
        visit_id=visit_id,
        proto_step=proto_step,
        sequence_type=SequenceType.SCIENCE,
        interval=Interval(created, created + minutes(1)),
        state=state,
    )


def science_counts(atoms):
    return [sum(1 for s in atom.steps if s.is_science) for atom in atoms]


# ============================================================================
# ALLOCATION
# ============================================================================


class TestAdjustment:
    """Tests for pairing wavelength dithers with spatial offsets."""

    def test_lcm_pairing(self):
        """Test two dithers and three offsets give six adjustments."""
        adjustments = Adjustment.compute((0, 5_000), OFFSETS)

        assert [(a.wavelength_dither, a.q) for a in adjustments] == [
            (0, 0),
            (5_000, 15_000_000),
            (0, -15_000_000),
            (5_000, 0),
            (0, 15_000_000),
            (5_000, -15_000_000),
        ]

    def test_empty_lists_act_as_zero(self):
        """Test missing dithers and offsets fall back to a single zero."""
        assert Adjustment.compute((), ()) == [Adjustment(0, 0)]

    @pytest.mark.parametrize(
        "adjustment, description",
        [
            (Adjustment(0, 0), "0 nm, 0″"),
            (Adjustment(5_000, 15_000_000), "5 nm, 15″"),
            (Adjustment(-2_500, -7_500_000), "-2.5 nm, -7.5″"),
        ],
    )
    def test_description(self, adjustment, description):
        """Test the human-readable atom description."""
        assert adjustment.description == description


GOALS_30_MIN = [
    (1, 0, 0),
    (1, 1, 0),
    (1, 1, 1),
    (2, 1, 1),
    (2, 2, 1),
    (2, 2, 2),
    (3, 2, 2),
    (4, 2, 2),
    (4, 3, 2),
    (4, 4, 2),
]

GOALS_20_MIN = [
    (1, 0, 0),
    (1, 1, 0),
    (1, 1, 1),
    (2, 1, 1),
    (2, 2, 1),
    (2, 2, 2),
    (3, 2, 2),
    (3, 3, 2),
    (3, 3, 3),
    (4, 3, 3),
    (5, 3, 3),
    (6, 3, 3),
    (6, 4, 3),
    (6, 5, 3),
    (6, 6, 3),
    (6, 6, 4),
    (6, 6, 5),
    (6, 6, 6),
    (7, 6, 6),
]

GOALS_11_MIN = [
    (1, 0, 0),
    (1, 1, 0),
    (1, 1, 1),
    (2, 1, 1),
    (2, 2, 1),
    (2, 2, 2),
    (3, 2, 2),
    (3, 3, 2),
    (3, 3, 3),
    (4, 3, 3),
    (4, 4, 3),
    (4, 4, 4),
    (5, 4, 4),
    (5, 5, 4),
    (5, 5, 5),
    (6, 5, 5),
    (7, 5, 5),
    (8, 5, 5),
    (9, 5, 5),
    (10, 5, 5),
    (10, 6, 5),
]

GOALS_15_MIN = [
    (1, 0, 0),
    (1, 1, 0),
    (1, 1, 1),
    (2, 1, 1),
    (2, 2, 1),
    (2, 2, 2),
    (3, 2, 2),
    (3, 3, 2),
    (3, 3, 3),
    (4, 3, 3),
    (4, 4, 3),
    (4, 4, 4),
    (5, 4, 4),
    (6, 4, 4),
    (7, 4, 4),
    (8, 4, 4),
    (8, 5, 4),
]

GOALS_45_MIN = [
    (1, 0, 0),
    (1, 1, 0),
    (1, 1, 1),
    (2, 1, 1),
    (2, 2, 1),
    (2, 2, 2),
    (3, 2, 2),
    (3, 3, 2),
    (3, 3, 3),
    (4, 3, 3),
    (4, 4, 3),
    (4, 4, 4),
    (5, 4, 4),
    (5, 5, 4),
    (5, 5, 5),
    (6, 5, 5),
]

GOAL_TABLES = {11: GOALS_11_MIN, 15: GOALS_15_MIN, 45: GOALS_45_MIN}


class TestGoal:
    """Tests for distributing exposures over adjustments."""

    @pytest.mark.parametrize("count, totals", list(enumerate(GOALS_30_MIN, start=1)))
    def test_thirty_minute_exposures(self, count, totals):
        """Test allocation of 30 minute exposures (two per block)."""
        goals = Goal.compute(DITHERS, OFFSETS, IntegrationTime(minutes(30), count))

        assert tuple(g.total for g in goals) == totals
        assert tuple(g.per_block for g in goals) == tuple(min(2, t) for t in totals)

    @pytest.mark.parametrize("count, totals", list(enumerate(GOALS_20_MIN, start=1)))
    def test_twenty_minute_exposures(self, count, totals):
        """Test allocation of 20 minute exposures (three per block)."""
        goals = Goal.compute(DITHERS, OFFSETS, IntegrationTime(minutes(20), count))

        assert tuple(g.total for g in goals) == totals
        assert tuple(g.per_block for g in goals) == tuple(min(3, t) for t in totals)

    @pytest.mark.parametrize(
        "minutes_per_exposure, count, totals",
        [
            (m, count, totals)
            for m, table in GOAL_TABLES.items()
            for count, totals in enumerate(table, start=1)
        ],
    )
    def test_other_exposure_times(self, minutes_per_exposure, count, totals):
        """Test allocation of 11, 15 and 45 minute exposures."""
        goals = Goal.compute(
            DITHERS, OFFSETS, IntegrationTime(minutes(minutes_per_exposure), count)
        )
        per_block = 60 // minutes_per_exposure

        assert tuple(g.total for g in goals) == totals
        assert tuple(g.per_block for g in goals) == tuple(min(per_block, t) for t in totals)

    def test_adjustments_in_order(self):
        """Test goals follow the adjustment order."""
        goals = Goal.compute(DITHERS, OFFSETS, IntegrationTime(minutes(30), 3))

        assert [g.adjustment for g in goals] == Adjustment.compute(DITHERS, OFFSETS)

    def test_exposure_longer_than_period(self):
        """Test that exposures longer than the period get one per block."""
        goals = Goal.compute((0,), (0,), IntegrationTime(minutes(90), 3))

        assert [(g.per_block, g.total) for g in goals] == [(1, 3)]

    def test_science_period_is_configurable(self):
        """Test a shorter period holds fewer exposures per block."""
        goals = Goal.compute(
            DITHERS, OFFSETS, IntegrationTime(minutes(10), 12), science_period=minutes(30)
        )

        assert [g.per_block for g in goals] == [3, 3, 3]
        assert sum(g.total for g in goals) == 12

    def test_non_positive_exposure_fails(self):
        """Test that a zero exposure time raises error."""
        with pytest.raises(ValueError, match="positive exposure time"):
            Goal.compute(DITHERS, OFFSETS, IntegrationTime(timedelta(0), 3))


# ============================================================================
# BLOCK DEFINITIONS
# ============================================================================


class TestBlockDefinitions:
    """Tests for the steps that make up each block."""

    def test_science_blocks(self, config):
        """Test arcs, flats and science per adjustment."""
        definitions = compute_block_definitions(
            GMOS_NORTH, TableGcalExpander(), config, IntegrationTime(minutes(30), 4)
        )

        assert len(definitions) == 3
        first, second, _ = definitions
        assert [s.step_type for s in first.all_cals] == [StepType.GCAL, StepType.GCAL]
        assert first.arcs[0].step_config.lamp == "CuAr"
        assert first.flats[0].step_config.lamp == "QH"
        assert first.science.observe_class is ObserveClass.SCIENCE
        assert first.arcs[0].observe_class is ObserveClass.NIGHT_CAL

        science = second.science
        assert science.value.exposure == minutes(30)
        assert science.value.grating_config.wavelength == 765_000
        assert science.value.fpu is GmosNorthFpu.LONG_SLIT_1_00
        assert science.value.filter is None
        assert science.telescope_config.offset.q == 15_000_000
        assert second.flats[0].telescope_config.offset.q == 15_000_000
        assert second.flats[0].value == science.value

    def test_twilight_blocks(self, config):
        """Test twilight blocks have neither arcs nor flats and count as daytime."""
        definitions = compute_block_definitions(
            GMOS_NORTH,
            TableGcalExpander(),
            config,
            IntegrationTime(minutes(1), 1),
            calibration_role=CalibrationRole.TWILIGHT,
        )

        assert definitions[0].all_cals == ()
        assert definitions[0].science.observe_class is ObserveClass.DAY_CAL

    def test_spectrophotometric_blocks(self, config):
        """Test spectrophotometric blocks keep flats but skip arcs."""
        definitions = compute_block_definitions(
            GMOS_NORTH,
            TableGcalExpander(),
            config,
            IntegrationTime(minutes(1), 1),
            calibration_role=CalibrationRole.SPECTROPHOTOMETRIC,
        )

        assert definitions[0].arcs == ()
        assert len(definitions[0].flats) == 1


# ============================================================================
# GENERATION
# ============================================================================


class TestScienceGenerator:
    """Tests for the lazily generated science atoms."""

    def test_fresh_sequence(self, config):
        """Test one atom per block, each starting with its calibrations."""
        generator = instantiate(config, IntegrationTime(minutes(30), 4))

        atoms = list(generator.generate())

        assert [a.description for a in atoms] == ["0 nm, 0″", "5 nm, 15″", "-5 nm, -15″"]
        assert [s.step_type for s in atoms[0].steps] == [
            StepType.GCAL,
            StepType.GCAL,
            StepType.SCIENCE,
            StepType.SCIENCE,
        ]
        assert science_counts(atoms) == [2, 1, 1]

    def test_blocks_interleave_adjustments(self, config):
        """Test repeated blocks cycle through the adjustments."""
        atoms = list(instantiate(config, IntegrationTime(minutes(30), 10)).generate())

        assert [a.description for a in atoms] == [
            "0 nm, 0″",
            "5 nm, 15″",
            "-5 nm, -15″",
            "0 nm, 0″",
            "5 nm, 15″",
        ]
        assert science_counts(atoms) == [2, 2, 2, 2, 2]

    def test_last_block_is_partial(self, config):
        """Test the final block only holds the leftover exposures."""
        atoms = list(instantiate(config, IntegrationTime(minutes(20), 19)).generate())

        assert science_counts(atoms) == [3, 3, 3, 3, 3, 3, 1]
        assert atoms[-1].description == "0 nm, 0″"

    @pytest.mark.parametrize("count", range(1, 20))
    def test_science_total_matches_request(self, config, count):
        """Test the generated science exposures add up to the request."""
        atoms = instantiate(config, IntegrationTime(minutes(20), count)).generate()

        assert sum(science_counts(atoms)) == count

    def test_generation_is_repeatable(self, config):
        """Test that generating twice gives the same atoms."""
        generator = instantiate(config, IntegrationTime(minutes(30), 5))

        assert list(generator.generate()) == list(generator.generate())


class TestRecordStep:
    """Tests for progress tracking from executed steps."""

    def _first_atom(self, generator):
        return next(iter(generator.generate()))

    def test_completed_block_is_not_repeated(self, config):
        """Test that a fully executed block drops out of the plan."""
        generator = instantiate(config, IntegrationTime(minutes(30), 4))
        arc, flat, sci, _ = self._first_atom(generator).steps

        for step, at in [(arc, 0), (flat, 1), (sci, 2), (sci, 32)]:
            generator = generator.record_step(record(step, minutes(at)))

        assert generator.progress() == {"0 nm, 0″": 2, "5 nm, 15″": 0, "-5 nm, -15″": 0}
        assert generator.completed == 0
        assert not generator.is_complete

        atoms = list(generator.generate(START + minutes(62)))
        assert [a.description for a in atoms] == ["5 nm, 15″", "-5 nm, -15″"]

    def test_new_atom_settles_previous_block(self, config):
        """Test that starting another atom books the finished block."""
        generator = instantiate(config, IntegrationTime(minutes(30), 4))
        atoms = list(generator.generate())
        arc, flat, sci, _ = atoms[0].steps

        for step, at in [(arc, 0), (flat, 1), (sci, 2), (sci, 32)]:
            generator = generator.record_step(record(step, minutes(at)))
        next_arc = atoms[1].steps[0]
        generator = generator.record_step(record(next_arc, minutes(63), atom_id="a1"))

        assert generator.completed == 2
        assert generator.pos == 1

    def test_science_before_calibrations_counts(self, config):
        """Test that step order within a block does not matter."""
        generator = instantiate(config, IntegrationTime(minutes(30), 4))
        arc, flat, sci, _ = self._first_atom(generator).steps

        for step, at in [(sci, 0), (arc, 30), (flat, 31)]:
            generator = generator.record_step(record(step, minutes(at)))

        assert generator.progress()["0 nm, 0″"] == 1

    def test_expired_calibrations_do_not_count(self, config):
        """Test that science outside the calibration validity is not counted."""
        generator = instantiate(config, IntegrationTime(minutes(30), 4))
        arc, flat, sci, _ = self._first_atom(generator).steps

        for step, at in [(arc, 0), (flat, 1), (sci, 120)]:
            generator = generator.record_step(record(step, minutes(at)))

        assert generator.progress()["0 nm, 0″"] == 0

    def test_failed_steps_do_not_count(self, config):
        """Test that aborted science is not counted."""
        generator = instantiate(config, IntegrationTime(minutes(30), 4))
        arc, flat, sci, _ = self._first_atom(generator).steps

        for step, at, state in [
            (arc, 0, StepExecutionState.COMPLETED),
            (flat, 1, StepExecutionState.COMPLETED),
            (sci, 2, StepExecutionState.ABORTED),
        ]:
            generator = generator.record_step(record(step, minutes(at), state=state))

        assert generator.progress()["0 nm, 0″"] == 0

    def test_missing_calibrations_are_replanned(self, config):
        """Test that a block started without calibrations gets them appended."""
        generator = instantiate(config, IntegrationTime(minutes(30), 4))
        _, _, sci, _ = self._first_atom(generator).steps

        generator = generator.record_step(record(sci, minutes(0)))
        first = next(iter(generator.generate(START + minutes(30))))

        assert first.description == "0 nm, 0″"
        assert [s.step_type for s in first.steps] == [
            StepType.SCIENCE,
            StepType.GCAL,
            StepType.GCAL,
        ]

    def test_acquisition_steps_are_ignored(self, config):
        """Test that acquisition records leave the generator unchanged."""
        generator = instantiate(config, IntegrationTime(minutes(30), 4))
        _, _, sci, _ = self._first_atom(generator).steps
        acquisition = StepRecord(
            id="acq",
            atom_id="acq-atom",
            visit_id="v1",
            proto_step=sci,
            sequence_type=SequenceType.ACQUISITION,
            interval=Interval(START, START + minutes(1)),
        )

        assert generator.record_step(acquisition) is generator


# ============================================================================
# INSTANTIATION
# ============================================================================


class TestInstantiate:
    """Tests for validation and calibration roles."""

    def test_zero_exposure_time(self, config):
        """Test that a non-positive exposure time is rejected."""
        with pytest.raises(SequenceUnavailable, match="requires a positive exposure time"):
            instantiate(config, IntegrationTime(timedelta(0), 3))

    def test_zero_exposures(self, config):
        """Test that a request for no exposures is rejected."""
        with pytest.raises(SequenceUnavailable, match="ITC prescribes 0 exposures."):
            instantiate(config, IntegrationTime(minutes(10), 0))

    def test_exposure_over_period(self, config):
        """Test that exposures longer than the science period are rejected."""
        with pytest.raises(SequenceUnavailable, match="over 60 minutes are not supported"):
            instantiate(config, IntegrationTime(minutes(61), 1))

    def test_unsupported_role(self, config):
        """Test that unsupported calibration roles are rejected."""
        with pytest.raises(SequenceUnavailable, match="GMOS Long Slit Photometric not implemented"):
            instantiate(config, IntegrationTime(minutes(1), 1), CalibrationRole.PHOTOMETRIC)

    def test_observation_id_in_message(self, config):
        """Test that the observation id prefixes the message but not the reason."""
        with pytest.raises(SequenceUnavailable) as excinfo:
            instantiate(config, IntegrationTime(minutes(10), 0), observation_id="o-7")

        assert str(excinfo.value).startswith("Could not generate a sequence for o-7")
        assert excinfo.value.reason == "ITC prescribes 0 exposures."

    def test_expander_failure(self, config):
        """Test that calibration lookup failures make the sequence unavailable."""
        with pytest.raises(SequenceUnavailable, match="missing Smart GCAL mapping"):
            instantiate(config, IntegrationTime(minutes(10), 1), expander=TableGcalExpander({}))

    def test_twilight(self, config):
        """Test twilight uses a fixed exposure and one step per dither."""
        generator = instantiate(
            config, IntegrationTime(timedelta(0), 0), CalibrationRole.TWILIGHT
        )
        atoms = list(generator.generate())

        assert generator.integration == IntegrationTime(timedelta(seconds=30), 1)
        assert len(atoms) == 1
        (step,) = atoms[0].steps
        assert step.is_science
        assert step.observe_class is ObserveClass.DAY_CAL
        assert step.telescope_config.offset.q == 0

    def test_spectrophotometric_keeps_large_dithers(self, config):
        """Test that dithers over a tenth of the coverage survive."""
        wide = config.with_explicit(explicit_wavelength_dithers=(0, 30_000))
        generator = instantiate(
            wide, IntegrationTime(minutes(1), 5), CalibrationRole.SPECTROPHOTOMETRIC
        )
        atoms = list(generator.generate())

        assert generator.integration.exposure_count == 2
        assert [a.description for a in atoms] == ["0 nm, 0″", "30 nm, 0″"]
        assert [s.step_type for s in atoms[0].steps] == [StepType.GCAL, StepType.SCIENCE]


class TestCalibrationConfig:
    """Tests for collapsing dithers and offsets for calibrations."""

    def test_small_dithers_collapse(self, config):
        """Test default dithers are dropped and offsets zeroed."""
        collapsed = calibration_config(config)

        assert collapsed.wavelength_dithers == (0,)
        assert collapsed.spatial_offsets == (0,)

    def test_large_dithers_survive(self, config):
        """Test that one large dither keeps the whole list."""
        collapsed = calibration_config(
            config.with_explicit(explicit_wavelength_dithers=(0, 5_000, 24_000))
        )

        assert collapsed.wavelength_dithers == (0, 5_000, 24_000)

"""Tests for tabular sequence export."""

from datetime import timedelta

import pandas as pd
import pytest

from sequenceplanner.enums import GmosNorthFpu, GmosNorthGrating, SequenceType
from sequenceplanner.export import STEP_COLUMNS, steps_to_frame, write_sequence_csv
from sequenceplanner.longslit import GmosNorthLongSlitConfig, LongSlitPlanner
from sequenceplanner.model import IntegrationTime


@pytest.fixture
def execution():
    config = GmosNorthLongSlitConfig(
        GmosNorthGrating.R831_G5302, GmosNorthFpu.LONG_SLIT_1_00, 760_000
    )
    return LongSlitPlanner(config).generate(
        IntegrationTime(timedelta(seconds=10), 1),
        IntegrationTime(timedelta(minutes=30), 4),
    )


class TestStepsToFrame:
    """Tests for flattening atoms into rows."""

    def test_science_rows(self, execution):
        """Test one row per step with readable values."""
        frame = steps_to_frame(execution.science)

        assert list(frame.columns) == STEP_COLUMNS
        assert len(frame) == 10
        assert frame["Atom"].tolist() == [0, 0, 0, 0, 1, 1, 1, 2, 2, 2]
        assert frame["Step Type"].tolist()[:4] == ["Gcal", "Gcal", "Science", "Science"]
        assert set(frame["Sequence"]) == {"Science"}

        science = frame[frame["Step Type"] == "Science"].iloc[-1]
        assert science["Exposure (s)"] == 1800
        assert science["Grating"] == "R831_G5302"
        assert science["Wavelength (nm)"] == pytest.approx(755.0)
        assert science["Offset Q (arcsec)"] == pytest.approx(-15.0)
        assert science["Y Bin"] == 2

    def test_infinite_stream_needs_limit(self, execution):
        """Test that acquisition export is bounded by the atom limit."""
        frame = steps_to_frame(execution.acquisition, SequenceType.ACQUISITION, limit=2)

        assert len(frame) == 4
        assert frame["Atom Description"].tolist() == [
            "Initial Acquisition",
            "Initial Acquisition",
            "Initial Acquisition",
            "Fine Adjustments",
        ]
        assert frame["Offset P (arcsec)"].tolist()[1] == pytest.approx(10.0)
        assert pd.isna(frame["Grating"].iloc[0])

    def test_empty(self):
        """Test that no atoms give an empty frame with all columns."""
        frame = steps_to_frame([])

        assert frame.empty
        assert list(frame.columns) == STEP_COLUMNS


class TestWriteSequenceCsv:
    """Tests for writing exported sequences."""

    def test_creates_parent_directories(self, tmp_path, execution):
        """Test that the CSV lands in a new directory and reads back."""
        frame = steps_to_frame(execution.science)
        path = write_sequence_csv(frame, tmp_path / "out" / "sequence.csv")

        assert path.exists()
        loaded = pd.read_csv(path)
        assert list(loaded.columns) == STEP_COLUMNS
        assert len(loaded) == len(frame)

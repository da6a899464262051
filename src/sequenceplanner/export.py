"""Tabular export of planned sequences."""

from __future__ import annotations

import itertools
import logging
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from .enums import SequenceType
from .model import ProtoAtom
from .utils.units import microarcseconds_to_arcseconds, picometers_to_nanometers

LOGGER = logging.getLogger(__name__)

STEP_COLUMNS = [
    "Sequence",
    "Atom",
    "Atom Description",
    "Step",
    "Step Type",
    "Observe Class",
    "Exposure (s)",
    "Grating",
    "Wavelength (nm)",
    "Filter",
    "FPU",
    "X Bin",
    "Y Bin",
    "ROI",
    "Offset P (arcsec)",
    "Offset Q (arcsec)",
    "Guiding",
]


def steps_to_frame(
    atoms: Iterable[ProtoAtom],
    sequence_type: SequenceType = SequenceType.SCIENCE,
    limit: Optional[int] = None,
) -> pd.DataFrame:
    """Flatten ``atoms`` into one row per step.

    Parameters
    ----------
    atoms
        Atoms to export.  Infinite streams must be bounded with ``limit``.
    sequence_type
        Recorded in the ``Sequence`` column.
    limit
        Maximum number of atoms to consume.
    """
    if limit is not None:
        atoms = itertools.islice(atoms, limit)

    rows = []
    for atom_index, atom in enumerate(atoms):
        for step_index, step in enumerate(atom.steps):
            value = step.value
            grating = value.grating_config
            offset = step.telescope_config.offset
            rows.append(
                {
                    "Sequence": sequence_type.tag,
                    "Atom": atom_index,
                    "Atom Description": atom.description,
                    "Step": step_index,
                    "Step Type": step.step_type.tag,
                    "Observe Class": step.observe_class.tag,
                    "Exposure (s)": value.exposure.total_seconds(),
                    "Grating": grating.grating.tag if grating else None,
                    "Wavelength (nm)": (
                        picometers_to_nanometers(grating.wavelength) if grating else None
                    ),
                    "Filter": value.filter.tag if value.filter else None,
                    "FPU": value.fpu.tag if value.fpu else None,
                    "X Bin": value.readout.x_bin.count,
                    "Y Bin": value.readout.y_bin.count,
                    "ROI": value.roi.tag,
                    "Offset P (arcsec)": microarcseconds_to_arcseconds(offset.p),
                    "Offset Q (arcsec)": microarcseconds_to_arcseconds(offset.q),
                    "Guiding": step.telescope_config.guiding.tag,
                }
            )

    return pd.DataFrame(rows, columns=STEP_COLUMNS)


def write_sequence_csv(frame: pd.DataFrame, path: Path) -> Path:
    """Write ``frame`` to ``path`` as CSV, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(path, index=False)
    LOGGER.info("Wrote %d steps to %s", len(frame), path)
    return path


__all__ = ["STEP_COLUMNS", "steps_to_frame", "write_sequence_csv"]

"""
Sequence Planner Driver
=======================

Plans the acquisition and science sequences for one or more GMOS long-slit
observation definitions and writes them as CSV.

Usage:
    # Plan a single observation
    plan-sequence observation.json --output ./output/sequence.csv

    # Check that several observations can share a plan, then plan it
    plan-sequence obs-a.json obs-b.json --output ./output/shared.csv

    # Show more of the (infinite) acquisition sequence
    plan-sequence observation.json --acquisition-atoms 4
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .definitions import load_observation
from .enums import SequenceType
from .errors import ObservationDefinitionError, SequenceUnavailable
from .export import steps_to_frame, write_sequence_csv
from .longslit import LongSlitPlanner


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Plan GMOS long-slit observation sequences",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "observations",
        type=Path,
        nargs="+",
        help="Observation definition JSON file(s)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("sequence.csv"),
        help="CSV file to write (default: ./sequence.csv)",
    )
    parser.add_argument(
        "--acquisition-atoms",
        type=int,
        default=2,
        help="Number of acquisition atoms to include (default: 2)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        definitions = [load_observation(path) for path in args.observations]
    except ObservationDefinitionError as e:
        logger.error("Invalid observation definition: %s", e)
        return 1

    first = definitions[0]
    planner = LongSlitPlanner.for_group(
        [d.config for d in definitions], planner=first.planner
    )
    if planner is None:
        logger.error("Observation configurations differ; they cannot share a plan")
        return 1
    planner.observation_id = first.observation_id
    logger.info("Configuration digest: %s", planner.config.digest())

    try:
        execution = planner.generate(
            first.acquisition_time, first.science_time, first.calibration_role
        )
    except SequenceUnavailable as e:
        logger.error("%s", e)
        return 2

    frame = pd.concat(
        [
            steps_to_frame(
                execution.acquisition, SequenceType.ACQUISITION, limit=args.acquisition_atoms
            ),
            steps_to_frame(execution.science, SequenceType.SCIENCE),
        ],
        ignore_index=True,
    )
    write_sequence_csv(frame, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())

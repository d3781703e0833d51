"""CLI for copycat_capture."""

import argparse
from typing import List, Optional

from copycat_capture.core import config, orchestrator


def parse_arguments(args: Optional[List[str]]) -> argparse.Namespace:
    """Argument parser for copycat_capture cli.

    Args:
        args: A list of command line arguments given as strings. If None, the parser
            will take the args from `sys.argv`.

    Returns:
        Namespace object with all the input arguments and default values.

    Raises:
        SystemExit: if required arguments are missing.
    """
    parser = argparse.ArgumentParser(
        description="Record normalized skeleton sessions of a signed phrase.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-p",
        "--phrase",
        type=str,
        required=True,
        help="Name of the phrase being signed, ex: go_to_school.",
    )
    parser.add_argument(
        "-r",
        "--root",
        type=str,
        default=config.DATA_ROOT,
        help="Directory the session files are written to.",
    )
    parser.add_argument(
        "--replay",
        type=str,
        required=True,
        help="JSON lines file of recorded sensor ticks to capture from.",
    )
    parser.add_argument(
        "--lsl",
        action="store_true",
        help="Stream capture events as LabStreamingLayer markers.",
    )
    parser.add_argument(
        "--source-id",
        type=str,
        default=config.LSL_SOURCE_ID,
        help="LabStreamingLayer source id of this capture station.",
    )

    return parser.parse_args(args)


def main(
    args: Optional[List[str]] = None,
) -> None:
    """Runs the capture orchestrator with command line arguments.

    Args:
         args: A list of command line arguments given as strings. If None, the parser
            will take the args from `sys.argv`.
    """
    arguments = parse_arguments(args)

    orchestrator.run(
        phrase=arguments.phrase,
        replay_path=arguments.replay,
        root_path=arguments.root,
        use_lsl=arguments.lsl,
        source_id=arguments.source_id,
    )

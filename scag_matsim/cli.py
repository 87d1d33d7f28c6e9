"""Command-line entry points."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from .config import SCENARIO_CONFIG_FILE, NetworkConfig, RunConfig
from .network import build_network
from .scenario import enforce_vsp_defaults, prepare_config, prepare_controler, prepare_scenario
from .utils import configure_console_logging

logger = logging.getLogger(__name__)


def _root_directory_parser(prog: str, description: str, above: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument(
        "root_directory",
        type=Path,
        help=f"the root directory (the directory above '{above}')",
    )
    return parser


def create_network_main(argv: Optional[Sequence[str]] = None) -> None:
    parser = _root_directory_parser(
        "scag-create-network",
        "Convert the SCAG OpenStreetMap extract into a MATSim network.",
        "osm-data",
    )
    args = parser.parse_args(argv)
    configure_console_logging()

    config = NetworkConfig.from_root(args.root_directory, keep_paths=False, simplify=False, clean=True)
    output_file = build_network(config)
    logger.info("network written to %s", output_file)


def run_scenario_main(argv: Optional[Sequence[str]] = None) -> None:
    parser = _root_directory_parser(
        "scag-run-scenario",
        "Prepare and run the Los Angeles MATSim scenario.",
        "matsim-input-files",
    )
    args = parser.parse_args(argv)
    configure_console_logging()

    config = prepare_config(args.root_directory / SCENARIO_CONFIG_FILE)
    scenario = prepare_scenario(config)
    enforce_vsp_defaults(config)
    controler = prepare_controler(scenario, RunConfig.from_root(args.root_directory))
    controler.run()

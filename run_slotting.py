"""
run_slotting.py
──────────────────────────────────────────────────────────────────────────────
Quick-run script for the SKU slotting optimizer.

Usage:
    python run_slotting.py                                   # demo instance, branch-and-bound
    python run_slotting.py --instance config/default_slotting.yaml
    python run_slotting.py --strategy parallel --workers 8
    python run_slotting.py --strategy cpsat                  # OR-Tools cross-check
    python run_slotting.py --time-limit 2.5 --json
    python run_slotting.py --plot slotting.png

Exit codes:
    0  assignment found (optimal, or best-so-far when a budget was hit)
    1  infeasible: no assignment respects the location capacities
    2  invalid input
    3  budget exhausted before any feasible assignment (feasibility unknown)
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

import yaml

from src.analysis.report import format_assignment, result_to_dict
from src.assignment.solver import SOLVERS, SolverStatus, create_solver
from src.errors import ValidationError
from src.warehouse.config import (
    SAMPLE_LOCATIONS,
    SAMPLE_SKUS,
    SlottingConfig,
    load_config,
    load_instance,
)

EXIT_OK = 0
EXIT_INFEASIBLE = 1
EXIT_INVALID = 2
EXIT_UNKNOWN = 3

_EXIT_CODES = {
    SolverStatus.OPTIMAL: EXIT_OK,
    SolverStatus.FEASIBLE: EXIT_OK,
    SolverStatus.INFEASIBLE: EXIT_INFEASIBLE,
    SolverStatus.UNKNOWN: EXIT_UNKNOWN,
}


def _positive_float(text: str) -> float:
    value = float(text)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {text}")
    return value


def _non_negative_int(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {text}")
    return value


def _positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    """CLI arguments; every solver option overrides the config file."""

    parser = argparse.ArgumentParser(description="Assign SKUs to storage locations")
    parser.add_argument(
        "--config",
        type=str,
        default="config/default_slotting.yaml",
        help="Path to slotting config YAML",
    )
    parser.add_argument(
        "--instance",
        type=str,
        default=None,
        help="YAML file with skus/locations (default: built-in demo instance)",
    )
    parser.add_argument("--strategy", type=str, default=None, choices=sorted(SOLVERS))
    parser.add_argument("--time-limit", type=_positive_float, default=None, help="Deadline in seconds")
    parser.add_argument("--node-limit", type=_non_negative_int, default=None, help="Search node budget")
    parser.add_argument("--workers", type=_positive_int, default=None, help="Threads for 'parallel'")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--plot", type=str, default=None, help="Save a load/cost chart here")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log search progress")
    return parser


def _apply_overrides(config: SlottingConfig, args: argparse.Namespace) -> SlottingConfig:
    overrides = {}
    if args.strategy is not None:
        overrides["strategy"] = args.strategy
    if args.time_limit is not None:
        overrides["time_limit_s"] = args.time_limit
    if args.node_limit is not None:
        overrides["node_limit"] = args.node_limit
    if args.workers is not None:
        overrides["n_workers"] = args.workers
    if not overrides:
        return config
    return dataclasses.replace(config, solver=dataclasses.replace(config.solver, **overrides))


def main(argv: list[str] | None = None) -> int:
    """Main function that runs if the file is run directly."""

    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    try:
        # Load config
        config_path = Path(args.config)
        if config_path.exists():
            config = load_config(config_path)
            if not args.json:
                print(f"Loaded config from {config_path}")
        else:
            config = SlottingConfig()
        config = _apply_overrides(config, args)

        # Load instance
        if args.instance:
            skus, locations = load_instance(args.instance, config.instance.default_capacity)
        else:
            skus, locations = list(SAMPLE_SKUS), list(SAMPLE_LOCATIONS)
        result = create_solver(solver_config=config.solver).solve(skus, locations)
    except (ValidationError, OSError, yaml.YAMLError) as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        return EXIT_INVALID

    if args.json:
        print(json.dumps(result_to_dict(result), indent=2))
    else:
        print(format_assignment(result))
        print(
            f"\n[{result.strategy}] status={result.status.name} "
            f"nodes={result.nodes_explored} time={result.solve_time_ms:.1f} ms"
        )

    if args.plot and result.assignment is not None:
        from src.analysis.visualizations import plot_location_loads  # pylint: disable=import-outside-toplevel

        fig = plot_location_loads(result.assignment)
        fig.savefig(args.plot, dpi=150, bbox_inches="tight")
        if not args.json:
            print(f"\n📊 Chart saved: {args.plot}")

    return _EXIT_CODES[result.status]


if __name__ == "__main__":
    sys.exit(main())

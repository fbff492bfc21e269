"""
src/assignment/benchmark.py
──────────────────────────────────────────────────────────────────────────────
Benchmark: slotting strategies head-to-head.

Compares a popularity-first greedy baseline against the exact solvers on
random slotting instances. With small instances the brute-force reference
runs too and every exact strategy is checked against it.

Metrics per instance:
  • Total retrieval cost  (Σ frequency × distance)
  • Cost gap vs best exact result (%)
  • Solve time            (wall-clock, ms)
  • Search nodes          (branch-and-bound strategies)
  • Status                (OPTIMAL / FEASIBLE / INFEASIBLE / UNKNOWN)

Usage:
    python -m src.assignment.benchmark                    # 30 instances, defaults
    python -m src.assignment.benchmark --instances 200
    python -m src.assignment.benchmark --skus 12 --locations 6
    python -m src.assignment.benchmark --solvers greedy bnb parallel
"""

from __future__ import annotations

import argparse
import time
from dataclasses import dataclass

import numpy as np

from src.assignment.solver import (
    Assignment,
    AssignmentResult,
    SolverStatus,
    brute_force_solve,
    create_solver,
)
from src.assignment.cost_matrix import compute_cost_matrix
from src.warehouse.config import SolverConfig
from src.warehouse.models import SKU, Location

ALL_SOLVERS = ["greedy", "bnb", "parallel", "cpsat", "milp", "brute_force"]
BRUTE_FORCE_MAX_LEAVES = 200_000


# ── Instance generation ───────────────────────────────────────────────────────


@dataclass
class BenchmarkInstance:
    """A single random slotting instance."""

    skus: list[SKU]
    locations: list[Location]


def generate_instance(
    rng: np.random.Generator,
    n_skus: int,
    n_locations: int,
    load_factor: float = 0.7,
    max_weight: int = 60,
    max_frequency: int = 120,
) -> BenchmarkInstance:
    """Generate a random slotting instance.

    Capacities are drawn so that total SKU weight is about `load_factor`
    of total capacity; values near 1.0 produce tight, sometimes infeasible
    instances. Distances are 1..n_locations in shuffled order.
    """
    weights = rng.integers(1, max_weight + 1, size=n_skus)
    frequencies = rng.integers(0, max_frequency + 1, size=n_skus)
    skus = [
        SKU(f"SKU{i + 1}", weight=int(w), frequency=int(f))
        for i, (w, f) in enumerate(zip(weights, frequencies))
    ]

    mean_capacity = weights.sum() / max(load_factor, 1e-6) / n_locations
    capacities = np.maximum(1, rng.normal(mean_capacity, 0.25 * mean_capacity, size=n_locations))
    distances = rng.permutation(n_locations) + 1
    locations = [
        Location(id=j, distance_to_exit=int(d), capacity=int(round(c)))
        for j, (d, c) in enumerate(zip(distances, capacities))
    ]
    return BenchmarkInstance(skus=skus, locations=locations)


# ── Greedy baseline ───────────────────────────────────────────────────────────


def greedy_solve(skus: list[SKU], locations: list[Location]) -> AssignmentResult:
    """Popularity-first greedy: most frequent SKU to the nearest location with room.

    Not exact. When it gets stuck the instance may still be feasible, so the
    status is UNKNOWN rather than INFEASIBLE.
    """
    t0 = time.perf_counter()
    cm = compute_cost_matrix(skus, locations)
    remaining = cm.capacities.tolist()
    by_distance = sorted(range(len(locations)), key=lambda j: (locations[j].distance_to_exit, j))
    by_frequency = sorted(range(len(skus)), key=lambda i: (-skus[i].frequency, i))

    location_index = [-1] * len(skus)
    for i in by_frequency:
        w = skus[i].weight
        for j in by_distance:
            if remaining[j] >= w:
                remaining[j] -= w
                location_index[i] = j
                break
        else:
            ms = (time.perf_counter() - t0) * 1e3
            return AssignmentResult(SolverStatus.UNKNOWN, None, ms, 0, "greedy")

    assignment = Assignment(
        skus=tuple(skus),
        locations=tuple(locations),
        location_index=tuple(location_index),
        total_cost=cm.assignment_cost(location_index),
    )
    ms = (time.perf_counter() - t0) * 1e3
    return AssignmentResult(SolverStatus.FEASIBLE, assignment, ms, 0, "greedy")


# ── Main benchmark loop ───────────────────────────────────────────────────────


def run_benchmark(
    n_instances: int = 30,
    n_skus: int = 8,
    n_locations: int = 4,
    seed: int = 42,
    solver_names: list[str] | None = None,
    load_factor: float = 0.7,
    solver_config: SolverConfig | None = None,
    verbose: bool = True,
) -> tuple[dict[str, dict[str, list]], list[tuple[int, str]]]:
    """Run instances, print a comparison table, and return the raw metrics.

    Returns:
        (results, mismatches). results maps solver name → {"cost", "time_ms",
        "nodes", "status"} lists with one entry per instance; mismatches lists
        (instance index, solver name) where an exact strategy disagreed with
        the brute-force reference.
    """
    active = solver_names or [
        name
        for name in ALL_SOLVERS
        if name != "brute_force" or n_locations**n_skus <= BRUTE_FORCE_MAX_LEAVES
    ]
    cfg = solver_config or SolverConfig()

    if verbose:
        print("=" * 80)
        print("  SKU Slotting Benchmark")
        print("=" * 80)
        print(
            f"  Instances: {n_instances}  |  SKUs: {n_skus}  |  Locations: {n_locations}"
            f"  |  Load: {load_factor:.2f}  |  Seed: {seed}"
        )
        print(f"  Solvers:   {', '.join(active)}")
        print()

    solver_instances = {
        name: create_solver(name, cfg) for name in active if name not in ("greedy", "brute_force")
    }
    rng = np.random.default_rng(seed)

    results: dict[str, dict[str, list]] = {
        name: {"cost": [], "time_ms": [], "nodes": [], "status": []} for name in active
    }
    mismatches: list[tuple[int, str]] = []

    for k in range(n_instances):
        instance = generate_instance(rng, n_skus, n_locations, load_factor)

        for name in active:
            if name == "greedy":
                r = greedy_solve(instance.skus, instance.locations)
            elif name == "brute_force":
                r = brute_force_solve(instance.skus, instance.locations)
            else:
                r = solver_instances[name].solve(instance.skus, instance.locations)

            results[name]["cost"].append(r.total_cost)
            results[name]["time_ms"].append(r.solve_time_ms)
            results[name]["nodes"].append(r.nodes_explored)
            results[name]["status"].append(r.status.name)

        if "brute_force" in active:
            reference = results["brute_force"]["cost"][-1]
            for name in active:
                if name in ("greedy", "brute_force"):
                    continue
                if results[name]["status"][-1] == SolverStatus.OPTIMAL.name or reference is None:
                    if results[name]["cost"][-1] != reference:
                        mismatches.append((k, name))

    if verbose:
        _print_table(results, active, mismatches)
    return results, mismatches


def _print_table(
    results: dict[str, dict[str, list]],
    active: list[str],
    mismatches: list[tuple[int, str]],
) -> None:
    col_w = 14

    def hdr(label: str) -> str:
        return f"{label:>{col_w}}"

    def val(v: float, fmt: str = ".1f") -> str:
        return f"{v:{col_w}{fmt}}"

    def _solved(d: dict) -> list[int]:
        return [c for c in d["cost"] if c is not None]

    # Best exact cost per instance, for the gap row
    exact = [n for n in active if n != "greedy"]
    n_rows = len(results[active[0]]["cost"])
    best_exact = []
    for k in range(n_rows):
        costs = [results[n]["cost"][k] for n in exact if results[n]["cost"][k] is not None]
        best_exact.append(min(costs) if costs else None)

    def _gap(d: dict) -> float:
        gaps = [
            (c - b) / b * 100
            for c, b in zip(d["cost"], best_exact)
            if c is not None and b not in (None, 0)
        ]
        return float(np.mean(gaps)) if gaps else 0.0

    fn_map = {
        "Avg cost": (lambda d: float(np.mean(_solved(d))) if _solved(d) else float("nan"), ".1f"),
        "Avg gap vs best exact (%)": (_gap, ".2f"),
        "Avg solve time (ms)": (lambda d: float(np.mean(d["time_ms"])), ".2f"),
        "P95 solve time (ms)": (lambda d: float(np.percentile(d["time_ms"], 95)), ".2f"),
        "Avg nodes": (lambda d: float(np.mean(d["nodes"])), ".0f"),
    }

    print(f"  {'Metric':<30}" + "".join(hdr(n) for n in active))
    print("  " + "─" * (30 + col_w * len(active)))
    for label, (fn, fmt) in fn_map.items():
        print(f"  {label:<30}" + "".join(val(fn(results[n]), fmt) for n in active))

    print()
    print("  Solver status distribution:")
    for name in active:
        counts: dict[str, int] = {}
        for s in results[name]["status"]:
            counts[s] = counts.get(s, 0) + 1
        dist_str = "  ".join(f"{s}={c}" for s, c in sorted(counts.items()))
        print(f"    {name:<12}: {dist_str}")

    if "brute_force" in active:
        print()
        if mismatches:
            print(f"  ❌ {len(mismatches)} cost mismatches vs brute force: {mismatches[:10]}")
        else:
            print("  ✅ All exact strategies matched brute force")

    print("\n" + "=" * 80)


# ── CLI entry point ───────────────────────────────────────────────────────────

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Benchmark SKU slotting strategies")
    parser.add_argument("--instances", type=int, default=30)
    parser.add_argument("--skus", type=int, default=8)
    parser.add_argument("--locations", type=int, default=4)
    parser.add_argument("--load", type=float, default=0.7, help="Total weight / total capacity")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--time-limit", type=float, default=None, help="Per-solve deadline (s)")
    parser.add_argument(
        "--solvers",
        nargs="+",
        choices=ALL_SOLVERS,
        default=None,
        help="Subset of solvers to benchmark (default: all, brute force only if small)",
    )
    args = parser.parse_args()
    run_benchmark(
        args.instances,
        args.skus,
        args.locations,
        args.seed,
        args.solvers,
        load_factor=args.load,
        solver_config=SolverConfig(time_limit_s=args.time_limit),
    )

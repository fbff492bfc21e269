"""Tests for result formatting, plotting and the benchmark harness.

Run with: pytest tests/test_reporting.py -v
"""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pytest  # noqa: E402

from src.analysis.report import format_assignment, location_loads, result_to_dict  # noqa: E402
from src.analysis.visualizations import plot_location_loads  # noqa: E402
from src.assignment.benchmark import generate_instance, greedy_solve, run_benchmark  # noqa: E402
from src.assignment.solver import BranchAndBoundSolver, SolverStatus  # noqa: E402
from src.warehouse.config import SAMPLE_LOCATIONS, SAMPLE_SKUS, SolverConfig  # noqa: E402
from src.warehouse.models import SKU, Location  # noqa: E402


@pytest.fixture
def demo_result():
    return BranchAndBoundSolver().solve(list(SAMPLE_SKUS), list(SAMPLE_LOCATIONS))


@pytest.fixture
def infeasible_result():
    return BranchAndBoundSolver().solve([SKU("X", 500, 1)], [Location(0, 1)])


class TestReport:
    def test_format_optimal(self, demo_result):
        text = format_assignment(demo_result)
        lines = text.splitlines()

        assert lines[0] == "Optimal assignment:"
        assert "SKU SKU3 -> location 0 (distance: 1)" in lines
        assert "SKU SKU5 -> location 1 (distance: 2)" in lines
        assert lines[-1] == "Total cost: 380"

    def test_format_infeasible(self, infeasible_result):
        assert format_assignment(infeasible_result).startswith("No feasible assignment")

    def test_format_budget_feasible(self):
        result = BranchAndBoundSolver(SolverConfig(node_limit=6)).solve(
            list(SAMPLE_SKUS), list(SAMPLE_LOCATIONS)
        )
        assert result.status == SolverStatus.FEASIBLE
        assert format_assignment(result).startswith("Best assignment found (not proven optimal)")

    def test_format_unknown(self):
        result = BranchAndBoundSolver(SolverConfig(node_limit=0)).solve(
            list(SAMPLE_SKUS), list(SAMPLE_LOCATIONS)
        )
        assert "feasibility unknown" in format_assignment(result)

    def test_location_loads(self, demo_result):
        loads = {ll.location_id: ll for ll in location_loads(demo_result.assignment)}

        assert len(loads) == 5
        assert loads[0].load == 100
        assert loads[0].sku_ids == ["SKU1", "SKU3", "SKU4"]
        assert loads[0].utilization_pct == pytest.approx(100.0)
        assert loads[4].load == 0
        assert loads[4].sku_ids == []

    def test_result_to_dict(self, demo_result):
        d = result_to_dict(demo_result)

        assert d["status"] == "OPTIMAL"
        assert d["strategy"] == "bnb"
        assert d["total_cost"] == 380
        assert len(d["assignments"]) == 5
        assert sum(a["cost"] for a in d["assignments"]) == 380
        assert sum(loc["load"] for loc in d["locations"]) == sum(s.weight for s in SAMPLE_SKUS)

    def test_result_to_dict_infeasible(self, infeasible_result):
        d = result_to_dict(infeasible_result)
        assert d["status"] == "INFEASIBLE"
        assert d["total_cost"] is None
        assert d["assignments"] == []


class TestVisualization:
    def test_plot_location_loads(self, demo_result):
        fig = plot_location_loads(demo_result.assignment, title="Demo")
        try:
            assert len(fig.axes) == 2
            ax_load, ax_cost = fig.axes
            heights = sorted(p.get_height() for p in ax_load.patches)
            assert heights == [0, 0, 50, 90, 100]
            assert sum(p.get_height() for p in ax_cost.patches) == pytest.approx(380)
        finally:
            plt.close(fig)


class TestBenchmark:
    def test_generate_instance_shape(self):
        rng = np.random.default_rng(0)
        inst = generate_instance(rng, n_skus=6, n_locations=3)

        assert len(inst.skus) == 6
        assert len(inst.locations) == 3
        assert sorted(loc.distance_to_exit for loc in inst.locations) == [1, 2, 3]
        assert all(loc.capacity >= 1 for loc in inst.locations)

    def test_greedy_is_feasible_but_not_better(self):
        greedy = greedy_solve(list(SAMPLE_SKUS), list(SAMPLE_LOCATIONS))

        assert greedy.status == SolverStatus.FEASIBLE
        loads = greedy.assignment.loads()
        assert all(loads[loc.id] <= loc.capacity for loc in SAMPLE_LOCATIONS)
        assert greedy.total_cost >= 380

    def test_greedy_stuck_is_unknown(self):
        skus = [SKU("A", 60, 9), SKU("B", 50, 1), SKU("C", 50, 1)]
        locations = [Location(0, 1, 100), Location(1, 2, 60)]
        # Greedy puts A at location 0, B at location 1, and C fits nowhere;
        # A at location 1 with B and C sharing location 0 is feasible
        result = greedy_solve(skus, locations)
        assert result.status == SolverStatus.UNKNOWN
        assert BranchAndBoundSolver().solve(skus, locations).status == SolverStatus.OPTIMAL

    def test_run_benchmark_no_mismatches(self):
        results, mismatches = run_benchmark(
            n_instances=5,
            n_skus=5,
            n_locations=3,
            seed=1,
            solver_names=["greedy", "bnb", "parallel", "milp", "brute_force"],
            verbose=False,
        )
        assert mismatches == []
        assert len(results["bnb"]["cost"]) == 5
        assert results["bnb"]["cost"] == results["brute_force"]["cost"]

    def test_run_benchmark_prints_table(self, capsys):
        run_benchmark(n_instances=2, n_skus=4, n_locations=2, solver_names=["greedy", "bnb"])
        out = capsys.readouterr().out
        assert "SKU Slotting Benchmark" in out
        assert "Avg solve time (ms)" in out

"""
Slotting solvers: SKU → storage location at minimum retrieval cost.

Problem
───────
Every SKU goes to exactly one location, the summed SKU weight in a location
must stay within its capacity, and the objective is

    Σ frequency(sku) × distance_to_exit(location(sku))

This is a generalised assignment problem (assignment + one knapsack per
location). Unlike the pure LAP it is NP-hard, so the exact default is a
depth-first branch-and-bound search over partial assignments.

Search
──────
  Branch order       →  SKUs in input order; locations by ascending cost,
                        ties by location index
  Capacity pruning   →  only locations whose remaining capacity fits the SKU
  Bounding           →  committed cost + cheapest still-fitting location of
                        every unplaced SKU; prune when ≥ incumbent
  Leaf               →  loads recomputed from scratch; incumbent replaced only
                        on strictly lower cost (first optimum found wins)

Solver menu
───────────
  BranchAndBoundSolver          in-repo exact search, zero solver deps  ← DEFAULT
  ParallelBranchAndBoundSolver  same search, one thread per first-SKU branch
  CPSATSlottingSolver           OR-Tools CP-SAT on the 0/1 model
  ScipyMILPSolver               scipy.optimize.milp (HiGHS) on the 0/1 model
  brute_force_solve             exhaustive enumeration, reference only

All solvers share `solve(skus, locations) -> AssignmentResult` and validate
their input the same way.
"""

from __future__ import annotations

import itertools
import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum, auto
from typing import Sequence

import numpy as np

from src.assignment.cost_matrix import CostMatrix, compute_cost_matrix
from src.errors import NoFeasibleAssignmentError, SearchBudgetExceededError
from src.warehouse.config import SolverConfig
from src.warehouse.models import SKU, Location, validate_instance

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Public types
# ─────────────────────────────────────────────────────────────────────────────


class SolverStatus(Enum):
    """Valid solver status"""

    OPTIMAL = auto()  # proven optimal
    FEASIBLE = auto()  # budget hit; best assignment found, optimality not proven
    INFEASIBLE = auto()  # proven: no assignment respects the capacities
    UNKNOWN = auto()  # budget hit before any feasible assignment was found


@dataclass(frozen=True)
class Assignment:
    """A complete SKU → Location mapping.

    `location_index[i]` is the index into `locations` chosen for `skus[i]`.
    Only solvers construct these.
    """

    skus: tuple[SKU, ...]
    locations: tuple[Location, ...]
    location_index: tuple[int, ...]
    total_cost: int

    def pairs(self) -> list[tuple[SKU, Location]]:
        """(SKU, Location) pairs in SKU input order."""
        return [(sku, self.locations[j]) for sku, j in zip(self.skus, self.location_index)]

    def location_of(self, sku_id: str) -> Location:
        for sku, loc in self.pairs():
            if sku.id == sku_id:
                return loc
        raise KeyError(sku_id)

    def as_dict(self) -> dict[str, int]:
        """SKU id → location id."""
        return {sku.id: loc.id for sku, loc in self.pairs()}

    def loads(self) -> dict[int, int]:
        """Location id → total assigned weight (every location listed)."""
        loads = {loc.id: 0 for loc in self.locations}
        for sku, loc in self.pairs():
            loads[loc.id] += sku.weight
        return loads


@dataclass
class AssignmentResult:
    """Unified output returned by every solver variant."""

    status: SolverStatus
    assignment: Assignment | None
    solve_time_ms: float
    nodes_explored: int = 0
    strategy: str = "bnb"

    @property
    def is_optimal(self) -> bool:
        return self.status == SolverStatus.OPTIMAL

    @property
    def total_cost(self) -> int | None:
        return self.assignment.total_cost if self.assignment is not None else None

    def require_assignment(self) -> Assignment:
        """Return the assignment or raise for INFEASIBLE / UNKNOWN outcomes.

        A FEASIBLE (non-optimal) assignment is returned as is; check
        `is_optimal` when optimality matters.
        """
        if self.status == SolverStatus.INFEASIBLE:
            raise NoFeasibleAssignmentError(
                "No assignment satisfies the location capacity constraints"
            )
        if self.assignment is None:
            raise SearchBudgetExceededError(
                f"Search budget exhausted after {self.nodes_explored} nodes "
                f"({self.solve_time_ms:.1f} ms) without a feasible assignment"
            )
        return self.assignment


# ─────────────────────────────────────────────────────────────────────────────
# Private helpers (shared by all solvers)
# ─────────────────────────────────────────────────────────────────────────────


def _make_assignment(
    skus: Sequence[SKU],
    locations: Sequence[Location],
    cm: CostMatrix,
    location_index: Sequence[int],
) -> Assignment:
    return Assignment(
        skus=tuple(skus),
        locations=tuple(locations),
        location_index=tuple(int(j) for j in location_index),
        total_cost=cm.assignment_cost(location_index),
    )


def _trivially_infeasible(cm: CostMatrix) -> bool:
    """Aggregate weight over aggregate capacity, or an SKU that fits nowhere."""
    if cm.total_weight > cm.total_capacity:
        return True
    return any(not order for order in cm.candidate_order)


def _status_for(completed: bool, found: bool) -> SolverStatus:
    if completed:
        return SolverStatus.OPTIMAL if found else SolverStatus.INFEASIBLE
    return SolverStatus.FEASIBLE if found else SolverStatus.UNKNOWN


class _SearchAborted(Exception):
    """Unwinds the search when a node or time budget runs out."""


@dataclass(frozen=True)
class _Budget:
    deadline: float | None
    node_limit: int | None
    check_interval: int

    @classmethod
    def start(cls, cfg: SolverConfig, t0: float) -> _Budget:
        deadline = t0 + cfg.time_limit_s if cfg.time_limit_s is not None else None
        return cls(deadline, cfg.node_limit, max(1, cfg.deadline_check_interval))


class SharedIncumbent:
    """Best known cost shared by parallel subtree searches.

    Holds (cost, rank) where rank is the branch position of the subtree
    that found it. Updates only ever move it downward in (cost, rank) order,
    under a lock; reads take the tuple in one step.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._best: tuple[float, float] = (math.inf, math.inf)

    @property
    def best(self) -> tuple[float, float]:
        return self._best

    def offer(self, cost: int, rank: int) -> bool:
        with self._lock:
            if (cost, rank) < self._best:
                self._best = (cost, rank)
                return True
            return False

    def dominates(self, bound: int, rank: int) -> bool:
        """True if no completion with this lower bound can win for subtree `rank`.

        An equal-cost solution still wins against one from a later subtree,
        which keeps the parallel answer identical to the sequential one.
        """
        cost, owner = self._best
        return bound > cost or (bound == cost and owner <= rank)


class _BranchAndBound:
    """Depth-first branch-and-bound over partial SKU → location assignments."""

    def __init__(
        self,
        cm: CostMatrix,
        budget: _Budget,
        shared: SharedIncumbent | None = None,
        rank: int = 0,
    ) -> None:
        # Plain lists: element access in the inner loop is much faster than numpy
        self.cost: list[list[int]] = cm.cost.tolist()
        self.weights: list[int] = cm.weights.tolist()
        self.capacities: list[int] = cm.capacities.tolist()
        self.order = cm.candidate_order
        self.n_skus = cm.n_skus
        self.n_locations = cm.n_locations
        self.budget = budget
        self.shared = shared
        self.rank = rank
        self.nodes = 0
        self.best_cost: float = math.inf
        self.best: list[int] | None = None

    def run(self, prefix: Sequence[int] = ()) -> bool:
        """Search every completion of `prefix`.

        Returns False if a budget aborted the search before the tree was
        exhausted.
        """
        remaining = list(self.capacities)
        current: list[int] = []
        committed = 0
        for i, j in enumerate(prefix):
            remaining[j] -= self.weights[i]
            committed += self.cost[i][j]
            current.append(j)
        try:
            self._descend(len(prefix), committed, current, remaining)
        except _SearchAborted:
            return False
        return True

    def _tick(self) -> None:
        self.nodes += 1
        budget = self.budget
        if budget.node_limit is not None and self.nodes > budget.node_limit:
            raise _SearchAborted
        if (
            budget.deadline is not None
            and self.nodes % budget.check_interval == 0
            and time.perf_counter() >= budget.deadline
        ):
            raise _SearchAborted

    def _lower_bound(self, depth: int, committed: int, remaining: list[int]) -> int | None:
        """Admissible bound, or None when some unplaced SKU fits nowhere."""
        bound = committed
        for k in range(depth, self.n_skus):
            w = self.weights[k]
            row = self.cost[k]
            for j in self.order[k]:
                if remaining[j] >= w:
                    bound += row[j]
                    break
            else:
                return None
        return bound

    def _pruned(self, bound: int) -> bool:
        if bound >= self.best_cost:
            return True
        return self.shared is not None and self.shared.dominates(bound, self.rank)

    def _descend(self, depth: int, committed: int, current: list[int], remaining: list[int]) -> None:
        self._tick()
        if depth == self.n_skus:
            self._leaf(current)
            return

        bound = self._lower_bound(depth, committed, remaining)
        if bound is None or self._pruned(bound):
            return

        w = self.weights[depth]
        row = self.cost[depth]
        for j in self.order[depth]:
            if remaining[j] < w:
                continue
            remaining[j] -= w
            current.append(j)
            self._descend(depth + 1, committed + row[j], current, remaining)
            current.pop()
            remaining[j] += w

    def _leaf(self, current: list[int]) -> None:
        loads = [0] * self.n_locations
        for i, j in enumerate(current):
            loads[j] += self.weights[i]
        if any(load > cap for load, cap in zip(loads, self.capacities)):
            logger.error("Capacity accounting drift at leaf %s; leaf discarded", current)
            return

        total = sum(self.cost[i][j] for i, j in enumerate(current))
        if total >= self.best_cost:
            return
        if self.shared is not None and self.shared.dominates(total, self.rank):
            return
        self.best_cost = total
        self.best = list(current)
        if self.shared is not None:
            self.shared.offer(total, self.rank)
        logger.debug("New incumbent cost=%d after %d nodes (rank %d)", total, self.nodes, self.rank)


class _SolverBase:
    """Config and cumulative statistics shared by every solver."""

    strategy_name = "base"

    def __init__(self, solver_config: SolverConfig | None = None) -> None:
        self.config = solver_config or SolverConfig()
        self.total_solves: int = 0
        self.total_solve_time_ms: float = 0.0
        self.total_nodes: int = 0

    def _finish(
        self,
        status: SolverStatus,
        assignment: Assignment | None,
        t0: float,
        nodes: int = 0,
    ) -> AssignmentResult:
        ms = (time.perf_counter() - t0) * 1e3
        self.total_solves += 1
        self.total_solve_time_ms += ms
        self.total_nodes += nodes
        logger.info(
            "%s finished: status=%s cost=%s nodes=%d (%.1f ms)",
            self.strategy_name,
            status.name,
            assignment.total_cost if assignment is not None else "-",
            nodes,
            ms,
        )
        return AssignmentResult(status, assignment, ms, nodes, self.strategy_name)


# ─────────────────────────────────────────────────────────────────────────────
# Solver 1 — BranchAndBoundSolver
# ─────────────────────────────────────────────────────────────────────────────


class BranchAndBoundSolver(_SolverBase):
    """Exact single-threaded branch-and-bound. Deterministic.

    Given identical input (including order) it returns the identical
    assignment: among equal-cost optima, the first one reached in branch
    order.
    """

    strategy_name = "bnb"

    def solve(self, skus: Sequence[SKU], locations: Sequence[Location]) -> AssignmentResult:
        """Solve with diagnostics"""

        validate_instance(skus, locations)
        t0 = time.perf_counter()
        cm = compute_cost_matrix(skus, locations)
        if _trivially_infeasible(cm):
            return self._finish(SolverStatus.INFEASIBLE, None, t0)

        search = _BranchAndBound(cm, _Budget.start(self.config, t0))
        completed = search.run()
        assignment = (
            _make_assignment(skus, locations, cm, search.best) if search.best is not None else None
        )
        status = _status_for(completed, assignment is not None)
        return self._finish(status, assignment, t0, search.nodes)


# ─────────────────────────────────────────────────────────────────────────────
# Solver 2 — ParallelBranchAndBoundSolver
# ─────────────────────────────────────────────────────────────────────────────


class ParallelBranchAndBoundSolver(_SolverBase):
    """Branch-and-bound with the first SKU's branches explored concurrently.

    Each candidate location of the first SKU roots an independent subtree
    with its own local incumbent. A SharedIncumbent carries the global best
    so every worker prunes against it. The chosen assignment is the same one
    BranchAndBoundSolver returns.

    Threads share the interpreter lock, so the speed-up is limited to
    stronger pruning from the shared bound. The node limit applies per
    subtree; the deadline is common to all of them.
    """

    strategy_name = "parallel"

    def solve(self, skus: Sequence[SKU], locations: Sequence[Location]) -> AssignmentResult:
        """Solve with diagnostics"""

        validate_instance(skus, locations)
        t0 = time.perf_counter()
        cm = compute_cost_matrix(skus, locations)
        if _trivially_infeasible(cm):
            return self._finish(SolverStatus.INFEASIBLE, None, t0)

        budget = _Budget.start(self.config, t0)
        shared = SharedIncumbent()
        first_branches = cm.candidate_order[0]

        def _explore(rank: int, location_idx: int) -> tuple[_BranchAndBound, bool]:
            search = _BranchAndBound(cm, budget, shared=shared, rank=rank)
            return search, search.run(prefix=(location_idx,))

        n_workers = max(1, min(self.config.n_workers, len(first_branches)))
        with ThreadPoolExecutor(max_workers=n_workers, thread_name_prefix="bnb") as pool:
            futures = [
                pool.submit(_explore, rank, j) for rank, j in enumerate(first_branches)
            ]
            outcomes = [f.result() for f in futures]

        completed = all(done for _, done in outcomes)
        nodes = sum(search.nodes for search, _ in outcomes)
        candidates = [
            (search.best_cost, rank, search.best)
            for rank, (search, _) in enumerate(outcomes)
            if search.best is not None
        ]
        assignment = None
        if candidates:
            _, _, best = min(candidates, key=lambda c: (c[0], c[1]))
            assignment = _make_assignment(skus, locations, cm, best)
        status = _status_for(completed, assignment is not None)
        return self._finish(status, assignment, t0, nodes)


# ─────────────────────────────────────────────────────────────────────────────
# Solver 3 — CPSATSlottingSolver
# ─────────────────────────────────────────────────────────────────────────────


class CPSATSlottingSolver(_SolverBase):
    """The 0/1 slotting model on OR-Tools CP-SAT.

    x[i, j] = 1 iff SKU i goes to location j. Pairs where the SKU alone
    exceeds the capacity get no variable at all.
        Σ_j x[i, j] == 1                    for every SKU
        Σ_i weight_i · x[i, j] ≤ capacity_j for every location
        minimise Σ cost[i, j] · x[i, j]
    A single search worker keeps the result reproducible.
    """

    strategy_name = "cpsat"

    def solve(self, skus: Sequence[SKU], locations: Sequence[Location]) -> AssignmentResult:
        """Solve with diagnostics"""

        from ortools.sat.python import cp_model  # pylint: disable=import-outside-toplevel

        validate_instance(skus, locations)
        t0 = time.perf_counter()
        cm = compute_cost_matrix(skus, locations)
        if _trivially_infeasible(cm):
            return self._finish(SolverStatus.INFEASIBLE, None, t0)

        model = cp_model.CpModel()
        x = {
            (i, j): model.new_bool_var(f"sku_{i}_loc_{j}")
            for i in range(cm.n_skus)
            for j in range(cm.n_locations)
            if cm.fits[i, j]
        }

        # Each SKU in exactly one location
        for i in range(cm.n_skus):
            model.add_exactly_one([x[(i, j)] for j in range(cm.n_locations) if (i, j) in x])

        # Location weight within capacity
        for j in range(cm.n_locations):
            terms = [int(cm.weights[i]) * x[(i, j)] for i in range(cm.n_skus) if (i, j) in x]
            if terms:
                model.add(sum(terms) <= int(cm.capacities[j]))

        model.minimize(sum(int(cm.cost[i, j]) * var for (i, j), var in x.items()))

        solver = cp_model.CpSolver()
        if self.config.time_limit_s is not None:
            solver.parameters.max_time_in_seconds = self.config.time_limit_s
        solver.parameters.num_workers = 1  # deterministic

        status_code = solver.solve(model)
        if status_code in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            location_index = [
                next(j for j in range(cm.n_locations) if (i, j) in x and solver.boolean_value(x[(i, j)]))
                for i in range(cm.n_skus)
            ]
            assignment = _make_assignment(skus, locations, cm, location_index)
            status = SolverStatus.OPTIMAL if status_code == cp_model.OPTIMAL else SolverStatus.FEASIBLE
            return self._finish(status, assignment, t0, int(solver.num_branches))
        if status_code == cp_model.INFEASIBLE:
            return self._finish(SolverStatus.INFEASIBLE, None, t0, int(solver.num_branches))
        return self._finish(SolverStatus.UNKNOWN, None, t0, int(solver.num_branches))


# ─────────────────────────────────────────────────────────────────────────────
# Solver 4 — ScipyMILPSolver
# ─────────────────────────────────────────────────────────────────────────────


class ScipyMILPSolver(_SolverBase):
    """The same 0/1 model on scipy.optimize.milp (HiGHS branch-and-cut)."""

    strategy_name = "milp"

    def solve(self, skus: Sequence[SKU], locations: Sequence[Location]) -> AssignmentResult:
        """Solve with diagnostics"""

        from scipy.optimize import Bounds, LinearConstraint, milp  # pylint: disable=import-outside-toplevel

        validate_instance(skus, locations)
        t0 = time.perf_counter()
        cm = compute_cost_matrix(skus, locations)
        if _trivially_infeasible(cm):
            return self._finish(SolverStatus.INFEASIBLE, None, t0)

        pairs = [(i, j) for i in range(cm.n_skus) for j in range(cm.n_locations) if cm.fits[i, j]]
        n_vars = len(pairs)
        c = np.array([cm.cost[i, j] for i, j in pairs], dtype=np.float64)
        one_each = np.zeros((cm.n_skus, n_vars))
        load = np.zeros((cm.n_locations, n_vars))
        for k, (i, j) in enumerate(pairs):
            one_each[i, k] = 1.0
            load[j, k] = cm.weights[i]

        options = {}
        if self.config.time_limit_s is not None:
            options["time_limit"] = self.config.time_limit_s

        res = milp(
            c,
            integrality=np.ones(n_vars),
            bounds=Bounds(0, 1),
            constraints=[
                LinearConstraint(one_each, 1, 1),
                LinearConstraint(load, -np.inf, cm.capacities.astype(np.float64)),
            ],
            options=options,
        )

        if res.status == 2:
            return self._finish(SolverStatus.INFEASIBLE, None, t0)
        if res.x is None:
            return self._finish(SolverStatus.UNKNOWN, None, t0)

        chosen = np.round(res.x).astype(int)
        location_index = [0] * cm.n_skus
        for k, (i, j) in enumerate(pairs):
            if chosen[k] == 1:
                location_index[i] = j
        assignment = _make_assignment(skus, locations, cm, location_index)
        status = SolverStatus.OPTIMAL if res.status == 0 else SolverStatus.FEASIBLE
        return self._finish(status, assignment, t0)


# ─────────────────────────────────────────────────────────────────────────────
# Reference — exhaustive enumeration
# ─────────────────────────────────────────────────────────────────────────────


def brute_force_solve(skus: Sequence[SKU], locations: Sequence[Location]) -> AssignmentResult:
    """Enumerate all |locations|^|skus| assignments. Small instances only.

    Ties go to the lexicographically first location vector, so only the cost
    (not the assignment) is comparable with the branch-and-bound result.
    """
    validate_instance(skus, locations)
    t0 = time.perf_counter()
    cm = compute_cost_matrix(skus, locations)
    weights = cm.weights.tolist()
    capacities = cm.capacities.tolist()
    cost = cm.cost.tolist()

    best: tuple[int, ...] | None = None
    best_cost = math.inf
    n_checked = 0
    for combo in itertools.product(range(cm.n_locations), repeat=cm.n_skus):
        n_checked += 1
        loads = [0] * cm.n_locations
        for i, j in enumerate(combo):
            loads[j] += weights[i]
        if any(load > cap for load, cap in zip(loads, capacities)):
            continue
        total = sum(cost[i][j] for i, j in enumerate(combo))
        if total < best_cost:
            best, best_cost = combo, total

    ms = (time.perf_counter() - t0) * 1e3
    if best is None:
        return AssignmentResult(SolverStatus.INFEASIBLE, None, ms, n_checked, "brute_force")
    assignment = _make_assignment(skus, locations, cm, best)
    return AssignmentResult(SolverStatus.OPTIMAL, assignment, ms, n_checked, "brute_force")


# ─────────────────────────────────────────────────────────────────────────────
# Factory
# ─────────────────────────────────────────────────────────────────────────────

SOLVERS: dict[str, type[_SolverBase]] = {
    "bnb": BranchAndBoundSolver,
    "parallel": ParallelBranchAndBoundSolver,
    "cpsat": CPSATSlottingSolver,
    "milp": ScipyMILPSolver,
}


def create_solver(
    strategy: str | None = None,
    solver_config: SolverConfig | None = None,
) -> BranchAndBoundSolver | ParallelBranchAndBoundSolver | CPSATSlottingSolver | ScipyMILPSolver:
    """Instantiate and return the requested solver.

    strategy options
    ─────────────────
    "bnb"       → BranchAndBoundSolver          default, exact, deterministic
    "parallel"  → ParallelBranchAndBoundSolver  threads over first-SKU branches
    "cpsat"     → CPSATSlottingSolver           requires ortools
    "milp"      → ScipyMILPSolver               requires scipy >= 1.9

    When `strategy` is None the config's strategy is used.
    """
    cfg = solver_config or SolverConfig()
    name = strategy or cfg.strategy
    try:
        cls = SOLVERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown strategy {name!r}. Valid options: {', '.join(repr(s) for s in SOLVERS)}."
        ) from None
    return cls(cfg)


def solve(
    skus: Sequence[SKU],
    locations: Sequence[Location],
    solver_config: SolverConfig | None = None,
) -> AssignmentResult:
    """One-shot solve with the configured strategy (branch-and-bound by default)."""
    return create_solver(solver_config=solver_config).solve(skus, locations)

"""
Text and JSON rendering of slotting results.

The CLI prints `format_assignment()`; the API and `--json` output use
`result_to_dict()`.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.assignment.solver import Assignment, AssignmentResult, SolverStatus


@dataclass
class LocationLoad:
    """Per-location utilisation of an assignment."""

    location_id: int
    distance_to_exit: int
    capacity: int
    load: int
    sku_ids: list[str]

    @property
    def utilization_pct(self) -> float:
        return 100.0 * self.load / self.capacity


def location_loads(assignment: Assignment) -> list[LocationLoad]:
    """Load summary for every location, in input order (empty ones included)."""
    by_id = {
        loc.id: LocationLoad(loc.id, loc.distance_to_exit, loc.capacity, 0, [])
        for loc in assignment.locations
    }
    for sku, loc in assignment.pairs():
        entry = by_id[loc.id]
        entry.load += sku.weight
        entry.sku_ids.append(sku.id)
    return list(by_id.values())


def format_assignment(result: AssignmentResult) -> str:
    """Human-readable result: one line per SKU, or the reason there is none."""
    if result.status == SolverStatus.INFEASIBLE:
        return "No feasible assignment: location capacities cannot hold every SKU."
    if result.assignment is None:
        return (
            f"No assignment found within the search budget "
            f"({result.nodes_explored} nodes, {result.solve_time_ms:.1f} ms); "
            f"feasibility unknown."
        )

    header = "Optimal assignment:" if result.is_optimal else "Best assignment found (not proven optimal):"
    lines = [header]
    for sku, loc in result.assignment.pairs():
        lines.append(f"SKU {sku.id} -> location {loc.id} (distance: {loc.distance_to_exit})")
    lines.append(f"Total cost: {result.assignment.total_cost}")
    return "\n".join(lines)


def result_to_dict(result: AssignmentResult) -> dict:
    """JSON-ready summary of a solver result."""
    out: dict = {
        "status": result.status.name,
        "strategy": result.strategy,
        "solve_time_ms": round(result.solve_time_ms, 3),
        "nodes_explored": result.nodes_explored,
        "total_cost": result.total_cost,
        "assignments": [],
        "locations": [],
    }
    if result.assignment is None:
        return out

    out["assignments"] = [
        {
            "sku_id": sku.id,
            "location_id": loc.id,
            "distance_to_exit": loc.distance_to_exit,
            "cost": sku.frequency * loc.distance_to_exit,
        }
        for sku, loc in result.assignment.pairs()
    ]
    out["locations"] = [
        {
            "location_id": ll.location_id,
            "capacity": ll.capacity,
            "load": ll.load,
            "sku_ids": ll.sku_ids,
        }
        for ll in location_loads(result.assignment)
    ]
    return out

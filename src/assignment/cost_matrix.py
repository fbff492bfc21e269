"""
Cost matrix computation for SKU slotting.

Precomputes the retrieval cost and the weight-fit mask for all
(SKU, Location) pairs. Every solver strategy works from the same matrix, so
the objective is defined in exactly one place.

Usage:
    matrix = compute_cost_matrix(skus, locations)
    # matrix.cost[i, j] = frequency(sku i) * distance_to_exit(location j)
    # matrix.fits[i, j] = True if sku i alone fits in location j
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numpy as np

if TYPE_CHECKING:
    from src.warehouse.models import SKU, Location


@dataclass
class CostMatrix:
    """Precomputed slotting costs and weight feasibility.

    Indexed as [sku_index][location_index].

    Attributes:
        n_skus: Number of SKUs.
        n_locations: Number of locations.
        sku_ids: SKU ID at each index.
        location_ids: Location ID at each index.
        weights: SKU weight at each index.
        capacities: Location capacity at each index.
        cost: frequency x distance_to_exit (int64).
        fits: Whether the SKU's weight is within the location's capacity.
        candidate_order: Per SKU, fitting location indices sorted by
            (cost, location index). This is the branch order of the search.
    """

    n_skus: int
    n_locations: int
    sku_ids: list[str]
    location_ids: list[int]
    weights: np.ndarray
    capacities: np.ndarray
    cost: np.ndarray
    fits: np.ndarray
    candidate_order: list[list[int]]

    @property
    def total_weight(self) -> int:
        return int(self.weights.sum())

    @property
    def total_capacity(self) -> int:
        return int(self.capacities.sum())

    def assignment_cost(self, location_index: Sequence[int]) -> int:
        """Objective value of a complete assignment (one location index per SKU)."""
        return int(sum(self.cost[i, j] for i, j in enumerate(location_index)))

    def location_loads(self, location_index: Sequence[int]) -> np.ndarray:
        """Total SKU weight per location, recomputed from scratch."""
        loads = np.zeros(self.n_locations, dtype=np.int64)
        for i, j in enumerate(location_index):
            loads[j] += self.weights[i]
        return loads

    def respects_capacity(self, location_index: Sequence[int]) -> bool:
        return bool(np.all(self.location_loads(location_index) <= self.capacities))


def compute_cost_matrix(skus: Sequence[SKU], locations: Sequence[Location]) -> CostMatrix:
    """Build the full cost matrix for slotting optimization.

    Args:
        skus: SKUs to place.
        locations: Candidate storage locations.

    Returns:
        CostMatrix with integer costs, the fit mask and the branch order.
    """
    weights = np.array([s.weight for s in skus], dtype=np.int64)
    frequencies = np.array([s.frequency for s in skus], dtype=np.int64)
    distances = np.array([loc.distance_to_exit for loc in locations], dtype=np.int64)
    capacities = np.array([loc.capacity for loc in locations], dtype=np.int64)

    cost = np.outer(frequencies, distances)
    fits = weights[:, None] <= capacities[None, :]

    candidate_order: list[list[int]] = []
    for i in range(len(skus)):
        # Stable sort keeps the lower location index first on equal cost
        order = np.argsort(cost[i], kind="stable")
        candidate_order.append([int(j) for j in order if fits[i, j]])

    return CostMatrix(
        n_skus=len(skus),
        n_locations=len(locations),
        sku_ids=[s.id for s in skus],
        location_ids=[loc.id for loc in locations],
        weights=weights,
        capacities=capacities,
        cost=cost,
        fits=fits,
        candidate_order=candidate_order,
    )

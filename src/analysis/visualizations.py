"""
Slotting result visualization.

Renders an assignment as a two-panel figure:
- Location load versus capacity, locations ordered by distance to exit,
  each bar annotated with the SKUs it holds
- Retrieval cost contributed by each location

Usage:
    from src.assignment.solver import BranchAndBoundSolver
    from src.analysis.visualizations import plot_location_loads

    result = BranchAndBoundSolver().solve(skus, locations)
    fig = plot_location_loads(result.require_assignment())
    fig.savefig("slotting.png", dpi=150, bbox_inches="tight")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np

from src.analysis.report import location_loads

if TYPE_CHECKING:
    from matplotlib.figure import Figure

    from src.assignment.solver import Assignment


# ── Styling constants ────────────────────────────────────────────

LOAD_COLOR = "#6baed6"
OVERLOAD_COLOR = "#e41a1c"
CAPACITY_COLOR = "#636363"
COST_COLOR = "#e6550d"


def plot_location_loads(
    assignment: Assignment,
    title: str = "Slotting Assignment",
    figsize: tuple[float, float] | None = None,
) -> Figure:
    """Render load, capacity and retrieval cost per location.

    Args:
        assignment: A complete assignment from any solver.
        title: Figure title.
        figsize: Figure size in inches. Auto-calculated if None.

    Returns:
        matplotlib Figure object.
    """
    loads = sorted(location_loads(assignment), key=lambda ll: (ll.distance_to_exit, ll.location_id))
    labels = [f"L{ll.location_id}\n(d={ll.distance_to_exit})" for ll in loads]
    x = np.arange(len(loads))

    if figsize is None:
        figsize = (max(8.0, 1.2 * len(loads) + 4.0), 5.0)
    fig, (ax_load, ax_cost) = plt.subplots(1, 2, figsize=figsize)

    # ── Panel 1: load vs capacity ────────────────────────────────
    load_values = [ll.load for ll in loads]
    colors = [OVERLOAD_COLOR if ll.load > ll.capacity else LOAD_COLOR for ll in loads]
    bars = ax_load.bar(x, load_values, color=colors, edgecolor="white", linewidth=0.5)
    ax_load.scatter(
        x,
        [ll.capacity for ll in loads],
        marker="_",
        s=600,
        color=CAPACITY_COLOR,
        zorder=5,
        label="Capacity",
    )
    for bar, ll in zip(bars, loads):
        if ll.sku_ids:
            ax_load.text(
                bar.get_x() + bar.get_width() / 2,
                bar.get_height() / 2,
                "\n".join(ll.sku_ids),
                ha="center",
                va="center",
                fontsize=7,
            )
    ax_load.set_xticks(x)
    ax_load.set_xticklabels(labels, fontsize=8)
    ax_load.set_ylabel("Weight")
    ax_load.set_title("Load vs Capacity", fontsize=11, fontweight="bold")
    ax_load.legend(fontsize=8)
    ax_load.grid(True, axis="y", alpha=0.15, linestyle="--")

    # ── Panel 2: cost per location ───────────────────────────────
    cost_by_location = {ll.location_id: 0 for ll in loads}
    for sku, loc in assignment.pairs():
        cost_by_location[loc.id] += sku.frequency * loc.distance_to_exit
    costs = [cost_by_location[ll.location_id] for ll in loads]
    ax_cost.bar(x, costs, color=COST_COLOR, edgecolor="white", linewidth=0.5, alpha=0.85)
    ax_cost.set_xticks(x)
    ax_cost.set_xticklabels(labels, fontsize=8)
    ax_cost.set_ylabel("Frequency × distance")
    ax_cost.set_title("Retrieval Cost", fontsize=11, fontweight="bold")
    ax_cost.grid(True, axis="y", alpha=0.15, linestyle="--")

    fig.suptitle(
        f"{title} — total cost {assignment.total_cost}",
        fontsize=13,
        fontweight="bold",
    )
    fig.tight_layout()
    return fig

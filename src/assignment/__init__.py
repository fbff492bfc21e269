"""
SKU slotting via exact optimization.

Assigns every SKU to one storage location, minimising Σ frequency × distance
under per-location weight capacity. The default solver is an in-repo
branch-and-bound search; CP-SAT and MILP formulations are available for
cross-checking.

Quick start:
    from src.assignment.solver import BranchAndBoundSolver
    result = BranchAndBoundSolver().solve(skus, locations)
    assignment = result.require_assignment()
"""

from src.assignment.solver import (
    Assignment,
    AssignmentResult,
    BranchAndBoundSolver,
    CPSATSlottingSolver,
    ParallelBranchAndBoundSolver,
    ScipyMILPSolver,
    SolverStatus,
    brute_force_solve,
    create_solver,
    solve,
)
from src.assignment.cost_matrix import CostMatrix, compute_cost_matrix

__all__ = [
    "Assignment",
    "AssignmentResult",
    "BranchAndBoundSolver",
    "CPSATSlottingSolver",
    "ParallelBranchAndBoundSolver",
    "ScipyMILPSolver",
    "SolverStatus",
    "brute_force_solve",
    "create_solver",
    "solve",
    "CostMatrix",
    "compute_cost_matrix",
]

"""FastAPI server exposing the slotting optimizer over HTTP."""

from __future__ import annotations

from typing import Literal

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.analysis.report import result_to_dict
from src.assignment.solver import SolverStatus, create_solver
from src.errors import (
    ERROR_STATUS_CODES,
    NoFeasibleAssignmentError,
    SearchBudgetExceededError,
    ValidationError,
)
from src.warehouse.config import SolverConfig
from src.warehouse.models import DEFAULT_LOCATION_CAPACITY, SKU, Location

app = FastAPI(title="SKU Slotting Optimizer API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are input errors (400), not infeasibility (422)."""

    return JSONResponse(
        status_code=ERROR_STATUS_CODES[ValidationError],
        content={"detail": jsonable_encoder(exc.errors())},
    )


class SKUIn(BaseModel):
    id: str
    weight: int
    frequency: int


class LocationIn(BaseModel):
    id: int
    distance_to_exit: int
    capacity: int = DEFAULT_LOCATION_CAPACITY


class SolveRequest(BaseModel):
    skus: list[SKUIn]
    locations: list[LocationIn]
    strategy: Literal["bnb", "parallel", "cpsat", "milp"] = "bnb"
    time_limit_s: float | None = Field(default=None, gt=0)
    node_limit: int | None = Field(default=None, ge=0)


@app.get("/api/health")
async def health() -> dict:
    """Basic readiness endpoint."""

    return {"status": "ok"}


@app.post("/api/solve")
def solve_endpoint(request: SolveRequest) -> dict:
    """Solve one slotting instance.

    400 on malformed input, 422 when no assignment fits the capacities,
    504 when the budget ran out before any feasible assignment.
    """
    skus = [SKU(s.id, s.weight, s.frequency) for s in request.skus]
    locations = [Location(loc.id, loc.distance_to_exit, loc.capacity) for loc in request.locations]
    solver = create_solver(
        request.strategy,
        SolverConfig(
            strategy=request.strategy,
            time_limit_s=request.time_limit_s,
            node_limit=request.node_limit,
        ),
    )

    try:
        result = solver.solve(skus, locations)
        if result.status in (SolverStatus.INFEASIBLE, SolverStatus.UNKNOWN):
            result.require_assignment()
    except (ValidationError, NoFeasibleAssignmentError, SearchBudgetExceededError) as exc:
        raise HTTPException(status_code=ERROR_STATUS_CODES[type(exc)], detail=str(exc)) from exc

    return result_to_dict(result)

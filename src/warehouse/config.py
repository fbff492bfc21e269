"""
Slotting configuration dataclasses and YAML loaders.

Solver and instance parameters live here as typed, frozen dataclasses.
Load from YAML with `load_config()` / `load_instance()` or construct
directly for tests.

Instance YAML layout:

    instance:
      default_capacity: 100
    skus:
      - {id: SKU1, weight: 20, frequency: 80}
    locations:
      - {id: 0, distance_to_exit: 1}            # capacity falls back to default
      - {id: 1, distance_to_exit: 2, capacity: 150}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, get_args

import yaml

from src.errors import ValidationError
from src.warehouse.models import (
    DEFAULT_LOCATION_CAPACITY,
    SKU,
    Location,
    is_int,
    validate_instance,
)

Strategy = Literal["bnb", "parallel", "cpsat", "milp"]


@dataclass(frozen=True)
class SolverConfig:
    """Search parameters shared by all strategies.

    A budget (time or nodes) that runs out turns an OPTIMAL search into a
    FEASIBLE one (incumbent kept, optimality not proven) or an UNKNOWN one
    (no incumbent yet).
    """

    strategy: Strategy = "bnb"
    time_limit_s: float | None = None  # wall-clock deadline, None = unbounded
    node_limit: int | None = None  # search nodes, branch-and-bound only
    n_workers: int = 4  # threads for the parallel strategy
    deadline_check_interval: int = 256  # nodes between clock reads


@dataclass(frozen=True)
class InstanceConfig:
    """Defaults applied while reading an instance."""

    default_capacity: int = DEFAULT_LOCATION_CAPACITY


@dataclass(frozen=True)
class SlottingConfig:
    """Top-level configuration aggregating all sub-configs."""

    solver: SolverConfig = field(default_factory=SolverConfig)
    instance: InstanceConfig = field(default_factory=InstanceConfig)


# Five-SKU demo instance; every location holds 100 kg
SAMPLE_SKUS: tuple[SKU, ...] = (
    SKU("SKU1", weight=20, frequency=80),
    SKU("SKU2", weight=50, frequency=30),
    SKU("SKU3", weight=70, frequency=100),
    SKU("SKU4", weight=10, frequency=10),
    SKU("SKU5", weight=90, frequency=50),
)
SAMPLE_LOCATIONS: tuple[Location, ...] = tuple(
    Location(id=i, distance_to_exit=i + 1) for i in range(5)
)


def _read_yaml(path: str | Path) -> dict:
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError(f"{path}: expected a YAML mapping at top level")
    return raw


def _section(raw: dict, name: str, cls: type):
    values = raw.get(name) or {}
    if not isinstance(values, dict):
        raise ValidationError(f"Config section '{name}' must be a mapping")
    try:
        return cls(**values)
    except TypeError as exc:
        raise ValidationError(f"Config section '{name}': {exc}") from exc


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_solver_config(cfg: SolverConfig) -> None:
    """Reject unknown strategies and out-of-range budgets.

    Raises:
        ValidationError: On the first offending field.
    """
    if cfg.strategy not in get_args(Strategy):
        raise ValidationError(
            f"Unknown strategy {cfg.strategy!r}; expected one of {', '.join(get_args(Strategy))}"
        )
    if cfg.time_limit_s is not None and (not _is_number(cfg.time_limit_s) or cfg.time_limit_s <= 0):
        raise ValidationError(f"time_limit_s must be a positive number, got {cfg.time_limit_s!r}")
    if cfg.node_limit is not None and (not is_int(cfg.node_limit) or cfg.node_limit < 0):
        raise ValidationError(f"node_limit must be a non-negative integer, got {cfg.node_limit!r}")
    for name in ("n_workers", "deadline_check_interval"):
        value = getattr(cfg, name)
        if not is_int(value) or value < 1:
            raise ValidationError(f"{name} must be a positive integer, got {value!r}")


def load_config(path: str | Path) -> SlottingConfig:
    """Load a SlottingConfig from a YAML file.

    Args:
        path: Path to a YAML config file.

    Returns:
        Fully constructed SlottingConfig with all sub-configs.

    Raises:
        ValidationError: On unknown keys, an unknown strategy or a budget
            out of range.
    """
    raw = _read_yaml(path)
    config = SlottingConfig(
        solver=_section(raw, "solver", SolverConfig),
        instance=_section(raw, "instance", InstanceConfig),
    )
    validate_solver_config(config.solver)
    capacity = config.instance.default_capacity
    if not is_int(capacity) or capacity <= 0:
        raise ValidationError(f"default_capacity must be a positive integer, got {capacity!r}")
    return config


def parse_instance(
    raw: dict,
    default_capacity: int = DEFAULT_LOCATION_CAPACITY,
) -> tuple[list[SKU], list[Location]]:
    """Build and validate SKUs and Locations from plain dicts.

    Raises:
        ValidationError: On missing or unknown fields, or on any instance rule
            checked by `validate_instance`.
    """
    instance_defaults = raw.get("instance") or {}
    default_capacity = instance_defaults.get("default_capacity", default_capacity)

    try:
        skus = [
            SKU(id=s["id"], weight=s["weight"], frequency=s["frequency"])
            for s in raw.get("skus") or []
        ]
        locations = [
            Location(
                id=loc["id"],
                distance_to_exit=loc["distance_to_exit"],
                capacity=loc.get("capacity", default_capacity),
            )
            for loc in raw.get("locations") or []
        ]
    except KeyError as exc:
        raise ValidationError(f"Missing field {exc.args[0]!r} in instance") from exc
    except (TypeError, AttributeError) as exc:
        raise ValidationError(f"Malformed instance entry: {exc}") from exc

    validate_instance(skus, locations)
    return skus, locations


def load_instance(
    path: str | Path,
    default_capacity: int = DEFAULT_LOCATION_CAPACITY,
) -> tuple[list[SKU], list[Location]]:
    """Load SKUs and Locations from a YAML file.

    Locations without a `capacity` get `default_capacity`, unless the file
    overrides it under `instance.default_capacity`.
    """
    return parse_instance(_read_yaml(path), default_capacity)

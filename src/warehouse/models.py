"""
SKU and Location models, plus instance validation.

Both models are frozen: an instance is loaded once and every solver call is a
pure function of it. Validation runs before any search starts, so a solver
never sees negative weights, duplicate identifiers or an empty side.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from src.errors import ValidationError

DEFAULT_LOCATION_CAPACITY = 100  # kg, the fixed limit used by the first slotting prototype
# Costs, loads and capacities are held in int64 arrays
MAX_INT_VALUE = int(np.iinfo(np.int64).max)


@dataclass(frozen=True)
class SKU:
    """A stockable item.

    Attributes:
        id: Unique SKU name.
        weight: Unit weight counted against a location's capacity.
        frequency: Outbound quantity over the demand window (30 days).
    """

    id: str
    weight: int
    frequency: int


@dataclass(frozen=True)
class Location:
    """A storage slot.

    Attributes:
        id: Unique location number.
        distance_to_exit: Travel cost factor from the slot to the exit.
        capacity: Maximum total weight of the SKUs slotted here.
    """

    id: int
    distance_to_exit: int
    capacity: int = DEFAULT_LOCATION_CAPACITY


def is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_instance(skus: Sequence[SKU], locations: Sequence[Location]) -> None:
    """Reject malformed input before a solver runs.

    Raises:
        ValidationError: On empty SKU or location lists, non-integer or
            negative numeric fields, non-positive capacities, duplicate identifiers,
            or values whose costs or sums would overflow 64-bit integers.
    """
    if not skus:
        raise ValidationError("At least one SKU is required")
    if not locations:
        raise ValidationError("At least one location is required")

    seen_skus: set[str] = set()
    for sku in skus:
        if not isinstance(sku.id, str) or not sku.id:
            raise ValidationError(f"SKU id must be a non-empty string, got {sku.id!r}")
        if sku.id in seen_skus:
            raise ValidationError(f"Duplicate SKU id {sku.id!r}")
        seen_skus.add(sku.id)
        for field_name in ("weight", "frequency"):
            value = getattr(sku, field_name)
            if not is_int(value):
                raise ValidationError(f"SKU {sku.id!r}: {field_name} must be an integer, got {value!r}")
            if value < 0:
                raise ValidationError(f"SKU {sku.id!r}: {field_name} must be >= 0, got {value}")

    seen_locations: set[int] = set()
    for loc in locations:
        if not is_int(loc.id):
            raise ValidationError(f"Location id must be an integer, got {loc.id!r}")
        if loc.id in seen_locations:
            raise ValidationError(f"Duplicate location id {loc.id}")
        seen_locations.add(loc.id)
        if not is_int(loc.distance_to_exit) or loc.distance_to_exit < 0:
            raise ValidationError(
                f"Location {loc.id}: distance_to_exit must be a non-negative integer, "
                f"got {loc.distance_to_exit!r}"
            )
        if not is_int(loc.capacity) or loc.capacity <= 0:
            raise ValidationError(
                f"Location {loc.id}: capacity must be a positive integer, got {loc.capacity!r}"
            )

    _check_magnitudes(skus, locations)


def _check_magnitudes(skus: Sequence[SKU], locations: Sequence[Location]) -> None:
    """Keep every cost, load and capacity sum inside the int64 range."""
    for sku in skus:
        for field_name in ("weight", "frequency"):
            if getattr(sku, field_name) > MAX_INT_VALUE:
                raise ValidationError(f"SKU {sku.id!r}: {field_name} exceeds {MAX_INT_VALUE}")
    for loc in locations:
        for field_name in ("distance_to_exit", "capacity"):
            if getattr(loc, field_name) > MAX_INT_VALUE:
                raise ValidationError(f"Location {loc.id}: {field_name} exceeds {MAX_INT_VALUE}")

    worst_cost = (
        max(s.frequency for s in skus) * max(loc.distance_to_exit for loc in locations) * len(skus)
    )
    if worst_cost > MAX_INT_VALUE:
        raise ValidationError(f"Total retrieval cost could exceed {MAX_INT_VALUE}")
    if sum(s.weight for s in skus) > MAX_INT_VALUE:
        raise ValidationError(f"Total SKU weight exceeds {MAX_INT_VALUE}")
    if sum(loc.capacity for loc in locations) > MAX_INT_VALUE:
        raise ValidationError(f"Total location capacity exceeds {MAX_INT_VALUE}")

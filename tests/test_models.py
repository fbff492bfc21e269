"""Tests for the SKU/Location models, validation and YAML loaders.

Run with: pytest tests/test_models.py -v
"""

from pathlib import Path

import pytest

from src.errors import ValidationError
from src.warehouse.config import (
    SAMPLE_LOCATIONS,
    SAMPLE_SKUS,
    InstanceConfig,
    SlottingConfig,
    SolverConfig,
    load_config,
    load_instance,
    parse_instance,
)
from src.warehouse.models import DEFAULT_LOCATION_CAPACITY, SKU, Location, validate_instance

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def instance_yaml(tmp_path) -> Path:
    path = tmp_path / "instance.yaml"
    path.write_text(
        "instance:\n"
        "  default_capacity: 150\n"
        "skus:\n"
        "  - {id: A, weight: 20, frequency: 5}\n"
        "  - {id: B, weight: 40, frequency: 9}\n"
        "locations:\n"
        "  - {id: 0, distance_to_exit: 1}\n"
        "  - {id: 1, distance_to_exit: 4, capacity: 60}\n",
        encoding="utf-8",
    )
    return path


class TestModels:
    """Unit tests for the frozen data models."""

    def test_location_default_capacity(self):
        assert Location(id=0, distance_to_exit=3).capacity == DEFAULT_LOCATION_CAPACITY == 100

    def test_models_are_frozen(self):
        sku = SKU("A", 1, 1)
        with pytest.raises(AttributeError):
            sku.weight = 5  # type: ignore[misc]

    def test_sample_instance(self):
        assert [s.id for s in SAMPLE_SKUS] == ["SKU1", "SKU2", "SKU3", "SKU4", "SKU5"]
        assert [loc.distance_to_exit for loc in SAMPLE_LOCATIONS] == [1, 2, 3, 4, 5]
        assert all(loc.capacity == 100 for loc in SAMPLE_LOCATIONS)
        validate_instance(SAMPLE_SKUS, SAMPLE_LOCATIONS)


class TestValidation:
    """validate_instance rejects every malformed input before search."""

    @pytest.fixture
    def locations(self) -> list[Location]:
        return [Location(0, 1), Location(1, 2)]

    def test_valid_instance_passes(self, locations):
        validate_instance([SKU("A", 0, 0), SKU("B", 10, 3)], locations)

    def test_empty_skus(self, locations):
        with pytest.raises(ValidationError, match="SKU"):
            validate_instance([], locations)

    def test_empty_locations(self):
        with pytest.raises(ValidationError, match="location"):
            validate_instance([SKU("A", 1, 1)], [])

    @pytest.mark.parametrize(
        "sku",
        [
            SKU("A", -1, 1),
            SKU("A", 1, -1),
            SKU("A", 1.5, 1),  # type: ignore[arg-type]
            SKU("A", True, 1),  # type: ignore[arg-type]
            SKU("", 1, 1),
        ],
    )
    def test_bad_sku(self, sku, locations):
        with pytest.raises(ValidationError):
            validate_instance([sku], locations)

    @pytest.mark.parametrize(
        "location",
        [
            Location(0, -1),
            Location(0, 1, capacity=0),
            Location(0, 1, capacity=-10),
            Location("0", 1),  # type: ignore[arg-type]
        ],
    )
    def test_bad_location(self, location):
        with pytest.raises(ValidationError):
            validate_instance([SKU("A", 1, 1)], [location])

    def test_duplicate_sku_id(self, locations):
        with pytest.raises(ValidationError, match="Duplicate SKU"):
            validate_instance([SKU("A", 1, 1), SKU("A", 2, 2)], locations)

    def test_duplicate_location_id(self):
        with pytest.raises(ValidationError, match="Duplicate location"):
            validate_instance([SKU("A", 1, 1)], [Location(3, 1), Location(3, 2)])

    def test_validation_error_is_value_error(self):
        assert issubclass(ValidationError, ValueError)

    @pytest.mark.parametrize(
        "skus, locations",
        [
            ([SKU("A", 2**64, 1)], [Location(0, 1)]),
            ([SKU("A", 1, 2**63)], [Location(0, 1)]),
            ([SKU("A", 1, 1)], [Location(0, 2**63)]),
            ([SKU("A", 1, 1)], [Location(0, 1, capacity=2**64)]),
        ],
    )
    def test_field_beyond_int64(self, skus, locations):
        with pytest.raises(ValidationError, match="exceeds"):
            validate_instance(skus, locations)

    def test_cost_overflow_rejected(self):
        """Each field fits in int64 but frequency × distance does not."""
        with pytest.raises(ValidationError, match="cost"):
            validate_instance([SKU("A", 1, 2**62)], [Location(0, 1), Location(1, 4)])

    def test_weight_sum_overflow_rejected(self):
        skus = [SKU("A", 2**62, 0), SKU("B", 2**62, 0)]
        with pytest.raises(ValidationError, match="weight"):
            validate_instance(skus, [Location(0, 1)])

    def test_capacity_sum_overflow_rejected(self):
        locations = [Location(0, 1, capacity=2**62), Location(1, 1, capacity=2**62)]
        with pytest.raises(ValidationError, match="capacity"):
            validate_instance([SKU("A", 1, 1)], locations)

    def test_large_values_within_range(self):
        validate_instance([SKU("A", 1, 2**40)], [Location(0, 2**20), Location(1, 1, capacity=2**60)])


class TestConfigLoading:
    """YAML loaders for solver config and instances."""

    def test_defaults(self):
        cfg = SlottingConfig()
        assert cfg.solver == SolverConfig()
        assert cfg.solver.strategy == "bnb"
        assert cfg.solver.time_limit_s is None
        assert cfg.instance == InstanceConfig(default_capacity=100)

    def test_load_config(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text(
            "solver:\n  strategy: parallel\n  time_limit_s: 2.5\n  n_workers: 2\n"
            "instance:\n  default_capacity: 80\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.solver.strategy == "parallel"
        assert cfg.solver.time_limit_s == 2.5
        assert cfg.solver.n_workers == 2
        assert cfg.solver.node_limit is None
        assert cfg.instance.default_capacity == 80

    @pytest.mark.parametrize(
        "text, message",
        [
            ("solver:\n  strategy: annealing\n", "Unknown strategy"),
            ("solver:\n  timelimit: 3\n", "timelimit"),
            ("solver:\n  time_limit_s: 0\n", "time_limit_s"),
            ("solver:\n  n_workers: 0\n", "n_workers"),
            ("solver: fast\n", "mapping"),
            ("instance:\n  default_capacity: -1\n", "default_capacity"),
        ],
    )
    def test_load_config_rejects_bad_values(self, tmp_path, text, message):
        path = tmp_path / "bad.yaml"
        path.write_text(text, encoding="utf-8")
        with pytest.raises(ValidationError, match=message):
            load_config(path)

    def test_load_empty_config(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == SlottingConfig()

    def test_shipped_config_loads(self):
        path = REPO_ROOT / "config" / "default_slotting.yaml"
        cfg = load_config(path)
        skus, locations = load_instance(path, cfg.instance.default_capacity)
        assert [s.id for s in skus] == [s.id for s in SAMPLE_SKUS]
        assert locations == list(SAMPLE_LOCATIONS)

    def test_load_instance_applies_default_capacity(self, instance_yaml):
        skus, locations = load_instance(instance_yaml)
        assert skus == [SKU("A", 20, 5), SKU("B", 40, 9)]
        assert locations[0].capacity == 150  # file-level default
        assert locations[1].capacity == 60  # explicit

    def test_parse_instance_missing_field(self):
        raw = {"skus": [{"id": "A", "weight": 1}], "locations": [{"id": 0, "distance_to_exit": 1}]}
        with pytest.raises(ValidationError, match="frequency"):
            parse_instance(raw)

    def test_parse_instance_empty(self):
        with pytest.raises(ValidationError):
            parse_instance({})

    def test_parse_instance_caller_default(self):
        raw = {
            "skus": [{"id": "A", "weight": 1, "frequency": 1}],
            "locations": [{"id": 0, "distance_to_exit": 1}],
        }
        _, locations = parse_instance(raw, default_capacity=42)
        assert locations[0].capacity == 42

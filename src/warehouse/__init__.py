from src.warehouse.config import SlottingConfig, SolverConfig, load_config, load_instance
from src.warehouse.models import SKU, Location, validate_instance

__all__ = [
    "SlottingConfig",
    "SolverConfig",
    "load_config",
    "load_instance",
    "SKU",
    "Location",
    "validate_instance",
]

# services/__init__.py

from .estimate_service import (
    EstimateService,
    aggregate_items,
    compute_breakdown,
    manual_entry,
)

__all__ = [
    "EstimateService",
    "aggregate_items",
    "compute_breakdown",
    "manual_entry",
]

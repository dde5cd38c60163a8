# services/estimate_service.py

import os
import time
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from ..config import settings
from ..core import geometry
from ..core.common_types import (
    AggregateBreakdown,
    CostBreakdown,
    EstimateEntry,
    ItemBreakdown,
    PrintMedium,
    ProcessParameters,
    VolumeResult,
)
from ..core.exceptions import InvalidParameterError
from ..core.utils import non_negative
from ..processes import get_processor, split_energy

logger = logging.getLogger(__name__)

DEFAULT_MANUAL_NAME = "Manual estimate"
MM3_PER_ML = 1000.0


def aggregate_items(items: Sequence[ItemBreakdown], project_energy_cost: float = 0.0) -> AggregateBreakdown:
    """
    Sums the successful items of a batch.

    Failed items only count toward ``item_count``. The project-level energy
    charge is added once on top of the item totals.
    """
    valid = [item for item in items if item.ok]

    total_material_cost = sum(item.material_cost for item in valid)
    item_energy_cost = sum(item.energy_cost for item in valid)
    items_total_cost = sum(item.total_cost for item in valid)

    return AggregateBreakdown(
        item_count=len(items),
        valid_items=len(valid),
        failed_items=len(items) - len(valid),
        total_volume_mm3=sum(item.volume_mm3 for item in valid),
        total_volume_ml=sum(item.total_ml or 0.0 for item in valid),
        total_support_ml=sum(item.support_ml or 0.0 for item in valid),
        total_filament_grams=sum(item.filament_grams or 0.0 for item in valid),
        total_material_cost=total_material_cost,
        item_energy_cost=item_energy_cost,
        project_energy_cost=project_energy_cost,
        energy_cost=item_energy_cost + project_energy_cost,
        total_cost=items_total_cost + project_energy_cost,
    )


def compute_breakdown(entries: Sequence[EstimateEntry],
                      params: ProcessParameters) -> Tuple[List[ItemBreakdown], AggregateBreakdown]:
    """
    Prices a batch of named volumes.

    Args:
        entries: Named volumes (or decode failures), in display order.
        params: Process parameters for the whole batch.

    Returns:
        The per-item breakdowns (same order as ``entries``) and the aggregate.
    """
    processor = get_processor(params.medium)
    item_energy_cost, project_energy_cost = split_energy(params)

    items = [processor.price_item(entry, params, item_energy_cost) for entry in entries]
    aggregate = aggregate_items(items, project_energy_cost)
    return items, aggregate


def manual_entry(name: Optional[str],
                 params: ProcessParameters,
                 resin_ml: Optional[float] = None,
                 filament_grams: Optional[float] = None) -> EstimateEntry:
    """
    Builds an entry from user-supplied quantities instead of a mesh.

    Resin usage in mL is converted to the equivalent mm³. For filament the
    given mass replaces the geometric estimate.

    Raises:
        InvalidParameterError: If the quantity for the selected medium is missing.
    """
    name = name or DEFAULT_MANUAL_NAME
    if params.medium == PrintMedium.RESIN:
        if resin_ml is None:
            raise InvalidParameterError("Manual resin estimate needs a resin usage in mL.")
        return EstimateEntry(name=name, volume=VolumeResult.ok(non_negative(resin_ml) * MM3_PER_ML))

    if filament_grams is None:
        raise InvalidParameterError("Manual filament estimate needs a filament mass in grams.")
    return EstimateEntry(
        name=name,
        volume=VolumeResult.ok(non_negative(resin_ml) * MM3_PER_ML),
        filament_grams_override=filament_grams,
    )


class EstimateService:
    """Service layer for turning files, uploads or manual figures into cost breakdowns."""

    def __init__(self, max_workers: Optional[int] = None):
        """
        Initialize the EstimateService.

        Args:
            max_workers: Thread pool size for decoding batches. Defaults to settings.
        """
        self.max_workers = max_workers or settings.max_workers
        logger.debug(f"EstimateService initialized (max_workers={self.max_workers}).")

    def measure_files(self, file_paths: Sequence[str]) -> List[EstimateEntry]:
        """Decodes every file and measures its volume. Output order matches input order."""
        file_paths = [str(p) for p in file_paths]
        if not file_paths:
            return []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            volumes = list(executor.map(geometry.estimate_volume_from_file, file_paths))
        return [EstimateEntry(name=os.path.basename(path), volume=volume)
                for path, volume in zip(file_paths, volumes)]

    def measure_uploads(self, uploads: Sequence[Tuple[str, bytes]]) -> List[EstimateEntry]:
        """Same as measure_files for in-memory (name, bytes) pairs."""
        if not uploads:
            return []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            volumes = list(executor.map(geometry.estimate_volume, [data for _, data in uploads]))
        return [EstimateEntry(name=name, volume=volume)
                for (name, _), volume in zip(uploads, volumes)]

    def estimate_entries(self, entries: Sequence[EstimateEntry], params: ProcessParameters) -> CostBreakdown:
        """Runs the cost model over prepared entries."""
        start_time = time.time()
        logger.info(f"Estimating {len(entries)} item(s): medium={params.medium.value}, "
                    f"aggregation={params.cost_aggregation.value}")

        items, aggregate = compute_breakdown(entries, params)

        if aggregate.failed_items:
            logger.warning(f"{aggregate.failed_items} of {aggregate.item_count} item(s) could not be measured.")
        logger.info(f"Estimate finished in {time.time() - start_time:.3f}s. "
                    f"Valid items: {aggregate.valid_items}, Total cost: {aggregate.total_cost:.4f}")
        return CostBreakdown(parameters=params, items=items, aggregate=aggregate)

    def estimate_files(self, file_paths: Sequence[str], params: ProcessParameters) -> CostBreakdown:
        """Measures and prices a batch of STL files."""
        return self.estimate_entries(self.measure_files(file_paths), params)

    def estimate_uploads(self, uploads: Sequence[Tuple[str, bytes]], params: ProcessParameters) -> CostBreakdown:
        """Measures and prices a batch of in-memory STL payloads."""
        return self.estimate_entries(self.measure_uploads(uploads), params)

    def estimate_manual(self,
                        name: Optional[str],
                        params: ProcessParameters,
                        resin_ml: Optional[float] = None,
                        filament_grams: Optional[float] = None) -> CostBreakdown:
        """Prices a single manual entry."""
        entry = manual_entry(name, params, resin_ml=resin_ml, filament_grams=filament_grams)
        return self.estimate_entries([entry], params)

# processes/resin/processor.py

import os
import logging

from ..base_processor import BaseProcessor
from ...core.common_types import EstimateEntry, ItemBreakdown, PrintMedium, ProcessParameters
from ...core.utils import warn_if_outside_percent

logger = logging.getLogger(__name__)

ML_PER_MM3 = 1.0 / 1000.0


class ResinProcessor(BaseProcessor):
    """Cost model for resin (SLA/MSLA) prints, priced per liter."""

    def __init__(self):
        super().__init__(medium=PrintMedium.RESIN)

    @property
    def material_file_path(self) -> str:
        return os.path.join(os.path.dirname(__file__), "materials.json")

    def calculate_item(self, entry: EstimateEntry, params: ProcessParameters, energy_cost: float) -> ItemBreakdown:
        warn_if_outside_percent("support_percent", params.support_percent)

        volume_mm3 = entry.volume.volume_mm3
        volume_ml = volume_mm3 * ML_PER_MM3
        support_ml = volume_ml * (params.support_percent / 100.0)
        total_ml = volume_ml + support_ml if params.include_supports else volume_ml

        price_per_ml = params.price_per_liter / 1000.0
        material_cost = total_ml * price_per_ml

        logger.debug(f"{entry.name}: {volume_ml:.3f} mL + {support_ml:.3f} mL supports "
                     f"(included: {params.include_supports}) -> {material_cost:.4f}")

        return ItemBreakdown(
            name=entry.name,
            medium=self.medium,
            volume_mm3=volume_mm3,
            volume_ml=volume_ml,
            support_ml=support_ml,
            total_ml=total_ml,
            material_cost=material_cost,
            energy_cost=energy_cost,
            total_cost=material_cost + energy_cost,
        )

# processes/filament/processor.py

import os
import logging

from ..base_processor import BaseProcessor
from ...core.common_types import EstimateEntry, ItemBreakdown, PrintMedium, ProcessParameters
from ...core.utils import non_negative, warn_if_outside_percent

logger = logging.getLogger(__name__)

CM3_PER_MM3 = 1.0 / 1000.0


class FilamentProcessor(BaseProcessor):
    """Cost model for filament (FDM) prints, priced per kilogram."""

    def __init__(self):
        super().__init__(medium=PrintMedium.FILAMENT)

    @property
    def material_file_path(self) -> str:
        return os.path.join(os.path.dirname(__file__), "materials.json")

    def calculate_item(self, entry: EstimateEntry, params: ProcessParameters, energy_cost: float) -> ItemBreakdown:
        warn_if_outside_percent("infill_percent", params.infill_percent)

        volume_mm3 = entry.volume.volume_mm3
        volume_cm3 = volume_mm3 * CM3_PER_MM3
        # Shell factor is added on top of the infill ratio.
        infill_ratio = non_negative(params.infill_percent) / 100.0
        effective_volume_cm3 = volume_cm3 * (infill_ratio + params.shell_factor)

        if entry.filament_grams_override is not None:
            filament_grams = non_negative(entry.filament_grams_override)
            logger.debug(f"{entry.name}: using manual filament mass {filament_grams:.2f} g")
        else:
            filament_grams = effective_volume_cm3 * params.filament_density

        price_per_gram = params.price_per_kg / 1000.0
        material_cost = filament_grams * price_per_gram

        logger.debug(f"{entry.name}: {effective_volume_cm3:.3f} cm³ effective, "
                     f"{filament_grams:.2f} g -> {material_cost:.4f}")

        return ItemBreakdown(
            name=entry.name,
            medium=self.medium,
            volume_mm3=volume_mm3,
            volume_cm3=volume_cm3,
            effective_volume_cm3=effective_volume_cm3,
            filament_grams=filament_grams,
            material_cost=material_cost,
            energy_cost=energy_cost,
            total_cost=material_cost + energy_cost,
        )

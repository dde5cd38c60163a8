# processes/base_processor.py

import os
import json
import logging
import abc
from typing import List, Dict, Any, Tuple

from ..core.common_types import (
    CostAggregation,
    EstimateEntry,
    ItemBreakdown,
    MaterialInfo,
    PrintMedium,
    ProcessParameters,
)
from ..core.exceptions import (
    ConfigurationError,
    InvalidParameterError,
    MaterialNotFoundError,
)
from ..core.utils import non_negative

logger = logging.getLogger(__name__)


def energy_cost_base(params: ProcessParameters) -> float:
    """
    Energy cost of one print run: kW * hours * rate.

    Negative hours and rates are clamped to zero. Returns 0 when energy is
    excluded.
    """
    if not params.include_energy:
        return 0.0
    return (params.printer_power_watts / 1000.0) * non_negative(params.print_hours) * non_negative(params.energy_rate)


def split_energy(params: ProcessParameters) -> Tuple[float, float]:
    """Returns the (per-item, per-project) energy charges for the aggregation mode."""
    base = energy_cost_base(params)
    if params.cost_aggregation == CostAggregation.PER_PROJECT:
        return 0.0, base
    return base, 0.0


class BaseProcessor(abc.ABC):
    """
    Abstract Base Class for the per-medium cost models.
    Defines the common interface for material presets and per-item costing.
    """

    _materials_cache: Dict[str, Dict[str, MaterialInfo]] = {}

    def __init__(self, medium: PrintMedium):
        """
        Initializes the BaseProcessor.

        Args:
            medium: The print medium this processor prices.
        """
        self.medium = medium

    @property
    @abc.abstractmethod
    def material_file_path(self) -> str:
        """Abstract property that must return the path to the medium-specific material JSON file."""
        pass

    @property
    def materials(self) -> Dict[str, MaterialInfo]:
        """Material presets by ID, read from disk on first use and cached per file."""
        path = self.material_file_path
        if path not in BaseProcessor._materials_cache:
            BaseProcessor._materials_cache[path] = self._load_material_data()
        return BaseProcessor._materials_cache[path]

    def _load_material_data(self) -> Dict[str, MaterialInfo]:
        """Loads material presets from the JSON file specified by material_file_path."""
        if not self.material_file_path or not os.path.exists(self.material_file_path):
            logger.error(f"Material file not found for {self.medium.value}: {self.material_file_path}")
            raise ConfigurationError(f"Material definition file missing for {self.medium.value}.")

        try:
            with open(self.material_file_path, 'r', encoding='utf-8') as f:
                materials_data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Error decoding JSON from material file {self.material_file_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Invalid JSON in material file: {self.material_file_path}") from e

        materials: Dict[str, MaterialInfo] = {}
        for mat_data in materials_data:
            if mat_data.get("medium") != self.medium.value:
                logger.warning(f"Skipping material '{mat_data.get('id', 'N/A')}' "
                               f"defined in {os.path.basename(self.material_file_path)} "
                               f"as its medium ('{mat_data.get('medium')}') "
                               f"does not match processor medium ('{self.medium.value}').")
                continue
            try:
                material = MaterialInfo(**mat_data)
            except ValueError as e:  # pydantic ValidationError
                logger.warning(f"Skipping invalid material definition for ID '{mat_data.get('id', 'N/A')}': {e}")
                continue
            materials[material.id] = material

        if not materials:
            logger.warning(f"No valid materials loaded for {self.medium.value} from {self.material_file_path}.")
        else:
            logger.debug(f"Loaded {len(materials)} materials for {self.medium.value}.")
        return materials

    def get_material_info(self, material_id: str) -> MaterialInfo:
        """
        Retrieves the MaterialInfo object for a given material ID.

        Raises:
            MaterialNotFoundError: If the material_id is not found for this medium.
        """
        material = self.materials.get(material_id)
        if not material:
            available_ids = list(self.materials.keys())
            logger.error(f"Material ID '{material_id}' not found for {self.medium.value}.")
            raise MaterialNotFoundError(
                f"Material '{material_id}' is not available for {self.medium.value}. "
                f"Available materials: {available_ids}"
            )
        return material

    def list_available_materials(self) -> List[Dict[str, Any]]:
        """Returns a list of available materials for this medium."""
        return [mat.model_dump(mode="json") for mat in self.materials.values()]

    def price_item(self, entry: EstimateEntry, params: ProcessParameters, energy_cost: float) -> ItemBreakdown:
        """
        Produces the breakdown for one entry, passing failures through untouched.

        Args:
            entry: The named volume (or failure) to price.
            params: Process parameters; their medium must match this processor.
            energy_cost: Energy charged to this item (0 in per-project mode).
        """
        if params.medium != self.medium:
            raise InvalidParameterError(
                f"{type(self).__name__} prices {self.medium.value}, got parameters for {params.medium.value}."
            )
        if not entry.volume.success:
            return ItemBreakdown(name=entry.name, medium=self.medium, error=entry.volume.error)
        return self.calculate_item(entry, params, energy_cost)

    @abc.abstractmethod
    def calculate_item(self, entry: EstimateEntry, params: ProcessParameters, energy_cost: float) -> ItemBreakdown:
        """
        Calculates material quantities and cost for a successfully measured entry.

        Args:
            entry: Entry with a successful volume.
            params: Process parameters.
            energy_cost: Energy charged to this item.

        Returns:
            An ItemBreakdown with the medium-specific fields filled in.
        """
        pass

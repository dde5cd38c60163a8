# processes/__init__.py

# This file makes the 'processes' directory a Python package and exposes
# the medium -> processor factory.

import logging
from typing import Dict, Optional, Type

from ..core.common_types import MaterialInfo, PrintMedium
from ..core.exceptions import InvalidParameterError, MaterialNotFoundError
from .base_processor import BaseProcessor, energy_cost_base, split_energy
from .resin import ResinProcessor
from .filament import FilamentProcessor

logger = logging.getLogger(__name__)

PROCESSOR_MAP: Dict[PrintMedium, Type[BaseProcessor]] = {
    PrintMedium.RESIN: ResinProcessor,
    PrintMedium.FILAMENT: FilamentProcessor,
}

def get_processor(medium: PrintMedium) -> BaseProcessor:
    """Factory function to instantiate the processor for a print medium.

    Raises:
        InvalidParameterError: If the medium is not a known PrintMedium.
    """
    try:
        medium = PrintMedium(medium)
    except ValueError as e:
        raise InvalidParameterError(f"Unknown print medium: '{medium}'") from e
    return PROCESSOR_MAP[medium]()


def find_material(material_id: str, medium: Optional[PrintMedium] = None) -> MaterialInfo:
    """
    Looks up a material preset, in one medium or across all of them.

    Raises:
        MaterialNotFoundError: If no processor knows the ID.
    """
    if medium is not None:
        return get_processor(medium).get_material_info(material_id)
    for candidate in PROCESSOR_MAP:
        processor = get_processor(candidate)
        if material_id in processor.materials:
            return processor.materials[material_id]
    raise MaterialNotFoundError(f"Material '{material_id}' is not available for any print medium.")

__all__ = [
    "BaseProcessor",
    "ResinProcessor",
    "FilamentProcessor",
    "PROCESSOR_MAP",
    "get_processor",
    "find_material",
    "energy_cost_base",
    "split_energy",
]

# core/common_types.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# --- Process Enums ---

class PrintMedium(str, Enum):
    """Enum for the supported print media."""
    RESIN = "resin"
    FILAMENT = "filament"

class CostAggregation(str, Enum):
    """How the fixed energy charge is applied to a batch."""
    PER_ITEM = "per_item"        # Charged to every successfully computed item
    PER_PROJECT = "per_project"  # Charged once for the whole batch

# --- Geometry Related Models ---

class VolumeResult(BaseModel):
    """Outcome of deriving a volume from one mesh."""
    model_config = ConfigDict(frozen=True)

    success: bool = Field(..., description="True if a volume could be derived.")
    volume_mm3: Optional[float] = Field(None, ge=0, description="Enclosed volume in cubic millimetres (only on success).")
    error: Optional[str] = Field(None, description="Human-readable failure reason (only on failure).")

    @classmethod
    def ok(cls, volume_mm3: float) -> "VolumeResult":
        return cls(success=True, volume_mm3=volume_mm3)

    @classmethod
    def failed(cls, reason: str) -> "VolumeResult":
        return cls(success=False, error=reason)

# --- Costing Models ---

class ProcessParameters(BaseModel):
    """
    Process and pricing inputs for one cost computation.

    Percentages are not range checked; negative rates and hours are clamped
    where the energy cost is derived.
    """
    model_config = ConfigDict(frozen=True)

    medium: PrintMedium = Field(..., description="Print medium (resin or filament).")
    price_per_liter: Optional[float] = Field(None, description="Resin price per liter (required for resin).")
    price_per_kg: Optional[float] = Field(None, description="Filament price per kilogram (required for filament).")
    filament_density: float = Field(1.24, description="Filament density in g/cm³.")
    infill_percent: float = Field(20.0, description="Infill density in percent [0, 100].")
    shell_factor: float = Field(0.15, description="Volume fraction attributed to walls, added on top of infill.")
    support_percent: float = Field(20.0, description="Resin support volume as percent of model volume [0, 100].")
    include_supports: bool = Field(True, description="Add the support volume to the resin total.")
    include_energy: bool = Field(True, description="Charge printer energy.")
    cost_aggregation: CostAggregation = Field(..., description="Charge energy per item or once per project.")
    energy_rate: float = Field(..., description="Energy price per kWh.")
    printer_power_watts: float = Field(..., description="Printer power draw in watts.")
    print_hours: float = Field(..., description="Print duration in hours.")

    @model_validator(mode="after")
    def price_required_for_medium(self):
        if self.medium == PrintMedium.RESIN and self.price_per_liter is None:
            raise ValueError("price_per_liter is required for resin")
        if self.medium == PrintMedium.FILAMENT and self.price_per_kg is None:
            raise ValueError("price_per_kg is required for filament")
        return self

class EstimateEntry(BaseModel):
    """One input item for the cost model: a named volume (or failure)."""
    name: str
    volume: VolumeResult
    filament_grams_override: Optional[float] = Field(None, description="Manual filament mass; replaces the geometric estimate.")

class ItemBreakdown(BaseModel):
    """Cost breakdown for a single mesh or manual entry."""
    name: str = Field(..., description="File name or manual entry name.")
    medium: PrintMedium
    volume_mm3: Optional[float] = Field(None, description="Raw model volume in mm³.")
    # Resin
    volume_ml: Optional[float] = Field(None, description="Model volume in mL.")
    support_ml: Optional[float] = Field(None, description="Estimated support volume in mL.")
    total_ml: Optional[float] = Field(None, description="Resin used (model + supports if included) in mL.")
    # Filament
    volume_cm3: Optional[float] = Field(None, description="Model volume in cm³.")
    effective_volume_cm3: Optional[float] = Field(None, description="Volume actually printed (infill + shell) in cm³.")
    filament_grams: Optional[float] = Field(None, description="Filament mass in grams.")
    # Costs
    material_cost: Optional[float] = None
    energy_cost: Optional[float] = Field(None, description="Energy charged to this item (0 in per-project mode).")
    total_cost: Optional[float] = None
    error: Optional[str] = Field(None, description="Failure reason; no numeric fields are set when present.")

    @property
    def ok(self) -> bool:
        return self.error is None

class AggregateBreakdown(BaseModel):
    """Totals across all items of a batch."""
    item_count: int = 0
    valid_items: int = 0
    failed_items: int = 0
    total_volume_mm3: float = 0.0
    total_volume_ml: float = Field(0.0, description="Sum of resin used (resin only).")
    total_support_ml: float = 0.0
    total_filament_grams: float = 0.0
    total_material_cost: float = 0.0
    item_energy_cost: float = Field(0.0, description="Sum of per-item energy charges.")
    project_energy_cost: float = Field(0.0, description="Single project-level energy charge (per-project mode).")
    energy_cost: float = Field(0.0, description="Energy actually charged for the batch.")
    total_cost: float = Field(0.0, description="Material plus energy for the batch.")

class CostBreakdown(BaseModel):
    """Full result of a cost computation."""
    parameters: ProcessParameters
    items: List[ItemBreakdown] = Field(default_factory=list)
    aggregate: AggregateBreakdown

# --- Material Presets ---

class MaterialInfo(BaseModel):
    """A bundled material preset."""
    id: str = Field(..., description="Unique identifier (e.g., 'resin_standard_grey', 'pla_basic').")
    name: str = Field(..., description="User-friendly name.")
    medium: PrintMedium
    brand: Optional[str] = None
    price_per_liter: Optional[float] = Field(None, description="Resin price per liter.")
    price_per_kg: Optional[float] = Field(None, description="Filament price per kilogram.")
    density_g_cm3: Optional[float] = Field(None, description="Density in g/cm³.")

    def apply_to(self, params: ProcessParameters) -> ProcessParameters:
        """Returns a copy of ``params`` priced with this material."""
        update = {"medium": self.medium}
        if self.medium == PrintMedium.RESIN:
            update["price_per_liter"] = self.price_per_liter
        else:
            update["price_per_kg"] = self.price_per_kg
            if self.density_g_cm3 is not None:
                update["filament_density"] = self.density_g_cm3
        return ProcessParameters.model_validate({**params.model_dump(), **update})

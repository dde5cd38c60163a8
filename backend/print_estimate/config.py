# config.py

import logging
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

from .core.common_types import CostAggregation, PrintMedium, ProcessParameters

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

class Settings(BaseSettings):
    """
    Application configuration settings loaded from environment variables and .env file.

    The process defaults only seed the CLI; the cost model itself always
    receives an explicit ProcessParameters.
    """
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        env_prefix='PRINT_ESTIMATE_',
        extra='ignore' # Ignore extra fields from environment/dotenv
    )

    # Logging Configuration
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")

    # Batch decoding
    max_workers: int = Field(4, description="Thread pool size for decoding a batch of meshes (>= 1)")

    # Process defaults
    medium: PrintMedium = Field(PrintMedium.RESIN, description="Default print medium")
    price_per_liter: float = Field(200.0, description="Default resin price per liter")
    price_per_kg: float = Field(25.0, description="Default filament price per kilogram")
    filament_density: float = Field(1.24, description="Default filament density (g/cm³)")
    infill_percent: float = Field(20.0, description="Default infill percent")
    shell_factor: float = Field(0.15, description="Default shell factor")
    support_percent: float = Field(20.0, description="Default resin support percent")
    include_supports: bool = Field(True, description="Include supports in resin cost by default")
    include_energy: bool = Field(True, description="Include energy cost by default")
    cost_aggregation: CostAggregation = Field(CostAggregation.PER_ITEM, description="Default energy aggregation mode")
    energy_rate: float = Field(0.2, description="Default energy price per kWh")
    printer_power_watts: float = Field(50.0, description="Default printer power draw (W)")
    print_hours: float = Field(2.0, description="Default print duration (hours)")

    # Validators
    @field_validator('log_level')
    @classmethod
    def log_level_must_be_valid(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of {valid_levels}')
        return v.upper()

    @field_validator('max_workers')
    @classmethod
    def max_workers_must_be_positive(cls, v):
        if v < 1:
            raise ValueError('max_workers must be greater than or equal to 1')
        return v

    def default_parameters(self, **overrides) -> ProcessParameters:
        """Builds ProcessParameters from these defaults; ``None`` overrides are ignored."""
        values = {
            "medium": self.medium,
            "price_per_liter": self.price_per_liter,
            "price_per_kg": self.price_per_kg,
            "filament_density": self.filament_density,
            "infill_percent": self.infill_percent,
            "shell_factor": self.shell_factor,
            "support_percent": self.support_percent,
            "include_supports": self.include_supports,
            "include_energy": self.include_energy,
            "cost_aggregation": self.cost_aggregation,
            "energy_rate": self.energy_rate,
            "printer_power_watts": self.printer_power_watts,
            "print_hours": self.print_hours,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ProcessParameters(**values)


def setup_logging(level: str = None):
    """Configures the root logger from settings (or an explicit level)."""
    logging.basicConfig(level=level or settings.log_level, format=LOG_FORMAT)
    logger.debug(f"Logging configured. Level: {level or settings.log_level}")


# --- Singleton Instance ---
# Create a single instance of the settings to be imported across the application
settings = Settings()

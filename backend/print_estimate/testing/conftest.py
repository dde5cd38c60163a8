# testing/conftest.py

import struct
import logging
from pathlib import Path
from typing import Callable

import numpy as np
import pytest
import trimesh

from print_estimate.core.common_types import (
    CostAggregation,
    EstimateEntry,
    PrintMedium,
    ProcessParameters,
    VolumeResult,
)
from print_estimate.core.geometry import Mesh, mesh_from_trimesh

logger = logging.getLogger(__name__)

# --- Helpers ---

def write_binary_stl(triangles: np.ndarray, header: bytes = b"print_estimate test") -> bytes:
    """Packs (t, 3, 3) triangles into binary STL bytes."""
    data = bytearray()
    data.extend(header.ljust(80, b"\0"))
    data.extend(struct.pack("<I", len(triangles)))
    for tri in triangles:
        data.extend(struct.pack("<fff", 0.0, 0.0, 0.0))
        for v in tri:
            data.extend(struct.pack("<fff", *v))
        data.extend(struct.pack("<H", 0))
    return bytes(data)


def cube_trimesh(size: float = 10.0) -> trimesh.Trimesh:
    return trimesh.creation.box(extents=[size, size, size])


def volume_entry(name: str, volume_mm3: float) -> EstimateEntry:
    return EstimateEntry(name=name, volume=VolumeResult.ok(volume_mm3))


def failed_entry(name: str) -> EstimateEntry:
    return EstimateEntry(name=name, volume=VolumeResult.failed("could not decode mesh: test"))

# --- Fixtures ---

@pytest.fixture(scope="session")
def cube_10mm() -> Mesh:
    """8 vertices, 12 consistently wound triangles, 1000 mm³."""
    return mesh_from_trimesh(cube_trimesh(10.0))


@pytest.fixture(scope="session")
def cube_10mm_stl_bytes() -> bytes:
    return write_binary_stl(cube_trimesh(10.0).triangles)


@pytest.fixture
def stl_file_factory(tmp_path: Path) -> Callable[[str, bytes], Path]:
    def _write(name: str, data: bytes) -> Path:
        path = tmp_path / name
        path.write_bytes(data)
        return path
    return _write


@pytest.fixture
def resin_params() -> Callable[..., ProcessParameters]:
    """Resin parameters matching the worked example (200/L, 20% supports, energy off)."""
    def _make(**overrides) -> ProcessParameters:
        values = dict(
            medium=PrintMedium.RESIN,
            price_per_liter=200.0,
            support_percent=20.0,
            include_supports=True,
            include_energy=False,
            cost_aggregation=CostAggregation.PER_ITEM,
            energy_rate=0.2,
            printer_power_watts=50.0,
            print_hours=2.0,
        )
        values.update(overrides)
        return ProcessParameters(**values)
    return _make


@pytest.fixture
def filament_params() -> Callable[..., ProcessParameters]:
    """Filament parameters matching the worked example (25/kg, 20% infill, 0.15 shell, 1.24 g/cm³)."""
    def _make(**overrides) -> ProcessParameters:
        values = dict(
            medium=PrintMedium.FILAMENT,
            price_per_kg=25.0,
            filament_density=1.24,
            infill_percent=20.0,
            shell_factor=0.15,
            include_energy=False,
            cost_aggregation=CostAggregation.PER_ITEM,
            energy_rate=0.2,
            printer_power_watts=50.0,
            print_hours=2.0,
        )
        values.update(overrides)
        return ProcessParameters(**values)
    return _make

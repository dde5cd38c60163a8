# print_estimate/__init__.py

# This file makes the 'print_estimate' directory a Python package.

from . import core
from . import processes
from . import services

from .core.geometry import Mesh, compute_volume_mm3, decode_mesh, estimate_volume
from .services.estimate_service import compute_breakdown, manual_entry

# Define what gets imported with 'from print_estimate import *'
__all__ = [
    "core",
    "processes",
    "services",
    "Mesh",
    "compute_volume_mm3",
    "decode_mesh",
    "estimate_volume",
    "compute_breakdown",
    "manual_entry",
]

# processes/filament/__init__.py

from .processor import FilamentProcessor

__all__ = ["FilamentProcessor"]

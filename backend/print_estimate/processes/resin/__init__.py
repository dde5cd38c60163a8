# processes/resin/__init__.py

from .processor import ResinProcessor

__all__ = ["ResinProcessor"]

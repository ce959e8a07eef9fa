"""Input/output helpers for gitprocess."""

from .config import load_settings
from .logging import StructuredLogger

__all__ = ["StructuredLogger", "load_settings"]

"""Facility, telemetry and equipment class models."""

from .base import EquipmentProfile
from .registry import EquipmentClassRegistry

# Importing the package registers every equipment class
from . import equipment  # noqa: F401  isort:skip

__all__ = ["EquipmentClassRegistry", "EquipmentProfile"]

"""Base classes for equipment class profiles.

An equipment class groups units that share anomaly thresholds and a rated
supply/return temperature split. Zone-level overrides are merged on top of
the class defaults when a unit is evaluated.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any

from ..const import DEFAULT_ANOMALY_THRESHOLDS, AnomalyThresholds, HvacAction


@dataclass
class EquipmentProfile(ABC):
    """Abstract base class for equipment class profiles.

    Each equipment class should subclass this and provide:
    - Rated delta-T per operating action (refrigerant_low reference)
    - Anomaly thresholds tuned for the class
    - Whether heating runs the compressor
    """

    # Identity
    class_name: str
    description: str

    # Rated air-side temperature split (°F)
    rated_delta_t_cool_f: float
    rated_delta_t_heat_f: float

    # Capabilities
    has_compressor_heat: bool = False  # Heat pump style heating uses the compressor

    # Anomaly thresholds for the class
    thresholds: AnomalyThresholds = DEFAULT_ANOMALY_THRESHOLDS

    @abstractmethod
    def rated_delta_t(self, action: HvacAction | None) -> float | None:
        """Rated |return - supply| for the current action.

        Args:
            action: Current thermostat HVAC action

        Returns:
            Rated delta-T in °F, or None when no rating applies (idle/off)
        """

    def resolve_thresholds(self, overrides: Mapping[str, Any] | None = None) -> AnomalyThresholds:
        """Merge zone-level overrides over the class thresholds.

        Unknown keys are ignored so older facility files keep loading.

        Args:
            overrides: Threshold name → value mapping from the zone

        Returns:
            AnomalyThresholds for one unit
        """
        if not overrides:
            return self.thresholds

        known = {f.name for f in fields(AnomalyThresholds)}
        applicable = {key: value for key, value in overrides.items() if key in known}
        return replace(self.thresholds, **applicable)

    def compressor_expected(self, action: HvacAction | None) -> bool:
        """Whether the compressor should run for this action."""
        if action == HvacAction.COOLING:
            return True
        if action == HvacAction.HEATING:
            return self.has_compressor_heat
        return False

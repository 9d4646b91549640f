"""Split heat pump profile.

The compressor runs for both heating and cooling. Heating splits are
smaller than a furnace's, so refrigerant_low compares against a lower
rated delta-T in heating.
"""

from dataclasses import dataclass

from ...const import AnomalyThresholds, HvacAction
from ..base import EquipmentProfile
from ..registry import EquipmentClassRegistry


@EquipmentClassRegistry.register("heat_pump")
@dataclass
class HeatPumpProfile(EquipmentProfile):
    """Air-source split heat pump.

    **Cooling**: 16-20°F split
    **Heating**: 20-30°F rise, falling with outdoor temperature
    """

    class_name: str = "Heat Pump"
    description: str = "Air-source heat pump, compressor heat and cool"

    rated_delta_t_cool_f: float = 18.0
    rated_delta_t_heat_f: float = 25.0

    has_compressor_heat: bool = True

    thresholds: AnomalyThresholds = AnomalyThresholds(
        short_cycle_count_1h=6,
        long_cycle_min=240.0,  # Long heating runs are normal in cold weather
    )

    def rated_delta_t(self, action: HvacAction | None) -> float | None:
        """Rated split for compressor heating and cooling."""
        if action == HvacAction.COOLING:
            return self.rated_delta_t_cool_f
        if action == HvacAction.HEATING:
            return self.rated_delta_t_heat_f
        return None

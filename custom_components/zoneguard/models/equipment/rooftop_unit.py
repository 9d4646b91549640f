"""Packaged rooftop unit profile.

DX cooling with gas-fired heat. The compressor only runs for cooling, so
heating calls never count toward compressor rules.
"""

from dataclasses import dataclass

from ...const import AnomalyThresholds, HvacAction
from ..base import EquipmentProfile
from ..registry import EquipmentClassRegistry


@EquipmentClassRegistry.register("rooftop_unit")
@dataclass
class RooftopUnitProfile(EquipmentProfile):
    """Packaged rooftop unit (RTU).

    **Cooling**: 18-22°F split across the evaporator at rated airflow
    **Heating**: 40-70°F rise across the heat exchanger (gas)
    **Cycling**: Multi-stage units start more often, so the hourly limit is looser
    """

    class_name: str = "Rooftop Unit"
    description: str = "Packaged DX cooling with gas heat"

    rated_delta_t_cool_f: float = 20.0
    rated_delta_t_heat_f: float = 45.0

    has_compressor_heat: bool = False

    thresholds: AnomalyThresholds = AnomalyThresholds(
        short_cycle_count_1h=6,
        long_cycle_min=180.0,
        filter_restriction_delta_t_max=25.0,
    )

    def rated_delta_t(self, action: HvacAction | None) -> float | None:
        """Rated split for cooling and gas heat."""
        if action == HvacAction.COOLING:
            return self.rated_delta_t_cool_f
        if action == HvacAction.HEATING:
            return self.rated_delta_t_heat_f
        return None

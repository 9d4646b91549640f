"""Split system profile.

Outdoor condensing unit with an indoor furnace or air handler. Heat comes
from the furnace, so only cooling runs the compressor.
"""

from dataclasses import dataclass

from ...const import AnomalyThresholds, HvacAction
from ..base import EquipmentProfile
from ..registry import EquipmentClassRegistry


@EquipmentClassRegistry.register("split_system")
@dataclass
class SplitSystemProfile(EquipmentProfile):
    """Split AC with furnace or electric strip heat."""

    class_name: str = "Split System"
    description: str = "Split AC with furnace heat"

    rated_delta_t_cool_f: float = 18.0
    rated_delta_t_heat_f: float = 40.0

    has_compressor_heat: bool = False

    thresholds: AnomalyThresholds = AnomalyThresholds(
        short_cycle_count_1h=5,
        long_cycle_min=150.0,
    )

    def rated_delta_t(self, action: HvacAction | None) -> float | None:
        """Rated split for cooling and furnace heat."""
        if action == HvacAction.COOLING:
            return self.rated_delta_t_cool_f
        if action == HvacAction.HEATING:
            return self.rated_delta_t_heat_f
        return None

"""Equipment class profiles.

Supported classes:
- rooftop_unit: packaged RTU, DX cooling with gas heat
- split_system: split AC with furnace or electric strip heat
- heat_pump: split heat pump, compressor heats and cools
"""

from .heat_pump import HeatPumpProfile
from .rooftop_unit import RooftopUnitProfile
from .split_system import SplitSystemProfile

__all__ = [
    "HeatPumpProfile",
    "RooftopUnitProfile",
    "SplitSystemProfile",
]

"""Telemetry records read from Home Assistant each cycle.

All temperatures in °F, humidity in %RH, current in Amps.
"""

from dataclasses import dataclass
from datetime import datetime

from ..const import FanMode, HvacAction, HvacMode, SensorClass


@dataclass(frozen=True)
class SensorReading:
    """Point-in-time observation of one entity."""

    entity_id: str
    device_class: SensorClass
    value: float | None
    unit: str | None
    timestamp: datetime


@dataclass(frozen=True)
class ThermostatState:
    """Latest known state of the physical controller."""

    name: str
    last_sync: datetime | None
    current_temp_f: float | None = None
    current_humidity: float | None = None
    heat_setpoint_f: float | None = None
    cool_setpoint_f: float | None = None
    hvac_mode: HvacMode | None = None
    hvac_action: HvacAction | None = None
    fan_mode: FanMode | str | None = None
    outdoor_temp_f: float | None = None


@dataclass(frozen=True)
class OccupancyState:
    """Occupancy sensor state.

    last_motion is when motion was last seen. While the sensor reports
    occupied it equals the sample time.
    """

    occupied: bool
    last_motion: datetime | None = None

    def minutes_since_motion(self, now: datetime) -> float | None:
        """Minutes since motion was last seen, None if never seen."""
        if self.occupied:
            return 0.0
        if self.last_motion is None:
            return None
        return max(0.0, (now - self.last_motion).total_seconds() / 60)


@dataclass(frozen=True)
class TelemetrySample:
    """One equipment telemetry sample for the anomaly window."""

    timestamp: datetime
    compressor_current_a: float | None = None
    compressor_on: bool | None = None  # From an on/off entity when no current clamp
    coil_temp_f: float | None = None
    supply_temp_f: float | None = None
    return_temp_f: float | None = None
    fan_running: bool | None = None
    hvac_action: HvacAction | None = None
    zone_temp_f: float | None = None
    outdoor_temp_f: float | None = None

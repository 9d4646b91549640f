"""Facility configuration records.

Sites, profiles, equipment and zones as loaded from the facility file.
All records are immutable; a facility reload replaces them wholesale.
"""

from dataclasses import dataclass, field
from datetime import date, time
from typing import Any

from ..const import (
    DEFAULT_FEELS_LIKE_MAX_ADJ_F,
    DEFAULT_GUARDRAIL_MAX_F,
    DEFAULT_GUARDRAIL_MIN_F,
    DEFAULT_MANAGER_MAX_LOWER_F,
    DEFAULT_MANAGER_MAX_RAISE_F,
    DEFAULT_MANAGER_RESET_MINUTES,
    DEFAULT_OCCUPANCY_MAX_ADJ_F,
    DEFAULT_OCCUPIED_COOL_F,
    DEFAULT_OCCUPIED_HEAT_F,
    DEFAULT_SMART_START_MAX_ADJ_F,
    DEFAULT_UNOCCUPIED_COOL_F,
    DEFAULT_UNOCCUPIED_HEAT_F,
    SMART_START_DEFAULT_BUFFER_F,
    SMART_START_HUMIDITY_MULTIPLIER,
    SMART_START_MAX_LEAD_MINUTES,
    SMART_START_MIN_LEAD_MINUTES,
    ControlScope,
    FanMode,
    HvacMode,
    SensorClass,
)


@dataclass(frozen=True)
class StoreHours:
    """Open and close time for one day, in site-local time."""

    open: time
    close: time


@dataclass(frozen=True)
class HoursException:
    """Dated store-hours exception (holiday closure or alternate hours)."""

    day: date
    closed: bool = False
    hours: StoreHours | None = None


@dataclass(frozen=True)
class Site:
    """A physical location with its own timezone and store hours.

    weekly_hours is indexed by weekday (0 = Monday). None means closed.
    """

    site_id: str
    name: str
    timezone: str
    weekly_hours: tuple[StoreHours | None, ...] = (None,) * 7
    exceptions: dict[date, HoursException] = field(default_factory=dict)
    weather_entity: str | None = None
    outdoor_temp_entity: str | None = None


@dataclass(frozen=True)
class LayerSettings:
    """Toggle and magnitude bound for one adjustment layer."""

    enabled: bool = True
    max_adjust_f: float = 1.0


@dataclass(frozen=True)
class Profile:
    """Reusable setpoint policy referenced by many zones."""

    profile_id: str
    name: str
    occupied_heat_f: float = DEFAULT_OCCUPIED_HEAT_F
    occupied_cool_f: float = DEFAULT_OCCUPIED_COOL_F
    unoccupied_heat_f: float = DEFAULT_UNOCCUPIED_HEAT_F
    unoccupied_cool_f: float = DEFAULT_UNOCCUPIED_COOL_F
    occupied_hvac_mode: HvacMode = HvacMode.HEAT_COOL
    unoccupied_hvac_mode: HvacMode = HvacMode.HEAT_COOL
    occupied_fan_mode: FanMode = FanMode.AUTO
    unoccupied_fan_mode: FanMode = FanMode.AUTO
    guardrail_min_f: float = DEFAULT_GUARDRAIL_MIN_F
    guardrail_max_f: float = DEFAULT_GUARDRAIL_MAX_F
    manager_max_raise_f: float = DEFAULT_MANAGER_MAX_RAISE_F
    manager_max_lower_f: float = DEFAULT_MANAGER_MAX_LOWER_F
    manager_reset_minutes: int = DEFAULT_MANAGER_RESET_MINUTES
    smart_start: LayerSettings = LayerSettings(max_adjust_f=DEFAULT_SMART_START_MAX_ADJ_F)
    occupancy: LayerSettings = LayerSettings(max_adjust_f=DEFAULT_OCCUPANCY_MAX_ADJ_F)
    feels_like: LayerSettings = LayerSettings(max_adjust_f=DEFAULT_FEELS_LIKE_MAX_ADJ_F)


DEFAULT_PROFILE = Profile(profile_id="default", name="Default")


@dataclass(frozen=True)
class SmartStartSettings:
    """Per-zone Smart Start tuning."""

    buffer_f: float = SMART_START_DEFAULT_BUFFER_F
    humidity_multiplier: float = SMART_START_HUMIDITY_MULTIPLIER
    min_lead_minutes: int = SMART_START_MIN_LEAD_MINUTES
    max_lead_minutes: int = SMART_START_MAX_LEAD_MINUTES
    rate_override: float | None = None  # °F/min, reported as historical


@dataclass(frozen=True)
class SensorBinding:
    """How much one sensor contributes to a zone reading."""

    entity_id: str
    device_class: SensorClass
    role: str = "space"
    weight: float = 1.0


@dataclass(frozen=True)
class Equipment:
    """One HVAC unit and the entities that report its telemetry."""

    equipment_id: str
    name: str
    equipment_class: str
    compressor_current_entity: str | None = None
    compressor_entity: str | None = None  # On/off, used when no current clamp
    coil_temp_entity: str | None = None
    supply_temp_entity: str | None = None
    return_temp_entity: str | None = None
    fan_entity: str | None = None
    rated_delta_t_f: float | None = None  # Overrides the class rating


@dataclass(frozen=True)
class Zone:
    """A logical climate-control unit."""

    zone_id: str
    site_id: str
    name: str
    thermostat_entity: str
    zone_type: str = "general"
    control_scope: ControlScope = ControlScope.MANAGED
    profile_id: str | None = None
    equipment_id: str | None = None
    occupancy_entity: str | None = None
    bindings: tuple[SensorBinding, ...] = ()
    anomaly_overrides: dict[str, Any] = field(default_factory=dict)
    smart_start: SmartStartSettings = SmartStartSettings()
    setpoint_overrides: dict[str, Any] = field(default_factory=dict)

    @property
    def is_managed(self) -> bool:
        """Only managed zones run through the setpoint engine."""
        return self.control_scope == ControlScope.MANAGED

    def bindings_for(self, device_class: SensorClass) -> tuple[SensorBinding, ...]:
        """Bindings of one device class."""
        return tuple(b for b in self.bindings if b.device_class == device_class)


@dataclass(frozen=True)
class Facility:
    """Everything loaded from one facility file."""

    sites: dict[str, Site] = field(default_factory=dict)
    profiles: dict[str, Profile] = field(default_factory=dict)
    equipment: dict[str, Equipment] = field(default_factory=dict)
    zones: dict[str, Zone] = field(default_factory=dict)

    def managed_zones(self) -> list[Zone]:
        """Zones the engine resolves each cycle."""
        return [zone for zone in self.zones.values() if zone.is_managed]

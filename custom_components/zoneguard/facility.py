"""Facility file loading and validation.

The facility file is YAML describing sites, profiles, equipment and zones.
It is validated with voluptuous and turned into immutable records. Cross
references (zone → site, equipment class) are checked here. A zone that
names a missing profile still loads and falls back to defaults, reported
as a configuration issue at evaluation time.

Example:

    sites:
      - id: store_12
        name: Store 12
        timezone: America/Chicago
        store_hours:
          mon: {open: "08:00", close: "21:00"}
          sun: closed
        exceptions:
          - date: 2026-12-25
            closed: true
    profiles:
      - id: retail
        name: Retail
        occupied_heat_f: 68
        occupied_cool_f: 76
    equipment:
      - id: rtu_1
        name: RTU 1
        class: rooftop_unit
    zones:
      - id: sales_floor
        site: store_12
        name: Sales Floor
        thermostat: climate.sales_floor
        profile: retail
        equipment: rtu_1
"""

import logging
from dataclasses import fields, replace
from typing import Any

import voluptuous as vol
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv
from homeassistant.util.yaml import load_yaml

from .const import AnomalyThresholds, ControlScope, FanMode, HvacMode, ProfileSource, SensorClass
from .models import EquipmentClassRegistry
from .models.facility import (
    DEFAULT_PROFILE,
    Equipment,
    Facility,
    HoursException,
    LayerSettings,
    Profile,
    SensorBinding,
    Site,
    SmartStartSettings,
    StoreHours,
    Zone,
)

_LOGGER = logging.getLogger(__name__)

WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

# Profile fields a zone may set directly when it has no profile
SETPOINT_FIELDS = (
    "occupied_heat_f",
    "occupied_cool_f",
    "unoccupied_heat_f",
    "unoccupied_cool_f",
    "occupied_hvac_mode",
    "unoccupied_hvac_mode",
    "occupied_fan_mode",
    "unoccupied_fan_mode",
    "guardrail_min_f",
    "guardrail_max_f",
)


class FacilityConfigError(HomeAssistantError):
    """Facility file is missing or invalid."""


def hvac_mode(value: Any) -> HvacMode:
    """Validate an HVAC mode, mapping legacy "auto" to heat_cool."""
    value = cv.string(value).lower()
    if value == "auto":
        return HvacMode.HEAT_COOL
    try:
        return HvacMode(value)
    except ValueError as err:
        raise vol.Invalid(f"Invalid HVAC mode: {value}") from err


def fan_mode(value: Any) -> FanMode:
    """Validate a fan mode."""
    value = cv.string(value).lower()
    try:
        return FanMode(value)
    except ValueError as err:
        raise vol.Invalid(f"Invalid fan mode: {value}") from err


def _hours(value: Any) -> StoreHours | None:
    if isinstance(value, str) and value.lower() == "closed":
        return None
    data = HOURS_SCHEMA(value)
    if data["close"] <= data["open"]:
        raise vol.Invalid("close must be after open")
    return StoreHours(open=data["open"], close=data["close"])


HOURS_SCHEMA = vol.Schema({vol.Required("open"): cv.time, vol.Required("close"): cv.time})

TEMP_F = vol.All(vol.Coerce(float), vol.Range(min=-40, max=140))
ADJUST_F = vol.All(vol.Coerce(float), vol.Range(min=0, max=10))

LAYER_SCHEMA = vol.Schema(
    {
        vol.Optional("enabled", default=True): cv.boolean,
        vol.Optional("max_adjust_f"): ADJUST_F,
    }
)

EXCEPTION_SCHEMA = vol.Schema(
    {
        vol.Required("date"): cv.date,
        vol.Optional("closed", default=False): cv.boolean,
        vol.Optional("open"): cv.time,
        vol.Optional("close"): cv.time,
    }
)

SITE_SCHEMA = vol.Schema(
    {
        vol.Required("id"): cv.string,
        vol.Optional("name"): cv.string,
        vol.Required("timezone"): cv.time_zone,
        vol.Optional("store_hours", default={}): {vol.In(WEEKDAYS): _hours},
        vol.Optional("exceptions", default=[]): [EXCEPTION_SCHEMA],
        vol.Optional("weather_entity"): cv.entity_id,
        vol.Optional("outdoor_temp_entity"): cv.entity_id,
    }
)

SETPOINTS_SCHEMA = {
    vol.Optional("occupied_heat_f"): TEMP_F,
    vol.Optional("occupied_cool_f"): TEMP_F,
    vol.Optional("unoccupied_heat_f"): TEMP_F,
    vol.Optional("unoccupied_cool_f"): TEMP_F,
    vol.Optional("occupied_hvac_mode"): hvac_mode,
    vol.Optional("unoccupied_hvac_mode"): hvac_mode,
    vol.Optional("occupied_fan_mode"): fan_mode,
    vol.Optional("unoccupied_fan_mode"): fan_mode,
    vol.Optional("guardrail_min_f"): TEMP_F,
    vol.Optional("guardrail_max_f"): TEMP_F,
}

PROFILE_SCHEMA = vol.Schema(
    {
        vol.Required("id"): cv.string,
        vol.Optional("name"): cv.string,
        **SETPOINTS_SCHEMA,
        vol.Optional("manager_max_raise_f"): ADJUST_F,
        vol.Optional("manager_max_lower_f"): ADJUST_F,
        vol.Optional("manager_reset_minutes"): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=1440)
        ),
        vol.Optional("smart_start"): LAYER_SCHEMA,
        vol.Optional("occupancy"): LAYER_SCHEMA,
        vol.Optional("feels_like"): LAYER_SCHEMA,
    }
)

THRESHOLDS_SCHEMA = vol.Schema(
    {vol.Optional(f.name): vol.Coerce(f.type) for f in fields(AnomalyThresholds)}
)

EQUIPMENT_SCHEMA = vol.Schema(
    {
        vol.Required("id"): cv.string,
        vol.Optional("name"): cv.string,
        vol.Required("class"): cv.string,
        vol.Optional("compressor_current_entity"): cv.entity_id,
        vol.Optional("compressor_entity"): cv.entity_id,
        vol.Optional("coil_temp_entity"): cv.entity_id,
        vol.Optional("supply_temp_entity"): cv.entity_id,
        vol.Optional("return_temp_entity"): cv.entity_id,
        vol.Optional("fan_entity"): cv.entity_id,
        vol.Optional("rated_delta_t_f"): vol.All(vol.Coerce(float), vol.Range(min=1, max=100)),
    }
)

BINDING_SCHEMA = vol.Schema(
    {
        vol.Required("entity_id"): cv.entity_id,
        vol.Optional("device_class", default=SensorClass.TEMPERATURE.value): vol.In(
            [c.value for c in SensorClass]
        ),
        vol.Optional("role", default="space"): cv.string,
        vol.Optional("weight", default=1.0): vol.All(vol.Coerce(float), vol.Range(min=0, max=1)),
    }
)

SMART_START_SCHEMA = vol.Schema(
    {
        vol.Optional("buffer_f"): vol.All(vol.Coerce(float), vol.Range(min=0, max=1)),
        vol.Optional("humidity_multiplier"): vol.All(vol.Coerce(float), vol.Range(min=0, max=5)),
        vol.Optional("min_lead_minutes"): vol.All(vol.Coerce(int), vol.Range(min=0, max=240)),
        vol.Optional("max_lead_minutes"): vol.All(vol.Coerce(int), vol.Range(min=1, max=240)),
        vol.Optional("rate_override"): vol.All(vol.Coerce(float), vol.Range(min=0.001, max=5)),
    }
)

ZONE_SCHEMA = vol.Schema(
    {
        vol.Required("id"): cv.string,
        vol.Required("site"): cv.string,
        vol.Optional("name"): cv.string,
        vol.Required("thermostat"): cv.entity_id,
        vol.Optional("zone_type", default="general"): cv.string,
        vol.Optional("control_scope", default=ControlScope.MANAGED.value): vol.In(
            [s.value for s in ControlScope]
        ),
        vol.Optional("profile"): cv.string,
        vol.Optional("equipment"): cv.string,
        vol.Optional("occupancy"): cv.entity_id,
        vol.Optional("sensors", default=[]): [BINDING_SCHEMA],
        vol.Optional("anomaly_thresholds", default={}): THRESHOLDS_SCHEMA,
        vol.Optional("smart_start", default={}): SMART_START_SCHEMA,
        vol.Optional("setpoints", default={}): vol.Schema(SETPOINTS_SCHEMA),
    }
)

FACILITY_SCHEMA = vol.Schema(
    {
        vol.Required("sites"): vol.All(cv.ensure_list, [SITE_SCHEMA]),
        vol.Optional("profiles", default=[]): vol.All(cv.ensure_list, [PROFILE_SCHEMA]),
        vol.Optional("equipment", default=[]): vol.All(cv.ensure_list, [EQUIPMENT_SCHEMA]),
        vol.Required("zones"): vol.All(cv.ensure_list, [ZONE_SCHEMA]),
    }
)


def _build_site(data: dict[str, Any]) -> Site:
    weekly = tuple(data["store_hours"].get(day) for day in WEEKDAYS)
    exceptions = {}
    for item in data["exceptions"]:
        hours = None
        if not item["closed"]:
            if "open" not in item or "close" not in item:
                raise FacilityConfigError(
                    f"Site {data['id']}: exception {item['date']} needs open/close or closed: true"
                )
            hours = StoreHours(open=item["open"], close=item["close"])
        exceptions[item["date"]] = HoursException(
            day=item["date"], closed=item["closed"], hours=hours
        )
    return Site(
        site_id=data["id"],
        name=data.get("name", data["id"]),
        timezone=data["timezone"],
        weekly_hours=weekly,
        exceptions=exceptions,
        weather_entity=data.get("weather_entity"),
        outdoor_temp_entity=data.get("outdoor_temp_entity"),
    )


def _build_layer(defaults: LayerSettings, data: dict[str, Any] | None) -> LayerSettings:
    if not data:
        return defaults
    return LayerSettings(
        enabled=data["enabled"],
        max_adjust_f=data.get("max_adjust_f", defaults.max_adjust_f),
    )


def _build_profile(data: dict[str, Any]) -> Profile:
    values = {key: data[key] for key in SETPOINT_FIELDS if key in data}
    for key in ("manager_max_raise_f", "manager_max_lower_f", "manager_reset_minutes"):
        if key in data:
            values[key] = data[key]
    for layer in ("smart_start", "occupancy", "feels_like"):
        values[layer] = _build_layer(getattr(DEFAULT_PROFILE, layer), data.get(layer))
    return replace(DEFAULT_PROFILE, profile_id=data["id"], name=data.get("name", data["id"]), **values)


def _build_equipment(data: dict[str, Any]) -> Equipment:
    if data["class"] not in EquipmentClassRegistry.get_supported_classes():
        raise FacilityConfigError(
            f"Equipment {data['id']}: unknown class {data['class']} "
            f"(supported: {', '.join(EquipmentClassRegistry.get_supported_classes())})"
        )
    return Equipment(
        equipment_id=data["id"],
        name=data.get("name", data["id"]),
        equipment_class=data["class"],
        compressor_current_entity=data.get("compressor_current_entity"),
        compressor_entity=data.get("compressor_entity"),
        coil_temp_entity=data.get("coil_temp_entity"),
        supply_temp_entity=data.get("supply_temp_entity"),
        return_temp_entity=data.get("return_temp_entity"),
        fan_entity=data.get("fan_entity"),
        rated_delta_t_f=data.get("rated_delta_t_f"),
    )


def _build_zone(data: dict[str, Any]) -> Zone:
    return Zone(
        zone_id=data["id"],
        site_id=data["site"],
        name=data.get("name", data["id"]),
        thermostat_entity=data["thermostat"],
        zone_type=data["zone_type"],
        control_scope=ControlScope(data["control_scope"]),
        profile_id=data.get("profile"),
        equipment_id=data.get("equipment"),
        occupancy_entity=data.get("occupancy"),
        bindings=tuple(
            SensorBinding(
                entity_id=b["entity_id"],
                device_class=SensorClass(b["device_class"]),
                role=b["role"],
                weight=b["weight"],
            )
            for b in data["sensors"]
        ),
        anomaly_overrides=dict(data["anomaly_thresholds"]),
        smart_start=replace(SmartStartSettings(), **data["smart_start"]),
        setpoint_overrides=dict(data["setpoints"]),
    )


def parse_facility(raw: Any) -> Facility:
    """Validate raw facility data and build records.

    Args:
        raw: Parsed YAML content

    Returns:
        Facility

    Raises:
        FacilityConfigError: If validation or a cross reference fails
    """
    try:
        data = FACILITY_SCHEMA(raw)
    except vol.Invalid as err:
        raise FacilityConfigError(f"Invalid facility file: {err}") from err

    sites = {s["id"]: _build_site(s) for s in data["sites"]}
    profiles = {p["id"]: _build_profile(p) for p in data["profiles"]}
    equipment = {e["id"]: _build_equipment(e) for e in data["equipment"]}
    zones: dict[str, Zone] = {}

    for item in data["zones"]:
        zone = _build_zone(item)
        if zone.zone_id in zones:
            raise FacilityConfigError(f"Duplicate zone id: {zone.zone_id}")
        if zone.site_id not in sites:
            raise FacilityConfigError(f"Zone {zone.zone_id}: unknown site {zone.site_id}")
        if zone.equipment_id and zone.equipment_id not in equipment:
            raise FacilityConfigError(
                f"Zone {zone.zone_id}: unknown equipment {zone.equipment_id}"
            )
        settings = zone.smart_start
        if settings.min_lead_minutes > settings.max_lead_minutes:
            raise FacilityConfigError(
                f"Zone {zone.zone_id}: smart_start min_lead_minutes exceeds max_lead_minutes"
            )
        zones[zone.zone_id] = zone

    _LOGGER.info(
        "Facility loaded: %d sites, %d profiles, %d equipment, %d zones",
        len(sites),
        len(profiles),
        len(equipment),
        len(zones),
    )
    return Facility(sites=sites, profiles=profiles, equipment=equipment, zones=zones)


def load_facility(path: str) -> Facility:
    """Load and validate a facility file (blocking, run in executor).

    Raises:
        FacilityConfigError: If the file cannot be read or is invalid
    """
    try:
        raw = load_yaml(path)
    except (HomeAssistantError, OSError) as err:
        raise FacilityConfigError(f"Cannot read facility file {path}: {err}") from err
    return parse_facility(raw)


def resolve_profile(zone: Zone, facility: Facility) -> tuple[Profile, ProfileSource, str | None]:
    """Resolve the setpoint policy for a zone.

    A referenced profile wins. Without one, zone-level setpoints are
    merged over the defaults.

    Returns:
        Tuple of (profile, source, issue message or None)
    """
    issue = None
    if zone.profile_id:
        profile = facility.profiles.get(zone.profile_id)
        if profile is not None:
            return profile, ProfileSource.PROFILE, None
        issue = f"Profile {zone.profile_id} not found, using zone setpoints or defaults"

    if zone.setpoint_overrides:
        profile = replace(
            DEFAULT_PROFILE,
            profile_id=f"zone:{zone.zone_id}",
            name=f"{zone.name} (zone)",
            **zone.setpoint_overrides,
        )
        return profile, ProfileSource.ZONE_OVERRIDE, issue

    return DEFAULT_PROFILE, ProfileSource.DEFAULT, issue

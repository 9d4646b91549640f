"""Sensor entities for ZoneGuard.

One set of sensors per managed zone: resolved setpoints with the directive
audit trail, aggregated zone conditions, Smart Start lead time, thermostat
sync status and equipment anomalies.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import PERCENTAGE, EntityCategory, UnitOfTemperature, UnitOfTime
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, SyncStatus
from .coordinator import ZoneGuardCoordinator
from .models.facility import Zone
from .optimization.sensor_aggregator import AggregateReading

_LOGGER = logging.getLogger(__name__)

ZoneValueFn = Callable[[ZoneGuardCoordinator, str], Any]


@dataclass(frozen=True, kw_only=True)
class ZoneGuardSensorEntityDescription(SensorEntityDescription):
    """Describes a per-zone ZoneGuard sensor."""

    value_fn: ZoneValueFn
    attrs_fn: Callable[[ZoneGuardCoordinator, str], dict[str, Any]] | None = None


def _directive_value(field_name: str) -> ZoneValueFn:
    def value(coordinator: ZoneGuardCoordinator, zone_id: str) -> Any:
        evaluation = coordinator.zone_evaluation(zone_id)
        if evaluation is None or evaluation.directive is None:
            return None
        return getattr(evaluation.directive, field_name)

    return value


def _directive_attrs(coordinator: ZoneGuardCoordinator, zone_id: str) -> dict[str, Any]:
    evaluation = coordinator.zone_evaluation(zone_id)
    if evaluation is None:
        return {}

    attrs: dict[str, Any] = {
        "phase": str(evaluation.phase),
        "profile_source": str(evaluation.profile_source),
        "layers": [
            {
                "layer": str(adj.kind),
                "applied": adj.applied,
                "heat_delta_f": adj.heat_delta_f,
                "cool_delta_f": adj.cool_delta_f,
                "reason": adj.reason,
            }
            for adj in evaluation.layers
        ],
        "config_issues": [f"{issue.code}: {issue.message}" for issue in evaluation.config_issues],
    }
    if evaluation.directive is not None:
        attrs.update(evaluation.directive.as_dict())
    return attrs


def _aggregate(coordinator: ZoneGuardCoordinator, zone_id: str, humidity: bool) -> AggregateReading | None:
    evaluation = coordinator.zone_evaluation(zone_id)
    if evaluation is None:
        return None
    return evaluation.humidity if humidity else evaluation.temperature


def _aggregate_attrs(humidity: bool) -> Callable[[ZoneGuardCoordinator, str], dict[str, Any]]:
    def attrs(coordinator: ZoneGuardCoordinator, zone_id: str) -> dict[str, Any]:
        reading = _aggregate(coordinator, zone_id, humidity)
        if reading is None:
            return {}
        return {
            "source": reading.source,
            "fresh": reading.fresh,
            "contributing_sensors": list(reading.contributing),
            "reading_time": reading.timestamp.isoformat() if reading.timestamp else None,
        }

    return attrs


def _smart_start_lead(coordinator: ZoneGuardCoordinator, zone_id: str) -> int | None:
    evaluation = coordinator.zone_evaluation(zone_id)
    if evaluation is None or evaluation.smart_start is None:
        return None
    return evaluation.smart_start.final_lead_minutes


def _smart_start_attrs(coordinator: ZoneGuardCoordinator, zone_id: str) -> dict[str, Any]:
    evaluation = coordinator.zone_evaluation(zone_id)
    if evaluation is None or evaluation.smart_start is None:
        return {}
    estimate = evaluation.smart_start
    return {
        "start_time": estimate.start_time.isoformat(),
        "open_time": estimate.open_time.isoformat(),
        "target_mode": str(estimate.target_mode) if estimate.target_mode else None,
        "target_temp_f": estimate.target_temp_f,
        "rate_used": estimate.rate_used,
        "rate_source": str(estimate.rate_source),
        "humidity_adjustment_minutes": estimate.humidity_adjustment_minutes,
        "occupancy_override": estimate.occupancy_override,
        "confidence": str(estimate.confidence),
        "explanation": estimate.explanation,
    }


def _sync_status(coordinator: ZoneGuardCoordinator, zone_id: str) -> str | None:
    evaluation = coordinator.zone_evaluation(zone_id)
    return str(evaluation.sync_status) if evaluation else None


def _anomaly_count(coordinator: ZoneGuardCoordinator, zone_id: str) -> int | None:
    report = coordinator.zone_anomalies(zone_id)
    return len(report.flags) if report else None


def _anomaly_attrs(coordinator: ZoneGuardCoordinator, zone_id: str) -> dict[str, Any]:
    report = coordinator.zone_anomalies(zone_id)
    if report is None:
        return {}
    window = coordinator.windows.get(report.equipment_id)
    return {
        "telemetry": window.get_diagnostics(report.evaluated_at) if window else None,
        "equipment_id": report.equipment_id,
        "flags": report.flag_names,
        "details": [
            {"flag": str(flag.flag), "severity": str(flag.severity), "detail": flag.detail}
            for flag in report.flags
        ],
        "metrics": report.metrics,
        "skipped_rules": [str(flag) for flag in report.skipped],
    }


ZONE_SENSORS: tuple[ZoneGuardSensorEntityDescription, ...] = (
    ZoneGuardSensorEntityDescription(
        key="heat_setpoint",
        name="Heat Setpoint",
        icon="mdi:thermometer-chevron-up",
        device_class=SensorDeviceClass.TEMPERATURE,
        native_unit_of_measurement=UnitOfTemperature.FAHRENHEIT,
        state_class=SensorStateClass.MEASUREMENT,
        value_fn=_directive_value("heat_setpoint_f"),
    ),
    ZoneGuardSensorEntityDescription(
        key="cool_setpoint",
        name="Cool Setpoint",
        icon="mdi:thermometer-chevron-down",
        device_class=SensorDeviceClass.TEMPERATURE,
        native_unit_of_measurement=UnitOfTemperature.FAHRENHEIT,
        state_class=SensorStateClass.MEASUREMENT,
        value_fn=_directive_value("cool_setpoint_f"),
    ),
    ZoneGuardSensorEntityDescription(
        key="directive",
        name="Directive",
        icon="mdi:clipboard-text-outline",
        value_fn=_directive_value("reason"),
        attrs_fn=_directive_attrs,
    ),
    ZoneGuardSensorEntityDescription(
        key="zone_temperature",
        name="Zone Temperature",
        icon="mdi:thermometer",
        device_class=SensorDeviceClass.TEMPERATURE,
        native_unit_of_measurement=UnitOfTemperature.FAHRENHEIT,
        state_class=SensorStateClass.MEASUREMENT,
        suggested_display_precision=1,
        value_fn=lambda coordinator, zone_id: (
            reading.value if (reading := _aggregate(coordinator, zone_id, False)) else None
        ),
        attrs_fn=_aggregate_attrs(False),
    ),
    ZoneGuardSensorEntityDescription(
        key="zone_humidity",
        name="Zone Humidity",
        icon="mdi:water-percent",
        device_class=SensorDeviceClass.HUMIDITY,
        native_unit_of_measurement=PERCENTAGE,
        state_class=SensorStateClass.MEASUREMENT,
        suggested_display_precision=0,
        value_fn=lambda coordinator, zone_id: (
            reading.value if (reading := _aggregate(coordinator, zone_id, True)) else None
        ),
        attrs_fn=_aggregate_attrs(True),
    ),
    ZoneGuardSensorEntityDescription(
        key="smart_start_lead",
        name="Smart Start Lead Time",
        icon="mdi:clock-start",
        device_class=SensorDeviceClass.DURATION,
        native_unit_of_measurement=UnitOfTime.MINUTES,
        value_fn=_smart_start_lead,
        attrs_fn=_smart_start_attrs,
    ),
    ZoneGuardSensorEntityDescription(
        key="sync_status",
        name="Thermostat Sync",
        icon="mdi:sync",
        device_class=SensorDeviceClass.ENUM,
        options=[str(status) for status in SyncStatus],
        entity_category=EntityCategory.DIAGNOSTIC,
        value_fn=_sync_status,
    ),
    ZoneGuardSensorEntityDescription(
        key="anomalies",
        name="Equipment Anomalies",
        icon="mdi:alert-circle-outline",
        state_class=SensorStateClass.MEASUREMENT,
        entity_category=EntityCategory.DIAGNOSTIC,
        value_fn=_anomaly_count,
        attrs_fn=_anomaly_attrs,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up ZoneGuard sensor entities from a config entry."""
    coordinator: ZoneGuardCoordinator = hass.data[DOMAIN][entry.entry_id]

    entities = []
    for zone in coordinator.facility.managed_zones():
        for description in ZONE_SENSORS:
            if description.key == "anomalies" and not zone.equipment_id:
                continue
            entities.append(ZoneGuardSensor(coordinator, entry, zone, description))

    _LOGGER.debug("Adding %d ZoneGuard sensors", len(entities))
    async_add_entities(entities)


class ZoneGuardSensor(CoordinatorEntity[ZoneGuardCoordinator], SensorEntity):
    """Per-zone ZoneGuard sensor."""

    entity_description: ZoneGuardSensorEntityDescription
    coordinator: ZoneGuardCoordinator
    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: ZoneGuardCoordinator,
        entry: ConfigEntry,
        zone: Zone,
        description: ZoneGuardSensorEntityDescription,
    ):
        """Initialize sensor."""
        super().__init__(coordinator)
        self.entity_description = description
        self._zone_id = zone.zone_id
        self._attr_unique_id = f"{entry.entry_id}_{zone.zone_id}_{description.key}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, f"{entry.entry_id}_{zone.zone_id}")},
            name=zone.name,
            manufacturer="ZoneGuard",
            model=f"{zone.zone_type} zone",
            suggested_area=zone.name,
        )

    @property
    def available(self) -> bool:
        """Unavailable while the zone's last evaluation failed."""
        return super().available and self.coordinator.zone_evaluation(self._zone_id) is not None

    @property
    def native_value(self) -> Any:
        """Return the state of the sensor."""
        try:
            return self.entity_description.value_fn(self.coordinator, self._zone_id)
        except (AttributeError, KeyError, TypeError) as err:
            _LOGGER.warning(
                "Error getting value for %s/%s: %s",
                self._zone_id,
                self.entity_description.key,
                err,
            )
            return None

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return additional state attributes."""
        if self.entity_description.attrs_fn is None:
            return {}
        try:
            return self.entity_description.attrs_fn(self.coordinator, self._zone_id)
        except (AttributeError, KeyError, TypeError) as err:
            _LOGGER.debug("Error building attributes for %s: %s", self.entity_description.key, err)
            return {}

"""Tests for ZoneGuard sensor values and attributes."""

from unittest.mock import MagicMock

import pytest

from custom_components.zoneguard.const import AnomalyThresholds
from custom_components.zoneguard.optimization.anomaly_detector import AnomalyDetector
from custom_components.zoneguard.optimization.setpoint_engine import SetpointEngine, ZoneInputs
from custom_components.zoneguard.sensor import ZONE_SENSORS, ZoneGuardSensor, async_setup_entry
from custom_components.zoneguard.utils.telemetry_window import EquipmentTelemetryWindow

from conftest import (
    at,
    create_mock_entry,
    make_facility,
    make_profile,
    make_site,
    make_zone,
    sample,
    thermostat,
)

SENSORS = {description.key: description for description in ZONE_SENSORS}


@pytest.fixture
def mock_coordinator():
    """Coordinator holding one overnight evaluation and one anomaly report."""
    now = at(2)
    zone = make_zone(equipment_id="rtu_1")
    evaluation = SetpointEngine().evaluate(
        ZoneInputs(
            zone=zone,
            site=make_site(),
            profile=make_profile(),
            thermostat=thermostat(now, 60.0, 35.0),
        ),
        now,
    )
    window = EquipmentTelemetryWindow()
    window.add_sample(sample(now, compressor_current_a=0.0))
    report = AnomalyDetector().evaluate("rtu_1", window, AnomalyThresholds(), now)

    coordinator = MagicMock()
    coordinator.facility = make_facility(zones=[zone, make_zone("stockroom")])
    coordinator.windows = {"rtu_1": window}
    coordinator.zone_evaluation = MagicMock(
        side_effect=lambda zone_id: evaluation if zone_id == "sales_floor" else None
    )
    coordinator.zone_anomalies = MagicMock(
        side_effect=lambda zone_id: report if zone_id == "sales_floor" else None
    )
    return coordinator


class TestValueFunctions:
    """Sensor values from the latest evaluation."""

    def test_setpoints(self, mock_coordinator):
        assert SENSORS["heat_setpoint"].value_fn(mock_coordinator, "sales_floor") == 55.0
        assert SENSORS["cool_setpoint"].value_fn(mock_coordinator, "sales_floor") == 85.0

    def test_directive_attributes(self, mock_coordinator):
        attrs = SENSORS["directive"].attrs_fn(mock_coordinator, "sales_floor")

        assert attrs["phase"] == "unoccupied"
        assert attrs["reason_code"] == "unoccupied"
        assert len(attrs["layers"]) == 6
        assert attrs["config_issues"] == []

    def test_zone_conditions(self, mock_coordinator):
        assert SENSORS["zone_temperature"].value_fn(mock_coordinator, "sales_floor") == 60.0
        assert SENSORS["zone_humidity"].value_fn(mock_coordinator, "sales_floor") == 35.0
        attrs = SENSORS["zone_temperature"].attrs_fn(mock_coordinator, "sales_floor")
        assert attrs["source"] == "Sales Floor Thermostat"

    def test_smart_start(self, mock_coordinator):
        assert SENSORS["smart_start_lead"].value_fn(mock_coordinator, "sales_floor") == 53
        attrs = SENSORS["smart_start_lead"].attrs_fn(mock_coordinator, "sales_floor")
        assert attrs["start_time"] == at(7, 7).isoformat()
        assert attrs["confidence"] == "low"

    def test_sync_and_anomalies(self, mock_coordinator):
        assert SENSORS["sync_status"].value_fn(mock_coordinator, "sales_floor") == "live"
        assert SENSORS["anomalies"].value_fn(mock_coordinator, "sales_floor") == 0
        attrs = SENSORS["anomalies"].attrs_fn(mock_coordinator, "sales_floor")
        assert attrs["telemetry"]["samples_count"] == 1
        assert "coil_freeze" in attrs["skipped_rules"]

    def test_missing_evaluation(self, mock_coordinator):
        for description in ZONE_SENSORS:
            assert description.value_fn(mock_coordinator, "stockroom") is None


class TestEntities:
    """Entity creation and availability."""

    async def test_setup_skips_anomalies_without_equipment(self, mock_coordinator):
        hass = MagicMock()
        entry = create_mock_entry()
        hass.data = {"zoneguard": {entry.entry_id: mock_coordinator}}
        added = []

        await async_setup_entry(hass, entry, added.extend)

        keys = [(e._zone_id, e.entity_description.key) for e in added]
        assert ("sales_floor", "anomalies") in keys
        assert ("stockroom", "anomalies") not in keys
        assert len(added) == 2 * len(ZONE_SENSORS) - 1

    def test_unique_id_and_value(self, mock_coordinator):
        zone = mock_coordinator.facility.zones["sales_floor"]
        sensor = ZoneGuardSensor(
            mock_coordinator, create_mock_entry(), zone, SENSORS["heat_setpoint"]
        )

        assert sensor.unique_id == "test_entry_sales_floor_heat_setpoint"
        assert sensor.native_value == 55.0
        assert sensor.extra_state_attributes == {}

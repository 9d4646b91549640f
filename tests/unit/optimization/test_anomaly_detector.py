"""Tests for equipment anomaly rules.

Flags are stateless: each evaluation reflects only the current window, so
a condition that clears drops its flag on the next pass.
"""

from datetime import timedelta

from custom_components.zoneguard.const import (
    AnomalyThresholds,
    AnomalyType,
    HvacAction,
    Severity,
)
from custom_components.zoneguard.optimization.anomaly_detector import AnomalyDetector
from custom_components.zoneguard.utils.telemetry_window import EquipmentTelemetryWindow

from conftest import at, sample

THRESHOLDS = AnomalyThresholds()


def run(window, now, rated=None):
    return AnomalyDetector().evaluate(
        "rtu_1", window, THRESHOLDS, now, rated_delta_t_f=rated, zone_id="sales_floor"
    )


def cycle(window, starts):
    """Record a short on/off cycle at each start time."""
    for start in starts:
        window.record_compressor_state(True, start)
        window.record_compressor_state(False, start + timedelta(minutes=4))


class TestShortCycling:
    """Compressor starts in the rolling hour."""

    def test_seven_starts_flagged_then_cleared(self):
        window = EquipmentTelemetryWindow()
        cycle(window, [at(10, 8 * i) for i in range(7)])

        report = run(window, at(10, 55))

        assert report.has(AnomalyType.SHORT_CYCLING)
        assert report.metrics["starts_1h"] == 7
        flag = report.flags[0]
        assert flag.zone_id == "sales_floor"
        assert flag.equipment_id == "rtu_1"
        assert flag.severity == Severity.WARNING

        cycle(window, [at(11, 20), at(11, 30), at(11, 40)])

        report = run(window, at(11, 55))

        assert not report.has(AnomalyType.SHORT_CYCLING)
        assert report.metrics["starts_1h"] == 3

    def test_at_threshold_not_flagged(self):
        window = EquipmentTelemetryWindow()
        cycle(window, [at(10, 8 * i) for i in range(6)])

        assert not run(window, at(10, 55)).has(AnomalyType.SHORT_CYCLING)

    def test_zone_threshold_override(self):
        window = EquipmentTelemetryWindow()
        cycle(window, [at(10, 8 * i) for i in range(4)])

        report = AnomalyDetector().evaluate(
            "rtu_1", window, AnomalyThresholds(short_cycle_count_1h=3), at(10, 55)
        )

        assert report.has(AnomalyType.SHORT_CYCLING)

    def test_unknown_compressor_state_skipped(self):
        report = run(EquipmentTelemetryWindow(), at(10))

        assert not report.flags
        assert AnomalyType.SHORT_CYCLING in report.skipped
        assert AnomalyType.LONG_CYCLE in report.skipped


class TestLongCycle:
    """Continuous run while the thermostat still calls."""

    def test_long_run_flagged(self):
        window = EquipmentTelemetryWindow()
        window.add_sample(
            sample(at(8), compressor_current_a=12.0, hvac_action=HvacAction.COOLING)
        )

        report = run(window, at(11, 1))

        assert report.has(AnomalyType.LONG_CYCLE)
        assert report.metrics["run_minutes"] == 181.0

    def test_not_calling(self):
        window = EquipmentTelemetryWindow()
        window.add_sample(sample(at(8), compressor_current_a=12.0, hvac_action=HvacAction.IDLE))

        assert not run(window, at(11, 1)).has(AnomalyType.LONG_CYCLE)


class TestCoilFreeze:
    """Coil at or below freezing while running."""

    def test_frozen_coil(self):
        window = EquipmentTelemetryWindow()
        window.add_sample(sample(at(10), compressor_current_a=12.0, coil_temp_f=30.0))

        assert run(window, at(10)).has(AnomalyType.COIL_FREEZE)

    def test_compressor_off(self):
        window = EquipmentTelemetryWindow()
        window.add_sample(sample(at(10), compressor_current_a=0.2, coil_temp_f=30.0))

        assert not run(window, at(10)).has(AnomalyType.COIL_FREEZE)

    def test_no_coil_sensor_skipped(self):
        window = EquipmentTelemetryWindow()
        window.add_sample(sample(at(10), compressor_current_a=12.0))

        assert AnomalyType.COIL_FREEZE in run(window, at(10)).skipped


class TestDelayedTempResponse:
    """Zone barely moves after the response window."""

    def _heating(self, temps):
        window = EquipmentTelemetryWindow()
        for minute, temp in temps:
            window.add_sample(
                sample(at(10, minute), hvac_action=HvacAction.HEATING, zone_temp_f=temp)
            )
        return window

    def test_no_response_flagged(self):
        window = self._heating([(0, 65.0), (10, 65.1), (20, 65.2)])

        report = run(window, at(10, 20))

        assert report.has(AnomalyType.DELAYED_TEMP_RESPONSE)

    def test_responding_zone(self):
        window = self._heating([(0, 65.0), (10, 66.0), (20, 67.0)])

        assert not run(window, at(10, 20)).has(AnomalyType.DELAYED_TEMP_RESPONSE)

    def test_wrong_direction_counts_as_no_response(self):
        window = self._heating([(0, 66.0), (10, 65.5), (20, 65.0)])

        assert run(window, at(10, 20)).has(AnomalyType.DELAYED_TEMP_RESPONSE)

    def test_too_early(self):
        window = self._heating([(0, 65.0), (10, 65.0)])

        assert not run(window, at(10, 10)).has(AnomalyType.DELAYED_TEMP_RESPONSE)


class TestDeltaTRules:
    """Supply/return split checks."""

    def test_filter_restriction(self):
        window = EquipmentTelemetryWindow()
        window.add_sample(
            sample(at(10), compressor_current_a=12.0, supply_temp_f=50.0, return_temp_f=80.0)
        )

        report = run(window, at(10))

        assert report.has(AnomalyType.FILTER_RESTRICTION)
        assert report.metrics["delta_t_f"] == 30.0
        assert AnomalyType.REFRIGERANT_LOW in report.skipped

    def test_filter_fan_off(self):
        window = EquipmentTelemetryWindow()
        window.add_sample(
            sample(
                at(10),
                compressor_current_a=12.0,
                fan_running=False,
                supply_temp_f=50.0,
                return_temp_f=80.0,
            )
        )

        assert not run(window, at(10)).has(AnomalyType.FILTER_RESTRICTION)

    def test_refrigerant_low(self):
        window = EquipmentTelemetryWindow()
        window.add_sample(
            sample(at(10), compressor_current_a=12.0, supply_temp_f=70.0, return_temp_f=75.0)
        )

        report = run(window, at(10), rated=20.0)

        assert report.has(AnomalyType.REFRIGERANT_LOW)
        assert report.metrics["efficiency_ratio_pct"] == 25.0

    def test_refrigerant_healthy(self):
        window = EquipmentTelemetryWindow()
        window.add_sample(
            sample(at(10), compressor_current_a=12.0, supply_temp_f=58.0, return_temp_f=75.0)
        )

        assert not run(window, at(10), rated=20.0).has(AnomalyType.REFRIGERANT_LOW)


class TestIdleHeatGain:
    """Zone warms while idle although outside is cooler."""

    def test_rise_while_idle(self):
        window = EquipmentTelemetryWindow()
        for minute, temp in [(0, 70.0), (15, 71.0), (30, 72.5)]:
            window.add_sample(
                sample(
                    at(10, minute),
                    hvac_action=HvacAction.IDLE,
                    zone_temp_f=temp,
                    outdoor_temp_f=60.0,
                )
            )

        report = run(window, at(10, 30))

        assert report.has(AnomalyType.IDLE_HEAT_GAIN)
        assert report.flags[-1].severity == Severity.INFO

    def test_warm_outside_explains_rise(self):
        window = EquipmentTelemetryWindow()
        for minute, temp in [(0, 70.0), (30, 72.5)]:
            window.add_sample(
                sample(
                    at(10, minute),
                    hvac_action=HvacAction.IDLE,
                    zone_temp_f=temp,
                    outdoor_temp_f=90.0,
                )
            )

        assert not run(window, at(10, 30)).has(AnomalyType.IDLE_HEAT_GAIN)

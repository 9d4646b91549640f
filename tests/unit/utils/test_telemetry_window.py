"""Tests for the rolling equipment telemetry window."""

from datetime import timedelta

from custom_components.zoneguard.const import HvacAction
from custom_components.zoneguard.utils.telemetry_window import EquipmentTelemetryWindow

from conftest import at, sample


class TestCompressorState:
    """Compressor state sources and start counting."""

    def test_current_clamp_wins(self):
        window = EquipmentTelemetryWindow(current_threshold_a=2.0)

        assert window.compressor_state_from(sample(at(10), compressor_current_a=1.5, compressor_on=True)) is False
        assert window.compressor_state_from(sample(at(10), compressor_current_a=2.5)) is True

    def test_on_off_entity_then_action(self):
        window = EquipmentTelemetryWindow()

        assert window.compressor_state_from(sample(at(10), compressor_on=True)) is True
        assert window.compressor_state_from(sample(at(10), hvac_action=HvacAction.COOLING)) is True
        assert window.compressor_state_from(sample(at(10), hvac_action=HvacAction.IDLE)) is False
        assert window.compressor_state_from(sample(at(10))) is None

    def test_repeated_on_counts_once(self):
        window = EquipmentTelemetryWindow()
        window.record_compressor_state(True, at(10))
        window.record_compressor_state(True, at(10, 5))
        window.record_compressor_state(False, at(10, 10))
        window.record_compressor_state(True, at(10, 20))

        assert window.starts_within(timedelta(hours=1), at(10, 30)) == 2
        assert window.run_minutes(at(10, 30)) == 10.0

    def test_start_window_excludes_cutoff(self):
        window = EquipmentTelemetryWindow()
        window.record_compressor_state(True, at(10))

        assert window.starts_within(timedelta(hours=1), at(11)) == 0
        assert window.starts_within(timedelta(hours=1), at(10, 59)) == 1

    def test_starts_pruned(self):
        window = EquipmentTelemetryWindow(max_history_hours=4)
        window.record_compressor_state(True, at(6))
        window.record_compressor_state(False, at(6, 5))
        window.record_compressor_state(True, at(11))

        assert list(window.compressor_starts) == [at(11)]


class TestSamples:
    """Action tracking and zone temperature response."""

    def test_action_duration(self):
        window = EquipmentTelemetryWindow()
        window.add_sample(sample(at(10), hvac_action=HvacAction.HEATING))
        window.add_sample(sample(at(10, 5), hvac_action=HvacAction.HEATING))

        assert window.action == HvacAction.HEATING
        assert window.action_minutes(at(10, 20)) == 20.0

    def test_zone_temp_change(self):
        window = EquipmentTelemetryWindow()
        for minute, temp in [(0, 68.0), (10, 69.0), (20, 70.5)]:
            window.add_sample(sample(at(10, minute), zone_temp_f=temp))

        assert window.zone_temp_change(timedelta(minutes=15), at(10, 20)) == 1.5
        assert window.zone_temp_change(timedelta(minutes=5), at(10, 20)) is None
        assert window.covers(timedelta(minutes=15), at(10, 20))
        assert not window.covers(timedelta(minutes=30), at(10, 20))

    def test_diagnostics(self):
        window = EquipmentTelemetryWindow()
        window.add_sample(sample(at(10), compressor_current_a=8.0, hvac_action=HvacAction.COOLING))

        diagnostics = window.get_diagnostics(at(10, 30))

        assert diagnostics == {
            "samples_count": 1,
            "compressor_running": True,
            "starts_1h": 1,
            "run_minutes": 30.0,
            "action": "cooling",
            "action_minutes": 30.0,
        }

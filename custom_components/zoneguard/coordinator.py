"""Data update coordinator for ZoneGuard."""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import Event, HomeAssistant, callback
from homeassistant.helpers.event import async_track_state_change_event
from homeassistant.helpers.storage import Store
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed
from homeassistant.util import dt as dt_util

from .const import (
    CONF_UPDATE_INTERVAL,
    DOMAIN,
    EVENT_DIRECTIVE,
    STORAGE_KEY_HISTORY,
    STORAGE_KEY_OVERRIDES,
    STORAGE_VERSION,
    UPDATE_INTERVAL_MINUTES,
    SensorClass,
)
from .facility import resolve_profile
from .models import EquipmentClassRegistry
from .models.facility import Equipment, Facility, Zone
from .models.telemetry import ThermostatState
from .optimization.anomaly_detector import AnomalyDetector, AnomalyReport
from .optimization.manager_override import ManagerOverride, ManagerOverrideStore
from .optimization.ramp_rate import RampRateCache, TemperatureHistory
from .optimization.setpoint_engine import ConfigIssue, SetpointEngine, ZoneEvaluation, ZoneInputs
from .optimization.smart_start import PreOpenWindow
from .utils.telemetry_window import EquipmentTelemetryWindow

_LOGGER = logging.getLogger(__name__)


class ZoneGuardCoordinator(DataUpdateCoordinator):
    """Coordinate zone evaluation for all managed zones.

    Runs one batch per interval. Zones share no mutable state during a
    batch and a failure in one zone is logged and recorded without
    stopping the others.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        telemetry_adapter,
        setpoint_engine: SetpointEngine,
        anomaly_detector: AnomalyDetector,
        facility: Facility,
        entry: ConfigEntry,
    ):
        """Initialize coordinator with dependency injection."""
        interval = entry.options.get(CONF_UPDATE_INTERVAL, UPDATE_INTERVAL_MINUTES)
        super().__init__(
            hass,
            _LOGGER,
            name=DOMAIN,
            update_interval=timedelta(minutes=interval),
        )
        self.telemetry = telemetry_adapter
        self.engine = setpoint_engine
        self.detector = anomaly_detector
        self.facility = facility
        self.entry = entry

        self.overrides = ManagerOverrideStore()
        self.histories: dict[str, TemperatureHistory] = {}
        self.ramp_rates = RampRateCache()
        self.windows: dict[str, EquipmentTelemetryWindow] = {}
        # Pre-open windows fixed for today's open, in memory only
        self.pre_open_windows: dict[str, PreOpenWindow] = {}

        self.override_store = Store(
            hass, STORAGE_VERSION, f"{STORAGE_KEY_OVERRIDES}.{entry.entry_id}"
        )
        self.history_store = Store(hass, STORAGE_VERSION, f"{STORAGE_KEY_HISTORY}.{entry.entry_id}")
        self._compressor_listener = None

        _LOGGER.info(
            "ZoneGuard coordinator created: %d managed zones, %d min interval",
            len(facility.managed_zones()),
            interval,
        )

    async def async_restore_state(self) -> None:
        """Restore manager overrides and temperature history from storage."""
        try:
            overrides = await self.override_store.async_load()
            if overrides:
                self.overrides = ManagerOverrideStore.from_dict(overrides)
                _LOGGER.info("Restored %d manager overrides", len(self.overrides))

            history = await self.history_store.async_load()
            if history:
                self.histories = {
                    zone_id: TemperatureHistory.from_dict(data)
                    for zone_id, data in history.items()
                    if zone_id in self.facility.zones
                }
                _LOGGER.debug("Restored temperature history for %d zones", len(self.histories))
        except (OSError, ValueError, KeyError, TypeError) as err:
            _LOGGER.warning("Failed to restore ZoneGuard state, starting fresh: %s", err)

    def setup_compressor_listener(self) -> None:
        """Track compressor entities so short cycles between updates are counted."""
        by_entity: dict[str, Equipment] = {}
        for equipment in self.facility.equipment.values():
            for entity_id in (equipment.compressor_current_entity, equipment.compressor_entity):
                if entity_id:
                    by_entity[entity_id] = equipment

        if not by_entity:
            return

        @callback
        def compressor_state_changed(event: Event) -> None:
            equipment = by_entity.get(event.data["entity_id"])
            window = self.windows.get(equipment.equipment_id) if equipment else None
            if window is None:
                return
            running = self.telemetry.read_compressor_on(equipment, window.current_threshold_a)
            if running is not None:
                window.record_compressor_state(running, dt_util.now())

        self._compressor_listener = async_track_state_change_event(
            self.hass, list(by_entity), compressor_state_changed
        )
        _LOGGER.debug("Tracking %d compressor entities", len(by_entity))

    async def async_shutdown(self) -> None:
        """Save persistent state and stop listeners."""
        _LOGGER.debug("Shutting down ZoneGuard coordinator")

        if self._compressor_listener:
            self._compressor_listener()
            self._compressor_listener = None

        try:
            await self._async_save_overrides()
            await self._async_save_history()
            _LOGGER.info("Coordinator shutdown complete")
        except (OSError, RuntimeError, ValueError) as err:
            _LOGGER.error("Error during coordinator shutdown: %s", err, exc_info=True)

        await super().async_shutdown()

    async def _async_save_overrides(self) -> None:
        await self.override_store.async_save(self.overrides.to_dict())

    async def _async_save_history(self) -> None:
        await self.history_store.async_save(
            {zone_id: history.to_dict() for zone_id, history in self.histories.items()}
        )

    async def async_set_manager_override(self, zone_id: str, offset_f: float) -> ManagerOverride:
        """Set a manager override and re-evaluate."""
        override = self.overrides.set(zone_id, offset_f, dt_util.now())
        await self._async_save_overrides()
        await self.async_request_refresh()
        return override

    async def async_clear_manager_override(self, zone_id: str) -> bool:
        """Clear a manager override and re-evaluate."""
        cleared = self.overrides.clear(zone_id)
        if cleared:
            await self._async_save_overrides()
            await self.async_request_refresh()
        return cleared

    async def _async_update_data(self) -> dict[str, Any]:
        """Evaluate every managed zone.

        Returns:
            Dictionary containing:
            - zones: ZoneEvaluation per zone id
            - anomalies: AnomalyReport per zone id (zones with equipment)
            - errors: error message per failed zone id
            - evaluated_at: batch time
        """
        now = dt_util.now()
        zones = self.facility.managed_zones()
        _LOGGER.debug("Starting ZoneGuard evaluation of %d zones", len(zones))

        self._expire_overrides(zones, now)

        evaluations: dict[str, ZoneEvaluation] = {}
        anomalies: dict[str, AnomalyReport] = {}
        errors: dict[str, str] = {}

        for zone in zones:
            try:
                evaluation, report = self._evaluate_zone(zone, now)
            except (KeyError, ValueError, TypeError, AttributeError) as err:
                _LOGGER.error("Zone %s evaluation failed: %s", zone.zone_id, err)
                errors[zone.zone_id] = str(err)
                continue
            except Exception as err:  # noqa: BLE001
                _LOGGER.exception("Unexpected error evaluating zone %s", zone.zone_id)
                errors[zone.zone_id] = str(err)
                continue

            evaluations[zone.zone_id] = evaluation
            if report is not None:
                anomalies[zone.zone_id] = report
            if evaluation.directive is not None:
                self._fire_directive(zone, evaluation)

        if zones and not evaluations:
            raise UpdateFailed(f"All {len(zones)} zones failed evaluation")

        if self.ramp_rates.needs_refresh(now):
            self.ramp_rates.refresh(self.histories, now)
            await self._async_save_history()

        _LOGGER.debug(
            "Evaluation complete: %d directives, %d errors",
            sum(1 for e in evaluations.values() if e.directive),
            len(errors),
        )
        return {
            "zones": evaluations,
            "anomalies": anomalies,
            "errors": errors,
            "evaluated_at": now,
        }

    def _expire_overrides(self, zones: list[Zone], now: datetime) -> None:
        """Drop overrides past their profile's reset time."""
        if not len(self.overrides):
            return
        reset_minutes = {
            zone.zone_id: resolve_profile(zone, self.facility)[0].manager_reset_minutes
            for zone in zones
        }
        if self.overrides.prune_expired(now, reset_minutes):
            self.hass.async_create_task(self._async_save_overrides())

    def _evaluate_zone(
        self, zone: Zone, now: datetime
    ) -> tuple[ZoneEvaluation, AnomalyReport | None]:
        """Read telemetry for one zone and run the engine and detector."""
        site = self.facility.sites[zone.site_id]
        profile, source, issue = resolve_profile(zone, self.facility)
        issues = [ConfigIssue(zone.zone_id, "profile_missing", issue)] if issue else []

        thermostat = self.telemetry.read_thermostat(zone.thermostat_entity)
        readings = self.telemetry.read_sensors(zone.bindings)
        occupancy = self.telemetry.read_occupancy(zone.occupancy_entity, now)
        outdoor = self.telemetry.read_outdoor_temp(site)

        # Record before computing the trend so it includes this cycle
        history = self.histories.setdefault(zone.zone_id, TemperatureHistory())
        aggregates = self.engine.aggregator.aggregate_zone(zone, readings, thermostat, now)
        temperature = aggregates[SensorClass.TEMPERATURE]
        if temperature.value is not None and temperature.fresh:
            history.record(now, temperature.value)

        inputs = ZoneInputs(
            zone=zone,
            site=site,
            profile=profile,
            profile_source=source,
            readings=readings,
            thermostat=thermostat,
            occupancy=occupancy,
            outdoor_temp_f=outdoor,
            historical_rates=self.ramp_rates.rates_for(zone.zone_id),
            current_trend=history.current_trend(now),
            manager_override=self.overrides.get(zone.zone_id),
            config_issues=issues,
            aggregates=aggregates,
            pre_open_window=self.pre_open_windows.get(zone.zone_id),
        )
        evaluation = self.engine.evaluate(inputs, now)
        if evaluation.pre_open_window is None:
            self.pre_open_windows.pop(zone.zone_id, None)
        else:
            self.pre_open_windows[zone.zone_id] = evaluation.pre_open_window

        report = None
        if zone.equipment_id:
            report = self._evaluate_equipment(zone, thermostat, temperature.value, outdoor, now)
        return evaluation, report

    def _evaluate_equipment(
        self,
        zone: Zone,
        thermostat: ThermostatState | None,
        zone_temp_f: float | None,
        outdoor_temp_f: float | None,
        now: datetime,
    ) -> AnomalyReport:
        """Sample one unit's telemetry and run the anomaly rules."""
        equipment = self.facility.equipment[zone.equipment_id]
        equipment_class = EquipmentClassRegistry.get_class(equipment.equipment_class)
        thresholds = equipment_class.resolve_thresholds(zone.anomaly_overrides)

        window = self.windows.get(equipment.equipment_id)
        if window is None:
            window = EquipmentTelemetryWindow(thresholds.compressor_current_threshold_a)
            self.windows[equipment.equipment_id] = window

        sample = self.telemetry.read_equipment_sample(
            equipment, now, thermostat, zone_temp_f, outdoor_temp_f
        )
        if (
            sample.compressor_current_a is None
            and sample.compressor_on is None
            and sample.hvac_action is not None
        ):
            # No compressor telemetry, infer from what the class runs it for
            sample = replace(
                sample, compressor_on=equipment_class.compressor_expected(sample.hvac_action)
            )
        window.add_sample(sample)

        rated = equipment.rated_delta_t_f or equipment_class.rated_delta_t(sample.hvac_action)
        return self.detector.evaluate(
            equipment.equipment_id,
            window,
            thresholds,
            now,
            rated_delta_t_f=rated,
            zone_id=zone.zone_id,
        )

    def _fire_directive(self, zone: Zone, evaluation: ZoneEvaluation) -> None:
        """Publish a directive for the external command-push mechanism."""
        payload = evaluation.directive.as_dict()
        payload["site_id"] = zone.site_id
        payload["thermostat_entity"] = zone.thermostat_entity
        self.hass.bus.async_fire(EVENT_DIRECTIVE, payload)

    def zone_evaluation(self, zone_id: str) -> ZoneEvaluation | None:
        """Latest evaluation for a zone."""
        if not self.data:
            return None
        return self.data.get("zones", {}).get(zone_id)

    def zone_anomalies(self, zone_id: str) -> AnomalyReport | None:
        """Latest anomaly report for a zone."""
        if not self.data:
            return None
        return self.data.get("anomalies", {}).get(zone_id)

"""Telemetry adapter for reading zone and equipment state.

This adapter reads telemetry from existing Home Assistant entities. It does
not talk to devices directly. All temperatures are normalized to °F.

Data read includes:
- Zone sensor readings (temperature, humidity)
- Thermostat state (climate.* entity)
- Occupancy sensor state (binary_sensor.*)
- Outdoor temperature (sensor or weather entity)
- Equipment telemetry (compressor current, coil, supply/return, fan)
"""

import logging
from datetime import datetime

from homeassistant.const import ATTR_UNIT_OF_MEASUREMENT, STATE_ON, UnitOfTemperature
from homeassistant.core import HomeAssistant, State
from homeassistant.util import dt as dt_util
from homeassistant.util.unit_conversion import TemperatureConverter

from ..const import UNUSABLE_STATES, HvacAction, HvacMode, SensorClass
from ..models.facility import Equipment, SensorBinding, Site
from ..models.telemetry import (
    OccupancyState,
    SensorReading,
    TelemetrySample,
    ThermostatState,
)

_LOGGER = logging.getLogger(__name__)

TEMPERATURE_UNITS = {
    "°F": UnitOfTemperature.FAHRENHEIT,
    "°C": UnitOfTemperature.CELSIUS,
    "K": UnitOfTemperature.KELVIN,
}


def to_fahrenheit(value: float | None, unit: str | None) -> float | None:
    """Convert a temperature to °F. Unknown units are assumed to be °F."""
    if value is None:
        return None
    source = TEMPERATURE_UNITS.get(unit or "°F", UnitOfTemperature.FAHRENHEIT)
    if source == UnitOfTemperature.FAHRENHEIT:
        return value
    return TemperatureConverter.convert(value, source, UnitOfTemperature.FAHRENHEIT)


def _parse_float(value) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def _last_seen(state: State) -> datetime:
    """Most recent time HA heard from the entity, even without a change."""
    return getattr(state, "last_reported", None) or state.last_updated


class TelemetryAdapter:
    """Adapter for reading zone and equipment entities."""

    def __init__(self, hass: HomeAssistant):
        """Initialize telemetry adapter.

        Args:
            hass: Home Assistant instance
        """
        self.hass = hass

    @property
    def system_temperature_unit(self) -> str:
        """Unit climate and weather attributes are reported in."""
        return self.hass.config.units.temperature_unit

    def _usable_state(self, entity_id: str | None) -> State | None:
        if not entity_id:
            return None
        state = self.hass.states.get(entity_id)
        if not state or str(state.state).lower() in UNUSABLE_STATES:
            return None
        return state

    def read_sensor(self, binding: SensorBinding) -> SensorReading | None:
        """Read one bound sensor.

        Non-numeric states produce a reading with value None so the
        aggregator can exclude it.

        Returns:
            SensorReading, or None if the entity does not exist
        """
        state = self.hass.states.get(binding.entity_id)
        if state is None:
            return None

        unit = state.attributes.get(ATTR_UNIT_OF_MEASUREMENT)
        value = None
        if str(state.state).lower() not in UNUSABLE_STATES:
            value = _parse_float(state.state)
            if value is None:
                _LOGGER.warning("Cannot parse float from %s: %s", binding.entity_id, state.state)

        if binding.device_class == SensorClass.TEMPERATURE:
            value = to_fahrenheit(value, unit)
            unit = UnitOfTemperature.FAHRENHEIT

        return SensorReading(
            entity_id=binding.entity_id,
            device_class=binding.device_class,
            value=value,
            unit=unit,
            timestamp=_last_seen(state),
        )

    def read_sensors(self, bindings: tuple[SensorBinding, ...]) -> dict[str, SensorReading]:
        """Read every bound sensor, keyed by entity id."""
        readings = {}
        for binding in bindings:
            reading = self.read_sensor(binding)
            if reading is not None:
                readings[binding.entity_id] = reading
        return readings

    def read_thermostat(self, entity_id: str) -> ThermostatState | None:
        """Read a climate entity.

        Returns:
            ThermostatState, or None if the entity is missing or unavailable
        """
        state = self._usable_state(entity_id)
        if state is None:
            _LOGGER.debug("Thermostat %s unavailable", entity_id)
            return None

        attrs = state.attributes
        unit = self.system_temperature_unit

        def temp(key: str) -> float | None:
            return to_fahrenheit(_parse_float(attrs.get(key)), unit)

        try:
            mode = HvacMode(state.state)
        except ValueError:
            mode = HvacMode.HEAT_COOL if state.state == "auto" else None
        try:
            action = HvacAction(attrs.get("hvac_action")) if attrs.get("hvac_action") else None
        except ValueError:
            action = None

        heat = temp("target_temp_low")
        cool = temp("target_temp_high")
        single = temp("temperature")
        if single is not None:
            if mode == HvacMode.HEAT:
                heat = single
            elif mode == HvacMode.COOL:
                cool = single

        return ThermostatState(
            name=attrs.get("friendly_name", entity_id),
            last_sync=_last_seen(state),
            current_temp_f=temp("current_temperature"),
            current_humidity=_parse_float(attrs.get("current_humidity")),
            heat_setpoint_f=heat,
            cool_setpoint_f=cool,
            hvac_mode=mode,
            hvac_action=action,
            fan_mode=attrs.get("fan_mode"),
            outdoor_temp_f=None,
        )

    def read_occupancy(self, entity_id: str | None, now: datetime | None = None) -> OccupancyState | None:
        """Read an occupancy/motion binary sensor.

        While off, last_changed is when motion was last seen.
        """
        state = self._usable_state(entity_id)
        if state is None:
            return None
        if now is None:
            now = dt_util.now()
        if state.state == STATE_ON:
            return OccupancyState(occupied=True, last_motion=now)
        return OccupancyState(occupied=False, last_motion=state.last_changed)

    def read_outdoor_temp(self, site: Site) -> float | None:
        """Read outdoor temperature from the site's sensor, then its weather entity."""
        state = self._usable_state(site.outdoor_temp_entity)
        if state is not None:
            return to_fahrenheit(
                _parse_float(state.state), state.attributes.get(ATTR_UNIT_OF_MEASUREMENT)
            )

        state = self._usable_state(site.weather_entity)
        if state is not None:
            unit = state.attributes.get("temperature_unit", self.system_temperature_unit)
            return to_fahrenheit(_parse_float(state.attributes.get("temperature")), unit)
        return None

    def _read_float(self, entity_id: str | None) -> tuple[float | None, str | None]:
        state = self._usable_state(entity_id)
        if state is None:
            return None, None
        return _parse_float(state.state), state.attributes.get(ATTR_UNIT_OF_MEASUREMENT)

    def _read_temp(self, entity_id: str | None) -> float | None:
        value, unit = self._read_float(entity_id)
        return to_fahrenheit(value, unit)

    def _read_on(self, entity_id: str | None) -> bool | None:
        state = self._usable_state(entity_id)
        if state is None:
            return None
        return state.state == STATE_ON

    def read_compressor_on(self, equipment: Equipment, threshold_a: float) -> bool | None:
        """Compressor running state from the current clamp or on/off entity."""
        current, _ = self._read_float(equipment.compressor_current_entity)
        if current is not None:
            return current > threshold_a
        return self._read_on(equipment.compressor_entity)

    def read_equipment_sample(
        self,
        equipment: Equipment,
        now: datetime,
        thermostat: ThermostatState | None = None,
        zone_temp_f: float | None = None,
        outdoor_temp_f: float | None = None,
    ) -> TelemetrySample:
        """Read one telemetry sample for an equipment unit."""
        current, _ = self._read_float(equipment.compressor_current_entity)
        return TelemetrySample(
            timestamp=now,
            compressor_current_a=current,
            compressor_on=self._read_on(equipment.compressor_entity),
            coil_temp_f=self._read_temp(equipment.coil_temp_entity),
            supply_temp_f=self._read_temp(equipment.supply_temp_entity),
            return_temp_f=self._read_temp(equipment.return_temp_entity),
            fan_running=self._read_on(equipment.fan_entity),
            hvac_action=thermostat.hvac_action if thermostat else None,
            zone_temp_f=zone_temp_f,
            outdoor_temp_f=outdoor_temp_f,
        )

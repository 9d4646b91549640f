"""The ZoneGuard integration.

ZoneGuard resolves heating and cooling setpoints for retail HVAC zones. It
layers bounded adjustments (Smart Start pre-conditioning, occupancy, feels-like,
manager overrides, safety guardrails) over per-zone comfort profiles and
flags equipment anomalies from existing Home Assistant entities.

Directives are published as events for a separate command-push mechanism.
"""

import logging
from datetime import timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers.update_coordinator import UpdateFailed

from .const import (
    CONF_FACILITY_FILE,
    CONF_OFFLINE_AFTER,
    CONF_READING_FRESH_FOR,
    CONF_STALE_AFTER,
    CONF_UPDATE_INTERVAL,
    DEFAULT_FACILITY_FILE,
    DEFAULT_OFFLINE_AFTER_MINUTES,
    DEFAULT_READING_FRESH_MINUTES,
    DEFAULT_STALE_AFTER_MINUTES,
    DOMAIN,
    UPDATE_INTERVAL_MINUTES,
)
from .coordinator import ZoneGuardCoordinator
from .facility import FacilityConfigError, load_facility

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [Platform.SENSOR]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up ZoneGuard from a config entry."""
    _LOGGER.info("Setting up ZoneGuard integration")

    hass.data.setdefault(DOMAIN, {})

    coordinator = await _create_coordinator(hass, entry)
    hass.data[DOMAIN][entry.entry_id] = coordinator

    # First evaluation only fails when every zone fails, HA retries on NotReady
    try:
        await coordinator.async_config_entry_first_refresh()
    except (UpdateFailed, TimeoutError, OSError) as err:
        hass.data[DOMAIN].pop(entry.entry_id, None)
        raise ConfigEntryNotReady(
            "No zone could be evaluated. Ensure thermostat entities are available."
        ) from err

    coordinator.setup_compressor_listener()

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    await _async_register_services(hass)

    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    _LOGGER.info("ZoneGuard setup complete")
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    _LOGGER.info("Unloading ZoneGuard integration")

    coordinator: ZoneGuardCoordinator = hass.data[DOMAIN].get(entry.entry_id)

    if coordinator:
        try:
            await coordinator.async_shutdown()
        except (OSError, RuntimeError, ValueError) as err:
            _LOGGER.warning("Failed to shutdown coordinator cleanly: %s", err)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        hass.data[DOMAIN].pop(entry.entry_id, None)

        if not hass.data[DOMAIN]:
            _async_unregister_services(hass)

    return unload_ok


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload config entry when options change.

    Every option feeds the engine constructor or the update interval, so
    a full reload is always needed.
    """
    _LOGGER.info("ZoneGuard options changed, reloading integration")
    await hass.config_entries.async_reload(entry.entry_id)


async def _create_coordinator(hass: HomeAssistant, entry: ConfigEntry) -> ZoneGuardCoordinator:
    """Create coordinator with dependency injection.

    Loads the facility file, builds the telemetry adapter and decision
    components from entry options, and restores persisted state.

    Raises:
        ConfigEntryNotReady: If the facility file is missing or invalid
    """
    from .adapters.telemetry_adapter import TelemetryAdapter
    from .optimization.anomaly_detector import AnomalyDetector
    from .optimization.sensor_aggregator import SensorAggregator
    from .optimization.setpoint_engine import SetpointEngine

    path = hass.config.path(entry.data.get(CONF_FACILITY_FILE, DEFAULT_FACILITY_FILE))
    try:
        facility = await hass.async_add_executor_job(load_facility, path)
    except FacilityConfigError as err:
        raise ConfigEntryNotReady(f"Facility configuration invalid: {err}") from err

    options = entry.options
    interval = options.get(CONF_UPDATE_INTERVAL, UPDATE_INTERVAL_MINUTES)
    aggregator = SensorAggregator(
        fresh_for=timedelta(
            minutes=options.get(CONF_READING_FRESH_FOR, DEFAULT_READING_FRESH_MINUTES)
        )
    )
    engine = SetpointEngine(
        aggregator=aggregator,
        stale_after=timedelta(minutes=options.get(CONF_STALE_AFTER, DEFAULT_STALE_AFTER_MINUTES)),
        offline_after=timedelta(
            minutes=options.get(CONF_OFFLINE_AFTER, DEFAULT_OFFLINE_AFTER_MINUTES)
        ),
        interval_minutes=interval,
    )

    coordinator = ZoneGuardCoordinator(
        hass=hass,
        telemetry_adapter=TelemetryAdapter(hass),
        setpoint_engine=engine,
        anomaly_detector=AnomalyDetector(),
        facility=facility,
        entry=entry,
    )

    await coordinator.async_restore_state()
    return coordinator


def _async_unregister_services(hass: HomeAssistant) -> None:
    """Unregister integration services when last config entry is removed."""
    from .const import (
        SERVICE_CLEAR_MANAGER_OVERRIDE,
        SERVICE_EVALUATE_NOW,
        SERVICE_SET_MANAGER_OVERRIDE,
    )

    for service in (
        SERVICE_SET_MANAGER_OVERRIDE,
        SERVICE_CLEAR_MANAGER_OVERRIDE,
        SERVICE_EVALUATE_NOW,
    ):
        if hass.services.has_service(DOMAIN, service):
            hass.services.async_remove(DOMAIN, service)
            _LOGGER.debug("Unregistered service: %s", service)

    _LOGGER.info("ZoneGuard services unregistered successfully")


async def _async_register_services(hass: HomeAssistant) -> None:
    """Register integration services.

    - set_manager_override: Temporary offset on a zone's setpoints
    - clear_manager_override: Remove a zone's override early
    - evaluate_now: Run an evaluation batch immediately
    """
    import voluptuous as vol
    from homeassistant.exceptions import ServiceValidationError
    from homeassistant.helpers import config_validation as cv

    from .const import (
        ATTR_OFFSET,
        ATTR_ZONE_ID,
        MAX_SERVICE_OFFSET_F,
        SERVICE_CLEAR_MANAGER_OVERRIDE,
        SERVICE_EVALUATE_NOW,
        SERVICE_SET_MANAGER_OVERRIDE,
    )

    def get_coordinator_for_zone(zone_id: str) -> ZoneGuardCoordinator:
        """Find the coordinator managing a zone."""
        for coordinator in hass.data.get(DOMAIN, {}).values():
            if not isinstance(coordinator, ZoneGuardCoordinator):
                continue
            zone = coordinator.facility.zones.get(zone_id)
            if zone is None:
                continue
            if not zone.is_managed:
                raise ServiceValidationError(f"Zone {zone_id} is not managed by ZoneGuard")
            return coordinator
        raise ServiceValidationError(f"Unknown zone: {zone_id}")

    async def set_manager_override_handler(call) -> None:
        """Handle set_manager_override service call.

        The offset is stored as requested and clamped to the zone
        profile's manager limits when applied.
        """
        zone_id = call.data[ATTR_ZONE_ID]
        offset = call.data[ATTR_OFFSET]
        coordinator = get_coordinator_for_zone(zone_id)

        _LOGGER.info("Manager override requested: zone=%s, offset=%+.1f°F", zone_id, offset)
        await coordinator.async_set_manager_override(zone_id, offset)

    async def clear_manager_override_handler(call) -> None:
        """Handle clear_manager_override service call."""
        zone_id = call.data[ATTR_ZONE_ID]
        coordinator = get_coordinator_for_zone(zone_id)

        if not await coordinator.async_clear_manager_override(zone_id):
            _LOGGER.info("No active manager override for %s", zone_id)

    async def evaluate_now_handler(call) -> None:
        """Handle evaluate_now service call."""
        coordinators = [
            c for c in hass.data.get(DOMAIN, {}).values() if isinstance(c, ZoneGuardCoordinator)
        ]
        if not coordinators:
            raise ServiceValidationError("No ZoneGuard coordinator found")
        for coordinator in coordinators:
            await coordinator.async_request_refresh()

    set_manager_override_schema = vol.Schema(
        {
            vol.Required(ATTR_ZONE_ID): cv.string,
            vol.Required(ATTR_OFFSET): vol.All(
                vol.Coerce(float),
                vol.Range(min=-MAX_SERVICE_OFFSET_F, max=MAX_SERVICE_OFFSET_F),
            ),
        }
    )
    clear_manager_override_schema = vol.Schema({vol.Required(ATTR_ZONE_ID): cv.string})
    evaluate_now_schema = vol.Schema({})

    services = (
        (SERVICE_SET_MANAGER_OVERRIDE, set_manager_override_handler, set_manager_override_schema),
        (
            SERVICE_CLEAR_MANAGER_OVERRIDE,
            clear_manager_override_handler,
            clear_manager_override_schema,
        ),
        (SERVICE_EVALUATE_NOW, evaluate_now_handler, evaluate_now_schema),
    )
    for service, handler, schema in services:
        if not hass.services.has_service(DOMAIN, service):
            hass.services.async_register(DOMAIN, service, handler, schema=schema)
            _LOGGER.debug("Registered service: %s", service)

    _LOGGER.info("ZoneGuard services registered successfully")

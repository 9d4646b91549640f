"""Tests for ZoneGuard services.

- set_manager_override: Temporary offset on a zone's setpoints
- clear_manager_override: Remove a zone's override early
- evaluate_now: Run an evaluation batch immediately
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import voluptuous as vol
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ServiceValidationError

from custom_components.zoneguard import _async_register_services, _async_unregister_services
from custom_components.zoneguard.const import (
    ATTR_OFFSET,
    ATTR_ZONE_ID,
    DOMAIN,
    SERVICE_CLEAR_MANAGER_OVERRIDE,
    SERVICE_EVALUATE_NOW,
    SERVICE_SET_MANAGER_OVERRIDE,
    ControlScope,
)
from custom_components.zoneguard.coordinator import ZoneGuardCoordinator

from conftest import make_facility, make_zone


@pytest.fixture
def mock_hass():
    """Create mock Home Assistant instance."""
    hass = MagicMock(spec=HomeAssistant)
    hass.data = {DOMAIN: {}}
    hass.services = MagicMock()
    hass.services.has_service = MagicMock(return_value=False)
    hass.services.async_register = MagicMock()
    return hass


@pytest.fixture
def mock_coordinator(mock_hass):
    """Create mock coordinator managing sales_floor, with an open vestibule."""
    coordinator = MagicMock(spec=ZoneGuardCoordinator)
    coordinator.hass = mock_hass
    coordinator.facility = make_facility(
        zones=[make_zone(), make_zone("vestibule", control_scope=ControlScope.OPEN)]
    )
    coordinator.async_set_manager_override = AsyncMock()
    coordinator.async_clear_manager_override = AsyncMock(return_value=True)
    coordinator.async_request_refresh = AsyncMock()

    mock_hass.data[DOMAIN]["test_entry"] = coordinator
    return coordinator


async def registered(hass):
    """Register services and return (handler, schema) by service name."""
    await _async_register_services(hass)
    return {
        call[0][1]: (call[0][2], call[1]["schema"])
        for call in hass.services.async_register.call_args_list
    }


def service_call(**data):
    call = MagicMock()
    call.data = data
    return call


async def test_services_registered(mock_hass):
    services = await registered(mock_hass)

    assert set(services) == {
        SERVICE_SET_MANAGER_OVERRIDE,
        SERVICE_CLEAR_MANAGER_OVERRIDE,
        SERVICE_EVALUATE_NOW,
    }


async def test_already_registered_services_skipped(mock_hass):
    mock_hass.services.has_service.return_value = True

    await _async_register_services(mock_hass)

    mock_hass.services.async_register.assert_not_called()


async def test_set_override_calls_coordinator(mock_hass, mock_coordinator):
    handler, _ = (await registered(mock_hass))[SERVICE_SET_MANAGER_OVERRIDE]

    await handler(service_call(**{ATTR_ZONE_ID: "sales_floor", ATTR_OFFSET: 2.0}))

    mock_coordinator.async_set_manager_override.assert_awaited_once_with("sales_floor", 2.0)


async def test_set_override_schema_bounds(mock_hass):
    _, schema = (await registered(mock_hass))[SERVICE_SET_MANAGER_OVERRIDE]

    assert schema({ATTR_ZONE_ID: "sales_floor", ATTR_OFFSET: "1.5"})[ATTR_OFFSET] == 1.5
    with pytest.raises(vol.Invalid):
        schema({ATTR_ZONE_ID: "sales_floor", ATTR_OFFSET: 12})


async def test_unknown_zone_rejected(mock_hass, mock_coordinator):
    handler, _ = (await registered(mock_hass))[SERVICE_SET_MANAGER_OVERRIDE]

    with pytest.raises(ServiceValidationError, match="Unknown zone"):
        await handler(service_call(**{ATTR_ZONE_ID: "nowhere", ATTR_OFFSET: 2.0}))

    mock_coordinator.async_set_manager_override.assert_not_called()


async def test_unmanaged_zone_rejected(mock_hass, mock_coordinator):
    handler, _ = (await registered(mock_hass))[SERVICE_SET_MANAGER_OVERRIDE]

    with pytest.raises(ServiceValidationError, match="not managed"):
        await handler(service_call(**{ATTR_ZONE_ID: "vestibule", ATTR_OFFSET: 2.0}))


async def test_clear_override(mock_hass, mock_coordinator):
    handler, _ = (await registered(mock_hass))[SERVICE_CLEAR_MANAGER_OVERRIDE]

    await handler(service_call(**{ATTR_ZONE_ID: "sales_floor"}))

    mock_coordinator.async_clear_manager_override.assert_awaited_once_with("sales_floor")


async def test_evaluate_now_refreshes(mock_hass, mock_coordinator):
    handler, _ = (await registered(mock_hass))[SERVICE_EVALUATE_NOW]

    await handler(service_call())

    mock_coordinator.async_request_refresh.assert_awaited_once()


async def test_evaluate_now_without_coordinator(mock_hass):
    handler, _ = (await registered(mock_hass))[SERVICE_EVALUATE_NOW]

    with pytest.raises(ServiceValidationError):
        await handler(service_call())


def test_unregister_services(mock_hass):
    mock_hass.services.has_service.return_value = True

    _async_unregister_services(mock_hass)

    removed = [call[0][1] for call in mock_hass.services.async_remove.call_args_list]
    assert SERVICE_SET_MANAGER_OVERRIDE in removed
    assert SERVICE_EVALUATE_NOW in removed

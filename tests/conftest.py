"""Pytest configuration for ZoneGuard tests."""

import sys
import tempfile
import warnings
from datetime import datetime, time, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

# Add custom_components to path for imports
sys.path.insert(0, str(Path(__file__).parent))

# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)

warnings.filterwarnings("ignore", category=DeprecationWarning, module="homeassistant")

from custom_components.zoneguard.const import HvacAction, HvacMode, SensorClass  # noqa: E402
from custom_components.zoneguard.models.facility import (  # noqa: E402
    Equipment,
    Facility,
    Profile,
    SensorBinding,
    Site,
    StoreHours,
    Zone,
)
from custom_components.zoneguard.models.telemetry import (  # noqa: E402
    SensorReading,
    TelemetrySample,
    ThermostatState,
)

# Monday 2 March 2026, sites run on UTC so local time equals these values
MONDAY = datetime(2026, 3, 2, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def setup_frame_helper(monkeypatch):
    """Set up the frame helper for all tests."""
    from homeassistant.helpers import frame

    # Mock the report_usage function to avoid frame helper errors
    monkeypatch.setattr(frame, "report_usage", Mock())

    yield


def at(hour: int, minute: int = 0, day: int = 0) -> datetime:
    """Aware datetime `day` days after Monday 2 March 2026."""
    return MONDAY + timedelta(days=day, hours=hour, minutes=minute)


def make_site(
    site_id: str = "store_1",
    open_time: time = time(8, 0),
    close_time: time = time(21, 0),
    tz: str = "UTC",
    **kwargs,
) -> Site:
    """Site open every day with the same hours."""
    hours = StoreHours(open=open_time, close=close_time)
    kwargs.setdefault("weekly_hours", (hours,) * 7)
    return Site(site_id=site_id, name=site_id, timezone=tz, **kwargs)


def make_profile(**kwargs) -> Profile:
    """Retail profile with 68/76 occupied setpoints unless overridden."""
    kwargs.setdefault("profile_id", "retail")
    kwargs.setdefault("name", "Retail")
    return Profile(**kwargs)


def make_zone(zone_id: str = "sales_floor", **kwargs) -> Zone:
    """Managed zone on store_1."""
    kwargs.setdefault("site_id", "store_1")
    kwargs.setdefault("name", zone_id.replace("_", " ").title())
    kwargs.setdefault("thermostat_entity", f"climate.{zone_id}")
    kwargs.setdefault("profile_id", "retail")
    return Zone(zone_id=zone_id, **kwargs)


def make_facility(zones=None, profiles=None, equipment=None, sites=None) -> Facility:
    """Facility with one site, the retail profile and the given zones."""
    zones = zones if zones is not None else [make_zone()]
    profiles = profiles if profiles is not None else [make_profile()]
    sites = sites if sites is not None else [make_site()]
    return Facility(
        sites={s.site_id: s for s in sites},
        profiles={p.profile_id: p for p in profiles},
        equipment={e.equipment_id: e for e in (equipment or [])},
        zones={z.zone_id: z for z in zones},
    )


def make_equipment(equipment_id: str = "rtu_1", **kwargs) -> Equipment:
    """Rooftop unit with a current clamp and supply/return sensors."""
    kwargs.setdefault("name", equipment_id.upper())
    kwargs.setdefault("equipment_class", "rooftop_unit")
    kwargs.setdefault("compressor_current_entity", f"sensor.{equipment_id}_current")
    kwargs.setdefault("supply_temp_entity", f"sensor.{equipment_id}_supply")
    kwargs.setdefault("return_temp_entity", f"sensor.{equipment_id}_return")
    return Equipment(equipment_id=equipment_id, **kwargs)


def binding(entity_id: str, weight: float = 1.0, device_class=SensorClass.TEMPERATURE):
    """Sensor binding shorthand."""
    return SensorBinding(entity_id=entity_id, device_class=device_class, weight=weight)


def reading(entity_id: str, value, timestamp: datetime, device_class=SensorClass.TEMPERATURE):
    """Sensor reading shorthand, values already in °F."""
    return SensorReading(
        entity_id=entity_id,
        device_class=device_class,
        value=value,
        unit="°F" if device_class == SensorClass.TEMPERATURE else "%",
        timestamp=timestamp,
    )


def thermostat(
    last_sync: datetime | None,
    temp: float | None = None,
    humidity: float | None = None,
    mode: HvacMode = HvacMode.HEAT_COOL,
    action: HvacAction | None = HvacAction.IDLE,
) -> ThermostatState:
    """Thermostat state shorthand."""
    return ThermostatState(
        name="Sales Floor Thermostat",
        last_sync=last_sync,
        current_temp_f=temp,
        current_humidity=humidity,
        heat_setpoint_f=68.0,
        cool_setpoint_f=76.0,
        hvac_mode=mode,
        hvac_action=action,
    )


def sample(timestamp: datetime, **kwargs) -> TelemetrySample:
    """Telemetry sample shorthand."""
    return TelemetrySample(timestamp=timestamp, **kwargs)


def create_mock_hass():
    """Create a properly configured mock Home Assistant instance.

    Returns:
        Mock hass with required attributes for Store and coordinator initialization
    """
    mock_hass = Mock()
    mock_hass.data = {}
    mock_hass.config.config_dir = tempfile.mkdtemp()
    mock_hass.config.path = Mock(side_effect=lambda *parts: str(Path(mock_hass.config.config_dir, *parts)))
    mock_hass.async_add_executor_job = AsyncMock(side_effect=lambda func, *args: func(*args))
    mock_hass.loop = Mock()  # Add loop for DataUpdateCoordinator
    mock_hass.loop.call_soon_threadsafe = Mock()
    mock_hass.states.get = Mock(return_value=None)
    mock_hass.bus.async_fire = Mock()
    return mock_hass


def create_mock_entry(options: dict | None = None, data: dict | None = None):
    """Create a properly configured mock config entry.

    Returns:
        Mock entry with real options and data dictionaries
    """
    mock_entry = Mock()
    mock_entry.entry_id = "test_entry"
    mock_entry.options = options or {}
    mock_entry.data = data or {"name": "ZoneGuard", "facility_file": "zoneguard.yaml"}
    return mock_entry

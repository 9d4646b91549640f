"""Constants for ZoneGuard integration."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Final

# Domain
DOMAIN: Final = "zoneguard"

# Configuration keys (config entry data)
CONF_FACILITY_FILE: Final = "facility_file"  # Path to the facility YAML file

# Configuration keys (options)
CONF_UPDATE_INTERVAL: Final = "update_interval_minutes"
CONF_STALE_AFTER: Final = "stale_after_minutes"  # Thermostat sync age → stale
CONF_OFFLINE_AFTER: Final = "offline_after_minutes"  # Thermostat sync age → offline
CONF_READING_FRESH_FOR: Final = "reading_fresh_minutes"  # Sensor reading freshness horizon

# Defaults
DEFAULT_NAME: Final = "ZoneGuard"
DEFAULT_FACILITY_FILE: Final = "zoneguard.yaml"
UPDATE_INTERVAL_MINUTES: Final = 5  # Directive cycle
MIN_UPDATE_INTERVAL_MINUTES: Final = 1
MAX_UPDATE_INTERVAL_MINUTES: Final = 60
DEFAULT_STALE_AFTER_MINUTES: Final = 10
DEFAULT_OFFLINE_AFTER_MINUTES: Final = 30
DEFAULT_READING_FRESH_MINUTES: Final = 5  # Matches the directive cycle
RAMP_RATE_REFRESH_MINUTES: Final = 60  # Historical ramp-rate cache refresh

# Storage
STORAGE_VERSION: Final = 1
STORAGE_KEY_OVERRIDES: Final = "zoneguard_manager_overrides"
STORAGE_KEY_HISTORY: Final = "zoneguard_temperature_history"

# Events
EVENT_DIRECTIVE: Final = "zoneguard_directive"  # Consumed by the command-push side

# Services
SERVICE_SET_MANAGER_OVERRIDE: Final = "set_manager_override"
SERVICE_CLEAR_MANAGER_OVERRIDE: Final = "clear_manager_override"
SERVICE_EVALUATE_NOW: Final = "evaluate_now"
ATTR_ZONE_ID: Final = "zone_id"
ATTR_OFFSET: Final = "offset_f"
MAX_SERVICE_OFFSET_F: Final = 10.0  # Schema bound, profile bounds clamp further

# States Home Assistant reports for entities without a usable value
UNUSABLE_STATES: Final = ("unknown", "unavailable", "none", "")


class HvacMode(StrEnum):
    """Thermostat operating mode."""

    OFF = "off"
    HEAT = "heat"
    COOL = "cool"
    HEAT_COOL = "heat_cool"


class HvacAction(StrEnum):
    """What the thermostat is doing right now."""

    IDLE = "idle"
    HEATING = "heating"
    COOLING = "cooling"
    OFF = "off"


class FanMode(StrEnum):
    """Thermostat fan mode."""

    AUTO = "auto"
    ON = "on"
    CIRCULATE = "circulate"


class ControlScope(StrEnum):
    """Whether a zone is driven by the engine."""

    MANAGED = "managed"
    OPEN = "open"


class Phase(StrEnum):
    """Schedule phase of a zone."""

    OCCUPIED = "occupied"
    UNOCCUPIED = "unoccupied"


class RateSource(StrEnum):
    """Where a Smart Start ramp rate came from."""

    HISTORICAL = "historical"
    CURRENT = "current"
    DEFAULT = "default"


class Confidence(StrEnum):
    """Grade of a Smart Start estimate."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SyncStatus(StrEnum):
    """Thermostat data age classification."""

    LIVE = "live"
    STALE = "stale"
    OFFLINE = "offline"


class Severity(StrEnum):
    """Anomaly flag severity."""

    WARNING = "warning"
    INFO = "info"


class AnomalyType(StrEnum):
    """Named anomaly flags."""

    SHORT_CYCLING = "short_cycling"
    LONG_CYCLE = "long_cycle"
    COIL_FREEZE = "coil_freeze"
    DELAYED_TEMP_RESPONSE = "delayed_temp_response"
    FILTER_RESTRICTION = "filter_restriction"
    REFRIGERANT_LOW = "refrigerant_low"
    IDLE_HEAT_GAIN = "idle_heat_gain"


class ReasonCode(StrEnum):
    """Primary reason attached to a directive."""

    GUARDRAIL_HEAT = "guardrail_heat"
    GUARDRAIL_COOL = "guardrail_cool"
    MANAGER_OVERRIDE = "manager_override"
    SMART_START = "smart_start"
    OCCUPIED = "occupied"
    UNOCCUPIED = "unoccupied"


class LayerKind(StrEnum):
    """Adjustment layers, in fold order."""

    SMART_START = "smart_start"
    OCCUPANCY = "occupancy"
    FEELS_LIKE = "feels_like"
    MANAGER_OVERRIDE = "manager_override"
    DEADBAND = "deadband"
    GUARDRAIL = "guardrail"


class ProfileSource(StrEnum):
    """Where a zone's resolved setpoints came from."""

    PROFILE = "profile"
    ZONE_OVERRIDE = "zone_override"
    DEFAULT = "default"


class SensorClass(StrEnum):
    """Device classes the aggregator combines."""

    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    OCCUPANCY = "occupancy"


# Profile defaults (°F)
DEFAULT_OCCUPIED_HEAT_F: Final = 68.0
DEFAULT_OCCUPIED_COOL_F: Final = 76.0
DEFAULT_UNOCCUPIED_HEAT_F: Final = 55.0
DEFAULT_UNOCCUPIED_COOL_F: Final = 85.0
DEFAULT_GUARDRAIL_MIN_F: Final = 45.0
DEFAULT_GUARDRAIL_MAX_F: Final = 95.0
DEFAULT_MANAGER_MAX_RAISE_F: Final = 4.0
DEFAULT_MANAGER_MAX_LOWER_F: Final = 4.0
DEFAULT_MANAGER_RESET_MINUTES: Final = 120
DEFAULT_SMART_START_MAX_ADJ_F: Final = 1.0
DEFAULT_OCCUPANCY_MAX_ADJ_F: Final = 1.0
DEFAULT_FEELS_LIKE_MAX_ADJ_F: Final = 2.0

# Sensor aggregation
ZONE_AVG_SOURCE: Final = "Zone Avg"
WEIGHT_SUM_TOLERANCE: Final = 0.01

# Smart Start
SMART_START_DEFAULT_HEAT_RATE: Final = 0.15  # °F/min
SMART_START_DEFAULT_COOL_RATE: Final = 0.10  # °F/min
SMART_START_MIN_LEAD_MINUTES: Final = 10
SMART_START_MAX_LEAD_MINUTES: Final = 90
SMART_START_DEFAULT_BUFFER_F: Final = 0.0
SMART_START_MAX_BUFFER_F: Final = 1.0
SMART_START_HUMIDITY_MULTIPLIER: Final = 1.0
SMART_START_FALLBACK_INDOOR_F: Final = 65.0  # Assumed when no indoor reading exists
SMART_START_MIN_USABLE_RATE: Final = 0.01  # °F/min, below this a rate is ignored
SMART_START_RECENT_MOTION_MINUTES: Final = 10  # Motion this recent counts as activity

# Smart Start humidity correction
HUMIDITY_HEAT_HIGH_PCT: Final = 55.0
HUMIDITY_COOL_HIGH_PCT: Final = 60.0
HUMIDITY_LOW_PCT: Final = 30.0
HUMIDITY_HIGH_MINUTES_PER_10PCT: Final = 5.0
HUMIDITY_LOW_MINUTES_PER_10PCT: Final = 3.0

# Smart Start outdoor derating of the default heating rate
OUTDOOR_DERATE_REFERENCE_F: Final = 65.0
OUTDOOR_DERATE_STEPS: Final = ((40.0, 0.6), (20.0, 0.8))  # (°F below reference, factor)

# Ramp-rate history
RAMP_HISTORY_DAYS: Final = 7
RAMP_MIN_SAMPLES: Final = 10
RAMP_MIN_RATES: Final = 5
RAMP_MIN_GAP_MINUTES: Final = 1.0
RAMP_MAX_GAP_MINUTES: Final = 15.0
RAMP_MIN_RATE: Final = 0.05  # °F/min, slower pairs are drift, not recovery
RAMP_TRIM_PERCENTILES: Final = (10.0, 90.0)
TREND_MIN_AGE_MINUTES: Final = 5.0
TREND_MAX_AGE_MINUTES: Final = 10.0

# Occupancy layer
OCCUPANCY_TIMEOUT_MINUTES: Final = 30  # No motion this long relaxes setpoints

# Feels-Like layer
FEELS_LIKE_MIN_TEMP_F: Final = 80.0
FEELS_LIKE_MIN_HUMIDITY: Final = 40.0
# Rothfusz regression, NWS heat index
ROTHFUSZ_COEFFICIENTS: Final = (
    -42.379,
    2.04901523,
    10.14333127,
    -0.22475541,
    -0.00683783,
    -0.05481717,
    0.00122874,
    0.00085282,
    -0.00000199,
)

# Deadband and guardrail
MIN_DEADBAND_F: Final = 2.0  # heat_cool mode keeps cool this far above heat
GUARDRAIL_RECOVERY_MARGIN_F: Final = 10.0  # Forced setpoint distance inside the rail


@dataclass(frozen=True)
class AnomalyThresholds:
    """Anomaly rule thresholds for one equipment unit.

    Resolved from the equipment class defaults, then overridden per zone.
    """

    short_cycle_count_1h: int = 6  # Compressor starts per rolling hour
    long_cycle_min: float = 180.0  # Continuous run while still calling
    coil_freeze_temp_f: float = 32.0  # Coil at or below this while running
    delayed_response_min: float = 15.0  # Expected response window
    min_response_delta_f: float = 0.5  # Change that counts as a response
    filter_restriction_delta_t_max: float = 25.0  # |return - supply| ceiling
    efficiency_ratio_min_pct: float = 40.0  # Observed/rated delta-T floor
    compressor_current_threshold_a: float = 1.0  # Above this the compressor runs
    idle_heat_gain_f: float = 2.0  # Rise while idle
    idle_heat_gain_window_min: float = 30.0


DEFAULT_ANOMALY_THRESHOLDS: Final = AnomalyThresholds()

# Telemetry window retention (long_cycle needs the run start, not the samples)
TELEMETRY_WINDOW_HOURS: Final = 4
SHORT_CYCLE_WINDOW_MINUTES: Final = 60

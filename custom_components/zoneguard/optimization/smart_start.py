"""Smart Start pre-conditioning predictor.

Estimates how early a zone must start heating or cooling to reach its
occupied setpoint by store open:

1. Target: heat below the occupied heat setpoint, cool above the cool one
2. Delta to target (setpoint ± buffer)
3. Ramp rate: override > 7-day historical > current trend > default
4. Base lead = delta / rate, clamped to [min_lead, max_lead]
5. Humidity correction, bounded by the profile's Smart Start max
6. Start time = open - final lead, or now on occupancy override
7. Confidence from which inputs were actually available

Every estimate records its inputs and rate source so it can be explained.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from ..const import (
    HUMIDITY_COOL_HIGH_PCT,
    HUMIDITY_HEAT_HIGH_PCT,
    HUMIDITY_HIGH_MINUTES_PER_10PCT,
    HUMIDITY_LOW_MINUTES_PER_10PCT,
    HUMIDITY_LOW_PCT,
    OUTDOOR_DERATE_REFERENCE_F,
    OUTDOOR_DERATE_STEPS,
    SMART_START_DEFAULT_COOL_RATE,
    SMART_START_DEFAULT_HEAT_RATE,
    SMART_START_FALLBACK_INDOOR_F,
    SMART_START_MAX_BUFFER_F,
    SMART_START_MIN_USABLE_RATE,
    SMART_START_RECENT_MOTION_MINUTES,
    Confidence,
    HvacMode,
    RateSource,
)
from ..models.facility import SmartStartSettings
from ..models.telemetry import OccupancyState

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmartStartEstimate:
    """Derived pre-conditioning estimate, recomputed every cycle."""

    target_mode: HvacMode | None
    target_temp_f: float | None
    delta_f: float
    rate_used: float
    rate_source: RateSource
    humidity_adjustment_minutes: int
    occupancy_override: bool
    base_lead_minutes: int
    final_lead_minutes: int
    open_time: datetime
    start_time: datetime
    confidence: Confidence
    inputs: dict[str, Any] = field(default_factory=dict)

    @property
    def needs_preconditioning(self) -> bool:
        """Whether the zone has somewhere to travel before open."""
        return self.target_mode is not None

    def in_window(self, now: datetime) -> bool:
        """Whether now falls in the pre-open window [start, open)."""
        return self.needs_preconditioning and self.start_time <= now < self.open_time

    @property
    def window(self) -> "PreOpenWindow | None":
        """Pre-open window this estimate proposes, None when nothing to do."""
        if not self.needs_preconditioning:
            return None
        return PreOpenWindow(start_time=self.start_time, open_time=self.open_time)

    @property
    def explanation(self) -> str:
        """One-line summary for attributes and logs."""
        if not self.needs_preconditioning:
            return "No pre-conditioning needed"
        override = ", occupancy override" if self.occupancy_override else ""
        return (
            f"{self.target_mode} {self.delta_f:.1f}°F at {self.rate_used:.3f}°F/min "
            f"({self.rate_source}) → {self.final_lead_minutes} min lead, "
            f"{self.confidence} confidence{override}"
        )


@dataclass(frozen=True)
class PreOpenWindow:
    """Pre-open window [start, open) fixed when pre-conditioning first begins.

    Later estimates for the same open may move their start time as the zone
    warms or cools. The window does not move with them, so a zone that is
    pre-conditioning stays occupied until open.
    """

    start_time: datetime
    open_time: datetime

    def contains(self, now: datetime) -> bool:
        """Whether now falls in [start, open)."""
        return self.start_time <= now < self.open_time


def round_minutes(value: float) -> int:
    """Round to the nearest whole minute, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def default_rate(mode: HvacMode, outdoor_temp_f: float | None) -> float:
    """Configured default ramp rate, derated for cold outdoor air when heating."""
    if mode == HvacMode.COOL:
        return SMART_START_DEFAULT_COOL_RATE

    rate = SMART_START_DEFAULT_HEAT_RATE
    if outdoor_temp_f is not None:
        below = OUTDOOR_DERATE_REFERENCE_F - outdoor_temp_f
        for degrees_below, factor in OUTDOOR_DERATE_STEPS:
            if below > degrees_below:
                rate *= factor
                break
    return rate


def humidity_adjustment(mode: HvacMode, humidity: float | None, multiplier: float) -> float:
    """Signed lead-time correction in minutes before bounding.

    Heating above 55% RH and cooling above 60% RH take longer, 5 minutes
    per 10%. Heating below 30% RH is faster, 3 minutes per 10%.
    """
    if humidity is None:
        return 0.0

    minutes = 0.0
    if mode == HvacMode.HEAT and humidity > HUMIDITY_HEAT_HIGH_PCT:
        minutes = (humidity - HUMIDITY_HEAT_HIGH_PCT) / 10 * HUMIDITY_HIGH_MINUTES_PER_10PCT
    elif mode == HvacMode.COOL and humidity > HUMIDITY_COOL_HIGH_PCT:
        minutes = (humidity - HUMIDITY_COOL_HIGH_PCT) / 10 * HUMIDITY_HIGH_MINUTES_PER_10PCT
    elif mode == HvacMode.HEAT and humidity < HUMIDITY_LOW_PCT:
        minutes = -(HUMIDITY_LOW_PCT - humidity) / 10 * HUMIDITY_LOW_MINUTES_PER_10PCT
    return minutes * multiplier


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class SmartStartPredictor:
    """Compute SmartStartEstimate snapshots."""

    def select_rate(
        self,
        mode: HvacMode,
        settings: SmartStartSettings,
        historical_rate: float | None,
        current_trend: float | None,
        outdoor_temp_f: float | None,
    ) -> tuple[float, RateSource]:
        """Pick the ramp rate in priority order.

        Args:
            mode: Direction of travel
            settings: Zone Smart Start settings (rate_override)
            historical_rate: 7-day average rate magnitude for this mode
            current_trend: Signed short-term slope (°F/min)
            outdoor_temp_f: Outdoor temperature for default-rate derating

        Returns:
            Tuple of (rate °F/min, source)
        """
        if settings.rate_override is not None and settings.rate_override > 0:
            return settings.rate_override, RateSource.HISTORICAL

        if historical_rate is not None and historical_rate > SMART_START_MIN_USABLE_RATE:
            return historical_rate, RateSource.HISTORICAL

        if current_trend is not None:
            directional = current_trend if mode == HvacMode.HEAT else -current_trend
            if directional > SMART_START_MIN_USABLE_RATE:
                return directional, RateSource.CURRENT

        return default_rate(mode, outdoor_temp_f), RateSource.DEFAULT

    def estimate(
        self,
        *,
        now: datetime,
        open_time: datetime,
        occupied_heat_f: float,
        occupied_cool_f: float,
        indoor_temp_f: float | None,
        indoor_humidity: float | None = None,
        outdoor_temp_f: float | None = None,
        historical_rates: Mapping[HvacMode, float | None] | None = None,
        current_trend: float | None = None,
        occupancy: OccupancyState | None = None,
        max_adjust_f: float = 1.0,
        settings: SmartStartSettings = SmartStartSettings(),
    ) -> SmartStartEstimate:
        """Estimate lead time and start time before the next open.

        Args:
            now: Evaluation time
            open_time: Target open time
            occupied_heat_f: Occupied heat setpoint
            occupied_cool_f: Occupied cool setpoint
            indoor_temp_f: Aggregated zone temperature (None = missing)
            indoor_humidity: Aggregated zone humidity
            outdoor_temp_f: Outdoor temperature
            historical_rates: 7-day rate per mode
            current_trend: Signed short-term zone temperature slope
            occupancy: Zone occupancy state
            max_adjust_f: Profile Smart Start max adjustment (bounds humidity minutes)
            settings: Zone Smart Start settings

        Returns:
            SmartStartEstimate
        """
        indoor_missing = indoor_temp_f is None
        indoor = SMART_START_FALLBACK_INDOOR_F if indoor_missing else indoor_temp_f
        buffer_f = _clamp(settings.buffer_f, 0.0, SMART_START_MAX_BUFFER_F)
        min_lead, max_lead = settings.min_lead_minutes, settings.max_lead_minutes

        inputs: dict[str, Any] = {
            "indoor_temp_f": indoor_temp_f,
            "indoor_humidity": indoor_humidity,
            "outdoor_temp_f": outdoor_temp_f,
            "occupied_heat_f": occupied_heat_f,
            "occupied_cool_f": occupied_cool_f,
            "buffer_f": buffer_f,
            "current_trend": current_trend,
        }

        # 1. Target resolution
        if indoor < occupied_heat_f:
            mode: HvacMode | None = HvacMode.HEAT
            target = occupied_heat_f + buffer_f
        elif indoor > occupied_cool_f:
            mode = HvacMode.COOL
            target = occupied_cool_f - buffer_f
        else:
            mode = None
            target = None

        if mode is None:
            base = int(_clamp(0, min_lead, max_lead))
            return SmartStartEstimate(
                target_mode=None,
                target_temp_f=None,
                delta_f=0.0,
                rate_used=0.0,
                rate_source=RateSource.DEFAULT,
                humidity_adjustment_minutes=0,
                occupancy_override=False,
                base_lead_minutes=base,
                final_lead_minutes=0,
                open_time=open_time,
                start_time=open_time,
                confidence=self._confidence(RateSource.DEFAULT, indoor_humidity, indoor_missing),
                inputs=inputs,
            )

        # 2. Delta
        delta = abs(target - indoor)

        # 3. Rate selection
        historical = (historical_rates or {}).get(mode)
        inputs["historical_rate"] = historical
        rate, source = self.select_rate(mode, settings, historical, current_trend, outdoor_temp_f)

        # 4. Base lead
        base = int(_clamp(round_minutes(delta / rate), min_lead, max_lead))

        # 5. Humidity correction, bounded by the time needed to move max_adjust_f
        raw_humidity = humidity_adjustment(mode, indoor_humidity, settings.humidity_multiplier)
        bound = max_adjust_f / rate if rate > 0 else 0.0
        humidity_minutes = round_minutes(_clamp(raw_humidity, -bound, bound))

        # 6. Final lead and start time
        final = int(_clamp(base + humidity_minutes, min_lead, max_lead))
        start_time = open_time - timedelta(minutes=final)

        # 7. Occupancy override
        override = False
        if occupancy is not None and now < start_time:
            since_motion = occupancy.minutes_since_motion(now)
            if since_motion is not None and since_motion <= SMART_START_RECENT_MOTION_MINUTES:
                override = True
                start_time = now
                _LOGGER.info("Smart Start occupancy override: activity before start, starting now")

        estimate = SmartStartEstimate(
            target_mode=mode,
            target_temp_f=target,
            delta_f=round(delta, 2),
            rate_used=rate,
            rate_source=source,
            humidity_adjustment_minutes=humidity_minutes,
            occupancy_override=override,
            base_lead_minutes=base,
            final_lead_minutes=final,
            open_time=open_time,
            start_time=start_time,
            confidence=self._confidence(source, indoor_humidity, indoor_missing),
            inputs=inputs,
        )
        _LOGGER.debug("Smart Start: %s", estimate.explanation)
        return estimate

    @staticmethod
    def _confidence(
        source: RateSource, humidity: float | None, indoor_missing: bool
    ) -> Confidence:
        """Grade an estimate purely from which inputs were available."""
        if indoor_missing or source == RateSource.DEFAULT:
            return Confidence.LOW
        if source == RateSource.HISTORICAL and humidity is not None:
            return Confidence.HIGH
        return Confidence.MEDIUM

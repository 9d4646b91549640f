"""Weighted multi-sensor aggregation for zone readings.

Combines the latest reading of every bound sensor into one zone value per
device class, with source attribution, freshness and fallback:

1. Weighted mean over usable zone sensors ("Zone Avg")
2. Thermostat built-in reading (source = thermostat name)
3. Explicit absence (value None, never zero)

Weights are normalized by the actual sum of contributing weights. Declared
weights that do not sum to 1.0 are reported, not corrected.
"""

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..const import (
    DEFAULT_READING_FRESH_MINUTES,
    WEIGHT_SUM_TOLERANCE,
    ZONE_AVG_SOURCE,
    SensorClass,
)
from ..models.facility import SensorBinding, Zone
from ..models.telemetry import SensorReading, ThermostatState

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeightSumIssue:
    """Declared binding weights for a device class do not sum to 1.0."""

    zone_id: str
    device_class: SensorClass
    weight_sum: float

    @property
    def message(self) -> str:
        """Operator-facing description."""
        return (
            f"{self.device_class} sensor weights for zone {self.zone_id} "
            f"sum to {self.weight_sum:.2f}, expected 1.00"
        )


@dataclass(frozen=True)
class AggregateReading:
    """One zone reading for one device class."""

    device_class: SensorClass
    value: float | None
    timestamp: datetime | None
    source: str | None
    fresh: bool
    contributing: tuple[str, ...] = ()
    weight_issue: WeightSumIssue | None = None

    @property
    def has_data(self) -> bool:
        """False when the reading is an explicit absence."""
        return self.value is not None


def is_usable(value) -> bool:
    """Check that a reading value is a finite number."""
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def weighted_mean(pairs: Sequence[tuple[float, float]]) -> float | None:
    """Weighted mean of (value, weight) pairs.

    Args:
        pairs: (value, weight) tuples, weights ≥ 0

    Returns:
        sum(v * w) / sum(w), or None when the total weight is zero
    """
    total_weight = sum(weight for _, weight in pairs)
    if total_weight <= 0:
        return None
    return sum(value * weight for value, weight in pairs) / total_weight


class SensorAggregator:
    """Aggregate bound sensors into zone readings."""

    def __init__(
        self,
        fresh_for: timedelta = timedelta(minutes=DEFAULT_READING_FRESH_MINUTES),
        max_age: timedelta | None = None,
    ):
        """Initialize aggregator.

        Args:
            fresh_for: Readings older than this are used but flag the result non-fresh
            max_age: Readings older than this are excluded entirely (None = never)
        """
        self.fresh_for = fresh_for
        self.max_age = max_age

    def check_weights(
        self, zone_id: str, bindings: Sequence[SensorBinding], device_class: SensorClass
    ) -> WeightSumIssue | None:
        """Report declared weights for a class that do not sum to 1.0."""
        if not bindings:
            return None
        weight_sum = sum(b.weight for b in bindings)
        if abs(weight_sum - 1.0) > WEIGHT_SUM_TOLERANCE:
            return WeightSumIssue(zone_id, device_class, round(weight_sum, 4))
        return None

    def aggregate(
        self,
        zone_id: str,
        bindings: Sequence[SensorBinding],
        readings: Mapping[str, SensorReading],
        device_class: SensorClass,
        now: datetime,
        fallback_value: float | None = None,
        fallback_source: str | None = None,
        fallback_timestamp: datetime | None = None,
    ) -> AggregateReading:
        """Aggregate one device class for a zone.

        Args:
            zone_id: Zone identifier (for issue reporting)
            bindings: Bindings of this device class
            readings: Latest reading per entity id
            device_class: Device class being aggregated
            now: Evaluation time
            fallback_value: Thermostat built-in reading
            fallback_source: Thermostat name
            fallback_timestamp: Thermostat last sync time

        Returns:
            AggregateReading with value, source and freshness
        """
        # Carried on the result, the engine reports it as a config issue
        weight_issue = self.check_weights(zone_id, bindings, device_class)

        pairs: list[tuple[float, float]] = []
        contributing: list[str] = []
        oldest: datetime | None = None

        for binding in bindings:
            reading = readings.get(binding.entity_id)
            if reading is None or not is_usable(reading.value):
                continue

            age = now - reading.timestamp
            if self.max_age is not None and age > self.max_age:
                _LOGGER.debug(
                    "Excluding %s: reading is %.0f min old",
                    binding.entity_id,
                    age.total_seconds() / 60,
                )
                continue

            pairs.append((float(reading.value), binding.weight))
            contributing.append(binding.entity_id)
            if oldest is None or reading.timestamp < oldest:
                oldest = reading.timestamp

        value = weighted_mean(pairs)
        if value is not None:
            return AggregateReading(
                device_class=device_class,
                value=value,
                timestamp=oldest,
                source=ZONE_AVG_SOURCE,
                fresh=now - oldest <= self.fresh_for,
                contributing=tuple(contributing),
                weight_issue=weight_issue,
            )

        # Fallback 1: thermostat built-in reading
        if is_usable(fallback_value):
            fresh = fallback_timestamp is not None and now - fallback_timestamp <= self.fresh_for
            _LOGGER.debug(
                "Zone %s %s: no zone sensor data, using %s",
                zone_id,
                device_class,
                fallback_source,
            )
            return AggregateReading(
                device_class=device_class,
                value=float(fallback_value),
                timestamp=fallback_timestamp,
                source=fallback_source,
                fresh=fresh,
                weight_issue=weight_issue,
            )

        # Fallback 2: explicit absence
        return AggregateReading(
            device_class=device_class,
            value=None,
            timestamp=None,
            source=None,
            fresh=False,
            weight_issue=weight_issue,
        )

    def aggregate_zone(
        self,
        zone: Zone,
        readings: Mapping[str, SensorReading],
        thermostat: ThermostatState | None,
        now: datetime,
    ) -> dict[SensorClass, AggregateReading]:
        """Aggregate temperature and humidity for a zone.

        Returns:
            Mapping of device class → AggregateReading
        """
        fallbacks = {
            SensorClass.TEMPERATURE: thermostat.current_temp_f if thermostat else None,
            SensorClass.HUMIDITY: thermostat.current_humidity if thermostat else None,
        }
        return {
            device_class: self.aggregate(
                zone.zone_id,
                zone.bindings_for(device_class),
                readings,
                device_class,
                now,
                fallback_value=fallback,
                fallback_source=thermostat.name if thermostat else None,
                fallback_timestamp=thermostat.last_sync if thermostat else None,
            )
            for device_class, fallback in fallbacks.items()
        }

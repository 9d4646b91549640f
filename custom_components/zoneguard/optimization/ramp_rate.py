"""Zone temperature history and ramp-rate estimation.

Tracks zone temperature samples for seven days and derives:
- Historical ramp rate per mode (trimmed mean of recovery slopes)
- Current short-term trend (slope over the last 5-10 minutes)

The historical scan is the expensive part, so RampRateCache refreshes it
on a slower cycle than the directive loop.
"""

import logging
from collections import deque
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any

import numpy as np

from ..const import (
    RAMP_HISTORY_DAYS,
    RAMP_MAX_GAP_MINUTES,
    RAMP_MIN_GAP_MINUTES,
    RAMP_MIN_RATE,
    RAMP_MIN_RATES,
    RAMP_MIN_SAMPLES,
    RAMP_RATE_REFRESH_MINUTES,
    RAMP_TRIM_PERCENTILES,
    TREND_MAX_AGE_MINUTES,
    TREND_MIN_AGE_MINUTES,
    HvacMode,
)

_LOGGER = logging.getLogger(__name__)


def compute_ramp_rate(
    samples: Iterable[tuple[datetime, float]],
    mode: HvacMode,
) -> float | None:
    """Estimate a zone's typical recovery rate for one mode.

    Consecutive sample pairs 1-15 minutes apart form slopes. Heating keeps
    slopes above +0.05°F/min, cooling keeps slopes below -0.05°F/min. The
    10th-90th percentile band is averaged to drop door-open spikes and
    sensor jumps.

    Args:
        samples: (timestamp, °F) pairs in chronological order
        mode: HvacMode.HEAT or HvacMode.COOL

    Returns:
        Rate magnitude in °F/min, or None with insufficient data
    """
    points = list(samples)
    if len(points) < RAMP_MIN_SAMPLES:
        return None

    times = np.array([p[0].timestamp() for p in points]) / 60.0
    temps = np.array([p[1] for p in points], dtype=float)

    gaps = np.diff(times)
    slopes = np.diff(temps) / np.where(gaps > 0, gaps, np.nan)
    valid_gap = (gaps >= RAMP_MIN_GAP_MINUTES) & (gaps <= RAMP_MAX_GAP_MINUTES)

    if mode == HvacMode.HEAT:
        rates = slopes[valid_gap & (slopes > RAMP_MIN_RATE)]
    elif mode == HvacMode.COOL:
        rates = -slopes[valid_gap & (slopes < -RAMP_MIN_RATE)]
    else:
        return None

    if len(rates) < RAMP_MIN_RATES:
        return None

    low, high = np.percentile(rates, RAMP_TRIM_PERCENTILES)
    trimmed = rates[(rates >= low) & (rates <= high)]
    if len(trimmed) == 0:
        return None

    return float(np.mean(trimmed))


class TemperatureHistory:
    """Rolling zone temperature history (default 7 days)."""

    def __init__(self, history_days: int = RAMP_HISTORY_DAYS):
        """Initialize history.

        Args:
            history_days: Days of samples to keep
        """
        self.history_days = history_days
        self.samples: deque[tuple[datetime, float]] = deque()

    def record(self, timestamp: datetime, temp_f: float) -> None:
        """Append a sample, ignoring out-of-order timestamps."""
        if self.samples and timestamp <= self.samples[-1][0]:
            return
        self.samples.append((timestamp, temp_f))
        self._prune(timestamp)

    def _prune(self, now: datetime) -> None:
        cutoff = now - timedelta(days=self.history_days)
        while self.samples and self.samples[0][0] < cutoff:
            self.samples.popleft()

    def current_trend(self, now: datetime) -> float | None:
        """Slope between the latest sample and the newest one 5-10 minutes older.

        Args:
            now: Evaluation time

        Returns:
            °F/min (signed), or None if no suitable reference sample exists
            or the latest sample is too old to describe the current trend
        """
        if len(self.samples) < 2:
            return None

        latest_time, latest_temp = self.samples[-1]
        if (now - latest_time).total_seconds() / 60 > TREND_MAX_AGE_MINUTES:
            return None

        for timestamp, temp in reversed(self.samples):
            age = (latest_time - timestamp).total_seconds() / 60
            if age < TREND_MIN_AGE_MINUTES:
                continue
            if age > TREND_MAX_AGE_MINUTES:
                break
            return (latest_temp - temp) / age
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize history for persistence."""
        return {
            "history_days": self.history_days,
            "samples": [[ts.isoformat(), temp] for ts, temp in self.samples],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TemperatureHistory":
        """Restore history from to_dict() output."""
        history = cls(history_days=data.get("history_days", RAMP_HISTORY_DAYS))
        for ts, temp in data.get("samples", []):
            history.samples.append((datetime.fromisoformat(ts), float(temp)))
        return history


class RampRateCache:
    """Historical ramp rates per zone and mode, refreshed on a slow cycle."""

    def __init__(self, refresh_interval: timedelta = timedelta(minutes=RAMP_RATE_REFRESH_MINUTES)):
        """Initialize cache.

        Args:
            refresh_interval: Minimum time between full recomputations
        """
        self.refresh_interval = refresh_interval
        self.last_refresh: datetime | None = None
        self._rates: dict[str, dict[HvacMode, float | None]] = {}

    def needs_refresh(self, now: datetime) -> bool:
        """Whether the cache is due for recomputation."""
        return self.last_refresh is None or now - self.last_refresh >= self.refresh_interval

    def refresh(self, histories: Mapping[str, TemperatureHistory], now: datetime) -> None:
        """Recompute rates for every zone from its history."""
        self._rates = {
            zone_id: {
                HvacMode.HEAT: compute_ramp_rate(history.samples, HvacMode.HEAT),
                HvacMode.COOL: compute_ramp_rate(history.samples, HvacMode.COOL),
            }
            for zone_id, history in histories.items()
        }
        self.last_refresh = now
        _LOGGER.debug("Ramp rates refreshed for %d zones", len(self._rates))

    def rates_for(self, zone_id: str) -> dict[HvacMode, float | None]:
        """Historical rates for a zone, both None when unknown."""
        return self._rates.get(zone_id, {HvacMode.HEAT: None, HvacMode.COOL: None})

"""Rolling equipment telemetry window.

Keeps recent telemetry samples and compressor transitions for one unit so
the anomaly rules can look back over cycle counts, run lengths and zone
temperature response.

Data collection only - the rules live in optimization.anomaly_detector.
"""

import logging
from collections import deque
from datetime import datetime, timedelta
from typing import TypedDict

from homeassistant.util import dt as dt_util

from ..const import TELEMETRY_WINDOW_HOURS, HvacAction
from ..models.telemetry import TelemetrySample

_LOGGER = logging.getLogger(__name__)

CALLING_ACTIONS = (HvacAction.HEATING, HvacAction.COOLING)


class TelemetryDiagnosticsDict(TypedDict):
    """Diagnostic information for one equipment window."""

    samples_count: int
    compressor_running: bool | None
    starts_1h: int
    run_minutes: float | None
    action: str | None
    action_minutes: float | None


class EquipmentTelemetryWindow:
    """Rolling telemetry history for one equipment unit.

    Compressor state comes from the current clamp when one exists, else
    from an on/off entity, else from the thermostat action.
    """

    def __init__(
        self,
        current_threshold_a: float = 1.0,
        max_history_hours: int = TELEMETRY_WINDOW_HOURS,
    ):
        """Initialize telemetry window.

        Args:
            current_threshold_a: Current above which the compressor counts as running
            max_history_hours: Hours of samples and transitions to retain
        """
        self.current_threshold_a = current_threshold_a
        self.max_age = timedelta(hours=max_history_hours)
        self.samples: deque[TelemetrySample] = deque()
        self.compressor_starts: deque[datetime] = deque()

        self.compressor_running: bool | None = None  # None until first known state
        self.run_started_at: datetime | None = None
        self.action: HvacAction | None = None
        self.action_started_at: datetime | None = None

    def compressor_state_from(self, sample: TelemetrySample) -> bool | None:
        """Derive compressor running state from one sample."""
        if sample.compressor_current_a is not None:
            return sample.compressor_current_a > self.current_threshold_a
        if sample.compressor_on is not None:
            return sample.compressor_on
        if sample.hvac_action is not None:
            return sample.hvac_action in CALLING_ACTIONS
        return None

    def record_compressor_state(self, running: bool, timestamp: datetime | None = None) -> None:
        """Record a compressor state, counting off → on transitions as starts.

        Called from the periodic sample and from state-change listeners, so
        repeated identical states are expected and ignored.
        """
        if timestamp is None:
            timestamp = dt_util.now()

        if running and self.compressor_running is not True:
            self.compressor_starts.append(timestamp)
            self.run_started_at = timestamp
        elif not running:
            self.run_started_at = None

        self.compressor_running = running
        self._prune(timestamp)

    def add_sample(self, sample: TelemetrySample) -> None:
        """Append a telemetry sample and update derived state."""
        self.samples.append(sample)

        running = self.compressor_state_from(sample)
        if running is not None:
            self.record_compressor_state(running, sample.timestamp)

        if sample.hvac_action != self.action:
            self.action = sample.hvac_action
            self.action_started_at = sample.timestamp if sample.hvac_action else None
            _LOGGER.debug("HVAC action changed to %s", sample.hvac_action)

        self._prune(sample.timestamp)

    def _prune(self, now: datetime) -> None:
        cutoff = now - self.max_age
        while self.samples and self.samples[0].timestamp < cutoff:
            self.samples.popleft()
        while self.compressor_starts and self.compressor_starts[0] < cutoff:
            self.compressor_starts.popleft()

    @property
    def latest(self) -> TelemetrySample | None:
        """Most recent sample."""
        return self.samples[-1] if self.samples else None

    def starts_within(self, window: timedelta, now: datetime) -> int:
        """Count compressor starts in the rolling window ending at now."""
        cutoff = now - window
        return sum(1 for start in self.compressor_starts if cutoff < start <= now)

    def run_minutes(self, now: datetime) -> float | None:
        """Continuous compressor run length, None if not running or unknown."""
        if not self.compressor_running or self.run_started_at is None:
            return None
        return (now - self.run_started_at).total_seconds() / 60

    def action_minutes(self, now: datetime) -> float | None:
        """How long the current HVAC action has been active."""
        if self.action_started_at is None:
            return None
        return (now - self.action_started_at).total_seconds() / 60

    def zone_temp_change(self, window: timedelta, now: datetime) -> float | None:
        """Zone temperature change over the window ending at now.

        Uses the oldest sample inside the window as the reference, so the
        span can be shorter than the window right after startup.

        Returns:
            Latest minus reference temperature, None with fewer than two samples
        """
        cutoff = now - window
        in_window = [
            s for s in self.samples if s.zone_temp_f is not None and cutoff <= s.timestamp <= now
        ]
        if len(in_window) < 2:
            return None
        return in_window[-1].zone_temp_f - in_window[0].zone_temp_f

    def covers(self, window: timedelta, now: datetime) -> bool:
        """Whether samples with zone temperature reach back across the window."""
        for sample in self.samples:
            if sample.zone_temp_f is not None:
                return sample.timestamp <= now - window
        return False

    def get_diagnostics(self, now: datetime) -> TelemetryDiagnosticsDict:
        """Get diagnostic summary for attributes and troubleshooting."""
        return {
            "samples_count": len(self.samples),
            "compressor_running": self.compressor_running,
            "starts_1h": self.starts_within(timedelta(hours=1), now),
            "run_minutes": self.run_minutes(now),
            "action": str(self.action) if self.action else None,
            "action_minutes": self.action_minutes(now),
        }

"""Adapters for reading Home Assistant entity state."""

from .telemetry_adapter import TelemetryAdapter

__all__ = ["TelemetryAdapter"]

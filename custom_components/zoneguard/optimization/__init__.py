"""Setpoint resolution engine for ZoneGuard.

Pure Python decision logic independent of Home Assistant state. Resolves
zone setpoints from a profile baseline and bounded adjustment layers,
predicts Smart Start lead times, aggregates zone sensors and flags
equipment anomalies.
"""

from .adjustment_layers import LayerAdjustment, LayerContext, Setpoints, fold_layers
from .anomaly_detector import AnomalyDetector, AnomalyFlag, AnomalyReport
from .manager_override import ManagerOverride, ManagerOverrideStore
from .ramp_rate import RampRateCache, TemperatureHistory, compute_ramp_rate
from .sensor_aggregator import AggregateReading, SensorAggregator, WeightSumIssue
from .setpoint_engine import (
    ConfigIssue,
    Directive,
    SetpointEngine,
    ZoneEvaluation,
    ZoneInputs,
    classify_sync,
)
from .smart_start import SmartStartEstimate, SmartStartPredictor

__all__ = [
    "AggregateReading",
    "AnomalyDetector",
    "AnomalyFlag",
    "AnomalyReport",
    "ConfigIssue",
    "Directive",
    "LayerAdjustment",
    "LayerContext",
    "ManagerOverride",
    "ManagerOverrideStore",
    "RampRateCache",
    "SensorAggregator",
    "SetpointEngine",
    "Setpoints",
    "SmartStartEstimate",
    "SmartStartPredictor",
    "TemperatureHistory",
    "WeightSumIssue",
    "ZoneEvaluation",
    "ZoneInputs",
    "classify_sync",
    "compute_ramp_rate",
    "fold_layers",
]

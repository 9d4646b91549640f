"""Setpoint resolution engine.

Per-zone orchestrator. For one zone at one instant it:
1. Classifies thermostat data age (live / stale / offline)
2. Aggregates zone temperature and humidity
3. Determines the phase (store hours or Smart Start pre-open window)
4. Folds the adjustment layers over the profile baseline
5. Picks the primary reason and secondary annotations
6. Emits a Directive, unless the data is offline

Evaluation is a pure function of its inputs and the injected clock.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from ..const import (
    DEFAULT_OFFLINE_AFTER_MINUTES,
    DEFAULT_STALE_AFTER_MINUTES,
    GUARDRAIL_RECOVERY_MARGIN_F,
    MIN_DEADBAND_F,
    OCCUPANCY_TIMEOUT_MINUTES,
    ROTHFUSZ_COEFFICIENTS,
    UPDATE_INTERVAL_MINUTES,
    HvacMode,
    LayerKind,
    Phase,
    ProfileSource,
    ReasonCode,
    SensorClass,
    SyncStatus,
)
from ..models.facility import Profile, Site, Zone
from ..models.telemetry import OccupancyState, SensorReading, ThermostatState
from ..utils.time_utils import is_store_open, next_open_time
from .adjustment_layers import LayerAdjustment, LayerContext, Setpoints, fold_layers
from .manager_override import ManagerOverride
from .sensor_aggregator import AggregateReading, SensorAggregator
from .smart_start import PreOpenWindow, SmartStartEstimate, SmartStartPredictor

_LOGGER = logging.getLogger(__name__)

# Layers whose activity is annotated rather than used as the primary reason
ANNOTATION_LAYERS = (LayerKind.OCCUPANCY, LayerKind.FEELS_LIKE, LayerKind.DEADBAND)


@dataclass(frozen=True)
class ConfigIssue:
    """Configuration inconsistency surfaced for operators. Never fatal."""

    zone_id: str
    code: str
    message: str


@dataclass(frozen=True)
class Directive:
    """Final decision for one zone at one instant. Superseded, never edited."""

    zone_id: str
    heat_setpoint_f: float
    cool_setpoint_f: float
    hvac_mode: HvacMode
    fan_mode: str
    reason_code: ReasonCode
    reason: str
    annotations: tuple[str, ...]
    phase: Phase
    sync_status: SyncStatus
    timestamp: datetime

    def as_dict(self) -> dict[str, Any]:
        """Event/attribute payload."""
        return {
            "zone_id": self.zone_id,
            "heat_setpoint_f": self.heat_setpoint_f,
            "cool_setpoint_f": self.cool_setpoint_f,
            "hvac_mode": str(self.hvac_mode),
            "fan_mode": str(self.fan_mode),
            "reason_code": str(self.reason_code),
            "reason": self.reason,
            "annotations": list(self.annotations),
            "phase": str(self.phase),
            "sync_status": str(self.sync_status),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ZoneInputs:
    """Everything the engine reads for one zone evaluation."""

    zone: Zone
    site: Site
    profile: Profile
    profile_source: ProfileSource = ProfileSource.PROFILE
    readings: Mapping[str, SensorReading] = field(default_factory=dict)
    thermostat: ThermostatState | None = None
    occupancy: OccupancyState | None = None
    outdoor_temp_f: float | None = None
    historical_rates: Mapping[HvacMode, float | None] = field(default_factory=dict)
    current_trend: float | None = None
    manager_override: ManagerOverride | None = None
    config_issues: list[ConfigIssue] = field(default_factory=list)
    aggregates: Mapping[SensorClass, AggregateReading] | None = None
    pre_open_window: PreOpenWindow | None = None


@dataclass
class ZoneEvaluation:
    """Full result of one zone evaluation."""

    zone_id: str
    evaluated_at: datetime
    sync_status: SyncStatus
    phase: Phase
    directive: Directive | None
    layers: list[LayerAdjustment]
    aggregates: dict[SensorClass, AggregateReading]
    smart_start: SmartStartEstimate | None
    profile_source: ProfileSource
    config_issues: list[ConfigIssue] = field(default_factory=list)
    pre_open_window: PreOpenWindow | None = None

    @property
    def temperature(self) -> AggregateReading | None:
        """Aggregated zone temperature."""
        return self.aggregates.get(SensorClass.TEMPERATURE)

    @property
    def humidity(self) -> AggregateReading | None:
        """Aggregated zone humidity."""
        return self.aggregates.get(SensorClass.HUMIDITY)

    def layer(self, kind: LayerKind) -> LayerAdjustment | None:
        """Audit entry for one layer."""
        return next((adj for adj in self.layers if adj.kind == kind), None)


def classify_sync(
    last_sync: datetime | None,
    now: datetime,
    stale_after: timedelta = timedelta(minutes=DEFAULT_STALE_AFTER_MINUTES),
    offline_after: timedelta = timedelta(minutes=DEFAULT_OFFLINE_AFTER_MINUTES),
) -> SyncStatus:
    """Classify thermostat data age.

    Returns:
        live below stale_after, stale below offline_after, otherwise offline
    """
    if last_sync is None:
        return SyncStatus.OFFLINE
    age = now - last_sync
    if age < stale_after:
        return SyncStatus.LIVE
    if age < offline_after:
        return SyncStatus.STALE
    return SyncStatus.OFFLINE


def check_profile(zone_id: str, profile: Profile) -> list[ConfigIssue]:
    """Report guardrail inconsistencies in a resolved profile."""
    issues: list[ConfigIssue] = []
    if profile.guardrail_min_f >= profile.guardrail_max_f:
        issues.append(
            ConfigIssue(
                zone_id,
                "guardrail_inverted",
                f"Guardrail min {profile.guardrail_min_f:.0f}°F is not below "
                f"max {profile.guardrail_max_f:.0f}°F",
            )
        )
    if (
        profile.guardrail_min_f > profile.occupied_heat_f
        or profile.guardrail_max_f < profile.occupied_cool_f
    ):
        issues.append(
            ConfigIssue(
                zone_id,
                "guardrail_narrow",
                f"Guardrails {profile.guardrail_min_f:.0f}-{profile.guardrail_max_f:.0f}°F "
                f"are narrower than occupied setpoints "
                f"{profile.occupied_heat_f:.0f}/{profile.occupied_cool_f:.0f}°F",
            )
        )
    return issues


class SetpointEngine:
    """Resolve directives for zones."""

    def __init__(
        self,
        aggregator: SensorAggregator | None = None,
        predictor: SmartStartPredictor | None = None,
        stale_after: timedelta = timedelta(minutes=DEFAULT_STALE_AFTER_MINUTES),
        offline_after: timedelta = timedelta(minutes=DEFAULT_OFFLINE_AFTER_MINUTES),
        interval_minutes: float = UPDATE_INTERVAL_MINUTES,
        occupancy_timeout_min: float = OCCUPANCY_TIMEOUT_MINUTES,
        feels_like_coefficients: tuple[float, ...] = ROTHFUSZ_COEFFICIENTS,
        recovery_margin_f: float = GUARDRAIL_RECOVERY_MARGIN_F,
        deadband_f: float = MIN_DEADBAND_F,
    ):
        """Initialize engine.

        Args:
            aggregator: Sensor aggregator (default freshness = interval)
            predictor: Smart Start predictor
            stale_after: Thermostat age at which data becomes stale
            offline_after: Thermostat age at which directives are suppressed
            interval_minutes: Evaluation interval, used for guardrail projection
            occupancy_timeout_min: No-motion duration before relaxing
            feels_like_coefficients: Heat index regression coefficients
            recovery_margin_f: Guardrail forced setpoint distance inside the rail
            deadband_f: Minimum heat/cool separation in heat_cool mode
        """
        self.aggregator = aggregator or SensorAggregator(
            fresh_for=timedelta(minutes=interval_minutes)
        )
        self.predictor = predictor or SmartStartPredictor()
        self.stale_after = stale_after
        self.offline_after = offline_after
        self.interval_minutes = interval_minutes
        self.occupancy_timeout_min = occupancy_timeout_min
        self.feels_like_coefficients = tuple(feels_like_coefficients)
        self.recovery_margin_f = recovery_margin_f
        self.deadband_f = deadband_f

    def evaluate(self, inputs: ZoneInputs, now: datetime) -> ZoneEvaluation:
        """Evaluate one zone.

        Args:
            inputs: Zone configuration and telemetry
            now: Evaluation time (injected clock)

        Returns:
            ZoneEvaluation; directive is None when data is offline
        """
        zone, profile = inputs.zone, inputs.profile
        issues = list(inputs.config_issues) + check_profile(zone.zone_id, profile)

        last_sync = inputs.thermostat.last_sync if inputs.thermostat else None
        sync = classify_sync(last_sync, now, self.stale_after, self.offline_after)

        if inputs.aggregates is not None:
            aggregates = dict(inputs.aggregates)
        else:
            aggregates = self.aggregator.aggregate_zone(
                zone, inputs.readings, inputs.thermostat, now
            )
        for reading in aggregates.values():
            if reading.weight_issue:
                issues.append(
                    ConfigIssue(zone.zone_id, "weight_sum", reading.weight_issue.message)
                )
        temp = aggregates[SensorClass.TEMPERATURE].value
        humidity = aggregates[SensorClass.HUMIDITY].value

        store_open = is_store_open(inputs.site, now)
        estimate = None
        if not store_open:
            estimate = self._smart_start(inputs, now, temp, humidity)

        window = self._pre_open_window(inputs.pre_open_window, estimate, now)
        phase = (
            Phase.OCCUPIED
            if store_open or (window is not None and window.contains(now))
            else Phase.UNOCCUPIED
        )

        baseline = self._baseline(profile, phase)
        ctx = LayerContext(
            now=now,
            phase=phase,
            store_open=store_open,
            profile=profile,
            zone_temp_f=temp,
            zone_humidity=humidity,
            trend_f_per_min=inputs.current_trend,
            interval_minutes=self.interval_minutes,
            smart_start=estimate,
            pre_open_window=window,
            occupancy=inputs.occupancy,
            manager_override=inputs.manager_override,
            occupancy_timeout_min=self.occupancy_timeout_min,
            feels_like_coefficients=self.feels_like_coefficients,
            recovery_margin_f=self.recovery_margin_f,
            deadband_f=self.deadband_f,
        )
        final, trail = fold_layers(baseline, ctx)

        directive = None
        if sync == SyncStatus.OFFLINE:
            _LOGGER.warning(
                "Zone %s thermostat data offline (last sync %s), directive suppressed",
                zone.zone_id,
                last_sync.isoformat() if last_sync else "never",
            )
        else:
            if sync == SyncStatus.STALE:
                _LOGGER.info("Zone %s thermostat data stale, emitting best-effort", zone.zone_id)
            reason_code, reason, annotations = self._select_reason(phase, trail)
            directive = Directive(
                zone_id=zone.zone_id,
                heat_setpoint_f=round(final.heat_f, 1),
                cool_setpoint_f=round(final.cool_f, 1),
                hvac_mode=final.mode,
                fan_mode=final.fan_mode,
                reason_code=reason_code,
                reason=reason,
                annotations=annotations,
                phase=phase,
                sync_status=sync,
                timestamp=now,
            )
            _LOGGER.debug(
                "Directive %s: %s %.1f/%.1f°F (%s)",
                zone.zone_id,
                directive.hvac_mode,
                directive.heat_setpoint_f,
                directive.cool_setpoint_f,
                directive.reason,
            )

        for issue in issues:
            _LOGGER.warning("Zone %s config issue (%s): %s", issue.zone_id, issue.code, issue.message)

        return ZoneEvaluation(
            zone_id=zone.zone_id,
            evaluated_at=now,
            sync_status=sync,
            phase=phase,
            directive=directive,
            layers=trail,
            aggregates=aggregates,
            smart_start=estimate,
            profile_source=inputs.profile_source,
            config_issues=issues,
            pre_open_window=window,
        )

    @staticmethod
    def _pre_open_window(
        latched: PreOpenWindow | None,
        estimate: SmartStartEstimate | None,
        now: datetime,
    ) -> PreOpenWindow | None:
        """Keep the window fixed for an open once pre-conditioning has begun.

        A latched window is kept while it still targets the upcoming open.
        Otherwise a new one is fixed the first cycle an estimate puts now
        inside its window.
        """
        if estimate is None:
            return None
        if latched is not None and latched.open_time == estimate.open_time:
            return latched
        if estimate.in_window(now):
            return estimate.window
        return None

    def _smart_start(
        self,
        inputs: ZoneInputs,
        now: datetime,
        temp: float | None,
        humidity: float | None,
    ) -> SmartStartEstimate | None:
        """Estimate pre-conditioning for the next open, None if no open is scheduled."""
        open_time = next_open_time(inputs.site, now)
        if open_time is None:
            return None

        outdoor = inputs.outdoor_temp_f
        if outdoor is None and inputs.thermostat:
            outdoor = inputs.thermostat.outdoor_temp_f

        return self.predictor.estimate(
            now=now,
            open_time=open_time,
            occupied_heat_f=inputs.profile.occupied_heat_f,
            occupied_cool_f=inputs.profile.occupied_cool_f,
            indoor_temp_f=temp,
            indoor_humidity=humidity,
            outdoor_temp_f=outdoor,
            historical_rates=inputs.historical_rates,
            current_trend=inputs.current_trend,
            occupancy=inputs.occupancy,
            max_adjust_f=inputs.profile.smart_start.max_adjust_f,
            settings=inputs.zone.smart_start,
        )

    @staticmethod
    def _baseline(profile: Profile, phase: Phase) -> Setpoints:
        if phase == Phase.OCCUPIED:
            return Setpoints(
                heat_f=profile.occupied_heat_f,
                cool_f=profile.occupied_cool_f,
                mode=profile.occupied_hvac_mode,
                fan_mode=profile.occupied_fan_mode,
            )
        return Setpoints(
            heat_f=profile.unoccupied_heat_f,
            cool_f=profile.unoccupied_cool_f,
            mode=profile.unoccupied_hvac_mode,
            fan_mode=profile.unoccupied_fan_mode,
        )

    @staticmethod
    def _select_reason(
        phase: Phase, trail: list[LayerAdjustment]
    ) -> tuple[ReasonCode, str, tuple[str, ...]]:
        """Primary reason by priority, continuous layers as annotations.

        Priority: guardrail > manager override > smart start > phase baseline.
        """
        by_kind = {adj.kind: adj for adj in trail}
        annotations = tuple(
            by_kind[kind].reason
            for kind in ANNOTATION_LAYERS
            if kind in by_kind and by_kind[kind].applied
        )

        guardrail = by_kind.get(LayerKind.GUARDRAIL)
        if guardrail and guardrail.forced_mode is not None:
            code = (
                ReasonCode.GUARDRAIL_HEAT
                if guardrail.forced_mode == HvacMode.HEAT
                else ReasonCode.GUARDRAIL_COOL
            )
            return code, guardrail.reason, annotations
        if guardrail and guardrail.applied:
            annotations = annotations + (guardrail.reason,)

        manager = by_kind.get(LayerKind.MANAGER_OVERRIDE)
        if manager and manager.applied:
            return ReasonCode.MANAGER_OVERRIDE, manager.reason, annotations

        smart_start = by_kind.get(LayerKind.SMART_START)
        if smart_start and smart_start.applied:
            return ReasonCode.SMART_START, "Smart Start pre-conditioning", annotations

        if phase == Phase.OCCUPIED:
            return ReasonCode.OCCUPIED, "Occupied schedule", annotations
        return ReasonCode.UNOCCUPIED, "Unoccupied schedule", annotations

"""Rule-based equipment anomaly detection.

Evaluates a fixed rule set over one unit's rolling telemetry window. Every
rule is re-evaluated each cycle and nothing persists between evaluations:
a flag is present exactly while its condition holds.

Rules whose inputs are missing evaluate to "not flagged" and are listed as
skipped so an operator can see what could not be checked.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..const import (
    SHORT_CYCLE_WINDOW_MINUTES,
    AnomalyThresholds,
    AnomalyType,
    HvacAction,
    Severity,
)
from ..utils.telemetry_window import CALLING_ACTIONS, EquipmentTelemetryWindow

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnomalyFlag:
    """One currently-true anomaly condition."""

    zone_id: str | None
    equipment_id: str
    flag: AnomalyType
    detected_at: datetime
    metric: float
    severity: Severity = Severity.WARNING
    detail: str = ""


@dataclass
class AnomalyReport:
    """Result of one detector pass for one unit."""

    equipment_id: str
    evaluated_at: datetime
    flags: list[AnomalyFlag] = field(default_factory=list)
    metrics: dict[str, float | None] = field(default_factory=dict)
    skipped: list[AnomalyType] = field(default_factory=list)

    @property
    def flag_names(self) -> list[str]:
        """Names of active flags."""
        return [str(f.flag) for f in self.flags]

    def has(self, flag: AnomalyType) -> bool:
        """Whether a flag is active."""
        return any(f.flag == flag for f in self.flags)


class AnomalyDetector:
    """Evaluate anomaly rules against an equipment telemetry window."""

    def evaluate(
        self,
        equipment_id: str,
        window: EquipmentTelemetryWindow,
        thresholds: AnomalyThresholds,
        now: datetime,
        rated_delta_t_f: float | None = None,
        zone_id: str | None = None,
    ) -> AnomalyReport:
        """Run every rule once.

        Args:
            equipment_id: Unit identifier
            window: Rolling telemetry for the unit
            thresholds: Resolved thresholds (class defaults + zone overrides)
            now: Evaluation time
            rated_delta_t_f: Rated |return - supply| for the current action
            zone_id: Zone served by the unit

        Returns:
            AnomalyReport with active flags, metrics and skipped rules
        """
        report = AnomalyReport(equipment_id=equipment_id, evaluated_at=now)
        ctx = _RuleContext(equipment_id, zone_id, window, thresholds, now, report)

        self._short_cycling(ctx)
        self._long_cycle(ctx)
        self._coil_freeze(ctx)
        self._delayed_temp_response(ctx)
        self._filter_restriction(ctx)
        self._refrigerant_low(ctx, rated_delta_t_f)
        self._idle_heat_gain(ctx)

        if report.flags:
            _LOGGER.info(
                "Equipment %s anomalies: %s",
                equipment_id,
                ", ".join(report.flag_names),
            )
        return report

    def _short_cycling(self, ctx: "_RuleContext") -> None:
        if ctx.window.compressor_running is None:
            ctx.skip(AnomalyType.SHORT_CYCLING)
            return

        starts = ctx.window.starts_within(timedelta(minutes=SHORT_CYCLE_WINDOW_MINUTES), ctx.now)
        ctx.report.metrics["starts_1h"] = starts
        if starts > ctx.thresholds.short_cycle_count_1h:
            ctx.raise_flag(
                AnomalyType.SHORT_CYCLING,
                starts,
                f"{starts} compressor starts in the last hour "
                f"(limit {ctx.thresholds.short_cycle_count_1h})",
            )

    def _long_cycle(self, ctx: "_RuleContext") -> None:
        if ctx.window.compressor_running is None:
            ctx.skip(AnomalyType.LONG_CYCLE)
            return

        run_minutes = ctx.window.run_minutes(ctx.now)
        ctx.report.metrics["run_minutes"] = run_minutes
        if run_minutes is None or ctx.window.action not in CALLING_ACTIONS:
            return
        if run_minutes > ctx.thresholds.long_cycle_min:
            ctx.raise_flag(
                AnomalyType.LONG_CYCLE,
                round(run_minutes, 1),
                f"Compressor running {run_minutes:.0f} min while still {ctx.window.action}",
            )

    def _coil_freeze(self, ctx: "_RuleContext") -> None:
        latest = ctx.window.latest
        if latest is None or latest.coil_temp_f is None:
            ctx.skip(AnomalyType.COIL_FREEZE)
            return

        ctx.report.metrics["coil_temp_f"] = latest.coil_temp_f
        if ctx.window.compressor_running and latest.coil_temp_f <= ctx.thresholds.coil_freeze_temp_f:
            ctx.raise_flag(
                AnomalyType.COIL_FREEZE,
                latest.coil_temp_f,
                f"Coil at {latest.coil_temp_f:.1f}°F with compressor running",
            )

    def _delayed_temp_response(self, ctx: "_RuleContext") -> None:
        action = ctx.window.action
        active_minutes = ctx.window.action_minutes(ctx.now)
        if action not in CALLING_ACTIONS or active_minutes is None:
            return

        response_window = timedelta(minutes=ctx.thresholds.delayed_response_min)
        if active_minutes < ctx.thresholds.delayed_response_min:
            return
        if not ctx.window.covers(response_window, ctx.now):
            ctx.skip(AnomalyType.DELAYED_TEMP_RESPONSE)
            return

        change = ctx.window.zone_temp_change(response_window, ctx.now)
        if change is None:
            ctx.skip(AnomalyType.DELAYED_TEMP_RESPONSE)
            return

        # Signed so a zone moving the wrong way also counts as no response
        directional = change if action == HvacAction.HEATING else -change
        ctx.report.metrics["response_delta_f"] = round(directional, 2)
        if directional < ctx.thresholds.min_response_delta_f:
            ctx.raise_flag(
                AnomalyType.DELAYED_TEMP_RESPONSE,
                round(directional, 2),
                f"{action} for {active_minutes:.0f} min, zone moved {directional:+.1f}°F",
            )

    def _filter_restriction(self, ctx: "_RuleContext") -> None:
        latest = ctx.window.latest
        if latest is None or latest.supply_temp_f is None or latest.return_temp_f is None:
            ctx.skip(AnomalyType.FILTER_RESTRICTION)
            return

        delta_t = abs(latest.return_temp_f - latest.supply_temp_f)
        ctx.report.metrics["delta_t_f"] = round(delta_t, 2)

        fan_running = latest.fan_running
        if fan_running is None:
            fan_running = bool(ctx.window.compressor_running)
        if not (fan_running and ctx.window.compressor_running):
            return

        if delta_t > ctx.thresholds.filter_restriction_delta_t_max:
            ctx.raise_flag(
                AnomalyType.FILTER_RESTRICTION,
                round(delta_t, 2),
                f"Supply/return split {delta_t:.1f}°F with fan running",
            )

    def _refrigerant_low(self, ctx: "_RuleContext", rated_delta_t_f: float | None) -> None:
        latest = ctx.window.latest
        if (
            latest is None
            or latest.supply_temp_f is None
            or latest.return_temp_f is None
            or latest.compressor_current_a is None
            or not rated_delta_t_f
        ):
            ctx.skip(AnomalyType.REFRIGERANT_LOW)
            return

        ctx.report.metrics["current_a"] = latest.compressor_current_a
        if latest.compressor_current_a < ctx.thresholds.compressor_current_threshold_a:
            return

        observed = abs(latest.return_temp_f - latest.supply_temp_f)
        ratio_pct = observed / rated_delta_t_f * 100
        ctx.report.metrics["efficiency_ratio_pct"] = round(ratio_pct, 1)
        if ratio_pct < ctx.thresholds.efficiency_ratio_min_pct:
            ctx.raise_flag(
                AnomalyType.REFRIGERANT_LOW,
                round(ratio_pct, 1),
                f"Delta-T {observed:.1f}°F is {ratio_pct:.0f}% of rated {rated_delta_t_f:.0f}°F",
            )

    def _idle_heat_gain(self, ctx: "_RuleContext") -> None:
        latest = ctx.window.latest
        if latest is None or latest.zone_temp_f is None or latest.outdoor_temp_f is None:
            ctx.skip(AnomalyType.IDLE_HEAT_GAIN)
            return

        idle = latest.hvac_action in (HvacAction.IDLE, HvacAction.OFF) or (
            latest.hvac_action is None and ctx.window.compressor_running is False
        )
        if not idle or latest.outdoor_temp_f >= latest.zone_temp_f:
            return

        window = timedelta(minutes=ctx.thresholds.idle_heat_gain_window_min)
        rise = ctx.window.zone_temp_change(window, ctx.now)
        if rise is None:
            return
        ctx.report.metrics["idle_rise_f"] = round(rise, 2)
        if rise > ctx.thresholds.idle_heat_gain_f:
            ctx.raise_flag(
                AnomalyType.IDLE_HEAT_GAIN,
                round(rise, 2),
                f"Zone rose {rise:.1f}°F while idle with outdoor below indoor",
                severity=Severity.INFO,
            )


@dataclass
class _RuleContext:
    equipment_id: str
    zone_id: str | None
    window: EquipmentTelemetryWindow
    thresholds: AnomalyThresholds
    now: datetime
    report: AnomalyReport

    def raise_flag(
        self,
        flag: AnomalyType,
        metric: float,
        detail: str,
        severity: Severity = Severity.WARNING,
    ) -> None:
        self.report.flags.append(
            AnomalyFlag(
                zone_id=self.zone_id,
                equipment_id=self.equipment_id,
                flag=flag,
                detected_at=self.now,
                metric=metric,
                severity=severity,
                detail=detail,
            )
        )

    def skip(self, flag: AnomalyType) -> None:
        self.report.skipped.append(flag)

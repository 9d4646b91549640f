"""Bounded setpoint adjustment layers.

Each layer is a pure function (setpoints, context) → LayerAdjustment,
keyed by LayerKind and folded left to right over the profile baseline.
Every layer reports what it did, or why it did nothing, for the audit
trail.

Composition: deltas are additive. The manager override is applied on top
of Smart Start, Occupancy and Feels-Like, and the guardrail always runs
last and wins over everything before it.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from ..const import (
    GUARDRAIL_RECOVERY_MARGIN_F,
    MIN_DEADBAND_F,
    OCCUPANCY_TIMEOUT_MINUTES,
    ROTHFUSZ_COEFFICIENTS,
    FanMode,
    HvacMode,
    LayerKind,
    Phase,
)
from ..models.facility import Profile
from ..models.telemetry import OccupancyState
from .comfort import feels_like_delta
from .manager_override import ManagerOverride, clamp_offset
from .smart_start import PreOpenWindow, SmartStartEstimate


@dataclass(frozen=True)
class Setpoints:
    """Heat/cool setpoints with mode and fan."""

    heat_f: float
    cool_f: float
    mode: HvacMode
    fan_mode: FanMode


@dataclass(frozen=True)
class LayerContext:
    """Everything a layer may read. Layers never mutate it."""

    now: datetime
    phase: Phase
    store_open: bool
    profile: Profile
    zone_temp_f: float | None = None
    zone_humidity: float | None = None
    trend_f_per_min: float | None = None
    interval_minutes: float = 5.0
    smart_start: SmartStartEstimate | None = None
    pre_open_window: PreOpenWindow | None = None
    occupancy: OccupancyState | None = None
    manager_override: ManagerOverride | None = None
    occupancy_timeout_min: float = OCCUPANCY_TIMEOUT_MINUTES
    feels_like_coefficients: tuple[float, ...] = ROTHFUSZ_COEFFICIENTS
    recovery_margin_f: float = GUARDRAIL_RECOVERY_MARGIN_F
    deadband_f: float = MIN_DEADBAND_F


@dataclass(frozen=True)
class LayerAdjustment:
    """Audit record of one layer."""

    kind: LayerKind
    heat_delta_f: float = 0.0
    cool_delta_f: float = 0.0
    applied: bool = False
    reason: str = "Not active"
    forced_mode: HvacMode | None = None

    def apply(self, setpoints: Setpoints) -> Setpoints:
        """Apply this adjustment to setpoints."""
        return replace(
            setpoints,
            heat_f=setpoints.heat_f + self.heat_delta_f,
            cool_f=setpoints.cool_f + self.cool_delta_f,
            mode=self.forced_mode or setpoints.mode,
        )


def _disabled(kind: LayerKind) -> LayerAdjustment:
    return LayerAdjustment(kind, reason="Disabled by profile")


def _heats(mode: HvacMode) -> bool:
    return mode in (HvacMode.HEAT, HvacMode.HEAT_COOL)


def _cools(mode: HvacMode) -> bool:
    return mode in (HvacMode.COOL, HvacMode.HEAT_COOL)


def smart_start_layer(setpoints: Setpoints, ctx: LayerContext) -> LayerAdjustment:
    """Push toward the pre-conditioning target inside the pre-open window.

    The push is bounded by the profile max and never passes the estimate's
    target temperature.
    """
    kind = LayerKind.SMART_START
    settings = ctx.profile.smart_start
    if not settings.enabled:
        return _disabled(kind)

    estimate = ctx.smart_start
    if estimate is None:
        return LayerAdjustment(kind, reason="Not in pre-open window")
    window = ctx.pre_open_window or estimate.window
    if window is None or not window.contains(ctx.now):
        return LayerAdjustment(kind, reason="Not in pre-open window")
    if not estimate.needs_preconditioning:
        return LayerAdjustment(kind, reason="Pre-open target reached")

    opens = estimate.open_time.strftime("%H:%M")
    if estimate.target_mode == HvacMode.HEAT:
        boost = min(settings.max_adjust_f, max(0.0, estimate.target_temp_f - setpoints.heat_f))
        return LayerAdjustment(
            kind,
            heat_delta_f=boost,
            applied=True,
            reason=f"Pre-heating to {estimate.target_temp_f:.1f}°F by {opens}",
        )

    boost = min(settings.max_adjust_f, max(0.0, setpoints.cool_f - estimate.target_temp_f))
    return LayerAdjustment(
        kind,
        cool_delta_f=-boost,
        applied=True,
        reason=f"Pre-cooling to {estimate.target_temp_f:.1f}°F by {opens}",
    )


def occupancy_layer(setpoints: Setpoints, ctx: LayerContext) -> LayerAdjustment:
    """Relax setpoints while an open store shows no motion."""
    kind = LayerKind.OCCUPANCY
    settings = ctx.profile.occupancy
    if not settings.enabled:
        return _disabled(kind)
    if not ctx.store_open:
        return LayerAdjustment(kind, reason="Store not open")
    if ctx.occupancy is None:
        return LayerAdjustment(kind, reason="No occupancy sensor")

    idle_minutes = ctx.occupancy.minutes_since_motion(ctx.now)
    if idle_minutes is None:
        return LayerAdjustment(kind, reason="Motion history unknown")
    if idle_minutes < ctx.occupancy_timeout_min:
        return LayerAdjustment(kind, reason=f"Motion {idle_minutes:.0f} min ago")

    relax = settings.max_adjust_f
    return LayerAdjustment(
        kind,
        heat_delta_f=-relax if _heats(setpoints.mode) else 0.0,
        cool_delta_f=relax if _cools(setpoints.mode) else 0.0,
        applied=True,
        reason=f"No motion for {idle_minutes:.0f} min, relaxed {relax:.1f}°F",
    )


def feels_like_layer(setpoints: Setpoints, ctx: LayerContext) -> LayerAdjustment:
    """Shift setpoints down when hot, humid air feels warmer than it reads."""
    kind = LayerKind.FEELS_LIKE
    settings = ctx.profile.feels_like
    if not settings.enabled:
        return _disabled(kind)

    delta = feels_like_delta(ctx.zone_temp_f, ctx.zone_humidity, ctx.feels_like_coefficients)
    if delta == 0:
        return LayerAdjustment(kind, reason="Feels like actual temperature")

    shift = -max(-settings.max_adjust_f, min(settings.max_adjust_f, delta))
    return LayerAdjustment(
        kind,
        heat_delta_f=shift,
        cool_delta_f=shift,
        applied=True,
        reason=f"Feels {delta:+d}°F, setpoints {shift:+.1f}°F",
    )


def manager_override_layer(setpoints: Setpoints, ctx: LayerContext) -> LayerAdjustment:
    """Add the operator offset within profile bounds until it expires."""
    kind = LayerKind.MANAGER_OVERRIDE
    override = ctx.manager_override
    if override is None:
        return LayerAdjustment(kind, reason="No override")

    reset = ctx.profile.manager_reset_minutes
    if not override.is_active(ctx.now, reset):
        return LayerAdjustment(kind, reason="Override expired")

    offset = clamp_offset(
        override.offset_f, ctx.profile.manager_max_raise_f, ctx.profile.manager_max_lower_f
    )
    remaining = override.minutes_remaining(ctx.now, reset)
    return LayerAdjustment(
        kind,
        heat_delta_f=offset,
        cool_delta_f=offset,
        applied=True,
        reason=f"Manager override active, {remaining} min remaining",
    )


def deadband_layer(setpoints: Setpoints, ctx: LayerContext) -> LayerAdjustment:
    """Keep cool above heat by the minimum deadband in heat_cool mode."""
    kind = LayerKind.DEADBAND
    if setpoints.mode != HvacMode.HEAT_COOL:
        return LayerAdjustment(kind, reason="Single-setpoint mode")

    gap = setpoints.cool_f - setpoints.heat_f
    if gap >= ctx.deadband_f:
        return LayerAdjustment(kind, reason="Separation satisfied")

    return LayerAdjustment(
        kind,
        cool_delta_f=ctx.deadband_f - gap,
        applied=True,
        reason=f"Cool raised to keep {ctx.deadband_f:.0f}°F above heat",
    )


def guardrail_layer(setpoints: Setpoints, ctx: LayerContext) -> LayerAdjustment:
    """Hard safety floor and ceiling. Cannot be disabled.

    A projected zone temperature at or past a rail forces heat or cool to a
    recovery setpoint. Otherwise setpoints are clamped into the rails.
    """
    kind = LayerKind.GUARDRAIL
    rail_min = ctx.profile.guardrail_min_f
    rail_max = ctx.profile.guardrail_max_f

    projected = None
    if ctx.zone_temp_f is not None:
        projected = ctx.zone_temp_f + (ctx.trend_f_per_min or 0.0) * ctx.interval_minutes

    if projected is not None and projected <= rail_min:
        heat = min(rail_min + ctx.recovery_margin_f, rail_max)
        cool = min(max(setpoints.cool_f, heat + ctx.deadband_f), max(rail_max, heat))
        return LayerAdjustment(
            kind,
            heat_delta_f=heat - setpoints.heat_f,
            cool_delta_f=cool - setpoints.cool_f,
            applied=True,
            reason=f"Guardrail: forcing heat (projected {projected:.1f}°F, min {rail_min:.0f}°F)",
            forced_mode=HvacMode.HEAT,
        )

    if projected is not None and projected >= rail_max:
        cool = max(rail_max - ctx.recovery_margin_f, rail_min)
        heat = max(min(setpoints.heat_f, cool - ctx.deadband_f), min(rail_min, cool))
        return LayerAdjustment(
            kind,
            heat_delta_f=heat - setpoints.heat_f,
            cool_delta_f=cool - setpoints.cool_f,
            applied=True,
            reason=f"Guardrail: forcing cool (projected {projected:.1f}°F, max {rail_max:.0f}°F)",
            forced_mode=HvacMode.COOL,
        )

    heat = max(rail_min, min(rail_max, setpoints.heat_f))
    cool = max(rail_min, min(rail_max, setpoints.cool_f))
    if heat == setpoints.heat_f and cool == setpoints.cool_f:
        return LayerAdjustment(kind, reason="Within guardrails")

    return LayerAdjustment(
        kind,
        heat_delta_f=heat - setpoints.heat_f,
        cool_delta_f=cool - setpoints.cool_f,
        applied=True,
        reason=f"Setpoints clamped to {rail_min:.0f}-{rail_max:.0f}°F",
    )


LayerFunction = Callable[[Setpoints, LayerContext], LayerAdjustment]

LAYERS: dict[LayerKind, LayerFunction] = {
    LayerKind.SMART_START: smart_start_layer,
    LayerKind.OCCUPANCY: occupancy_layer,
    LayerKind.FEELS_LIKE: feels_like_layer,
    LayerKind.MANAGER_OVERRIDE: manager_override_layer,
    LayerKind.DEADBAND: deadband_layer,
    LayerKind.GUARDRAIL: guardrail_layer,
}

# Fold order per phase. Unoccupied runs only the guardrail.
PHASE_LAYERS: dict[Phase, tuple[LayerKind, ...]] = {
    Phase.OCCUPIED: tuple(LayerKind),
    Phase.UNOCCUPIED: (LayerKind.GUARDRAIL,),
}


def fold_layers(
    baseline: Setpoints,
    ctx: LayerContext,
    kinds: Sequence[LayerKind] | None = None,
) -> tuple[Setpoints, list[LayerAdjustment]]:
    """Fold layers left to right over the baseline.

    Layers not run in the current phase still get an audit entry.

    Args:
        baseline: Profile setpoints for the phase
        ctx: Layer context
        kinds: Layers to run (defaults to the phase's layers)

    Returns:
        Tuple of (final setpoints, audit trail in LayerKind order)
    """
    active = PHASE_LAYERS[ctx.phase] if kinds is None else tuple(kinds)
    setpoints = baseline
    trail: list[LayerAdjustment] = []

    for kind in LayerKind:
        if kind not in active:
            trail.append(LayerAdjustment(kind, reason=f"Not used while {ctx.phase}"))
            continue
        adjustment = LAYERS[kind](setpoints, ctx)
        setpoints = adjustment.apply(setpoints)
        trail.append(adjustment)

    return setpoints, trail

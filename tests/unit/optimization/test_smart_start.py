"""Tests for Smart Start lead-time prediction.

Covers:
- Target resolution and no-op estimates
- Rate selection priority (override > historical > trend > default)
- Cold-weather derating of the default heat rate
- Humidity correction and its bound
- Lead clamping, occupancy override and confidence grading
"""

from datetime import timedelta

import pytest

from custom_components.zoneguard.const import Confidence, HvacMode, RateSource
from custom_components.zoneguard.models.facility import SmartStartSettings
from custom_components.zoneguard.models.telemetry import OccupancyState
from custom_components.zoneguard.optimization.smart_start import (
    SmartStartPredictor,
    default_rate,
    humidity_adjustment,
    round_minutes,
)

from conftest import at

OPEN = at(8)


def estimate(**kwargs):
    params = {
        "now": at(6),
        "open_time": OPEN,
        "occupied_heat_f": 68.0,
        "occupied_cool_f": 76.0,
        "indoor_temp_f": 60.0,
    }
    params.update(kwargs)
    return SmartStartPredictor().estimate(**params)


class TestMorningWarmUp:
    """The canonical cold-morning scenario."""

    def test_default_rate_scenario(self):
        """60°F at 6:00 with 35% RH opens at 8:00: 53 min lead, start 7:07."""
        result = estimate(indoor_humidity=35.0)

        assert result.target_mode == HvacMode.HEAT
        assert result.target_temp_f == 68.0
        assert result.delta_f == 8.0
        assert result.rate_used == pytest.approx(0.15)
        assert result.rate_source == RateSource.DEFAULT
        assert result.humidity_adjustment_minutes == 0
        assert result.base_lead_minutes == 53
        assert result.final_lead_minutes == 53
        assert result.start_time == at(7, 7)
        assert result.confidence == Confidence.LOW

    def test_window_membership(self):
        result = estimate(indoor_humidity=35.0)

        assert not result.in_window(at(7, 6))
        assert result.in_window(at(7, 7))
        assert result.in_window(at(7, 59))
        assert not result.in_window(OPEN)

    def test_explanation_mentions_lead(self):
        result = estimate(indoor_humidity=35.0)

        assert "53 min lead" in result.explanation
        assert "default" in result.explanation


class TestTargetResolution:
    """Tests for heat/cool/none target selection."""

    def test_cooling_target(self):
        result = estimate(indoor_temp_f=80.0)

        assert result.target_mode == HvacMode.COOL
        assert result.target_temp_f == 76.0
        assert result.rate_used == pytest.approx(0.10)
        assert result.final_lead_minutes == 40

    def test_buffer_overshoots_target(self):
        result = estimate(settings=SmartStartSettings(buffer_f=0.5))

        assert result.target_temp_f == 68.5
        assert result.delta_f == 8.5

    def test_buffer_is_capped(self):
        result = estimate(settings=SmartStartSettings(buffer_f=3.0))

        assert result.target_temp_f == 69.0

    def test_already_comfortable(self):
        """Inside the band: zero lead, start at open."""
        result = estimate(indoor_temp_f=70.0)

        assert result.target_mode is None
        assert not result.needs_preconditioning
        assert result.base_lead_minutes == 10
        assert result.final_lead_minutes == 0
        assert result.start_time == OPEN
        assert not result.in_window(at(7, 59))
        assert result.explanation == "No pre-conditioning needed"

    def test_missing_indoor_uses_fallback(self):
        result = estimate(indoor_temp_f=None, indoor_humidity=50.0, historical_rates={HvacMode.HEAT: 0.2})

        assert result.delta_f == 3.0
        assert result.confidence == Confidence.LOW


class TestRateSelection:
    """Tests for rate priority."""

    def test_historical_rate_with_humidity_is_high_confidence(self):
        result = estimate(indoor_humidity=45.0, historical_rates={HvacMode.HEAT: 0.2})

        assert result.rate_source == RateSource.HISTORICAL
        assert result.final_lead_minutes == 40
        assert result.confidence == Confidence.HIGH

    def test_historical_rate_without_humidity_is_medium(self):
        result = estimate(historical_rates={HvacMode.HEAT: 0.2})

        assert result.confidence == Confidence.MEDIUM

    def test_negligible_historical_rate_ignored(self):
        result = estimate(historical_rates={HvacMode.HEAT: 0.005})

        assert result.rate_source == RateSource.DEFAULT

    def test_current_trend_in_direction_of_travel(self):
        result = estimate(indoor_humidity=45.0, current_trend=0.1)

        assert result.rate_source == RateSource.CURRENT
        assert result.final_lead_minutes == 80
        assert result.confidence == Confidence.MEDIUM

    def test_trend_in_wrong_direction_ignored(self):
        result = estimate(current_trend=-0.2)

        assert result.rate_source == RateSource.DEFAULT

    def test_cooling_uses_falling_trend(self):
        result = estimate(indoor_temp_f=80.0, current_trend=-0.2)

        assert result.rate_source == RateSource.CURRENT
        assert result.rate_used == pytest.approx(0.2)

    def test_rate_override_wins(self):
        result = estimate(
            historical_rates={HvacMode.HEAT: 0.2},
            settings=SmartStartSettings(rate_override=0.1),
        )

        assert result.rate_used == 0.1
        assert result.rate_source == RateSource.HISTORICAL
        assert result.final_lead_minutes == 80


class TestDefaultRate:
    """Tests for outdoor derating."""

    @pytest.mark.parametrize(
        ("outdoor", "expected"),
        [(None, 0.15), (60.0, 0.15), (45.0, 0.15), (40.0, 0.12), (20.0, 0.09), (-10.0, 0.09)],
    )
    def test_heat_rate_derating(self, outdoor, expected):
        assert default_rate(HvacMode.HEAT, outdoor) == pytest.approx(expected)

    def test_cool_rate_not_derated(self):
        assert default_rate(HvacMode.COOL, 0.0) == pytest.approx(0.10)


class TestHumidityAdjustment:
    """Tests for the humidity correction."""

    def test_humid_heating_takes_longer(self):
        assert humidity_adjustment(HvacMode.HEAT, 75.0, 1.0) == pytest.approx(10.0)

    def test_humid_cooling_takes_longer(self):
        assert humidity_adjustment(HvacMode.COOL, 80.0, 1.0) == pytest.approx(10.0)

    def test_dry_heating_is_faster(self):
        assert humidity_adjustment(HvacMode.HEAT, 20.0, 1.0) == pytest.approx(-3.0)

    def test_multiplier_scales(self):
        assert humidity_adjustment(HvacMode.HEAT, 75.0, 0.5) == pytest.approx(5.0)

    def test_missing_humidity(self):
        assert humidity_adjustment(HvacMode.HEAT, None, 1.0) == 0.0

    def test_correction_bounded_by_max_adjust(self):
        """10 raw minutes are bounded to 1°F / 0.15°F/min = 6.7 → 7 min."""
        result = estimate(indoor_humidity=75.0)

        assert result.humidity_adjustment_minutes == 7
        assert result.final_lead_minutes == 60

    def test_dry_air_shortens_lead(self):
        result = estimate(indoor_humidity=20.0)

        assert result.humidity_adjustment_minutes == -3
        assert result.final_lead_minutes == 50


class TestLeadClamping:
    """Tests for lead bounds."""

    def test_clamped_to_max(self):
        result = estimate(indoor_temp_f=40.0)

        assert result.base_lead_minutes == 90
        assert result.start_time == OPEN - timedelta(minutes=90)

    def test_clamped_to_min(self):
        result = estimate(indoor_temp_f=67.5)

        assert result.final_lead_minutes == 10

    def test_zone_lead_bounds(self):
        result = estimate(
            indoor_temp_f=40.0,
            settings=SmartStartSettings(min_lead_minutes=20, max_lead_minutes=120),
        )

        assert result.final_lead_minutes == 120


class TestOccupancyOverride:
    """Activity before the planned start pulls the start to now."""

    def test_motion_now_starts_immediately(self):
        result = estimate(occupancy=OccupancyState(occupied=True, last_motion=at(6)))

        assert result.occupancy_override
        assert result.start_time == at(6)
        assert result.in_window(at(6))

    def test_recent_motion_counts(self):
        result = estimate(occupancy=OccupancyState(occupied=False, last_motion=at(5, 55)))

        assert result.occupancy_override

    def test_old_motion_ignored(self):
        result = estimate(occupancy=OccupancyState(occupied=False, last_motion=at(5, 30)))

        assert not result.occupancy_override
        assert result.start_time == at(7, 7)

    def test_no_override_inside_window(self):
        result = estimate(now=at(7, 30), occupancy=OccupancyState(occupied=True, last_motion=at(7, 30)))

        assert not result.occupancy_override
        assert result.start_time == at(7, 7)


class TestRounding:
    """Lead minutes round to the nearest minute, halves up."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(10.5, 11), (11.5, 12), (10.49, 10), (0.0, 0), (-2.5, -3), (-2.4, -2)],
    )
    def test_round_minutes(self, value, expected):
        assert round_minutes(value) == expected

    def test_half_minute_lead_rounds_up(self):
        """2.625°F at 0.25°F/min is 10.5 minutes."""
        result = estimate(
            indoor_temp_f=65.375,
            settings=SmartStartSettings(rate_override=0.25),
        )

        assert result.base_lead_minutes == 11
        assert result.start_time == OPEN - timedelta(minutes=11)

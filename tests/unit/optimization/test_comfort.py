"""Tests for feels-like (heat index) calculation."""

import pytest

from custom_components.zoneguard.optimization.comfort import feels_like_delta, heat_index_f


class TestHeatIndex:
    """Rothfusz regression values."""

    def test_hot_humid(self):
        assert heat_index_f(90.0, 60.0) == pytest.approx(99.7, abs=0.1)

    def test_domain_corner(self):
        assert heat_index_f(80.0, 40.0) == pytest.approx(79.9, abs=0.1)

    def test_custom_coefficients(self):
        """Coefficients are configuration: identity regression returns the temperature."""
        identity = (0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)
        assert heat_index_f(85.0, 70.0, identity) == 85.0


class TestFeelsLikeDelta:
    """Feels-like delta is zero outside the regression domain."""

    def test_hot_humid_delta(self):
        assert feels_like_delta(90.0, 60.0) == 10

    @pytest.mark.parametrize(
        ("temp", "humidity"),
        [(79.9, 90.0), (95.0, 39.9), (70.0, 50.0), (None, 60.0), (90.0, None)],
    )
    def test_zero_outside_domain(self, temp, humidity):
        assert feels_like_delta(temp, humidity) == 0

    def test_zero_at_boundary(self):
        """At exactly 80°F / 40% RH the rounded difference is zero."""
        assert feels_like_delta(80.0, 40.0) == 0

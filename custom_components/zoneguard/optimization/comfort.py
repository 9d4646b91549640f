"""Feels-like (heat index) calculation.

Rothfusz regression as used by the US National Weather Service. The
regression is only valid at 80°F and above with 40% RH and above, so the
feels-like delta is exactly zero outside that domain.
"""

from collections.abc import Sequence

from ..const import FEELS_LIKE_MIN_HUMIDITY, FEELS_LIKE_MIN_TEMP_F, ROTHFUSZ_COEFFICIENTS


def heat_index_f(
    temp_f: float,
    humidity: float,
    coefficients: Sequence[float] = ROTHFUSZ_COEFFICIENTS,
) -> float:
    """Heat index for a temperature and relative humidity.

    Args:
        temp_f: Dry-bulb temperature (°F)
        humidity: Relative humidity (%)
        coefficients: c1..c9 of the Rothfusz regression

    Returns:
        Apparent temperature (°F)
    """
    c1, c2, c3, c4, c5, c6, c7, c8, c9 = coefficients
    t, rh = temp_f, humidity
    return (
        c1
        + c2 * t
        + c3 * rh
        + c4 * t * rh
        + c5 * t * t
        + c6 * rh * rh
        + c7 * t * t * rh
        + c8 * t * rh * rh
        + c9 * t * t * rh * rh
    )


def feels_like_delta(
    temp_f: float | None,
    humidity: float | None,
    coefficients: Sequence[float] = ROTHFUSZ_COEFFICIENTS,
) -> int:
    """Rounded difference between feels-like and actual temperature.

    Returns:
        round(heat index - temperature), 0 outside the regression domain or
        when either input is missing
    """
    if temp_f is None or humidity is None:
        return 0
    if temp_f < FEELS_LIKE_MIN_TEMP_F or humidity < FEELS_LIKE_MIN_HUMIDITY:
        return 0
    return round(heat_index_f(temp_f, humidity, coefficients) - temp_f)

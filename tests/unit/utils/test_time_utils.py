"""Tests for store-hours helpers."""

from datetime import date, time

import pytest

from custom_components.zoneguard.models.facility import HoursException, StoreHours
from custom_components.zoneguard.utils.time_utils import (
    hours_for_date,
    is_store_open,
    next_open_time,
    to_site_time,
)

from conftest import at, make_site

TUESDAY = date(2026, 3, 3)


class TestIsStoreOpen:
    """Open is inclusive at open time, exclusive at close time."""

    def test_open_at_opening(self):
        assert is_store_open(make_site(), at(8))

    def test_closed_at_closing(self):
        assert not is_store_open(make_site(), at(21))
        assert is_store_open(make_site(), at(20, 59))

    def test_closed_before_open(self):
        assert not is_store_open(make_site(), at(7, 59))

    def test_closed_weekday(self):
        hours = StoreHours(open=time(8), close=time(21))
        site = make_site(weekly_hours=(None,) + (hours,) * 6)

        assert not is_store_open(site, at(12))

    def test_site_timezone(self):
        """14:00 UTC is 08:00 in Chicago before daylight saving."""
        site = make_site(tz="America/Chicago")

        assert is_store_open(site, at(14))
        assert not is_store_open(site, at(13, 59))

    def test_unknown_timezone(self):
        with pytest.raises(ValueError):
            to_site_time(make_site(tz="Not/AZone"), at(12))


class TestHoursExceptions:
    """Dated exceptions replace the weekly schedule."""

    def test_holiday_closure(self):
        site = make_site(exceptions={TUESDAY: HoursException(day=TUESDAY, closed=True)})

        assert hours_for_date(site, TUESDAY) is None
        assert not is_store_open(site, at(12, day=1))

    def test_alternate_hours(self):
        late = StoreHours(open=time(10), close=time(18))
        site = make_site(exceptions={TUESDAY: HoursException(day=TUESDAY, hours=late)})

        assert not is_store_open(site, at(9, day=1))
        assert is_store_open(site, at(10, day=1))
        assert next_open_time(site, at(22)) == at(10, day=1)


class TestNextOpenTime:
    """Next opening strictly after now."""

    def test_later_today(self):
        assert next_open_time(make_site(), at(6)) == at(8)

    def test_at_opening_returns_tomorrow(self):
        assert next_open_time(make_site(), at(8)) == at(8, day=1)

    def test_skips_closed_days(self):
        hours = StoreHours(open=time(8), close=time(21))
        site = make_site(weekly_hours=(hours,) * 5 + (None, None))

        # Friday evening, next open is Monday
        assert next_open_time(site, at(22, day=4)) == at(8, day=7)

    def test_never_open(self):
        assert next_open_time(make_site(weekly_hours=(None,) * 7), at(6)) is None

"""Time-related utility functions for ZoneGuard.

Store-hours lookups in site-local time. Every function takes the current
time explicitly so evaluations stay deterministic.
"""

from datetime import date, datetime, timedelta

from homeassistant.util import dt as dt_util

from ..models.facility import Site, StoreHours

# How far ahead next_open_time looks for an open day
OPEN_LOOKAHEAD_DAYS = 8


def to_site_time(site: Site, now: datetime) -> datetime:
    """Convert an aware datetime to the site's local timezone.

    Args:
        site: Site with IANA timezone name
        now: Aware datetime

    Returns:
        Same instant expressed in site-local time
    """
    tz = dt_util.get_time_zone(site.timezone)
    if tz is None:
        raise ValueError(f"Unknown timezone for site {site.site_id}: {site.timezone}")
    return now.astimezone(tz)


def hours_for_date(site: Site, day: date) -> StoreHours | None:
    """Get store hours for a date, applying dated exceptions.

    Args:
        site: Site configuration
        day: Site-local date

    Returns:
        StoreHours, or None when the store is closed that day
    """
    exception = site.exceptions.get(day)
    if exception is not None:
        return None if exception.closed else exception.hours
    return site.weekly_hours[day.weekday()]


def _at(day: date, hours_time, tz) -> datetime:
    return datetime.combine(day, hours_time, tzinfo=tz)


def is_store_open(site: Site, now: datetime) -> bool:
    """Check whether the store is open at the given instant."""
    local = to_site_time(site, now)
    hours = hours_for_date(site, local.date())
    if hours is None:
        return False
    opens = _at(local.date(), hours.open, local.tzinfo)
    closes = _at(local.date(), hours.close, local.tzinfo)
    return opens <= local < closes


def next_open_time(site: Site, now: datetime) -> datetime | None:
    """Find the next store opening strictly after now.

    Args:
        site: Site configuration
        now: Current time

    Returns:
        Aware datetime of the next opening in site-local time, or None if
        the store has no open day within the lookahead
    """
    local = to_site_time(site, now)
    for offset in range(OPEN_LOOKAHEAD_DAYS):
        day = local.date() + timedelta(days=offset)
        hours = hours_for_date(site, day)
        if hours is None:
            continue
        opens = _at(day, hours.open, local.tzinfo)
        if opens > local:
            return opens
    return None

"""Tests for options flow input validation."""

from custom_components.zoneguard.const import (
    CONF_OFFLINE_AFTER,
    CONF_READING_FRESH_FOR,
    CONF_STALE_AFTER,
    CONF_UPDATE_INTERVAL,
)
from custom_components.zoneguard.options import validate_options


def user_input(stale=10.0, offline=30.0):
    return {
        CONF_UPDATE_INTERVAL: 5.0,
        CONF_STALE_AFTER: stale,
        CONF_OFFLINE_AFTER: offline,
        CONF_READING_FRESH_FOR: 5.0,
    }


def test_selector_floats_become_minutes():
    options, errors = validate_options(user_input())

    assert errors == {}
    assert options[CONF_UPDATE_INTERVAL] == 5
    assert isinstance(options[CONF_STALE_AFTER], int)


def test_offline_must_exceed_stale():
    _, errors = validate_options(user_input(stale=30.0, offline=30.0))

    assert errors == {CONF_OFFLINE_AFTER: "offline_not_after_stale"}

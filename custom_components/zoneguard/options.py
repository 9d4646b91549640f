"""Options flow for ZoneGuard integration."""

import logging
from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import selector

from .const import (
    CONF_OFFLINE_AFTER,
    CONF_READING_FRESH_FOR,
    CONF_STALE_AFTER,
    CONF_UPDATE_INTERVAL,
    DEFAULT_OFFLINE_AFTER_MINUTES,
    DEFAULT_READING_FRESH_MINUTES,
    DEFAULT_STALE_AFTER_MINUTES,
    MAX_UPDATE_INTERVAL_MINUTES,
    MIN_UPDATE_INTERVAL_MINUTES,
    UPDATE_INTERVAL_MINUTES,
)

_LOGGER = logging.getLogger(__name__)


def _minutes_selector(minimum: int, maximum: int) -> selector.NumberSelector:
    return selector.NumberSelector(
        selector.NumberSelectorConfig(
            min=minimum,
            max=maximum,
            step=1,
            mode=selector.NumberSelectorMode.BOX,
            unit_of_measurement="min",
        )
    )


def validate_options(user_input: dict[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
    """Convert selector floats to whole minutes and check horizon order.

    Returns:
        Tuple of (converted options, errors keyed by field)
    """
    options = {key: int(value) for key, value in user_input.items()}
    errors: dict[str, str] = {}
    if options[CONF_OFFLINE_AFTER] <= options[CONF_STALE_AFTER]:
        errors[CONF_OFFLINE_AFTER] = "offline_not_after_stale"
    return options, errors


class ZoneGuardOptionsFlow(config_entries.OptionsFlow):
    """Handle options flow for ZoneGuard."""

    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Manage evaluation timing options."""
        errors: dict[str, str] = {}

        if user_input is not None:
            options, errors = validate_options(user_input)
            if not errors:
                _LOGGER.debug("ZoneGuard options updated: %s", options)
                return self.async_create_entry(title="", data=options)

        current = self.config_entry.options
        schema = vol.Schema(
            {
                vol.Optional(
                    CONF_UPDATE_INTERVAL,
                    default=current.get(CONF_UPDATE_INTERVAL, UPDATE_INTERVAL_MINUTES),
                ): _minutes_selector(MIN_UPDATE_INTERVAL_MINUTES, MAX_UPDATE_INTERVAL_MINUTES),
                vol.Optional(
                    CONF_STALE_AFTER,
                    default=current.get(CONF_STALE_AFTER, DEFAULT_STALE_AFTER_MINUTES),
                ): _minutes_selector(1, 240),
                vol.Optional(
                    CONF_OFFLINE_AFTER,
                    default=current.get(CONF_OFFLINE_AFTER, DEFAULT_OFFLINE_AFTER_MINUTES),
                ): _minutes_selector(2, 1440),
                vol.Optional(
                    CONF_READING_FRESH_FOR,
                    default=current.get(CONF_READING_FRESH_FOR, DEFAULT_READING_FRESH_MINUTES),
                ): _minutes_selector(1, 60),
            }
        )
        return self.async_show_form(step_id="init", data_schema=schema, errors=errors)

"""Config flow for ZoneGuard integration."""

import logging
from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.const import CONF_NAME
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import selector

from .const import CONF_FACILITY_FILE, DEFAULT_FACILITY_FILE, DEFAULT_NAME, DOMAIN
from .facility import FacilityConfigError, load_facility
from .options import ZoneGuardOptionsFlow

_LOGGER = logging.getLogger(__name__)


class ZoneGuardConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for ZoneGuard."""

    VERSION = 1

    async def _async_validate_facility(self, filename: str) -> tuple[dict[str, str], dict[str, str]]:
        """Load the facility file and summarize it.

        Returns:
            Tuple of (errors, description placeholders)
        """
        path = self.hass.config.path(filename)
        try:
            facility = await self.hass.async_add_executor_job(load_facility, path)
        except FacilityConfigError as err:
            _LOGGER.warning("Facility file %s rejected: %s", path, err)
            return {"base": "facility_invalid"}, {"error": str(err)}

        if not facility.managed_zones():
            return {"base": "no_managed_zones"}, {"error": ""}

        return {}, {
            "sites": str(len(facility.sites)),
            "zones": str(len(facility.managed_zones())),
        }

    async def async_step_user(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Handle the initial step - facility file selection."""
        errors: dict[str, str] = {}
        placeholders = {"error": ""}

        if user_input is not None:
            filename = user_input[CONF_FACILITY_FILE]
            await self.async_set_unique_id(f"{DOMAIN}_{filename}")
            self._abort_if_unique_id_configured()

            errors, placeholders = await self._async_validate_facility(filename)
            if not errors:
                _LOGGER.info(
                    "Facility file %s: %s sites, %s managed zones",
                    filename,
                    placeholders["sites"],
                    placeholders["zones"],
                )
                return self.async_create_entry(title=user_input[CONF_NAME], data=user_input)

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_NAME, default=DEFAULT_NAME): selector.TextSelector(),
                    vol.Required(
                        CONF_FACILITY_FILE, default=DEFAULT_FACILITY_FILE
                    ): selector.TextSelector(),
                }
            ),
            errors=errors,
            description_placeholders=placeholders,
        )

    async def async_step_reconfigure(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Point the entry at a different facility file."""
        errors: dict[str, str] = {}
        placeholders = {"error": ""}
        entry = self._get_reconfigure_entry()

        if user_input is not None:
            errors, placeholders = await self._async_validate_facility(
                user_input[CONF_FACILITY_FILE]
            )
            if not errors:
                return self.async_update_reload_and_abort(entry, data_updates=user_input)

        return self.async_show_form(
            step_id="reconfigure",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        CONF_FACILITY_FILE,
                        default=entry.data.get(CONF_FACILITY_FILE, DEFAULT_FACILITY_FILE),
                    ): selector.TextSelector(),
                }
            ),
            errors=errors,
            description_placeholders=placeholders,
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> config_entries.OptionsFlow:
        """Create the options flow."""
        return ZoneGuardOptionsFlow()

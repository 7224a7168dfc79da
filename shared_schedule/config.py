"""Configuration schema for wiring up a schedule runtime."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import voluptuous as vol

from .const import (
    CONF_BASE_URL,
    CONF_POLL_INTERVAL,
    CONF_REQUEST_INTERVAL,
    CONF_STORE,
    CONF_TOKEN,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_REQUEST_INTERVAL_SECONDS,
    STORE_MEMORY,
    STORE_REST,
)
from .exceptions import ValidationError

_LOGGER = logging.getLogger(__name__)


def _require_base_url(config: dict[str, Any]) -> dict[str, Any]:
    if config[CONF_STORE] == STORE_REST and not config.get(CONF_BASE_URL):
        raise vol.Invalid(f"{CONF_BASE_URL} is required for the {STORE_REST} store")
    return config


CONFIG_SCHEMA = vol.Schema(
    vol.All(
        {
            vol.Optional(CONF_STORE, default=STORE_MEMORY): vol.In([STORE_MEMORY, STORE_REST]),
            vol.Optional(CONF_BASE_URL): vol.Url(),
            vol.Optional(CONF_TOKEN): vol.Any(None, str),
            vol.Optional(CONF_POLL_INTERVAL, default=DEFAULT_POLL_INTERVAL_SECONDS): vol.All(
                vol.Coerce(float), vol.Range(min=0.1)
            ),
            vol.Optional(
                CONF_REQUEST_INTERVAL, default=DEFAULT_REQUEST_INTERVAL_SECONDS
            ): vol.All(vol.Coerce(float), vol.Range(min=0)),
        },
        _require_base_url,
    )
)


@dataclass(frozen=True)
class ScheduleConfig:
    """Validated runtime configuration."""

    store: str = STORE_MEMORY
    base_url: str | None = None
    token: str | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    request_interval: float = DEFAULT_REQUEST_INTERVAL_SECONDS

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None = None) -> ScheduleConfig:
        """Validate a raw mapping (e.g. parsed from a settings file).

        Raises:
            ValidationError: If a key is unknown or a value is invalid.
        """
        try:
            valid = CONFIG_SCHEMA(dict(data or {}))
        except vol.Invalid as err:
            raise ValidationError(f"Invalid configuration: {err}") from err
        _LOGGER.debug("Loaded %s store configuration", valid[CONF_STORE])
        return cls(
            store=valid[CONF_STORE],
            base_url=valid.get(CONF_BASE_URL),
            token=valid.get(CONF_TOKEN),
            poll_interval=valid[CONF_POLL_INTERVAL],
            request_interval=valid[CONF_REQUEST_INTERVAL],
        )

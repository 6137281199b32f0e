"""Proxy configuration loaded from the Lambda environment.

Environment:
    ALLOWLIST_ORIGIN          caller hostnames, e.g. ``localhost,*.example.com``
    ALLOWLIST_DESTINATION     destination URLs, e.g. ``https://publish-p1-e2.adobeaemcloud.com*``
    LOG_LEVEL                 DEBUG, INFO, WARNING or ERROR (default INFO)
    UPSTREAM_TIMEOUT_SECONDS  optional timeout for the outbound request

Both allow-lists accept a single pattern, a comma-separated string or a
JSON array. An unset or empty allow-list permits everything.
"""

from __future__ import annotations

import os
from typing import Any
from typing import Mapping
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic import field_validator

from aem_proxy.exceptions import ConfigurationError
from aem_proxy.utils.allowlist import AllowList
from aem_proxy.utils.allowlist import normalize_patterns

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_ENV_FIELDS = {
    "ALLOWLIST_ORIGIN": "allowlist_origin",
    "ALLOWLIST_DESTINATION": "allowlist_destination",
    "LOG_LEVEL": "log_level",
    "UPSTREAM_TIMEOUT_SECONDS": "upstream_timeout",
}


class ProxySettings(BaseModel):
    """Validated proxy settings."""

    model_config = ConfigDict(frozen=True)

    allowlist_origin: AllowList = ()
    allowlist_destination: AllowList = ()
    log_level: str = "INFO"
    upstream_timeout: Optional[float] = None

    @field_validator("allowlist_origin", "allowlist_destination", mode="before")
    @classmethod
    def _normalize_allowlist(cls, value: Any) -> AllowList:
        return normalize_patterns(value)

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        level = str(value or "INFO").strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Log level must be one of {list(_LOG_LEVELS)}")
        return level

    @field_validator("upstream_timeout", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> Optional[float]:
        if value is None or value == "":
            return None
        timeout = float(value)
        if timeout <= 0:
            raise ValueError("Timeout must be positive")
        return timeout

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProxySettings":
        """Build settings from environment variables.

        Raises:
            ConfigurationError: If a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ
        values = {
            field_name: env[var]
            for var, field_name in _ENV_FIELDS.items()
            if var in env
        }
        try:
            return cls(**values)
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            field_name = str(first["loc"][0]) if first.get("loc") else "settings"
            env_var = next(
                (var for var, name in _ENV_FIELDS.items() if name == field_name),
                field_name,
            )
            raise ConfigurationError(env_var, first.get("msg")) from exc


_SETTINGS: ProxySettings | None = None


def get_settings() -> ProxySettings:
    """Return settings loaded once per Lambda container."""
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = ProxySettings.from_env()
    return _SETTINGS


def clear_settings_cache() -> None:
    """Clear cached settings (useful in tests)."""
    global _SETTINGS
    _SETTINGS = None

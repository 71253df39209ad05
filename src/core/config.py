"""Runtime configuration model for dumpsync.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os

from core.constants import DEFAULT_HTTP_TIMEOUT_SECONDS, DEFAULT_LANGUAGE
from core.errors import SyncConfigError


@dataclass(frozen=True)
class SyncConfig:
    """Validated runtime configuration.

    Endpoint settings are optional here and checked by ``require_setting``
    when the collaborator that needs them is built, so offline runs work
    without remote configuration.

    Attributes:
        gateway_url: Base URL of the locator gateway.
        gateway_token: Internal token sent to the gateway.
        target: Upstream target name forwarded by the gateway.
        dump_path: Upstream API path that issues dump URLs.
        language: Dump language requested from the upstream API.
        sink_url: Batch sink endpoint URL.
        sink_token: Bearer token for the batch sink.
        session_url: Optional session tracker endpoint URL.
        http_timeout_seconds: Timeout applied to every HTTP call.
    """

    gateway_url: str | None
    gateway_token: str | None
    target: str | None
    dump_path: str | None
    language: str
    sink_url: str | None
    sink_token: str | None
    session_url: str | None
    http_timeout_seconds: float

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            SyncConfigError: If environment values are invalid.
        """
        timeout_value = os.getenv(
            "DUMPSYNC_HTTP_TIMEOUT_SECONDS", str(DEFAULT_HTTP_TIMEOUT_SECONDS)
        )
        return cls(
            gateway_url=_optional_env("DUMPSYNC_GATEWAY_URL"),
            gateway_token=_optional_env("DUMPSYNC_GATEWAY_TOKEN"),
            target=_optional_env("DUMPSYNC_TARGET"),
            dump_path=_optional_env("DUMPSYNC_DUMP_PATH"),
            language=_optional_env("DUMPSYNC_LANGUAGE") or DEFAULT_LANGUAGE,
            sink_url=_optional_env("DUMPSYNC_SINK_URL"),
            sink_token=_optional_env("DUMPSYNC_SINK_TOKEN"),
            session_url=_optional_env("DUMPSYNC_SESSION_URL"),
            http_timeout_seconds=_parse_timeout(timeout_value),
        )


def require_setting(value: str | None, env_name: str) -> str:
    """Return a configured value or fail with the variable to set.

    Args:
        value: Config field value.
        env_name: Environment variable backing the field.

    Returns:
        The non-empty value.

    Raises:
        SyncConfigError: If the value is missing.
    """
    if not value:
        raise SyncConfigError(
            f"Missing required setting {env_name}. "
            f"Export {env_name} or run with --dump-file/--dry-run for offline syncs."
        )
    return value


def _optional_env(name: str) -> str | None:
    """Read an environment variable, treating blank values as unset."""
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _parse_timeout(raw_value: str) -> float:
    """Parse the HTTP timeout environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Positive timeout in seconds.

    Raises:
        SyncConfigError: If value is not a positive number.
    """
    try:
        timeout = float(raw_value)
    except ValueError as error:
        raise SyncConfigError(
            "Invalid DUMPSYNC_HTTP_TIMEOUT_SECONDS value: "
            f"expected number, got '{raw_value}'. "
            "Set DUMPSYNC_HTTP_TIMEOUT_SECONDS to a numeric value."
        ) from error
    if timeout <= 0:
        raise SyncConfigError(
            f"Invalid DUMPSYNC_HTTP_TIMEOUT_SECONDS value {raw_value}: must be greater than zero."
        )
    return timeout

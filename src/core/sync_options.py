"""Sync option builders.

This module merges CLI overrides, an optional sync profile and the
built-in defaults into one validated ``SyncOptions`` value.
Precedence is override, then profile, then default.
"""

from __future__ import annotations

from typing import Mapping, TypeVar

from core.errors import SyncConfigError
from core.sync_profile import SyncProfile
from core.types import PolicyThresholds, SyncOptions

_T = TypeVar("_T")


def build_sync_options(
    overrides: Mapping[str, object],
    profile: SyncProfile | None = None,
) -> SyncOptions:
    """Build validated sync options.

    Args:
        overrides: Explicit values, usually parsed CLI flags. ``None``
            values mean "not provided".
        profile: Optional sync profile supplying fallbacks.

    Returns:
        Validated sync options.

    Raises:
        SyncConfigError: If a resolved value is out of range.
    """
    base_profile = profile or SyncProfile()
    defaults = SyncOptions()
    policy_defaults = defaults.policy
    policy = PolicyThresholds(
        min_images=_pick(
            overrides.get("min_images"), base_profile.policy.min_images, policy_defaults.min_images
        ),
        min_star_rating=_pick(
            overrides.get("min_star_rating"),
            base_profile.policy.min_star_rating,
            policy_defaults.min_star_rating,
        ),
        require_geo=_pick(
            overrides.get("require_geo"),
            base_profile.policy.require_geo,
            policy_defaults.require_geo,
        ),
        require_address=_pick(
            overrides.get("require_address"),
            base_profile.policy.require_address,
            policy_defaults.require_address,
        ),
        require_country=_pick(
            overrides.get("require_country"),
            base_profile.policy.require_country,
            policy_defaults.require_country,
        ),
    )
    options = SyncOptions(
        inventory=_pick(overrides.get("inventory"), base_profile.inventory, defaults.inventory),
        batch_size=_pick(overrides.get("batch_size"), base_profile.batch_size, defaults.batch_size),
        max_retries=_pick(
            overrides.get("max_retries"), base_profile.max_retries, defaults.max_retries
        ),
        base_delay_ms=_pick(
            overrides.get("base_delay_ms"), base_profile.base_delay_ms, defaults.base_delay_ms
        ),
        pipeline_depth=_pick(
            overrides.get("pipeline_depth"), base_profile.pipeline_depth, defaults.pipeline_depth
        ),
        log_every=_pick(overrides.get("log_every"), base_profile.log_every, defaults.log_every),
        download_attempts=_pick(
            overrides.get("download_attempts"),
            base_profile.download_attempts,
            defaults.download_attempts,
        ),
        policy=policy,
        dump_file=_optional_text(overrides.get("dump_file")),
        dry_run=bool(overrides.get("dry_run") or False),
    )
    validate_sync_options(options)
    return options


def validate_sync_options(options: SyncOptions) -> None:
    """Validate option ranges.

    Raises:
        SyncConfigError: If any value is out of range.
    """
    if not options.inventory:
        raise SyncConfigError("Inventory selector must be a non-empty string.")
    _require_at_least(options.batch_size, 1, "batch_size")
    _require_at_least(options.max_retries, 0, "max_retries")
    _require_at_least(options.base_delay_ms, 0, "base_delay_ms")
    _require_at_least(options.pipeline_depth, 1, "pipeline_depth")
    _require_at_least(options.log_every, 1, "log_every")
    _require_at_least(options.download_attempts, 1, "download_attempts")
    _require_at_least(options.policy.min_images, 0, "min_images")
    if options.policy.min_star_rating < 0:
        raise SyncConfigError(
            f"Invalid min_star_rating {options.policy.min_star_rating}: must be zero or greater."
        )


def _pick(override: object, profile_value: _T | None, default_value: _T) -> _T:
    if override is not None:
        return override  # type: ignore[return-value]
    if profile_value is not None:
        return profile_value
    return default_value


def _optional_text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _require_at_least(value: int, minimum: int, field_name: str) -> None:
    if value < minimum:
        raise SyncConfigError(
            f"Invalid {field_name} {value}: must be at least {minimum}. "
            f"Pass a valid --{field_name.replace('_', '-')} value."
        )

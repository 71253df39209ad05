"""Typed YAML sync profiles.

A sync profile captures one filtering profile (inventory, batching,
retry and policy thresholds) so the same pipeline can serve every dump
variant without code changes. Profiles are strict: unknown keys and
wrong types fail loudly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Mapping, cast

import yaml

from core.constants import SYNC_PROFILE_VERSION
from core.errors import SyncProfileError

FieldKind = Literal["text", "integer", "number", "flag"]

_ROOT_FIELDS: dict[str, FieldKind] = {
    "inventory": "text",
    "batch_size": "integer",
    "max_retries": "integer",
    "base_delay_ms": "integer",
    "pipeline_depth": "integer",
    "log_every": "integer",
    "download_attempts": "integer",
}
_POLICY_FIELDS: dict[str, FieldKind] = {
    "min_images": "integer",
    "min_star_rating": "number",
    "require_geo": "flag",
    "require_address": "flag",
    "require_country": "flag",
}
_KIND_LABELS: dict[FieldKind, str] = {
    "text": "a string",
    "integer": "an integer",
    "number": "a number",
    "flag": "true or false",
}


@dataclass(frozen=True)
class PolicyProfile:
    """Optional policy threshold overrides from a profile."""

    min_images: int | None = None
    min_star_rating: float | None = None
    require_geo: bool | None = None
    require_address: bool | None = None
    require_country: bool | None = None


@dataclass(frozen=True)
class SyncProfile:
    """Validated sync profile; ``None`` fields fall back to defaults."""

    version: int = SYNC_PROFILE_VERSION
    inventory: str | None = None
    batch_size: int | None = None
    max_retries: int | None = None
    base_delay_ms: int | None = None
    pipeline_depth: int | None = None
    log_every: int | None = None
    download_attempts: int | None = None
    policy: PolicyProfile = field(default_factory=PolicyProfile)


def load_sync_profile(profile_path: str) -> SyncProfile:
    """Load and validate a YAML sync profile from disk.

    Args:
        profile_path: File path to YAML profile.

    Returns:
        Fully validated profile.

    Raises:
        SyncProfileError: If file is invalid or schema checks fail.
    """
    payload = _load_yaml_payload(profile_path)
    return parse_sync_profile(payload)


def parse_sync_profile(payload: object) -> SyncProfile:
    """Validate an already-decoded profile payload."""
    root_mapping = _profile_section(payload, "sync profile", {"version", "policy", *_ROOT_FIELDS})
    return SyncProfile(
        version=_parse_version(root_mapping),
        policy=_parse_policy(root_mapping.get("policy")),
        **_read_fields(root_mapping, _ROOT_FIELDS, "sync profile"),
    )


def _load_yaml_payload(profile_path: str) -> object:
    profile_file = Path(profile_path).expanduser().resolve()
    if not profile_file.exists():
        raise SyncProfileError(
            f"Sync profile does not exist at {profile_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(profile_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise SyncProfileError(
            f"Failed to read sync profile at {profile_file}: {error}. "
            "Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise SyncProfileError(
            f"Failed to parse YAML sync profile at {profile_file}: {error}. "
            "Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise SyncProfileError(
            f"Sync profile at {profile_file} is empty. Define at least 'version'."
        )
    return payload


def _parse_version(root_mapping: Mapping[str, object]) -> int:
    raw_version = root_mapping.get("version")
    if not isinstance(raw_version, int) or isinstance(raw_version, bool):
        raise SyncProfileError("Sync profile field 'version' must be an integer. Set version: 1.")
    if raw_version != SYNC_PROFILE_VERSION:
        raise SyncProfileError(
            f"Unsupported sync profile version {raw_version}. Use version: {SYNC_PROFILE_VERSION}."
        )
    return raw_version


def _parse_policy(raw_policy: object) -> PolicyProfile:
    if raw_policy is None:
        return PolicyProfile()
    policy_mapping = _profile_section(raw_policy, "sync profile policy", set(_POLICY_FIELDS))
    return PolicyProfile(**_read_fields(policy_mapping, _POLICY_FIELDS, "sync profile policy"))


def _profile_section(payload: object, context: str, allowed_keys: set[str]) -> dict[str, object]:
    """Return a section as a string-keyed dict, rejecting unknown keys."""
    if not isinstance(payload, Mapping):
        raise SyncProfileError(
            f"Invalid {context}: expected a mapping, got {type(payload).__name__}."
        )
    section = dict(payload)
    for key in section:
        if not isinstance(key, str):
            raise SyncProfileError(
                f"Invalid {context}: keys must be strings, got {type(key).__name__}."
            )
    unknown_keys = sorted(set(section) - allowed_keys)
    if unknown_keys:
        raise SyncProfileError(
            f"Invalid {context}: unknown fields {', '.join(unknown_keys)}. "
            f"Allowed fields: {', '.join(sorted(allowed_keys))}."
        )
    return section


def _read_fields(
    section: Mapping[str, object],
    kinds: Mapping[str, FieldKind],
    context: str,
) -> dict[str, Any]:
    return {
        name: _read_field(section.get(name), name, kind, context) for name, kind in kinds.items()
    }


def _read_field(value: object, name: str, kind: FieldKind, context: str) -> Any:
    if value is None:
        return None
    # YAML booleans are ints in Python; only flag fields accept them.
    if isinstance(value, bool):
        if kind == "flag":
            return value
    elif kind == "integer" and isinstance(value, int):
        return value
    elif kind == "number" and isinstance(value, (int, float)):
        return float(value)
    elif kind == "text" and isinstance(value, str):
        return value.strip() or None
    raise SyncProfileError(
        f"Invalid {context} field '{name}': expected {_KIND_LABELS[kind]}, "
        f"got {type(value).__name__}."
    )

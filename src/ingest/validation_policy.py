"""Record completeness policy.

This module evaluates decoded dump records against configurable
completeness thresholds. Evaluation is pure and total: malformed or
missing fields fail only the check that reads them, never raise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import urlsplit

from core.constants import ALLOWED_IMAGE_SCHEMES, COUNTRY_CODE_LENGTH, MIN_NAME_LENGTH
from core.types import PolicyThresholds, Record


@dataclass(frozen=True)
class PolicyVerdict:
    """Policy evaluation result.

    Attributes:
        accepted: Whether every check passed.
        failed_checks: Names of failed checks in evaluation order.
    """

    accepted: bool
    failed_checks: tuple[str, ...] = ()


class ValidationPolicy:
    """Completeness predicate parameterized by thresholds."""

    def __init__(self, thresholds: PolicyThresholds | None = None) -> None:
        self._thresholds = thresholds or PolicyThresholds()

    @property
    def thresholds(self) -> PolicyThresholds:
        return self._thresholds

    def evaluate(self, record: Mapping[str, Any]) -> PolicyVerdict:
        """Run every enabled check against one record.

        Args:
            record: Decoded record mapping.

        Returns:
            Verdict listing failed checks.
        """
        thresholds = self._thresholds
        failed: list[str] = []
        if not _has_identity(record):
            failed.append("id")
        if not _has_name(record):
            failed.append("name")
        if not _has_star_rating(record, thresholds.min_star_rating):
            failed.append("star_rating")
        if len(valid_image_urls(record.get("images"))) < thresholds.min_images:
            failed.append("images")
        if thresholds.require_geo and not _has_geo(record):
            failed.append("geo")
        if thresholds.require_address and not _is_non_empty_string(record.get("address")):
            failed.append("address")
        if thresholds.require_country and not _has_country(record):
            failed.append("country")
        return PolicyVerdict(accepted=not failed, failed_checks=tuple(failed))

    def accepts(self, record: Mapping[str, Any]) -> bool:
        """Return whether a record passes every enabled check."""
        return self.evaluate(record).accepted

    def normalize(self, record: Mapping[str, Any]) -> Record:
        """Return a copy of an accepted record with derived fields cleaned.

        The ``images`` list is reduced to syntactically valid absolute URLs.
        """
        normalized = dict(record)
        if "images" in normalized:
            normalized["images"] = valid_image_urls(normalized["images"])
        return normalized


def valid_image_urls(images: object) -> list[str]:
    """Extract syntactically valid absolute http(s) URLs from an image list.

    Args:
        images: Raw ``images`` value; entries may be URL strings or
            mappings with a ``url`` key.

    Returns:
        Valid URLs in original order; empty for non-list input.
    """
    if not isinstance(images, list):
        return []
    urls: list[str] = []
    for entry in images:
        candidate = entry.get("url") if isinstance(entry, Mapping) else entry
        if isinstance(candidate, str) and is_absolute_url(candidate):
            urls.append(candidate)
    return urls


def is_absolute_url(value: str) -> bool:
    """Return whether a string is an absolute http(s) URL with a host."""
    if not value or value != value.strip() or any(ch.isspace() for ch in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme.lower() in ALLOWED_IMAGE_SCHEMES and bool(parts.netloc)


def _has_identity(record: Mapping[str, Any]) -> bool:
    return _is_non_empty_string(record.get("id"))


def _has_name(record: Mapping[str, Any]) -> bool:
    name = record.get("name")
    return isinstance(name, str) and len(name.strip()) >= MIN_NAME_LENGTH


def _has_star_rating(record: Mapping[str, Any], minimum: float) -> bool:
    rating = record.get("star_rating")
    return _is_number(rating) and rating >= minimum


def _has_geo(record: Mapping[str, Any]) -> bool:
    latitude = record.get("latitude")
    longitude = record.get("longitude")
    return (
        _is_number(latitude)
        and _is_number(longitude)
        and -90 <= latitude <= 90
        and -180 <= longitude <= 180
    )


def _has_country(record: Mapping[str, Any]) -> bool:
    region = record.get("region")
    if not isinstance(region, Mapping):
        return False
    country_code = region.get("country_code")
    return isinstance(country_code, str) and len(country_code.strip()) == COUNTRY_CODE_LENGTH


def _is_non_empty_string(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_number(value: object) -> bool:
    # NaN compares false against every bound, so it fails range checks too.
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value

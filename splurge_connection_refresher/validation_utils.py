"""Validation utilities for the connection refresher package."""

import re

from splurge_connection_refresher.constants import Constants
from splurge_connection_refresher.exceptions import ValidationError

MATCH_MODES = ("exact", "substring")


def validate_organization_url(url: str) -> str:
    """Validate an Azure DevOps organization URL.

    The URL must start with the fixed organization scheme prefix and name an
    organization after it.

    Args:
        url: Organization URL to validate

    Returns:
        The URL normalized to end with a single slash

    Raises:
        ValidationError: If the URL is missing or malformed
    """
    if not url or not url.strip():
        raise ValidationError("Organization URL cannot be empty")

    url = url.strip()
    prefix = Constants.ORGANIZATION_URL_PREFIX()
    if not url.lower().startswith(prefix):
        raise ValidationError(f"Organization URL must start with '{prefix}'")

    organization = url[len(prefix):].strip("/")
    if not organization or "/" in organization:
        raise ValidationError(f"Organization URL must name a single organization: {url}")

    return f"{prefix}{organization}/"


def validate_project_name(name: str) -> None:
    """Validate a project name.

    Args:
        name: Project name to validate

    Raises:
        ValidationError: If the name is missing
    """
    if name is None or name.strip() == "":
        raise ValidationError("Project name cannot be empty")

    if '\x00' in name:
        raise ValidationError("Project name cannot contain null bytes")


def validate_threshold_days(days: int) -> None:
    """Validate the expiry threshold in days.

    Raises:
        ValidationError: If days is not a non-negative integer within range
    """
    if isinstance(days, bool) or not isinstance(days, int):
        raise ValidationError("Threshold days must be an integer")

    if days < 0:
        raise ValidationError("Threshold days cannot be negative")

    if days > Constants.MAX_THRESHOLD_DAYS():
        raise ValidationError(
            f"Threshold days must be at most {Constants.MAX_THRESHOLD_DAYS()}"
        )


def compile_name_pattern(pattern: str | None) -> re.Pattern[str]:
    """Compile an identity display name pattern.

    An empty or missing pattern matches every display name.

    Raises:
        ValidationError: If the pattern is not a valid regular expression
    """
    try:
        return re.compile(pattern or "", re.IGNORECASE)
    except re.error as e:
        raise ValidationError(f"Invalid name pattern '{pattern}': {e}") from e


def validate_match_mode(mode: str) -> None:
    """Validate the connection principal matching mode."""
    if mode not in MATCH_MODES:
        raise ValidationError(
            f"Match mode must be one of: {', '.join(MATCH_MODES)}"
        )

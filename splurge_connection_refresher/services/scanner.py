"""Credential scanner that discovers identities needing rotation."""

import logging
from datetime import datetime, timedelta, timezone

from splurge_connection_refresher.clients.directory import DirectoryClient
from splurge_connection_refresher.exceptions import (
    ExternalServiceError,
    NotFoundError,
    ServiceUnavailableError,
)
from splurge_connection_refresher.models import Identity
from splurge_connection_refresher.validation_utils import (
    compile_name_pattern,
    validate_threshold_days,
)

logger = logging.getLogger(__name__)


def threshold_for(threshold_days: int, today: datetime | None = None) -> datetime:
    """Return the cutoff after which a credential is not yet expiring."""
    return (today or datetime.now(timezone.utc)) + timedelta(days=threshold_days)


class CredentialScanner:
    """Finds identities whose credentials expire without a fresh replacement."""

    def __init__(self, directory: DirectoryClient):
        """Initialize the scanner.

        Args:
            directory: Directory service client
        """
        self._directory = directory

    def discover(
        self,
        name_pattern: str,
        threshold_days: int,
        *,
        require_match: bool = False,
        today: datetime | None = None
    ) -> list[Identity]:
        """Discover expiring identities.

        An identity qualifies when at least one credential ends before the
        threshold and none ends after it. Identities without credentials are
        ignored.

        Args:
            name_pattern: Regular expression searched in display names; empty matches all
            threshold_days: Days from today defining the threshold
            require_match: Fail when a non-empty pattern matches no identity at all
            today: Reference time (optional, defaults to now in UTC)

        Returns:
            Expiring identities ordered by display name

        Raises:
            ValidationError: If the pattern or threshold is invalid
            ServiceUnavailableError: If the directory listing fails
            NotFoundError: If require_match is set and nothing matches the pattern
        """
        validate_threshold_days(threshold_days)
        pattern = compile_name_pattern(name_pattern)
        threshold = threshold_for(threshold_days, today)

        try:
            identities = self._directory.list_identities(include_all=True)
        except ServiceUnavailableError:
            raise
        except ExternalServiceError as e:
            raise ServiceUnavailableError(f"Failed to list identities: {e}") from e

        matching = [i for i in identities if pattern.search(i.display_name)]
        if require_match and name_pattern and not matching:
            raise NotFoundError(f"No identity matches name pattern '{name_pattern}'")

        expiring = [identity for identity in matching if identity.is_expiring(threshold)]

        logger.info("Credential scan completed", extra={
            "listed": len(identities),
            "matched": len(matching),
            "expiring": len(expiring),
            "threshold": threshold.isoformat(),
            "event": "credential_scan_completed"
        })

        return sorted(expiring, key=lambda identity: identity.display_name.casefold())

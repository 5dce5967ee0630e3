"""Concurrent owner lookup for discovered identities."""

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Sequence

from splurge_connection_refresher.clients.directory import DirectoryClient
from splurge_connection_refresher.constants import Constants
from splurge_connection_refresher.exceptions import EnrichmentError
from splurge_connection_refresher.models import Identity, Principal

logger = logging.getLogger(__name__)

LookupResult = tuple[Identity, list[Principal] | None, EnrichmentError | None]


class OwnerEnricher:
    """Attaches owning principals to identities using a fixed-size worker pool.

    Failures are logged and the affected identity is returned with
    ``owners=None``; every other identity is still enriched. The returned
    list follows completion order, not input order.
    """

    def __init__(self, directory: DirectoryClient, max_workers: int | None = None):
        """Initialize the enricher.

        Args:
            directory: Directory service client
            max_workers: Pool size (optional, defaults to Constants.DEFAULT_MAX_WORKERS)
        """
        self._directory = directory
        self._max_workers = max_workers or Constants.DEFAULT_MAX_WORKERS()

    def _lookup(self, identity: Identity) -> LookupResult:
        """Fetch the owners of one identity, capturing any failure."""
        try:
            owners = self._directory.list_owners(identity.id)
        except Exception as e:
            error = EnrichmentError(f"Failed to list owners of '{identity.display_name}': {e}")
            error.__cause__ = e
            return identity, None, error
        return identity, owners, None

    def enrich(self, identities: Sequence[Identity]) -> list[Identity]:
        """Return new identity views carrying their owners.

        Args:
            identities: Identities to enrich

        Returns:
            Enriched identities in completion order
        """
        if not identities:
            return []

        enriched: list[Identity] = []
        workers = min(self._max_workers, len(identities))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self._lookup, identity) for identity in identities]
            for future in as_completed(futures):
                identity, owners, error = future.result()
                if error is not None:
                    logger.warning("%s", error, extra={
                        "identity": identity.display_name,
                        "event": "owner_enrichment_failed"
                    })
                    enriched.append(dataclasses.replace(identity, owners=None))
                else:
                    enriched.append(dataclasses.replace(identity, owners=tuple(owners)))

        logger.debug("Owner enrichment completed for %d identities", len(enriched))
        return enriched

"""Refresh orchestrator that sequences discovery, rotation and reconciliation."""

import logging
from datetime import datetime

from splurge_connection_refresher.clients.connections import ConnectionClient
from splurge_connection_refresher.clients.directory import DirectoryClient
from splurge_connection_refresher.clients.http import ServiceContext
from splurge_connection_refresher.clients.resources import ResourceClient
from splurge_connection_refresher.exceptions import (
    ConnectionRefresherError,
    NotFoundError,
)
from splurge_connection_refresher.models import (
    Connection,
    ConnectionOutcome,
    ConnectionStatus,
    Identity,
    IdentityOutcome,
    IdentityState,
    RotatedCredential,
    RunSummary,
)
from splurge_connection_refresher.services.owner_enricher import OwnerEnricher
from splurge_connection_refresher.services.reconciler import ConnectionReconciler
from splurge_connection_refresher.services.resolvers import (
    ConnectionResolver,
    SubscriptionResolver,
)
from splurge_connection_refresher.services.rotator import CredentialRotator
from splurge_connection_refresher.services.scanner import CredentialScanner, threshold_for

logger = logging.getLogger(__name__)


class RefreshOrchestrator:
    """Runs the refresh pipeline one identity at a time.

    Per identity: resolve dependent connections, rotate exactly once, then
    reconcile every dependent connection with the rotated credential. A
    failure is contained to the identity (rotation) or the connection
    (reconciliation); only setup and discovery failures escape ``run``.
    """

    def __init__(
        self,
        *,
        scanner: CredentialScanner,
        connection_resolver: ConnectionResolver,
        subscription_resolver: SubscriptionResolver,
        rotator: CredentialRotator,
        reconciler: ConnectionReconciler,
        owner_enricher: OwnerEnricher | None = None
    ):
        self._scanner = scanner
        self._connection_resolver = connection_resolver
        self._subscription_resolver = subscription_resolver
        self._rotator = rotator
        self._reconciler = reconciler
        self._owner_enricher = owner_enricher

    @classmethod
    def from_context(
        cls,
        context: ServiceContext,
        *,
        match_mode: str = "exact",
        max_workers: int | None = None
    ) -> "RefreshOrchestrator":
        """Wire the pipeline against the live collaborator services."""
        directory = DirectoryClient(context)
        connections = ConnectionClient(context)
        connection_resolver = ConnectionResolver(connections, match_mode=match_mode)
        return cls(
            scanner=CredentialScanner(directory),
            connection_resolver=connection_resolver,
            subscription_resolver=SubscriptionResolver(ResourceClient(context)),
            rotator=CredentialRotator(directory),
            reconciler=ConnectionReconciler(connections, connection_resolver),
            owner_enricher=OwnerEnricher(directory, max_workers=max_workers),
        )

    def discover(
        self,
        name_pattern: str,
        threshold_days: int,
        *,
        require_match: bool = False,
        include_owners: bool = False,
        today: datetime | None = None
    ) -> list[Identity]:
        """Discover expiring identities, optionally with their owners."""
        identities = self._scanner.discover(
            name_pattern,
            threshold_days,
            require_match=require_match,
            today=today,
        )
        if include_owners and self._owner_enricher is not None:
            identities = self._owner_enricher.enrich(identities)
            identities.sort(key=lambda identity: identity.display_name.casefold())
        return identities

    def run(
        self,
        name_pattern: str,
        threshold_days: int,
        apply: bool,
        *,
        require_match: bool = False,
        include_owners: bool = False,
        today: datetime | None = None
    ) -> RunSummary:
        """Run the full pipeline.

        Args:
            name_pattern: Display name pattern; empty selects every identity
            threshold_days: Days from today defining the expiry threshold
            apply: Perform remote writes; otherwise only preview them
            require_match: Fail when a non-empty pattern matches no identity
            include_owners: Attach owners to the discovered identities
            today: Reference time (optional)

        Returns:
            Per-identity and per-connection outcomes

        Raises:
            ValidationError: If the pattern or threshold is invalid
            ServiceUnavailableError: If discovery fails
            NotFoundError: If require_match is set and no identity matches
        """
        identities = self.discover(
            name_pattern,
            threshold_days,
            require_match=require_match,
            include_owners=include_owners,
            today=today,
        )
        summary = RunSummary(apply=apply, threshold=threshold_for(threshold_days, today))

        for identity in identities:
            summary.identities.append(self.process_identity(identity, apply))

        logger.info("Refresh run completed", extra={
            "apply": apply,
            "identities": len(summary.identities),
            "rotated": summary.rotated_count,
            "reconciled": summary.reconciled_count,
            "failed": summary.failed_count,
            "event": "refresh_run_completed"
        })
        return summary

    def process_identity(self, identity: Identity, apply: bool) -> IdentityOutcome:
        """Resolve, rotate and reconcile a single identity."""
        outcome = IdentityOutcome(display_name=identity.display_name, app_id=identity.app_id)

        try:
            connections = self._connection_resolver.find_connections(identity.app_id)
        except ConnectionRefresherError as e:
            logger.error("Failed to resolve connections for '%s': %s", identity.display_name, e)
            outcome.state = IdentityState.FAILED
            outcome.message = str(e)
            return outcome

        outcome.state = IdentityState.RESOLVED
        if not connections:
            logger.warning("No connections depend on '%s', skipping", identity.display_name)
            outcome.state = IdentityState.DONE
            outcome.message = "no dependent connections"
            return outcome

        try:
            credential = self._rotator.rotate(identity, apply)
        except ConnectionRefresherError as e:
            logger.error("%s", e)
            outcome.state = IdentityState.FAILED
            outcome.message = str(e)
            return outcome

        outcome.state = IdentityState.ROTATED
        outcome.rotated = apply

        outcome.state = IdentityState.RECONCILING
        # one upsert per bound resource; duplicates share it
        by_resource: dict[str, list[Connection]] = {}
        for connection in connections:
            by_resource.setdefault(connection.bound_resource_name.casefold(), []).append(connection)
        for group in by_resource.values():
            outcome.connections.append(
                self._reconcile_resource(identity, credential, group, apply)
            )

        if outcome.count(ConnectionStatus.FAILED):
            outcome.state = IdentityState.PARTIALLY_FAILED
        else:
            outcome.state = IdentityState.DONE
        return outcome

    def _reconcile_resource(
        self,
        identity: Identity,
        credential: RotatedCredential,
        group: list[Connection],
        apply: bool
    ) -> ConnectionOutcome:
        """Reconcile the connections bound to one resource, containing any failure."""
        connection = group[0]
        resource_name = connection.bound_resource_name
        if not resource_name:
            logger.warning("Connection '%s' is not bound to a subscription, skipping", connection.name)
            return ConnectionOutcome(
                resource_name=resource_name,
                status=ConnectionStatus.SKIPPED,
                connection_name=connection.name,
                message="no bound subscription",
            )

        try:
            resource = self._subscription_resolver.resolve(resource_name)
        except NotFoundError as e:
            logger.warning("%s, skipping connection '%s'", e, connection.name)
            return ConnectionOutcome(
                resource_name=resource_name,
                status=ConnectionStatus.SKIPPED,
                connection_name=connection.name,
                message=str(e),
            )
        except ConnectionRefresherError as e:
            logger.error("Failed to resolve subscription '%s': %s", resource_name, e)
            return ConnectionOutcome(
                resource_name=resource_name,
                status=ConnectionStatus.FAILED,
                connection_name=connection.name,
                message=str(e),
            )

        try:
            result = self._reconciler.upsert(
                identity, credential, resource.name, resource.id, apply, existing=group
            )
        except ConnectionRefresherError as e:
            logger.error("%s", e)
            return ConnectionOutcome(
                resource_name=resource_name,
                status=ConnectionStatus.FAILED,
                connection_name=connection.name,
                message=str(e),
            )

        return ConnectionOutcome(
            resource_name=resource_name,
            status=ConnectionStatus.RECONCILED,
            connection_name=result.connection_name,
            action=result.action,
        )

"""Idempotent create-or-update of service connections."""

import logging
from typing import Any, Sequence

from splurge_connection_refresher.clients.connections import ConnectionClient
from splurge_connection_refresher.constants import Constants
from splurge_connection_refresher.exceptions import ExternalServiceError, ReconcileError
from splurge_connection_refresher.models import (
    Connection,
    Identity,
    ReconcileAction,
    ReconcileResult,
    RotatedCredential,
)
from splurge_connection_refresher.services.resolvers import ConnectionResolver

logger = logging.getLogger(__name__)


def connection_name(identity: Identity, resource_name: str) -> str:
    """Name given to a connection created for an identity and resource."""
    return f"{identity.display_name}-{resource_name}"


class ConnectionReconciler:
    """Brings one connection's stored secret in line with a rotated credential."""

    def __init__(self, connections: ConnectionClient, resolver: ConnectionResolver):
        """Initialize the reconciler.

        Args:
            connections: Connection service client used for writes
            resolver: Resolver used to find an existing connection
        """
        self._connections = connections
        self._resolver = resolver

    def build_spec(
        self,
        identity: Identity,
        credential: RotatedCredential,
        resource_name: str,
        resource_id: str
    ) -> dict[str, Any]:
        """Build the full specification of a new connection."""
        name = connection_name(identity, resource_name)
        project = {"id": self._connections.project_id(), "name": self._connections.project}
        return {
            "name": name,
            "type": Constants.CONNECTION_TYPE(),
            "url": f"{Constants.ARM_BASE_URL()}/",
            "authorization": {
                "scheme": "ServicePrincipal",
                "parameters": {
                    "tenantid": credential.tenant_id or identity.tenant_id,
                    "serviceprincipalid": identity.app_id,
                    "authenticationType": "spnKey",
                    "serviceprincipalkey": credential.value,
                },
            },
            "data": {
                "subscriptionId": resource_id,
                "subscriptionName": resource_name,
                "environment": "AzureCloud",
                "scopeLevel": "Subscription",
                "creationMode": "Manual",
            },
            "isShared": False,
            "isReady": True,
            "serviceEndpointProjectReferences": [
                {"projectReference": project, "name": name},
            ],
        }

    def _update_all(self, existing: Sequence[Connection], credential: RotatedCredential) -> None:
        failures: list[str] = []
        cause: ExternalServiceError | None = None
        for connection in existing:
            try:
                self._connections.update_connection(
                    connection.id, connection.with_secret(credential.value)
                )
            except ExternalServiceError as e:
                logger.error("Failed to update connection '%s': %s", connection.name, e)
                failures.append(connection.name)
                cause = e
        if failures:
            names = ", ".join(f"'{name}'" for name in failures)
            raise ReconcileError(f"Failed to update connection {names}: {cause}") from cause

    def upsert(
        self,
        identity: Identity,
        credential: RotatedCredential,
        resource_name: str,
        resource_id: str,
        apply: bool,
        existing: Sequence[Connection] | None = None
    ) -> ReconcileResult:
        """Create or update the connection for an identity and resource.

        An existing connection keeps its full payload; only the secret is
        replaced. Otherwise a connection named "{display_name}-{resource_name}"
        is created. Without apply nothing is written and the action that would
        be taken is returned.

        ``existing`` holds connections already resolved for this identity and
        resource; when omitted they are looked up.

        Every matching connection is attempted before a failure is raised.

        Raises:
            ReconcileError: If the lookup or the write fails
        """
        if existing is None:
            try:
                existing = self._resolver.find_connections(identity.app_id, resource_name)
            except ExternalServiceError as e:
                raise ReconcileError(
                    f"Failed to look up connection for '{identity.display_name}' on '{resource_name}': {e}"
                ) from e

        if existing:
            if len(existing) > 1:
                logger.warning(
                    "%d connections match '%s' on '%s', updating all of them",
                    len(existing), identity.display_name, resource_name
                )
            if apply:
                self._update_all(existing, credential)
            result = ReconcileResult(ReconcileAction.UPDATED, existing[0].name, apply)
        else:
            name = connection_name(identity, resource_name)
            if apply:
                try:
                    self._connections.create_connection(
                        self.build_spec(identity, credential, resource_name, resource_id)
                    )
                except ExternalServiceError as e:
                    raise ReconcileError(f"Failed to create connection '{name}': {e}") from e
            result = ReconcileResult(ReconcileAction.CREATED, name, apply)

        logger.info("Connection %s%s", result.action.value, "" if apply else " (preview)", extra={
            "connection": result.connection_name,
            "identity": identity.display_name,
            "resource": resource_name,
            "event": "connection_reconciled"
        })
        return result

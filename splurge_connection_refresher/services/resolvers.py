"""Resolvers for dependent connections and their bound subscriptions."""

import logging

from splurge_connection_refresher.clients.connections import ConnectionClient
from splurge_connection_refresher.clients.resources import ResourceClient
from splurge_connection_refresher.exceptions import NotFoundError
from splurge_connection_refresher.models import Connection, Resource
from splurge_connection_refresher.validation_utils import validate_match_mode

logger = logging.getLogger(__name__)


class ConnectionResolver:
    """Finds the connections that depend on an identity's credential."""

    def __init__(self, connections: ConnectionClient, match_mode: str = "exact"):
        """Initialize the resolver.

        Args:
            connections: Connection service client
            match_mode: "exact" compares the principal id for equality,
                "substring" accepts any principal id containing the app id
        """
        validate_match_mode(match_mode)
        self._connections = connections
        self._match_mode = match_mode

    def _matches(self, connection: Connection, app_id: str) -> bool:
        principal_id = connection.bound_identity_app_id.casefold()
        if self._match_mode == "substring":
            return app_id.casefold() in principal_id
        return principal_id == app_id.casefold()

    def find_connections(self, app_id: str, resource_name: str | None = None) -> list[Connection]:
        """List connections bound to an identity.

        Args:
            app_id: Application id of the identity
            resource_name: Restrict to connections bound to this resource (optional)

        Returns:
            Matching connections, possibly empty

        Raises:
            ServiceUnavailableError: If listing connections fails
        """
        matches = [c for c in self._connections.list_connections() if self._matches(c, app_id)]
        if resource_name is not None:
            wanted = resource_name.casefold()
            matches = [c for c in matches if c.bound_resource_name.casefold() == wanted]
        return matches


class SubscriptionResolver:
    """Maps subscription names to their identifiers, caching per run."""

    def __init__(self, resources: ResourceClient):
        self._resources = resources
        self._cache: dict[str, Resource] = {}

    def resolve(self, name: str) -> Resource:
        """Resolve a subscription by exact, case-insensitive name.

        Raises:
            NotFoundError: If no subscription carries that name
            ServiceUnavailableError: If the lookup fails
        """
        key = name.casefold()
        if key in self._cache:
            return self._cache[key]

        candidates = self._resources.list_resources_by_name(name)
        if not candidates:
            raise NotFoundError(f"Subscription '{name}' not found")
        if len(candidates) > 1:
            logger.warning(
                "Subscription name '%s' is ambiguous, using %s", name, candidates[0].id
            )

        self._cache[key] = candidates[0]
        return candidates[0]

"""Connection service client (Azure DevOps service endpoints)."""

import logging
from typing import Any
from urllib.parse import quote

from splurge_connection_refresher.clients.http import ApiClient, ServiceContext
from splurge_connection_refresher.constants import Constants
from splurge_connection_refresher.exceptions import ServiceUnavailableError
from splurge_connection_refresher.models import Connection

logger = logging.getLogger(__name__)


class ConnectionClient(ApiClient):
    """Lists, creates and updates service connections of one project."""

    def __init__(self, context: ServiceContext):
        super().__init__(context)
        self._organization_url = context.organization_url
        self._project = context.project
        self._project_id: str | None = None

    @property
    def project(self) -> str:
        return self._project

    def _auth(self) -> dict:
        return {"auth": self._context.devops_auth}

    def _params(self, **extra: Any) -> dict[str, Any]:
        return {"api-version": Constants.DEVOPS_API_VERSION(), **extra}

    def _endpoints_url(self, connection_id: str | None = None) -> str:
        url = f"{self._organization_url}_apis/serviceendpoint/endpoints"
        return f"{url}/{connection_id}" if connection_id else url

    def _parse(self, body: Any) -> Connection:
        try:
            return Connection.from_dict(body)
        except (KeyError, TypeError) as e:
            raise ServiceUnavailableError(f"Malformed service connection record: {e}") from e

    def project_id(self) -> str:
        """Return the id of the configured project, cached after the first call."""
        if self._project_id is None:
            body = self._request(
                "GET",
                f"{self._organization_url}_apis/projects/{quote(self._project)}",
                params=self._params(),
            ) or {}
            if not body.get("id"):
                raise ServiceUnavailableError(f"Project '{self._project}' has no id")
            self._project_id = body["id"]
        return self._project_id

    def list_connections(self) -> list[Connection]:
        """List the resource manager connections of the project."""
        body = self._request(
            "GET",
            f"{self._organization_url}{quote(self._project)}/_apis/serviceendpoint/endpoints",
            params=self._params(type=Constants.CONNECTION_TYPE()),
        ) or {}
        return [self._parse(item) for item in body.get("value") or []]

    def create_connection(self, spec: dict[str, Any]) -> Connection:
        """Create a connection from a full endpoint specification."""
        logger.debug("Creating service connection '%s'", spec.get("name"))
        return self._parse(
            self._request("POST", self._endpoints_url(), params=self._params(), json=spec)
        )

    def update_connection(self, connection_id: str, payload: dict[str, Any]) -> Connection | None:
        """Replace a connection with the given full payload."""
        logger.debug("Updating service connection %s", connection_id)
        body = self._request(
            "PUT",
            self._endpoints_url(connection_id),
            params=self._params(),
            json=payload,
        )
        return self._parse(body) if body else None

"""HTTP plumbing shared by the collaborator service clients."""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from typing import Any

import requests
from azure.identity import DefaultAzureCredential

from splurge_connection_refresher.constants import Constants
from splurge_connection_refresher.exceptions import ServiceUnavailableError

logger = logging.getLogger(__name__)

TokenProvider = Callable[[str], str]


def azure_token_provider(credential: Any = None) -> TokenProvider:
    """Build a token provider backed by an azure-identity credential.

    Tokens are cached per scope until shortly before they expire. The provider
    is safe to call from several threads.

    Args:
        credential: Any azure-identity credential (default: DefaultAzureCredential)

    Returns:
        Callable mapping an OAuth scope to a bearer token
    """
    if credential is None:
        credential = DefaultAzureCredential()

    cache: dict[str, Any] = {}
    lock = threading.Lock()

    def provide(scope: str) -> str:
        with lock:
            token = cache.get(scope)
            if token is None or token.expires_on - 60 <= time.time():
                token = credential.get_token(scope)
                cache[scope] = token
            return token.token

    return provide


class ServiceContext:
    """Explicit client context passed to every collaborator call.

    Holds the organization/project being reconciled, the connection service
    access token, a token provider for directory/resource-manager scopes, and
    the HTTP session all clients share.
    """

    def __init__(
        self,
        *,
        organization_url: str,
        project: str,
        devops_token: str,
        token_provider: TokenProvider,
        timeout: float | None = None,
        session: requests.Session | None = None
    ):
        """Initialize the service context.

        Args:
            organization_url: Validated organization URL ending with a slash
            project: Project name
            devops_token: Access token for the connection service
            token_provider: Callable returning a bearer token for a scope
            timeout: Per-request timeout in seconds
            session: HTTP session (optional, created if omitted)
        """
        self.organization_url = organization_url
        self.project = project
        self._devops_token = devops_token
        self._token_provider = token_provider
        self.timeout = timeout or Constants.REQUEST_TIMEOUT_SECONDS()
        self.session = session or requests.Session()

    def bearer_headers(self, scope: str) -> dict[str, str]:
        """Authorization headers for an OAuth scope."""
        return {"Authorization": f"Bearer {self._token_provider(scope)}"}

    @property
    def devops_auth(self) -> tuple[str, str]:
        """Basic auth pair for the connection service."""
        return ("", self._devops_token)

    def close(self) -> None:
        """Close the shared HTTP session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class ApiClient:
    """Base class for JSON REST clients."""

    def __init__(self, context: ServiceContext):
        """Initialize the client.

        Args:
            context: Shared service context
        """
        self._context = context

    def _auth(self) -> dict[str, Any]:
        """Keyword arguments authenticating a request; overridden per service."""
        return {}

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None
    ) -> Any:
        """Send a single request and decode its JSON body.

        Every call is attempted once; there is no retry.

        Raises:
            ServiceUnavailableError: If the request fails or returns an error status
        """
        logger.debug("%s %s", method, url)
        try:
            response = self._context.session.request(
                method,
                url,
                params=params,
                json=json,
                timeout=self._context.timeout,
                **self._auth(),
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise ServiceUnavailableError(f"{method} {url} failed: {e}") from e

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise ServiceUnavailableError(f"{method} {url} returned invalid JSON") from e

    def _paged(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        next_key: str = "@odata.nextLink",
        all_pages: bool = True
    ) -> Iterator[dict[str, Any]]:
        """Iterate the ``value`` items of a paged collection."""
        while url:
            body = self._request("GET", url, params=params) or {}
            yield from body.get("value") or []
            if not all_pages:
                return
            url = body.get(next_key)
            # next links already carry the query string
            params = None

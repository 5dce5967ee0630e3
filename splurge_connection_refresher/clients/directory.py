"""Directory service client (Microsoft Graph applications)."""

import logging
from collections.abc import Iterable

from splurge_connection_refresher.clients.http import ApiClient, ServiceContext
from splurge_connection_refresher.constants import Constants
from splurge_connection_refresher.exceptions import ServiceUnavailableError
from splurge_connection_refresher.models import Identity, Principal, RotatedCredential

logger = logging.getLogger(__name__)

_IDENTITY_FIELDS = "id,appId,displayName,passwordCredentials"
_OWNER_FIELDS = "id,displayName,userPrincipalName"


class DirectoryClient(ApiClient):
    """Reads applications and resets their password credentials."""

    def __init__(self, context: ServiceContext):
        super().__init__(context)
        self._base_url = Constants.GRAPH_BASE_URL()
        self._tenant_id: str | None = None

    def _auth(self) -> dict:
        return {"headers": self._context.bearer_headers(Constants.GRAPH_SCOPE())}

    def tenant_id(self) -> str:
        """Return the id of the signed-in tenant, cached after the first call."""
        if self._tenant_id is None:
            body = self._request("GET", f"{self._base_url}/organization", params={"$select": "id"})
            organizations = (body or {}).get("value") or []
            if not organizations:
                raise ServiceUnavailableError("Directory returned no organization")
            self._tenant_id = organizations[0]["id"]
        return self._tenant_id

    def list_identities(self, include_all: bool = True) -> list[Identity]:
        """List applications with their password credentials.

        Args:
            include_all: Follow every page instead of only the first one

        Raises:
            ServiceUnavailableError: If any listing call fails
        """
        tenant_id = self.tenant_id()
        items = self._paged(
            f"{self._base_url}/applications",
            params={"$select": _IDENTITY_FIELDS},
            all_pages=include_all,
        )
        try:
            return [Identity.from_dict(item, tenant_id=tenant_id) for item in items]
        except (KeyError, TypeError, ValueError) as e:
            raise ServiceUnavailableError(f"Malformed application record: {e}") from e

    def reset_credential(
        self,
        identity_id: str,
        previous_key_ids: Iterable[str] = ()
    ) -> RotatedCredential:
        """Issue a new password and invalidate the previous ones.

        Once a password is issued it is always returned. Failing to remove a
        previous password is logged and does not fail the reset.

        Args:
            identity_id: Object id of the application
            previous_key_ids: Key ids of the passwords to remove after issuing

        Returns:
            The newly issued credential

        Raises:
            ServiceUnavailableError: If the tenant lookup or issuing fails
        """
        tenant_id = self.tenant_id()
        url = f"{self._base_url}/applications/{identity_id}"
        body = self._request(
            "POST",
            f"{url}/addPassword",
            json={"passwordCredential": {"displayName": Constants.CREDENTIAL_DISPLAY_NAME()}},
        ) or {}
        if not body.get("secretText"):
            raise ServiceUnavailableError(f"Directory issued no secret for {identity_id}")

        new_key_id = body.get("keyId")
        for key_id in previous_key_ids:
            if key_id != new_key_id:
                self._remove_password(identity_id, key_id)

        logger.info("Password credential reset", extra={
            "identity": identity_id,
            "key_id": new_key_id,
            "event": "credential_reset"
        })

        return RotatedCredential(
            value=body["secretText"],
            tenant_id=tenant_id,
            key_id=new_key_id,
            end_time=body.get("endDateTime"),
        )

    def _remove_password(self, identity_id: str, key_id: str) -> None:
        try:
            self._request(
                "POST",
                f"{self._base_url}/applications/{identity_id}/removePassword",
                json={"keyId": key_id},
            )
        except ServiceUnavailableError as e:
            logger.warning("Failed to remove password %s of %s: %s", key_id, identity_id, e, extra={
                "identity": identity_id,
                "key_id": key_id,
                "event": "credential_cleanup_failed"
            })

    def list_owners(self, identity_id: str) -> list[Principal]:
        """List the owning principals of an application."""
        items = self._paged(
            f"{self._base_url}/applications/{identity_id}/owners",
            params={"$select": _OWNER_FIELDS},
        )
        return [Principal.from_dict(item) for item in items]

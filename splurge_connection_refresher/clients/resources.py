"""Resource directory client (Azure Resource Manager subscriptions)."""

from splurge_connection_refresher.clients.http import ApiClient
from splurge_connection_refresher.constants import Constants
from splurge_connection_refresher.models import Resource


class ResourceClient(ApiClient):
    """Looks up subscriptions visible to the signed-in principal."""

    def _auth(self) -> dict:
        return {"headers": self._context.bearer_headers(Constants.ARM_SCOPE())}

    def list_resources_by_name(self, name: str) -> list[Resource]:
        """List subscriptions whose display name equals ``name`` (case-insensitive)."""
        items = self._paged(
            f"{Constants.ARM_BASE_URL()}/subscriptions",
            params={"api-version": Constants.ARM_API_VERSION()},
            next_key="nextLink",
        )
        wanted = name.casefold()
        return [
            Resource.from_dict(item)
            for item in items
            if (item.get("displayName") or "").casefold() == wanted
        ]

"""Credential rotation for a single identity."""

import logging

from splurge_connection_refresher.clients.directory import DirectoryClient
from splurge_connection_refresher.constants import Constants
from splurge_connection_refresher.exceptions import ExternalServiceError, RotationError
from splurge_connection_refresher.models import Identity, RotatedCredential

logger = logging.getLogger(__name__)


class CredentialRotator:
    """Issues a new credential for an identity, invalidating the previous one."""

    def __init__(self, directory: DirectoryClient):
        self._directory = directory

    def rotate(self, identity: Identity, apply: bool) -> RotatedCredential:
        """Rotate the identity's secret.

        In preview mode a placeholder secret and the zero tenant id are returned
        and the directory is not contacted.

        Args:
            identity: Identity to rotate
            apply: Issue the credential for real

        Returns:
            The new credential

        Raises:
            RotationError: If the directory reset call fails
        """
        if not apply:
            logger.info("Preview: would rotate credential for '%s'", identity.display_name)
            return RotatedCredential(
                value=Constants.PREVIEW_SECRET(),
                tenant_id=Constants.ZERO_TENANT_ID(),
            )

        try:
            credential = self._directory.reset_credential(
                identity.id,
                [c.key_id for c in identity.credentials],
            )
        except ExternalServiceError as e:
            raise RotationError(
                f"Failed to rotate credential for '{identity.display_name}': {e}"
            ) from e

        logger.info("Credential rotated", extra={
            "identity": identity.display_name,
            "app_id": identity.app_id,
            "key_id": credential.key_id,
            "event": "credential_rotated"
        })
        return credential

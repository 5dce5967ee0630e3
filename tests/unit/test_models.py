"""Unit tests for data models."""

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from splurge_connection_refresher.models import (
    Connection,
    ConnectionOutcome,
    ConnectionStatus,
    Credential,
    Identity,
    IdentityOutcome,
    IdentityState,
    Principal,
    ReconcileAction,
    ReconcileResult,
    Resource,
    RotatedCredential,
    RunSummary,
)
from tests.test_utility import NOW, TENANT_ID, TestDataHelper


class TestCredential:
    """Test Credential parsing and expiry."""

    def test_from_dict_parses_directory_timestamps(self):
        """Test that Z-suffixed and fractional timestamps are parsed as UTC."""
        credential = Credential.from_dict({
            "keyId": "key-1",
            "displayName": "ci",
            "startDateTime": "2025-01-15T12:00:00Z",
            "endDateTime": "2026-01-20T08:30:00.1234567Z",
        })

        assert credential.key_id == "key-1"
        assert credential.start_time == datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
        assert credential.end_time.tzinfo is not None
        assert credential.end_time.date().isoformat() == "2026-01-20"

    def test_naive_datetimes_become_utc(self):
        """Test that naive datetimes are treated as UTC."""
        credential = Credential(
            key_id="key-1",
            start_time=datetime(2025, 1, 1),
            end_time=datetime(2026, 1, 1),
        )

        assert credential.end_time.tzinfo == timezone.utc

    def test_secret_value_hidden(self):
        """Test that the secret value never appears in repr or to_dict."""
        credential = Credential(
            key_id="key-1",
            start_time=NOW,
            end_time=NOW + timedelta(days=1),
            value="super-secret",
        )

        assert "super-secret" not in repr(credential)
        assert "super-secret" not in str(credential.to_dict())

    def test_missing_key_id(self):
        """Test that an empty key id is rejected."""
        with pytest.raises(ValueError, match="key_id"):
            Credential(key_id="", start_time=NOW, end_time=NOW)

    def test_is_expiring(self):
        """Test expiry relative to a threshold."""
        credential = TestDataHelper.credential("key-1", end_days=5)

        assert credential.is_expiring(NOW + timedelta(days=30))
        assert not credential.is_expiring(NOW + timedelta(days=1))


class TestIdentity:
    """Test Identity ordering and the expiring rule."""

    threshold = NOW + timedelta(days=30)

    def test_single_expiring_credential_is_reported(self):
        """Test an identity whose only credential ends before the threshold."""
        identity = TestDataHelper.identity("svc-app", end_days=(10,))

        assert identity.is_expiring(self.threshold)

    def test_fresh_credential_suppresses_report(self):
        """Test that a credential valid beyond the threshold means already rotated."""
        identity = TestDataHelper.identity("svc-app", end_days=(10, 400))

        assert not identity.is_expiring(self.threshold)

    def test_all_fresh_credentials(self):
        """Test an identity whose credentials all end after the threshold."""
        identity = TestDataHelper.identity("svc-app", end_days=(90, 400))

        assert not identity.is_expiring(self.threshold)

    def test_no_credentials_never_reported(self):
        """Test that identities without credentials are never expiring."""
        identity = TestDataHelper.identity("svc-app", end_days=())

        assert not identity.is_expiring(self.threshold)
        assert identity.soonest_expiry is None

    def test_credentials_ordered_by_start_time(self):
        """Test that credentials are sorted by start time on construction."""
        late = Credential(key_id="late", start_time=NOW, end_time=NOW + timedelta(days=1))
        early = Credential(key_id="early", start_time=NOW - timedelta(days=9), end_time=NOW)

        identity = Identity(id="obj", app_id="app", display_name="svc", credentials=(late, early))

        assert [c.key_id for c in identity.credentials] == ["early", "late"]

    def test_identity_is_immutable(self):
        """Test that credentials cannot be replaced in place."""
        identity = TestDataHelper.identity("svc-app")

        with pytest.raises(dataclasses.FrozenInstanceError):
            identity.credentials = ()

    def test_replace_produces_new_view(self):
        """Test that attaching owners leaves the original untouched."""
        identity = TestDataHelper.identity("svc-app")
        owner = Principal(id="user-1", display_name="Ada")

        enriched = dataclasses.replace(identity, owners=(owner,))

        assert identity.owners is None
        assert enriched.owners == (owner,)
        assert enriched.credentials == identity.credentials

    def test_from_dict(self):
        """Test parsing a directory application payload."""
        source = TestDataHelper.identity("svc-app", end_days=(10, 20))

        identity = Identity.from_dict(
            TestDataHelper.application_payload(source), tenant_id=TENANT_ID
        )

        assert identity == source

    def test_from_dict_without_password_credentials(self):
        """Test that a missing or null credential list parses as empty."""
        identity = Identity.from_dict(
            {"id": "obj", "appId": "app", "displayName": "svc", "passwordCredentials": None}
        )

        assert identity.credentials == ()

    def test_to_dict_includes_owners_only_when_enriched(self):
        """Test owner serialization."""
        identity = TestDataHelper.identity("svc-app")

        assert "owners" not in identity.to_dict()
        enriched = dataclasses.replace(identity, owners=(Principal(id="user-1"),))
        assert enriched.to_dict()["owners"] == [
            {"id": "user-1", "display_name": None, "user_principal_name": None}
        ]


class TestConnection:
    """Test Connection parsing and secret replacement."""

    def test_from_dict(self):
        """Test extraction of the bound principal and subscription."""
        payload = TestDataHelper.connection_payload(
            "svc-app-sub-prod", "app-1", "sub-prod", "sub-id-1", connection_id="conn-1"
        )

        connection = Connection.from_dict(payload)

        assert connection.id == "conn-1"
        assert connection.name == "svc-app-sub-prod"
        assert connection.bound_identity_app_id == "app-1"
        assert connection.bound_resource_name == "sub-prod"
        assert connection.bound_resource_id == "sub-id-1"
        assert connection.tenant_id == TENANT_ID

    def test_from_dict_tolerates_missing_sections(self):
        """Test parsing a connection without authorization or data sections."""
        connection = Connection.from_dict({"id": "conn-1", "name": "github"})

        assert connection.bound_identity_app_id == ""
        assert connection.bound_resource_name == ""

    def test_with_secret_replaces_only_the_secret(self):
        """Test that every other field of the payload is preserved."""
        payload = TestDataHelper.connection_payload("conn", "app-1", "sub-prod", "sub-id-1")
        connection = Connection.from_dict(payload)

        updated = connection.with_secret("new-secret")

        assert updated["authorization"]["parameters"]["serviceprincipalkey"] == "new-secret"
        updated["authorization"]["parameters"]["serviceprincipalkey"] = None
        assert updated == payload

    def test_with_secret_does_not_mutate_payload(self):
        """Test that the stored payload is deep copied."""
        payload = TestDataHelper.connection_payload("conn", "app-1", "sub-prod")
        connection = Connection.from_dict(payload)

        connection.with_secret("new-secret")

        assert connection.payload["authorization"]["parameters"]["serviceprincipalkey"] is None


class TestResultModels:
    """Test rotation, reconcile and summary models."""

    def test_resource_from_dict(self):
        """Test parsing a subscription payload."""
        resource = Resource.from_dict({"subscriptionId": "sub-id", "displayName": "sub-prod"})

        assert resource == Resource(id="sub-id", name="sub-prod")

    def test_rotated_credential_hides_value(self):
        """Test that the rotated secret is not shown in repr."""
        credential = RotatedCredential(value="s3cret", tenant_id=TENANT_ID, end_time="2027-01-01T00:00:00Z")

        assert "s3cret" not in repr(credential)
        assert credential.end_time.year == 2027

    def test_reconcile_result_to_dict(self):
        """Test ReconcileResult serialization."""
        result = ReconcileResult(ReconcileAction.CREATED, "svc-app-sub-prod", applied=False)

        assert result.to_dict() == {
            "action": "created",
            "connection_name": "svc-app-sub-prod",
            "applied": False,
        }

    def test_run_summary_counts(self):
        """Test aggregate counts across identities and connections."""
        partial = IdentityOutcome(
            display_name="svc-a",
            app_id="app-a",
            state=IdentityState.PARTIALLY_FAILED,
            rotated=True,
            connections=[
                ConnectionOutcome("sub-1", ConnectionStatus.RECONCILED, "svc-a-sub-1", ReconcileAction.UPDATED),
                ConnectionOutcome("sub-2", ConnectionStatus.FAILED, "svc-a-sub-2"),
                ConnectionOutcome("sub-3", ConnectionStatus.SKIPPED, "svc-a-sub-3"),
            ],
        )
        failed = IdentityOutcome(display_name="svc-b", app_id="app-b", state=IdentityState.FAILED)
        summary = RunSummary(apply=True, threshold=NOW, identities=[partial, failed])

        assert summary.rotated_count == 1
        assert summary.reconciled_count == 1
        assert summary.failed_count == 1
        assert summary.skipped_count == 1
        assert summary.failed_identity_count == 1

        report = summary.to_dict()
        assert report["rotated_identities"] == 1
        assert report["failed_connections"] == 1
        assert report["identities"][0]["state"] == "partially_failed"
        assert report["identities"][0]["connections"][0]["action"] == "updated"
        assert report["threshold"] == NOW.isoformat()

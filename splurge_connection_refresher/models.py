"""Data models for the Splurge Connection Refresher."""

import copy
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

# Directory timestamps may carry more than six fractional digits
_EXTRA_FRACTION = re.compile(r"(\.\d{6})\d+")


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse datetime string to an aware UTC datetime object."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(_EXTRA_FRACTION.sub(r"\1", value.replace("Z", "+00:00")))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Credential:
    """A time-bounded shared secret belonging to an identity.

    The secret value is write-only: it is never part of repr or to_dict.
    """

    key_id: str
    start_time: datetime
    end_time: datetime
    display_name: str | None = None
    value: str | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Validate and process fields after initialization."""
        if not self.key_id:
            raise ValueError("key_id cannot be empty")
        object.__setattr__(self, "start_time", _parse_datetime(self.start_time))
        object.__setattr__(self, "end_time", _parse_datetime(self.end_time))
        if self.start_time is None or self.end_time is None:
            raise ValueError("start_time and end_time are required")

    def is_expiring(self, threshold: datetime) -> bool:
        """Check if the credential ends before the threshold."""
        return self.end_time < threshold

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary without the secret value."""
        return {
            "key_id": self.key_id,
            "display_name": self.display_name,
            "start_time": _format_datetime(self.start_time),
            "end_time": _format_datetime(self.end_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Credential":
        """Create Credential from a directory password credential payload."""
        return cls(
            key_id=data["keyId"],
            display_name=data.get("displayName"),
            start_time=data["startDateTime"],
            end_time=data["endDateTime"],
        )


@dataclass(frozen=True)
class Principal:
    """An owning principal of an identity."""

    id: str
    display_name: str | None = None
    user_principal_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "display_name": self.display_name,
            "user_principal_name": self.user_principal_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Principal":
        """Create Principal from a directory object payload."""
        return cls(
            id=data["id"],
            display_name=data.get("displayName"),
            user_principal_name=data.get("userPrincipalName"),
        )


@dataclass(frozen=True)
class Identity:
    """A registered application holding rotatable credentials.

    Instances are immutable; enrichment and rotation produce new views via
    ``dataclasses.replace`` instead of mutating the credential sequence.
    """

    id: str
    app_id: str
    display_name: str
    tenant_id: str = ""
    credentials: tuple[Credential, ...] = ()
    owners: tuple[Principal, ...] | None = None

    def __post_init__(self) -> None:
        """Validate and order credentials by start time."""
        if not self.id:
            raise ValueError("id cannot be empty")
        if not self.app_id:
            raise ValueError("app_id cannot be empty")
        ordered = tuple(sorted(self.credentials, key=lambda c: c.start_time))
        object.__setattr__(self, "credentials", ordered)

    def is_expiring(self, threshold: datetime) -> bool:
        """Check whether the identity needs a new credential.

        True when at least one credential ends before the threshold and none
        is still valid beyond it. Identities without credentials never qualify.
        """
        if not self.credentials:
            return False
        has_expiring = any(c.end_time < threshold for c in self.credentials)
        has_fresh = any(c.end_time > threshold for c in self.credentials)
        return has_expiring and not has_fresh

    @property
    def soonest_expiry(self) -> datetime | None:
        """End time of the credential that expires first."""
        if not self.credentials:
            return None
        return min(c.end_time for c in self.credentials)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for reporting."""
        result = {
            "id": self.id,
            "app_id": self.app_id,
            "display_name": self.display_name,
            "tenant_id": self.tenant_id,
            "soonest_expiry": _format_datetime(self.soonest_expiry),
            "credentials": [c.to_dict() for c in self.credentials],
        }
        if self.owners is not None:
            result["owners"] = [o.to_dict() for o in self.owners]
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any], tenant_id: str = "") -> "Identity":
        """Create Identity from a directory application payload."""
        return cls(
            id=data["id"],
            app_id=data["appId"],
            display_name=data.get("displayName") or "",
            tenant_id=tenant_id,
            credentials=tuple(
                Credential.from_dict(item) for item in data.get("passwordCredentials") or []
            ),
        )


@dataclass(frozen=True)
class Resource:
    """An external resource (subscription) a connection is bound to."""

    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Resource":
        """Create Resource from a subscription payload."""
        return cls(id=data["subscriptionId"], name=data.get("displayName") or "")


@dataclass(frozen=True)
class Connection:
    """A service connection binding an identity's secret to a resource.

    ``payload`` keeps the full record as returned by the connection service
    so that updates can be submitted without losing unknown fields.
    """

    id: str
    name: str
    bound_identity_app_id: str
    bound_resource_name: str
    bound_resource_id: str = ""
    tenant_id: str = ""
    payload: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def with_secret(self, secret: str) -> dict[str, Any]:
        """Return a copy of the full payload with only the secret replaced."""
        updated = copy.deepcopy(self.payload)
        authorization = updated.setdefault("authorization", {})
        parameters = authorization.setdefault("parameters", {})
        parameters["serviceprincipalkey"] = secret
        return updated

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for reporting."""
        return {
            "id": self.id,
            "name": self.name,
            "bound_identity_app_id": self.bound_identity_app_id,
            "bound_resource_name": self.bound_resource_name,
            "bound_resource_id": self.bound_resource_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Connection":
        """Create Connection from a service endpoint payload."""
        parameters = (data.get("authorization") or {}).get("parameters") or {}
        endpoint_data = data.get("data") or {}
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            bound_identity_app_id=parameters.get("serviceprincipalid") or "",
            bound_resource_name=endpoint_data.get("subscriptionName") or "",
            bound_resource_id=endpoint_data.get("subscriptionId") or "",
            tenant_id=parameters.get("tenantid") or "",
            payload=data,
        )


@dataclass(frozen=True)
class RotatedCredential:
    """A freshly issued credential value for an identity."""

    value: str = field(repr=False)
    tenant_id: str
    key_id: str | None = None
    end_time: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "end_time", _parse_datetime(self.end_time))


class ReconcileAction(str, Enum):
    """Action taken (or previewed) for a connection."""

    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a single connection upsert."""

    action: ReconcileAction
    connection_name: str
    applied: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "action": self.action.value,
            "connection_name": self.connection_name,
            "applied": self.applied,
        }


class IdentityState(str, Enum):
    """Per-identity processing state."""

    DISCOVERED = "discovered"
    RESOLVED = "resolved"
    ROTATED = "rotated"
    RECONCILING = "reconciling"
    DONE = "done"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"


class ConnectionStatus(str, Enum):
    """Per-connection processing status."""

    RECONCILED = "reconciled"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ConnectionOutcome:
    """Result of processing one dependent connection."""

    resource_name: str
    status: ConnectionStatus
    connection_name: str | None = None
    action: ReconcileAction | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "resource_name": self.resource_name,
            "status": self.status.value,
            "connection_name": self.connection_name,
            "action": self.action.value if self.action else None,
            "message": self.message,
        }


@dataclass
class IdentityOutcome:
    """Result of processing one expiring identity."""

    display_name: str
    app_id: str
    state: IdentityState = IdentityState.DISCOVERED
    rotated: bool = False
    connections: list[ConnectionOutcome] = field(default_factory=list)
    message: str | None = None

    def count(self, status: ConnectionStatus) -> int:
        """Count connection outcomes with the given status."""
        return sum(1 for outcome in self.connections if outcome.status == status)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "display_name": self.display_name,
            "app_id": self.app_id,
            "state": self.state.value,
            "rotated": self.rotated,
            "message": self.message,
            "connections": [c.to_dict() for c in self.connections],
        }


@dataclass
class RunSummary:
    """Summary of a full refresh run."""

    apply: bool
    threshold: datetime | None = None
    identities: list[IdentityOutcome] = field(default_factory=list)

    @property
    def rotated_count(self) -> int:
        return sum(1 for outcome in self.identities if outcome.rotated)

    @property
    def reconciled_count(self) -> int:
        return sum(o.count(ConnectionStatus.RECONCILED) for o in self.identities)

    @property
    def failed_count(self) -> int:
        return sum(o.count(ConnectionStatus.FAILED) for o in self.identities)

    @property
    def skipped_count(self) -> int:
        return sum(o.count(ConnectionStatus.SKIPPED) for o in self.identities)

    @property
    def failed_identity_count(self) -> int:
        return sum(1 for o in self.identities if o.state == IdentityState.FAILED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with proper serialization."""
        return {
            "apply": self.apply,
            "threshold": _format_datetime(self.threshold),
            "rotated_identities": self.rotated_count,
            "failed_identities": self.failed_identity_count,
            "reconciled_connections": self.reconciled_count,
            "failed_connections": self.failed_count,
            "skipped_connections": self.skipped_count,
            "identities": [o.to_dict() for o in self.identities],
        }

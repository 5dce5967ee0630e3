"""Splurge Connection Refresher - rotate expiring application secrets.

This package discovers application registrations whose secrets are about to
expire, rotates each secret once and updates or creates the service
connections that depend on it.
"""

from splurge_connection_refresher.config import RefresherConfig
from splurge_connection_refresher.exceptions import (
    ConnectionRefresherError,
    EnrichmentError,
    ExternalServiceError,
    NotFoundError,
    ReconcileError,
    RotationError,
    ServiceUnavailableError,
    ValidationError,
)
from splurge_connection_refresher.services.orchestrator import RefreshOrchestrator

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("splurge-connection-refresher")
except PackageNotFoundError:
    # Running from a source checkout without installed metadata
    __version__ = "unknown"

__all__ = [
    "ConnectionRefresherError",
    "EnrichmentError",
    "ExternalServiceError",
    "NotFoundError",
    "ReconcileError",
    "RefreshOrchestrator",
    "RefresherConfig",
    "RotationError",
    "ServiceUnavailableError",
    "ValidationError",
]

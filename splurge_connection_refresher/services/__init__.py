"""Services package for Splurge Connection Refresher."""

from splurge_connection_refresher.services.orchestrator import RefreshOrchestrator
from splurge_connection_refresher.services.owner_enricher import OwnerEnricher
from splurge_connection_refresher.services.reconciler import ConnectionReconciler
from splurge_connection_refresher.services.resolvers import (
    ConnectionResolver,
    SubscriptionResolver,
)
from splurge_connection_refresher.services.rotator import CredentialRotator
from splurge_connection_refresher.services.scanner import CredentialScanner

__all__ = [
    "ConnectionReconciler",
    "ConnectionResolver",
    "CredentialRotator",
    "CredentialScanner",
    "OwnerEnricher",
    "RefreshOrchestrator",
    "SubscriptionResolver",
]

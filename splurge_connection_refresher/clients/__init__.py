"""Collaborator service clients for Splurge Connection Refresher."""

from splurge_connection_refresher.clients.connections import ConnectionClient
from splurge_connection_refresher.clients.directory import DirectoryClient
from splurge_connection_refresher.clients.http import (
    ApiClient,
    ServiceContext,
    azure_token_provider,
)
from splurge_connection_refresher.clients.resources import ResourceClient

__all__ = [
    "ApiClient",
    "ConnectionClient",
    "DirectoryClient",
    "ResourceClient",
    "ServiceContext",
    "azure_token_provider",
]

"""Custom exceptions for the Splurge Connection Refresher."""


class ConnectionRefresherError(Exception):
    """Base exception for all Connection Refresher errors."""


class ValidationError(ConnectionRefresherError):
    """Raised when input validation fails."""


class NotFoundError(ConnectionRefresherError):
    """Raised when an identity or resource cannot be found."""


class ExternalServiceError(ConnectionRefresherError):
    """Raised when a collaborator service call fails."""


class ServiceUnavailableError(ExternalServiceError):
    """Raised when a remote service cannot be reached or answers with an error."""


class EnrichmentError(ExternalServiceError):
    """Raised when owner lookup for a single identity fails."""


class RotationError(ExternalServiceError):
    """Raised when issuing a new credential for an identity fails."""


class ReconcileError(ExternalServiceError):
    """Raised when creating or updating a single connection fails."""

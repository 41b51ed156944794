"""Domain errors raised by the services and translated by the routers."""

from typing import Dict, Optional


class CivicError(Exception):
    """Base class for every error the core raises on purpose."""


class ValidationFailure(CivicError):
    """Input rejected before any write; ``details`` maps field or check to message."""

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFound(CivicError):
    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} {identifier} not found")
        self.kind = kind
        self.identifier = identifier


class TransactionConflict(CivicError):
    """Contention outlasted the store's retry policy; the caller may retry."""


class UpstreamUnavailable(CivicError):
    """An external collaborator (image storage, geocoder) failed."""


class PermissionDenied(CivicError):
    pass

"""
Domain error taxonomy shared by the repository, service and API layers.

Repositories raise these wrapping lower-level SQLAlchemy failures, services
re-raise them with extra context, and the API layer is the only place that
turns them into HTTP status codes.
"""
from __future__ import annotations


class NcmError(Exception):
    """Base class for NCM domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(NcmError):
    """Caller input is missing or malformed; never reaches the datastore."""


class NotFoundError(NcmError):
    """No record matches the requested key."""


class PersistenceError(NcmError):
    """Datastore connectivity or constraint failure."""

"""Domain error taxonomy shared by the catalog, ledger and booking service.

Each error carries a human-readable message that is safe to show to API
clients and the HTTP status the API layer maps it to. Storage failures keep
their original exception as ``__cause__``.
"""

from typing import Optional


class DomainError(Exception):
    status_code: int = 400

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class ValidationError(DomainError):
    """Malformed or out-of-policy input."""

    status_code = 400


class AuthenticationError(DomainError):
    status_code = 401


class AuthorizationError(DomainError):
    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """The requested slot overlaps an active booking."""

    status_code = 409


class PersistenceError(DomainError):
    """Storage failure unrelated to business rules."""

    status_code = 500

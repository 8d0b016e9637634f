"""
utils/errors.py

Domain error taxonomy for the final report core.
- Raised by services, rendered by middlewares/error_handler.py.
- `code` is the machine readable identifier, `details` carries field level information.
"""

from typing import Any, Optional


class DomainError(Exception):
    code = "DOMAIN_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(DomainError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(DomainError):
    code = "CONFLICT"
    status_code = 409


class InvalidTransitionError(ConflictError):
    code = "INVALID_TRANSITION"


class ReportLockedError(ConflictError):
    code = "REPORT_LOCKED"


class CertificateConflictError(ConflictError):
    """Sequence scope stayed contended after every retry; the caller may try again."""
    code = "CERTIFICATE_CONFLICT"


class InvalidInputError(DomainError):
    code = "INVALID_INPUT"
    status_code = 422


class ForbiddenError(DomainError):
    code = "FORBIDDEN"
    status_code = 403

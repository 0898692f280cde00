from __future__ import annotations

import uuid


class DomainError(Exception):
    """Base class for errors surfaced to API callers.

    Each subclass carries the HTTP status and the machine-readable code used in
    the error envelope rendered by ``elearning.main``.
    """

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    status_code = 400
    error_code = "validation_error"


class PaymentNotSupportedError(DomainError):
    status_code = 400
    error_code = "payment_not_supported"


class AlreadyExistsError(DomainError):
    status_code = 400
    error_code = "already_exists"


class AlreadyEnrolledError(AlreadyExistsError):
    error_code = "already_enrolled"


class AuthenticationError(DomainError):
    status_code = 401
    error_code = "unauthorized"


class AuthorizationError(DomainError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(DomainError):
    status_code = 404
    error_code = "not_found"


class DataIntegrityError(DomainError):
    status_code = 500
    error_code = "data_integrity_error"


def parse_uuid(value: str, *, field: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise ValidationError(f"invalid {field}") from e

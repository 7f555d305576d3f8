"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class ValidationError(DomainError):
    """Malformed input rejected at the HTTP boundary."""

    def __init__(self, message: str = "Invalid request", details: dict[str, Any] | None = None) -> None:
        super().__init__(code="VALIDATION_ERROR", http_status=400, message=message, details=details)


class InvalidTokenError(DomainError):
    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(code="INVALID_TOKEN", http_status=401, message=message)


class TokenAlreadyUsedError(DomainError):
    def __init__(self, message: str = "Token already used") -> None:
        super().__init__(code="TOKEN_ALREADY_USED", http_status=401, message=message)


class AddressConflictError(DomainError):
    def __init__(self, message: str = "Address already linked to another Discord account") -> None:
        super().__init__(code="ADDRESS_CONFLICT", http_status=400, message=message)


class AlreadyExistsError(DomainError):
    def __init__(self, message: str = "User already exists") -> None:
        super().__init__(code="USER_ALREADY_EXISTS", http_status=409, message=message)


class NotFoundError(DomainError):
    def __init__(self, message: str = "User not found") -> None:
        super().__init__(code="USER_NOT_FOUND", http_status=404, message=message)


class StoreFailureError(DomainError):
    """Any unexpected record store failure. Never carries store internals."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(code="STORE_FAILURE", http_status=500, message=message)


class TokenFinalizeFailure(DomainError):
    """Link applied but the token could not be marked used.

    Reported on the redemption result instead of being raised, because the
    link has already taken effect when this happens.
    """

    def __init__(self, message: str = "Failed to mark token as used") -> None:
        super().__init__(code="TOKEN_FINALIZE_FAILED", http_status=500, message=message)

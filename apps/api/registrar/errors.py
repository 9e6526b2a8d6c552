"""Application exception types."""

from registrar.schemas.access import Decision
from registrar.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)


class CredentialError(ApiError):
    """The identity provider rejected the submitted credentials."""

    def __init__(self, message: str) -> None:
        super().__init__(status_code=400, code="CREDENTIAL_REJECTED", message=message)


class IdentityUnavailableError(ApiError):
    def __init__(self, message: str = "Identity provider unavailable") -> None:
        super().__init__(status_code=502, code="IDENTITY_PROVIDER_UNAVAILABLE", message=message)


class StoreError(ApiError):
    """A persistence write failed; ``details`` names the affected table."""

    code = "STORE_WRITE_FAILED"

    def __init__(self, message: str, *, table: str | None = None) -> None:
        details = {"table": table} if table else None
        super().__init__(status_code=502, code=self.code, message=message, details=details)


class ProfileWriteError(StoreError):
    code = "PROFILE_WRITE_FAILED"


class NotFoundError(ApiError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(status_code=404, code="RESOURCE_NOT_FOUND", message=message)


class UnauthorizedError(ApiError):
    """Caller lacks the role or status required for the operation."""

    def __init__(self, message: str = "Caller is not permitted to perform this action") -> None:
        super().__init__(status_code=403, code="FORBIDDEN", message=message)


_DENIAL_CONTRACT: dict[Decision, tuple[int, str, str]] = {
    Decision.REDIRECT_TO_LOGIN: (401, "UNAUTHENTICATED", "Authentication required"),
    Decision.REDIRECT_TO_PENDING: (403, "APPROVAL_PENDING", "Account is awaiting administrator approval"),
    Decision.REDIRECT_TO_UNAUTHORIZED: (403, "FORBIDDEN", "Account is not permitted to access this area"),
}


class AccessDeniedError(ApiError):
    """Route guard rejection carrying the redirect the console should follow."""

    def __init__(self, decision: Decision, redirect_to: str) -> None:
        status_code, code, message = _DENIAL_CONTRACT[decision]
        self.decision = decision
        super().__init__(
            status_code=status_code,
            code=code,
            message=message,
            details={"decision": decision.value, "redirect_to": redirect_to},
        )


__all__ = [
    "AccessDeniedError",
    "ApiError",
    "CredentialError",
    "IdentityUnavailableError",
    "NotFoundError",
    "ProfileWriteError",
    "StoreError",
    "UnauthorizedError",
]

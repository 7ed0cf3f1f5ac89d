from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    PERMISSION_DENIED = ErrorDefinition(
        "PERMISSION_DENIED",
        "Permission denied",
        status.HTTP_403_FORBIDDEN,
    )
    TENANT_CONTEXT_REQUIRED = ErrorDefinition(
        "TENANT_CONTEXT_REQUIRED",
        "Tenant context is required",
        status.HTTP_403_FORBIDDEN,
    )
    SCOPE_CONTEXT_INCOMPLETE = ErrorDefinition(
        "SCOPE_CONTEXT_INCOMPLETE",
        "Tenant context is missing fields required by the requested scope",
        status.HTTP_403_FORBIDDEN,
    )
    BRANCH_SCOPE_MISMATCH = ErrorDefinition(
        "BRANCH_SCOPE_MISMATCH",
        "Branch scope mismatch",
        status.HTTP_403_FORBIDDEN,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)

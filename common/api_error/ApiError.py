# common/api_error/ApiError.py
from typing import Any, Optional


class AppError(Exception):
    """Base error for all application-specific issues."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "INTERNAL_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        super().__init__(self.message)


class DatabaseError(AppError):
    """Specific for DB issues."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, status_code=500, code="DATABASE_ERROR", **kwargs)


class NotFoundError(AppError):
    """Requested resource does not exist."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        message = (
            f"{resource} not found"
            if resource_id is None
            else f"{resource} '{resource_id}' not found"
        )
        super().__init__(message, status_code=404, code="NOT_FOUND")
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(AppError):
    """Unique business key already taken."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, status_code=409, code="CONFLICT", **kwargs)


class ResourceInUseError(AppError):
    """
    Delete refused because other rows still reference the resource.

    `references` maps the referencing kind to how many rows block the delete.
    """

    def __init__(self, resource: str, resource_id: str, references: dict[str, int]):
        blocking = ", ".join(f"{kind}={count}" for kind, count in references.items())
        super().__init__(
            f"{resource} '{resource_id}' is still in use ({blocking})",
            status_code=409,
            code="RESOURCE_IN_USE",
            details={"references": references},
        )
        self.references = references


class ValidationFailedError(AppError):
    """Input passed schema validation but breaks a domain rule."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, status_code=400, code="VALIDATION_FAILED", **kwargs)


class ProtectedResourceError(AppError):
    """Mutation of a system-protected resource (e.g. a system role)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=403, code="PROTECTED_RESOURCE")


class AuthenticationError(AppError):
    """Missing or invalid credentials."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, status_code=401, code="UNAUTHENTICATED")


class PermissionDeniedError(AppError):
    """Authenticated principal lacks the required capability."""

    def __init__(self, module: str, action: str):
        super().__init__(
            f"Missing permission {module}:{action}",
            status_code=403,
            code="FORBIDDEN",
            details={"module": module, "action": action},
        )


__all__ = [
    "AppError",
    "DatabaseError",
    "NotFoundError",
    "ConflictError",
    "ResourceInUseError",
    "ValidationFailedError",
    "ProtectedResourceError",
    "AuthenticationError",
    "PermissionDeniedError",
]

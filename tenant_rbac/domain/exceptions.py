"""Domain exceptions for the RBAC core.

Defines domain-level exceptions that represent business rule violations and
wrapped storage failures. Each carries a stable machine-readable error_code and
an HTTP-style status_code hint; hosts map them to responses (see
tenant_rbac.core.exception_handlers for FastAPI).
"""

from typing import Any, ClassVar


class RbacException(Exception):
    """Base exception for all RBAC core errors.

    All custom exceptions inherit from this class so hosts can catch one type.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. resource_type, identifier).
        status_code: HTTP-style status hint for host integration.
    """

    status_code: ClassVar[int] = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses and logs."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(RbacException):
    """Raised when input is malformed (empty required string, empty required list)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or argument that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class MissingConfiguredKeyError(ValidationException):
    """Raised by the keyed facade when neither the configured alias nor its canonical name is supplied."""

    def __init__(self, alias: str, canonical: str) -> None:
        super().__init__(
            f"Missing configured key '{alias}' or its canonical fallback '{canonical}'",
            field=alias,
        )
        self.details["canonical"] = canonical


class ResourceNotFoundException(RbacException):
    """Raised when a referenced tenant, role, permission or assignment does not exist."""

    status_code: ClassVar[int] = 404
    resource_type: ClassVar[str] = "resource"

    def __init__(self, identifier: Any = None, resource_type: str | None = None) -> None:
        """Initialize with the missing identifier.

        Args:
            identifier: The id, slug or name that was not found.
            resource_type: Overrides the class-level resource type.
        """
        kind = resource_type or self.resource_type
        message = f"{kind.capitalize()} does not exist"
        if identifier is not None:
            message = f"{message}: {identifier}"
        super().__init__(
            message,
            "NOT_EXIST",
            {"resource_type": kind, "identifier": identifier},
        )


class TenantNotFoundException(ResourceNotFoundException):
    """Raised when a requested tenant is not found."""

    resource_type = "tenant"


class RoleNotFoundException(ResourceNotFoundException):
    """Raised when a role is not found in the requested tenant."""

    resource_type = "role"


class PermissionNotFoundException(ResourceNotFoundException):
    """Raised when a permission is not found (or is inactive)."""

    resource_type = "permission"


class UserRoleNotFoundException(ResourceNotFoundException):
    """Raised when a user has no matching role assignment."""

    resource_type = "user role"


class RolePermissionNotFoundException(ResourceNotFoundException):
    """Raised when a role does not hold the given permission link."""

    resource_type = "role permission"


class AlreadyExistsException(RbacException):
    """Raised on a duplicate create where uniqueness is enforced."""

    status_code: ClassVar[int] = 409
    resource_type: ClassVar[str] = "resource"

    def __init__(
        self,
        identifier: Any = None,
        resource_type: str | None = None,
        details_extra: dict[str, Any] | None = None,
    ) -> None:
        kind = resource_type or self.resource_type
        message = f"{kind.capitalize()} already exists"
        if identifier is not None:
            message = f"{message}: {identifier}"
        details = {"resource_type": kind, "identifier": identifier}
        details.update(details_extra or {})
        super().__init__(message, "ALREADY_EXISTS", details)


class TenantAlreadyExistsException(AlreadyExistsException):
    """Raised when creating a tenant whose name or slug is taken."""

    resource_type = "tenant"


class DuplicateAssignmentException(AlreadyExistsException):
    """Raised when assigning a role the user already holds in the tenant."""

    resource_type = "user role"


class ForbiddenException(RbacException):
    """Raised when the current state disallows the operation (e.g. deleting an inactive tenant)."""

    status_code: ClassVar[int] = 403

    def __init__(self, message: str, resource_type: str | None = None) -> None:
        details = {"resource_type": resource_type} if resource_type else {}
        super().__init__(message, "FORBIDDEN", details)


class FatalException(RbacException):
    """Raised when the storage adapter fails unexpectedly; wraps the original error."""

    status_code: ClassVar[int] = 500

    def __init__(self, operation: str, model: str | None = None, reason: str | None = None) -> None:
        """Initialize with the failing adapter operation.

        Args:
            operation: Adapter method that failed (e.g. 'find_one').
            model: Physical model name the call addressed.
            reason: Short description of the underlying error.
        """
        target = f" on {model}" if model else ""
        super().__init__(
            f"Storage operation '{operation}' failed{target}",
            "FATAL",
            {"operation": operation, "model": model, "reason": reason},
        )


class ConfigurationException(RbacException):
    """Raised when the RBAC configuration or context lifecycle is invalid."""

    status_code: ClassVar[int] = 500

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIGURATION_ERROR")

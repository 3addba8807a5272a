"""Tests for domain exceptions (error_code, status_code, details)."""

from tenant_rbac.domain.exceptions import (
    AlreadyExistsException,
    ConfigurationException,
    DuplicateAssignmentException,
    FatalException,
    ForbiddenException,
    MissingConfiguredKeyError,
    RbacException,
    ResourceNotFoundException,
    RoleNotFoundException,
    TenantAlreadyExistsException,
    TenantNotFoundException,
    UserRoleNotFoundException,
    ValidationException,
)


def test_rbac_exception_default_error_code() -> None:
    """Base RbacException uses class name as error_code when not provided."""
    exc = RbacException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "RbacException"
    assert exc.details == {}
    assert exc.status_code == 400


def test_rbac_exception_to_dict() -> None:
    exc = RbacException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.to_dict() == {"error": "CUSTOM", "message": "Oops", "details": {"key": "value"}}


def test_validation_exception() -> None:
    """ValidationException sets VALIDATION_ERROR and optional field in details."""
    exc = ValidationException("Invalid format", field="role_slugs")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "role_slugs"}
    assert ValidationException("Invalid").details == {}


def test_missing_configured_key_names_alias_and_canonical() -> None:
    exc = MissingConfiguredKeyError("workspace_id", "tenant_id")
    assert isinstance(exc, ValidationException)
    assert "workspace_id" in exc.message
    assert "tenant_id" in exc.message
    assert exc.details == {"field": "workspace_id", "canonical": "tenant_id"}


def test_not_found_family_shares_code_and_status() -> None:
    """Every NotExist subclass reports NOT_EXIST / 404 with its resource type."""
    for cls, kind in (
        (TenantNotFoundException, "tenant"),
        (RoleNotFoundException, "role"),
        (UserRoleNotFoundException, "user role"),
    ):
        exc = cls("abc")
        assert isinstance(exc, ResourceNotFoundException)
        assert exc.error_code == "NOT_EXIST"
        assert exc.status_code == 404
        assert exc.details == {"resource_type": kind, "identifier": "abc"}
        assert exc.message.endswith(": abc")


def test_not_found_without_identifier() -> None:
    exc = TenantNotFoundException()
    assert exc.message == "Tenant does not exist"


def test_already_exists_family() -> None:
    exc = DuplicateAssignmentException("editor", details_extra={"user_id": "u1"})
    assert isinstance(exc, AlreadyExistsException)
    assert exc.error_code == "ALREADY_EXISTS"
    assert exc.status_code == 409
    assert exc.details == {"resource_type": "user role", "identifier": "editor", "user_id": "u1"}
    assert TenantAlreadyExistsException("Acme").details["resource_type"] == "tenant"


def test_forbidden_fatal_and_configuration() -> None:
    forbidden = ForbiddenException("Tenant is inactive", resource_type="tenant")
    assert (forbidden.error_code, forbidden.status_code) == ("FORBIDDEN", 403)
    assert forbidden.details == {"resource_type": "tenant"}

    fatal = FatalException("find_one", "roles", reason="boom")
    assert (fatal.error_code, fatal.status_code) == ("FATAL", 500)
    assert fatal.details == {"operation": "find_one", "model": "roles", "reason": "boom"}
    assert fatal.message == "Storage operation 'find_one' failed on roles"

    config = ConfigurationException("RBAC adapter is required")
    assert (config.error_code, config.status_code) == ("CONFIGURATION_ERROR", 500)

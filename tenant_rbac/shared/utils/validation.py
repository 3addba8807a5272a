"""Input guards shared by the services (raise ValidationException)."""

from typing import Any

from tenant_rbac.domain.exceptions import ValidationException


def assert_non_empty_string(value: Any, field: str) -> str:
    """Return value when it is a non-blank string; raise otherwise."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationException(
            f"{field} is required and must be a non-empty string.", field=field
        )
    return value


def assert_has_items(value: Any, field: str) -> list[Any]:
    """Return value as a list when it holds at least one item; raise otherwise."""
    if not isinstance(value, (list, tuple)) or len(value) < 1:
        raise ValidationException(f"{field} must contain at least one item.", field=field)
    return list(value)


def normalize_to_list(value: Any) -> list[Any]:
    """Wrap a single item in a list; pass lists and tuples through as lists."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]

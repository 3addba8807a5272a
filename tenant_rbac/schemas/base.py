"""Payload coercion shared by the services."""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from tenant_rbac.domain.exceptions import ValidationException

M = TypeVar("M", bound=BaseModel)


def parse_payload(model: type[M], data: M | dict[str, Any]) -> M:
    """Return data as an instance of model.

    Accepts a model instance (returned as-is) or a mapping validated against
    model. Pydantic errors surface as ValidationException naming the first
    offending field.
    """
    if isinstance(data, model):
        return data
    if not isinstance(data, dict):
        raise ValidationException(
            f"Expected {model.__name__} or mapping, got {type(data).__name__}"
        )
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ValidationException(f"Invalid {model.__name__}: {first.get('msg')}", field=field) from exc

"""Shared utilities: datetime, generators, slugs, input validation."""

from tenant_rbac.shared.utils.datetime import ensure_datetime, ensure_utc, utc_now
from tenant_rbac.shared.utils.generators import generate_cuid, with_generated_id
from tenant_rbac.shared.utils.slugs import to_slug_case, to_slug_case_with_underscores
from tenant_rbac.shared.utils.validation import (
    assert_has_items,
    assert_non_empty_string,
    normalize_to_list,
)

__all__ = [
    "generate_cuid",
    "with_generated_id",
    "utc_now",
    "ensure_utc",
    "ensure_datetime",
    "to_slug_case",
    "to_slug_case_with_underscores",
    "assert_has_items",
    "assert_non_empty_string",
    "normalize_to_list",
]

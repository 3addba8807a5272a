"""Slug strategies for tenant, role and permission names.

Two strategies exist: hyphenated (``Billing Admin`` -> ``billing-admin``,
punctuation dropped) and underscored (``Billing Admin`` -> ``billing_admin``,
punctuation kept). Services pick one with their ``slug_case`` flag.
"""

import re

_NON_WORD_RE = re.compile(r"[^\w-]+")
_SEPARATOR_RUN_RE = re.compile(r"[\s_-]+")


def to_slug_case(value: str) -> str:
    """Return the hyphenated lowercase slug of value."""
    return _NON_WORD_RE.sub("", value.replace(" ", "-")).lower()


def to_slug_case_with_underscores(value: str) -> str:
    """Return the underscored lowercase slug of value."""
    slug = value.lower().strip().replace(" ", "_")
    return _SEPARATOR_RUN_RE.sub("_", slug).strip("_")


def derive_slug(value: str, slug_case: bool = True) -> str:
    """Apply the hyphen strategy when slug_case is True, else the underscore one."""
    return to_slug_case(value) if slug_case else to_slug_case_with_underscores(value)

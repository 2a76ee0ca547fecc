"""Shared validation utilities"""

import re
from typing import Any, Optional

from cheapalarms.error_handler import ValidationError

# Path segments forwarded to WordPress must match this exactly
SAFE_ID_PATTERN = re.compile(r"[a-zA-Z0-9-]+")


def require_id(value: Any, name: str = "id") -> str:
    """Return value as a non-empty string or raise ValidationError"""
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing required {name}", field=name)
    return str(value).strip()


def require_safe_id(value: Optional[str], name: str = "id") -> str:
    """
    Validate an identifier that will be interpolated into a backend path.

    Raises:
        ValidationError: missing, or contains anything but letters, digits and '-'
    """
    if not value:
        raise ValidationError(f"Missing required parameter: {name}", field=name)
    if not SAFE_ID_PATTERN.fullmatch(value):
        raise ValidationError(
            f"Invalid {name} format. Only alphanumeric characters and hyphens are allowed.",
            field=name,
        )
    return value


def require_ids(values: Any, name: str = "ids") -> list[str]:
    """Non-empty list of non-empty ids, order kept, duplicates dropped"""
    if not values:
        raise ValidationError(f"Select at least one item ({name} is empty)", field=name)

    ids: list[str] = []
    for value in values:
        item = require_id(value, name)
        if item not in ids:
            ids.append(item)
    return ids


def normalize_email(value: Optional[str]) -> str:
    email = (value or "").strip()
    if not email:
        raise ValidationError("Email address is required", field="email")
    if "@" not in email:
        raise ValidationError("Email address is invalid", field="email")
    return email

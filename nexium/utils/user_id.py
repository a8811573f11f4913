"""User id validation."""

from __future__ import annotations

import re

from nexium.core.errors import ValidationAppError

USER_ID_PATTERN = re.compile(r"^[0-9]+$")


def require_user_id(value: str | int | None) -> str:
    """Return ``value`` as a string, rejecting missing or empty ids.

    JSON numbers are accepted and normalized to their decimal string.

    Raises:
        ValidationAppError: If no id was provided.
    """
    if value is None or isinstance(value, bool):
        raise ValidationAppError(code="user_id_required", message="id required")

    user_id = str(value).strip()
    if not user_id:
        raise ValidationAppError(code="user_id_required", message="id required")
    return user_id


def validate_user_id(value: str | int | None) -> str:
    """Return a present, all-digits user id.

    Examples:
        >>> validate_user_id("123")
        '123'
        >>> validate_user_id(456)
        '456'

    Raises:
        ValidationAppError: If the id is missing or not made of digits only.
    """
    user_id = require_user_id(value)
    if not USER_ID_PATTERN.fullmatch(user_id):
        raise ValidationAppError(
            code="invalid_user_id_format",
            message="invalid user id format",
            details={"hint": "User ids contain digits only"},
        )
    return user_id

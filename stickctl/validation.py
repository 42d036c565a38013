"""
Parameter validation for requests entering the controller.

Each helper either returns a clean float or raises a ``ValidationError``
built by one of the factories in ``stickctl.exceptions``.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from .exceptions import InvalidMagnitudeError, MalformedNumberError


def parse_float(
    value: Any,
    name: str = "value",
    *,
    message: Optional[str] = None,
) -> float:
    """
    Convert ``value`` to a finite float.

    Strings are parsed the way they arrive in a URL path segment.

    Raises:
        ValidationError: MALFORMED_NUMBER if the value is missing, not numeric,
            NaN or infinite.
    """
    error_message = message or f"{name} must be a valid float"
    if value is None or isinstance(value, bool):
        raise MalformedNumberError(error_message, value=value, field=name)

    if isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            raise MalformedNumberError(error_message, value=value, field=name) from None
    elif isinstance(value, (int, float)):
        result = float(value)
    else:
        raise MalformedNumberError(error_message, value=value, field=name)

    if math.isnan(result) or math.isinf(result):
        raise MalformedNumberError(error_message, value=value, field=name)
    return result


def require_positive(value: Any, name: str = "magnitude") -> float:
    """
    Parse ``value`` and require it to be strictly positive.

    Used for move distances and rotation angles.
    """
    result = parse_float(value, name, message="Non-Positive Float not allowed")
    if result <= 0:
        raise InvalidMagnitudeError(value, field=name)
    return result


def parse_positive_int(value: Any, name: str = "interval") -> int:
    """Parse a strictly positive integer, e.g. a sampling interval in milliseconds."""
    if isinstance(value, bool):
        raise MalformedNumberError(f"{name} must be a positive integer", value=value, field=name)
    try:
        result = int(value.strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError, OverflowError):
        raise MalformedNumberError(
            f"{name} must be a positive integer", value=value, field=name
        ) from None
    if isinstance(value, float) and not value.is_integer():
        raise MalformedNumberError(f"{name} must be a positive integer", value=value, field=name)
    if result <= 0:
        raise InvalidMagnitudeError(value, field=name)
    return result


__all__ = ["parse_float", "require_positive", "parse_positive_int"]

"""Checks shared by every free-form request body.

Learn: The JSON parser behind FastAPI accepts NaN and Infinity, but no
JSON encoder on the way out does. A stored non-finite number would make
every later listing and every broadcast of that record fail, so bodies
are refused before they reach the store.
"""

import math
from typing import Any

from taskify.errors import InvalidPayloadError


def reject_non_finite(value: Any, path: str = "") -> None:
    """Raise InvalidPayloadError if any number in `value` is NaN or infinite."""
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidPayloadError(f"'{path or 'body'}' must be a finite number")
    elif isinstance(value, dict):
        for key, item in value.items():
            reject_non_finite(item, f"{path}.{key}" if path else str(key))
    elif isinstance(value, list):
        for index, item in enumerate(value):
            reject_non_finite(item, f"{path}[{index}]")

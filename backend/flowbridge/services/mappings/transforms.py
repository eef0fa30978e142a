"""
Named parameter value transforms.

Mapping entries refer to transforms by name so they stay serializable in the
user mapping store. Every transform leaves values of types it does not handle
untouched.
"""
import logging
from typing import Any, Callable, Dict, Optional

from flowbridge.services.expression.functions import normalize_number, to_text

logger = logging.getLogger(__name__)


def boolean_to_string(value: Any) -> Any:
    """True -> "1", False -> "0"."""
    if isinstance(value, bool):
        return "1" if value else "0"
    return value


def string_to_boolean(value: Any) -> Any:
    """"1"/"true" -> True, "0"/"false" -> False, in any case."""
    if not isinstance(value, str):
        return value
    lowered = value.strip().lower()
    if lowered in ("1", "true"):
        return True
    if lowered in ("0", "false"):
        return False
    return value


def to_upper_case(value: Any) -> Any:
    return value.upper() if isinstance(value, str) else value


def to_lower_case(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def number_to_string(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return to_text(value)
    return value


def string_to_number(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return normalize_number(float(value)) if "." in value else int(value)
    except ValueError:
        return value


TRANSFORMS: Dict[str, Callable[[Any], Any]] = {
    "booleanToString": boolean_to_string,
    "stringToBoolean": string_to_boolean,
    "toUpperCase": to_upper_case,
    "toLowerCase": to_lower_case,
    "numberToString": number_to_string,
    "stringToNumber": string_to_number,
}

# Transform applied when a mapping is registered in the opposite direction
INVERSE_TRANSFORMS: Dict[str, Optional[str]] = {
    "booleanToString": "stringToBoolean",
    "stringToBoolean": "booleanToString",
    "numberToString": "stringToNumber",
    "stringToNumber": "numberToString",
    "toUpperCase": None,
    "toLowerCase": None,
}


def apply_transform(name: str, value: Any) -> Any:
    """Apply a named transform; unknown names pass the value through."""
    transform = TRANSFORMS.get(name)
    if transform is None:
        logger.warning(f"Unknown parameter transform '{name}', value kept as is")
        return value
    return transform(value)


def inverse_of(name: str) -> Optional[str]:
    return INVERSE_TRANSFORMS.get(name)

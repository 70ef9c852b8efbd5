import math
import numbers
import re
from typing import Any, Mapping, Sequence, Type, TypeVar

from pydantic import BaseModel

MAX_SAFE_INTEGER = 9007199254740991

_TRUE_STRINGS = {'true', '1', 'yes', 'on'}

ModelT = TypeVar('ModelT', bound=BaseModel)


def sanitize_number(value: Any, minimum: float, maximum: float) -> float:
    """Clamp ``value`` into ``[minimum, maximum]``.

    Missing or non-numeric input (None, NaN, booleans, unparsable strings,
    containers) becomes ``minimum``; infinities and numbers too large for a
    float clamp to the nearest bound.
    """
    if value is None or isinstance(value, bool):
        return float(minimum)

    if isinstance(value, numbers.Real):
        try:
            number = float(value)
        except OverflowError:
            return float(maximum if value > 0 else minimum)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return float(minimum)
    else:
        return float(minimum)

    if math.isnan(number):
        return float(minimum)
    return float(max(minimum, min(maximum, number)))


def sanitize_number_list(value: Any, minimum: float, maximum: float,
                         default: Sequence[float]) -> tuple:
    """Clamp every element of a list or tuple; anything else yields ``default``."""
    if isinstance(value, (list, tuple)):
        return tuple(sanitize_number(item, minimum, maximum) for item in value)
    return tuple(default)


def sanitize_choice(value: Any, allowed: Sequence[str]) -> str:
    """Return ``value`` if it is one of ``allowed``, otherwise the first allowed value."""
    text = getattr(value, 'value', value)
    text = str(text) if text is not None else ''
    return text if text in allowed else allowed[0]


def sanitize_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def to_camel_case(key: str) -> str:
    return re.sub(r'_([a-z0-9])', lambda match: match.group(1).upper(), key)


def lookup(raw: Mapping[str, Any], key: str, aliases: Sequence[str] = ()) -> Any:
    """Fetch ``key`` from ``raw`` by its snake_case name, its camelCase form or an alias."""
    for candidate in (key, to_camel_case(key), *aliases):
        if candidate in raw:
            return raw[candidate]
    return None


def validate_input(raw: Any, model: Type[ModelT]) -> ModelT:
    """Build a sanitizing reading model from a loosely-typed mapping.

    Anything that is not a mapping is treated as an empty reading, so every
    field falls back to its sanitized default.
    """
    data = dict(raw) if isinstance(raw, Mapping) else {}
    return model.model_validate(data)

"""
Typed cast table used by model attributes.

Each cast kind maps to one coercion function. Coercion is strict: input that
does not represent a value of the target type raises ``TypeMismatch`` instead
of being converted on a best-effort basis. ``None`` always passes through.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict

from recordkit.errors import TypeMismatch

_TRUE_STRINGS = {"1", "true", "t", "yes", "y", "on"}
_FALSE_STRINGS = {"0", "false", "f", "no", "n", "off", ""}


def _mismatch(kind: str, value: Any) -> TypeMismatch:
    return TypeMismatch(
        f"Cannot cast {type(value).__name__} value {value!r} to {kind}"
    )


def to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise _mismatch("int", value)
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        raise _mismatch("int", value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise _mismatch("int", value) from None
    raise _mismatch("int", value)


def to_float(value: Any) -> float:
    if isinstance(value, (bool, int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            raise _mismatch("float", value) from None
    raise _mismatch("float", value)


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise _mismatch("bool", value)


def to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, Enum):
        return to_str(value.value)
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise _mismatch("str", value)


def to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            raise _mismatch("datetime", value) from None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value)
    raise _mismatch("datetime", value)


def to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return to_datetime(value).date()


CASTS: Dict[str, Callable[[Any], Any]] = {
    "int": to_int,
    "integer": to_int,
    "float": to_float,
    "double": to_float,
    "bool": to_bool,
    "boolean": to_bool,
    "str": to_str,
    "string": to_str,
    "date": to_date,
    "datetime": to_datetime,
}


def is_cast_kind(kind: str) -> bool:
    return kind in CASTS


def cast_value(kind: str, value: Any) -> Any:
    if value is None:
        return None
    try:
        caster = CASTS[kind]
    except KeyError:
        raise ValueError(f"Unknown cast type '{kind}'") from None
    return caster(value)

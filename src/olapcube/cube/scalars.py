"""
Scalar values stored in cube coordinates.

Records hand the engine loosely typed values (text, numbers, dates). All
equality used by slice, dice, grouping and unique-value detection goes
through ``scalar_key`` so that values of different kinds never match:
``2023`` and ``"2023"`` are distinct members, ``1`` and ``1.0`` are not.
"""

import math
import numbers
import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Hashable, Iterable, List, Optional, Tuple

import pandas as pd


class ScalarKind(Enum):
    """Closed set of coordinate value kinds."""
    TEXT = "text"
    NUMBER = "number"
    TEMPORAL = "temporal"
    MISSING = "missing"


_NUMERIC_TEXT = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def is_missing(value: Any) -> bool:
    """True for None, NaT and float NaN (what pandas uses for empty cells)."""
    if value is None or value is pd.NaT:
        return True
    return isinstance(value, float) and math.isnan(value)


def is_number(value: Any) -> bool:
    """True if the value is a real number object (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return not is_missing(float(value))


def scalar_kind(value: Any) -> ScalarKind:
    if is_missing(value):
        return ScalarKind.MISSING
    if is_number(value):
        return ScalarKind.NUMBER
    # datetime (and pandas.Timestamp) subclass date
    if isinstance(value, date):
        return ScalarKind.TEMPORAL
    return ScalarKind.TEXT


def scalar_key(value: Any) -> Tuple[ScalarKind, Hashable]:
    """Hashable identity of a scalar, tagged by its kind."""
    kind = scalar_kind(value)
    if kind is ScalarKind.MISSING:
        return (kind, None)
    if kind is ScalarKind.NUMBER:
        return (kind, float(value))
    if kind is ScalarKind.TEMPORAL:
        return (kind, value.isoformat())
    if isinstance(value, Hashable):
        return (kind, value)
    return (kind, repr(value))


def strict_equals(left: Any, right: Any) -> bool:
    return scalar_key(left) == scalar_key(right)


def frame_key(value: Any) -> str:
    """``scalar_key`` flattened to text, for use as a DataFrame column value."""
    kind, identity = scalar_key(value)
    return f"{kind.value}:{identity!r}"


def encode_scalar(value: Any) -> Any:
    """
    JSON-safe form of a scalar.

    Temporal values are tagged so they come back as temporal values
    rather than text; everything else is stored as is.
    """
    if scalar_kind(value) is ScalarKind.TEMPORAL:
        return {"kind": ScalarKind.TEMPORAL.value, "value": value.isoformat()}
    return value


def decode_scalar(data: Any) -> Any:
    """Inverse of ``encode_scalar``."""
    if isinstance(data, dict) and data.get("kind") == ScalarKind.TEMPORAL.value:
        text = data["value"]
        if "T" in text:
            return pd.Timestamp(text)
        return date.fromisoformat(text)
    return data


def to_number(value: Any) -> Optional[float]:
    """
    Convert a scalar to a float.

    Numbers pass through; text must be a plain decimal or scientific
    literal once surrounding whitespace is stripped.

    Returns:
        The float value, or None if the value does not convert.
    """
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if _NUMERIC_TEXT.match(text):
            return float(text)
    return None


def is_numeric(value: Any) -> bool:
    """True if the value is a number or converts losslessly to one."""
    return to_number(value) is not None


def date_text(value: Any) -> str:
    """ISO text of a temporal value; other values are stringified."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def member_key(value: Any) -> str:
    """Key used for a value inside hierarchy parent/child maps."""
    if scalar_kind(value) is ScalarKind.TEMPORAL:
        return date_text(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def unique_in_order(values: Iterable[Any]) -> List[Any]:
    """Distinct values in first-seen order, compared by ``scalar_key``."""
    seen = {}
    for value in values:
        key = scalar_key(value)
        if key not in seen:
            seen[key] = value
    return list(seen.values())

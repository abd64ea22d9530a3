# portfolio_performance/utils/decimal_serialization.py
"""
Decimal <-> string conversion at the persistence boundary.

Monetary values and returns live as `Decimal` everywhere in memory. They
are turned into strings only when written to storage, and back into
`Decimal` when read, so no float ever touches a stored value.

Usage:
    from portfolio_performance.utils.decimal_serialization import (
        serialize_decimal,
        deserialize_decimal,
        serialize_decimal_fields,
    )

    column_value = serialize_decimal(Decimal("1234.50"))   # "1234.50"
    amount = deserialize_decimal(column_value)             # Decimal("1234.50")

    row = serialize_decimal_fields(snapshot_dict, ["total_value", "total_cost"])
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

_ZERO = Decimal("0")


def serialize_decimal(value: Decimal | int | float | str | None) -> str | None:
    """
    Convert a decimal-like value to its storage string.

    Floats go through `str()` so that 0.1 is stored as "0.1" rather than
    its binary expansion. None stays None.
    """
    if value is None:
        return None
    return str(value)


def deserialize_decimal(
        value: Decimal | int | float | str | None,
        default: Decimal = _ZERO,
) -> Decimal:
    """
    Convert a stored value back to Decimal.

    Args:
        value: Stored representation (string, number or Decimal)
        default: Returned for None or empty strings

    Raises:
        ValueError: If the value is a non-numeric string
    """
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Cannot convert {value!r} to Decimal") from e



def serialize_decimal_fields(obj: Mapping[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    """
    Copy of `obj` with the named fields converted to storage strings.

    Fields that are missing or None are left as they are; other keys are
    copied unchanged.
    """
    result = dict(obj)
    for field in fields:
        if result.get(field) is not None:
            result[field] = serialize_decimal(result[field])
    return result


def deserialize_decimal_fields(
        obj: Mapping[str, Any],
        fields: Iterable[str],
        default: Decimal = _ZERO,
) -> dict[str, Any]:
    """
    Copy of `obj` with the named fields converted back to Decimal.

    Missing, None and empty fields become `default`.

    Raises:
        ValueError: If a named field holds a non-numeric string
    """
    result = dict(obj)
    for field in fields:
        result[field] = deserialize_decimal(result.get(field), default)
    return result


def serialize_decimal_rows(rows: Iterable[Mapping[str, Any]], fields: Iterable[str]) -> list[dict[str, Any]]:
    fields = list(fields)
    return [serialize_decimal_fields(row, fields) for row in rows]


def deserialize_decimal_rows(
        rows: Iterable[Mapping[str, Any]],
        fields: Iterable[str],
        default: Decimal = _ZERO,
) -> list[dict[str, Any]]:
    fields = list(fields)
    return [deserialize_decimal_fields(row, fields, default) for row in rows]

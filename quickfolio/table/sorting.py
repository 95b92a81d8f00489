"""Stable, type-aware sorting of record lists."""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Iterable, List, Optional

from quickfolio.table.columns import ValueType, coerce_datetime, field_value

ASC = "asc"
DESC = "desc"

# Rank of each untyped value kind; values of different kinds never compare directly
_NUMBER_RANK = 0
_DATE_RANK = 1
_BOOL_RANK = 2
_TEXT_RANK = 3


def _sort_value(value: Any, value_type: Optional[ValueType]) -> Any:
    if value is None:
        return None
    if value_type is ValueType.DATE:
        return coerce_datetime(value)
    if value_type is ValueType.NUMBER:
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
    return _natural_value(value)


def _natural_value(value: Any) -> Any:
    """Key an untyped value by what it is."""
    if isinstance(value, bool):
        return (_BOOL_RANK, value)
    if isinstance(value, (int, float)):
        return (_NUMBER_RANK, value)
    if isinstance(value, date):
        return (_DATE_RANK, coerce_datetime(value))
    if isinstance(value, (list, tuple)):
        if not value:
            return None
        value = "; ".join(str(v) for v in value)
    text = str(value)
    return (_TEXT_RANK, text.casefold(), text)


def sort_records(
    records: Iterable[Any],
    key: Optional[str],
    direction: str = ASC,
    value_type: Optional[ValueType] = None,
    accessor: Optional[Callable[[Any], Any]] = None,
) -> List[Any]:
    """
    Sort ``records`` by field ``key``.

    Strings compare case-insensitively with the original text as tie-breaker,
    dates and numbers by natural order. Without ``value_type`` numbers,
    datetimes and booleans keep their natural order and are grouped apart
    from strings. Missing values sort last in both
    directions and equal keys keep their input order. With no ``key`` the
    input order is returned. ``accessor`` replaces the plain field lookup.
    """
    records = list(records)
    if not key:
        return records
    if direction not in (ASC, DESC):
        raise ValueError(f"Invalid sort direction: {direction!r}")

    read = accessor or (lambda record: field_value(record, key))
    keyed = [(_sort_value(read(r), value_type), r) for r in records]
    present = [pair for pair in keyed if pair[0] is not None]
    missing = [r for value, r in keyed if value is None]

    # sorted(reverse=True) keeps equal elements in input order
    present.sort(key=lambda pair: pair[0], reverse=direction == DESC)
    return [r for _, r in present] + missing

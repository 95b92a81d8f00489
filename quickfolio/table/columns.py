"""
Column descriptors for record tables and CSV exports.

Each column carries an explicit value type tag; comparison (sorting) and
formatting (export) dispatch on that tag rather than on runtime types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional

DEFAULT_DATE_FORMAT = "%m/%d/%Y"


class ValueType(str, Enum):
    STRING = "string"
    DATE = "date"
    NUMBER = "number"


class EntityType(str, Enum):
    FILE = "file"
    FOLIO = "folio"

    @property
    def plural(self) -> str:
        return f"{self.value}s"


def field_value(record: Any, key: str) -> Any:
    """Read ``key`` from a mapping record (API JSON) or an attribute-style object."""
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def folio_items(record: Any) -> List[str]:
    """Item numbers of the folios attached to a File record."""
    items: List[str] = []
    for folio in field_value(record, "folios") or []:
        item = field_value(folio, "item")
        if item:
            items.append(item)
    # Payloads from the older reversed relation carry a single `folio`
    single = field_value(record, "folio")
    if single is not None:
        item = field_value(single, "item")
        if item and item not in items:
            items.append(item)
    return items


def coerce_datetime(value: Any) -> Optional[datetime]:
    """
    Convert a date-ish value to an aware UTC datetime.

    Accepts datetimes, dates, ``YYYY-MM-DD`` strings and ISO-8601 datetime
    strings (a trailing ``Z`` is allowed). Returns None when unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class Column:
    """A table/export column: ``key`` to read, ``label`` for headers."""

    key: str
    label: str
    value_type: ValueType = ValueType.STRING
    accessor: Optional[Callable[[Any], Any]] = None

    def value_of(self, record: Any) -> Any:
        if self.accessor is not None:
            return self.accessor(record)
        return field_value(record, self.key)

    def format(self, record: Any, date_format: str = DEFAULT_DATE_FORMAT) -> str:
        """Stringified cell value; missing values become an empty string."""
        value = self.value_of(record)
        if value is None:
            return ""
        if self.value_type is ValueType.DATE:
            parsed = coerce_datetime(value)
            return parsed.strftime(date_format) if parsed is not None else str(value)
        if isinstance(value, (list, tuple)):
            return "; ".join(str(v) for v in value)
        return str(value)


FOLIO_COLUMNS: List[Column] = [
    Column("item", "Folio Number"),
    Column("runningNo", "Running No"),
    Column("description", "Description"),
    Column("draftedBy", "Drafted By"),
    Column("letterDate", "Letter Date", ValueType.DATE),
    Column("createdAt", "Created", ValueType.DATE),
]

FILE_COLUMNS: List[Column] = [
    Column("name", "File Name"),
    Column("description", "Description"),
    Column("folios", "Folio", accessor=folio_items),
    Column("createdAt", "Created", ValueType.DATE),
]

COLUMNS_BY_ENTITY = {
    EntityType.FOLIO: FOLIO_COLUMNS,
    EntityType.FILE: FILE_COLUMNS,
}


def columns_for(entity: EntityType) -> List[Column]:
    return COLUMNS_BY_ENTITY[EntityType(entity)]


def value_type_for(entity: EntityType, key: str) -> Optional[ValueType]:
    """Declared value type of ``key`` for an entity; None when not a known column."""
    for column in columns_for(entity):
        if column.key == key:
            return column.value_type
    if key in ("createdAt", "updatedAt", "letterDate"):
        return ValueType.DATE
    return None

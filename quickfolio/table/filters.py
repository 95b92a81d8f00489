"""
Record filtering: free-text search, per-field substring filters and
inclusive date ranges, combined by conjunction.

Filtering never mutates its input and is idempotent:
``filter_records(filter_records(r, c), c) == filter_records(r, c)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from quickfolio.table.columns import EntityType, coerce_datetime, field_value, folio_items

logger = logging.getLogger("quickfolio.table.filters")

# Fields the free-text search looks at; "folios" means any associated folio item
SEARCH_FIELDS: Dict[EntityType, Tuple[str, ...]] = {
    EntityType.FOLIO: ("item", "runningNo", "description", "draftedBy"),
    EntityType.FILE: ("name", "description", "folios"),
}

# Filter key -> record field
FIELD_FILTERS: Dict[EntityType, Dict[str, str]] = {
    EntityType.FOLIO: {
        "folioNumber": "item",
        "item": "item",
        "runningNo": "runningNo",
        "description": "description",
        "draftedBy": "draftedBy",
    },
    EntityType.FILE: {
        "name": "name",
        "description": "description",
        "folioNumber": "folios",
    },
}

DATE_FIELDS: Dict[EntityType, Tuple[str, ...]] = {
    EntityType.FOLIO: ("letterDate", "createdAt"),
    EntityType.FILE: ("createdAt",),
}

# Flat filter keys accepted in place of a date_ranges mapping
DATE_ALIASES: Dict[str, Tuple[str, str]] = {
    "letterDateFrom": ("letterDate", "from"),
    "letterDateTo": ("letterDate", "to"),
    "createdFrom": ("createdAt", "from"),
    "createdTo": ("createdAt", "to"),
}


def _text_values(record: Any, field: str) -> List[str]:
    if field == "folios":
        return folio_items(record)
    value = field_value(record, field)
    if value is None:
        return []
    return [str(value)]


def _parse_bound(value: Any, end_of_day: bool) -> Optional[datetime]:
    """
    Parse a range bound. Date-only bounds cover the whole UTC day; anything
    unparseable returns None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        day = value
    elif isinstance(value, str) and len(value.strip()) == 10:
        try:
            day = date.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return coerce_datetime(value)
    return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)


@dataclass(frozen=True)
class DateRange:
    field: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def from_bounds(cls, field: str, start: Any = None, end: Any = None) -> "DateRange":
        parsed_start = _parse_bound(start, end_of_day=False)
        parsed_end = _parse_bound(end, end_of_day=True)
        if start not in (None, "") and parsed_start is None:
            logger.warning(f"Ignoring unparseable '{field}' from-bound: {start!r}")
        if end not in (None, "") and parsed_end is None:
            logger.warning(f"Ignoring unparseable '{field}' to-bound: {end!r}")
        return cls(field=field, start=parsed_start, end=parsed_end)

    @property
    def is_active(self) -> bool:
        return self.start is not None or self.end is not None

    def contains(self, record: Any) -> bool:
        if not self.is_active:
            return True
        value = coerce_datetime(field_value(record, self.field))
        if value is None:
            return False
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True


@dataclass(frozen=True)
class FilterCriteria:
    """
    Normalised, hashable filter criteria for one entity type.

    Build it with :meth:`build`; the raw inputs may mix field filters and
    flat date aliases in one mapping.
    """

    entity: EntityType
    search_term: str = ""
    field_filters: Tuple[Tuple[str, str], ...] = ()
    date_ranges: Tuple[DateRange, ...] = ()

    @classmethod
    def build(
        cls,
        entity: EntityType,
        search_term: Optional[str] = None,
        filters: Optional[Mapping[str, Any]] = None,
        date_ranges: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> "FilterCriteria":
        entity = EntityType(entity)
        known = FIELD_FILTERS[entity]
        date_fields = DATE_FIELDS[entity]

        field_filters: Dict[str, str] = {}
        bounds: Dict[str, Dict[str, Any]] = {}

        for key, value in (filters or {}).items():
            if key in DATE_ALIASES:
                date_field, side = DATE_ALIASES[key]
                if date_field in date_fields:
                    bounds.setdefault(date_field, {})[side] = value
                else:
                    logger.debug(f"Ignoring date filter '{key}' for {entity.plural}")
                continue
            if key not in known:
                logger.debug(f"Ignoring unknown filter '{key}' for {entity.plural}")
                continue
            if value is None or str(value).strip() == "":
                continue
            field_filters[known[key]] = str(value).strip()

        for field, range_bounds in (date_ranges or {}).items():
            if field not in date_fields:
                logger.debug(f"Ignoring date range on '{field}' for {entity.plural}")
                continue
            merged = bounds.setdefault(field, {})
            for side in ("from", "to"):
                if range_bounds.get(side) not in (None, ""):
                    merged[side] = range_bounds[side]

        ranges = tuple(
            r for r in (
                DateRange.from_bounds(field, b.get("from"), b.get("to"))
                for field, b in sorted(bounds.items())
            )
            if r.is_active
        )

        return cls(
            entity=entity,
            search_term=(search_term or "").strip(),
            field_filters=tuple(sorted(field_filters.items())),
            date_ranges=ranges,
        )

    @property
    def is_active(self) -> bool:
        return bool(self.search_term or self.field_filters or self.date_ranges)

    def matches(self, record: Any) -> bool:
        if self.search_term:
            needle = self.search_term.casefold()
            haystack = (
                text
                for field in SEARCH_FIELDS[self.entity]
                for text in _text_values(record, field)
            )
            if not any(needle in text.casefold() for text in haystack):
                return False

        for field, needle in self.field_filters:
            needle = needle.casefold()
            if not any(needle in text.casefold() for text in _text_values(record, field)):
                return False

        return all(date_range.contains(record) for date_range in self.date_ranges)


def filter_records(records: Iterable[Any], criteria: FilterCriteria) -> List[Any]:
    """Records matching ``criteria``, in input order."""
    if not criteria.is_active:
        return list(records)
    return [record for record in records if criteria.matches(record)]

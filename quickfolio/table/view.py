"""
RecordTable — the filtered, sorted and selectable view over a record list.

The table owns the records it was given plus the current search, filters,
sort state and selection. ``view()`` derives the visible rows and is
recomputed only when one of those inputs changes.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from quickfolio.engine.errors import QuickFolioValidationError
from quickfolio.engine.logging import log, log_export
from quickfolio.table.columns import (
    DEFAULT_DATE_FORMAT,
    Column,
    EntityType,
    columns_for,
    field_value,
    value_type_for,
)
from quickfolio.table.export import export_filename, to_csv
from quickfolio.table.filters import FilterCriteria, filter_records
from quickfolio.table.sorting import ASC, DESC, sort_records

logger = logging.getLogger("quickfolio.table.view")


class RecordTable:
    """
    Client-side table state for one entity type.

    Usage:
        table = RecordTable(client.list_folios(), EntityType.FOLIO)
        table.set_search("alice")
        table.sort_by("item")
        filename, text = table.export_csv()
    """

    def __init__(
        self,
        records: Optional[Iterable[Mapping[str, Any]]] = None,
        entity: EntityType = EntityType.FOLIO,
        columns: Optional[Sequence[Column]] = None,
        date_format: str = DEFAULT_DATE_FORMAT,
    ):
        self.entity = EntityType(entity)
        self.columns: List[Column] = list(columns if columns is not None else columns_for(self.entity))
        self.date_format = date_format

        self._records: List[Mapping[str, Any]] = list(records or [])
        self._version = 0
        self._search = ""
        self._filters: Dict[str, Any] = {}
        self._date_ranges: Dict[str, Dict[str, Any]] = {}
        self._criteria = FilterCriteria.build(self.entity)
        self._sort_key: Optional[str] = None
        self._sort_direction = ASC
        self._selected: Set[str] = set()

        self._cache_key: Optional[Tuple[Any, ...]] = None
        self._cache: List[Mapping[str, Any]] = []

    # -------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------

    @property
    def records(self) -> List[Mapping[str, Any]]:
        return list(self._records)

    def set_records(self, records: Optional[Iterable[Mapping[str, Any]]]) -> None:
        self._records = list(records or [])
        self._touch()

    def merge(self, record: Mapping[str, Any]) -> None:
        """Replace the record with the same id, or prepend it when new."""
        record_id = field_value(record, "id")
        for index, existing in enumerate(self._records):
            if field_value(existing, "id") == record_id:
                self._records[index] = record
                break
        else:
            self._records.insert(0, record)
        self._touch()

    def remove(self, record_ids: Iterable[str]) -> None:
        doomed = set(record_ids)
        self._records = [r for r in self._records if field_value(r, "id") not in doomed]
        self._touch()

    def _touch(self) -> None:
        self._version += 1
        self._prune_selection()

    # -------------------------------------------------------------------
    # Criteria
    # -------------------------------------------------------------------

    @property
    def search_term(self) -> str:
        return self._search

    @property
    def filters(self) -> Dict[str, Any]:
        return dict(self._filters)

    @property
    def sort_key(self) -> Optional[str]:
        return self._sort_key

    @property
    def sort_direction(self) -> str:
        return self._sort_direction

    def set_search(self, term: Optional[str]) -> None:
        self._search = term or ""
        self._rebuild_criteria()

    def set_filters(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        date_ranges: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> None:
        self._filters = dict(filters or {})
        self._date_ranges = {k: dict(v) for k, v in (date_ranges or {}).items()}
        self._rebuild_criteria()

    def clear_filters(self) -> None:
        self._search = ""
        self._filters = {}
        self._date_ranges = {}
        self._rebuild_criteria()

    def _rebuild_criteria(self) -> None:
        self._criteria = FilterCriteria.build(
            self.entity,
            search_term=self._search,
            filters=self._filters,
            date_ranges=self._date_ranges,
        )
        self._prune_selection()

    def sort_by(self, key: Optional[str], direction: Optional[str] = None) -> None:
        """
        Sort by ``key``. Choosing the current key again flips the direction;
        a new key starts ascending unless ``direction`` is given.
        """
        if direction is not None:
            if direction not in (ASC, DESC):
                raise QuickFolioValidationError(f"Invalid sort direction: {direction}")
            self._sort_direction = direction
        elif key is not None and key == self._sort_key:
            self._sort_direction = DESC if self._sort_direction == ASC else ASC
        else:
            self._sort_direction = ASC
        self._sort_key = key

    # -------------------------------------------------------------------
    # View
    # -------------------------------------------------------------------

    def view(self) -> List[Mapping[str, Any]]:
        """Visible rows: records filtered by the criteria, then sorted."""
        cache_key = (self._version, self._criteria, self._sort_key, self._sort_direction)
        if cache_key != self._cache_key:
            rows = filter_records(self._records, self._criteria)
            if self._sort_key:
                column = self._column(self._sort_key)
                rows = sort_records(
                    rows,
                    self._sort_key,
                    self._sort_direction,
                    value_type_for(self.entity, self._sort_key),
                    accessor=column.accessor if column is not None else None,
                )
            self._cache = rows
            self._cache_key = cache_key
        return list(self._cache)

    def _column(self, key: str) -> Optional[Column]:
        for column in self.columns:
            if column.key == key:
                return column
        return None

    def visible_ids(self) -> List[str]:
        return [field_value(r, "id") for r in self.view()]

    # -------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------

    @property
    def selected_ids(self) -> Set[str]:
        return set(self._selected)

    def _prune_selection(self) -> None:
        if self._selected:
            self._selected &= set(self.visible_ids())

    def toggle(self, record_id: str) -> bool:
        """Flip one row's selection. Returns True when the row is now selected."""
        if record_id in self._selected:
            self._selected.discard(record_id)
            return False
        if record_id not in self.visible_ids():
            logger.debug(f"Ignoring selection of non-visible id {record_id}")
            return False
        self._selected.add(record_id)
        return True

    def select_all(self) -> None:
        """Select every visible row, or clear the selection if all are already selected."""
        visible = set(self.visible_ids())
        if visible and visible <= self._selected:
            self._selected.clear()
        else:
            self._selected = visible

    def clear_all(self) -> None:
        self._selected.clear()

    # -------------------------------------------------------------------
    # Export / bulk actions
    # -------------------------------------------------------------------

    def export_subset(self) -> List[Mapping[str, Any]]:
        rows = self.view()
        if not self._selected:
            return rows
        return [r for r in rows if field_value(r, "id") in self._selected]

    def export_csv(self, now: Optional[float] = None) -> Tuple[str, str]:
        """Returns ``(filename, csv_text)`` for the export subset."""
        rows = self.export_subset()
        filename = export_filename(self.entity, now)
        text = to_csv(rows, self.columns, self.date_format)
        log(log_export(self.entity.plural, filename, len(rows)))
        logger.info(f"Exported {len(rows)} {self.entity.plural} as {filename}")
        return filename, text

    def delete_selected(self, callback: Callable[[List[str]], Any]) -> List[str]:
        """
        Hand the selected ids (in view order) to ``callback`` and drop those
        records from the table. Errors from the callback propagate and leave
        the table untouched.
        """
        if not self._selected:
            raise QuickFolioValidationError(f"No {self.entity.plural} selected")
        record_ids = [rid for rid in self.visible_ids() if rid in self._selected]
        callback(record_ids)
        self._selected.clear()
        self.remove(record_ids)
        return record_ids

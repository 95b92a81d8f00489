"""
Record Filter/Sort/Export engine.

Pure functions over lists of record mappings (as returned by the API) plus
the stateful RecordTable that combines them with a selection.
"""

from quickfolio.table.columns import FILE_COLUMNS, FOLIO_COLUMNS, Column, EntityType, ValueType  # noqa: F401
from quickfolio.table.export import export_filename, to_csv, write_csv  # noqa: F401
from quickfolio.table.filters import DateRange, FilterCriteria, filter_records  # noqa: F401
from quickfolio.table.sorting import ASC, DESC, sort_records  # noqa: F401
from quickfolio.table.view import RecordTable  # noqa: F401

__all__ = [
    "Column",
    "ValueType",
    "EntityType",
    "FOLIO_COLUMNS",
    "FILE_COLUMNS",
    "DateRange",
    "FilterCriteria",
    "filter_records",
    "sort_records",
    "ASC",
    "DESC",
    "to_csv",
    "export_filename",
    "write_csv",
    "RecordTable",
]

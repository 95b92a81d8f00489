"""Tests for quickfolio.table.sorting."""

from datetime import date, datetime, timezone

import pytest

from quickfolio.table.columns import ValueType
from quickfolio.table.sorting import ASC, DESC, sort_records


def _ids(records):
    return [r["id"] for r in records]


class TestSortRecords:
    def test_item_ascending_and_descending(self, sample_folios):
        assert [r["item"] for r in sort_records(sample_folios, "item", ASC)] == ["A/1", "B/2"]
        assert [r["item"] for r in sort_records(sample_folios, "item", DESC)] == ["B/2", "A/1"]

    def test_no_key_keeps_input_order(self, sample_folios):
        reversed_input = list(reversed(sample_folios))
        assert sort_records(reversed_input, None) == reversed_input

    def test_case_insensitive_strings(self):
        records = [{"id": "1", "name": "beta"}, {"id": "2", "name": "Alpha"}, {"id": "3", "name": "alpha"}]
        assert _ids(sort_records(records, "name")) == ["2", "3", "1"]

    def test_missing_values_last_both_directions(self):
        records = [{"id": "1", "name": None}, {"id": "2", "name": "b"}, {"id": "3"}, {"id": "4", "name": "a"}]
        assert _ids(sort_records(records, "name", ASC)) == ["4", "2", "1", "3"]
        assert _ids(sort_records(records, "name", DESC)) == ["2", "4", "1", "3"]

    def test_stable_for_equal_keys(self):
        records = [{"id": str(i), "draftedBy": "Bob"} for i in range(5)]
        assert _ids(sort_records(records, "draftedBy", ASC)) == ["0", "1", "2", "3", "4"]
        assert _ids(sort_records(records, "draftedBy", DESC)) == ["0", "1", "2", "3", "4"]

    def test_dates_naturally_ordered(self):
        records = [
            {"id": "1", "letterDate": "2024-06-01T00:00:00Z"},
            {"id": "2", "letterDate": "2024-01-01T12:00:00+03:00"},
            {"id": "3", "letterDate": "2023-12-31"},
        ]
        assert _ids(sort_records(records, "letterDate", ASC, ValueType.DATE)) == ["3", "2", "1"]

    def test_numbers_not_lexicographic(self):
        records = [{"id": "a", "n": "10"}, {"id": "b", "n": "9"}, {"id": "c", "n": "100"}]
        assert _ids(sort_records(records, "n", ASC, ValueType.NUMBER)) == ["b", "a", "c"]
        assert _ids(sort_records(records, "n", ASC)) == ["a", "c", "b"]

    def test_untyped_numbers_by_value(self):
        records = [{"id": "a", "n": 10}, {"id": "b", "n": 9}, {"id": "c", "n": 100}, {"id": "d", "n": 9.5}]
        assert _ids(sort_records(records, "n")) == ["b", "d", "a", "c"]
        assert _ids(sort_records(records, "n", DESC)) == ["c", "a", "d", "b"]

    def test_untyped_datetimes_by_value(self):
        records = [
            {"id": "1", "at": datetime(2024, 6, 1, tzinfo=timezone.utc)},
            {"id": "2", "at": date(2023, 12, 31)},
            {"id": "3", "at": datetime(2024, 1, 1, tzinfo=timezone.utc)},
        ]
        assert _ids(sort_records(records, "at")) == ["2", "3", "1"]

    def test_untyped_mixed_kinds_do_not_raise(self):
        records = [{"id": "s", "v": "x"}, {"id": "n", "v": 2}, {"id": "b", "v": True}, {"id": "m"}]
        assert _ids(sort_records(records, "v")) == ["n", "b", "s", "m"]

    def test_desc_is_reverse_of_asc_without_ties(self):
        records = [{"id": str(i), "item": item} for i, item in enumerate(["c", "a", "d", "b"])]
        assert sort_records(records, "item", DESC) == list(reversed(sort_records(records, "item", ASC)))

    def test_invalid_direction(self, sample_folios):
        with pytest.raises(ValueError):
            sort_records(sample_folios, "item", "sideways")

"""Tests for quickfolio.table.view — RecordTable state, selection and export."""

from unittest.mock import MagicMock

import pytest

from quickfolio.engine.errors import QuickFolioAPIError, QuickFolioValidationError
from quickfolio.table.columns import EntityType
from quickfolio.table.sorting import ASC, DESC
from quickfolio.table.view import RecordTable


@pytest.fixture
def table(sample_folios):
    return RecordTable(sample_folios, EntityType.FOLIO)


def _items(rows):
    return [r["item"] for r in rows]


class TestView:
    def test_absent_records_is_empty(self):
        table = RecordTable(None, EntityType.FILE)
        assert table.view() == []
        assert table.export_subset() == []

    def test_search(self, table):
        table.set_search("alice")
        assert _items(table.view()) == ["B/2"]
        table.set_search("")
        assert _items(table.view()) == ["A/1", "B/2"]

    def test_filters(self, table):
        table.set_filters({"letterDateFrom": "2024-03-01"})
        assert _items(table.view()) == ["B/2"]
        table.clear_filters()
        assert _items(table.view()) == ["A/1", "B/2"]

    def test_date_ranges(self, table):
        table.set_filters(date_ranges={"letterDate": {"to": "2024-01-01"}})
        assert _items(table.view()) == ["A/1"]

    def test_sort_toggles(self, table):
        table.sort_by("item")
        assert table.sort_direction == ASC
        assert _items(table.view()) == ["A/1", "B/2"]
        table.sort_by("item")
        assert table.sort_direction == DESC
        assert _items(table.view()) == ["B/2", "A/1"]
        table.sort_by("draftedBy")
        assert table.sort_direction == ASC
        assert _items(table.view()) == ["B/2", "A/1"]

    def test_sort_explicit_direction(self, table):
        table.sort_by("letterDate", DESC)
        assert _items(table.view()) == ["B/2", "A/1"]
        with pytest.raises(QuickFolioValidationError):
            table.sort_by("item", "up")

    def test_sort_files_by_folio_column(self):
        files = [
            {"id": "1", "name": "None yet", "folios": []},
            {"id": "2", "name": "Second", "folios": [{"item": "b/2"}]},
            {"id": "3", "name": "First", "folios": [{"item": "A/1"}]},
        ]
        table = RecordTable(files, EntityType.FILE)
        table.sort_by("folios")
        assert [f["id"] for f in table.view()] == ["3", "2", "1"]
        table.sort_by("folios")
        assert [f["id"] for f in table.view()] == ["2", "3", "1"]

    def test_sort_by_key_outside_columns(self):
        rows = [{"id": "a", "pages": 10}, {"id": "b", "pages": 9}, {"id": "c", "pages": 100}]
        table = RecordTable(rows, EntityType.FOLIO)
        table.sort_by("pages")
        assert table.visible_ids() == ["b", "a", "c"]

    def test_view_is_memoised(self, table, monkeypatch):
        import quickfolio.table.view as view_mod

        calls = MagicMock(side_effect=view_mod.filter_records)
        monkeypatch.setattr(view_mod, "filter_records", calls)
        table.view()
        table.view()
        assert calls.call_count == 1
        table.set_search("bob")
        table.view()
        assert calls.call_count == 2

    def test_view_returns_copy(self, table):
        table.view().clear()
        assert len(table.view()) == 2

    def test_merge_and_remove(self, table):
        table.merge({"id": "f3", "item": "C/3", "draftedBy": "Carol"})
        assert _items(table.view()) == ["C/3", "A/1", "B/2"]
        table.merge({"id": "f1", "item": "A/1-rev", "draftedBy": "Bob"})
        assert _items(table.view()) == ["C/3", "A/1-rev", "B/2"]
        table.remove(["f3"])
        assert _items(table.view()) == ["A/1-rev", "B/2"]


class TestSelection:
    def test_toggle(self, table):
        assert table.toggle("f1") is True
        assert table.selected_ids == {"f1"}
        assert table.toggle("f1") is False
        assert table.selected_ids == set()

    def test_toggle_invisible_ignored(self, table):
        table.set_search("alice")
        assert table.toggle("f1") is False
        assert table.selected_ids == set()

    def test_select_all_toggles(self, table):
        table.select_all()
        assert table.selected_ids == {"f1", "f2"}
        table.select_all()
        assert table.selected_ids == set()

    def test_select_all_only_visible(self, table):
        table.set_search("alice")
        table.select_all()
        assert table.selected_ids == {"f2"}

    def test_selection_pruned_when_view_narrows(self, table):
        table.select_all()
        table.set_search("bob")
        assert table.selected_ids == {"f1"}

    def test_clear_all(self, table):
        table.select_all()
        table.clear_all()
        assert table.selected_ids == set()


class TestExport:
    def test_subset_is_whole_view_without_selection(self, table):
        table.sort_by("item", DESC)
        assert _items(table.export_subset()) == ["B/2", "A/1"]

    def test_subset_is_selection_in_view_order(self, table, sample_folios):
        table.merge({"id": "f3", "item": "C/3", "draftedBy": "Carol"})
        table.sort_by("item")
        table.toggle("f3")
        table.toggle("f1")
        assert _items(table.export_subset()) == ["A/1", "C/3"]

    def test_export_csv(self, table):
        filename, text = table.export_csv(now=1717171717.0)
        assert filename == "folios-export-1717171717000.csv"
        lines = text.split("\n")
        assert lines[0] == "Folio Number,Running No,Description,Drafted By,Letter Date,Created"
        assert lines[1:3] == [
            '"A/1","1","","Bob","01/01/2024","01/02/2024"',
            '"B/2","2","","Alice","06/01/2024","06/02/2024"',
        ]

    def test_export_csv_selected_only(self, table):
        table.toggle("f2")
        _, text = table.export_csv()
        assert text.count("\n") == 1
        assert '"B/2"' in text


class TestDeleteSelected:
    def test_empty_selection_rejected(self, table):
        callback = MagicMock()
        with pytest.raises(QuickFolioValidationError, match="No folios selected"):
            table.delete_selected(callback)
        callback.assert_not_called()

    def test_deletes_and_clears(self, table):
        callback = MagicMock()
        table.select_all()
        deleted = table.delete_selected(callback)
        assert deleted == ["f1", "f2"]
        callback.assert_called_once_with(["f1", "f2"])
        assert table.selected_ids == set()
        assert table.view() == []

    def test_callback_failure_leaves_table(self, table):
        callback = MagicMock(side_effect=QuickFolioAPIError("Folio not found", status_code=404))
        table.toggle("f1")
        with pytest.raises(QuickFolioAPIError):
            table.delete_selected(callback)
        assert table.selected_ids == {"f1"}
        assert len(table.view()) == 2

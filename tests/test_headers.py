"""
Tests for the header catalog and its JSON loader
"""
import json

import pytest

from listmerge.errors import HeaderCatalogError
from listmerge.headers import (
    HeaderCatalog,
    load_bundled_headers,
    load_external_headers,
    load_header_catalog,
    parse_header_document,
)
from listmerge.models import HeaderDefinition, HeaderPosition


def write_doc(folder, name, doc):
    path = folder / name
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


class TestParseHeaderDocument:

    def test_all_fields(self):
        definition = parse_header_document({
            "name": "Journal",
            "headers": ["Date", "Amount"],
            "headerAliases": [["Datum", "Betrag"]],
            "headerPosition": "last",
            "sumColumn": "Amount",
            "sumPattern": r"(\d+)",
        })
        assert definition == HeaderDefinition(
            "Journal", ("Date", "Amount"), (("Datum", "Betrag"),), HeaderPosition.LAST, "Amount", r"(\d+)"
        )

    def test_optional_fields_default(self):
        definition = parse_header_document({"name": "Plain", "headers": ["A", "B"]})
        assert definition.header_aliases == ()
        assert definition.header_position is HeaderPosition.FIRST
        assert definition.sum_column is None
        assert definition.sum_pattern is None

    @pytest.mark.parametrize("doc", [
        {"headers": ["A"]},
        {"name": "  ", "headers": ["A"]},
        {"name": "X"},
        {"name": "X", "headers": []},
        {"name": "X", "headers": ["A"], "headerPosition": "middle"},
        {"name": "X", "headers": ["A"], "headerAliases": ["A"]},
        {"name": "X", "headers": ["A"], "sumPattern": "(unclosed"},
        ["not", "an", "object"],
    ])
    def test_invalid_documents(self, doc):
        with pytest.raises(HeaderCatalogError):
            parse_header_document(doc, "test.json")


class TestHeaderCatalog:

    def test_iteration_keeps_load_order(self):
        catalog = HeaderCatalog([HeaderDefinition("B", ["x"]), HeaderDefinition("A", ["y"])])
        assert catalog.names == ["B", "A"]
        assert len(catalog) == 2

    def test_duplicate_names_rejected(self):
        with pytest.raises(HeaderCatalogError):
            HeaderCatalog([HeaderDefinition("A", ["x"]), HeaderDefinition("A", ["y"])])

    def test_with_overrides_replaces_by_name(self):
        catalog = HeaderCatalog([HeaderDefinition("A", ["x"]), HeaderDefinition("B", ["y"])])
        updated = catalog.with_overrides([HeaderDefinition("A", ["z"]), HeaderDefinition("C", ["w"])])

        assert updated.names == ["B", "A", "C"]
        assert updated.get("A").headers == ("z",)
        # original catalog untouched
        assert catalog.get("A").headers == ("x",)


class TestLoading:

    def test_bundled_headers_are_valid(self):
        names = [d.name for d in load_bundled_headers()]
        assert names == ["ArticleList", "BookingJournal", "StockReport"]

    def test_missing_external_folder_is_fine(self, tmp_path):
        catalog = load_header_catalog(tmp_path / "does-not-exist")
        assert len(catalog) == len(load_bundled_headers())

    def test_external_headers_override_bundled_with_same_name(self, tmp_path):
        write_doc(tmp_path, "override.json", {"name": "ArticleList", "headers": ["External A", "External B"]})

        catalog = load_header_catalog(tmp_path)

        assert catalog.get("ArticleList").headers == ("External A", "External B")
        assert catalog.names.count("ArticleList") == 1

    def test_external_keeps_all_fields(self, tmp_path):
        write_doc(tmp_path, "journal.json", {
            "name": "Custom",
            "headers": ["Name", "Total"],
            "headerPosition": "LAST",
            "sumColumn": "Total",
        })
        definition = load_header_catalog(tmp_path, include_bundled=False).get("Custom")
        assert definition.header_position is HeaderPosition.LAST
        assert definition.sum_column == "Total"

    def test_index_and_non_json_files_ignored(self, tmp_path):
        write_doc(tmp_path, "index.json", ["a.json"])
        (tmp_path / "notes.txt").write_text("not a header", encoding="utf-8")
        write_doc(tmp_path, "a.json", {"name": "A", "headers": ["x"]})

        assert [d.name for d in load_external_headers(tmp_path)] == ["A"]

    def test_later_external_file_wins_for_same_name(self, tmp_path):
        write_doc(tmp_path, "a.json", {"name": "Same", "headers": ["first"]})
        write_doc(tmp_path, "b.json", {"name": "Same", "headers": ["second"]})

        loaded = load_external_headers(tmp_path)
        assert len(loaded) == 1
        assert loaded[0].headers == ("second",)

    def test_broken_json_raises(self, tmp_path):
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(HeaderCatalogError):
            load_external_headers(tmp_path)

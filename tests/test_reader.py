"""
Tests for the row source adapter
"""
from datetime import datetime

import pytest

from listmerge.errors import FormatError, UnsupportedFormatError
from listmerge.reader import detect_file_type, read_rows


class TestDetectFileType:

    @pytest.mark.parametrize("name, kind", [
        ("a.xlsx", "excel"),
        ("A.XLSM", "excel"),
        ("list.csv", "text"),
        ("list.txt", "text"),
    ])
    def test_supported(self, name, kind):
        assert detect_file_type(name) == kind

    def test_unsupported_names_the_file(self):
        with pytest.raises(UnsupportedFormatError, match="report.pdf"):
            detect_file_type("/tmp/report.pdf")


class TestTextFiles:

    def test_semicolon_rows(self, write_csv):
        path = write_csv("a.csv", [["Name", "Amount"], ["Alice", "10,5"], ["Bob", ""]])
        assert read_rows(path) == [["Name", "Amount"], ["Alice", "10,5"], ["Bob", ""]]

    def test_values_stay_text(self, write_csv):
        path = write_csv("a.csv", [["Id", "Code"], ["007", "NA"]])
        assert read_rows(path)[1] == ["007", "NA"]

    def test_byte_order_mark_is_dropped(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_bytes("\ufeffName;Amount\nAlice;1\n".encode("utf-8"))
        assert read_rows(path)[0] == ["Name", "Amount"]

    def test_wider_lines_are_accepted(self, tmp_path):
        path = tmp_path / "ragged.csv"
        path.write_text("Name;Amount\nAlice;10;\nBob;5;note\n", encoding="utf-8")
        assert read_rows(path) == [
            ["Name", "Amount", ""],
            ["Alice", "10", ""],
            ["Bob", "5", "note"],
        ]

    def test_short_lines_padded_to_widest(self, tmp_path):
        path = tmp_path / "short.csv"
        path.write_text("Name;Amount\nSolo\n", encoding="utf-8")
        assert read_rows(path) == [["Name", "Amount"], ["Solo", ""]]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        assert read_rows(path) == []

    def test_missing_file_is_format_error(self, tmp_path):
        with pytest.raises(FormatError, match="missing.csv"):
            read_rows(tmp_path / "missing.csv")

    def test_invalid_utf8_is_format_error(self, tmp_path):
        path = tmp_path / "latin.csv"
        path.write_bytes("Name;Stra\xdfe\n".encode("latin-1"))
        with pytest.raises(FormatError):
            read_rows(path)


class TestWorkbooks:

    def test_first_sheet_only(self, write_xlsx):
        path = write_xlsx(
            "book.xlsx",
            [["Name", "Amount"], ["Alice", 10]],
            extra_sheets={"Other": [["Ignored", "Sheet"]]},
        )
        assert read_rows(path) == [["Name", "Amount"], ["Alice", "10"]]

    def test_cell_values_become_text(self, write_xlsx):
        path = write_xlsx("book.xlsx", [
            ["Name", "Amount", "Date", "Flag"],
            ["Alice", 10.5, datetime(2024, 3, 1), True],
            ["Bob", 4.0, None, False],
        ])
        rows = read_rows(path)
        assert rows[1] == ["Alice", "10.5", "2024-03-01", "TRUE"]
        assert rows[2] == ["Bob", "4", "", "FALSE"]

    def test_short_rows_are_padded(self, write_xlsx):
        path = write_xlsx("book.xlsx", [["A", "B", "C"], ["x"]])
        assert read_rows(path)[1] == ["x", "", ""]

    def test_corrupt_workbook_is_format_error(self, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_text("this is not a zip archive", encoding="utf-8")
        with pytest.raises(FormatError, match="broken.xlsx"):
            read_rows(path)

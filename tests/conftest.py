"""Shared fixtures: real source files written to tmp_path."""

import pytest
from openpyxl import Workbook

from listmerge.headers import HeaderCatalog
from listmerge.models import HeaderDefinition


MAIN = HeaderDefinition("Main", ["Name", "Amount"], sum_column="Amount")


@pytest.fixture
def main_header():
    return MAIN


@pytest.fixture
def main_catalog():
    return HeaderCatalog([MAIN])


@pytest.fixture
def write_csv(tmp_path):
    def _write(name, rows):
        path = tmp_path / name
        path.write_text("\n".join(";".join(row) for row in rows) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture
def write_xlsx(tmp_path):
    def _write(name, rows, extra_sheets=None):
        wb = Workbook()
        ws = wb.active
        for row in rows:
            ws.append(list(row))
        for title, sheet_rows in (extra_sheets or {}).items():
            other = wb.create_sheet(title)
            for row in sheet_rows:
                other.append(list(row))
        path = tmp_path / name
        wb.save(path)
        return path
    return _write


@pytest.fixture
def scenario_file(write_csv):
    return write_csv("main.csv", [["Name", "Amount"], ["Alice", "10"], ["Bob", "5"]])

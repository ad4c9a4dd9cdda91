"""
Reader module: turns a source file into an ordered list of text rows.

Workbooks are read with openpyxl (first sheet only); delimited text files with
pandas. Callers only ever see rows of strings, never the file format.
"""
import csv
import io
import logging
import os
from datetime import date, datetime, time
from typing import List
from zipfile import BadZipFile

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .errors import FormatError, UnsupportedFormatError

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = (".xlsx", ".xlsm")
TEXT_EXTENSIONS = (".csv", ".txt")
SUPPORTED_EXTENSIONS = EXCEL_EXTENSIONS + TEXT_EXTENSIONS
TEXT_DELIMITER = ";"

Row = List[str]


def detect_file_type(path) -> str:
    """Returns "excel" or "text", or raises UnsupportedFormatError."""
    ext = os.path.splitext(str(path))[1].lower()
    if ext in EXCEL_EXTENSIONS:
        return "excel"
    if ext in TEXT_EXTENSIONS:
        return "text"
    raise UnsupportedFormatError(path)


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def read_excel_rows(path) -> List[Row]:
    try:
        wb = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as exc:
        raise FormatError(path, str(exc)) from exc

    try:
        ws = wb.worksheets[0]
        return [[_cell_text(v) for v in row] for row in ws.iter_rows(values_only=True)]
    except (KeyError, ValueError) as exc:
        raise FormatError(path, str(exc)) from exc
    finally:
        wb.close()


def _row_width(text: str) -> int:
    return max((len(fields) for fields in csv.reader(io.StringIO(text), delimiter=TEXT_DELIMITER)), default=0)


def read_text_rows(path) -> List[Row]:
    """
    Rows are padded to the widest line, like workbook rows to the sheet width,
    so a trailing ';' or an extra column on any line is accepted.
    """
    try:
        with open(path, encoding="utf-8-sig", newline="") as fh:
            text = fh.read()
        width = _row_width(text)
    except (UnicodeDecodeError, OSError, csv.Error) as exc:
        raise FormatError(path, str(exc)) from exc

    if width == 0:
        return []

    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=TEXT_DELIMITER,
            header=None,
            names=range(width),
            dtype=str,
            na_filter=False,
            skip_blank_lines=False,
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as exc:
        raise FormatError(path, str(exc)) from exc

    return df.fillna("").astype(str).values.tolist()


def read_rows(path) -> List[Row]:
    """
    Read one source file fully and return its rows.

    Raises:
        UnsupportedFormatError: extension is not a workbook or text file.
        FormatError: the file exists but cannot be parsed.
    """
    kind = detect_file_type(path)
    rows = read_excel_rows(path) if kind == "excel" else read_text_rows(path)
    logger.debug("Read %d rows from '%s'", len(rows), path)
    return rows

# listmerge/utils.py
from typing import List, Optional, Sequence


def _is_empty(val) -> bool:
    """True if value is None, empty or whitespace-only string."""
    if val is None:
        return True
    if isinstance(val, str) and val.strip() == "":
        return True
    return False


def normalize_cell(value: Optional[str]) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def normalize_row(row: Optional[Sequence[Optional[str]]]) -> List[str]:
    """
    Trim and lower-case every cell, then drop trailing blank cells.

    Two rows are treated as the same header when their normalized forms are equal.
    """
    if not row:
        return []
    normalized = [normalize_cell(v) for v in row]
    end = len(normalized)
    while end > 0 and normalized[end - 1] == "":
        end -= 1
    return normalized[:end]


def is_blank_row(row: Optional[Sequence[Optional[str]]]) -> bool:
    return row is None or all(_is_empty(v) for v in row)


def last_non_blank_index(rows: Sequence[Sequence[Optional[str]]]) -> int:
    """Index of the last row with any content, or -1 if every row is blank."""
    for idx in range(len(rows) - 1, -1, -1):
        if not is_blank_row(rows[idx]):
            return idx
    return -1

# listmerge/merge_service.py

import logging
import re
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Callable, Iterable, List, Optional, Pattern, Sequence, Tuple

from .headers import HeaderCatalog
from .models import AggregationResult, GroupKey, GroupMap, HeaderDefinition, MergeResult
from .reader import read_rows
from .resolver import resolve_rows
from .utils import is_blank_row

logger = logging.getLogger(__name__)

DEFAULT_SUM_PATTERN = r"(\d+[\.,]?\d*)"

RowReader = Callable[[object], List[List[str]]]


@lru_cache(maxsize=64)
def compile_sum_pattern(pattern: Optional[str]) -> Pattern[str]:
    return re.compile(pattern if pattern and pattern.strip() else DEFAULT_SUM_PATTERN)


def locate_sum_column(header: HeaderDefinition) -> int:
    """
    Index of the configured sum column within the template's labels, matched
    case-insensitively. -1 when there is none; a configured label that is not
    among the headers is logged and treated as no sum column.
    """
    if not header.has_sum_column or not header.headers:
        return -1
    wanted = header.sum_column.lower()
    for idx, label in enumerate(header.headers):
        if label.lower() == wanted:
            return idx
    logger.warning("Configured sumColumn '%s' not found in header set '%s'.",
                   header.sum_column, header.name)
    return -1


def build_group_key(row: Sequence[str], sum_index: int) -> GroupKey:
    if sum_index < 0 or sum_index >= len(row):
        return tuple(row)
    return tuple(cell for idx, cell in enumerate(row) if idx != sum_index)


def extract_sum(row: Sequence[str], sum_index: int, pattern: Pattern[str]) -> Decimal:
    """
    Pull a decimal out of the sum cell. Anything unusable yields zero;
    this never raises.
    """
    if sum_index < 0 or sum_index >= len(row):
        return Decimal(0)
    cell = row[sum_index]
    if cell is None or not str(cell).strip():
        return Decimal(0)

    match = pattern.search(str(cell))
    if not match:
        return Decimal(0)

    raw = match.group(1) if pattern.groups else match.group(0)
    normalized = (raw or "").replace(",", ".")
    try:
        value = Decimal(normalized)
    except InvalidOperation:
        logger.debug("Could not parse sum value '%s' in cell '%s'.", normalized, cell)
        return Decimal(0)
    if not value.is_finite():
        return Decimal(0)
    return value


def aggregate_rows(
    rows: Sequence[Sequence[str]],
    headers: Iterable[HeaderDefinition],
) -> Tuple[HeaderDefinition, GroupMap]:
    """
    Group the data rows of one file.

    Args:
      rows: all rows of the file, header row included.
      headers: templates in resolution order.

    Returns:
      The resolved template and a map of GroupKey -> AggregationResult.
    """
    header, header_index, last_index = resolve_rows(rows, headers)
    counts: GroupMap = {}
    if last_index < 0:
        return header, counts

    sum_index = locate_sum_column(header)
    pattern = compile_sum_pattern(header.sum_pattern)

    for idx in range(0, last_index + 1):
        if idx == header_index:
            continue
        row = rows[idx]
        if is_blank_row(row):
            continue
        key = build_group_key(row, sum_index)
        value = AggregationResult(1, extract_sum(row, sum_index, pattern))
        existing = counts.get(key)
        counts[key] = value if existing is None else existing.add(value)

    return header, counts


def merge_into(result: MergeResult, header: HeaderDefinition, counts: GroupMap) -> None:
    """Fold one file's groups into the job-wide result."""
    bucket = result.setdefault(header, {})
    for key, aggregation in counts.items():
        existing = bucket.get(key)
        bucket[key] = aggregation if existing is None else existing.add(aggregation)


def merge_files(
    paths: Sequence,
    headers: HeaderCatalog,
    read: RowReader = read_rows,
) -> MergeResult:
    """
    Read and aggregate each file in turn, combining everything into one result.

    A file that cannot be read aborts the whole merge (FormatError propagates).
    """
    result: MergeResult = {}
    definitions = list(headers)

    for path in paths:
        rows = read(path)
        header, counts = aggregate_rows(rows, definitions)
        logger.info("Merged '%s' as '%s': %d groups", path, header.name, len(counts))
        merge_into(result, header, counts)

    return result

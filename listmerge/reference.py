# listmerge/reference.py

"""
Reference pass: recompute the aggregation straight from the source files and
diff it against the merge result.

Grouping and sum extraction here share no code with merge_service. Keys are
compared as canonical strings rather than tuples.
"""
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from . import models
from .errors import ListMergeError
from .models import (
    AggregationResult,
    HeaderDefinition,
    MergeResult,
    ValidationContext,
    ValidationIssue,
    header_name_of,
    scale_decimal,
)
from .reader import read_rows
from .resolver import resolve_rows
from .utils import is_blank_row, normalize_row

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "\u001f"
REFERENCE_SUM_PATTERN = re.compile(r"(\d+[\.,]?\d*)")
FALLBACK_HEADER_NAME = "Unknown"

AggregationView = Dict[str, Dict[str, AggregationResult]]


def _escape(cell: str) -> str:
    return cell.replace("\\", "\\\\").replace(KEY_SEPARATOR, "\\u001f")


def canonical_key(cells: Optional[Sequence[str]]) -> str:
    """
    Normalized cells joined by the unit separator. Backslashes and separators
    inside a cell are escaped, so distinct cell lists never share a key unless
    they only differ by case, surrounding whitespace or trailing blank cells.
    """
    return KEY_SEPARATOR.join(_escape(cell) for cell in normalize_row(cells))


def canonical_row_key(row: Sequence[str], sum_index: int) -> str:
    return canonical_key([cell for idx, cell in enumerate(row) if idx != sum_index])


def _sum_index(header: HeaderDefinition) -> int:
    # case-insensitive, untrimmed: a label like "Amount " does not match "Amount"
    if not header.sum_column or not header.sum_column.strip():
        return -1
    target = header.sum_column.lower()
    return next((i for i, label in enumerate(header.headers) if label.lower() == target), -1)


def _sum_pattern(header: HeaderDefinition):
    if header.sum_pattern and header.sum_pattern.strip():
        return re.compile(header.sum_pattern)
    return REFERENCE_SUM_PATTERN


def _parse_sum(row: Sequence[str], sum_index: int, pattern) -> Decimal:
    if not 0 <= sum_index < len(row):
        return Decimal(0)
    value = row[sum_index]
    if not value or not value.strip():
        return Decimal(0)
    match = pattern.search(value)
    if match is None:
        return Decimal(0)
    token = match.group(1) if pattern.groups else match.group(0)
    try:
        parsed = Decimal((token or "").replace(",", "."))
    except InvalidOperation:
        return Decimal(0)
    return parsed if parsed.is_finite() else Decimal(0)


def _accumulate(bucket: Dict[str, AggregationResult], key: str, value: AggregationResult) -> None:
    bucket[key] = bucket[key].add(value) if key in bucket else value


def build_reference_aggregation(
    paths: Sequence,
    headers: Sequence[HeaderDefinition],
    read: Callable = read_rows,
) -> Tuple[AggregationView, List[ValidationIssue]]:
    """
    Re-read every file and aggregate it again.

    Returns:
        (header name -> canonical key -> aggregation, issues for unreadable files)
    """
    reference: AggregationView = {}
    issues: List[ValidationIssue] = []

    for path in paths:
        try:
            rows = read(path)
        except (ListMergeError, OSError) as exc:
            logger.warning("Reference aggregation could not read '%s': %s", path, exc)
            issues.append(ValidationIssue(
                models.REFERENCE_PATH_ERROR,
                "Reference aggregation could not be computed.",
                None,
                f"file={path}, error={exc}",
            ))
            continue

        header, header_index, last_index = resolve_rows(rows, headers)
        if last_index < 0:
            continue

        sum_index = _sum_index(header)
        pattern = _sum_pattern(header)
        bucket = reference.setdefault(header_name_of(header) or FALLBACK_HEADER_NAME, {})

        for idx, row in enumerate(rows):
            if idx == header_index or is_blank_row(row):
                continue
            _accumulate(bucket, canonical_row_key(row, sum_index),
                        AggregationResult(1, _parse_sum(row, sum_index, pattern)))

    return reference, issues


def build_merged_view(merged: MergeResult) -> AggregationView:
    """Merge result re-keyed by header name and canonical key."""
    view: AggregationView = {}
    for header, groups in merged.items():
        name = header_name_of(header)
        if name is None or groups is None:
            continue
        bucket = view.setdefault(name, {})
        for key, aggregation in groups.items():
            if aggregation is None:
                continue
            _accumulate(bucket, canonical_key(key),
                        AggregationResult(aggregation.row_count, aggregation.sum_value or Decimal(0)))
    return view


def compare_aggregations(
    merged_view: AggregationView,
    reference: AggregationView,
    context: ValidationContext,
) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []

    for header_name, reference_bucket in reference.items():
        merged_bucket = merged_view.get(header_name, {})

        for key, expected in reference_bucket.items():
            actual = merged_bucket.get(key)
            if actual is None:
                issues.append(ValidationIssue(
                    models.REFERENCE_MISSING_KEY,
                    "Key is missing from the merge result.",
                    header_name,
                    f"missingKey={key!r}",
                ))
                continue

            if expected.row_count != actual.row_count:
                issues.append(ValidationIssue(
                    models.REFERENCE_COUNT_MISMATCH,
                    "Row count differs for the same key.",
                    header_name,
                    f"key={key!r}, referenceCount={expected.row_count}, mergedCount={actual.row_count}",
                ))

            reference_sum = scale_decimal(expected.sum_value, context.sum_scale)
            merged_sum = scale_decimal(actual.sum_value, context.sum_scale)
            delta = abs(reference_sum - merged_sum)
            if delta > context.sum_tolerance:
                issues.append(ValidationIssue(
                    models.REFERENCE_SUM_MISMATCH,
                    "Sum differs for the same key.",
                    header_name,
                    f"key={key!r}, referenceSum={reference_sum}, mergedSum={merged_sum}, delta={delta}",
                ))

    return issues


def compare_with_reference(
    merged: MergeResult,
    paths: Sequence,
    headers,
    context: ValidationContext,
    read: Callable = read_rows,
) -> List[ValidationIssue]:
    if not paths or not headers:
        logger.warning("Reference aggregation enabled but files/headers are missing. "
                       "Skipping reference validation.")
        return []

    reference, issues = build_reference_aggregation(paths, list(headers), read)
    issues.extend(compare_aggregations(build_merged_view(merged), reference, context))
    logger.info("Reference comparison finished with %d issues", len(issues))
    return issues

# listmerge/validators.py

"""
Validation of a merge result: structural checks, comparison with expected
totals and, optionally, a reference recomputation from the source files.
"""
import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from . import models
from .headers import HeaderCatalog
from .models import (
    HeaderDefinition,
    MergeResult,
    ValidationContext,
    ValidationIssue,
    ValidationReport,
    header_name_of,
    scale_decimal,
)
from .reference import compare_with_reference

logger = logging.getLogger(__name__)


def _missing_expectation(
    context: ValidationContext,
    issues: List[ValidationIssue],
    code: str,
    message: str,
    header_name: str,
) -> None:
    if context.treat_missing_expectations_as_warning:
        logger.warning("%s Header='%s'. Validation continues because missing expectations "
                       "are configured as warnings.", message, header_name)
        return
    logger.warning("%s Header='%s'. Validation marked as invalid.", message, header_name)
    issues.append(ValidationIssue(code, message, header_name))


def check_row_count(
    header_name: str,
    actual_row_count: int,
    context: ValidationContext,
    issues: List[ValidationIssue],
) -> None:
    expected = context.expected_rows_for(header_name)
    if expected is None:
        _missing_expectation(context, issues, models.MISSING_EXPECTED_ROW_COUNT,
                             "No expected row count available.", header_name)
        return

    if actual_row_count != expected:
        logger.warning("Row count mismatch for header '%s': expected=%s, actual=%s",
                       header_name, expected, actual_row_count)
        issues.append(ValidationIssue(
            models.COUNT_MISMATCH,
            "Number of data rows does not match the expected value.",
            header_name,
            f"expected={expected}, actual={actual_row_count}",
        ))
        return

    logger.debug("Row count check passed for header '%s': %s", header_name, actual_row_count)


def check_sum(
    header: HeaderDefinition,
    header_name: str,
    actual_sum: Decimal,
    context: ValidationContext,
    issues: List[ValidationIssue],
) -> None:
    if not header.has_sum_column:
        logger.debug("Header '%s' has no sumColumn configured. Skipping sum check.", header_name)
        return

    expected = context.expected_sum_for(header_name)
    if expected is None:
        _missing_expectation(context, issues, models.MISSING_EXPECTED_SUM,
                             "No expected sum available.", header_name)
        return

    scaled_actual = scale_decimal(actual_sum, context.sum_scale)
    scaled_expected = scale_decimal(expected, context.sum_scale)
    delta = abs(scaled_actual - scaled_expected)

    if delta > context.sum_tolerance:
        logger.warning("Sum mismatch for header '%s': expected=%s, actual=%s, tolerance=%s, delta=%s",
                       header_name, scaled_expected, scaled_actual, context.sum_tolerance, delta)
        issues.append(ValidationIssue(
            models.SUM_MISMATCH,
            "Sum check failed.",
            header_name,
            f"expected={scaled_expected}, actual={scaled_actual}, "
            f"tolerance={context.sum_tolerance}, delta={delta}",
        ))
        return

    logger.debug("Sum check passed for header '%s': expected=%s, actual=%s, tolerance=%s",
                 header_name, scaled_expected, scaled_actual, context.sum_tolerance)


def check_structure(merged: MergeResult, context: ValidationContext) -> List[ValidationIssue]:
    """
    Structural pass plus expectation checks for every header group.

    An invalid header or a missing group map is reported and that entry is
    skipped; the remaining headers are still checked in full.
    """
    issues: List[ValidationIssue] = []

    for header, grouped_rows in merged.items():
        header_name = header_name_of(header)
        if header_name is None:
            logger.warning("Invalid header group detected: header or header name is missing.")
            issues.append(ValidationIssue(
                models.INVALID_HEADER,
                "Header must not be null and must have a name.",
                getattr(header, "name", None),
                f"header={header!r}",
            ))
            continue

        if grouped_rows is None:
            logger.warning("Header '%s' has null grouped rows.", header_name)
            issues.append(ValidationIssue(
                models.EMPTY_GROUP,
                "No grouped data found for header.",
                header_name,
                "groupedRows=None",
            ))
            continue

        actual_row_count = 0
        actual_sum = Decimal(0)

        for key, aggregation in grouped_rows.items():
            if aggregation is None:
                logger.warning("Header '%s' has null aggregation for key %s.", header_name, key)
                issues.append(ValidationIssue(
                    models.NULL_AGGREGATION,
                    "AggregationResult must not be null.",
                    header_name,
                    f"key={list(key)}",
                ))
                continue

            row_count = aggregation.row_count
            sum_value = aggregation.sum_value

            if row_count < 1:
                logger.warning("Header '%s' has invalid rowCount %s for key %s.",
                               header_name, row_count, key)
                issues.append(ValidationIssue(
                    models.INVALID_ROW_COUNT,
                    "AggregationResult.rowCount must be >= 1.",
                    header_name,
                    f"key={list(key)}, rowCount={row_count}",
                ))

            if sum_value is None:
                logger.warning("Header '%s' has null sumValue for key %s.", header_name, key)
                issues.append(ValidationIssue(
                    models.NULL_SUM_VALUE,
                    "AggregationResult.sumValue must not be null.",
                    header_name,
                    f"key={list(key)}",
                ))
            else:
                actual_sum += sum_value

            actual_row_count += max(row_count, 0)

        check_row_count(header_name, actual_row_count, context, issues)
        check_sum(header, header_name, actual_sum, context, issues)

    return issues


def validate_merge(
    merged: Optional[MergeResult],
    context: Optional[ValidationContext] = None,
    paths: Sequence = (),
    headers: Optional[HeaderCatalog] = None,
) -> ValidationReport:
    """
    Validate a merge result.

    Args:
        merged: result of merge_files.
        context: expectations and tolerances; defaults apply when None.
        paths: source files, only read when the reference pass is enabled.
        headers: catalog used for the reference pass.

    Returns:
        A ValidationReport, valid exactly when no issue was found.
    """
    context = context or ValidationContext()

    if not merged:
        logger.warning("Merge validation called with empty merged result.")
        return ValidationReport.from_issues([ValidationIssue(
            models.EMPTY_MERGED_DATA,
            "No aggregated data available for validation.",
        )])

    logger.info("Start merge validation for %d header groups.", len(merged))
    issues = check_structure(merged, context)

    if context.enable_reference_aggregation:
        issues.extend(compare_with_reference(merged, paths, headers, context))

    report = ValidationReport.from_issues(issues)
    logger.info("Merge validation finished. valid=%s, issues=%d", report.valid, len(report.issues))
    return report

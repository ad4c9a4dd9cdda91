# listmerge/formatter.py
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import List, Set, Tuple

import pandas as pd

from .merge_service import locate_sum_column
from .models import GroupMap, HeaderDefinition, MergeResult, ValidationReport

logger = logging.getLogger(__name__)

EXPORT_FILE_NAME = "merged.xlsx"
REPORT_FILE_NAME = "merged.validation.json"
COUNT_COLUMN = "Count"
MAX_SHEET_NAME = 31


def safe_sheet_name(name, taken: Set[str]) -> str:
    cleaned = re.sub(r"[:\\/?*\[\]]", "_", (name or "").strip())
    if not cleaned:
        cleaned = "Sheet"
    cleaned = cleaned[:MAX_SHEET_NAME]

    candidate, counter = cleaned, 2
    while candidate.lower() in taken:
        suffix = f"_{counter}"
        candidate = cleaned[:MAX_SHEET_NAME - len(suffix)] + suffix
        counter += 1
    taken.add(candidate.lower())
    return candidate


def export_columns(header: HeaderDefinition) -> List[str]:
    """Template labels without the sum column, then Count, then the sum label."""
    if not header.headers:
        return []
    sum_index = locate_sum_column(header)
    columns = [label for idx, label in enumerate(header.headers) if idx != sum_index]
    columns.append(COUNT_COLUMN)
    if sum_index >= 0:
        columns.append(header.sum_column)
    return columns


def build_export_table(header: HeaderDefinition, groups: GroupMap) -> pd.DataFrame:
    """
    One export section as a DataFrame.

    Rows are ordered by descending sum, or by descending count when the
    template has no sum column.
    """
    has_sum = locate_sum_column(header) >= 0
    if has_sum:
        ordered = sorted(groups.items(), key=lambda kv: (-kv[1].sum_value, kv[0]))
    else:
        ordered = sorted(groups.items(), key=lambda kv: (-kv[1].row_count, kv[0]))

    records = []
    for key, aggregation in ordered:
        tail = [aggregation.row_count]
        if has_sum:
            tail.append(float(aggregation.sum_value))
        records.append((list(key), tail))

    key_width = max((len(k) for k, _ in records), default=0)
    labels = export_columns(header)
    tail_width = 2 if has_sum else 1
    label_key_width = max(len(labels) - tail_width, 0)
    key_width = max(key_width, label_key_width)

    rows = [k + [""] * (key_width - len(k)) + tail for k, tail in records]
    if labels:
        key_labels = labels[:label_key_width]
        key_labels += [f"Column {i + 1}" for i in range(len(key_labels), key_width)]
        columns = key_labels + labels[label_key_width:]
    else:
        columns = [f"Column {i + 1}" for i in range(key_width)] + [COUNT_COLUMN]
    return pd.DataFrame(rows, columns=columns)


def ordered_sections(merged: MergeResult) -> List[Tuple[HeaderDefinition, GroupMap]]:
    return sorted(merged.items(), key=lambda kv: (kv[0].name or "").lower())


def export_merge_result(merged: MergeResult, output_dir) -> Path:
    """
    Write one sheet per header template to <output_dir>/merged.xlsx.

    The workbook is built in a temporary file next to the target and moved into
    place only once complete, so an aborted export leaves no output file.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / EXPORT_FILE_NAME

    fd, tmp_name = tempfile.mkstemp(prefix=".merged-", suffix=".xlsx", dir=output_dir)
    os.close(fd)
    try:
        taken: Set[str] = set()
        with pd.ExcelWriter(tmp_name, engine="openpyxl") as writer:
            sections = ordered_sections(merged)
            if not sections:
                pd.DataFrame().to_excel(writer, sheet_name="Merged", index=False)
            for header, groups in sections:
                table = build_export_table(header, groups or {})
                table.to_excel(
                    writer,
                    sheet_name=safe_sheet_name(header.name, taken),
                    index=False,
                    header=bool(header.headers),
                )
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise

    logger.info("Exported %d sections to %s", len(merged), target)
    return target


def write_validation_report(report: ValidationReport, output_dir) -> Path:
    """Persist the report as {valid, issues: [{code, message, headerName, details}]}."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / REPORT_FILE_NAME
    with path.open("w", encoding="utf-8") as fh:
        json.dump(report.to_dict(), fh, indent=2, ensure_ascii=False)
    return path

# listmerge/config.py

"""
Job settings, the expectations file format, and logging setup.
"""
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Optional

from .errors import ListMergeError
from .headers import DEFAULT_EXTERNAL_DIR
from .models import DEFAULT_SUM_SCALE, DEFAULT_SUM_TOLERANCE, ValidationContext

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class MergeSettings:
    output_dir:                    str
    headers_dir:                   Optional[str]     = DEFAULT_EXTERNAL_DIR
    continue_on_validation_errors: bool              = False
    write_validation_report:       bool              = False
    validation_context:            ValidationContext = field(default_factory=ValidationContext)


def load_validation_context(path) -> ValidationContext:
    """
    Read an expectations document:

        {
          "expectedRowCounts": {"Main": 2},
          "expectedSums": {"Main": "15.00"},
          "sumTolerance": "0.01",
          "sumScale": 2,
          "treatMissingExpectationsAsWarning": true,
          "enableReferenceAggregation": false
        }

    Every field is optional. Sums may be given as numbers or strings.
    """
    try:
        with Path(path).open(encoding="utf-8") as fh:
            doc = json.load(fh, parse_float=Decimal)
    except (OSError, json.JSONDecodeError) as exc:
        raise ListMergeError(f"Cannot read expectations file '{path}': {exc}") from exc

    if not isinstance(doc, dict):
        raise ListMergeError(f"Expectations file '{path}' must contain an object")

    try:
        return ValidationContext(
            expected_row_counts=doc.get("expectedRowCounts") or {},
            expected_sums=doc.get("expectedSums") or {},
            sum_tolerance=doc.get("sumTolerance", DEFAULT_SUM_TOLERANCE),
            sum_scale=int(doc.get("sumScale", DEFAULT_SUM_SCALE)),
            treat_missing_expectations_as_warning=bool(doc.get("treatMissingExpectationsAsWarning", True)),
            enable_reference_aggregation=bool(doc.get("enableReferenceAggregation", False)),
        )
    except (TypeError, ValueError) as exc:
        raise ListMergeError(f"Invalid expectations file '{path}': {exc}") from exc


def configure_logging(level: str = "INFO", verbose: bool = False) -> logging.Logger:
    """Attach a console handler to the package logger once."""
    logger = logging.getLogger("listmerge")
    logger.setLevel(logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger

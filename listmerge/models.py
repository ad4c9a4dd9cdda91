# listmerge/models.py

"""
Value objects shared by the merge and validation stages.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

# Stable issue codes
EMPTY_MERGED_DATA = "EMPTY_MERGED_DATA"
INVALID_HEADER = "INVALID_HEADER"
EMPTY_GROUP = "EMPTY_GROUP"
NULL_AGGREGATION = "NULL_AGGREGATION"
INVALID_ROW_COUNT = "INVALID_ROW_COUNT"
NULL_SUM_VALUE = "NULL_SUM_VALUE"
COUNT_MISMATCH = "COUNT_MISMATCH"
SUM_MISMATCH = "SUM_MISMATCH"
MISSING_EXPECTED_ROW_COUNT = "MISSING_EXPECTED_ROW_COUNT"
MISSING_EXPECTED_SUM = "MISSING_EXPECTED_SUM"
REFERENCE_MISSING_KEY = "REFERENCE_MISSING_KEY"
REFERENCE_COUNT_MISMATCH = "REFERENCE_COUNT_MISMATCH"
REFERENCE_SUM_MISMATCH = "REFERENCE_SUM_MISMATCH"
REFERENCE_PATH_ERROR = "REFERENCE_PATH_ERROR"

DEFAULT_SUM_TOLERANCE = Decimal("0.01")
DEFAULT_SUM_SCALE = 2


def scale_decimal(value: Decimal, scale: int) -> Decimal:
    """Round to ``scale`` fractional digits, half-up."""
    return value.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_UP)


def header_name_of(header) -> Optional[str]:
    """The header's name, or None when the header or its name is missing/blank."""
    name = getattr(header, "name", None)
    if name is None or not str(name).strip():
        return None
    return name


def to_decimal(value) -> Decimal:
    """Converts ints, strings and Decimals to Decimal without going through float."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal number: {value!r}") from exc


class HeaderPosition(Enum):
    FIRST = "FIRST"
    LAST = "LAST"

    @classmethod
    def parse(cls, value: Optional[str]) -> "HeaderPosition":
        if isinstance(value, HeaderPosition):
            return value
        if value is None or not str(value).strip():
            return cls.FIRST
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown header position: {value!r}") from None


def _as_tuple(values: Optional[Iterable[Optional[str]]]) -> Tuple[str, ...]:
    if values is None:
        return ()
    return tuple("" if v is None else str(v) for v in values)


@dataclass(frozen=True)
class HeaderDefinition:
    """
    Named column layout of a source file.

    Collections are copied into tuples on construction, so instances are
    hashable and can key the merge result.
    """
    name: Optional[str]
    headers: Tuple[str, ...] = ()
    header_aliases: Tuple[Tuple[str, ...], ...] = ()
    header_position: HeaderPosition = HeaderPosition.FIRST
    sum_column: Optional[str] = None
    sum_pattern: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "headers", _as_tuple(self.headers))
        aliases = self.header_aliases or ()
        object.__setattr__(self, "header_aliases", tuple(_as_tuple(a) for a in aliases))
        object.__setattr__(self, "header_position", HeaderPosition.parse(self.header_position))

    @property
    def has_sum_column(self) -> bool:
        return bool(self.sum_column and self.sum_column.strip())

    @classmethod
    def placeholder(cls, name: str) -> "HeaderDefinition":
        return cls(name=name)


@dataclass(frozen=True)
class AggregationResult:
    row_count: int = 1
    sum_value: Decimal = Decimal(0)

    def __post_init__(self):
        if self.sum_value is None:
            object.__setattr__(self, "sum_value", Decimal(0))
        elif not isinstance(self.sum_value, Decimal):
            object.__setattr__(self, "sum_value", to_decimal(self.sum_value))

    def add(self, other: "AggregationResult") -> "AggregationResult":
        return AggregationResult(self.row_count + other.row_count, self.sum_value + other.sum_value)

    __add__ = add


GroupKey = Tuple[str, ...]
GroupMap = Dict[GroupKey, AggregationResult]
MergeResult = Dict[HeaderDefinition, GroupMap]


@dataclass(frozen=True)
class ValidationContext:
    """Expected values and comparison parameters for one validation run."""
    expected_row_counts: Mapping[str, int] = field(default_factory=dict)
    expected_sums: Mapping[str, Decimal] = field(default_factory=dict)
    sum_tolerance: Decimal = DEFAULT_SUM_TOLERANCE
    sum_scale: int = DEFAULT_SUM_SCALE
    treat_missing_expectations_as_warning: bool = True
    enable_reference_aggregation: bool = False

    def __post_init__(self):
        object.__setattr__(self, "expected_row_counts",
                           {k: int(v) for k, v in (self.expected_row_counts or {}).items()})
        object.__setattr__(self, "expected_sums",
                           {k: to_decimal(v) for k, v in (self.expected_sums or {}).items()})
        tolerance = DEFAULT_SUM_TOLERANCE if self.sum_tolerance is None else to_decimal(self.sum_tolerance)
        object.__setattr__(self, "sum_tolerance", abs(tolerance))
        if self.sum_scale is None or self.sum_scale < 0:
            object.__setattr__(self, "sum_scale", DEFAULT_SUM_SCALE)

    def expected_rows_for(self, header_name: Optional[str]) -> Optional[int]:
        if header_name is None:
            return None
        return self.expected_row_counts.get(header_name)

    def expected_sum_for(self, header_name: Optional[str]) -> Optional[Decimal]:
        if header_name is None:
            return None
        return self.expected_sums.get(header_name)


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str
    header_name: Optional[str] = None
    details: Optional[str] = None

    def __post_init__(self):
        for attr in ("code", "message"):
            value = getattr(self, attr)
            if value is None or not str(value).strip():
                raise ValueError(f"{attr} must not be blank")

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "code": self.code,
            "message": self.message,
            "headerName": self.header_name,
            "details": self.details,
        }


@dataclass(frozen=True)
class ValidationReport:
    valid: bool
    issues: Tuple[ValidationIssue, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "issues", tuple(self.issues or ()))
        if self.valid == bool(self.issues):
            raise ValueError("A report is valid exactly when it has no issues")

    @classmethod
    def from_issues(cls, issues: Sequence[ValidationIssue]) -> "ValidationReport":
        return cls(valid=not issues, issues=tuple(issues))

    @property
    def codes(self) -> List[str]:
        return [issue.code for issue in self.issues]

    def to_dict(self) -> Dict:
        return {"valid": self.valid, "issues": [issue.to_dict() for issue in self.issues]}

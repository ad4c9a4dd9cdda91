# listmerge/__init__.py

from .config        import MergeSettings, configure_logging, load_validation_context
from .errors        import FormatError, UnsupportedFormatError, ValidationAbortedError, ValidationFailedError
from .formatter     import export_merge_result, write_validation_report
from .headers       import HeaderCatalog, load_header_catalog
from .merge_service import merge_files
from .merger        import MergeJob, MergerFacade
from .models        import (
    AggregationResult,
    HeaderDefinition,
    HeaderPosition,
    ValidationContext,
    ValidationIssue,
    ValidationReport,
)
from .reader        import read_rows
from .resolver      import choose_header
from .validators    import validate_merge

__all__ = [
    "AggregationResult",
    "FormatError",
    "HeaderCatalog",
    "HeaderDefinition",
    "HeaderPosition",
    "MergeJob",
    "MergeSettings",
    "MergerFacade",
    "UnsupportedFormatError",
    "ValidationAbortedError",
    "ValidationContext",
    "ValidationFailedError",
    "ValidationIssue",
    "ValidationReport",
    "choose_header",
    "configure_logging",
    "export_merge_result",
    "load_header_catalog",
    "load_validation_context",
    "merge_files",
    "read_rows",
    "validate_merge",
    "write_validation_report",
]

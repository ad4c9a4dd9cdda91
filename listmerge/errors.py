# listmerge/errors.py

"""Exceptions raised by the merge pipeline."""


class ListMergeError(Exception):
    """Base class for all listmerge errors."""


class FormatError(ListMergeError):
    """A source file could not be read. Always aborts the job."""

    def __init__(self, path, reason: str = ""):
        self.path = str(path)
        message = f"Cannot read '{self.path}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnsupportedFormatError(FormatError):
    def __init__(self, path):
        super().__init__(path, "unsupported file type")


class HeaderCatalogError(ListMergeError, ValueError):
    """A header document is missing required fields or is malformed."""


class ValidationFailedError(ListMergeError):
    """The validation report is invalid and export was withheld."""

    def __init__(self, summary: str, report=None):
        super().__init__(f"{summary} Export aborted.")
        self.report = report


class ValidationAbortedError(ListMergeError):
    """The validator itself failed; the result must not be treated as clean."""

    def __init__(self):
        super().__init__("Validation failed. Export is aborted for safety reasons.")


class JobCancelledError(ListMergeError):
    pass

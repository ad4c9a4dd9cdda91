# listmerge/merger.py

"""
Facade for list merging: orchestrates header loading, merging, validation and
export, either inline or as a cancellable job on a worker thread.
"""
import logging
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .config import MergeSettings
from .errors import JobCancelledError, ValidationAbortedError, ValidationFailedError
from .formatter import export_merge_result, write_validation_report
from .headers import HeaderCatalog, load_header_catalog
from .merge_service import merge_files
from .models import MergeResult, ValidationIssue, ValidationReport
from .validators import validate_merge

logger = logging.getLogger(__name__)

STAGE_COUNT = 4
VALIDATION_MESSAGE_LIMIT = 3

ProgressCallback = Callable[[int, int, str], None]


@dataclass(frozen=True)
class JobResult:
    output_path:  Path
    report:       ValidationReport
    summary:      str
    report_path:  Optional[Path] = None


@dataclass(frozen=True)
class JobEvent:
    kind:    str              # "progress", "done", "failed" or "cancelled"
    stage:   int
    total:   int
    message: str
    result:  Optional[JobResult]    = None
    error:   Optional[BaseException] = None

    @property
    def terminal(self) -> bool:
        return self.kind != "progress"


def _readable_issue(issue: ValidationIssue) -> str:
    header = f" [{issue.header_name}]" if issue.header_name and issue.header_name.strip() else ""
    return f"{issue.code}{header}: {issue.message}"


def summarize_report(report: Optional[ValidationReport]) -> str:
    """One status line: OK, or the issue count plus the first few issues."""
    if report is None:
        return "Validation: no result available."
    if report.valid:
        return "Validation: OK (0 issues)."

    top = " | ".join(_readable_issue(i) for i in report.issues[:VALIDATION_MESSAGE_LIMIT])
    suffix = " | …" if len(report.issues) > VALIDATION_MESSAGE_LIMIT else ""
    return f"Validation: ERROR ({len(report.issues)} issues). {top}{suffix}"


class MergerFacade:
    """
    High-level facade running the four pipeline stages in order.
    """

    @staticmethod
    def run_merge(
        paths: Sequence,
        settings: MergeSettings,
        catalog: Optional[HeaderCatalog] = None,
        *,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> JobResult:

        def report_progress(stage: int, message: str) -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise JobCancelledError(f"Cancelled before: {message}")
            logger.info("[%d/%d] %s", stage, STAGE_COUNT, message)
            if progress:
                progress(stage, STAGE_COUNT, message)

        # 1) Header templates
        report_progress(0, "Loading headers...")
        if catalog is None:
            catalog = load_header_catalog(settings.headers_dir)

        # 2) Merge, one file at a time
        report_progress(1, "Merging files...")
        merged = merge_files(paths, catalog)

        # 3) Validation
        report_progress(2, "Validating merge result...")
        report = MergerFacade._run_validation(merged, settings, paths, catalog)
        summary = summarize_report(report)

        report_path = None
        if settings.write_validation_report:
            report_path = write_validation_report(report, settings.output_dir)
            logger.info("Validation report written to %s", report_path)

        if not report.valid:
            if not settings.continue_on_validation_errors:
                raise ValidationFailedError(summary, report)
            logger.warning("%s Continuing in warning mode.", summary)

        # 4) Export
        report_progress(3, "Exporting...")
        output_path = export_merge_result(merged, settings.output_dir)

        status = f"Done: {output_path.name} | {summary}"
        if report_path is not None:
            status = f"{status} | Report: {report_path}"
        if progress:
            progress(STAGE_COUNT, STAGE_COUNT, status)

        return JobResult(output_path=output_path, report=report, summary=summary, report_path=report_path)

    @staticmethod
    def _run_validation(
        merged: MergeResult,
        settings: MergeSettings,
        paths: Sequence,
        catalog: HeaderCatalog,
    ) -> ValidationReport:
        try:
            report = validate_merge(merged, settings.validation_context, paths, catalog)
        except Exception as exc:
            logger.exception("Validator raised unexpectedly")
            raise ValidationAbortedError() from exc
        logger.info("Merge validation completed: valid=%s, issues=%d", report.valid, len(report.issues))
        return report


class MergeJob:
    """
    Runs MergerFacade.run_merge on a dedicated worker thread.

    The caller polls ``events`` (or ``poll()``) for JobEvents; the last event
    is "done", "failed" or "cancelled". Nothing else is shared with the worker.
    """

    def __init__(self, paths: Sequence, settings: MergeSettings, catalog: Optional[HeaderCatalog] = None):
        self.paths = list(paths)
        self.settings = settings
        self.catalog = catalog
        self.events: "queue.Queue[JobEvent]" = queue.Queue()
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stage = 0

    def start(self) -> "MergeJob":
        if self._thread is not None:
            raise RuntimeError("Job already started")
        self._thread = threading.Thread(target=self._run, name="merge-job", daemon=True)
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll(self) -> List[JobEvent]:
        """All events published since the last poll, without blocking."""
        drained = []
        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                return drained

    def _publish(self, stage: int, total: int, message: str) -> None:
        self._stage = stage
        self.events.put(JobEvent("progress", stage, total, message))

    def _run(self) -> None:
        try:
            result = MergerFacade.run_merge(
                self.paths,
                self.settings,
                self.catalog,
                progress=self._publish,
                cancel_event=self._cancel,
            )
        except JobCancelledError as exc:
            logger.info("Merge job cancelled: %s", exc)
            self.events.put(JobEvent("cancelled", self._stage, STAGE_COUNT, "Cancelled.", error=exc))
        except Exception as exc:
            logger.exception("Merge job failed")
            self.events.put(JobEvent("failed", self._stage, STAGE_COUNT, str(exc), error=exc))
        else:
            self.events.put(JobEvent("done", STAGE_COUNT, STAGE_COUNT, result.summary, result=result))

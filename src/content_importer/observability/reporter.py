"""Import Report Generator.

Builds a structured report from an ImportRunResult and writes it as JSON.
Rows that did not make it into the repository can also be written back out
as CSV, with the original columns plus the failure cause, ready to be fixed
and uploaded again.
"""

import csv
import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import structlog

from ..models.results import ImportRunResult, ItemOperation, MediaImportRunResult

logger = structlog.get_logger(__name__)

FAILURE_COLUMN = "importError"
MEDIA_RESULT_COLUMNS = (
    "bulkUploadSuccess",
    "bulkUploadMediaGuid",
    "bulkUploadMediaToken",
    FAILURE_COLUMN,
)


@dataclass
class ImportReport:
    """
    Structured report data for an import run.

    Attributes:
        run_id: Run identifier
        status: Final status (completed, partial, failed)
        source: Uploaded file (CSV or ZIP)
        start_time: Start timestamp
        end_time: End timestamp
        duration_seconds: Total duration
        total_records: Records read from the input
        created: Items created
        updated: Items updated
        failed: Items that reached creation and failed
        hierarchy_excluded: Objects excluded by hierarchy resolution
        rejected: Records without a name or content type
        media_created: Distinct media items created
        media_failed: Distinct media references that could not be created
        success_rate: Percentage of records imported
        files: Per input file counts
        errors: One entry per failed, excluded or rejected row
        warnings: One entry per row with warnings
    """

    run_id: str
    status: str
    source: str
    start_time: str
    end_time: str
    duration_seconds: float
    total_records: int
    created: int
    updated: int
    failed: int
    hierarchy_excluded: int
    rejected: int
    media_created: int
    media_failed: int
    success_rate: float
    files: dict[str, dict[str, int]] = field(default_factory=dict)
    errors: list[dict[str, Any]] = field(default_factory=list)
    warnings: list[dict[str, Any]] = field(default_factory=list)


class ReportGenerator:
    """Generate reports for import runs."""

    def generate_report(self, result: ImportRunResult, source: Path | str) -> ImportReport:
        """
        Generate report object from a run result.

        Args:
            result: Result of the run
            source: File the records were read from

        Returns:
            ImportReport object
        """
        counts = result.counts()
        errors: list[dict[str, Any]] = []
        warnings: list[dict[str, Any]] = []
        files: dict[str, dict[str, int]] = {}

        def bump(source_file: str | None, key: str) -> None:
            per_file = files.setdefault(
                source_file or "<input>",
                {"created": 0, "updated": 0, "failed": 0, "excluded": 0},
            )
            per_file[key] += 1

        for item in result.ordered_results:
            if item.success:
                bump(
                    item.source_file,
                    "updated" if item.operation == ItemOperation.UPDATE else "created",
                )
            else:
                bump(item.source_file, "failed")
                errors.append(
                    {
                        "source_file": item.source_file,
                        "row": item.row_number,
                        "name": item.name,
                        "legacy_id": item.legacy_id,
                        "stage": "create",
                        "error_kind": item.error_kind,
                        "error": item.error_message,
                    }
                )
            if item.warnings:
                warnings.append(
                    {
                        "source_file": item.source_file,
                        "row": item.row_number,
                        "name": item.name,
                        "warnings": list(item.warnings),
                    }
                )

        for failure in result.hierarchy_failures:
            bump(failure.item.source_file, "excluded")
            errors.append(
                {
                    "source_file": failure.item.source_file,
                    "row": failure.item.row_number,
                    "name": failure.item.name,
                    "legacy_id": failure.item.legacy_id,
                    "stage": "hierarchy",
                    "error_kind": failure.reason.value,
                    "error": failure.message,
                }
            )

        for obj in result.rejected:
            bump(obj.source_file, "excluded")
            errors.append(
                {
                    "source_file": obj.source_file,
                    "row": obj.row_number,
                    "name": obj.name or None,
                    "legacy_id": obj.legacy_id,
                    "stage": "translate",
                    "error_kind": "missing_required",
                    "error": "Name and content type are required",
                }
            )

        status = "completed"
        if not result.is_complete_success:
            status = "partial" if result.succeeded > 0 else "failed"

        return ImportReport(
            run_id=result.run_id,
            status=status,
            source=str(source),
            start_time=result.started_at.isoformat() if result.started_at else "",
            end_time=result.completed_at.isoformat() if result.completed_at else "",
            duration_seconds=result.duration_seconds,
            total_records=len(result.ordered_results) + result.excluded,
            created=counts["created"],
            updated=counts["updated"],
            failed=counts["failed"],
            hierarchy_excluded=counts["hierarchy_excluded"],
            rejected=counts["rejected"],
            media_created=counts["media_created"],
            media_failed=counts["media_failed"],
            success_rate=round(result.success_rate, 2),
            files=files,
            errors=errors,
            warnings=warnings,
        )

    def write_json_report(self, report: ImportReport, output_path: Path) -> None:
        """
        Write report as JSON.

        Args:
            report: Import report
            output_path: Output file path
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(asdict(report), f, indent=2)

        logger.info("JSON report written", path=str(output_path))

    def write_failed_rows(self, result: ImportRunResult, output_path: Path) -> int:
        """
        Write every row that was not imported back out as CSV.

        The original columns are kept in first-seen order, followed by an
        importError column holding the cause.

        Args:
            result: Result of the run
            output_path: Output file path

        Returns:
            int: Number of rows written
        """
        rows: list[tuple[dict[str, str], str]] = []
        for item in result.ordered_results:
            if not item.success:
                rows.append((item.original_record, item.error_message or "unknown error"))
        for failure in result.hierarchy_failures:
            rows.append((failure.item.original_record, failure.message))
        for obj in result.rejected:
            rows.append((obj.original_record, "Name and content type are required"))

        if not rows:
            logger.debug("No failed rows to write")
            return 0

        headers: list[str] = []
        for record, _ in rows:
            headers.extend(h for h in record if h not in headers)
        headers.append(FAILURE_COLUMN)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=headers, restval="")
            writer.writeheader()
            for record, error in rows:
                writer.writerow({**record, FAILURE_COLUMN: error})

        logger.info("Failed rows written", path=str(output_path), rows=len(rows))
        return len(rows)

    def write_media_results(self, result: MediaImportRunResult, output_path: Path) -> int:
        """
        Write every media row back out with the outcome appended.

        Successful rows carry the GUID and token of the stored item so the
        file can be fed back in with bulkUploadShouldUpdate set.

        Returns:
            int: Number of rows written
        """
        headers: list[str] = []
        for item in result.results:
            headers.extend(h for h in item.original_record if h not in headers)
        headers = [h for h in headers if h not in MEDIA_RESULT_COLUMNS]
        headers.extend(MEDIA_RESULT_COLUMNS)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=headers, restval="")
            writer.writeheader()
            for item in result.results:
                writer.writerow(
                    {
                        **item.original_record,
                        "bulkUploadSuccess": "true" if item.success else "false",
                        "bulkUploadMediaGuid": (
                            str(item.media_guid)
                            if item.media_guid
                            else item.original_record.get("bulkUploadMediaGuid", "")
                        ),
                        "bulkUploadMediaToken": item.media_token or "",
                        FAILURE_COLUMN: item.error_message or "",
                    }
                )

        logger.info("Media results written", path=str(output_path), rows=len(result.results))
        return len(result.results)

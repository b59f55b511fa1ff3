"""CSV and ZIP batch reader.

Overview:
--------
Turns input files into raw records for the pipeline. The reader knows
nothing about resolvers or reserved columns; it only produces
header -> cell mappings.

Inputs:
------
1. A single CSV file. The first non-comment line holds the headers.

2. A ZIP archive holding one or more CSV files plus media files. Each CSV
   becomes its own file in the batch (imported in name order); every other
   entry is kept as an archive entry for the zipFileToStream resolver.

Format Details:
--------------
- UTF-8, with or without BOM
- One-line rows whose first cell starts with '#' and whose other cells are
  empty are comments. Quoted cells may contain '#' lines, and a data row may
  start with '#' as long as another cell has a value
- Completely empty rows are skipped
- Short rows are padded with empty cells, long rows are truncated (with a
  warning)
- Duplicate headers keep their first column
"""

import csv
import io
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

import structlog

from ..utils.exceptions import CSVReadError

logger = structlog.get_logger(__name__)


@dataclass
class CsvFile:
    """Records read from one CSV file, with the line each record came from."""

    name: str
    records: list[dict[str, str]] = field(default_factory=list)
    row_numbers: list[int] = field(default_factory=list)
    headers: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


@dataclass
class ImportBatch:
    """
    Everything one upload provides.

    Attributes:
        files: CSV files in import order
        archive_entries: Non-CSV files of a ZIP upload, keyed by entry name
        source: Path the batch was loaded from
        from_archive: Whether the batch came from a ZIP upload
    """

    files: list[CsvFile] = field(default_factory=list)
    archive_entries: dict[str, bytes] = field(default_factory=dict)
    source: str | None = None
    from_archive: bool = False

    @property
    def total_records(self) -> int:
        return sum(len(f) for f in self.files)


def parse_csv_text(text: str, name: str = "<input>", delimiter: str = ",") -> CsvFile:
    """
    Parse CSV text into records.

    Args:
        text: CSV content
        name: File name used in errors and reports
        delimiter: Field delimiter

    Returns:
        CsvFile with one record per data row

    Raises:
        CSVReadError: If the CSV is malformed
    """
    csv_file = CsvFile(name=name)
    if not text.strip():
        logger.warning("CSV file is empty", file=name)
        return csv_file

    reader = csv.reader(io.StringIO(text), delimiter=delimiter)

    headers: list[str] | None = None
    end_line = 0
    try:
        for row in reader:
            start_line, end_line = end_line + 1, reader.line_num

            if not row or all(not cell.strip() for cell in row):
                continue
            if start_line == end_line and _is_comment(row):
                continue

            if headers is None:
                headers = [h.strip() for h in row]
                csv_file.headers = headers
                _warn_duplicate_headers(headers, name)
                continue

            if len(row) > len(headers):
                logger.warning(
                    "Row has more cells than headers",
                    file=name,
                    line=start_line,
                    expected=len(headers),
                    actual=len(row),
                )
            cells = row[: len(headers)] + [""] * (len(headers) - len(row))

            record: dict[str, str] = {}
            for header, cell in zip(headers, cells, strict=True):
                record.setdefault(header, cell)

            csv_file.records.append(record)
            csv_file.row_numbers.append(start_line)
    except csv.Error as e:
        raise CSVReadError(str(e), line_number=reader.line_num, source_file=name) from e

    if headers is None:
        logger.warning("CSV file contains only comments", file=name)
    else:
        logger.info("CSV parsed", file=name, records=len(csv_file.records))
    return csv_file


def _is_comment(row: list[str]) -> bool:
    """A comment is a one-line row whose first cell starts with '#' and has nothing after it."""
    return row[0].lstrip().startswith("#") and all(not cell.strip() for cell in row[1:])

    line_numbers = [n for n, _ in kept]
    reader = csv.reader(io.StringIO("".join(line for _, line in kept)), delimiter=delimiter)

    headers: list[str] | None = None
    try:
        for row in reader:
            physical_line = line_numbers[min(reader.line_num, len(line_numbers)) - 1]

            if headers is None:
                if not row or all(not cell.strip() for cell in row):
                    continue
                headers = [h.strip() for h in row]
                csv_file.headers = headers
                _warn_duplicate_headers(headers, name)
                continue

            if not row or all(not cell.strip() for cell in row):
                continue

            if len(row) > len(headers):
                logger.warning(
                    "Row has more cells than headers",
                    file=name,
                    line=physical_line,
                    expected=len(headers),
                    actual=len(row),
                )
            cells = row[: len(headers)] + [""] * (len(headers) - len(row))

            record: dict[str, str] = {}
            for header, cell in zip(headers, cells, strict=True):
                record.setdefault(header, cell)

            csv_file.records.append(record)
            csv_file.row_numbers.append(physical_line)
    except csv.Error as e:
        raise CSVReadError(str(e), line_number=reader.line_num, source_file=name) from e

    logger.info("CSV parsed", file=name, records=len(csv_file.records))
    return csv_file


def _warn_duplicate_headers(headers: list[str], name: str) -> None:
    seen: set[str] = set()
    for header in headers:
        if header in seen:
            logger.warning("Duplicate column header, keeping first", file=name, header=header)
        seen.add(header)


def read_csv(path: Path, delimiter: str = ",") -> CsvFile:
    """
    Read one CSV file from disk.

    Raises:
        FileNotFoundError: If the file doesn't exist
        CSVReadError: If the file is not valid UTF-8 CSV
    """
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise CSVReadError(f"File is not UTF-8 encoded: {e}", source_file=path.name) from e

    return parse_csv_text(text, name=path.name, delimiter=delimiter)


def read_archive(path: Path, delimiter: str = ",") -> ImportBatch:
    """
    Read a ZIP upload.

    Raises:
        FileNotFoundError: If the archive doesn't exist
        CSVReadError: If the archive is corrupt, has no CSV file, or holds a bad CSV
    """
    if not path.exists():
        raise FileNotFoundError(f"Archive not found: {path}")

    batch = ImportBatch(source=str(path), from_archive=True)
    try:
        with zipfile.ZipFile(path) as archive:
            for info in sorted(archive.infolist(), key=lambda i: i.filename.casefold()):
                if info.is_dir() or PurePosixPath(info.filename).name.startswith("."):
                    continue
                data = archive.read(info)
                if info.filename.casefold().endswith(".csv"):
                    try:
                        text = data.decode("utf-8-sig")
                    except UnicodeDecodeError as e:
                        raise CSVReadError(
                            f"File is not UTF-8 encoded: {e}", source_file=info.filename
                        ) from e
                    batch.files.append(
                        parse_csv_text(text, name=info.filename, delimiter=delimiter)
                    )
                else:
                    batch.archive_entries[info.filename] = data
    except zipfile.BadZipFile as e:
        raise CSVReadError(f"Not a valid ZIP archive: {e}", source_file=path.name) from e

    if not batch.files:
        raise CSVReadError("Archive contains no CSV file", source_file=path.name)

    logger.info(
        "Archive read",
        archive=path.name,
        csv_files=len(batch.files),
        media_entries=len(batch.archive_entries),
    )
    return batch


def load_batch(path: Path, delimiter: str = ",") -> ImportBatch:
    """
    Load a CSV file or ZIP archive as a batch.

    Args:
        path: .csv or .zip file
        delimiter: CSV field delimiter

    Returns:
        ImportBatch ready for ImportPipeline.run_batch
    """
    if path.suffix.casefold() == ".zip":
        return read_archive(path, delimiter=delimiter)
    return ImportBatch(files=[read_csv(path, delimiter=delimiter)], source=str(path))

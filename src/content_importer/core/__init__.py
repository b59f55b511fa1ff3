"""Core components of the Content Importer.

This package contains header parsing, record translation and the CSV / ZIP
batch reader.
"""

from .column_spec import ColumnSpecParser, parse_column_header
from .reader import CsvFile, ImportBatch, load_batch, parse_csv_text, read_archive, read_csv
from .translator import RecordToObjectTranslator

__all__ = [
    "ColumnSpecParser",
    "CsvFile",
    "ImportBatch",
    "RecordToObjectTranslator",
    "load_batch",
    "parse_column_header",
    "parse_csv_text",
    "read_archive",
    "read_csv",
]

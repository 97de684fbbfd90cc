"""Utility modules for the ingest pipeline.

Includes:
- Logging configuration
- Structured pipeline logging
- CSV parsing, serialization and file export
"""

from .logging_config import setup_logging
from .file_io import (
    MalformedCsvRow,
    ParseResult,
    parse_csv_text,
    read_csv_file,
    to_csv,
    write_csv,
    write_parquet,
)
from .pipeline_logger import PipelineLogger, timed_operation

__all__ = [
    "setup_logging",
    "MalformedCsvRow",
    "ParseResult",
    "parse_csv_text",
    "read_csv_file",
    "to_csv",
    "write_csv",
    "write_parquet",
    "PipelineLogger",
    "timed_operation",
]

"""CSV parsing/serialization and file export helpers."""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from trainset_ingest.transform.coerce import format_scalar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MalformedCsvRow:
    """A data line whose shape does not match the header line."""

    line_number: int
    message: str

    def __str__(self) -> str:
        return f"Line {self.line_number}: {self.message}"


@dataclass
class ParseResult:
    """Rows parsed from CSV text plus any per-row problems."""

    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)
    malformed: list[MalformedCsvRow] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [str(m) for m in self.malformed]


def _is_blank(cells: list[str]) -> bool:
    return not any(cell.strip() for cell in cells)


def parse_csv_text(text: str) -> ParseResult:
    """Parse comma-delimited text whose first line holds the headers.

    Headers are trimmed and blank lines skipped. A row with too many or too
    few fields is still returned (extra cells dropped, missing cells absent)
    and reported as a MalformedCsvRow. A record the reader cannot parse at
    all (e.g. a cell over the csv field size limit) is reported and skipped.

    Args:
        text: CSV content

    Returns:
        ParseResult with header list, row mappings and malformed-row reports
    """
    result = ParseResult()
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))

    while True:
        # A reader error costs only the record being read
        try:
            cells = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            result.malformed.append(MalformedCsvRow(reader.line_num, str(e)))
            continue

        if _is_blank(cells):
            continue

        if not result.headers:
            result.headers = [h.strip() for h in cells]
            continue

        width = len(result.headers)
        if len(cells) != width:
            problem = "too few fields" if len(cells) < width else "too many fields"
            result.malformed.append(
                MalformedCsvRow(
                    reader.line_num,
                    f"expected {width} fields but parsed {len(cells)} ({problem})",
                )
            )

        result.rows.append(dict(zip(result.headers, cells)))

    if result.malformed:
        logger.warning(
            f"Parsed CSV with {len(result.malformed)} malformed rows",
            extra={"row_count": len(result.rows), "malformed_count": len(result.malformed)}
        )

    return result


def read_csv_file(file_path: Union[str, Path]) -> ParseResult:
    """Read and parse a CSV file (a UTF-8 BOM is tolerated)."""
    with open(file_path, "r", encoding="utf-8-sig", newline="") as f:
        result = parse_csv_text(f.read())

    logger.debug(f"Read {len(result.rows)} rows from {file_path}")
    return result


def to_csv(rows: list[dict[str, Any]], headers: list[str]) -> str:
    """Serialize rows to CSV text in the given column order.

    Cells with commas, quotes or newlines are quoted (quotes doubled);
    missing values become empty cells.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([format_scalar(row.get(h)) for h in headers])
    return buf.getvalue()


def write_csv(
    rows: list[dict[str, Any]],
    headers: list[str],
    output_path: Union[str, Path],
) -> dict:
    """Write rows to a CSV file.

    Args:
        rows: Rows to write
        headers: Column order
        output_path: Output file path

    Returns:
        Metadata dict with file info
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8", newline="") as f:
        f.write(to_csv(rows, headers))

    metadata = {
        "file_path": str(output_path),
        "written_at": datetime.now(timezone.utc).isoformat(),
        "record_count": len(rows),
        "column_count": len(headers),
        "file_size_bytes": output_path.stat().st_size,
    }

    logger.info(
        f"Wrote {len(rows)} rows to {output_path}",
        extra=metadata
    )

    return metadata


def write_parquet(
    rows: list[dict[str, Any]],
    headers: list[str],
    output_path: Union[str, Path],
) -> dict:
    """Write rows to a Parquet file.

    Requires pyarrow to be installed. Columns mixing value types are
    stored as text.

    Args:
        rows: Rows to write
        headers: Column order
        output_path: Output file path

    Returns:
        Metadata dict with file info
    """
    try:
        import pyarrow as pa
        import pyarrow.parquet as pq
    except ImportError:
        raise ImportError("pyarrow is required for Parquet support")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    columns = {}
    for header in headers:
        values: list[Optional[Any]] = [
            None if row.get(header) in (None, "") else row.get(header) for row in rows
        ]
        try:
            columns[header] = pa.array(values)
        except (pa.ArrowInvalid, pa.ArrowTypeError):
            columns[header] = pa.array(
                [None if v is None else format_scalar(v) for v in values],
                type=pa.string(),
            )

    table = pa.table(columns)
    pq.write_table(table, output_path)

    metadata = {
        "file_path": str(output_path),
        "written_at": datetime.now(timezone.utc).isoformat(),
        "record_count": len(rows),
        "column_count": len(headers),
        "file_size_bytes": output_path.stat().st_size,
    }

    logger.info(
        f"Wrote {len(rows)} rows to Parquet at {output_path}",
        extra=metadata
    )

    return metadata

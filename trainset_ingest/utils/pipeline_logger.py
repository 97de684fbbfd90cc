"""Structured logging utilities for ingest runs.

Provides consistent logging format with required fields:
- dataset
- run_id
- step
- row_count
- output_path
- duration
"""

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class PipelineLogContext:
    """Context for ingest logging with required fields."""

    dataset: str
    run_id: str
    step: str = ""
    row_count: int = 0
    invalid_count: Optional[int] = None
    output_path: Optional[str] = None
    duration_ms: Optional[float] = None
    status: str = "started"
    error: Optional[str] = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        data = asdict(self)
        data["timestamp"] = datetime.now(timezone.utc).isoformat()
        # Remove None values
        return {k: v for k, v in data.items() if v is not None}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class PipelineLogger:
    """Structured logger for one dataset (or the master table) in a run."""

    def __init__(self, dataset: str, run_id: str):
        """Initialize pipeline logger.

        Args:
            dataset: Dataset kind, or "master" for merge/export steps
            run_id: Unique run identifier
        """
        self.dataset = dataset
        self.run_id = run_id
        self.logger = logging.getLogger(f"pipeline.{dataset}")
        self._start_time: Optional[float] = None
        self._rows_seen: int = 0
        self._invalid_seen: int = 0

    def _log(self, level: int, step: str, **kwargs) -> None:
        """Internal logging method with structured context."""
        ctx = PipelineLogContext(
            dataset=self.dataset,
            run_id=self.run_id,
            step=step,
            **kwargs
        )
        self.logger.log(level, ctx.to_json(), extra=ctx.to_dict())

    def _elapsed_ms(self) -> Optional[float]:
        if self._start_time is None:
            return None
        return (time.time() - self._start_time) * 1000

    def start(self, step: str) -> None:
        """Log step start."""
        self._start_time = time.time()
        self._log(logging.INFO, step, status="started")

    def success(self, step: str, **kwargs) -> None:
        """Log step success."""
        self._log(
            logging.INFO,
            step,
            status="success",
            duration_ms=self._elapsed_ms(),
            **kwargs
        )

    def error(self, step: str, error: Exception, **kwargs) -> None:
        """Log step error."""
        self._log(
            logging.ERROR,
            step,
            status="error",
            error=str(error),
            duration_ms=self._elapsed_ms(),
            **kwargs
        )

    def log_transform(
        self,
        input_count: int,
        output_count: int,
        invalid_count: int,
        duration_ms: float,
    ) -> None:
        """Log normalize + validate step."""
        self._rows_seen += output_count
        self._invalid_seen += invalid_count
        self._log(
            logging.WARNING if invalid_count else logging.INFO,
            step="transform",
            status="success",
            row_count=output_count,
            invalid_count=invalid_count,
            duration_ms=duration_ms,
            details={"input_count": input_count},
        )

    def log_merge(self, feature_count: int, master_count: int, duration_ms: float) -> None:
        """Log master merge step."""
        self._log(
            logging.INFO,
            step="merge",
            status="success",
            row_count=master_count,
            duration_ms=duration_ms,
            details={"feature_count": feature_count},
        )

    def log_export(
        self,
        output_path: str,
        row_count: int,
        file_size_bytes: int,
        duration_ms: float,
    ) -> None:
        """Log file export."""
        self._log(
            logging.INFO,
            step="export",
            status="success",
            output_path=output_path,
            row_count=row_count,
            duration_ms=duration_ms,
            details={"file_size_bytes": file_size_bytes},
        )

    def get_metrics(self) -> dict:
        """Get aggregated metrics."""
        return {
            "dataset": self.dataset,
            "run_id": self.run_id,
            "rows_seen": self._rows_seen,
            "invalid_seen": self._invalid_seen,
        }


@contextmanager
def timed_operation(name: str, logger: logging.Logger = None):
    """Context manager to time an operation.

    Usage:
        with timed_operation("merge") as timer:
            master = merge_to_master(features)
        print(f"Took {timer.duration_ms}ms")

    Args:
        name: Operation name for logging
        logger: Optional logger instance

    Yields:
        Timer object with duration_ms attribute
    """
    class Timer:
        def __init__(self):
            self.start_time = time.time()
            self.end_time = None
            self.duration_ms = 0

    timer = Timer()

    try:
        yield timer
    finally:
        timer.end_time = time.time()
        timer.duration_ms = (timer.end_time - timer.start_time) * 1000

        if logger:
            logger.debug(
                f"Operation '{name}' completed",
                extra={"operation": name, "duration_ms": timer.duration_ms}
            )

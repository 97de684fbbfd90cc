"""Feature row stores: the current row set held for each dataset kind."""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union

from trainset_ingest.transform import (
    DatasetKind,
    RowValidationResult,
    master_headers,
    merge_to_master,
    prepare_rows,
    resolve_dataset,
    schema_for,
    validate_rows,
)
from trainset_ingest.utils.file_io import to_csv

logger = logging.getLogger(__name__)


class SubmissionRejected(Exception):
    """Raised when a strict submission carries validation errors."""

    def __init__(self, dataset: DatasetKind, validation: RowValidationResult):
        self.dataset = dataset
        self.validation = validation
        super().__init__(
            f"{dataset.value} submission rejected: "
            f"{validation.invalid_count} rows failed validation"
        )


@dataclass
class SubmitResult:
    """Outcome of replacing one dataset's rows."""

    dataset: DatasetKind
    saved: int
    validation: RowValidationResult

    def to_dict(self) -> dict:
        return {
            "status": "ok",
            "dataset": self.dataset.value,
            "saved": self.saved,
            "invalid_count": self.validation.invalid_count,
        }


class FeatureStore(ABC):
    """Abstract base class for feature row stores.

    Each dataset kind occupies its own slot. Writing a slot replaces the
    previous rows wholesale; the last write wins.
    """

    @abstractmethod
    def get(self, dataset: Union[DatasetKind, str]) -> list[dict]:
        """Get the rows currently held for a dataset."""
        ...

    @abstractmethod
    def replace(self, dataset: Union[DatasetKind, str], rows: list[dict]) -> int:
        """
        Replace the rows held for a dataset.

        Returns:
            Number of rows now held
        """
        ...

    @abstractmethod
    def snapshot(self) -> dict[DatasetKind, list[dict]]:
        """Get a consistent copy of every slot."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Empty every slot."""
        ...

    def submit(
        self,
        dataset: Union[DatasetKind, str],
        rows: list[dict],
        *,
        normalize: bool = True,
        strict: bool = False,
    ) -> SubmitResult:
        """Prepare and store a dataset submission.

        Args:
            dataset: Dataset kind of the rows
            rows: Submitted rows
            normalize: Run header/value normalization first; pass False only
                for rows that are already canonical
            strict: Refuse to store rows that fail validation

        Raises:
            SubmissionRejected: In strict mode, when validation fails
        """
        kind = resolve_dataset(dataset)
        if normalize:
            prepared, validation = prepare_rows(rows, kind)
        else:
            prepared = [dict(row) for row in rows]
            validation = validate_rows(prepared, schema_for(kind))

        if strict and validation.has_errors:
            raise SubmissionRejected(kind, validation)

        saved = self.replace(kind, prepared)
        logger.info(
            f"Stored {saved} {kind.value} rows",
            extra={"dataset": kind.value, "row_count": saved}
        )
        return SubmitResult(dataset=kind, saved=saved, validation=validation)

    def master_rows(self) -> list[dict]:
        """Merge the current slots into master rows."""
        return merge_to_master(self.snapshot())

    def master_csv(self) -> str:
        """Master table as CSV, columns in registry order.

        An empty store still yields the header line.
        """
        return to_csv(self.master_rows(), master_headers())

    def total_rows(self) -> int:
        return sum(len(rows) for rows in self.snapshot().values())


class InMemoryFeatureStore(FeatureStore):
    """Process-lifetime store backed by a dict of per-dataset slots."""

    def __init__(self):
        self._lock = threading.Lock()
        self._slots: dict[DatasetKind, list[dict]] = {kind: [] for kind in DatasetKind}

    def get(self, dataset: Union[DatasetKind, str]) -> list[dict]:
        kind = resolve_dataset(dataset)
        with self._lock:
            return [dict(row) for row in self._slots[kind]]

    def replace(self, dataset: Union[DatasetKind, str], rows: list[dict]) -> int:
        kind = resolve_dataset(dataset)
        if not isinstance(rows, list):
            raise TypeError(f"rows must be a list, got {type(rows).__name__}")
        copied = [dict(row) for row in rows]
        with self._lock:
            self._slots[kind] = copied
        return len(copied)

    def snapshot(self) -> dict[DatasetKind, list[dict]]:
        with self._lock:
            return {kind: [dict(row) for row in rows] for kind, rows in self._slots.items()}

    def clear(self) -> None:
        with self._lock:
            self._slots = {kind: [] for kind in DatasetKind}

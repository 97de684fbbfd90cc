"""Merge per-dataset feature rows into master rows, and split them back."""

import logging
from typing import Mapping, Optional, Union

from trainset_ingest.transform.coerce import is_empty
from trainset_ingest.transform.schema import (
    SCHEMAS,
    TRAIN_ID,
    DatasetKind,
    DatasetSchema,
    resolve_dataset,
)

logger = logging.getLogger(__name__)

_ID_KEYS = frozenset({TRAIN_ID, "trainId", "Trainset ID"})


def _master_id(row: dict) -> Optional[str]:
    # Falsy ids (None, "", 0) are treated as missing
    for key in (TRAIN_ID, "trainId", "Trainset ID"):
        value = row.get(key)
        if value:
            return str(value)
    return None


def merge_to_master(
    rows_by_dataset: Mapping[Union[DatasetKind, str], list[dict]],
    registry: Mapping[DatasetKind, DatasetSchema] = SCHEMAS,
) -> list[dict]:
    """Merge feature rows from every dataset into one row per train.

    Datasets are visited in registry order. A field value is copied only
    when it is non-empty, so a later dataset can overwrite an earlier value
    but never erase it.

    Args:
        rows_by_dataset: Feature rows keyed by dataset kind (missing kinds
            are treated as empty)
        registry: Schema registry that fixes dataset order

    Returns:
        Master rows in first-seen ``train_id`` order

    Example:
        >>> merge_to_master({
        ...     "certificates": [{"train_id": "T1", "rolling_stock_status": "valid"}],
        ...     "maintenance": [{"train_id": "T1", "open_work_orders": 2}],
        ... })
        [{'train_id': 'T1', 'rolling_stock_status': 'valid', 'open_work_orders': 2}]
    """
    by_kind = {resolve_dataset(ds): rows for ds, rows in rows_by_dataset.items()}

    master: dict[str, dict] = {}
    skipped = 0

    for kind in registry:
        for row in by_kind.get(kind) or []:
            train_id = _master_id(row)
            if train_id is None:
                skipped += 1
                continue

            target = master.setdefault(train_id, {TRAIN_ID: train_id})
            for key, value in row.items():
                if key in _ID_KEYS or is_empty(value):
                    continue
                target[key] = value

    if skipped:
        logger.warning(
            f"Skipped {skipped} feature rows without a train id",
            extra={"skipped_count": skipped}
        )

    logger.debug(
        f"Merged feature rows into {len(master)} master rows",
        extra={"master_count": len(master)}
    )

    return list(master.values())


def split_to_features(
    master_rows: list[dict],
    registry: Mapping[DatasetKind, DatasetSchema] = SCHEMAS,
) -> dict[DatasetKind, list[dict]]:
    """Split master rows back into per-dataset feature rows.

    Each dataset receives ``train_id`` plus the non-empty master values for
    the fields its schema declares. Rows that would carry only the id are
    dropped for that dataset.

    Returns:
        Feature rows for every dataset in the registry (possibly empty lists)
    """
    features: dict[DatasetKind, list[dict]] = {kind: [] for kind in registry}

    for master_row in master_rows:
        for kind, schema in registry.items():
            row = {TRAIN_ID: master_row.get(TRAIN_ID)}
            has_values = False
            for key in schema.keys:
                if key == TRAIN_ID:
                    continue
                value = master_row.get(key)
                if not is_empty(value):
                    row[key] = value
                    has_values = True
            if has_values:
                features[kind].append(row)

    return features

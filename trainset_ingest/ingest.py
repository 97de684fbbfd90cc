"""Main ingestion entrypoint: local CSV folder → normalize/validate → master CSV.

Usage:
    python -m trainset_ingest.ingest
    python -m trainset_ingest.ingest --data-dir "./csv files" --output master.csv
    python -m trainset_ingest.ingest --dataset branding --strict
    python -m trainset_ingest.ingest --push
"""

import argparse
import logging
import os
import sys
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from trainset_ingest.clients import APIError, IngestApiClient
from trainset_ingest.store import FeatureStore, InMemoryFeatureStore
from trainset_ingest.transform import DatasetKind, master_headers, prepare_rows, resolve_dataset
from trainset_ingest.utils import (
    PipelineLogger,
    read_csv_file,
    setup_logging,
    timed_operation,
    write_csv,
    write_parquet,
)

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# File name each dataset is exported under by the depot systems
LOCAL_DATASET_FILES = {
    DatasetKind.BRANDING: "branding_priorities.csv",
    DatasetKind.CLEANING: "cleaning_slots.csv",
    DatasetKind.CERTIFICATES: "fitness_certificates.csv",
    DatasetKind.MAINTENANCE: "jobcard_status.csv",
    DatasetKind.MILEAGE: "mileage_balancing.csv",
    DatasetKind.STABLING: "stabling_geometry.csv",
}


def ingest_dataset(
    dataset: Union[DatasetKind, str],
    data_dir: Union[str, Path],
    store: FeatureStore,
    run_id: str,
    strict: bool = False,
    client: Optional[IngestApiClient] = None,
) -> dict:
    """Load one dataset's CSV file into the store.

    Args:
        dataset: Dataset kind to load
        data_dir: Folder holding the dataset CSV files
        store: Store whose slot is replaced
        run_id: Unique run identifier
        strict: Leave the slot untouched when any row fails validation
        client: Optional remote backend to push the normalized rows to

    Returns:
        Ingestion result metadata
    """
    kind = resolve_dataset(dataset)
    path = Path(data_dir) / LOCAL_DATASET_FILES[kind]
    plog = PipelineLogger(kind.value, run_id)

    if not path.exists():
        logger.warning(f"No file for {kind.value} at {path}")
        return {"dataset": kind.value, "status": "missing", "loaded": 0}

    plog.start("load")
    try:
        parsed = read_csv_file(path)

        with timed_operation("prepare", logger) as timer:
            rows, validation = prepare_rows(parsed.rows, kind)
        plog.log_transform(
            input_count=len(parsed.rows),
            output_count=len(rows),
            invalid_count=validation.invalid_count,
            duration_ms=timer.duration_ms,
        )

        result = {
            "dataset": kind.value,
            "status": "success",
            "file_path": str(path),
            "loaded": len(rows),
            "parse_errors": parsed.errors,
            "invalid_rows": validation.invalid_count,
        }

        if strict and validation.has_errors:
            for error in validation.errors():
                logger.error(
                    f"{kind.value} row {error.row_index}: {error.field}: {error.message}",
                    extra={"dataset": kind.value, "row_index": error.row_index}
                )
            result.update(status="invalid", loaded=0)
            plog.success("load", row_count=0, invalid_count=validation.invalid_count)
            return result

        store.replace(kind, rows)
        plog.success("load", row_count=len(rows), invalid_count=validation.invalid_count)

    except (OSError, UnicodeDecodeError) as e:
        plog.error("load", e)
        logger.error(f"Failed to ingest {kind.value}: {e}", exc_info=True)
        return {"dataset": kind.value, "status": "error", "loaded": 0, "error": str(e)}

    if client is not None:
        plog.start("push")
        try:
            response = client.save_feature(kind, rows)
        except APIError as e:
            # Rows stay in the local store; only the push failed
            plog.error("push", e)
            result.update(status="error", error=str(e))
            return result
        result["pushed"] = response.get("saved", len(rows))
        plog.success("push", row_count=result["pushed"])

    return result


def load_local_directory(
    data_dir: Union[str, Path],
    store: FeatureStore,
    datasets: Optional[list[DatasetKind]] = None,
) -> dict[str, int]:
    """Load every dataset file found in a folder (non-strict).

    Missing files count as zero rows.

    Returns:
        Loaded row count per dataset tag
    """
    run_id = uuid.uuid4().hex[:12]
    loaded = {}
    for kind in datasets or list(DatasetKind):
        result = ingest_dataset(kind, data_dir, store, run_id)
        loaded[kind.value] = result["loaded"]
    return loaded


def export_master(
    store: FeatureStore,
    output_path: Union[str, Path],
    run_id: str,
    parquet: bool = False,
) -> dict:
    """Merge the store into master rows and write them out.

    Returns:
        File metadata from the CSV (and Parquet) writer
    """
    plog = PipelineLogger("master", run_id)
    snapshot = store.snapshot()

    with timed_operation("merge", logger) as timer:
        master = store.master_rows()
    plog.log_merge(
        feature_count=sum(len(rows) for rows in snapshot.values()),
        master_count=len(master),
        duration_ms=timer.duration_ms,
    )

    headers = master_headers()
    with timed_operation("export", logger) as timer:
        metadata = write_csv(master, headers, output_path)
    plog.log_export(
        output_path=metadata["file_path"],
        row_count=metadata["record_count"],
        file_size_bytes=metadata["file_size_bytes"],
        duration_ms=timer.duration_ms,
    )

    if parquet:
        parquet_path = Path(output_path).with_suffix(".parquet")
        metadata["parquet"] = write_parquet(master, headers, parquet_path)

    return metadata


def run_ingestion(
    data_dir: Union[str, Path],
    output_path: Union[str, Path],
    datasets: Optional[list[str]] = None,
    strict: bool = False,
    parquet: bool = False,
    push: bool = False,
    store: Optional[FeatureStore] = None,
    client: Optional[IngestApiClient] = None,
    run_id: Optional[str] = None,
) -> dict:
    """Run ingestion for the requested datasets and export the master table.

    Args:
        data_dir: Folder holding the dataset CSV files
        output_path: Master CSV destination
        datasets: Dataset tags to load (default: all)
        strict: Skip datasets that fail validation and report failure
        parquet: Also write a Parquet copy of the master table
        push: Send normalized rows to the remote backend
        store: Store to load into (default: a fresh in-memory store)
        client: Remote backend client (built from env when push is set)
        run_id: Optional run ID (auto-generated if not provided)

    Returns:
        Combined results for all datasets
    """
    # Generate run ID
    if run_id is None:
        run_id = uuid.uuid4().hex[:12]

    kinds = [resolve_dataset(d) for d in datasets] if datasets else list(DatasetKind)
    store = store or InMemoryFeatureStore()
    if push and client is None:
        client = IngestApiClient()

    start_time = datetime.now(timezone.utc)
    started = time.time()

    logger.info(
        "Starting ingestion run",
        extra={
            "run_id": run_id,
            "datasets": [k.value for k in kinds],
            "data_dir": str(data_dir),
        }
    )

    results = {}
    for kind in kinds:
        results[kind.value] = ingest_dataset(
            kind, data_dir, store, run_id, strict=strict, client=client if push else None
        )

    master = export_master(store, output_path, run_id, parquet=parquet)

    duration_seconds = time.time() - started
    failed = [r for r in results.values() if r["status"] in ("error", "invalid")]

    summary = {
        "run_id": run_id,
        "status": "success" if not failed else "partial_failure",
        "datasets": [k.value for k in kinds],
        "total_feature_rows": store.total_rows(),
        "master_rows": master["record_count"],
        "output_path": master["file_path"],
        "duration_seconds": duration_seconds,
        "started_at": start_time.isoformat(),
        "completed_at": datetime.now(timezone.utc).isoformat(),
        "results": results,
    }

    logger.info(
        f"Ingestion run complete: {master['record_count']} master rows in {duration_seconds:.2f}s",
        extra={"run_id": run_id, "status": summary["status"]}
    )

    return summary


def main():
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Normalize trainset feature CSVs and build the master CSV"
    )
    parser.add_argument(
        "--data-dir",
        default=os.getenv("TRAINSET_CSV_DIR", "./data"),
        help="Folder with the dataset CSV files (default: $TRAINSET_CSV_DIR or ./data)",
    )
    parser.add_argument(
        "--dataset",
        choices=[k.value for k in DatasetKind] + ["all"],
        default="all",
        help="Dataset to load (default: all)",
    )
    parser.add_argument(
        "--output",
        default=os.getenv("MASTER_CSV_PATH", "./master.csv"),
        help="Master CSV path (default: $MASTER_CSV_PATH or ./master.csv)",
    )
    parser.add_argument(
        "--parquet",
        action="store_true",
        help="Also write the master table as Parquet (needs pyarrow)",
    )
    parser.add_argument(
        "--push",
        action="store_true",
        help="Send normalized rows to the backend at $INGEST_API_URL",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Do not load datasets that fail validation",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()

    # Setup logging
    setup_logging(level=args.log_level, json_format=True)

    # Determine datasets
    datasets = None if args.dataset == "all" else [args.dataset]

    result = run_ingestion(
        data_dir=args.data_dir,
        output_path=args.output,
        datasets=datasets,
        strict=args.strict,
        parquet=args.parquet,
        push=args.push,
    )

    # Exit with error code if any failures
    if result["status"] != "success":
        sys.exit(1)


if __name__ == "__main__":
    main()

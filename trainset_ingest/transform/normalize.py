"""Header aliasing and value normalization for uploaded dataset rows."""

import logging
from typing import Any, Callable, Optional, Union

from trainset_ingest.transform.coerce import (
    coerce_boolean,
    coerce_number,
    extract_date_from_status,
    is_empty,
    parse_wear_string,
)
from trainset_ingest.transform.schema import (
    TRAIN_ID,
    DatasetKind,
    resolve_dataset,
    schema_for,
)
from trainset_ingest.transform.validate import RowValidationResult, validate_rows

logger = logging.getLogger(__name__)

# Identifier spellings, in lookup priority order
ID_ALIASES = (TRAIN_ID, "trainId", "Trainset ID")

# Human-friendly headers (trimmed) -> canonical keys
HEADER_ALIASES: dict[DatasetKind, dict[str, str]] = {
    DatasetKind.BRANDING: {
        "Trainset ID": "train_id",
        "Advertiser Contract ID": "advertiser_contract_id",
        "Wrap Exposure Hours Remaining": "exposure_hours_remaining",
        "Branding Priority Score": "branding_priority_score",
        "Next Scheduling Deadline": "branding_deadline",
        "Penalty Risk Flag": "penalty_risk_flag",
    },
    DatasetKind.CLEANING: {
        "Trainset ID": "train_id",
        "Cleaning Required": "cleaning_required",
        "Detailing Required": "detailing_required",
        "Available Cleaning Slot": "available_slot_time",
        "Bay Occupancy Status": "bay_occupancy_status",
        "Cleaning Manpower Available": "manpower_available",
    },
    DatasetKind.MAINTENANCE: {
        "Trainset ID": "train_id",
        "Open Work Orders": "open_work_orders",
        "Closed Work Orders (last 24h)": "closed_work_orders_24h",
        "Priority Level": "priority_level",
        "Maintenance Type": "maintenance_type",
        "Estimated Completion Date": "estimated_completion",
    },
    DatasetKind.MILEAGE: {
        "Trainset ID": "train_id",
        "Total KM since last maintenance": "total_km_since_maint",
        "Mileage Deviation from Avg": "mileage_diff_from_avg",
        "Component Wear Estimate": "component_wear_estimate",
        "Recommended Mileage Allocation": "recommended_allocation_km",
    },
    DatasetKind.STABLING: {
        "Trainset ID": "train_id",
        "Stabling Bay Number": "stabling_bay",
        "Accessibility Score": "accessibility_score",
        "Shunting Required": "shunting_required",
        "Estimated Shunting Time": "shunting_time_min",
        "Distance from Inspection/Cleaning Bay": "distance_from_bays_m",
    },
    DatasetKind.CERTIFICATES: {
        "Trainset ID": "train_id",
        "Rolling-Stock fitness status": "rolling_stock_status",
        "Signalling fitness status": "signalling_status",
        "Telecom fitness status": "telecom_status",
        "Overall fitness clearance": "overall_fitness_clearance",
    },
}

PRIORITY_SCORE_VOCABULARY = {"low": 3, "medium": 6, "high": 9}

# Certificate status column -> prefix of its "<prefix>_valid_until" sibling
CERTIFICATE_STATUS_FIELDS = {
    "rolling_stock_status": "rolling_stock",
    "signalling_status": "signalling",
    "telecom_status": "telecom",
}


def header_aliases(dataset: Union[DatasetKind, str]) -> dict[str, str]:
    """Get the header alias table for a dataset."""
    return dict(HEADER_ALIASES[resolve_dataset(dataset)])


def resolve_train_id(row: dict) -> Optional[str]:
    """First non-empty identifier among the known spellings, as a string."""
    for key in ID_ALIASES:
        value = row.get(key)
        if not is_empty(value):
            return str(value)
    return None


# ============================================
# Coercion helpers (mutate the working copy)
# ============================================

def _set_number(row: dict, key: str) -> None:
    number = coerce_number(row.get(key))
    if number is not None:
        row[key] = number


def _set_boolean(row: dict, key: str) -> None:
    flag = coerce_boolean(row.get(key))
    if flag is not None:
        row[key] = flag


def _map_boolean(row: dict, key: str, when_true: str, when_false: str) -> None:
    if is_empty(row.get(key)):
        return
    flag = coerce_boolean(row[key])
    if flag is not None:
        row[key] = when_true if flag else when_false


def _lower_string(row: dict, key: str) -> None:
    if isinstance(row.get(key), str):
        row[key] = row[key].lower()


# ============================================
# Per-dataset rule sets
# ============================================

def _normalize_branding(row: dict) -> None:
    _set_boolean(row, "penalty_risk_flag")

    raw = row.get("branding_priority_score")
    if is_empty(raw):
        return
    number = coerce_number(raw)
    if number is not None:
        row["branding_priority_score"] = number
        return
    score = PRIORITY_SCORE_VOCABULARY.get(str(raw).strip().lower())
    if score is not None:
        row["branding_priority_score"] = score


def _normalize_cleaning(row: dict) -> None:
    _map_boolean(row, "cleaning_required", "standard", "no")
    _map_boolean(row, "detailing_required", "full", "no")

    occupancy = row.get("bay_occupancy_status")
    if isinstance(occupancy, str):
        token = occupancy.lower()
        if token == "occupied":
            row["bay_occupancy_status"] = "busy"
        elif token == "free":
            row["bay_occupancy_status"] = "free"

    _set_number(row, "manpower_available")


def _normalize_maintenance(row: dict) -> None:
    _set_number(row, "open_work_orders")
    _set_number(row, "closed_work_orders_24h")
    _lower_string(row, "priority_level")
    _lower_string(row, "maintenance_type")


def _normalize_mileage(row: dict) -> None:
    _set_number(row, "total_km_since_maint")
    _set_number(row, "mileage_diff_from_avg")
    _set_number(row, "recommended_allocation_km")
    row.update(parse_wear_string(row.get("component_wear_estimate")))


def _normalize_stabling(row: dict) -> None:
    _set_number(row, "accessibility_score")
    _set_number(row, "shunting_time_min")
    _set_number(row, "distance_from_bays_m")
    _set_boolean(row, "shunting_required")


def _normalize_certificates(row: dict) -> None:
    for key, prefix in CERTIFICATE_STATUS_FIELDS.items():
        parsed = extract_date_from_status(row.get(key))
        if parsed.status:
            row[key] = parsed.status
        if parsed.date:
            row[f"{prefix}_valid_until"] = parsed.date

    clearance = row.get("overall_fitness_clearance")
    if isinstance(clearance, str):
        text = clearance.lower()
        if "cleared" in text:
            row["overall_fitness_clearance"] = "auto"
        # "not cleared" must end up as a refusal, so this check runs second
        if "not" in text:
            row["overall_fitness_clearance"] = "manual_override_no"


DATASET_RULES: dict[DatasetKind, Callable[[dict], None]] = {
    DatasetKind.CERTIFICATES: _normalize_certificates,
    DatasetKind.MAINTENANCE: _normalize_maintenance,
    DatasetKind.BRANDING: _normalize_branding,
    DatasetKind.MILEAGE: _normalize_mileage,
    DatasetKind.CLEANING: _normalize_cleaning,
    DatasetKind.STABLING: _normalize_stabling,
}


# ============================================
# Row normalization
# ============================================

def normalize_row(
    record: dict[str, Any],
    dataset: Union[DatasetKind, str],
) -> dict[str, Any]:
    """Normalize one uploaded row onto the dataset's canonical keys.

    Args:
        record: Raw row, keyed by whatever headers the file carried
        dataset: Dataset kind the row belongs to

    Returns:
        New row with aliased headers, a string ``train_id`` and coerced
        values. Unknown headers are kept verbatim; values that cannot be
        coerced are left as they were.
    """
    kind = resolve_dataset(dataset)
    aliases = HEADER_ALIASES[kind]

    trimmed = {(k.strip() if isinstance(k, str) else k): v for k, v in record.items()}
    # Resolved before aliasing so an empty alias column cannot blank a real id
    train_id = resolve_train_id(trimmed)

    normalized: dict[str, Any] = {}
    for key, value in record.items():
        header = key.strip() if isinstance(key, str) else key
        normalized[aliases.get(header, key)] = value

    if train_id is not None:
        normalized[TRAIN_ID] = train_id

    DATASET_RULES[kind](normalized)
    return normalized


def normalize_rows(
    records: list[dict[str, Any]],
    dataset: Union[DatasetKind, str],
) -> list[dict[str, Any]]:
    """Normalize a batch of uploaded rows for one dataset.

    Raises:
        UnknownDatasetKind: If the dataset tag is not recognised
        TypeError: If records is not a list of mappings
    """
    kind = resolve_dataset(dataset)
    if not isinstance(records, list):
        raise TypeError(f"records must be a list of rows, got {type(records).__name__}")

    normalized = []
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            raise TypeError(f"Row {i} must be a mapping, got {type(record).__name__}")
        normalized.append(normalize_row(record, kind))

    logger.debug(f"Normalized {len(normalized)} {kind.value} rows")
    return normalized


# ============================================
# Full preparation pipeline
# ============================================

def prepare_rows(
    records: list[dict[str, Any]],
    dataset: Union[DatasetKind, str],
) -> tuple[list[dict[str, Any]], RowValidationResult]:
    """Normalize then validate rows: the order every submission goes through.

    The validator only accepts canonical booleans, so it must never see
    rows that skipped normalization.

    Returns:
        Tuple of (normalized_rows, validation_result)
    """
    kind = resolve_dataset(dataset)
    normalized = normalize_rows(records, kind)
    result = validate_rows(normalized, schema_for(kind))

    logger.info(
        f"Prepared {len(normalized)} {kind.value} rows",
        extra={
            "dataset": kind.value,
            "row_count": len(normalized),
            "invalid_count": len(result.row_errors),
        }
    )

    return normalized, result

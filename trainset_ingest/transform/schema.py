"""Canonical field schemas for every trainset dataset."""

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union

logger = logging.getLogger(__name__)

TRAIN_ID = "train_id"


class DatasetKind(str, Enum):
    """The six dataset kinds an operator can upload.

    Declaration order is the registry order used for merging and for
    master header derivation.
    """

    CERTIFICATES = "certificates"  # Fitness certificates
    MAINTENANCE = "maintenance"  # Job-card status (work orders)
    BRANDING = "branding"  # Branding priorities
    MILEAGE = "mileage"  # Mileage balancing
    CLEANING = "cleaning"  # Cleaning & detailing slots
    STABLING = "stabling"  # Stabling geometry


class FieldType(str, Enum):
    """Value type of a schema field."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ENUM = "enum"


class UnknownDatasetKind(ValueError):
    """Raised when a dataset tag is not one of the six known kinds."""

    def __init__(self, dataset: Any):
        self.dataset = dataset
        allowed = ", ".join(kind.value for kind in DatasetKind)
        super().__init__(f"Unknown dataset kind: {dataset!r} (expected one of: {allowed})")


@dataclass(frozen=True)
class FieldDescriptor:
    """A single column of a dataset schema."""

    key: str
    label: str
    type: FieldType
    required: bool = False
    enum_values: tuple[str, ...] = ()
    tooltip: Optional[str] = None
    validator: Optional[Callable[[Any], Optional[str]]] = None

    def __post_init__(self):
        if self.type is FieldType.ENUM and not self.enum_values:
            raise ValueError(f"Enum field {self.key!r} must declare enum_values")
        if self.type is not FieldType.ENUM and self.enum_values:
            raise ValueError(f"Only enum fields may declare enum_values ({self.key!r})")


@dataclass(frozen=True)
class DatasetSchema:
    """Ordered field list for one dataset kind."""

    dataset: DatasetKind
    fields: tuple[FieldDescriptor, ...]

    def __post_init__(self):
        keys = [f.key for f in self.fields]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Duplicate field keys in {self.dataset.value} schema")
        if not self.fields or self.fields[0].key != TRAIN_ID or not self.fields[0].required:
            raise ValueError(f"{self.dataset.value} schema must start with a required {TRAIN_ID}")
        if keys.count(TRAIN_ID) != 1:
            raise ValueError(f"{self.dataset.value} schema must declare {TRAIN_ID} exactly once")

    @property
    def keys(self) -> list[str]:
        return [f.key for f in self.fields]

    def field(self, key: str) -> Optional[FieldDescriptor]:
        for f in self.fields:
            if f.key == key:
                return f
        return None


def _train_id() -> FieldDescriptor:
    return FieldDescriptor(TRAIN_ID, "Train ID", FieldType.STRING, required=True)


_FITNESS_STATUS = ("valid", "expired")

_SCHEMAS = {
    DatasetKind.CERTIFICATES: DatasetSchema(
        DatasetKind.CERTIFICATES,
        (
            _train_id(),
            FieldDescriptor(
                "rolling_stock_status", "Rolling-Stock Status", FieldType.ENUM,
                required=True, enum_values=_FITNESS_STATUS,
            ),
            FieldDescriptor("rolling_stock_valid_until", "Rolling-Stock Valid Until", FieldType.DATE),
            FieldDescriptor(
                "signalling_status", "Signalling Status", FieldType.ENUM,
                required=True, enum_values=_FITNESS_STATUS,
            ),
            FieldDescriptor("signalling_valid_until", "Signalling Valid Until", FieldType.DATE),
            FieldDescriptor(
                "telecom_status", "Telecom Status", FieldType.ENUM,
                required=True, enum_values=_FITNESS_STATUS,
            ),
            FieldDescriptor("telecom_valid_until", "Telecom Valid Until", FieldType.DATE),
            FieldDescriptor(
                "overall_fitness_clearance", "Overall Fitness Clearance", FieldType.ENUM,
                enum_values=("auto", "manual_override_yes", "manual_override_no"),
            ),
        ),
    ),
    DatasetKind.MAINTENANCE: DatasetSchema(
        DatasetKind.MAINTENANCE,
        (
            _train_id(),
            FieldDescriptor("open_work_orders", "Open Work Orders", FieldType.NUMBER, required=True),
            FieldDescriptor("closed_work_orders_24h", "Closed Work Orders (24h)", FieldType.NUMBER),
            FieldDescriptor(
                "priority_level", "Priority Level", FieldType.ENUM,
                enum_values=("low", "medium", "high", "urgent"),
            ),
            FieldDescriptor(
                "maintenance_type", "Maintenance Type", FieldType.ENUM,
                enum_values=("standard", "urgent"),
            ),
            FieldDescriptor("estimated_completion", "Estimated Completion (ISO date)", FieldType.DATE),
        ),
    ),
    DatasetKind.BRANDING: DatasetSchema(
        DatasetKind.BRANDING,
        (
            _train_id(),
            FieldDescriptor("advertiser_contract_id", "Advertiser Contract ID", FieldType.STRING),
            FieldDescriptor("exposure_hours_remaining", "Wrap Exposure Hours Remaining", FieldType.NUMBER),
            FieldDescriptor(
                "branding_priority_score", "Branding Priority Score", FieldType.NUMBER,
                tooltip="High=10, Low=1 or normalized score",
            ),
            FieldDescriptor("branding_deadline", "Branding Deadline (ISO date)", FieldType.DATE),
            FieldDescriptor("penalty_risk_flag", "Penalty Risk Flag", FieldType.BOOLEAN),
        ),
    ),
    DatasetKind.MILEAGE: DatasetSchema(
        DatasetKind.MILEAGE,
        (
            _train_id(),
            FieldDescriptor("total_km_since_maint", "Total KM since last maintenance", FieldType.NUMBER),
            FieldDescriptor("mileage_diff_from_avg", "Mileage Diff from Fleet Avg (km)", FieldType.NUMBER),
            FieldDescriptor("wear_bogie", "Wear Estimate - Bogie", FieldType.NUMBER),
            FieldDescriptor("wear_brake_pad", "Wear Estimate - Brake Pad", FieldType.NUMBER),
            FieldDescriptor("wear_hvac", "Wear Estimate - HVAC", FieldType.NUMBER),
            FieldDescriptor(
                "recommended_allocation_km", "Recommended Allocation Next Run (km)", FieldType.NUMBER,
            ),
        ),
    ),
    DatasetKind.CLEANING: DatasetSchema(
        DatasetKind.CLEANING,
        (
            _train_id(),
            FieldDescriptor(
                "cleaning_required", "Cleaning Required", FieldType.ENUM,
                enum_values=("no", "light", "standard", "deep"),
            ),
            FieldDescriptor(
                "detailing_required", "Detailing Required", FieldType.ENUM,
                enum_values=("no", "partial", "full"),
            ),
            FieldDescriptor("available_slot_time", "Available Slot Date/Time (ISO)", FieldType.DATE),
            FieldDescriptor(
                "bay_occupancy_status", "Bay Occupancy Status", FieldType.ENUM,
                enum_values=("free", "busy"),
            ),
            FieldDescriptor("manpower_available", "Cleaning Manpower Available", FieldType.NUMBER),
        ),
    ),
    DatasetKind.STABLING: DatasetSchema(
        DatasetKind.STABLING,
        (
            _train_id(),
            FieldDescriptor("stabling_bay", "Stabling Bay Number", FieldType.STRING),
            FieldDescriptor("accessibility_score", "Accessibility Score", FieldType.NUMBER),
            FieldDescriptor("shunting_required", "Shunting Required", FieldType.BOOLEAN),
            FieldDescriptor("shunting_time_min", "Estimated Shunting Time (min)", FieldType.NUMBER),
            FieldDescriptor(
                "distance_from_bays_m", "Distance from Inspection/Cleaning Bays (m)", FieldType.NUMBER,
            ),
        ),
    ),
}

# Immutable registry, ordered like DatasetKind
SCHEMAS: Mapping[DatasetKind, DatasetSchema] = MappingProxyType(
    {kind: _SCHEMAS[kind] for kind in DatasetKind}
)


def resolve_dataset(dataset: Union[DatasetKind, str]) -> DatasetKind:
    """Resolve a dataset tag to its DatasetKind.

    Raises:
        UnknownDatasetKind: If the tag is not one of the six known kinds
    """
    if isinstance(dataset, DatasetKind):
        return dataset
    if isinstance(dataset, str):
        try:
            return DatasetKind(dataset.strip().lower())
        except ValueError:
            pass
    raise UnknownDatasetKind(dataset)


def schema_for(dataset: Union[DatasetKind, str]) -> DatasetSchema:
    """Get the canonical schema for a dataset kind."""
    return SCHEMAS[resolve_dataset(dataset)]


def master_headers(
    registry: Mapping[DatasetKind, DatasetSchema] = SCHEMAS,
) -> list[str]:
    """Derive master table column order from the registry.

    ``train_id`` first, then every dataset's field keys in registry order,
    each key kept at its first occurrence.
    """
    seen = {TRAIN_ID}
    headers = [TRAIN_ID]

    for schema in registry.values():
        for f in schema.fields:
            if f.key not in seen:
                seen.add(f.key)
                headers.append(f.key)

    return headers


def columns_with_meta(schema: DatasetSchema) -> list[dict]:
    """Column descriptors (key, label, tooltip) for table editors."""
    return [{"key": f.key, "label": f.label, "tooltip": f.tooltip} for f in schema.fields]


def template_csv(schema: DatasetSchema) -> str:
    """Header-only CSV for a dataset, for operators to fill in."""
    return ",".join(schema.keys) + "\n"


_SAMPLE_ROWS: dict[DatasetKind, list[dict]] = {
    DatasetKind.CERTIFICATES: [
        {
            "train_id": "T001",
            "rolling_stock_status": "valid",
            "rolling_stock_valid_until": "2025-12-31",
            "signalling_status": "valid",
            "signalling_valid_until": "2025-10-15",
            "telecom_status": "valid",
            "telecom_valid_until": "2025-11-30",
            "overall_fitness_clearance": "auto",
        },
        {
            "train_id": "T002",
            "rolling_stock_status": "expired",
            "signalling_status": "valid",
            "telecom_status": "valid",
            "overall_fitness_clearance": "manual_override_no",
        },
    ],
    DatasetKind.MAINTENANCE: [
        {
            "train_id": "T001",
            "open_work_orders": 1,
            "closed_work_orders_24h": 3,
            "priority_level": "medium",
            "maintenance_type": "standard",
            "estimated_completion": "2025-09-28T10:00:00Z",
        },
        {
            "train_id": "T003",
            "open_work_orders": 4,
            "priority_level": "urgent",
            "maintenance_type": "urgent",
        },
    ],
    DatasetKind.BRANDING: [
        {
            "train_id": "T001",
            "advertiser_contract_id": "AD-22",
            "exposure_hours_remaining": 120,
            "branding_priority_score": 8,
            "branding_deadline": "2025-10-05",
            "penalty_risk_flag": False,
        },
        {
            "train_id": "T004",
            "advertiser_contract_id": "AD-31",
            "exposure_hours_remaining": 15,
            "branding_priority_score": 9,
            "penalty_risk_flag": True,
        },
    ],
    DatasetKind.MILEAGE: [
        {
            "train_id": "T001",
            "total_km_since_maint": 3200,
            "mileage_diff_from_avg": 150,
            "wear_bogie": 20,
            "wear_brake_pad": 35,
            "wear_hvac": 15,
            "recommended_allocation_km": 120,
        },
        {
            "train_id": "T002",
            "total_km_since_maint": 500,
            "mileage_diff_from_avg": -700,
            "wear_bogie": 5,
            "wear_brake_pad": 10,
            "wear_hvac": 8,
            "recommended_allocation_km": 200,
        },
    ],
    DatasetKind.CLEANING: [
        {
            "train_id": "T001",
            "cleaning_required": "standard",
            "detailing_required": "partial",
            "available_slot_time": "2025-09-26T06:00:00Z",
            "bay_occupancy_status": "free",
            "manpower_available": 6,
        },
        {
            "train_id": "T003",
            "cleaning_required": "deep",
            "detailing_required": "full",
            "bay_occupancy_status": "busy",
            "manpower_available": 3,
        },
    ],
    DatasetKind.STABLING: [
        {
            "train_id": "T001",
            "stabling_bay": "B-12",
            "accessibility_score": 8.5,
            "shunting_required": False,
            "shunting_time_min": 0,
            "distance_from_bays_m": 80,
        },
        {
            "train_id": "T004",
            "stabling_bay": "A-02",
            "accessibility_score": 6.5,
            "shunting_required": True,
            "shunting_time_min": 12,
            "distance_from_bays_m": 180,
        },
    ],
}


def sample_rows(dataset: Union[DatasetKind, str]) -> list[dict]:
    """Demo rows for a dataset (fresh copies, safe to mutate)."""
    return [dict(row) for row in _SAMPLE_ROWS[resolve_dataset(dataset)]]

"""Data transformation modules.

Handles:
- Dataset schemas
- Header aliasing and value coercion
- Row validation
- Master merge and split
"""

from .schema import (
    SCHEMAS,
    TRAIN_ID,
    DatasetKind,
    DatasetSchema,
    FieldDescriptor,
    FieldType,
    UnknownDatasetKind,
    columns_with_meta,
    master_headers,
    resolve_dataset,
    sample_rows,
    schema_for,
    template_csv,
)
from .coerce import (
    coerce_boolean,
    coerce_number,
    extract_date_from_status,
    parse_wear_string,
)
from .validate import FieldValidationError, RowValidationResult, validate_rows
from .normalize import normalize_row, normalize_rows, prepare_rows
from .merge import merge_to_master, split_to_features

__all__ = [
    # Schemas
    "SCHEMAS",
    "TRAIN_ID",
    "DatasetKind",
    "DatasetSchema",
    "FieldDescriptor",
    "FieldType",
    "UnknownDatasetKind",
    "columns_with_meta",
    "master_headers",
    "resolve_dataset",
    "sample_rows",
    "schema_for",
    "template_csv",
    # Coercion
    "coerce_boolean",
    "coerce_number",
    "extract_date_from_status",
    "parse_wear_string",
    # Validation
    "FieldValidationError",
    "RowValidationResult",
    "validate_rows",
    # Normalization
    "normalize_row",
    "normalize_rows",
    "prepare_rows",
    # Master
    "merge_to_master",
    "split_to_features",
]

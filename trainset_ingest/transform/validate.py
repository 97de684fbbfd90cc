"""Schema validation of normalized dataset rows."""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from trainset_ingest.transform.coerce import is_empty, is_numeric_text
from trainset_ingest.transform.schema import DatasetSchema, FieldDescriptor, FieldType

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "Required"
NUMBER_MESSAGE = "Must be a number"
BOOLEAN_MESSAGE = "Must be true/false"


@dataclass(frozen=True)
class FieldValidationError:
    """One failed check for one field of one row."""

    row_index: int
    field: str
    message: str


@dataclass
class RowValidationResult:
    """Result of validating a batch of rows against a schema.

    ``row_errors`` maps row index -> field key -> message, and only holds
    rows that failed at least one check.
    """

    row_errors: dict[int, dict[str, str]] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return bool(self.row_errors)

    @property
    def invalid_count(self) -> int:
        return len(self.row_errors)

    def errors(self) -> Iterator[FieldValidationError]:
        """Iterate over every field error in row order."""
        for row_index in sorted(self.row_errors):
            for field_key, message in self.row_errors[row_index].items():
                yield FieldValidationError(row_index, field_key, message)

    def to_dict(self) -> dict:
        return {
            "has_errors": self.has_errors,
            "row_errors": {str(i): dict(errs) for i, errs in self.row_errors.items()},
        }


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    text = str(value).strip()
    return is_numeric_text(text) and math.isfinite(float(text))


def _is_boolean(value: Any) -> bool:
    return isinstance(value, bool) or value in ("true", "false")


def check_field(descriptor: FieldDescriptor, value: Any) -> Optional[str]:
    """Check a single value against its field descriptor.

    Returns:
        Error message, or None if the value is acceptable
    """
    if is_empty(value):
        return REQUIRED_MESSAGE if descriptor.required else None

    message = None
    if descriptor.type is FieldType.NUMBER:
        if not _is_number(value):
            message = NUMBER_MESSAGE
    elif descriptor.type is FieldType.BOOLEAN:
        if not _is_boolean(value):
            message = BOOLEAN_MESSAGE
    elif descriptor.type is FieldType.ENUM:
        if str(value) not in descriptor.enum_values:
            message = f"Must be one of: {', '.join(descriptor.enum_values)}"

    # Custom rule runs last and wins
    if descriptor.validator is not None:
        custom = descriptor.validator(value)
        if custom:
            message = custom

    return message


def validate_rows(
    rows: list[dict],
    schema: DatasetSchema,
) -> RowValidationResult:
    """Validate normalized rows against a dataset schema.

    Fields are checked in schema order; at most one message is kept per
    field. Content problems never raise.

    Args:
        rows: Normalized rows
        schema: Schema of the rows' dataset

    Returns:
        RowValidationResult with per-row, per-field messages
    """
    result = RowValidationResult()

    for i, row in enumerate(rows):
        field_errors = {}
        for descriptor in schema.fields:
            message = check_field(descriptor, row.get(descriptor.key))
            if message:
                field_errors[descriptor.key] = message

        if field_errors:
            result.row_errors[i] = field_errors

    if result.has_errors:
        logger.warning(
            f"Validation found {result.invalid_count} invalid {schema.dataset.value} rows",
            extra={
                "dataset": schema.dataset.value,
                "row_count": len(rows),
                "invalid_count": result.invalid_count,
            }
        )

    return result

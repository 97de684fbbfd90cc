"""Best-effort value coercion for spreadsheet-authored cells.

Every helper here is pure and never raises on bad content: a value that
cannot be converted yields ``None`` (or an empty result) so callers can
leave the original cell untouched.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Optional

TRUE_TOKENS = frozenset({"true", "yes", "y", "1"})
FALSE_TOKENS = frozenset({"false", "no", "n", "0"})

# Wear component name -> canonical mileage field
WEAR_FIELDS = {
    "bogie": "wear_bogie",
    "brake": "wear_brake_pad",
    "hvac": "wear_hvac",
}

_NUMBER_STRIP_RE = re.compile(r"[,\s]")
_NUMBER_TEXT_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_WEAR_TOKEN_RE = re.compile(r"(bogie|brake|hvac)\s*:\s*(\d+(?:\.\d+)?)%", re.IGNORECASE)
_STATUS_RE = re.compile(r"^(valid|expired)\s*(?:\(([^)]+)\))?$", re.IGNORECASE)
_ISO_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")


def is_empty(value: Any) -> bool:
    """True for absent cells: None or the empty string."""
    return value is None or value == ""


def is_numeric_text(text: str) -> bool:
    """True for plain decimal or exponent notation (no digit separators)."""
    return bool(_NUMBER_TEXT_RE.match(text))


def coerce_boolean(value: Any) -> Optional[bool]:
    """Coerce yes/no style tokens to a boolean.

    Returns:
        True/False for a recognised token, None otherwise
    """
    if isinstance(value, bool):
        return value
    if is_empty(value):
        return None

    token = str(value).strip().lower()
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    return None


def coerce_number(value: Any) -> Optional[float]:
    """Parse a number after stripping thousands separators and whitespace.

    Native ints and floats pass through unchanged; booleans are not numbers.

    Returns:
        Parsed number, or None if the value is not numeric
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if is_empty(value):
        return None

    text = _NUMBER_STRIP_RE.sub("", str(value))
    if not is_numeric_text(text):
        return None
    number = float(text)
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class StatusDate:
    """A fitness status token with an optional validity date."""

    status: Optional[str] = None
    date: Optional[str] = None


def extract_date_from_status(value: Any) -> StatusDate:
    """Split a certificate status cell into status token and date.

    Example:
        >>> extract_date_from_status("valid (2025-11-17)")
        StatusDate(status='valid', date='2025-11-17')
        >>> extract_date_from_status("expired")
        StatusDate(status='expired', date=None)
    """
    if is_empty(value) or value is False:
        return StatusDate()

    text = str(value)
    match = _STATUS_RE.match(text)
    if match:
        return StatusDate(status=match.group(1).lower(), date=match.group(2))

    # Anything else: keep the whole text, pick up a bare ISO date if present
    date_match = _ISO_DATE_RE.search(text)
    return StatusDate(
        status=text.lower(),
        date=date_match.group(1) if date_match else None,
    )


def parse_wear_string(value: Any) -> dict[str, float]:
    """Parse a composite wear estimate such as ``"bogie:72%, brake:70%, HVAC:82%"``.

    Malformed tokens are skipped.

    Returns:
        Mapping of wear field name to percentage (possibly empty)
    """
    if is_empty(value):
        return {}

    wear: dict[str, float] = {}
    for part in str(value).split(","):
        match = _WEAR_TOKEN_RE.search(part.strip())
        if match:
            wear[WEAR_FIELDS[match.group(1).lower()]] = float(match.group(2))
    return wear


def format_scalar(value: Any) -> str:
    """Render a row value as CSV cell text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)

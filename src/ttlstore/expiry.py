"""
Expiry option → absolute deadline.

An expiry option is a mapping with either a "date" entry or one or more unit
entries ("second", "hour", "day", "month"). The deadline is an epoch
millisecond timestamp, or NEVER_EXPIRES (0).

Resolution order:
  1. Not a mapping                → NEVER_EXPIRES
  2. Truthy "date"                → that timestamp (NEVER_EXPIRES if unparseable)
  3. Unit keys, insertion order   → now + amount * unit, first usable amount wins
  4. Nothing usable               → NEVER_EXPIRES
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

NEVER_EXPIRES = 0

UNIT_MILLIS: Dict[str, int] = {
    "second": 1000,
    "hour": 3600000,
    "day": 86400000,
    "month": 2592000000,  # 30 days
}

# Largest timestamp a date may carry, in ms either side of the epoch
MAX_TIMESTAMP_MS = 8.64e15


class ValueKind(Enum):
    STRING = "string"
    NUMERIC = "numeric"
    DATE_LIKE = "date_like"
    MAPPING = "mapping"
    OTHER = "other"


def kind_of(value: Any) -> ValueKind:
    """Tag a value with the shape the expiry rules care about."""
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, bool):
        return ValueKind.OTHER
    if isinstance(value, (int, float)):
        return ValueKind.NUMERIC
    if isinstance(value, (datetime, date)):
        return ValueKind.DATE_LIKE
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    return ValueKind.OTHER


def to_number(value: Any) -> float:
    """
    Coerce a value to a number the way a browser's Number() would.

    Numeric text parses, blank text is 0, bools are 0/1. Anything without a
    numeric reading is NaN.
    """
    if isinstance(value, bool):
        return float(value)
    kind = kind_of(value)
    if kind is ValueKind.NUMERIC:
        return float(value)
    if kind is ValueKind.STRING:
        text = value.strip()
        if not text:
            return 0.0
        # float() also takes "inf", "nan" and "1_000"; Number() does not
        unsigned = text.lstrip("+-")
        if "_" in text or (unsigned.lower() in ("inf", "infinity", "nan") and unsigned != "Infinity"):
            return math.nan
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _parse_date_string(text: str) -> Optional[datetime]:
    """
    Parse ISO-8601 text.

    Date-only text ("2026-01-01") is read as UTC midnight, text with a time
    and no offset as local time. A trailing "Z" means UTC.
    """
    text = text.strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None and "T" not in text and " " not in text:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _date_timestamp(value: Any) -> Optional[int]:
    """Epoch ms for a date-like value, None if it is not a valid date."""
    kind = kind_of(value)

    if kind is ValueKind.DATE_LIKE:
        if not isinstance(value, datetime):
            value = datetime.combine(value, time())
        millis = value.timestamp() * 1000
    elif kind is ValueKind.NUMERIC:
        millis = float(value)
    elif kind is ValueKind.STRING:
        parsed = _parse_date_string(value)
        if parsed is None:
            return None
        millis = parsed.timestamp() * 1000
    else:
        return None

    if math.isnan(millis) or abs(millis) > MAX_TIMESTAMP_MS:
        return None
    # 0 is reserved for "never"; dates at or before the epoch are already expired
    return max(int(round(millis)), 1)


def compute_deadline(option: Any, now: int) -> int:
    """
    Resolve an expiry option to a deadline.

    Args:
        option: {"date": ...} or {"second"|"hour"|"day"|"month": amount, ...}
        now: current epoch milliseconds

    Returns:
        Epoch ms deadline, or NEVER_EXPIRES. Never raises.
    """
    if option is None or kind_of(option) is not ValueKind.MAPPING:
        return NEVER_EXPIRES

    try:
        if option.get("date"):
            deadline = _date_timestamp(option["date"])
            if deadline is None:
                logger.debug(f"Unparseable expiry date {option['date']!r}, never expires")
                return NEVER_EXPIRES
            return deadline

        for unit in option:
            if unit not in UNIT_MILLIS:
                continue
            amount = to_number(option[unit])
            if math.isnan(amount) or amount <= 0 or math.isinf(amount):
                continue
            return now + int(amount * UNIT_MILLIS[unit])

        return NEVER_EXPIRES

    except Exception as e:  # noqa: BLE001
        logger.debug(f"Expiry option {option!r} not usable ({e}), never expires")
        return NEVER_EXPIRES

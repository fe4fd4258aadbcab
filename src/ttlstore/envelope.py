"""Envelope codec and effectiveness classification."""

from __future__ import annotations

import json
import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from jsonschema import Draft7Validator

from .expiry import NEVER_EXPIRES, to_number

ENVELOPE_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["e", "v"],
}

_validator = Draft7Validator(ENVELOPE_SCHEMA)


@dataclass(frozen=True)
class CacheEnvelope:
    """What gets persisted: deadline (e) and value (v)."""
    e: int
    v: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"e": self.e, "v": self.v}


@dataclass(frozen=True)
class Structured:
    """Backing-store text that parsed as JSON."""
    value: Any


@dataclass(frozen=True)
class Raw:
    """Backing-store text that did not parse; kept verbatim."""
    text: str


Decoded = Union[Structured, Raw]


class Effectiveness(Enum):
    VALID = "valid"
    EXPIRED = "expired"
    MALFORMED = "malformed"


def encode(envelope: CacheEnvelope) -> str:
    """Compact JSON text; NaN and infinities are rejected with ValueError."""
    return json.dumps(
        envelope.to_dict(), separators=(",", ":"), ensure_ascii=False, allow_nan=False
    )


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def decode(raw: Optional[str]) -> Decoded:
    """
    Parse backing-store text, echoing it back as Raw if it is not JSON.

    An absent entry (None) decodes to Structured(None), the same as the
    text "null". NaN, Infinity and -Infinity are not JSON and stay Raw.
    """
    if raw is None:
        return Structured(None)
    try:
        return Structured(json.loads(raw, parse_constant=_reject_constant))
    except (TypeError, ValueError):
        return Raw(raw)


def as_envelope(decoded: Decoded) -> Optional[CacheEnvelope]:
    """The envelope inside a decode result, None if it is not one."""
    if not isinstance(decoded, Structured):
        return None
    if not _validator.is_valid(decoded.value):
        return None
    return CacheEnvelope(e=decoded.value["e"], v=decoded.value["v"])


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def classify(decoded: Decoded, now: int) -> Effectiveness:
    envelope = as_envelope(decoded)
    if envelope is None:
        return Effectiveness.MALFORMED
    if _is_number(envelope.e) and envelope.e == NEVER_EXPIRES:
        return Effectiveness.VALID
    # "99999999999999" compares as a number; NaN is never ahead of the clock
    deadline = to_number(envelope.e)
    if not math.isnan(deadline) and now < deadline:
        return Effectiveness.VALID
    return Effectiveness.EXPIRED

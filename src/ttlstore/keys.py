"""Cache key normalization."""

import json
from typing import Any


def normalize_key(key: Any) -> str:
    """
    Turn any cache key into the string used in the backing store.

    Strings pass through untouched. Everything else becomes its compact JSON
    text, so ["user", 1] and ("user", 1) both map to '["user",1]'.

    Raises:
        TypeError / ValueError if the key cannot be rendered as JSON
        (including NaN and infinities)
    """
    if isinstance(key, str):
        return key
    return json.dumps(key, separators=(",", ":"), ensure_ascii=False, allow_nan=False)

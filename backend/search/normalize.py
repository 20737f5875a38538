from __future__ import annotations

import unicodedata
from typing import Any

_COMBINING_MIN = "\u0300"
_COMBINING_MAX = "\u036f"


def normalize(value: Any) -> str:
    """
    Canonical form for case/accent-insensitive comparison.

    `None` -> "". Otherwise: str, strip, lowercase, NFD, then drop the
    combining diacritical marks (so "Ñ" -> "n", "Á" -> "a").
    """
    if value is None:
        return ""
    s = unicodedata.normalize("NFD", str(value).strip().lower())
    return "".join(ch for ch in s if not (_COMBINING_MIN <= ch <= _COMBINING_MAX))

"""Query layer — value normalisation before binding."""

from __future__ import annotations

import json
from typing import Any

TEXT_COLUMNS: tuple[str, ...] = ("t1", "t2", "t3")


def normalize_text_columns(record: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *record* with structured text-column values serialised.

    Dicts and lists stored in ``t1``..``t3`` become compact JSON text.
    Primitives and ``None`` pass through unchanged.
    """
    normalized = dict(record)
    for key in TEXT_COLUMNS:
        value = normalized.get(key)
        if isinstance(value, (dict, list)):
            normalized[key] = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return normalized

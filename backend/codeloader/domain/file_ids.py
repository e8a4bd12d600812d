"""
Normalization for stored file-id lists.

head_files / body_files have been persisted in several shapes over
time: JSON arrays, JSON-encoded strings, arrays of {"id": ...} objects.
Everything that reads or writes those columns goes through
normalize_file_ids() so business logic only ever sees list[int].
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


def _coerce_id(item: Any) -> Optional[int]:
    if isinstance(item, dict):
        item = item.get("id")
    if isinstance(item, bool) or item is None:
        return None
    if isinstance(item, int):
        return item
    if isinstance(item, float):
        return int(item) if item.is_integer() else None
    if isinstance(item, str):
        try:
            return int(item.strip())
        except ValueError:
            return None
    return None


def normalize_file_ids(raw: Any) -> List[int]:
    """
    Normalize any historical file-list shape to an ordered list[int].

    Accepts:
    - None / "" / []              -> []
    - [3, "1", 7]                 -> [3, 1, 7]
    - [{"id": 3}, {"id": "1"}]    -> [3, 1]
    - '[3, 1]' / '[{"id": 3}]'    -> [3, 1] / [3]

    Entries that are not numeric are dropped. Order and duplicates are
    kept as stored.
    """
    if raw is None:
        return []

    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")

    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning(f"Failed to parse file IDs string: {raw!r}")
            return []

    if not isinstance(raw, (list, tuple)):
        return []

    ids: List[int] = []
    for item in raw:
        file_id = _coerce_id(item)
        if file_id is not None:
            ids.append(file_id)
    return ids

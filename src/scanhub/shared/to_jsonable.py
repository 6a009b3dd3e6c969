from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


def to_jsonable(obj: Any) -> Any:
    """Convert reports and records into JSON-serializable structures.

    Handles:
    - Basic types (str, int, float, bool, None)
    - Enums (by value), datetimes (ISO 8601) and paths
    - Collections (list, tuple, set, dict; enum keys become their values)
    - Dataclasses, including read-only properties listed in ``__json_properties__``
    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        if isinstance(obj, Enum):
            return obj.value
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_jsonable(item) for item in obj]
    if isinstance(obj, dict):
        return {_key(k): to_jsonable(v) for k, v in obj.items()}
    if is_dataclass(obj) and not isinstance(obj, type):
        data = {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
        for prop in getattr(obj, "__json_properties__", ()):
            data[prop] = to_jsonable(getattr(obj, prop))
        return data
    return str(obj)


def _key(key: Any) -> str:
    if isinstance(key, Enum):
        return str(key.value)
    return str(key)

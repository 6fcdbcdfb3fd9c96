"""
Data normalization utilities for rows read back through raw SQL.

Problem:
---------
The services talk to PostgreSQL in production and SQLite in tests through the
same `text()` queries. The two drivers disagree on a few types:
1. Booleans come back as True/False from asyncpg but 0/1 from SQLite
2. JSON documents (content, metadata) are stored as TEXT and come back as str
3. Timestamps are datetime objects on one driver and strings on the other

Solution:
---------
normalize_db_row() converts a mapping row into a plain dict with real
booleans and parsed JSON columns, so callers never see driver differences.

Usage:
------
    row = result.mappings().first()
    return normalize_db_row(dict(row), json_fields=["metadata"], bool_fields=["published"])
"""
from typing import Any, Dict, Iterable, Optional
import json


def as_bool(value: Any) -> bool:
    """Coerce a driver boolean (True, 1, "1", "true", "t") to bool."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "t", "yes")
    return False


def normalize_json_field(value: Any, default: Any = None) -> Any:
    """
    Parse a JSON column that may arrive either as text or already decoded.

    Text that is not valid JSON yields `default`.
    """
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except (json.JSONDecodeError, ValueError):
            return default
    return value if value is not None else default


def normalize_db_row(
    row: Dict[str, Any],
    json_fields: Optional[Iterable[str]] = None,
    bool_fields: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """
    Normalize an entire database row.

    Args:
        row: Database row as dictionary
        json_fields: TEXT columns holding JSON documents (parsed, default {})
        bool_fields: columns coerced to real booleans

    Returns:
        New dictionary safe for JSON serialization
    """
    json_fields = set(json_fields or ())
    bool_fields = set(bool_fields or ())

    normalized = {}
    for key, value in row.items():
        if key in json_fields:
            normalized[key] = normalize_json_field(value, default={})
        elif key in bool_fields:
            normalized[key] = as_bool(value)
        else:
            normalized[key] = value
    return normalized

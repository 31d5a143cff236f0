"""
Relation helpers

Relation fields arrive either as a bare id (int or numeric string), as an
expanded document (dict with "id") or as an ORM instance. Every read site
goes through normalize_relation_id instead of checking the shape itself.
"""

from collections.abc import Mapping
from typing import Any, Optional, Union

RelationId = Union[int, str]


def normalize_relation_id(value: Any) -> Optional[RelationId]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            return int(trimmed)
        except ValueError:
            return trimmed
    if isinstance(value, Mapping):
        return normalize_relation_id(value.get("id"))
    if hasattr(value, "id"):
        return normalize_relation_id(value.id)
    return None


def same_relation(a: Any, b: Any) -> bool:
    """True when both values point at the same record (string and int ids compare equal)"""
    left = normalize_relation_id(a)
    right = normalize_relation_id(b)
    if left is None or right is None:
        return left is right
    return str(left) == str(right)

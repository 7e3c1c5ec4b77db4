"""
utils/document_utils.py

Purpose: MongoDB document serialization

- Converts ObjectIds to strings and datetimes to ISO strings
- Recurses into embedded documents and arrays
- Strips secrets before documents leave the API
"""

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from bson import ObjectId


# Never returned to clients
PRIVATE_USER_FIELDS = ("password", "resetPasswordToken", "resetPasswordExpires")


def serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    return value


def serialize_document(doc: Optional[Dict[str, Any]], exclude: Iterable[str] = ()) -> Optional[Dict[str, Any]]:
    """
    Converts a MongoDB document into a JSON-ready dict.

    ``_id`` keeps its key (the browser client reads ``_id``), only its value
    becomes a string.

    Args:
        doc: Raw document (or None)
        exclude: Top-level keys to drop

    Returns:
        JSON-serializable dict, or None
    """
    if doc is None:
        return None
    excluded = set(exclude)
    return {k: serialize_value(v) for k, v in doc.items() if k not in excluded}


def serialize_user(user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return serialize_document(user, exclude=PRIVATE_USER_FIELDS)

"""
utils/validation_utils.py

Purpose: Input validation

- ObjectId parsing for path and body references
- Email normalization
- Multipart form value parsing (booleans, prices)
- Image upload checks
- Input sanitization
"""

import re
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId


ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def is_valid_object_id(value) -> bool:
    """
    Checks whether a value can be used as a MongoDB ObjectId.

    Only 24-character hex strings (or ObjectId instances) qualify; the
    12-byte string form that bson also accepts is rejected so that short
    client ids like "1" or "abcdefghijkl" never parse.
    """
    if isinstance(value, ObjectId):
        return True
    if not isinstance(value, str):
        return False
    return bool(re.fullmatch(r"[0-9a-fA-F]{24}", value))


def parse_object_id(value) -> Optional[ObjectId]:
    """
    Converts a string to an ObjectId.

    Returns:
        ObjectId, or None if the value is not a valid id
    """
    if isinstance(value, ObjectId):
        return value
    if not is_valid_object_id(value):
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def normalize_email(email: Optional[str]) -> str:
    if not email:
        return ""
    return email.strip().lower()


def parse_form_bool(value, default: Optional[bool] = None) -> Optional[bool]:
    """
    Parses a boolean sent as a multipart form string.

    Accepts true/false, 1/0, yes/no, on/off (any case).

    Returns:
        Parsed boolean, or ``default`` for empty / unrecognised input
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value

    text = str(value).strip().lower()
    if text in ("true", "1", "yes", "on"):
        return True
    if text in ("false", "0", "no", "off"):
        return False
    return default


def parse_price(value) -> Optional[float]:
    """
    Parses a non-negative price rounded to 2 decimals.

    Returns:
        Price, or None if the value is not a finite non-negative number
    """
    if value is None or value == "":
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if price != price or price in (float("inf"), float("-inf")) or price < 0:
        return None
    return round(price, 2)


def image_extension(content_type: Optional[str]) -> Optional[str]:
    """
    Returns the file extension for an accepted image content type.

    Returns:
        Extension including the dot, or None if the type is not accepted
    """
    if not content_type:
        return None
    return ALLOWED_IMAGE_TYPES.get(content_type.split(";")[0].strip().lower())


def sanitize_input(text: Optional[str], max_length: int = 1000) -> str:
    """
    Sanitizes free-text input before it is stored.

    Args:
        text: Input text
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    text = text[:max_length]

    # Strip markup characters
    text = re.sub(r"[<>{}\[\]]", "", text)

    # Normalize whitespace
    text = " ".join(text.split())

    return text.strip()

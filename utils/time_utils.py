"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Reset token expiry calculations
- Naive UTC timestamps, as stored by pymongo
"""

from datetime import datetime, timedelta


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime (the form pymongo stores).
    """
    return datetime.utcnow()

def expiry_from_now(minutes: int) -> datetime:
    """
    Calculates an expiry timestamp ``minutes`` from now.
    """
    return utcnow() + timedelta(minutes=minutes)

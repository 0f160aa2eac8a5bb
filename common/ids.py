"""
Shared utility functions for generating order IDs and timestamps.
"""

import time
from datetime import datetime, timezone

BASE36_ALPHABET = '0123456789abcdefghijklmnopqrstuvwxyz'


def to_base36(number: int) -> str:
    """Encode a non-negative integer in lowercase base36."""
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return '0'
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(BASE36_ALPHABET[rem])
    return ''.join(reversed(digits))


def current_millis() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


def generate_order_id(millis: int = None) -> str:
    """Generate a short order ID from an epoch millisecond timestamp."""
    if millis is None:
        millis = current_millis()
    return to_base36(millis)


def utc_now() -> datetime:
    """Timezone-aware current time in UTC, truncated to milliseconds."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def format_timestamp(dt: datetime) -> str:
    """
    Format a datetime as ISO-8601 in UTC.

    Naive datetimes (as returned by pymongo) are taken to be UTC.

    Returns:
        str: Timestamp like '2026-02-10T14:30:00.123Z'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f'{dt.microsecond // 1000:03d}Z'


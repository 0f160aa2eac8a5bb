"""
Input validation for order writes.
Presence checks only, nested shapes are not validated.
"""
import math
import re
from typing import Any, Optional

ORDER_FIELDS = ('scoop', 'cone', 'sprinkles', 'customer', 'price')

# plain decimal with optional exponent: no underscores, hex or inf/nan words
PRICE_PATTERN = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')


def is_present(value: Any) -> bool:
    """Presence check: None, False, 0 and "" count as missing, empty containers do not."""
    if value is None or value is False:
        return False
    if isinstance(value, float):
        return value != 0 and not math.isnan(value)
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value != ''
    return True


def coerce_price(value: Any) -> Optional[float]:
    """Convert a price to a finite float, or None if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not PRICE_PATTERN.match(value):
            return None
    elif not isinstance(value, (int, float)):
        return None
    try:
        price = float(value)
    except OverflowError:
        return None
    if not math.isfinite(price):
        return None
    return price


def sanitize_order_input(body: Any) -> dict:
    """Keep only the writable order fields from a request body"""
    if not isinstance(body, dict):
        body = {}
    return {field: body.get(field) for field in ORDER_FIELDS}


def is_valid_order(data: dict) -> bool:
    """Check the required fields of a sanitized order payload"""
    if not is_present(data.get('scoop')) or not is_present(data.get('cone')) \
            or not is_present(data.get('sprinkles')):
        return False

    customer = data.get('customer')
    if not is_present(customer) or not isinstance(customer, dict):
        return False
    if not is_present(customer.get('name')) or not is_present(customer.get('address')):
        return False

    return coerce_price(data.get('price')) is not None


def _pick(value: Any, keys: tuple) -> dict:
    # non-mapping values keep the shape with empty sub-fields
    source = value if isinstance(value, dict) else {}
    return {key: source.get(key) for key in keys}


def build_order(data: dict, now) -> dict:
    """
    Build the document to persist from a validated payload.

    Status is always "pending" and the date is the creation time,
    whatever the client sent.
    """
    customer = data['customer']
    return {
        "scoop": _pick(data['scoop'], ('flavor', 'color')),
        "cone": _pick(data['cone'], ('style', 'color')),
        "sprinkles": _pick(data['sprinkles'], ('level',)),
        "customer": {
            "name": customer['name'],
            "address": _pick(customer['address'], ('street', 'city')),
        },
        "price": coerce_price(data['price']),
        "status": "pending",
        "date": now,
    }

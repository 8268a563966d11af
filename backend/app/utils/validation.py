"""
Input Validation Utilities
===========================

Common validation functions for upstream payload values and user inputs.

Upstream APIs are loosely typed: a number may arrive as 12, 12.0, "12"
or not at all. These helpers turn such values into something safe to
compute with, or None.
"""

import math
from typing import Any, Optional


def to_number(value: Any) -> Optional[float]:
    """
    Convert a loosely-typed value to a finite float.

    Args:
        value: Anything (int, float, numeric string, None, ...)

    Returns:
        The float, or None if it isn't a finite number.
        Booleans and empty strings are not numbers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def to_int_id(value: Any) -> Optional[int]:
    """
    Convert an upstream identifier (sensor id, location id, ...) to an int.

    Args:
        value: Identifier as number or numeric string

    Returns:
        The integer id, or None if it isn't a whole finite number.
    """
    number = to_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def validate_coordinates(lat: Any, lon: Any) -> bool:
    """
    Validate a latitude/longitude pair.

    Args:
        lat: Latitude (-90 to 90)
        lon: Longitude (-180 to 180)

    Returns:
        True if both are numbers in range, False otherwise
    """
    lat_num = to_number(lat)
    lon_num = to_number(lon)
    if lat_num is None or lon_num is None:
        return False
    return -90 <= lat_num <= 90 and -180 <= lon_num <= 180


def is_placeholder_key(key: Optional[str]) -> bool:
    """
    Check if an API key is missing or still the .env template placeholder.

    Args:
        key: Value read from the environment

    Returns:
        True if the key can't be used
    """
    return not key or key.strip() in ("", "YOUR_KEY_HERE")

"""
Loose Payload Helpers
=====================

OpenAQ has shipped several response shapes over time, and the same field
can appear under different names (parameter.name, parameterName,
parameter_id, ...). Instead of probing objects ad hoc, each lookup here is
an ordered list of extraction strategies. Every strategy takes the raw
object and returns a value or None; first_defined() keeps the first hit.
"""

from typing import Any, Callable, Iterable, Optional, Sequence

# A strategy pulls one candidate value out of a loosely-typed record
Strategy = Callable[[Any], Any]

# Fields that can hold a parameter name, in priority order
PARAMETER_NAME_FIELDS = ("name", "code", "parameter", "displayName", "display_name")

# The list-query fallback only ever carries these
PARAMETER_LIST_NAME_FIELDS = ("name", "code", "parameter")

# Direct name fields on a sensor object
SENSOR_DIRECT_NAME_FIELDS = ("parameter_name", "parameterName")

# Parameter id references on a sensor object
SENSOR_PARAMETER_ID_PATHS = (
    ("parameterId",),
    ("parameter_id",),
    ("parameter", "id"),
    ("parameter", "parameterId"),
    ("parameter", "parameter_id"),
    ("parametersId",),
    ("parameters_id",),
)

# Sensor id on a row of /locations/{id}/latest
LATEST_ROW_SENSOR_ID_FIELDS = ("sensorsId", "sensorId", "sensor_id")

# Sensor id on a sensor object from /sensors
SENSOR_OBJECT_ID_FIELDS = ("id", "sensorsId", "sensorId")


def first_defined(values: Iterable[Any]) -> Any:
    """Return the first value that is not None, or None."""
    for value in values:
        if value is not None:
            return value
    return None


def field(*path: str) -> Strategy:
    """
    Build a strategy that walks a path of dict keys.

    field("parameter", "id") reads obj["parameter"]["id"] and gives None
    as soon as something along the way isn't a dict.
    """
    def _get(obj: Any) -> Any:
        current = obj
        for key in path:
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        return current
    return _get


def first_of(obj: Any, strategies: Sequence[Strategy]) -> Any:
    """Run strategies in order and keep the first non-None result."""
    return first_defined(strategy(obj) for strategy in strategies)


def first_field(obj: Any, names: Sequence[str]) -> Any:
    """Shortcut for first_of() over single-key fields."""
    return first_of(obj, [field(name) for name in names])


def extract_array(data: Any) -> list:
    """
    Pull the list of records out of a response body.

    Handles {"results": [...]}, {"results": {...}}, {"data": [...]},
    {"data": {...}} and a bare list. Anything else is an empty list.
    """
    if not data:
        return []
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return []

    for key in ("results", "data"):
        value = data.get(key)
        if isinstance(value, list):
            return value
        if isinstance(value, dict):
            return list(value.values())
    return []


def first_record(data: Any) -> Optional[Any]:
    """First record of a response body, falling back to the body itself."""
    records = extract_array(data)
    if records:
        return records[0]
    return data or None

"""
AQI Calculator
==============

Turns pollutant concentrations into the Indian National AQI.

HOW AQI WORKS:
-------------
Each pollutant has a breakpoint table. A table is a list of bands:

    concentration 0-30 µg/m³   ->  index 0-50    "Good"
    concentration 31-60 µg/m³  ->  index 51-100  "Satisfactory"
    ...

Inside a band the index is a straight line between the band's ends.
Each pollutant gets its own sub-index; the station's AQI is the worst
(highest) sub-index and that pollutant is the "dominant" one.

Only PM2.5 and PM10 are supported.
"""

import math
import re
from typing import Any, Iterable, Optional

from app.models import Measurement, StationAggregate, SubIndex
from app.utils.validation import to_number


MAX_INDEX = 500

UNKNOWN_CATEGORY = "Unknown"

# (c_low, c_high, i_low, i_high, category), concentrations in µg/m³
AQI_BREAKPOINTS: dict[str, list[tuple[float, float, int, int, str]]] = {
    "pm25": [
        (0, 30, 0, 50, "Good"),
        (31, 60, 51, 100, "Satisfactory"),
        (61, 90, 101, 200, "Moderate"),
        (91, 120, 201, 300, "Poor"),
        (121, 250, 301, 400, "Very Poor"),
        (251, 500, 401, 500, "Severe"),
    ],
    "pm10": [
        (0, 50, 0, 50, "Good"),
        (51, 100, 51, 100, "Satisfactory"),
        (101, 250, 101, 200, "Moderate"),
        (251, 350, 201, 300, "Poor"),
        (351, 430, 301, 400, "Very Poor"),
        (431, 500, 401, 500, "Severe"),
    ],
}

SUPPORTED_PARAMETERS = tuple(AQI_BREAKPOINTS)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_parameter(raw: Any) -> str:
    """
    Canonical parameter name: lowercase, letters and digits only.

    "PM2.5", "pm2_5" and "pm-2.5" all become "pm25".
    Empty or missing input gives "" (treated as unknown).
    """
    if not raw:
        return ""
    return _NON_ALNUM.sub("", str(raw).lower())


def _pick_band(bands: list[tuple[float, float, int, int, str]], value: float):
    # First band not entirely below the value; past the top band, the top band
    for band in bands:
        if value <= band[1]:
            return band
    return bands[-1]


def linear_scale(value: float, band: tuple[float, float, int, int, str]) -> float:
    c_low, c_high, i_low, i_high, _ = band
    return ((i_high - i_low) / (c_high - c_low)) * (value - c_low) + i_low


def compute_sub_index(parameter: Any, value: Any) -> Optional[SubIndex]:
    """
    Sub-index for one pollutant reading.

    Args:
        parameter: Parameter label in any spelling ("PM2.5", "pm25", ...)
        value: Concentration in µg/m³

    Returns:
        SubIndex with index in [0, 500], or None if the parameter has no
        breakpoint table or the value isn't a finite number.

    Values between two bands (the tables jump 30 -> 31) take the upper band
    and score its lowest index. Concentrations above the top band are
    extrapolated with the top band's line and then capped at 500.
    """
    param = normalize_parameter(parameter)
    bands = AQI_BREAKPOINTS.get(param)
    number = to_number(value)
    if not bands or number is None:
        return None

    band = _pick_band(bands, number)
    # Below the band's c_low (a gap or a negative reading) scores its i_low
    scaled = min(max(linear_scale(number, band), band[2]), MAX_INDEX)
    # Half up: 50.5 -> 51
    index = min(math.floor(scaled + 0.5), MAX_INDEX)
    return SubIndex(parameter=param, index=index, category=band[4])


def _read(measurement: Any, name: str) -> Any:
    if isinstance(measurement, dict):
        return measurement.get(name)
    return getattr(measurement, name, None)


def aggregate_aqi(measurements: Optional[Iterable[Any]]) -> StationAggregate:
    """
    Combine a station's measurements into one AQI.

    Args:
        measurements: Measurement models or dicts with "parameter" and "value"

    Returns:
        StationAggregate. The dominant pollutant is the first one with the
        highest sub-index. With nothing computable: aqi None, "Unknown".
    """
    sub_indexes: list[SubIndex] = []
    for measurement in measurements or []:
        sub = compute_sub_index(_read(measurement, "parameter"), _read(measurement, "value"))
        if sub is not None:
            sub_indexes.append(sub)

    if not sub_indexes:
        return StationAggregate(aqi=None, category=UNKNOWN_CATEGORY, dominant=None, sub_indexes=[])

    dominant = sub_indexes[0]
    for sub in sub_indexes[1:]:
        if sub.index > dominant.index:
            dominant = sub

    return StationAggregate(
        aqi=dominant.index,
        category=dominant.category,
        dominant=dominant.parameter,
        sub_indexes=sub_indexes,
    )


def is_supported(measurement: Measurement) -> bool:
    """True if the measurement's pollutant has a breakpoint table."""
    return measurement.parameter in SUPPORTED_PARAMETERS

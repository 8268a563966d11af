import pytest

from app.models import Measurement
from app.services.aqi_calculator import (
    AQI_BREAKPOINTS,
    aggregate_aqi,
    compute_sub_index,
    normalize_parameter,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("PM2.5", "pm25"),
        ("pm2_5", "pm25"),
        ("pm-2.5", "pm25"),
        ("PM10", "pm10"),
        ("", ""),
        (None, ""),
        (0, ""),
    ],
)
def test_normalize_parameter(raw, expected):
    assert normalize_parameter(raw) == expected


def test_pm25_top_of_good_band():
    sub = compute_sub_index("pm25", 30)
    assert sub.index == 50
    assert sub.category == "Good"


def test_pm25_bottom_of_satisfactory_band():
    sub = compute_sub_index("pm25", 31)
    assert sub.index == 51
    assert sub.category == "Satisfactory"


def test_pm10_above_top_band_is_capped():
    sub = compute_sub_index("pm10", 600)
    assert sub.index == 500
    assert sub.category == "Severe"


def test_any_spelling_of_the_parameter_works():
    assert compute_sub_index("PM2.5", 30).index == 50
    assert compute_sub_index("PM2.5", 30).parameter == "pm25"


def test_unsupported_parameter():
    assert compute_sub_index("co2", 50) is None


@pytest.mark.parametrize("value", [None, "abc", float("nan"), float("inf"), ""])
def test_non_numeric_value(value):
    assert compute_sub_index("pm25", value) is None


def test_numeric_string_value():
    assert compute_sub_index("pm25", "30").index == 50


def test_negative_concentration_is_clamped_to_zero():
    assert compute_sub_index("pm25", -20).index == 0


def test_huge_concentration_is_capped():
    assert compute_sub_index("pm25", 1e300).index == 500


@pytest.mark.parametrize("parameter", sorted(AQI_BREAKPOINTS))
def test_values_inside_a_band_stay_inside_its_index_range(parameter):
    for c_low, c_high, i_low, i_high, category in AQI_BREAKPOINTS[parameter]:
        steps = 20
        previous = None
        for step in range(steps + 1):
            value = c_low + (c_high - c_low) * step / steps
            sub = compute_sub_index(parameter, value)
            assert i_low <= sub.index <= i_high
            assert sub.category == category
            if previous is not None:
                assert sub.index >= previous
            previous = sub.index


def test_aggregate_of_nothing_is_unknown():
    result = aggregate_aqi([])
    assert result.aqi is None
    assert result.category == "Unknown"
    assert result.dominant is None
    assert result.sub_indexes == []
    assert result.model_dump(by_alias=True) == {
        "aqi": None,
        "category": "Unknown",
        "dominant": None,
        "subIndexes": [],
    }


def test_aggregate_of_none_is_unknown():
    assert aggregate_aqi(None).aqi is None


def test_aggregate_picks_highest_sub_index():
    result = aggregate_aqi([
        {"parameter": "pm25", "value": 40},
        {"parameter": "pm10", "value": 500},
    ])
    pm25 = compute_sub_index("pm25", 40)
    pm10 = compute_sub_index("pm10", 500)
    assert pm10.index > pm25.index
    assert result.dominant == "pm10"
    assert result.aqi == pm10.index
    assert result.category == pm10.category
    assert [s.parameter for s in result.sub_indexes] == ["pm25", "pm10"]


def test_aggregate_tie_goes_to_first_seen():
    # pm25 at 30 and pm10 at 50 are both exactly 50
    result = aggregate_aqi([
        {"parameter": "pm10", "value": 50},
        {"parameter": "pm25", "value": 30},
    ])
    assert result.aqi == 50
    assert result.dominant == "pm10"

    flipped = aggregate_aqi([
        {"parameter": "pm25", "value": 30},
        {"parameter": "pm10", "value": 50},
    ])
    assert flipped.dominant == "pm25"


def test_aggregate_skips_unusable_measurements():
    result = aggregate_aqi([
        {"parameter": "no2", "value": 80},
        {"parameter": "pm25", "value": None},
        Measurement(parameter="pm25", value=75),
    ])
    assert len(result.sub_indexes) == 1
    assert result.dominant == "pm25"
    assert result.category == "Moderate"


def _gap_values(parameter):
    bands = AQI_BREAKPOINTS[parameter]
    for lower, upper in zip(bands, bands[1:]):
        gap = upper[0] - lower[1]
        for fraction in (0.01, 0.4, 0.5, 0.6, 0.99):
            yield lower[1] + gap * fraction


@pytest.mark.parametrize(
    "parameter,value",
    [(p, v) for p in sorted(AQI_BREAKPOINTS) for v in _gap_values(p)],
)
def test_values_between_bands_land_in_the_upper_band_range(parameter, value):
    sub = compute_sub_index(parameter, value)
    band = next(b for b in AQI_BREAKPOINTS[parameter] if b[4] == sub.category)
    assert band[2] <= sub.index <= band[3]
    assert sub.index >= compute_sub_index(parameter, int(value)).index
    assert sub.index <= compute_sub_index(parameter, int(value) + 1).index


@pytest.mark.parametrize(
    "value,index,category",
    [(30.5, 51, "Satisfactory"), (60.4, 101, "Moderate"), (90.9, 201, "Poor")],
)
def test_pm25_gap_values(value, index, category):
    sub = compute_sub_index("pm25", value)
    assert (sub.index, sub.category) == (index, category)

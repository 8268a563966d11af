import json

from app.models import Station, Ward
from app.services import StationRegistry
from app.services.station_registry import DATA_DIR


def registry(*ids):
    return StationRegistry([Station(id=i, name=i.title(), location_id=n) for n, i in enumerate(ids, 1)], [])


def test_find_station_ignores_case_and_spaces():
    reg = registry("anand-vihar", "rk-puram")
    assert reg.find_station(" RK-PURAM ").id == "rk-puram"


def test_find_station_falls_back_to_first():
    reg = registry("anand-vihar", "rk-puram")
    assert reg.find_station(None).id == "anand-vihar"
    assert reg.find_station("").id == "anand-vihar"
    assert reg.find_station("unknown").id == "anand-vihar"


def test_find_station_without_stations():
    assert StationRegistry([], []).find_station("rk-puram") is None


def test_bundled_data_loads():
    reg = StationRegistry.from_files(DATA_DIR / "stations.json", DATA_DIR / "wards.json")
    assert reg.stations
    assert reg.wards
    assert all(station.location_id is not None for station in reg.stations)


def test_extra_station_keys_pass_through(tmp_path):
    stations = tmp_path / "stations.json"
    stations.write_text(json.dumps([
        {"id": "rk-puram", "name": "R K Puram", "locationId": 8118, "lat": 28.56, "lon": 77.18},
    ]))

    reg = StationRegistry.from_files(stations, tmp_path / "wards.json")

    assert reg.stations[0].location_id == 8118
    assert reg.stations_snapshot() == [
        {"id": "rk-puram", "name": "R K Puram", "locationId": 8118, "lat": 28.56, "lon": 77.18},
    ]
    assert reg.wards == []


def test_broken_files_give_empty_lists(tmp_path):
    broken = tmp_path / "stations.json"
    broken.write_text("{not json")
    not_a_list = tmp_path / "wards.json"
    not_a_list.write_text(json.dumps({"id": "w1"}))

    reg = StationRegistry.from_files(broken, not_a_list)

    assert reg.stations == []
    assert reg.wards == []


def test_non_object_entries_are_skipped(tmp_path):
    wards = tmp_path / "wards.json"
    wards.write_text(json.dumps([{"id": "w1", "name": "Ward 1"}, "junk", 3]))

    reg = StationRegistry.from_files(tmp_path / "missing.json", wards)

    assert reg.wards == [Ward(id="w1", name="Ward 1")]

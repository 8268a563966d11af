"""
Station Registry
================

Loads the static station and ward lists from JSON files.

The files live in app/data/ and are read once when the app starts.
Nothing here is ever written back; to change the stations, edit
stations.json and restart.

stations.json format:
    [
        {"id": "rk-puram", "name": "R K Puram, Delhi - DPCC", "locationId": 8118},
        ...
    ]

Any extra keys (lat, lon, ...) are kept and passed through to the frontend.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from app.models import Station, Ward

logger = logging.getLogger(__name__)


DATA_DIR = Path(__file__).parent.parent / "data"


class StationRegistry:
    """Read-only view of the configured stations and wards."""

    def __init__(self, stations: list[Station], wards: list[Ward]):
        self.stations = list(stations)
        self.wards = list(wards)

    @staticmethod
    def _load_list(path: Path) -> list[dict]:
        """Read a JSON array from disk. A missing or broken file is an empty list."""
        if not path.exists():
            logger.warning(f"No data file found at {path}")
            return []

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing {path.name}: {e}")
            return []

        if not isinstance(data, list):
            logger.error(f"{path.name} must contain a JSON array, got {type(data).__name__}")
            return []
        return [item for item in data if isinstance(item, dict)]

    @classmethod
    def from_files(
        cls,
        stations_file: Union[str, Path] = DATA_DIR / "stations.json",
        wards_file: Union[str, Path] = DATA_DIR / "wards.json",
    ) -> "StationRegistry":
        """Build the registry from stations.json and wards.json."""
        stations = []
        for raw in cls._load_list(Path(stations_file)):
            try:
                stations.append(Station.model_validate(raw))
            except ValidationError as e:
                logger.error(f"Skipping invalid station {raw.get('id')}: {e}")

        wards = []
        for raw in cls._load_list(Path(wards_file)):
            try:
                wards.append(Ward.model_validate(raw))
            except ValidationError as e:
                logger.error(f"Skipping invalid ward {raw.get('id')}: {e}")

        logger.info(f"Loaded {len(stations)} stations and {len(wards)} wards")
        return cls(stations, wards)

    def find_station(self, station_id: Optional[str]) -> Optional[Station]:
        """
        Station matching ?id= (case-insensitive, surrounding spaces ignored).

        Falls back to the first station when id is empty or unknown.
        None only if there are no stations at all.
        """
        if not self.stations:
            return None

        wanted = str(station_id or "").strip().lower()
        if wanted:
            for station in self.stations:
                if str(station.id or "").strip().lower() == wanted:
                    return station
        return self.stations[0]

    def stations_snapshot(self) -> list[dict]:
        """Stations as the frontend sees them (camelCase keys)."""
        return [station.model_dump(by_alias=True) for station in self.stations]

    def wards_snapshot(self) -> list[dict]:
        """Wards as the frontend sees them."""
        return [ward.model_dump(by_alias=True) for ward in self.wards]

"""
AirSure Backend
===============

This is the Python package for the AirSure API.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (stations, readings, AQI results)
- services/  = Workers (talk to OpenAQ, WeatherAPI.com, NASA FIRMS, compute AQI)
- routers/   = API endpoints under /api
- utils/     = Small helpers (number parsing, payload probing, errors)
- data/      = stations.json and wards.json
- main.py    = Puts it all together and starts the server
"""

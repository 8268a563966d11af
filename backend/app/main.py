"""
AirSure Backend - API
=====================
FastAPI application that serves a citywide air-quality snapshot.

ARCHITECTURE:
    The backend pulls from three third-party APIs, combines the air
    quality data into one AQI and serves it, together with the static
    frontend, from a single process.

    [Browser / Frontend] --HTTP--> [This Backend] ---> [OpenAQ v3]        (AQI)
                                         |      \\---> [WeatherAPI.com]  (weather)
                                         |       \\--> [NASA FIRMS]      (fires)
                                         v
                                  [Frontend/ static files]

HOW TO RUN:
    # Install dependencies
    pip install -e .

    # Copy environment config and fill in your keys
    cp .env.example .env

    # Run the server
    cd backend
    uvicorn app.main:app --reload --port 5000
    # or: python -m app.main   (uses PORT, default 5000)

API DOCUMENTATION:
    After starting the server, visit:
    - Swagger UI: http://localhost:5000/docs
    - OpenAPI JSON: http://localhost:5000/openapi.json
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from app.routers import api_router, set_services, clear_services
from app.services import (
    AQIAggregator,
    FirmsService,
    OpenAQService,
    StationRegistry,
    TTLCache,
    WeatherService,
)
from app.services.station_registry import DATA_DIR
from app.utils.errors import ApiError


# Load environment variables from .env file
load_dotenv()


# =============================================================================
# CONFIGURATION
# =============================================================================

def _env_int(name: str, default: int) -> int:
    """Read an integer env var, falling back to default on junk."""
    try:
        return int(float(os.getenv(name, default)))
    except (TypeError, ValueError):
        return default


class Config:
    """
    Application configuration loaded from environment variables.

    Environment Variables:
        OPENAQ_BASE: OpenAQ API root (default: https://api.openaq.org/v3)
        OPENAQ_API_KEY: OpenAQ v3 key - REQUIRED for any AQI data
        OPENAQ_TIMEOUT_MS: Per-request timeout for OpenAQ (default: 12000)
        OPENAQ_LATEST_CACHE_MS: Latest readings cache (default: 60 s)
        OPENAQ_SENSOR_CACHE_MS: Sensor -> parameter cache (default: 7 days)
        OPENAQ_PARAM_CACHE_MS: Parameter id -> name cache (default: 30 days)
        OPENAQ_STATION_CONCURRENCY: Stations fetched at once (default: 1)
        WEATHER_API_KEY: WeatherAPI.com key
        WEATHER_TIMEOUT_MS: Per-request timeout for weather (default: 8000)
        NASA_FIRMS_MAP_KEY: NASA FIRMS map key
        NASA_FIRMS_AREA: FIRMS area name (default: Delhi)
        NASA_FIRMS_PRODUCT: FIRMS product (default: VIIRS_SNPP_NRT)
        NASA_FIRMS_TIMEOUT_MS: Per-request timeout for FIRMS (default: 12000)
        FRONTEND_DIR: Static frontend folder (default: ../Frontend next to backend/)
        STATIONS_FILE / WARDS_FILE: Override the bundled JSON data
        APP_ENV: "production" hides internal error messages
        LOG_LEVEL: Logging level (default: INFO)
        PORT: Port for `python -m app.main` (default: 5000)
    """

    OPENAQ_BASE = os.getenv("OPENAQ_BASE", OpenAQService.DEFAULT_BASE_URL).rstrip("/")
    OPENAQ_API_KEY = os.getenv("OPENAQ_API_KEY")
    OPENAQ_TIMEOUT_MS = _env_int("OPENAQ_TIMEOUT_MS", 12000)

    # Caches to avoid 429s
    OPENAQ_LATEST_CACHE_MS = _env_int("OPENAQ_LATEST_CACHE_MS", 60 * 1000)
    OPENAQ_SENSOR_CACHE_MS = _env_int("OPENAQ_SENSOR_CACHE_MS", 7 * 24 * 60 * 60 * 1000)
    OPENAQ_PARAM_CACHE_MS = _env_int("OPENAQ_PARAM_CACHE_MS", 30 * 24 * 60 * 60 * 1000)

    # 1 = one station at a time
    OPENAQ_STATION_CONCURRENCY = _env_int("OPENAQ_STATION_CONCURRENCY", 1)

    WEATHER_API_KEY = os.getenv("WEATHER_API_KEY")
    WEATHER_TIMEOUT_MS = _env_int("WEATHER_TIMEOUT_MS", 8000)

    NASA_FIRMS_MAP_KEY = os.getenv("NASA_FIRMS_MAP_KEY")
    NASA_FIRMS_AREA = os.getenv("NASA_FIRMS_AREA", "Delhi")
    NASA_FIRMS_PRODUCT = os.getenv("NASA_FIRMS_PRODUCT", "VIIRS_SNPP_NRT")
    NASA_FIRMS_TIMEOUT_MS = _env_int("NASA_FIRMS_TIMEOUT_MS", 12000)

    FRONTEND_DIR = Path(
        os.getenv("FRONTEND_DIR", Path(__file__).resolve().parent.parent.parent / "Frontend")
    )
    STATIONS_FILE = os.getenv("STATIONS_FILE", str(DATA_DIR / "stations.json"))
    WARDS_FILE = os.getenv("WARDS_FILE", str(DATA_DIR / "wards.json"))

    APP_ENV = os.getenv("APP_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    PORT = _env_int("PORT", 5000)


logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
    format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
    handlers=[logging.StreamHandler(sys.stderr)],
)
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    STARTUP:
        1. Load stations and wards
        2. Create the three OpenAQ caches
        3. Initialize services (OpenAQ, aggregator, weather, FIRMS)
        4. Inject them into the router

    SHUTDOWN:
        1. Close HTTP clients
    """
    # ========== STARTUP ==========
    logger.info("=" * 60)
    logger.info("AIRSURE BACKEND - Starting")
    logger.info("=" * 60)

    registry = StationRegistry.from_files(Config.STATIONS_FILE, Config.WARDS_FILE)

    openaq_service = OpenAQService(
        api_key=Config.OPENAQ_API_KEY,
        latest_cache=TTLCache(Config.OPENAQ_LATEST_CACHE_MS / 1000, name="latest"),
        sensor_cache=TTLCache(Config.OPENAQ_SENSOR_CACHE_MS / 1000, name="sensor"),
        param_cache=TTLCache(Config.OPENAQ_PARAM_CACHE_MS / 1000, name="parameter"),
        base_url=Config.OPENAQ_BASE,
        request_timeout=Config.OPENAQ_TIMEOUT_MS / 1000,
    )
    aggregator = AQIAggregator(
        openaq_service,
        registry.stations,
        station_concurrency=Config.OPENAQ_STATION_CONCURRENCY,
    )
    weather_service = WeatherService(
        api_key=Config.WEATHER_API_KEY,
        request_timeout=Config.WEATHER_TIMEOUT_MS / 1000,
    )
    firms_service = FirmsService(
        map_key=Config.NASA_FIRMS_MAP_KEY,
        area=Config.NASA_FIRMS_AREA,
        product=Config.NASA_FIRMS_PRODUCT,
        request_timeout=Config.NASA_FIRMS_TIMEOUT_MS / 1000,
    )

    set_services(registry, openaq_service, aggregator, weather_service, firms_service)

    logger.info(f"Services initialized ({len(registry.stations)} stations)")
    logger.info(f"   OpenAQ base: {Config.OPENAQ_BASE}")
    if not Config.OPENAQ_API_KEY:
        logger.warning("   OPENAQ_API_KEY not set - AQI endpoints will report errors")
    logger.info(f"   Station concurrency: {aggregator.station_concurrency}")
    logger.info(f"   Frontend: {Config.FRONTEND_DIR}")

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    logger.info("Shutting down...")
    clear_services()
    await openaq_service.close()
    await weather_service.close()
    await firms_service.close()
    logger.info("Shutdown complete")


# =============================================================================
# CREATE FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="AirSure API",
    description="""
## Overview

Citywide air quality for the AirSure dashboard.

## How It Works

1. For each configured station, fetch the latest OpenAQ readings
2. Work out which pollutant each sensor measures (cached for days)
3. Turn PM2.5 / PM10 into AQI sub-indices; the worst one is the station AQI
4. The worst station is the city AQI

Weather (WeatherAPI.com) and satellite fire points (NASA FIRMS) are
served alongside.
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url=None,
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=".*",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    """Every ApiError becomes {"error": ..., "details": ...}."""
    body = {"error": exc.error}
    if exc.details is not None:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Last resort. Hides the message in production."""
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    message = "Internal server error" if Config.APP_ENV == "production" else str(exc)
    return JSONResponse(status_code=500, content={"error": message})


# =============================================================================
# INCLUDE ROUTERS
# =============================================================================

app.include_router(api_router)


# =============================================================================
# ROOT ENDPOINTS
# =============================================================================

@app.get(
    "/health",
    summary="Health Check",
    description="Check if the backend process is running.",
)
async def health():
    """Health check endpoint."""
    return {"status": "OK"}


@app.get("/{full_path:path}", include_in_schema=False)
async def frontend(full_path: str):
    """
    Serve the static frontend.

    Existing files are served as-is; any other path gets index.html so
    the frontend can handle it.
    """
    root = Config.FRONTEND_DIR.resolve()
    if full_path:
        candidate = (root / full_path).resolve()
        # Stay inside the frontend folder
        if candidate.is_file() and candidate.is_relative_to(root):
            return FileResponse(candidate)

    index = root / "index.html"
    if index.is_file():
        return FileResponse(index)
    return JSONResponse(status_code=404, content={"error": "Frontend not found"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=Config.PORT)

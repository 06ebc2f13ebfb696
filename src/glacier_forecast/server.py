"""
HTTP gateway for the glacier forecast frontend.

Route handlers are defined inside ``create_app()`` so they close over the
injected services; tests build the app with mocked services.
"""

import logging
from typing import Optional

import requests  # type: ignore
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

from . import __version__
from .api.helpers import split_ids
from .core import Config, constants
from .services import GlacierNotFoundError, GlacierService, NveService, ObservationService


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    config: Config,
    observations: ObservationService,
    nve: NveService,
    glaciers: GlacierService,
    logger: Optional[logging.Logger] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Application configuration (CORS origins)
        observations: Frost observation service
        nve: NVE service
        glaciers: Glacier model service
        logger: Logger instance

    Returns:
        Configured FastAPI app
    """
    log = logger or logging.getLogger(__name__)

    app = FastAPI(title="Norwegian Glacier Forecast", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    log.info(f"CORS configured for: {config.allowed_origins}")

    # Health routes

    @app.get("/api/health")
    def health():
        return {"ok": True}

    # Frost routes

    @app.get("/api/stations")
    def stations():
        try:
            return observations.get_stations_with_latest_temperature()
        except requests.exceptions.RequestException as e:
            log.error(f"Stations error: {e}")
            return _error(500, "Failed to fetch stations")

    @app.get("/api/observations/{station_id}")
    def station_observations(station_id: str, elements: Optional[str] = None):
        requested = split_ids(elements) if elements else list(constants.DEFAULT_OBSERVATION_ELEMENTS)
        return observations.get_station_observations(station_id, requested)

    # NVE routes

    @app.get("/api/nve/stations")
    def nve_stations():
        try:
            return nve.get_stations()
        except requests.exceptions.RequestException as e:
            log.error(f"NVE stations error: {e}")
            return _error(500, "Failed to fetch NVE stations")

    @app.get("/api/nve/stations/{station_id}")
    def nve_station(station_id: str):
        try:
            return nve.nve.get_station(station_id)
        except requests.exceptions.RequestException as e:
            log.error(f"NVE single station error: {e}")
            return _error(500, "Failed to fetch NVE station")

    @app.get("/api/nve/observations")
    def nve_observations(
        station_id: Optional[str] = Query(None, alias="stationId"),
        parameter: Optional[str] = None,
        resolution_time: Optional[int] = Query(None, alias="resolutionTime"),
        reference_time: Optional[str] = Query(None, alias="referenceTime"),
    ):
        if not station_id:
            return _error(400, "stationId query required")

        ids = split_ids(station_id)
        log.info(
            f"/api/nve/observations -> {len(ids)} stations, parameter={parameter}, "
            f"resTime={resolution_time}, ref={reference_time}"
        )
        try:
            # One station without a parameter: latest block of each interesting parameter
            if len(ids) == 1 and parameter is None:
                return nve.nve.get_latest_observations(
                    ids[0],
                    resolution_time=60 if resolution_time is None else resolution_time,
                )
            return nve.nve.get_observations(
                ids,
                parameters=parameter or constants.NVE_DEFAULT_PARAMETER,
                resolution_time=resolution_time or 0,
                reference_time=reference_time,
            )
        except requests.exceptions.RequestException as e:
            log.error(f"NVE observations error: {e}")
            return _error(500, "Failed to fetch NVE observations")

    @app.get("/api/nve/parameters")
    def nve_parameters():
        try:
            return nve.nve.get_parameters()
        except requests.exceptions.RequestException as e:
            log.error(f"NVE parameters error: {e}")
            return _error(500, "Failed to fetch NVE parameters")

    @app.get("/api/nve/series")
    def nve_series(station_id: Optional[str] = Query(None, alias="stationId")):
        if not station_id:
            return _error(400, "stationId query required")
        try:
            return nve.nve.get_series(station_id)
        except requests.exceptions.RequestException as e:
            log.error(f"NVE series error: {e}")
            return _error(500, "Failed to fetch NVE series")

    @app.get("/api/nve/latest")
    def nve_latest(
        parameter: str = constants.NVE_DEFAULT_PARAMETER,
        resolution_time: int = Query(0, alias="resolutionTime"),
        reference_time: Optional[str] = Query(None, alias="referenceTime"),
    ):
        try:
            return nve.get_latest(parameter, resolution_time, reference_time)
        except ValueError as e:
            return _error(500, str(e))
        except requests.exceptions.RequestException as e:
            log.error(f"NVE latest error: {e}")
            return _error(500, "Failed to fetch NVE latest observations")

    # Glacier routes

    @app.get("/api/glaciers/nearest")
    def nearest_glaciers(
        lat: float = Query(..., ge=-90, le=90),
        lon: float = Query(..., ge=-180, le=180),
        limit: int = Query(5, ge=1, le=50),
    ):
        return glaciers.nearest_glaciers(lat, lon, limit)

    @app.get("/api/glaciers/{glacier_id}/model")
    def glacier_model(
        glacier_id: str,
        station_id: Optional[str] = Query(None, alias="stationId"),
    ):
        try:
            return glaciers.get_model(glacier_id, station_id=station_id)
        except GlacierNotFoundError:
            return _error(404, f"Unknown glacier: {glacier_id}")
        except Exception as e:
            log.error(f"Glacier model error for {glacier_id}: {e}", exc_info=True)
            return _error(500, "Failed to compute glacier model")

    return app

"""
Main entry point for the glacier forecast gateway.

Wires configuration, API clients, services and the HTTP app together, and
exposes a CLI to serve the API or compute one glacier model.
"""

import json
import sys
from typing import Optional

from .core import Config
from .logger import setup_logger, LoggerContext, UVICORN_LOGGERS
from .api import FrostAPI, NveAPI
from .services import (
    GlacierCatalog,
    GlacierNotFoundError,
    GlacierService,
    NveService,
    ObservationService,
    TTLCache,
)


class GlacierForecastApp:
    """Main application for the glacier forecast gateway."""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize application.

        Args:
            config_file: Path to configuration file
        """
        self.config = Config(config_file)

        self.logger = setup_logger(attach_to=UVICORN_LOGGERS)
        self.logger.info("=" * 60)
        self.logger.info("Norwegian Glacier Forecast")
        self.logger.info("=" * 60)
        self.logger.info(f"Configuration: {self.config}")

        # Set in initialize_components
        self.cache: Optional[TTLCache] = None
        self.frost: Optional[FrostAPI] = None
        self.nve: Optional[NveAPI] = None
        self.observation_service: Optional[ObservationService] = None
        self.nve_service: Optional[NveService] = None
        self.glacier_service: Optional[GlacierService] = None

    def initialize_components(self) -> None:
        """Initialize all application components."""
        self.logger.info("Initializing components...")

        self.cache = TTLCache(logger=self.logger)

        self.frost = FrostAPI(
            base_url=self.config.frost_base_url,
            client_id=self.config.frost_client_id,
            client_secret=self.config.frost_client_secret,
            timeout=self.config.api_timeout,
            max_retries=self.config.api_max_retries,
            verify_ssl=self.config.api_verify_ssl,
            logger=self.logger
        )

        self.nve = NveAPI(
            base_url=self.config.nve_base_url,
            api_key=self.config.nve_api_key,
            timeout=self.config.api_timeout,
            max_retries=self.config.api_max_retries,
            verify_ssl=self.config.api_verify_ssl,
            logger=self.logger
        )

        self.observation_service = ObservationService(
            frost=self.frost,
            cache=self.cache,
            series_windows_days=self.config.series_windows_days,
            latest_windows_hours=self.config.latest_windows_hours,
            stations_ttl=self.config.stations_cache_ttl,
            logger=self.logger
        )

        self.nve_service = NveService(
            nve=self.nve,
            cache=self.cache,
            stations_ttl=self.config.nve_stations_cache_ttl,
            logger=self.logger
        )

        if self.config.glaciers_file:
            with LoggerContext(self.logger, "glacier dataset load"):
                catalog = GlacierCatalog.from_file(self.config.glaciers_file, logger=self.logger)
        else:
            self.logger.warning("No glacier dataset configured (glaciers.file)")
            catalog = GlacierCatalog(logger=self.logger)

        self.glacier_service = GlacierService(
            catalog=catalog,
            observations=self.observation_service,
            cache=self.cache,
            cache_ttl=self.config.glacier_model_cache_ttl,
            logger=self.logger
        )

        self.logger.info("All components initialized successfully")

    def build_app(self):
        """Build the FastAPI application from initialized components."""
        from .server import create_app

        if self.glacier_service is None:
            self.initialize_components()

        return create_app(
            config=self.config,
            observations=self.observation_service,
            nve=self.nve_service,
            glaciers=self.glacier_service,
            logger=self.logger
        )

    def serve(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Run the HTTP gateway with uvicorn."""
        import uvicorn

        app = self.build_app()
        host = host or self.config.server_host
        port = port or self.config.server_port
        self.logger.info(f"Backend running on http://{host}:{port}")
        try:
            uvicorn.run(app, host=host, port=port, log_config=None)
        finally:
            self.close()

    def run_model(self, glacier_id: str, station_id: Optional[str] = None) -> dict:
        """
        Compute the mass-balance result for one glacier.

        Args:
            glacier_id: Glacier id from the dataset
            station_id: Optional Frost station overriding the nearest station

        Returns:
            GlacierResult as a JSON-ready dict
        """
        if self.glacier_service is None:
            self.initialize_components()

        try:
            with LoggerContext(self.logger, f"glacier model for {glacier_id}"):
                return self.glacier_service.get_model(glacier_id, station_id=station_id)
        finally:
            self.close()

    def close(self) -> None:
        """Close upstream sessions."""
        for client in (self.frost, self.nve):
            if client:
                client.close()


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Norwegian Glacier Forecast gateway"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP gateway")
    serve_parser.add_argument("--host", type=str, default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: config/PORT)")

    model_parser = subparsers.add_parser("model", help="Compute one glacier model and print JSON")
    model_parser.add_argument("glacier_id", type=str, help="Glacier id from the dataset")
    model_parser.add_argument("--station", type=str, default=None, help="Frost station id (default: nearest)")

    args = parser.parse_args()

    try:
        app = GlacierForecastApp(config_file=args.config)
        if args.command == "serve":
            app.serve(host=args.host, port=args.port)
        else:
            result = app.run_model(args.glacier_id, station_id=args.station)
            print(json.dumps(result, indent=2, ensure_ascii=False))
    except GlacierNotFoundError as e:
        print(f"Unknown glacier: {e.args[0]}")
        sys.exit(2)
    except Exception as e:
        print(f"Application failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

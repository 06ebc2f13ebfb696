"""
Configuration module for the glacier forecast gateway.

Loads configuration from a JSON file and environment variables.
Credentials are expected from the environment in deployed setups.
"""

import json
import os
from typing import Dict, Any, List, Optional
from pathlib import Path

from . import constants


class Config:
    """Configuration manager for the application."""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to configuration JSON file. If None, uses CONFIG_FILE env var
                        or defaults to 'config.json'
        """
        self.config_file = config_file or os.getenv("CONFIG_FILE", "config.json")
        self.config: Dict[str, Any] = {}
        self._load_config()
        self._override_from_env()
        self._validate_config()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """
        Build a configuration from an in-memory dictionary.

        Environment overrides and validation still apply.

        Args:
            data: Configuration dictionary with the same layout as config.json

        Returns:
            Validated Config instance
        """
        instance = cls.__new__(cls)
        instance.config_file = "<dict>"
        instance.config = json.loads(json.dumps(data))
        instance._override_from_env()
        instance._validate_config()
        return instance

    def _load_config(self) -> None:
        """Load configuration from JSON file."""
        config_path = Path(self.config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        with open(config_path, "r", encoding="utf-8") as f:
            self.config = json.load(f)

    def _section(self, name: str) -> Dict[str, Any]:
        return self.config.setdefault(name, {})

    def _override_from_env(self) -> None:
        """Override configuration with environment variables."""
        env_map = {
            "FROST_BASE_URL": ("frost", "base_url"),
            "FROST_CLIENT_ID": ("frost", "client_id"),
            "FROST_CLIENT_SECRET": ("frost", "client_secret"),
            "NVE_BASE_URL": ("nve", "base_url"),
            "NVE_API_KEY": ("nve", "api_key"),
            "GLACIERS_FILE": ("glaciers", "file"),
        }
        for env_name, (section, key) in env_map.items():
            value = os.getenv(env_name)
            if value:
                self._section(section)[key] = value

        if os.getenv("PORT"):
            self._section("server")["port"] = int(os.getenv("PORT"))

        if os.getenv("ALLOWED_ORIGINS"):
            origins = [o.strip() for o in os.getenv("ALLOWED_ORIGINS").split(",")]
            self._section("server")["allowed_origins"] = [o for o in origins if o]

        if os.getenv("ENVIRONMENT"):
            self.config["environment"] = os.getenv("ENVIRONMENT")

    def _validate_config(self) -> None:
        """Validate that required configuration keys are present."""
        required_config = {
            "api": ["timeout", "max_retries"],
            "frost": ["base_url"],
            "nve": ["base_url"],
        }

        missing_sections = [s for s in required_config if s not in self.config]
        if missing_sections:
            raise ValueError(
                f"Missing required configuration sections: {', '.join(missing_sections)}"
            )

        missing_keys = []
        for section, keys in required_config.items():
            for key in keys:
                if key not in self.config[section]:
                    missing_keys.append(f"{section}.{key}")

        if missing_keys:
            raise ValueError(
                f"Missing required configuration keys: {', '.join(missing_keys)}"
            )

        if not self.frost_client_id:
            raise ValueError(
                "Frost configuration must include 'client_id' (or set FROST_CLIENT_ID)"
            )

        if not self.nve_api_key:
            raise ValueError(
                "NVE configuration must include 'api_key' (or set NVE_API_KEY)"
            )

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key (supports dot notation).

        Args:
            key: Configuration key (e.g., 'frost.base_url')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value: Any = self.config

        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    @property
    def api_timeout(self) -> int:
        """Get upstream request timeout in seconds."""
        return self.get("api.timeout", 30)

    @property
    def api_max_retries(self) -> int:
        """Get maximum upstream retry attempts."""
        return self.get("api.max_retries", 3)

    @property
    def api_verify_ssl(self) -> bool:
        return self.get("api.verify_ssl", True)

    @property
    def frost_base_url(self) -> str:
        return self.get("frost.base_url", "")

    @property
    def frost_client_id(self) -> Optional[str]:
        return self.get("frost.client_id")

    @property
    def frost_client_secret(self) -> str:
        # Frost accepts an empty secret for read-only client ids
        return self.get("frost.client_secret", "")

    @property
    def nve_base_url(self) -> str:
        return self.get("nve.base_url", "")

    @property
    def nve_api_key(self) -> Optional[str]:
        return self.get("nve.api_key")

    @property
    def server_host(self) -> str:
        return self.get("server.host", "0.0.0.0")

    @property
    def server_port(self) -> int:
        return int(self.get("server.port", 3001))

    @property
    def allowed_origins(self) -> List[str]:
        """Get CORS origins allowed to call the gateway."""
        return list(self.get("server.allowed_origins", ["http://localhost:3000"]))

    @property
    def stations_cache_ttl(self) -> int:
        return self.get("cache.stations_ttl", constants.STATIONS_CACHE_TTL)

    @property
    def nve_stations_cache_ttl(self) -> int:
        return self.get("cache.nve_stations_ttl", constants.NVE_STATIONS_CACHE_TTL)

    @property
    def glacier_model_cache_ttl(self) -> int:
        return self.get("cache.glacier_model_ttl", constants.GLACIER_MODEL_CACHE_TTL)

    @property
    def series_windows_days(self) -> List[int]:
        """Get day windows tried, in order, for the daily model series."""
        return list(self.get("model.series_windows_days", constants.DEFAULT_SERIES_WINDOWS_DAYS))

    @property
    def latest_windows_hours(self) -> List[int]:
        """Get hour windows tried, in order, for the latest temperature reading."""
        return list(self.get("model.latest_windows_hours", constants.DEFAULT_LATEST_WINDOWS_HOURS))

    @property
    def glaciers_file(self) -> Optional[str]:
        """Get path of the glacier outlines GeoJSON file."""
        return self.get("glaciers.file")

    def __repr__(self) -> str:
        return f"Config(file={self.config_file}, env={self.get('environment')})"

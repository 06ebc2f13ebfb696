"""
Pytest configuration and shared fixtures for all tests.
"""

import sys
from pathlib import Path

import pytest
import json

# Add the project root to sys.path so we can import from src
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


CONFIG_ENV_VARS = (
    "CONFIG_FILE",
    "FROST_BASE_URL",
    "FROST_CLIENT_ID",
    "FROST_CLIENT_SECRET",
    "NVE_BASE_URL",
    "NVE_API_KEY",
    "GLACIERS_FILE",
    "PORT",
    "ALLOWED_ORIGINS",
    "ENVIRONMENT",
    "LOG_LEVEL",
    "LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of configuration tests."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(scope="session")
def fixtures_dir():
    """Get the fixtures directory path."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture(scope="session")
def glaciers_geojson(fixtures_dir):
    """Load the sample glacier outlines."""
    with open(fixtures_dir / "glaciers.geojson", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture(scope="session")
def frost_observations(fixtures_dir):
    """Load a sample Frost observations response (three daily rows)."""
    with open(fixtures_dir / "frost_observations.json", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture(scope="session")
def frost_observations_offsets(fixtures_dir):
    """Load a Frost response reporting each daily sum under two time offsets."""
    with open(fixtures_dir / "frost_observations_offsets.json", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture(scope="session")
def frost_sources(fixtures_dir):
    """Load a sample Frost sources response."""
    with open(fixtures_dir / "frost_sources.json", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def config_dict():
    """Minimal valid configuration dictionary."""
    return {
        "api": {"timeout": 10, "max_retries": 0},
        "frost": {"base_url": "https://frost.example", "client_id": "frost-id"},
        "nve": {"base_url": "https://hydapi.example/api/v1", "api_key": "nve-key"},
        "server": {"allowed_origins": ["http://localhost:3000"]},
    }


@pytest.fixture
def config_file(tmp_path, config_dict):
    """Write the minimal configuration to a temporary config.json."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_dict), encoding="utf-8")
    return str(path)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring API access"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test (no external dependencies)"
    )


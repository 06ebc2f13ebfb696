"""
Base API client for upstream observation providers.

Handles HTTP requests, session management, retries and error logging.
"""

import logging
import time
from typing import Dict, Any, Optional

import requests  # type: ignore
from requests.adapters import HTTPAdapter  # type: ignore
from urllib3.util.retry import Retry  # type: ignore


class APIClient:
    """Base client for a JSON HTTP API."""

    # Name used in log lines, overridden by provider clients
    provider = "API"

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        max_retries: int = 3,
        verify_ssl: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize API client.

        Args:
            base_url: Base URL for the API
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            verify_ssl: Whether to verify SSL certificates
            logger: Logger instance
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.logger = logger or logging.getLogger(__name__)

        # Setup session with retry strategy; 429 covers upstream rate limiting
        self.session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "POST"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json"
        })

    def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> requests.Response:
        """
        Make HTTP request to the API.

        Args:
            method: HTTP method (GET, POST)
            endpoint: API endpoint (without base URL)
            **kwargs: Additional arguments for requests

        Returns:
            Response object

        Raises:
            requests.exceptions.RequestException: On request failure
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        kwargs.setdefault("verify", self.verify_ssl)

        start = time.perf_counter()
        try:
            response = self.session.request(
                method=method,
                url=url,
                timeout=self.timeout,
                **kwargs
            )
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            self.logger.debug(f"{self.provider} {method} {url} ({elapsed_ms:.0f} ms)")
            response.raise_for_status()
            return response

        except requests.exceptions.HTTPError as e:
            body = e.response.text if e.response is not None else ""
            self.logger.error(f"{self.provider} request failed: {method} {url} - {e} - {body[:500]}")
            raise

        except requests.exceptions.RequestException as e:
            self.logger.error(f"{self.provider} request failed: {method} {url} - {e}")
            raise

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make GET request.

        Args:
            endpoint: API endpoint
            params: Query parameters

        Returns:
            Decoded JSON response
        """
        response = self._make_request("GET", endpoint, params=params)
        return response.json()

    def post(self, endpoint: str, data: Any) -> Any:
        """
        Make POST request with a JSON body.

        Args:
            endpoint: API endpoint
            data: Request body data

        Returns:
            Decoded JSON response
        """
        response = self._make_request("POST", endpoint, json=data)
        return response.json()

    def close(self) -> None:
        """Close the session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

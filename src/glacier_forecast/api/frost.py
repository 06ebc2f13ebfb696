"""
Frost (MET Norway) observation API operations.

Handles station sources and observation queries.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import requests  # type: ignore

from .client import APIClient
from .helpers import join_ids

# Frost answers 412 when a query matches no observations
NO_DATA_STATUS = 412


class FrostAPI(APIClient):
    """Frost API client authenticated with HTTP Basic client credentials."""

    provider = "Frost"

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str = "",
        timeout: int = 30,
        max_retries: int = 3,
        verify_ssl: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize Frost client.

        Args:
            base_url: Frost base URL (e.g. https://frost.met.no)
            client_id: Frost client id
            client_secret: Frost client secret
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            verify_ssl: Whether to verify SSL certificates
            logger: Logger instance
        """
        super().__init__(base_url, timeout, max_retries, verify_ssl, logger)

        if not client_id:
            raise ValueError("Frost client id is required")
        self.session.auth = (client_id, client_secret or "")

    def get_sources(self, types: str = "SensorSystem", **kwargs: Any) -> List[Dict[str, Any]]:
        """
        Get observation sources (stations).

        Args:
            types: Frost source types filter
            **kwargs: Additional query parameters (e.g. ``country``, ``ids``)

        Returns:
            List of source objects
        """
        self.logger.info(f"Fetching Frost sources (types={types})")
        params: Dict[str, Any] = {"types": types}
        params.update(kwargs)

        result = self.get("/sources/v0.jsonld", params=params)
        if isinstance(result, dict):
            return result.get("data") or []
        return []

    def get_observations(
        self,
        sources: Union[str, Iterable[str]],
        elements: Union[str, Iterable[str]],
        reference_time: str,
        time_offsets: Optional[str] = None,
        levels: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Get observations for one or more sources over a reference time interval.

        Args:
            sources: Source id(s), e.g. ``SN18700``
            elements: Element id(s), e.g. ``air_temperature``
            reference_time: Interval ``start/end`` (see helpers.build_reference_time)
            time_offsets: Frost ``timeoffsets`` filter, e.g. ``default``
            levels: Frost ``levels`` filter, e.g. ``default``

        Returns:
            Frost response with a ``data`` list. A query without matching
            observations returns ``{"data": [], "warning": "No data available"}``.

        Raises:
            requests.exceptions.RequestException: On any other failure
        """
        params = {
            "sources": join_ids(sources),
            "elements": join_ids(elements),
            "referencetime": reference_time,
        }
        if time_offsets is not None:
            params["timeoffsets"] = time_offsets
        if levels is not None:
            params["levels"] = levels

        try:
            result = self.get("/observations/v0.jsonld", params=params)
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code == NO_DATA_STATUS:
                self.logger.info(f"Frost has no data for {params['sources']} ({reference_time})")
                return {"data": [], "warning": "No data available"}
            raise

        if not isinstance(result, dict):
            self.logger.warning(f"Unexpected Frost observations format: {type(result)}")
            return {"data": []}
        result.setdefault("data", [])
        return result

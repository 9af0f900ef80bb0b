"""Address geocoding through the Google Geocoding API."""

import asyncio
from typing import Any, Dict, Optional

import requests

from .errors import GeocodingError
from .logger import get_logger
from .records import Coordinates
from .retry import TransientHTTPError, exponential_backoff, should_retry_http_status

logger = get_logger()

GOOGLE_GEOCODE_ENDPOINT = "https://maps.googleapis.com/maps/api/geocode/json"


@exponential_backoff(
    max_retries=3,
    base_delay=1.0,
    exceptions=(requests.exceptions.Timeout, requests.exceptions.ConnectionError, TransientHTTPError),
)
def _fetch_geocode(params: Dict[str, Any]) -> Dict[str, Any]:
    """GET the geocoding endpoint, retrying timeouts, dropped connections and 429/5xx."""
    resp = requests.get(GOOGLE_GEOCODE_ENDPOINT, params=params, timeout=15)
    if should_retry_http_status(resp.status_code):
        raise TransientHTTPError(resp.status_code, GOOGLE_GEOCODE_ENDPOINT)
    resp.raise_for_status()
    return resp.json()


class GoogleGeocoder:
    """Turns a full postal address into a Coordinates pair."""

    def __init__(self, api_key: Optional[str]):
        if not api_key:
            raise ValueError("Missing GOOGLE_API_KEY. Set env var or pass api_key.")
        self.api_key = api_key

    def lookup(self, address: str) -> Coordinates:
        """
        Blocking lookup of `address`.

        Raises:
            GeocodingError: when the API answers with a non-OK status or no results
            RetryError: when transient failures outlast the retry budget
            requests.exceptions.RequestException: on other transport errors
        """
        logger.debug("Geocoding address", address=address)
        data = _fetch_geocode({"address": address, "key": self.api_key})
        status = data.get("status", "")
        if status != "OK":
            raise GeocodingError(
                f"Geocoding failed with status {status}: {data.get('error_message', '')}".strip(),
                address=address,
                status=status,
            )
        results = data.get("results") or []
        if not results:
            raise GeocodingError("Geocoding returned no results", address=address, status=status)
        location = results[0]["geometry"]["location"]
        return Coordinates(float(location["lat"]), float(location["lng"]))

    async def get_coordinates(self, address: str) -> Coordinates:
        return await asyncio.to_thread(self.lookup, address)

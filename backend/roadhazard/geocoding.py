"""Best-effort reverse geocoding of hazard coordinates."""

import enum
from typing import Any, Mapping, Optional, Tuple

import requests
from loguru import logger

from .config import GEOCODER_TIMEOUT_SEC, GEOCODER_URL, GEOCODER_USER_AGENT

NO_GPS_FIX = "No GPS Fix"
STREET_UNKNOWN = "Street Unknown"
LOOKUP_ERROR = "Location Lookup Error"


class LookupOutcome(str, enum.Enum):
    FOUND = "found"
    NO_FIELD = "no_field"
    FAILED = "failed"


class GeocodingError(Exception):
    """The provider answered, but not with an address document."""


def pick_display_name(payload: Mapping[str, Any]) -> Optional[str]:
    """Road, then suburb, then the provider's display name."""
    address = payload.get("address") or {}
    if not isinstance(address, Mapping):
        address = {}

    for candidate in (address.get("road"), address.get("suburb"), payload.get("display_name")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return None


class AddressResolver:
    """
    Turn coordinates into a short place name for display.

    A single request is made per lookup, bounded by ``timeout`` seconds and
    never retried. Failures are logged and mapped to a sentinel string; they
    are never raised to the caller.
    """

    def __init__(
        self,
        url: str = GEOCODER_URL,
        user_agent: str = GEOCODER_USER_AGENT,
        timeout: float = GEOCODER_TIMEOUT_SEC,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.user_agent = user_agent
        self.timeout = timeout
        self._session = session or requests.Session()

    def resolve(self, lat: Optional[float], lon: Optional[float]) -> str:
        _, name = self.lookup(lat, lon)
        return name

    def lookup(self, lat: Optional[float], lon: Optional[float]) -> Tuple[LookupOutcome, str]:
        if lat is None or lon is None:
            return LookupOutcome.NO_FIELD, NO_GPS_FIX

        try:
            payload = self._fetch(lat, lon)
        except (requests.RequestException, ValueError, GeocodingError) as e:
            logger.warning("Geocode error for ({}, {}): {}", lat, lon, e)
            return LookupOutcome.FAILED, LOOKUP_ERROR

        name = pick_display_name(payload)
        if name is None:
            return LookupOutcome.NO_FIELD, STREET_UNKNOWN
        return LookupOutcome.FOUND, name

    def _fetch(self, lat: float, lon: float) -> Mapping[str, Any]:
        response = self._session.get(
            self.url,
            params={"format": "json", "lat": lat, "lon": lon},
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
        )
        response.raise_for_status()

        payload = response.json()
        if not isinstance(payload, Mapping):
            raise GeocodingError(f"unexpected payload type {type(payload).__name__}")
        # Nominatim answers 200 {"error": "..."} for points it cannot place
        if "error" in payload and "address" not in payload:
            raise GeocodingError(str(payload["error"]))
        return payload

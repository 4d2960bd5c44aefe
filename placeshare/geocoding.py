"""
Geocoding collaborators: resolve a free-text address into coordinates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Protocol

import requests

from placeshare.errors import GeocodeError

logger = logging.getLogger(__name__)

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
REQUEST_TIMEOUT = 10  # seconds

# Used when no API key is configured.
DEFAULT_COORDINATES = {"lat": 40.7484474, "lng": -73.9871516}


class Geocoder(Protocol):
    """Maps an address to ``{"lat": float, "lng": float}`` or raises GeocodeError."""

    def geocode(self, address: str) -> dict:
        ...


@dataclass
class StaticGeocoder:
    """Returns fixed coordinates, optionally per address. For local runs and tests."""

    default: dict | None = field(default_factory=lambda: dict(DEFAULT_COORDINATES))
    known: Dict[str, dict] = field(default_factory=dict)

    def geocode(self, address: str) -> dict:
        if address in self.known:
            return dict(self.known[address])
        if self.default is None:
            raise GeocodeError()
        return dict(self.default)


@dataclass
class GoogleGeocoder:
    """Google Maps Geocoding API client."""

    api_key: str
    url: str = GOOGLE_GEOCODE_URL
    timeout: float = REQUEST_TIMEOUT

    def geocode(self, address: str) -> dict:
        try:
            response = requests.get(
                self.url,
                params={"address": address, "key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Geocoding request failed for %r: %s", address, exc)
            raise GeocodeError() from exc

        if not data or data.get("status") != "OK" or not data.get("results"):
            logger.warning(
                "Geocoding returned no result for %r (status=%s)",
                address,
                (data or {}).get("status"),
            )
            raise GeocodeError()

        location = data["results"][0]["geometry"]["location"]
        return {"lat": float(location["lat"]), "lng": float(location["lng"])}

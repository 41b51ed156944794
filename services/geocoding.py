"""Nominatim lookups, rate limited to one request per second.

Reverse lookups never fail: on any geocoder error the raw coordinates become
the address so a complaint can still be filed.
"""

from functools import lru_cache
from typing import NamedTuple, Optional, Tuple

from geopy.exc import GeopyError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

import config
from utils.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_AREA = "Unknown area"


class GeocodedAddress(NamedTuple):
    address: str
    area: str


def coordinate_label(lat: float, lng: float) -> GeocodedAddress:
    return GeocodedAddress(f"{lat:.4f}, {lng:.4f}", UNKNOWN_AREA)


def _call(method, *args, **kwargs):
    return method(*args, **kwargs)


class Geocoder:
    def __init__(self, geolocator=None, min_delay_seconds: float = config.GEOCODER_MIN_DELAY_SECONDS):
        self.geolocator = geolocator or Nominatim(user_agent=config.GEOCODER_USER_AGENT)
        # One limiter shared by both lookups: the provider budget is per client.
        self._limited = RateLimiter(_call, min_delay_seconds=min_delay_seconds, max_retries=0)

    def reverse(self, lat: float, lng: float) -> GeocodedAddress:
        try:
            location = self._limited(self.geolocator.reverse, (lat, lng), exactly_one=True, language="en")
        except GeopyError as exc:
            logger.warning("Reverse geocoding failed for %s,%s: %s", lat, lng, exc)
            return coordinate_label(lat, lng)

        if location is None:
            return coordinate_label(lat, lng)

        parts = (location.raw or {}).get("address", {})
        area = parts.get("suburb") or parts.get("neighbourhood") or parts.get("city") or UNKNOWN_AREA
        return GeocodedAddress(location.address or "Unknown location", area)

    def forward(self, text: str) -> Optional[Tuple[float, float, str]]:
        try:
            location = self._limited(self.geolocator.geocode, text, exactly_one=True)
        except GeopyError as exc:
            logger.warning("Forward geocoding failed for %r: %s", text, exc)
            return None

        if location is None:
            return None
        return location.latitude, location.longitude, location.address


@lru_cache(maxsize=1)
def get_geocoder() -> Geocoder:
    return Geocoder()

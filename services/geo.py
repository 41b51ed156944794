"""Distance, geohash and duplicate-proximity helpers."""

import math
from typing import Iterable, List, Tuple

import pygeohash

import config
from models.enums import OPEN_STATUSES
from services.store import COMPLAINTS, DocumentStore

EARTH_RADIUS_METERS = 6371000
GEOHASH_PRECISION = 8


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in metres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


def encode_geohash(lat: float, lng: float) -> str:
    return pygeohash.encode(lat, lng, precision=GEOHASH_PRECISION)


def nearby_complaints(
    lat: float,
    lng: float,
    complaints: Iterable[dict],
    radius_meters: float = config.DUPLICATE_RADIUS_METERS,
) -> List[Tuple[dict, float]]:
    """Complaints strictly closer than ``radius_meters``, nearest first."""
    matches = []
    for complaint in complaints:
        location = complaint.get("location") or {}
        if location.get("lat") is None or location.get("lng") is None:
            continue
        distance = haversine_meters(lat, lng, location["lat"], location["lng"])
        if distance < radius_meters:
            matches.append((complaint, distance))
    matches.sort(key=lambda match: match[1])
    return matches


class DuplicateDetector:
    """Surface open complaints near a candidate location.

    The result is advisory: the citizen may upvote the existing complaint or
    file their own anyway.
    """

    def __init__(self, store: DocumentStore, radius_meters: float = config.DUPLICATE_RADIUS_METERS):
        self.store = store
        self.radius_meters = radius_meters

    def find_nearby(self, lat: float, lng: float) -> List[Tuple[dict, float]]:
        open_complaints = self.store.query(
            COMPLAINTS,
            filters=[("status", "in", [status.value for status in OPEN_STATUSES])],
        )
        return nearby_complaints(lat, lng, open_complaints, self.radius_meters)

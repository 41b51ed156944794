from datetime import datetime, timedelta
from io import BytesIO

import pytest
import pytz
from fastapi.testclient import TestClient
from PIL import Image

from main import app
from models.enums import UserRole
from routes.auth_routes import create_jwt, get_token_verifier
from routes.stats_routes import stats_cache
from services.cloudinary_client import UploadedImage, get_image_storage
from services.complaints import ComplaintService
from services.errors import UpstreamUnavailable
from services.firebase_client import get_store
from services.geocoding import GeocodedAddress, get_geocoder
from services.store import SERVER_TIMESTAMP, USERS, InMemoryStore
from services.xp_engine import calculate_level

BENGALURU = (12.9716, 77.5946)


class FakeClock:
    def __init__(self, start=datetime(2025, 3, 1, 9, 0, tzinfo=pytz.utc)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FakeImageStorage:
    def __init__(self):
        self.uploads = []
        self.deleted = []
        self.fail_uploads = False
        self.fail_suffix = None

    def upload(self, data, key):
        if self.fail_uploads or (self.fail_suffix and key.endswith(self.fail_suffix)):
            raise UpstreamUnavailable("Image upload failed")
        path = f"complaints/{key}/img{len(self.uploads) + 1}"
        self.uploads.append((key, data))
        return UploadedImage(f"https://res.cloudinary.test/{path}.jpg", path)

    def delete(self, path):
        self.deleted.append(path)


class FakeGeocoder:
    def __init__(self):
        self.calls = []

    def reverse(self, lat, lng):
        self.calls.append((lat, lng))
        return GeocodedAddress("MG Road, Bengaluru, Karnataka", "Shivajinagar")

    def forward(self, text):
        return BENGALURU[0], BENGALURU[1], text


def add_user(store, uid, role=UserRole.CITIZEN, xp=0, name=None):
    level = calculate_level(xp)
    store.set(
        USERS,
        uid,
        {
            "uid": uid,
            "email": f"{uid}@civicpulse.in",
            "displayName": name or uid.title(),
            "photoUrl": "",
            "role": UserRole(role).value,
            "xp": xp,
            "level": level.level,
            "levelTitle": level.title,
            "totalComplaints": 0,
            "resolvedComplaints": 0,
            "upvotesReceived": 0,
            "joinedAt": SERVER_TIMESTAMP,
            "lastActiveAt": SERVER_TIMESTAMP,
        },
    )
    return store.get(USERS, uid)


def make_image(fmt="JPEG", size=(64, 48)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, (120, 90, 60)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryStore(clock=clock)


@pytest.fixture
def citizen(store):
    return add_user(store, "asha", name="Asha Rao")


@pytest.fixture
def neighbour(store):
    return add_user(store, "ravi", name="Ravi Kumar")


@pytest.fixture
def admin(store):
    return add_user(store, "officer", role=UserRole.ADMIN, name="Ward Officer")


@pytest.fixture
def image_storage():
    return FakeImageStorage()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def jpeg_bytes():
    return make_image("JPEG")


@pytest.fixture
def png_bytes():
    return make_image("PNG")


@pytest.fixture
def complaint_service(store, image_storage, geocoder):
    return ComplaintService(store, image_storage=image_storage, geocoder=geocoder)


@pytest.fixture
def file_complaint(complaint_service, jpeg_bytes):
    def _file(owner_id, lat=BENGALURU[0], lng=BENGALURU[1], title="Pothole near bus stop", **extra):
        data = {
            "title": title,
            "description": extra.pop("description", "Deep pothole in the left lane"),
            "category": extra.pop("category", "road_damage"),
            "location": {"lat": lat, "lng": lng, "address": extra.pop("address", ""), "area": ""},
        }
        return complaint_service.create_complaint(owner_id, data, jpeg_bytes, "image/jpeg")

    return _file


def fake_verify(id_token):
    # Test tokens look like "firebase:<uid>:<email>"
    prefix, _, rest = id_token.partition(":")
    if prefix != "firebase" or not rest:
        raise ValueError("Malformed ID token")
    uid, _, email = rest.partition(":")
    return {"uid": uid, "email": email or None, "name": uid.title()}


def bearer(uid, role=UserRole.CITIZEN):
    return {"Authorization": f"Bearer {create_jwt(uid, role)}"}


@pytest.fixture
def client(store, image_storage, geocoder):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_image_storage] = lambda: image_storage
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    app.dependency_overrides[get_token_verifier] = lambda: fake_verify
    stats_cache.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    stats_cache.clear()

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "true"

import itertools
import uuid
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.exceptions import GeocodingError, ImageStorageError, NotificationError
from app.core.security import create_user_token, get_password_hash
from app.database import get_db
from app.db.base import Base
from app.dependencies import get_geocoder, get_image_store, get_notifier
from app.main import app
from app.models import Listing, User
from app.services.geocoding import GeocodeResult

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Sydney CBD and a few points at known distances from it ([lon, lat])
SYDNEY = (151.2093, -33.8688)
LOCATIONS = {
    "Sydney NSW": SYDNEY,
    "Parramatta NSW": (151.0011, -33.8150),      # ~20 km
    "Newcastle NSW": (151.7817, -32.9283),       # ~115 km
    "Melbourne VIC": (144.9631, -37.8136),       # ~715 km
}


# ── Fake collaborators ─────────────────────────────────────────────────────────

class FakeGeocoder:
    def __init__(self):
        self.locations = dict(LOCATIONS)
        self.calls = []

    def geocode(self, address):
        self.calls.append(address)
        if address not in self.locations:
            raise GeocodingError("Please enter a valid address")
        lon, lat = self.locations[address]
        return GeocodeResult(longitude=lon, latitude=lat, raw={"formatted_address": address})


class FakeImageStore:
    def __init__(self):
        self.stored = []
        self.deleted = []
        self.fail_store = False
        self.fail_delete = False
        self._ids = itertools.count(1)

    def store(self, images, owner_id):
        if self.fail_store:
            raise ImageStorageError("Upload to S3 failed")
        records = []
        for _ in images:
            key = f"img{next(self._ids)}.jpeg"
            records.append({"url": f"https://bucket.s3.test/{key}", "key": key, "uploadedBy": str(owner_id)})
        self.stored.extend(records)
        return records

    def delete(self, key):
        if self.fail_delete:
            raise ImageStorageError("Delete from S3 failed")
        self.deleted.append(key)
        return True


class FakeNotifier:
    def __init__(self):
        self.sent = []
        self.fail = False

    def _record(self, kind, *args):
        if self.fail:
            raise NotificationError("SMTP down")
        self.sent.append((kind,) + args)
        return True

    def send_welcome(self, email):
        return self._record("welcome", email)

    def send_password_reset(self, email, reset_url):
        return self._record("reset", email, reset_url)

    def send_enquiry(self, listing, owner, requester, message):
        return self._record("enquiry", owner.email, requester.email, message)


# ── Fixtures ───────────────────────────────────────────────────────────────────

@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def image_store():
    return FakeImageStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def client(db, geocoder, image_store, notifier):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    app.dependency_overrides[get_image_store] = lambda: image_store
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


# ── Factories ──────────────────────────────────────────────────────────────────

_PASSWORD_HASH = get_password_hash("secret123")


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(**overrides):
        n = next(counter)
        fields = {
            "email": f"user{n}@example.com",
            "username": f"user{n}",
            "name": f"User {n}",
            "phone": f"040000000{n}",
            "hashed_password": _PASSWORD_HASH,
        }
        fields.update(overrides)
        user = User(**fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_listing(db):
    def _make(owner, location=SYDNEY, **overrides):
        fields = {
            "slug": f"listing-{uuid.uuid4().hex[:10]}",
            "title": "Sunny apartment",
            "description": "Two bedrooms close to the station",
            "address": "Sydney NSW",
            "longitude": location[0],
            "latitude": location[1],
            "property_type": "Residential-Apartment",
            "action": "Sell",
            "price": 500000.0,
            "price_history": [{"price": 500000.0, "date": datetime.utcnow().isoformat()}],
            "photos": [{"url": "https://bucket.s3.test/a.jpeg", "key": "a.jpeg", "uploadedBy": str(owner.id)}],
            "posted_by": owner.id,
        }
        fields.update(overrides)
        listing = Listing(**fields)
        db.add(listing)
        db.commit()
        db.refresh(listing)
        return listing

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_user_token(user.id)}"}

    return _headers

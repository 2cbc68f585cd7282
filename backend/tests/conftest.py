"""
conftest.py — Shared pytest fixtures for the BPOU Finder test suite.

Provides:
    - GeoJSON FeatureCollections for two adjacent BPOU squares in Saint Paul
      and two congressional districts.
    - Contact tables matching the bpouContacts.json / cdContacts.json schema.
    - Populated and empty DataStore instances that never touch the filesystem.
    - A fake monotonic clock and an httpx MockTransport-backed geocoder.

Layout (lon, lat):

    Saint Paul West   -93.2 .. -93.1,  44.9 .. 45.0
    Saint Paul East   -93.1 .. -93.0,  44.9 .. 45.0   (shares an edge with West)
    CD 4 (DISTRICT)   -93.5 .. -92.5,  44.5 .. 45.5
    CD 8 (ID1)        -95.0 .. -91.0,  46.0 .. 48.0
"""

from __future__ import annotations

import httpx
import pytest

from bpou_finder.config import Settings
from bpou_finder.features import FeatureStore
from bpou_finder.geocoder import GeocodingClient
from bpou_finder.loader import DataStore
from bpou_finder.models import Layer


def square(west: float, south: float, east: float, north: float) -> dict:
    """GeoJSON Polygon geometry for an axis-aligned box."""
    return {
        "type": "Polygon",
        "coordinates": [[
            [west, south], [east, south], [east, north], [west, north], [west, south],
        ]],
    }


def feature(geometry: dict, **properties) -> dict:
    return {"type": "Feature", "properties": properties, "geometry": geometry}


def collection(*features: dict) -> dict:
    return {"type": "FeatureCollection", "features": list(features)}


# ── Boundary fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def bpou_collection() -> dict:
    return collection(
        feature(square(-93.2, 44.9, -93.1, 45.0), BPOU_NAME="Saint Paul West"),
        feature(square(-93.1, 44.9, -93.0, 45.0), BPOU_NAME="Saint Paul East"),
    )


@pytest.fixture
def cd_collection() -> dict:
    return collection(
        feature(square(-93.5, 44.5, -92.5, 45.5), DISTRICT="4"),
        feature(square(-95.0, 46.0, -91.0, 48.0), ID1="8"),
    )


# ── Contact fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def bpou_contacts() -> dict:
    return {
        "Saint Paul West": {
            "website": "https://spwest.example.org",
            "phone": "651-555-0100",
            "email": "chair@spwest.example.org",
            "facebook": "https://facebook.com/spwest",
            "twitter": "https://twitter.com/spwest",
            "meetingInfo": "Second Tuesday, 7pm",
        },
        "Saint Paul East": {"phone": "651-555-0199"},
    }


@pytest.fixture
def cd_contacts() -> dict:
    return {
        "4": {"website": "https://cd4.example.org", "email": "info@cd4.example.org"},
        "8": {"website": "https://cd8.example.org"},
    }


# ── DataStore fixtures ────────────────────────────────────────────────────────

@pytest.fixture
def fake_store(bpou_collection, cd_collection, bpou_contacts, cd_contacts) -> DataStore:
    """DataStore with both layers and both contact tables loaded."""
    store = DataStore()
    store.features.load(Layer.BPOU, bpou_collection)
    store.features.load(Layer.CD, cd_collection)
    store.contacts.load(bpou_contacts, cd_contacts)
    return store


@pytest.fixture
def empty_store() -> DataStore:
    """DataStore as left behind when every data source failed."""
    return DataStore(features=FeatureStore())


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


# ── Geocoder fixtures ─────────────────────────────────────────────────────────

class FakeClock:
    """Monotonic clock that only advances when something sleeps on it."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_geocoder(clock, settings):
    """
    Factory: ``make_geocoder(handler, **overrides)`` builds a GeocodingClient
    whose HTTP requests go to ``handler(request) -> httpx.Response``.
    """
    def _make(handler, **overrides) -> GeocodingClient:
        cfg = settings.model_copy(update=overrides) if overrides else settings
        transport = httpx.MockTransport(handler)
        return GeocodingClient(
            cfg,
            http_client=httpx.AsyncClient(transport=transport),
            clock=clock,
            sleep=clock.sleep,
        )
    return _make


def nominatim_hit(lat: float, lon: float) -> httpx.Response:
    return httpx.Response(200, json=[{"lat": str(lat), "lon": str(lon), "display_name": "hit"}])


@pytest.fixture
def hit():
    return nominatim_hit

"""
main.py — FastAPI application entry point for the BPOU Finder.

Exposes:
    GET  /                                   — health check (root)
    GET  /health                             — detailed health info
    GET  /api/v1/lookup                      — stateless lookup by lat/lon
    POST /api/v1/sessions                    — start a widget session
    GET  /api/v1/sessions/{id}               — session state
    POST /api/v1/sessions/{id}/search        — address search (text or structured)
    POST /api/v1/sessions/{id}/click         — map click
    POST /api/v1/sessions/{id}/hover         — pointer hover preview
    POST /api/v1/sessions/{id}/geolocate     — device position reading
    POST /api/v1/sessions/{id}/boundaries/toggle — show/hide boundaries
    GET  /api/v1/bpous                       — list loaded BPOU names
    GET  /api/v1/bpous/geojson/{bpou_name}   — GeoJSON for one BPOU
    GET  /api/v1/boundaries/{layer}          — GeoJSON for a whole layer
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from shapely.geometry import mapping

from bpou_finder.cache import SessionCache
from bpou_finder.config import get_settings
from bpou_finder.exceptions import (
    AddressValidationError,
    BPOUFinderError,
    GeocodeNetworkError,
    GeocodeNotFound,
    GeocodeRateLimited,
    GeolocationError,
    OperationInProgress,
)
from bpou_finder.geocoder import GeocodingClient
from bpou_finder.geolocation import error_from_code
from bpou_finder.loader import DataStore, load_all_data
from bpou_finder.models import Coordinate, Layer, StructuredQuery, TextQuery
from bpou_finder.presenter import present
from bpou_finder.schemas import ClickRequest, GeolocateRequest, PointRequest, SearchRequest
from bpou_finder.services import LookupCoordinator
from bpou_finder.session import WidgetSession

# ── Logging ──────────────────────────────────────────────────────────────────
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

settings = get_settings()

# ── Application-level state (loaded once at startup) ─────────────────────────
data_store: DataStore | None = None
geocoder: GeocodingClient | None = None
sessions = SessionCache(ttl=settings.session_ttl)

_STATUS_BY_ERROR = (
    (AddressValidationError, 422),
    (GeocodeNotFound, 404),
    (GeocodeRateLimited, 429),
    (GeocodeNetworkError, 502),
    (GeolocationError, 400),
    (OperationInProgress, 409),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the boundary and contact data before accepting requests."""
    global data_store, geocoder
    data_store = await load_all_data(settings)
    geocoder = GeocodingClient(settings)
    logger.info("Loaded %d BPOU boundaries", data_store.features.count(Layer.BPOU))
    logger.info("Loaded %d CD boundaries", data_store.features.count(Layer.CD))
    if data_store.load_notice:
        logger.warning(data_store.load_notice)
    yield
    logger.info("Shutting down — closing geocoder.")
    await geocoder.aclose()


# ── FastAPI app ───────────────────────────────────────────────────────────────
app = FastAPI(
    title="BPOU Finder API",
    description=(
        "Find the Basic Political Organizational Unit (BPOU) and Congressional "
        "District for an address, device location or map point in Minnesota."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# The widget is embedded on third-party pages
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(BPOUFinderError)
async def finder_error_handler(request: Request, exc: BPOUFinderError):
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(status_code=status, content={"detail": exc.user_message})


# ── Helpers ───────────────────────────────────────────────────────────────────

def _require_store() -> DataStore:
    if data_store is None:
        raise HTTPException(status_code=503, detail="Data store not initialised.")
    return data_store


def _require_session(session_id: str) -> WidgetSession:
    _require_store()
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found.")
    return session


def _session_state(session: WidgetSession) -> dict:
    return {
        "session_id": session.id,
        "state": session.machine.state.value,
        "boundaries_visible": session.boundaries_visible,
        "marker": session.marker,
        "notice": session.data.load_notice,
    }


def _feature_collection(features) -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "id": f.id,
                "properties": f.properties,
                "geometry": mapping(f.geometry),
            }
            for f in features
        ],
    }


# ── Routes ────────────────────────────────────────────────────────────────────

@app.get("/", tags=["health"])
def root():
    """Root health-check endpoint."""
    return {"status": "ok", "message": "BPOU Finder API is running."}


@app.get("/health", tags=["health"])
def health():
    """Detailed health check: loaded boundary/contact counts and load errors."""
    store = _require_store()
    return {
        "status": "degraded" if store.load_errors else "ok",
        "bpou_boundaries_loaded": store.features.count(Layer.BPOU),
        "cd_boundaries_loaded": store.features.count(Layer.CD),
        "bpou_contacts_loaded": len(store.contacts.bpou),
        "cd_contacts_loaded": len(store.contacts.cd),
        "load_errors": [err.user_message for err in store.load_errors],
    }


@app.get("/api/v1/lookup", tags=["lookup"])
def lookup(
    lat: float = Query(..., ge=43.4, le=49.5, description="Latitude (43.4 – 49.5)"),
    lon: float = Query(..., ge=-97.5, le=-89.0, description="Longitude (-97.5 – -89.0)"),
):
    """
    Return the BPOU, CD and contact details for a coordinate.

    Points outside every boundary still answer 200, with ``bpou_name`` null
    and ``cd_id`` "?".
    """
    store = _require_store()
    match = LookupCoordinator(store.features).locate(Coordinate(lat=lat, lon=lon))
    logger.info("Lookup (%.4f, %.4f) → BPOU: %s | CD: %s", lat, lon, match.bpou_name, match.cd_id)
    return {
        "latitude": lat,
        "longitude": lon,
        "match": match,
        "display": present(match, store.contacts, settings=settings),
    }


# Session routes are all ``async def``: sessions and the session cache are only
# ever touched from the event loop thread, never from the sync threadpool.
@app.post("/api/v1/sessions", tags=["session"], status_code=201)
async def create_session():
    """Start a widget session in the hovering state."""
    store = _require_store()
    session = sessions.add(WidgetSession(store, geocoder, settings))
    return _session_state(session)


@app.get("/api/v1/sessions/{session_id}", tags=["session"])
async def get_session(session_id: str):
    return _session_state(_require_session(session_id))


@app.post("/api/v1/sessions/{session_id}/search", tags=["session"])
async def search(session_id: str, body: SearchRequest):
    """Geocode an address (free text or structured fields) and resolve it."""
    session = _require_session(session_id)
    if body.is_structured:
        query = StructuredQuery(street=body.street, city=body.city, zip=body.zip)
    else:
        query = TextQuery(body.address)
    return await session.search(query)


@app.post("/api/v1/sessions/{session_id}/click", tags=["session"])
async def click(session_id: str, body: ClickRequest):
    session = _require_session(session_id)
    update = session.click(Coordinate(lat=body.lat, lon=body.lon), bpou_name=body.bpou_name)
    return {"updated": update is not None, "update": update}


@app.post("/api/v1/sessions/{session_id}/hover", tags=["session"])
async def hover(session_id: str, body: PointRequest):
    session = _require_session(session_id)
    update = session.hover(Coordinate(lat=body.lat, lon=body.lon))
    return {"updated": update is not None, "update": update}


@app.post("/api/v1/sessions/{session_id}/geolocate", tags=["session"])
async def geolocate(session_id: str, body: GeolocateRequest):
    """Resolve a browser geolocation reading (or report its failure)."""
    session = _require_session(session_id)

    async def sensor() -> Coordinate:
        if body.error is not None:
            raise error_from_code(body.error)
        return Coordinate(lat=body.latitude, lon=body.longitude)

    return await session.locate_device(sensor)


@app.post("/api/v1/sessions/{session_id}/boundaries/toggle", tags=["session"])
async def toggle_boundaries(session_id: str):
    session = _require_session(session_id)
    return {"boundaries_visible": session.toggle_boundaries()}


@app.get("/api/v1/bpous", tags=["metadata"])
def list_bpous():
    """
    Return all loaded BPOU names and CD ids.

    Useful for debugging data completeness.
    """
    store = _require_store()
    return {
        "bpous": sorted(f.owner_name for f in store.features.features(Layer.BPOU)),
        "congressional_districts": sorted(
            {f.owner_name for f in store.features.features(Layer.CD)}
        ),
    }


@app.get("/api/v1/bpous/geojson/{bpou_name}", tags=["metadata"])
def get_bpou_geojson(bpou_name: str):
    """
    Return the GeoJSON feature for a single BPOU by name (case-insensitive).

    Used by the front end to highlight the matched BPOU boundary.
    """
    store = _require_store()
    match = store.features.find(Layer.BPOU, bpou_name)
    if match is None:
        raise HTTPException(status_code=404, detail=f"BPOU '{bpou_name}' not found.")
    return _feature_collection([match])


@app.get("/api/v1/boundaries/{layer}", tags=["metadata"])
def get_boundaries(layer: Layer):
    """Return every loaded feature of one layer, for the boundary overlay."""
    store = _require_store()
    return _feature_collection(store.features.features(layer))

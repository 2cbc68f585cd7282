"""
loader.py — Data loading utilities for the BPOU Finder.

Responsible for:
    - Fetching the BPOU and CD boundary GeoJSON files.
    - Fetching the BPOU and CD contact JSON files.
    - Exposing a unified DataStore dataclass used throughout the application.

All four sources are fetched concurrently and fail independently: a source
that cannot be fetched or parsed is recorded as a LoadError and the rest of
the store is still usable.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import httpx

from bpou_finder.config import Settings, get_settings
from bpou_finder.contacts import ContactDirectory
from bpou_finder.exceptions import LoadError
from bpou_finder.features import FeatureStore
from bpou_finder.models import Layer

logger = logging.getLogger(__name__)

# User-visible messages per source.
_BPOU_MAP_ERROR = "Failed to load BPOU map data. The widget may not work correctly."
_CD_MAP_ERROR = (
    "Failed to load Congressional District map data. The widget may not work correctly."
)
_BPOU_CONTACTS_ERROR = "Failed to load BPOU contact information."
_CD_CONTACTS_ERROR = "Failed to load Congressional District contact information."


# ── DataStore ────────────────────────────────────────────────────────────────
@dataclass
class DataStore:
    """
    Holds all data required for district lookups.

    Attributes:
        features:    Both boundary layers.
        contacts:    BPOU and CD contact tables.
        load_errors: One LoadError per source that failed, in source order.
    """
    features:    FeatureStore = field(default_factory=FeatureStore)
    contacts:    ContactDirectory = field(default_factory=ContactDirectory)
    load_errors: list[LoadError] = field(default_factory=list)

    @property
    def load_notice(self) -> Optional[str]:
        """Single notice listing every failed source, or None."""
        if not self.load_errors:
            return None
        return "ERROR: " + " ".join(err.user_message for err in self.load_errors)


# ── Fetching ─────────────────────────────────────────────────────────────────

def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def _resolve(base: str, name: str) -> str:
    if _is_url(base):
        return base.rstrip("/") + "/" + name
    return str(Path(base) / name)


async def fetch_json(location: str, client: httpx.AsyncClient) -> Any:
    """
    Fetch and decode one JSON document from a URL or local path.

    Raises:
        httpx.HTTPError, OSError, ValueError: Propagated to the caller, which
        converts them into a LoadError.
    """
    if _is_url(location):
        response = await client.get(location)
        response.raise_for_status()
        return response.json()
    text = await asyncio.to_thread(Path(location).read_text, encoding="utf-8")
    return json.loads(text)


async def _load_layer(
    store: FeatureStore, layer: Layer, location: str, client: httpx.AsyncClient, message: str
) -> Optional[LoadError]:
    try:
        raw = await fetch_json(location, client)
        store.load(layer, raw)
    except (httpx.HTTPError, OSError, ValueError, LoadError) as exc:
        logger.error("Failed to load %s: %s", location, exc)
        return LoadError(message, source=location)
    return None


async def _load_contacts(
    location: str, client: httpx.AsyncClient, message: str
) -> tuple[Any, Optional[LoadError]]:
    try:
        return await fetch_json(location, client), None
    except (httpx.HTTPError, OSError, ValueError) as exc:
        logger.error("Failed to load %s: %s", location, exc)
        return None, LoadError(message, source=location)


async def load_all_data(
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> DataStore:
    """
    Load all four data sources and return a populated DataStore instance.

    This should be called exactly once at application startup.

    Args:
        settings: Source locations; defaults to the cached settings.
        client:   HTTP client for URL sources; one is created if omitted.

    Returns:
        DataStore with whatever loaded, plus a LoadError per failed source.
    """
    settings = settings or get_settings()
    base = settings.data_base
    store = DataStore()

    owns_client = client is None
    client = client or httpx.AsyncClient(
        timeout=settings.fetch_timeout,
        headers={"User-Agent": settings.user_agent},
    )
    try:
        bpou_error, cd_error, (bpou_raw, bpou_contacts_error), (cd_raw, cd_contacts_error) = (
            await asyncio.gather(
                _load_layer(store.features, Layer.BPOU,
                            _resolve(base, settings.bpou_map_file), client, _BPOU_MAP_ERROR),
                _load_layer(store.features, Layer.CD,
                            _resolve(base, settings.cd_map_file), client, _CD_MAP_ERROR),
                _load_contacts(_resolve(base, settings.bpou_contacts_file), client,
                               _BPOU_CONTACTS_ERROR),
                _load_contacts(_resolve(base, settings.cd_contacts_file), client,
                               _CD_CONTACTS_ERROR),
            )
        )
    finally:
        if owns_client:
            await client.aclose()

    store.contacts.load(bpou_raw, cd_raw)
    store.load_errors = [
        err for err in (bpou_error, cd_error, bpou_contacts_error, cd_contacts_error)
        if err is not None
    ]
    if store.load_errors:
        logger.warning("%d of 4 data sources failed to load", len(store.load_errors))
    return store

"""
geocoder.py — Rate-limited Nominatim client with structured-address fallback.

Nominatim's usage policy allows one request per second from a client and
requires an identifying User-Agent. The client enforces the spacing across
every request it makes, including separate searches, by suspending the
caller rather than blocking the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Awaitable, Callable, Optional, Union

import httpx

from bpou_finder.config import Settings, get_settings
from bpou_finder.exceptions import (
    AddressValidationError,
    GeocodeNetworkError,
    GeocodeNotFound,
    GeocodeRateLimited,
)
from bpou_finder.models import Coordinate, GeocodeResult, StructuredQuery, TextQuery

logger = logging.getLogger(__name__)

MIN_ADDRESS_LENGTH = 3
MAX_ADDRESS_LENGTH = 200

# "Apt 4", "Suite 200B", "#12", "Unit C-3", ... The designator must carry a
# number or a single-letter id, so "Building Rd" and "Room Ln" survive.
_UNIT_PATTERN = re.compile(
    r"[\s,]*(?:\b(?:apt|apartment|unit|suite|ste|bldg|building|fl|floor|rm|room)\b\.?|#)"
    r"\s*(?:\d[\w-]*|[a-z](?:-?\d+)?)\b",
    re.IGNORECASE,
)

# A "#" right after a road word numbers the road itself ("Co Rd #101").
_ROUTE_SUFFIX = re.compile(r"\b(?:rd|road|hwy|highway|route|rte|csah|trunk)\.?$", re.IGNORECASE)


def validate_address_text(text: str) -> str:
    """
    Check a free-text address before it is sent anywhere.

    Returns:
        The stripped address.

    Raises:
        AddressValidationError: If the address is empty, too short or too long.
    """
    addr = (text or "").strip()
    if not addr:
        raise AddressValidationError("Please enter an address")
    if len(addr) < MIN_ADDRESS_LENGTH:
        raise AddressValidationError(
            f"Please enter a valid address (at least {MIN_ADDRESS_LENGTH} characters)"
        )
    if len(addr) > MAX_ADDRESS_LENGTH:
        raise AddressValidationError("Address is too long")
    return addr


def strip_unit(street: str) -> str:
    """Remove apartment/unit/suite designators from a street line."""
    def drop(match: re.Match) -> str:
        designator = match.group(0).lstrip(" ,")
        if designator.startswith("#") and _ROUTE_SUFFIX.search(match.string[:match.start()].rstrip(" ,")):
            return match.group(0)
        return ""

    cleaned = _UNIT_PATTERN.sub(drop, street or "")
    return re.sub(r"\s{2,}", " ", cleaned).strip(" ,")


def build_address_variations(query: StructuredQuery, region: str) -> list[str]:
    """
    Build the ordered, de-duplicated list of queries to try for a structured
    address, most specific first.

    Variations whose distinguishing field is empty are left out, and two
    combinations that produce the same string keep only the first.
    """
    street = strip_unit(query.street)
    city = (query.city or "").strip()
    zip_code = (query.zip or "").strip()

    def join(*parts: str) -> str:
        return ", ".join(p for p in parts if p)

    candidates = []
    if street or city or zip_code:
        candidates.append(join(street, city, region, zip_code))
    if street:
        candidates.append(join(street, region, zip_code))
    if city:
        candidates.append(join(city, region, zip_code))
        candidates.append(join(city, region))
    if zip_code:
        candidates.append(zip_code)

    variations: list[str] = []
    for candidate in candidates:
        if candidate not in variations:
            variations.append(candidate)
    return variations


class GeocodingClient:
    """
    Async client for a Nominatim-compatible ``/search`` endpoint.

    Args:
        settings:    Endpoint, identity, delays and search area.
        http_client: Shared httpx client; one is created (and owned) if omitted.
        clock:       Monotonic clock in seconds.
        sleep:       Suspension primitive used for every delay.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self.settings.geocoder_timeout)
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None
        self._throttle_lock = asyncio.Lock()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def resolve(self, query: Union[TextQuery, StructuredQuery]) -> GeocodeResult:
        """
        Geocode a free-text or structured address.

        Raises:
            GeocodeNotFound:     No attempted query produced a result.
            GeocodeRateLimited:  The service answered 429; nothing further is tried.
            GeocodeNetworkError: Transport or parse failure.
            AddressValidationError: Structured query with no usable field.
        """
        if isinstance(query, TextQuery):
            coordinate = await self._search({"q": query.text})
            if coordinate is None:
                raise GeocodeNotFound(f"No results for {query.text!r}")
            return GeocodeResult(coordinate=coordinate, query=query.text)

        variations = build_address_variations(query, self.settings.region_token)
        if not variations:
            raise AddressValidationError("Please enter a street, city or ZIP code")

        params = {
            "countrycodes": self.settings.country_code,
            "viewbox": self.settings.viewbox,
            "bounded": "1",
        }
        for index, variation in enumerate(variations):
            logger.debug("Geocoding variation %d/%d: %r", index + 1, len(variations), variation)
            coordinate = await self._search({"q": variation, **params})
            if coordinate is not None:
                if index > 0:
                    logger.info("Geocoded using simplified address %r", variation)
                return GeocodeResult(
                    coordinate=coordinate,
                    query=variation,
                    fallback_address=variation if index > 0 else None,
                )
            if index < len(variations) - 1:
                await self._sleep(self.settings.variation_delay)

        raise GeocodeNotFound(f"No results for any of {len(variations)} address variations")

    # ── Internals ────────────────────────────────────────────────────────────

    async def _throttle(self) -> None:
        async with self._throttle_lock:
            if self._last_call is not None:
                elapsed = self._clock() - self._last_call
                if elapsed < self.settings.rate_limit_delay:
                    await self._sleep(self.settings.rate_limit_delay - elapsed)
            self._last_call = self._clock()

    async def _search(self, params: dict) -> Optional[Coordinate]:
        """Issue one request; return the top hit or None when there are no hits."""
        await self._throttle()
        try:
            response = await self._client.get(
                self.settings.geocoder_url,
                params={"format": "json", **params},
                headers={"User-Agent": self.settings.user_agent},
            )
        except httpx.HTTPError as exc:
            logger.error("Geocoder request failed for %r: %s", params.get("q"), exc)
            raise GeocodeNetworkError(str(exc)) from exc

        if response.status_code == 429:
            logger.warning("Geocoder rate limited the request for %r", params.get("q"))
            raise GeocodeRateLimited("HTTP 429 from geocoding service")

        try:
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPStatusError, ValueError) as exc:
            logger.error("Geocoder error for %r: %s", params.get("q"), exc)
            raise GeocodeNetworkError(str(exc)) from exc

        if not data:
            return None
        try:
            top = data[0]
            return Coordinate(lat=float(top["lat"]), lon=float(top["lon"]))
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            logger.error("Geocoder returned an unreadable result for %r: %s", params.get("q"), exc)
            raise GeocodeNetworkError(f"Unreadable geocoder result: {exc}") from exc

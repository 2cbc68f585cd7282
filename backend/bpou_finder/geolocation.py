"""
geolocation.py — One-shot device position reads.

The sensor itself lives in the browser; here it is any coroutine function
returning a Coordinate or raising a GeolocationError. Reads are bounded by a
timeout and never cached.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from bpou_finder.exceptions import (
    GeolocationDenied,
    GeolocationError,
    GeolocationTimeout,
    GeolocationUnavailable,
    GeolocationUnknown,
)
from bpou_finder.models import Coordinate

logger = logging.getLogger(__name__)

Sensor = Callable[[], Awaitable[Coordinate]]

_ERRORS_BY_CODE: dict[str, type[GeolocationError]] = {
    cls.code: cls
    for cls in (GeolocationDenied, GeolocationUnavailable, GeolocationTimeout)
}


def error_from_code(code: str) -> GeolocationError:
    """Map a browser failure code to its exception; unknown codes → GeolocationUnknown."""
    cls = _ERRORS_BY_CODE.get((code or "").strip().lower(), GeolocationUnknown)
    return cls(f"Geolocation failed: {code}")


async def read_position(sensor: Sensor, timeout: float) -> Coordinate:
    """
    Take a single reading from ``sensor``.

    Raises:
        GeolocationError: The sensor failed, or did not answer within
            ``timeout`` seconds (GeolocationTimeout).
    """
    try:
        position = await asyncio.wait_for(sensor(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("Geolocation timed out after %.1fs", timeout)
        raise GeolocationTimeout("Geolocation timed out") from exc
    except GeolocationError as exc:
        logger.warning("Geolocation failed: %s", exc.code)
        raise
    logger.debug("Device position (%.6f, %.6f)", position.lat, position.lon)
    return position

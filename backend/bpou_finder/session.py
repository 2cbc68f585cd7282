"""
session.py — Event handling for one embedded widget.

A WidgetSession owns the per-user state: its marker (via a FeatureStore view),
the interaction state machine and the boundary-visibility toggle. Search,
locate-me and click are exclusive with each other; the busy flag is always
released, whatever the outcome.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from bpou_finder.config import Settings, get_settings
from bpou_finder.exceptions import OperationInProgress
from bpou_finder.geocoder import GeocodingClient, validate_address_text
from bpou_finder.geolocation import Sensor, read_position
from bpou_finder.interaction import InteractionStateMachine
from bpou_finder.loader import DataStore
from bpou_finder.models import (
    Coordinate,
    DistrictMatch,
    InteractionState,
    StructuredQuery,
    TextQuery,
)
from bpou_finder.presenter import DisplayContent, present
from bpou_finder.services import LookupCoordinator

logger = logging.getLogger(__name__)


@dataclass
class MapView:
    center: Coordinate
    zoom: int


@dataclass
class SessionUpdate:
    """Everything the widget needs to redraw after an event."""
    match: DistrictMatch
    content: DisplayContent
    state: InteractionState
    marker: Optional[Coordinate] = None
    view: Optional[MapView] = None


class WidgetSession:
    def __init__(
        self,
        data: DataStore,
        geocoder: GeocodingClient,
        settings: Optional[Settings] = None,
    ) -> None:
        self.id = uuid.uuid4().hex
        self.data = data
        self.geocoder = geocoder
        self.settings = settings or get_settings()
        self.features = data.features.view()
        self.coordinator = LookupCoordinator(self.features)
        self.machine = InteractionStateMachine(hover_preview=self.settings.hover_preview)
        self.boundaries_visible = True
        self.busy = False

    @property
    def marker(self) -> Optional[Coordinate]:
        return self.features.marker.coordinate if self.features.marker else None

    @contextmanager
    def _exclusive(self, action: str) -> Iterator[None]:
        if self.busy:
            raise OperationInProgress(f"{action} requested while another operation is running")
        self.busy = True
        try:
            yield
        finally:
            self.busy = False

    def _finish(
        self,
        point: Coordinate,
        match: DistrictMatch,
        fallback_address: Optional[str] = None,
    ) -> SessionUpdate:
        return SessionUpdate(
            match=match,
            content=present(match, self.data.contacts, fallback_address, settings=self.settings),
            state=self.machine.state,
            marker=point,
            view=MapView(center=point, zoom=self.settings.result_zoom),
        )

    # ── Events ───────────────────────────────────────────────────────────────

    async def search(self, query: Union[TextQuery, StructuredQuery]) -> SessionUpdate:
        """
        Geocode an address and resolve it.

        Raises:
            AddressValidationError, GeocodeError: Nothing changes in the session.
            OperationInProgress: Another search/locate/click is running.
        """
        with self._exclusive("search"):
            if isinstance(query, TextQuery):
                query = TextQuery(validate_address_text(query.text))
            result = await self.geocoder.resolve(query)
            match = self.coordinator.resolve(result.coordinate)
            self.machine.lock("search")
            return self._finish(result.coordinate, match, result.fallback_address)

    async def locate_device(self, sensor: Sensor, timeout: Optional[float] = None) -> SessionUpdate:
        """
        Resolve the device's current position.

        Raises:
            GeolocationError: Nothing changes in the session.
        """
        with self._exclusive("locate"):
            point = await read_position(
                sensor, timeout if timeout is not None else self.settings.geolocation_timeout
            )
            match = self.coordinator.resolve(point)
            self.machine.lock("geolocation")
            return self._finish(point, match)

    def click(self, point: Coordinate, bpou_name: Optional[str] = None) -> Optional[SessionUpdate]:
        """
        Handle a map click, optionally on an already-identified BPOU polygon.

        Returns:
            None when the click is ignored (hover-preview widgets ignore clicks
            outside every BPOU).
        """
        with self._exclusive("click"):
            match = self.coordinator.locate(point, known_bpou_name=bpou_name)
            if not self.machine.accepts_click(match):
                logger.debug("Ignoring click outside all BPOUs at (%.6f, %.6f)",
                             point.lat, point.lon)
                return None
            self.machine.lock("click")
            self.features.set_marker(point)
            return self._finish(point, match)

    def hover(self, point: Coordinate) -> Optional[SessionUpdate]:
        """Preview the BPOU under the pointer; None when nothing should redraw."""
        ticket = self.machine.begin_hover()
        if ticket is None:
            return None
        match = self.coordinator.locate(point)
        if not self.machine.complete_hover(ticket, match):
            return None
        return SessionUpdate(
            match=match,
            content=present(match, self.data.contacts, preview=True, settings=self.settings),
            state=self.machine.state,
            marker=self.marker,
        )

    def toggle_boundaries(self) -> bool:
        self.boundaries_visible = not self.boundaries_visible
        return self.boundaries_visible

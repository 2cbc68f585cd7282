"""
interaction.py — Hover/lock arbitration for one widget session.

The widget starts in HOVERING: pointer movement previews whichever BPOU is
under the cursor. An explicit click on a BPOU, a successful search or a
successful geolocation moves it to LOCKED for the rest of the session, after
which hover events are ignored.
"""

from __future__ import annotations

import logging
from typing import Optional

from bpou_finder.models import DistrictMatch, InteractionState

logger = logging.getLogger(__name__)


class InteractionStateMachine:
    """
    Args:
        hover_preview: Whether this widget variant shows hover previews. When
            False, every click resolves, even outside all BPOU polygons.
    """

    def __init__(self, hover_preview: bool = True) -> None:
        self.hover_preview = hover_preview
        self.state = InteractionState.HOVERING
        self.last_hovered_bpou: Optional[str] = None
        self._issued = 0
        self._completed = 0

    @property
    def locked(self) -> bool:
        return self.state is InteractionState.LOCKED

    def lock(self, reason: str = "") -> None:
        if not self.locked:
            logger.debug("Interaction locked (%s)", reason or "unspecified")
        self.state = InteractionState.LOCKED

    def begin_hover(self) -> Optional[int]:
        """Issue a ticket for a hover resolution, or None if hover is off."""
        if self.locked or not self.hover_preview:
            return None
        self._issued += 1
        return self._issued

    def complete_hover(self, ticket: Optional[int], match: DistrictMatch) -> bool:
        """
        Record a finished hover resolution.

        Returns:
            True if the display should update. False when locked, when a newer
            hover already completed, or when the BPOU under the pointer has
            not changed.
        """
        if ticket is None or self.locked:
            return False
        if ticket <= self._completed:
            return False
        self._completed = ticket
        if match.bpou_name == self.last_hovered_bpou:
            return False
        self.last_hovered_bpou = match.bpou_name
        return True

    def accepts_click(self, match: DistrictMatch) -> bool:
        """Whether a click resolving to ``match`` should trigger a full resolution."""
        if self.hover_preview and match.bpou_name is None:
            return False
        return True

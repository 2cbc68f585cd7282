"""
services.py — District lookup for the BPOU Finder.

Responsibilities:
    - Finding the BPOU polygon that contains a coordinate (or trusting the
      name of a polygon the user clicked directly).
    - Finding the CD polygon that contains the same coordinate, independently
      of the BPOU outcome.
    - Moving the session marker when a lookup is a real resolution rather
      than a hover preview.
"""

from __future__ import annotations

import logging
from typing import Optional

from bpou_finder.features import FeatureStore
from bpou_finder.models import UNKNOWN_CD, Coordinate, DistrictMatch, Layer

logger = logging.getLogger(__name__)


class LookupCoordinator:
    """Turns coordinates into DistrictMatch values against one FeatureStore."""

    def __init__(self, features: FeatureStore) -> None:
        self.features = features

    def locate(self, point: Coordinate, known_bpou_name: Optional[str] = None) -> DistrictMatch:
        """
        Find the BPOU and CD containing ``point``. Read-only.

        Args:
            point:           Query coordinate.
            known_bpou_name: Name of a polygon the user clicked. A name that
                             matches a loaded BPOU skips the containment
                             query and is reported in its loaded spelling;
                             an unknown name is ignored.

        Returns:
            DistrictMatch with ``bpou_name=None`` and/or ``cd_id="?"`` where
            no polygon contains the point.
        """
        bpou_feature = None
        if known_bpou_name:
            bpou_feature = self.features.find(Layer.BPOU, known_bpou_name)
            if bpou_feature is None:
                logger.warning("Ignoring unknown BPOU name %r; using containment.", known_bpou_name)
        if bpou_feature is None:
            bpou_feature = self.features.query(Layer.BPOU, point)
        bpou_name = bpou_feature.owner_name if bpou_feature else None

        cd_feature = self.features.query(Layer.CD, point)
        cd_id = cd_feature.owner_name if cd_feature else UNKNOWN_CD

        if bpou_name is None:
            logger.debug("Point (%.6f, %.6f) matched no BPOU boundary.", point.lat, point.lon)

        return DistrictMatch(bpou_name=bpou_name or None, cd_id=cd_id)

    def resolve(self, point: Coordinate, known_bpou_name: Optional[str] = None) -> DistrictMatch:
        """``locate`` plus marker placement at ``point``."""
        match = self.locate(point, known_bpou_name=known_bpou_name)
        self.features.set_marker(point)
        logger.info("Resolved (%.4f, %.4f) → BPOU: %s | CD: %s",
                    point.lat, point.lon, match.bpou_name, match.cd_id)
        return match

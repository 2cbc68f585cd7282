"""
features.py — In-memory store for the BPOU and CD boundary layers.

Containment testing is delegated to shapely. Geometries are prepared once at
load time so repeated point queries (hover events arrive continuously) stay
cheap.
"""

from __future__ import annotations

import logging
from typing import Optional

import shapely
from shapely.errors import ShapelyError
from shapely.geometry import Point, shape

from bpou_finder.exceptions import LoadError
from bpou_finder.models import (
    UNKNOWN_CD,
    Coordinate,
    Layer,
    MarkerFeature,
    PolygonFeature,
)

logger = logging.getLogger(__name__)

_POLYGON_TYPES = {"Polygon", "MultiPolygon"}

# CD boundary files in circulation name the district attribute differently.
_CD_NAME_ATTRIBUTES = ("DISTRICT", "ID1")
_BPOU_NAME_ATTRIBUTE = "BPOU_NAME"


def derive_cd_name(properties: dict) -> str:
    """Return the first non-empty district attribute, or the "?" sentinel."""
    for attribute in _CD_NAME_ATTRIBUTES:
        value = properties.get(attribute)
        if value is not None and str(value).strip():
            return str(value).strip()
    return UNKNOWN_CD


class FeatureStore:
    """
    Two independently loaded polygon layers plus a single marker.

    Layers are read-only once loaded; ``view()`` hands out stores that share
    them but own a separate marker, one per widget session.
    """

    def __init__(self, layers: Optional[dict[Layer, list[PolygonFeature]]] = None) -> None:
        self._layers: dict[Layer, list[PolygonFeature]] = (
            layers if layers is not None else {Layer.BPOU: [], Layer.CD: []}
        )
        self.marker: Optional[MarkerFeature] = None

    # ── Loading ──────────────────────────────────────────────────────────────

    def load(self, layer: Layer, raw: object) -> int:
        """
        Parse a GeoJSON FeatureCollection into the given layer.

        Features are appended in source order, so for overlapping polygons the
        one loaded first is the one ``query`` returns.

        Args:
            layer: Target layer.
            raw:   Decoded GeoJSON FeatureCollection.

        Returns:
            Number of features added.

        Raises:
            LoadError: If the collection or any geometry in it is malformed.
        """
        if not isinstance(raw, dict) or not isinstance(raw.get("features"), list):
            raise LoadError(
                f"{layer.value} data is not a GeoJSON FeatureCollection",
                source=layer.value,
            )

        target = self._layers[layer]
        parsed: list[PolygonFeature] = []
        offset = len(target)

        for index, feature in enumerate(raw["features"]):
            if not isinstance(feature, dict):
                raise LoadError(f"{layer.value} feature #{index} is not an object", source=layer.value)

            geometry = feature.get("geometry")
            properties = feature.get("properties")
            if not isinstance(properties, dict):
                properties = {}
            if not geometry:
                logger.warning("Skipping %s feature #%d without geometry.", layer.value, index)
                continue
            if not isinstance(geometry, dict) or geometry.get("type") not in _POLYGON_TYPES:
                logger.warning("Skipping %s feature #%d with non-polygon geometry.",
                               layer.value, index)
                continue

            try:
                geom = shape(geometry)
            except (ShapelyError, ValueError, TypeError, KeyError, IndexError, AttributeError) as exc:
                raise LoadError(
                    f"Invalid geometry in {layer.value} feature #{index}: {exc}",
                    source=layer.value,
                ) from exc
            shapely.prepare(geom)

            if layer is Layer.CD:
                owner_name = derive_cd_name(properties)
            else:
                owner_name = str(properties.get(_BPOU_NAME_ATTRIBUTE) or "").strip()

            feature_id = feature.get("id")
            parsed.append(PolygonFeature(
                id=str(feature_id) if feature_id is not None else f"{layer.value}-{offset + len(parsed)}",
                owner_name=owner_name,
                geometry=geom,
                layer=layer,
                properties=properties,
            ))

        # Only commit once the whole collection parsed.
        target.extend(parsed)
        logger.info("Loaded %d %s features", len(parsed), layer.value.upper())
        return len(parsed)

    # ── Queries ──────────────────────────────────────────────────────────────

    def query(self, layer: Layer, point: Coordinate) -> Optional[PolygonFeature]:
        """
        Return the first feature in load order whose polygon covers the point.

        Points on a shared edge or vertex count as inside every polygon that
        touches them; the first loaded wins.
        """
        pt = Point(point.lon, point.lat)  # shapely uses (x=lon, y=lat)
        for feature in self._layers[layer]:
            if feature.geometry.covers(pt):
                logger.debug("Point (%.6f, %.6f) in %s %r", point.lat, point.lon,
                             layer.value, feature.owner_name)
                return feature
        return None

    def features(self, layer: Layer) -> list[PolygonFeature]:
        return list(self._layers[layer])

    def count(self, layer: Layer) -> int:
        return len(self._layers[layer])

    def find(self, layer: Layer, owner_name: str) -> Optional[PolygonFeature]:
        """Case-insensitive lookup of a feature by owner name."""
        wanted = owner_name.strip().lower()
        return next(
            (f for f in self._layers[layer] if f.owner_name.lower() == wanted),
            None,
        )

    # ── Marker ───────────────────────────────────────────────────────────────

    def set_marker(self, point: Coordinate) -> MarkerFeature:
        """Replace any existing marker with one at ``point``."""
        self.marker = MarkerFeature(coordinate=point)
        return self.marker

    def view(self) -> "FeatureStore":
        """A store sharing these layers with its own, initially empty, marker."""
        return FeatureStore(layers=self._layers)

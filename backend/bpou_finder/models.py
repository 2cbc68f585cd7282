"""
models.py — Plain data types shared across the BPOU Finder.

Coordinates are WGS84 throughout; reprojection into the map's display
coordinate system is the renderer's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Optional

# Sentinel used when no congressional district polygon contains a point.
UNKNOWN_CD = "?"


class Layer(str, Enum):
    BPOU = "bpou"
    CD = "cd"


class InteractionState(str, Enum):
    HOVERING = "hovering"
    LOCKED = "locked"


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float


@dataclass
class PolygonFeature:
    """
    A single boundary polygon from one of the two layers.

    Attributes:
        id:         GeoJSON feature id, or "<layer>-<index>" when absent.
        owner_name: BPOU_NAME for BPOU features; derived district id for CD.
        geometry:   Prepared shapely geometry. Never mutated after load.
        layer:      Which layer the feature was loaded into.
        properties: Raw GeoJSON properties, kept for re-serialisation.
    """
    id: str
    owner_name: str
    geometry: Any
    layer: Layer
    properties: dict = field(default_factory=dict)


@dataclass
class MarkerFeature:
    coordinate: Coordinate


@dataclass
class ContactRecord:
    """Contact details for one BPOU or CD. Every field may be absent."""
    website:      Optional[str] = None
    phone:        Optional[str] = None
    email:        Optional[str] = None
    facebook:     Optional[str] = None
    twitter:      Optional[str] = None
    meeting_info: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "ContactRecord":
        """
        Build a record from one entry of a contacts JSON file.

        Unknown keys are ignored, blank or non-string values count as absent,
        and anything that is not a mapping produces an empty record.
        """
        if not isinstance(raw, dict):
            return cls()
        values = {}
        for f in fields(cls):
            value = raw.get(f.name)
            if value is None and f.name == "meeting_info":
                value = raw.get("meetingInfo")
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                value = str(value)
            if isinstance(value, str) and value.strip():
                values[f.name] = value.strip()
        return cls(**values)

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


@dataclass(frozen=True)
class DistrictMatch:
    bpou_name: Optional[str] = None
    cd_id: str = UNKNOWN_CD


@dataclass(frozen=True)
class TextQuery:
    text: str


@dataclass(frozen=True)
class StructuredQuery:
    street: str = ""
    city: str = ""
    zip: str = ""


@dataclass(frozen=True)
class GeocodeResult:
    """
    A successful geocode.

    ``fallback_address`` is only set when a structured query succeeded on a
    simplified variation rather than the first one attempted.
    """
    coordinate: Coordinate
    query: str
    fallback_address: Optional[str] = None

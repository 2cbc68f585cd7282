"""Request bodies for the widget session endpoints."""

from typing import Optional

from pydantic import BaseModel, Field, model_validator


class PointRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class ClickRequest(PointRequest):
    bpou_name: Optional[str] = None


class SearchRequest(BaseModel):
    """Either a free-text ``address`` or any of ``street``/``city``/``zip``."""

    address: Optional[str] = None
    street: str = ""
    city: str = ""
    zip: str = ""

    @property
    def is_structured(self) -> bool:
        return self.address is None


class GeolocateRequest(BaseModel):
    """A browser geolocation reading, or the failure code it produced."""

    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    error: Optional[str] = None

    @model_validator(mode="after")
    def check_reading_or_error(self):
        if self.error is None and (self.latitude is None or self.longitude is None):
            raise ValueError("latitude and longitude are required unless error is set")
        return self

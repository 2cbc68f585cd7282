"""Exception hierarchy for the BPOU Finder.

Nothing in here is fatal to the process: load errors are collected into a
notice, and every other error carries a ``user_message`` the widget can show
verbatim before restoring its controls.
"""

from __future__ import annotations


class BPOUFinderError(Exception):
    """Base exception for all BPOU Finder errors."""

    user_message = "Something went wrong. Please try again."


class LoadError(BPOUFinderError):
    """One data source could not be fetched or parsed."""

    def __init__(self, message: str, *, source: str = "") -> None:
        self.source = source
        self.user_message = message
        super().__init__(message)


class AddressValidationError(BPOUFinderError):
    """The address input was rejected before any request was made."""

    def __init__(self, message: str) -> None:
        self.user_message = message
        super().__init__(message)


class GeocodeError(BPOUFinderError):
    """Base for failures reported by the geocoding client."""


class GeocodeNotFound(GeocodeError):
    """Every attempted query returned zero results."""

    user_message = (
        "Address not found. Try a more general location such as city, "
        "ZIP code, or street and city."
    )


class GeocodeRateLimited(GeocodeError):
    """The geocoding service answered HTTP 429."""

    user_message = "Too many requests. Please wait a moment and try again."


class GeocodeNetworkError(GeocodeError):
    """Transport, status or parse failure talking to the geocoding service."""

    user_message = (
        "Error searching address. Please check your connection and try again."
    )


class GeolocationError(BPOUFinderError):
    """Base for device geolocation failures."""

    code = "unknown"


class GeolocationDenied(GeolocationError):
    code = "permission-denied"
    user_message = (
        "Location access was denied. Allow location access in your browser "
        "settings or search by address instead."
    )


class GeolocationUnavailable(GeolocationError):
    code = "unavailable"
    user_message = (
        "Your location is currently unavailable. Check that location services "
        "are turned on, or search by address instead."
    )


class GeolocationTimeout(GeolocationError):
    code = "timeout"
    user_message = "Finding your location took too long. Please try again."


class GeolocationUnknown(GeolocationError):
    code = "unknown"
    user_message = "Could not get your location. Please search by address instead."


class OperationInProgress(BPOUFinderError):
    """A search, locate or click is already running for this session."""

    user_message = "Please wait for the current search to finish."

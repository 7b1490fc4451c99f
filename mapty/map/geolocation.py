"""Single-shot position lookup."""

from __future__ import annotations

import asyncio
from typing import Protocol

from mapty.workout.model import Coordinates

GEOLOCATION_TIMEOUT_SEC = 10.0


class GeolocationError(RuntimeError):
    """Raised when the current position cannot be determined."""


class Geolocator(Protocol):
    async def get_current_position(self) -> Coordinates: ...


class StaticGeolocator:
    """Always reports the configured position, or fails when it has none."""

    def __init__(self, position: Coordinates | None = None) -> None:
        self._position = position

    async def get_current_position(self) -> Coordinates:
        if self._position is None:
            raise GeolocationError("No position configured")
        return self._position


async def locate(
    geolocator: Geolocator, timeout: float = GEOLOCATION_TIMEOUT_SEC
) -> Coordinates:
    try:
        return await asyncio.wait_for(geolocator.get_current_position(), timeout=timeout)
    except TimeoutError as exc:
        raise GeolocationError(f"No position after {timeout:.0f}s") from exc
    except GeolocationError:
        raise
    except (RuntimeError, OSError, ValueError, TypeError) as exc:
        raise GeolocationError(f"Position lookup failed: {exc}") from exc


def parse_coordinates(text: str) -> Coordinates:
    """Parse ``"lat,lng"`` as used on the command line."""
    parts = [part.strip() for part in text.split(",")]
    if len(parts) != 2:
        raise ValueError(f"Expected 'lat,lng', got '{text}'")
    lat, lng = float(parts[0]), float(parts[1])
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
        raise ValueError(f"Coordinates out of range: '{text}'")
    return (lat, lng)

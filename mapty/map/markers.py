"""Map capability and the registry of workout markers placed on it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, Sequence

from loguru import logger

from mapty.workout.model import Coordinates, Workout

MAP_ZOOM_LEVEL = 13
SHOW_ALL_PADDING_PX = 70

MarkerHandle = Any
MapClickCallback = Callable[[Coordinates], None]

_WORKOUT_ICONS: dict[str, str] = {
    "running": "🏃‍♂️",
    "cycling": "🚴‍♀️",
}


def workout_icon(kind: str) -> str:
    return _WORKOUT_ICONS.get(kind, "📍")


@dataclass(frozen=True)
class PopupConfig:
    content: str
    class_name: str
    max_width: int = 250
    min_width: int = 100
    auto_close: bool = False
    close_on_click: bool = False

    @classmethod
    def for_workout(cls, workout: Workout) -> PopupConfig:
        return cls(
            content=f"{workout_icon(workout.kind)} {workout.description}",
            class_name=f"{workout.kind}-popup",
        )


class MapView(Protocol):
    def add_marker_with_popup(self, coordinates: Coordinates, popup: PopupConfig) -> MarkerHandle: ...

    def remove_marker(self, handle: MarkerHandle) -> None: ...

    def pan_to(self, coordinates: Coordinates, zoom: int) -> None: ...

    def fit_bounds(self, coordinates: Sequence[Coordinates], padding: int) -> None: ...

    def on_click(self, callback: MapClickCallback) -> None: ...


MapFactory = Callable[[Coordinates, int], "MapView | Awaitable[MapView]"]


class MarkerRegistry:
    """One marker per live workout id."""

    def __init__(self, map_view: MapView) -> None:
        self.map_view = map_view
        self._handles: dict[str, MarkerHandle] = {}

    def place(self, workout: Workout) -> MarkerHandle:
        if workout.id in self._handles:
            self.remove_for(workout.id)
        handle = self.map_view.add_marker_with_popup(
            workout.coordinates, PopupConfig.for_workout(workout)
        )
        self._handles[workout.id] = handle
        return handle

    def remove_for(self, workout_id: str) -> None:
        handle = self._handles.pop(workout_id, None)
        if handle is None:
            return
        self.map_view.remove_marker(handle)

    def clear_all(self) -> None:
        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            self.map_view.remove_marker(handle)
        logger.debug(f"Removed {len(handles)} markers")

    def handle_for(self, workout_id: str) -> MarkerHandle | None:
        return self._handles.get(workout_id)

    def ids(self) -> set[str]:
        return set(self._handles)

    def __len__(self) -> int:
        return len(self._handles)

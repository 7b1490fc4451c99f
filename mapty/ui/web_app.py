"""NiceGUI web UI for Mapty."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Sequence

from loguru import logger
from nicegui import ui

from mapty.core.state import AppContext
from mapty.map.geolocation import GEOLOCATION_TIMEOUT_SEC, GeolocationError, Geolocator, StaticGeolocator
from mapty.map.markers import MapClickCallback, MarkerHandle, PopupConfig, workout_icon
from mapty.ui.controller import WorkoutController
from mapty.ui.formatting import entry_details
from mapty.workout.form import FormValues
from mapty.workout.model import Coordinates, Workout
from mapty.workout.persistence import JsonFileKeyValueStore, WorkoutPersistence

_GEOLOCATION_JS = """
new Promise((resolve) => {
  if (!navigator.geolocation) { resolve(null); return; }
  navigator.geolocation.getCurrentPosition(
    (p) => resolve([p.coords.latitude, p.coords.longitude]),
    () => resolve(null),
  );
})
"""

_STYLE = """
<style>
  :root {
    --mt-dark-1: #2d3439;
    --mt-dark-2: #42484d;
    --mt-light-1: #aaa;
    --mt-light-2: #ececec;
    --mt-running: #00c46a;
    --mt-cycling: #ffb545;
  }
  body {
    background: var(--mt-dark-1);
    color: var(--mt-light-2);
    font-family: "Manrope", Arial, sans-serif;
  }
  .mt-sidebar { background: var(--mt-dark-1); }
  .mt-card {
    background: var(--mt-dark-2);
    border-radius: 6px;
    cursor: pointer;
  }
  .workout--running { border-left: 5px solid var(--mt-running); }
  .workout--cycling { border-left: 5px solid var(--mt-cycling); }
  .running-popup .leaflet-popup-content-wrapper { border-left: 5px solid var(--mt-running); }
  .cycling-popup .leaflet-popup-content-wrapper { border-left: 5px solid var(--mt-cycling); }
  .mt-muted { color: var(--mt-light-1); }
</style>
"""


class LeafletMapView:
    def __init__(self, leaflet: ui.leaflet) -> None:
        self._map = leaflet

    def add_marker_with_popup(self, coordinates: Coordinates, popup: PopupConfig) -> MarkerHandle:
        marker = self._map.marker(latlng=coordinates)
        marker.run_method(
            "bindPopup",
            popup.content,
            {
                "maxWidth": popup.max_width,
                "minWidth": popup.min_width,
                "autoClose": popup.auto_close,
                "closeOnClick": popup.close_on_click,
                "className": popup.class_name,
            },
        )
        marker.run_method("openPopup")
        return marker

    def remove_marker(self, handle: MarkerHandle) -> None:
        self._map.remove_layer(handle)

    def pan_to(self, coordinates: Coordinates, zoom: int) -> None:
        self._map.run_map_method(
            "setView", list(coordinates), zoom, {"animate": True, "pan": {"duration": 1}}
        )

    def fit_bounds(self, coordinates: Sequence[Coordinates], padding: int) -> None:
        self._map.run_map_method(
            "fitBounds", [list(c) for c in coordinates], {"padding": [padding, padding]}
        )

    def on_click(self, callback: MapClickCallback) -> None:
        def _on_map_click(e: Any) -> None:
            latlng = e.args["latlng"]
            callback((float(latlng["lat"]), float(latlng["lng"])))

        self._map.on("map-click", _on_map_click)


class CardListView:
    """Workout entries as cards, newest on top."""

    def __init__(
        self,
        container: ui.column,
        on_select: Callable[[str], Any],
        on_delete: Callable[[str], Any],
        on_edit: Callable[[str], Any],
    ) -> None:
        self._container = container
        self._on_select = on_select
        self._on_delete = on_delete
        self._on_edit = on_edit
        self._cards: dict[str, ui.card] = {}

    def render_entry(self, workout: Workout) -> None:
        workout_id = workout.id
        with self._container:
            with ui.card().classes(f"w-full mt-card workout--{workout.kind}") as card:
                with ui.row().classes("w-full items-center justify-between"):
                    ui.label(workout.description).classes("text-base font-semibold")
                    with ui.row().classes("gap-1"):
                        ui.button("✖").props("flat dense size=sm").tooltip(
                            "Delete workout"
                        ).on("click.stop", lambda: self._on_delete(workout_id))
                        ui.button("✎").props("flat dense size=sm").tooltip(
                            "Edit workout"
                        ).on("click.stop", lambda: self._on_edit(workout_id))
                with ui.row().classes("w-full gap-4"):
                    for detail in entry_details(workout):
                        with ui.row().classes("items-baseline gap-1"):
                            ui.label(detail.icon)
                            ui.label(detail.value).classes("font-semibold")
                            ui.label(detail.unit.upper()).classes("text-xs mt-muted")
        card.on("click", lambda: self._on_select(workout_id))
        card.move(target_index=0)
        self._cards[workout_id] = card

    def remove_entry(self, workout_id: str) -> None:
        card = self._cards.pop(workout_id, None)
        if card is not None:
            card.delete()

    def clear_all_entries(self) -> None:
        self._cards.clear()
        self._container.clear()


class SidebarFormView:
    def __init__(self, on_submit: Callable[[], Any], on_cancel: Callable[[], Any]) -> None:
        with ui.card().classes("w-full mt-card") as self._card:
            with ui.grid(columns=2).classes("w-full gap-2"):
                self._kind = ui.select(
                    {"running": "Running", "cycling": "Cycling"}, value="running", label="Type"
                )
                self._distance = ui.number("Distance (km)", format="%g")
                self._duration = ui.number("Duration (min)", format="%g")
                self._cadence = ui.number("Cadence (step/min)", format="%g")
                self._elevation = ui.number("Elev Gain (m)", format="%g")
            with ui.row().classes("w-full justify-end gap-2"):
                ui.button("Cancel", on_click=on_cancel).props("outline")
                ui.button("OK", on_click=on_submit).props("color=primary")
        for field in (self._distance, self._duration, self._cadence, self._elevation):
            field.on("keydown.enter", on_submit)
        self._kind.on_value_change(lambda _: self._toggle_kind_fields())
        self._toggle_kind_fields()
        self._card.set_visibility(False)

    def open(self, values: FormValues) -> None:
        self._kind.value = values.kind
        self._distance.value = values.distance
        self._duration.value = values.duration
        self._cadence.value = values.cadence
        self._elevation.value = values.elevation
        self._toggle_kind_fields()
        self._card.set_visibility(True)
        self._distance.run_method("focus")

    def close(self) -> None:
        self._distance.value = None
        self._duration.value = None
        self._cadence.value = None
        self._elevation.value = None
        self._card.set_visibility(False)

    def values(self) -> FormValues:
        return FormValues(
            kind=str(self._kind.value or "running"),
            distance=self._distance.value,
            duration=self._duration.value,
            cadence=self._cadence.value,
            elevation=self._elevation.value,
        )

    def _toggle_kind_fields(self) -> None:
        running = self._kind.value == "running"
        self._cadence.set_visibility(running)
        self._elevation.set_visibility(not running)


class DialogPrompter:
    async def confirm(self, message: str) -> bool:
        with ui.dialog() as dialog, ui.card():
            ui.label(message)
            with ui.row().classes("w-full justify-end gap-2"):
                ui.button("Cancel", on_click=lambda: dialog.submit(False)).props("outline")
                ui.button("OK", on_click=lambda: dialog.submit(True)).props("color=negative")
        result = await dialog
        dialog.delete()
        return result is True

    def warn(self, message: str) -> None:
        ui.notify(message, color="negative")

    def notify(self, message: str) -> None:
        ui.notify(message, color="positive")


class BrowserGeolocator:
    async def get_current_position(self) -> Coordinates:
        # The outer timeout in locate() is the one that should fire.
        result = await ui.run_javascript(_GEOLOCATION_JS, timeout=GEOLOCATION_TIMEOUT_SEC + 1)
        if not isinstance(result, list) or len(result) != 2:
            raise GeolocationError("Position unavailable in browser")
        return (float(result[0]), float(result[1]))


def run_web_ui(
    *,
    storage_path: Path | None = None,
    home: Coordinates | None = None,
    host: str = "127.0.0.1",
    port: int = 8088,
) -> int:
    @ui.page("/")
    async def index() -> None:
        ui.add_head_html(_STYLE)
        context = AppContext(persistence=WorkoutPersistence(JsonFileKeyValueStore(storage_path)))
        prompter = DialogPrompter()
        controller: WorkoutController

        def on_submit() -> None:
            controller.submit(form.values())

        async def on_delete(workout_id: str) -> None:
            await controller.delete(workout_id)

        async def on_edit(workout_id: str) -> None:
            await controller.edit(workout_id)

        async def on_delete_all() -> None:
            await controller.delete_all()

        with ui.row().classes("w-full h-screen no-wrap gap-0"):
            with ui.column().classes("w-[40rem] h-full p-6 gap-3 mt-sidebar overflow-auto"):
                ui.label(f"{workout_icon('running')} MAPTY").classes(
                    "text-2xl font-bold tracking-wide"
                )
                with ui.row().classes("w-full gap-2"):
                    ui.button("Show all", on_click=lambda: controller.show_all()).props("outline")
                    ui.button(
                        "Sort: distance", on_click=lambda: controller.sort("distance_km")
                    ).props("outline")
                    ui.button(
                        "Sort: duration", on_click=lambda: controller.sort("duration_min")
                    ).props("outline")
                    ui.button("Delete all", on_click=on_delete_all).props("color=negative")
                form = SidebarFormView(on_submit=on_submit, on_cancel=lambda: controller.cancel())
                entries = ui.column().classes("w-full gap-2")
                ui.label("Click on the map to log a workout").classes("text-xs mt-muted")
            map_area = ui.column().classes("grow h-full")

        list_view = CardListView(
            entries,
            on_select=lambda workout_id: controller.select(workout_id),
            on_delete=on_delete,
            on_edit=on_edit,
        )
        controller = WorkoutController(context, list_view, form, prompter)

        async def create_map(center: Coordinates, zoom: int) -> LeafletMapView:
            with map_area:
                leaflet = ui.leaflet(center=center, zoom=zoom).classes("w-full h-full")
            await leaflet.initialized()
            return LeafletMapView(leaflet)

        await ui.context.client.connected()
        geolocator: Geolocator = StaticGeolocator(home) if home else BrowserGeolocator()
        if not await controller.start(geolocator, create_map):
            with map_area:
                ui.label("Map unavailable: location could not be determined").classes(
                    "m-auto text-lg mt-muted"
                )
        logger.info(f"Page ready with {len(controller.store)} workouts")

    ui.run(host=host, port=port, reload=False, title="Mapty", favicon="🗺️")
    return 0

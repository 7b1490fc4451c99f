"""Controller keeping the workout list, map markers and storage in step."""

from __future__ import annotations

import asyncio
from typing import Protocol

from loguru import logger

from mapty.core.state import AppContext, FormState
from mapty.map.geolocation import GEOLOCATION_TIMEOUT_SEC, GeolocationError, Geolocator, locate
from mapty.map.markers import (
    MAP_ZOOM_LEVEL,
    SHOW_ALL_PADDING_PX,
    MapFactory,
    MapView,
    MarkerRegistry,
)
from mapty.workout.form import FormValues, WorkoutValidationError, build_workout
from mapty.workout.model import Coordinates, Workout
from mapty.workout.store import WorkoutStore

POSITION_WARNING = "⚠️ Could not get your position. Please enable location services."
DELETE_CONFIRM = "❓ Are you sure you want to delete this workout?"
DELETE_DONE = "✅ Workout deleted successfully!"
DELETE_ALL_CONFIRM = "⚠️ Are you sure you want to delete ALL workouts? This cannot be undone!"
DELETE_ALL_DONE = "✅ All workouts have been deleted!"


class WorkoutListView(Protocol):
    def render_entry(self, workout: Workout) -> None: ...

    def remove_entry(self, workout_id: str) -> None: ...

    def clear_all_entries(self) -> None: ...


class FormView(Protocol):
    def open(self, values: FormValues) -> None: ...

    def close(self) -> None: ...


class Prompter(Protocol):
    async def confirm(self, message: str) -> bool: ...

    def warn(self, message: str) -> None: ...

    def notify(self, message: str) -> None: ...


class WorkoutController:
    def __init__(
        self,
        context: AppContext,
        list_view: WorkoutListView,
        form_view: FormView,
        prompter: Prompter,
    ) -> None:
        self._ctx = context
        self._list = list_view
        self._form = form_view
        self._prompt = prompter

    @property
    def store(self) -> WorkoutStore:
        return self._ctx.store

    @property
    def markers(self) -> MarkerRegistry | None:
        return self._ctx.markers

    @property
    def form_state(self) -> FormState:
        return self._ctx.form_state

    @property
    def pending_coordinates(self) -> Coordinates | None:
        return self._ctx.pending_coordinates

    def restore(self) -> list[Workout]:
        """Load stored workouts and render them in the list."""
        workouts = self._ctx.persistence.load()
        if self._ctx.markers is not None:
            self._ctx.markers.clear_all()
        self._ctx.store = WorkoutStore(workouts)
        self._list.clear_all_entries()
        for workout in self._ctx.store:
            self._list.render_entry(workout)
            if self._ctx.markers is not None:
                self._ctx.markers.place(workout)
        return workouts

    async def start(
        self,
        geolocator: Geolocator,
        map_factory: MapFactory,
        timeout: float = GEOLOCATION_TIMEOUT_SEC,
    ) -> bool:
        """Restore saved workouts, then bring up the map at the user's position.

        Returns False when no position could be obtained; the list and
        storage keep working without a map in that case.
        """
        self.restore()
        try:
            position = await locate(geolocator, timeout=timeout)
        except GeolocationError as exc:
            logger.warning(f"Geolocation failed: {exc}")
            self._prompt.warn(POSITION_WARNING)
            return False
        map_view = map_factory(position, MAP_ZOOM_LEVEL)
        if asyncio.iscoroutine(map_view):
            map_view = await map_view
        self.attach_map(map_view)
        return True

    def attach_map(self, map_view: MapView) -> MarkerRegistry:
        registry = MarkerRegistry(map_view)
        self._ctx.markers = registry
        map_view.on_click(self.map_click)
        for workout in self._ctx.store:
            registry.place(workout)
        logger.info(f"Map ready with {len(registry)} markers")
        return registry

    def map_click(self, coordinates: Coordinates) -> None:
        self._ctx.pending_coordinates = coordinates
        self._ctx.form_state = FormState.FORM_OPEN
        self._form.open(FormValues())

    def cancel(self) -> None:
        self._close_form()

    def submit(self, values: FormValues) -> Workout | None:
        coordinates = self._ctx.pending_coordinates
        if self._ctx.form_state is not FormState.FORM_OPEN or coordinates is None:
            logger.debug("Form submitted without a picked location, ignoring")
            return None
        try:
            workout = build_workout(values, coordinates)
        except WorkoutValidationError as exc:
            self._prompt.warn(f"⚠️ {exc}")
            return None

        self._ctx.store.add(workout)
        if self._ctx.markers is not None:
            self._ctx.markers.place(workout)
        self._list.render_entry(workout)
        self._save()
        self._close_form()
        logger.info(f"Added {workout.kind} workout {workout.id}")
        return workout

    async def delete(self, workout_id: str) -> bool:
        if not await self._prompt.confirm(DELETE_CONFIRM):
            return False
        removed = self._ctx.store.remove(workout_id)
        if self._ctx.markers is not None:
            self._ctx.markers.remove_for(workout_id)
        self._list.remove_entry(workout_id)
        self._save()
        if removed is not None:
            logger.info(f"Deleted workout {workout_id}")
        self._prompt.notify(DELETE_DONE)
        return True

    async def edit(self, workout_id: str) -> bool:
        """Reopen a workout in the form and delete the original.

        The workout is recreated on the next submit with a new id and
        creation time.
        """
        workout = self._ctx.store.find(workout_id)
        if workout is None:
            return False
        self._form.open(FormValues.from_workout(workout))
        self._ctx.pending_coordinates = workout.coordinates
        self._ctx.form_state = FormState.FORM_OPEN
        return await self.delete(workout_id)

    def sort(self, field: str) -> None:
        self._ctx.store.sort_by(field)
        self._list.clear_all_entries()
        for workout in self._ctx.store:
            self._list.render_entry(workout)
        self._save()

    async def delete_all(self) -> bool:
        if not await self._prompt.confirm(DELETE_ALL_CONFIRM):
            return False
        if self._ctx.markers is not None:
            self._ctx.markers.clear_all()
        removed = self._ctx.store.clear()
        self._list.clear_all_entries()
        self._save()
        logger.info(f"Deleted all {len(removed)} workouts")
        self._prompt.notify(DELETE_ALL_DONE)
        return True

    def select(self, workout_id: str) -> Workout | None:
        workout = self._ctx.store.find(workout_id)
        if workout is None or self._ctx.markers is None:
            return workout
        self._ctx.markers.map_view.pan_to(workout.coordinates, MAP_ZOOM_LEVEL)
        return workout

    def show_all(self) -> None:
        if len(self._ctx.store) == 0 or self._ctx.markers is None:
            return
        coordinates = [workout.coordinates for workout in self._ctx.store]
        self._ctx.markers.map_view.fit_bounds(coordinates, SHOW_ALL_PADDING_PX)

    def reset(self) -> None:
        self._ctx.persistence.reset()
        if self._ctx.markers is not None:
            self._ctx.markers.clear_all()
        self._ctx.store = WorkoutStore()
        self._list.clear_all_entries()
        self._close_form()

    def _close_form(self) -> None:
        self._ctx.pending_coordinates = None
        self._ctx.form_state = FormState.IDLE
        self._form.close()

    def _save(self) -> None:
        self._ctx.persistence.save(self._ctx.store)

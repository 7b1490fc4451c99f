from __future__ import annotations

import asyncio
import json
from datetime import datetime
from typing import Sequence

import pytest

from mapty.core.state import AppContext, FormState
from mapty.map.geolocation import GeolocationError, StaticGeolocator
from mapty.map.markers import MapClickCallback, PopupConfig
from mapty.ui.controller import POSITION_WARNING, WorkoutController
from mapty.workout.form import FormValues
from mapty.workout.model import MONTHS, Coordinates, Cycling, Running, Workout
from mapty.workout.persistence import MemoryKeyValueStore, WorkoutPersistence


class FakeMap:
    def __init__(self, center: Coordinates, zoom: int) -> None:
        self.center = center
        self.zoom = zoom
        self.markers: dict[int, Coordinates] = {}
        self.bounds: list[Coordinates] = []
        self.click_callback: MapClickCallback | None = None
        self._next = 0

    def add_marker_with_popup(self, coordinates: Coordinates, popup: PopupConfig) -> int:
        self._next += 1
        self.markers[self._next] = coordinates
        return self._next

    def remove_marker(self, handle: int) -> None:
        del self.markers[handle]

    def pan_to(self, coordinates: Coordinates, zoom: int) -> None:
        self.center = coordinates
        self.zoom = zoom

    def fit_bounds(self, coordinates: Sequence[Coordinates], padding: int) -> None:
        self.bounds = list(coordinates)

    def on_click(self, callback: MapClickCallback) -> None:
        self.click_callback = callback


class FakeList:
    def __init__(self) -> None:
        self.entries: list[str] = []

    def render_entry(self, workout: Workout) -> None:
        self.entries.append(workout.id)

    def remove_entry(self, workout_id: str) -> None:
        if workout_id in self.entries:
            self.entries.remove(workout_id)

    def clear_all_entries(self) -> None:
        self.entries.clear()


class FakeForm:
    def __init__(self) -> None:
        self.visible = False
        self.values: FormValues | None = None

    def open(self, values: FormValues) -> None:
        self.visible = True
        self.values = values

    def close(self) -> None:
        self.visible = False
        self.values = None


class FakePrompter:
    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.confirms: list[str] = []
        self.warnings: list[str] = []
        self.notices: list[str] = []

    async def confirm(self, message: str) -> bool:
        self.confirms.append(message)
        return self.answer

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def notify(self, message: str) -> None:
        self.notices.append(message)


class Harness:
    def __init__(self, storage: MemoryKeyValueStore | None = None, answer: bool = True) -> None:
        self.storage = storage or MemoryKeyValueStore()
        self.context = AppContext(persistence=WorkoutPersistence(self.storage))
        self.list = FakeList()
        self.form = FakeForm()
        self.prompter = FakePrompter(answer)
        self.controller = WorkoutController(self.context, self.list, self.form, self.prompter)
        self.map: FakeMap | None = None

    def make_map(self, center: Coordinates, zoom: int) -> FakeMap:
        self.map = FakeMap(center, zoom)
        return self.map

    def start(self, position: Coordinates | None = (38.7, -9.1)) -> bool:
        return asyncio.run(self.controller.start(StaticGeolocator(position), self.make_map))

    def stored_ids(self) -> list[str]:
        raw = self.storage.get("workouts")
        return [] if raw is None else [r["id"] for r in json.loads(raw)]

    def add(self, coordinates: Coordinates, values: FormValues) -> Workout:
        self.controller.map_click(coordinates)
        workout = self.controller.submit(values)
        assert workout is not None
        return workout

    def assert_views_consistent(self) -> None:
        store_ids = self.controller.store.ids()
        if self.controller.markers is not None:
            assert self.controller.markers.ids() == store_ids
        assert set(self.list.entries) == store_ids
        assert set(self.stored_ids()) == store_ids


RUN = FormValues(kind="running", distance="5", duration="25", cadence="180")
RIDE = FormValues(kind="cycling", distance="20", duration="60", elevation="150")


def test_submit_running_workout_updates_every_view() -> None:
    h = Harness()
    assert h.start() is True
    assert h.map is not None and h.map.zoom == 13 and h.map.click_callback is not None

    h.map.click_callback((10.0, 10.0))
    assert h.controller.form_state is FormState.FORM_OPEN
    assert h.form.visible
    workout = h.controller.submit(RUN)

    assert isinstance(workout, Running)
    assert workout.pace_min_per_km == 5.0
    created = workout.created_at
    assert abs((datetime.now().astimezone() - created).total_seconds()) < 60
    assert workout.description == f"Running on {MONTHS[created.month - 1]} {created.day}"
    assert h.controller.form_state is FormState.IDLE
    assert h.controller.pending_coordinates is None
    assert not h.form.visible
    assert list(h.map.markers.values()) == [(10.0, 10.0)]
    h.assert_views_consistent()


def test_submit_cycling_workout() -> None:
    h = Harness()
    h.start()

    workout = h.add((0.0, 0.0), RIDE)

    assert isinstance(workout, Cycling)
    assert workout.speed_km_per_h == 20.0
    h.assert_views_consistent()


@pytest.mark.parametrize(
    "values",
    [
        FormValues(kind="running", distance="0", duration="25", cadence="180"),
        FormValues(kind="running", distance="5", duration="-5", cadence="180"),
        FormValues(kind="running", distance="5", duration="25", cadence="abc"),
    ],
)
def test_invalid_submit_warns_and_keeps_form_open(values: FormValues) -> None:
    h = Harness()
    h.start()
    h.controller.map_click((1.0, 1.0))

    assert h.controller.submit(values) is None

    assert len(h.controller.store) == 0
    assert h.prompter.warnings
    assert h.controller.form_state is FormState.FORM_OPEN
    assert h.controller.pending_coordinates == (1.0, 1.0)
    assert h.form.visible
    assert h.storage.get("workouts") is None


def test_submit_without_picked_location_is_ignored() -> None:
    h = Harness()
    h.start()
    assert h.controller.submit(RUN) is None
    assert len(h.controller.store) == 0


def test_cancel_returns_to_idle() -> None:
    h = Harness()
    h.start()
    h.controller.map_click((1.0, 1.0))
    h.controller.cancel()
    assert h.controller.form_state is FormState.IDLE
    assert h.controller.pending_coordinates is None
    assert not h.form.visible


def test_delete_requires_confirmation() -> None:
    h = Harness(answer=False)
    h.start()
    workout = h.add((1.0, 1.0), RUN)

    assert asyncio.run(h.controller.delete(workout.id)) is False
    assert h.controller.store.find(workout.id) is workout

    h.prompter.answer = True
    assert asyncio.run(h.controller.delete(workout.id)) is True
    assert len(h.controller.store) == 0
    assert h.map is not None and h.map.markers == {}
    assert h.prompter.notices
    h.assert_views_consistent()


def test_delete_missing_id_leaves_store_unchanged() -> None:
    h = Harness()
    h.start()
    workouts = [h.add((1.0, 1.0), RUN), h.add((2.0, 2.0), RIDE)]

    asyncio.run(h.controller.delete("missing"))

    assert [w.id for w in h.controller.store] == [w.id for w in workouts]
    h.assert_views_consistent()


def test_registry_matches_store_after_mixed_operations() -> None:
    h = Harness()
    h.start()
    created = [h.add((float(i), float(i)), RUN if i % 2 else RIDE) for i in range(6)]
    for workout in created[::2]:
        asyncio.run(h.controller.delete(workout.id))
        h.assert_views_consistent()
    h.add((9.0, 9.0), RIDE)
    h.assert_views_consistent()
    assert len(h.controller.store) == 4


def test_edit_reopens_form_and_recreates_with_new_identity() -> None:
    h = Harness()
    h.start()
    original = h.add((5.0, 6.0), RUN)

    assert asyncio.run(h.controller.edit(original.id)) is True

    assert h.controller.form_state is FormState.FORM_OPEN
    assert h.controller.pending_coordinates == (5.0, 6.0)
    assert h.form.values == FormValues(kind="running", distance=5.0, duration=25.0, cadence=180)
    assert len(h.controller.store) == 0
    h.assert_views_consistent()

    replacement = h.controller.submit(
        FormValues(kind="running", distance=10, duration=45, cadence=175)
    )
    assert replacement is not None
    assert replacement.id != original.id
    assert replacement.coordinates == (5.0, 6.0)
    assert replacement.interaction_count == 0
    h.assert_views_consistent()


def test_edit_missing_id_is_noop() -> None:
    h = Harness()
    h.start()
    assert asyncio.run(h.controller.edit("missing")) is False
    assert h.controller.form_state is FormState.IDLE
    assert h.prompter.confirms == []


def test_sort_rerenders_list_and_saves_without_touching_markers() -> None:
    h = Harness()
    h.start()
    short = h.add((1.0, 1.0), FormValues(kind="running", distance=3, duration=20, cadence=170))
    long = h.add((2.0, 2.0), FormValues(kind="cycling", distance=40, duration=90, elevation=300))
    mid = h.add((3.0, 3.0), FormValues(kind="running", distance=10, duration=55, cadence=175))
    assert h.map is not None
    markers_before = dict(h.map.markers)

    h.controller.sort("distance_km")

    expected = [long.id, mid.id, short.id]
    assert [w.id for w in h.controller.store] == expected
    assert h.list.entries == expected
    assert h.stored_ids() == expected
    assert h.map.markers == markers_before

    h.controller.sort("duration_min")
    assert [w.id for w in h.controller.store] == [long.id, mid.id, short.id]


def test_reload_then_delete_all_empties_storage_and_markers() -> None:
    storage = MemoryKeyValueStore()
    first = Harness(storage)
    first.start()
    first.add((1.0, 1.0), RUN)
    first.add((2.0, 2.0), RIDE)

    second = Harness(storage)
    second.start()
    assert len(second.controller.store) == 2
    assert second.controller.markers is not None and len(second.controller.markers) == 2
    assert len(second.list.entries) == 2

    assert asyncio.run(second.controller.delete_all()) is True

    assert json.loads(storage.get("workouts") or "") == []
    assert len(second.controller.markers) == 0
    assert second.map is not None and second.map.markers == {}
    assert second.list.entries == []


def test_delete_all_declined_is_noop() -> None:
    h = Harness(answer=False)
    h.start()
    h.prompter.answer = True
    h.add((1.0, 1.0), RUN)
    h.prompter.answer = False

    assert asyncio.run(h.controller.delete_all()) is False
    assert len(h.controller.store) == 1


def test_select_pans_map_without_mutation() -> None:
    h = Harness()
    h.start()
    workout = h.add((45.0, 7.0), RUN)
    saved = h.storage.get("workouts")

    assert h.controller.select(workout.id) is workout
    assert h.map is not None and h.map.center == (45.0, 7.0) and h.map.zoom == 13
    assert workout.interaction_count == 0
    assert h.storage.get("workouts") == saved
    assert h.controller.select("missing") is None


def test_show_all_fits_every_workout() -> None:
    h = Harness()
    h.start()
    h.controller.show_all()
    assert h.map is not None and h.map.bounds == []

    h.add((1.0, 1.0), RUN)
    h.add((2.0, 3.0), RIDE)
    h.controller.show_all()
    assert h.map.bounds == [(1.0, 1.0), (2.0, 3.0)]


def test_geolocation_failure_keeps_list_and_storage_working() -> None:
    storage = MemoryKeyValueStore()
    seeded = Harness(storage)
    seeded.start()
    seeded.add((1.0, 1.0), RUN)

    h = Harness(storage)
    assert h.start(position=None) is False

    assert h.prompter.warnings == [POSITION_WARNING]
    assert h.map is None
    assert h.controller.markers is None
    assert len(h.list.entries) == 1
    h.controller.map_click((3.0, 3.0))
    h.controller.submit(RIDE)
    assert len(h.stored_ids()) == 2
    h.controller.show_all()


def test_geolocation_timeout_counts_as_failure() -> None:
    class SlowGeolocator:
        async def get_current_position(self) -> Coordinates:
            await asyncio.sleep(5)
            raise GeolocationError("unreachable")

    h = Harness()
    started = asyncio.run(h.controller.start(SlowGeolocator(), h.make_map, timeout=0.05))

    assert started is False
    assert h.prompter.warnings == [POSITION_WARNING]


def test_reset_clears_storage_and_state() -> None:
    h = Harness()
    h.start()
    h.add((1.0, 1.0), RUN)
    h.controller.map_click((2.0, 2.0))

    h.controller.reset()

    assert h.storage.get("workouts") is None
    assert len(h.controller.store) == 0
    assert h.controller.markers is not None and len(h.controller.markers) == 0
    assert h.list.entries == []
    assert h.controller.form_state is FormState.IDLE


def test_async_map_factory_is_awaited() -> None:
    h = Harness()

    async def make_map_later(center: Coordinates, zoom: int) -> FakeMap:
        await asyncio.sleep(0)
        return h.make_map(center, zoom)

    assert asyncio.run(h.controller.start(StaticGeolocator((1.0, 2.0)), make_map_later)) is True
    assert h.map is not None and h.map.center == (1.0, 2.0)
    assert h.controller.markers is not None


def test_geolocator_error_counts_as_failure() -> None:
    class DisconnectedGeolocator:
        async def get_current_position(self) -> Coordinates:
            raise RuntimeError("client disconnected")

    h = Harness()
    started = asyncio.run(h.controller.start(DisconnectedGeolocator(), h.make_map))

    assert started is False
    assert h.prompter.warnings == [POSITION_WARNING]


def test_stored_duplicate_ids_keep_views_consistent() -> None:
    storage = MemoryKeyValueStore()
    seeded = Harness(storage)
    seeded.start()
    first = seeded.add((1.0, 1.0), RUN)
    seeded.add((2.0, 2.0), RIDE)
    records = json.loads(storage.get("workouts") or "")
    records[1]["id"] = first.id
    storage.set("workouts", json.dumps(records))

    h = Harness(storage)
    h.start()
    assert len(h.controller.store) == 1
    h.assert_views_consistent()

    asyncio.run(h.controller.delete(first.id))
    assert len(h.controller.store) == 0
    h.assert_views_consistent()

"""Ordered in-memory collection of workouts."""

from __future__ import annotations

from operator import attrgetter
from typing import Iterator

from mapty.workout.model import Workout


class WorkoutStore:
    """Workouts in insertion order, or in the order of the last sort."""

    def __init__(self, workouts: list[Workout] | None = None) -> None:
        self._items: list[Workout] = []
        for workout in workouts or []:
            self.add(workout)

    def add(self, workout: Workout) -> None:
        self._items.append(workout)

    def remove(self, workout_id: str) -> Workout | None:
        for index, workout in enumerate(self._items):
            if workout.id == workout_id:
                return self._items.pop(index)
        return None

    def find(self, workout_id: str) -> Workout | None:
        for workout in self._items:
            if workout.id == workout_id:
                return workout
        return None

    def sort_by(self, field: str, *, descending: bool = True) -> None:
        missing = [w.id for w in self._items if not hasattr(w, field)]
        if missing:
            raise AttributeError(
                f"Cannot sort by '{field}': missing on workouts {', '.join(missing)}"
            )
        # list.sort is stable, also with reverse=True.
        self._items.sort(key=attrgetter(field), reverse=descending)

    def all(self) -> tuple[Workout, ...]:
        return tuple(self._items)

    def clear(self) -> list[Workout]:
        removed = self._items
        self._items = []
        return removed

    def ids(self) -> set[str]:
        return {workout.id for workout in self._items}

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Workout]:
        return iter(tuple(self._items))

    def __contains__(self, workout_id: object) -> bool:
        return any(workout.id == workout_id for workout in self._items)

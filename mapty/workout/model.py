"""Workout domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Literal
from uuid import uuid4

WorkoutKind = Literal["running", "cycling"]
Coordinates = tuple[float, float]

WORKOUT_KINDS: tuple[WorkoutKind, ...] = ("running", "cycling")
SORTABLE_FIELDS: tuple[str, ...] = ("distance_km", "duration_min")

# English month names regardless of the process locale.
MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def new_workout_id() -> str:
    return uuid4().hex


def now_local() -> datetime:
    return datetime.now().astimezone()


@dataclass(eq=False)
class Workout:
    coordinates: Coordinates
    distance_km: float
    duration_min: float
    id: str = field(default_factory=new_workout_id, kw_only=True)
    created_at: datetime = field(default_factory=now_local, kw_only=True)
    interaction_count: int = field(default=0, kw_only=True)
    description: str = field(default="", init=False)

    kind: ClassVar[WorkoutKind]

    def __post_init__(self) -> None:
        self.coordinates = (float(self.coordinates[0]), float(self.coordinates[1]))
        self.recompute_derived()

    def describe(self) -> str:
        month = MONTHS[self.created_at.month - 1]
        return f"{self.kind.capitalize()} on {month} {self.created_at.day}"

    def recompute_derived(self) -> None:
        self.description = self.describe()

    def click(self) -> None:
        self.interaction_count += 1


@dataclass(eq=False)
class Running(Workout):
    cadence_spm: int
    pace_min_per_km: float = field(default=0.0, init=False)

    kind: ClassVar[WorkoutKind] = "running"

    def recompute_derived(self) -> None:
        # min/km
        self.pace_min_per_km = self.duration_min / self.distance_km
        super().recompute_derived()


@dataclass(eq=False)
class Cycling(Workout):
    elevation_gain_m: float
    speed_km_per_h: float = field(default=0.0, init=False)

    kind: ClassVar[WorkoutKind] = "cycling"

    def recompute_derived(self) -> None:
        # km/h
        self.speed_km_per_h = self.distance_km / (self.duration_min / 60)
        super().recompute_derived()


WORKOUT_TYPES: dict[str, type[Workout]] = {
    Running.kind: Running,
    Cycling.kind: Cycling,
}

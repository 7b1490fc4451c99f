"""Shared runtime state owned by one app instance."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from mapty.map.markers import MarkerRegistry
from mapty.workout.model import Coordinates
from mapty.workout.persistence import WorkoutPersistence
from mapty.workout.store import WorkoutStore


class FormState(Enum):
    IDLE = "idle"
    FORM_OPEN = "form_open"


@dataclass
class AppContext:
    persistence: WorkoutPersistence
    store: WorkoutStore = field(default_factory=WorkoutStore)
    markers: MarkerRegistry | None = None
    form_state: FormState = FormState.IDLE
    pending_coordinates: Coordinates | None = None

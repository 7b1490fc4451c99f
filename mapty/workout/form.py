"""Validation of raw workout form input."""

from __future__ import annotations

import math
from dataclasses import dataclass

from mapty.workout.model import WORKOUT_KINDS, Coordinates, Cycling, Running, Workout

FormNumber = str | int | float | None


class WorkoutValidationError(ValueError):
    """Raised when form input cannot make a workout."""


@dataclass(frozen=True)
class FormValues:
    kind: str = "running"
    distance: FormNumber = None
    duration: FormNumber = None
    cadence: FormNumber = None
    elevation: FormNumber = None

    @classmethod
    def from_workout(cls, workout: Workout) -> FormValues:
        if isinstance(workout, Running):
            return cls(
                kind=workout.kind,
                distance=workout.distance_km,
                duration=workout.duration_min,
                cadence=workout.cadence_spm,
            )
        if isinstance(workout, Cycling):
            return cls(
                kind=workout.kind,
                distance=workout.distance_km,
                duration=workout.duration_min,
                elevation=workout.elevation_gain_m,
            )
        raise TypeError(f"Unsupported workout type {type(workout).__name__}")


def build_workout(values: FormValues, coordinates: Coordinates) -> Workout:
    if values.kind not in WORKOUT_KINDS:
        raise WorkoutValidationError(f"Unknown workout type '{values.kind}'")

    distance = _parse_number(values.distance, "distance")
    duration = _parse_number(values.duration, "duration")

    if values.kind == "running":
        cadence = _parse_number(values.cadence, "cadence")
        if distance <= 0 or duration <= 0 or cadence <= 0:
            raise WorkoutValidationError(
                "Inputs have to be positive numbers! Please check your values."
            )
        if not cadence.is_integer():
            raise WorkoutValidationError("Cadence has to be a whole number of steps per minute!")
        return Running(coordinates, distance, duration, int(cadence))

    elevation = _parse_number(values.elevation, "elevation")
    if distance <= 0 or duration <= 0:
        raise WorkoutValidationError("Distance and duration have to be positive numbers!")
    return Cycling(coordinates, distance, duration, elevation)


def _parse_number(raw: FormNumber, field_name: str) -> float:
    # An empty input reads as 0, like a browser number coercion.
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        return 0.0
    if isinstance(raw, bool):
        raise WorkoutValidationError(f"Invalid {field_name}: must be a number")
    try:
        value = float(str(raw).strip()) if isinstance(raw, str) else float(raw)
    except ValueError as exc:
        raise WorkoutValidationError(f"Invalid {field_name}: must be a number") from exc
    if not math.isfinite(value):
        raise WorkoutValidationError(f"Invalid {field_name}: must be a finite number")
    return value

"""Display helpers for workout list entries."""

from __future__ import annotations

from dataclasses import dataclass

from mapty.map.markers import workout_icon
from mapty.workout.model import Cycling, Running, Workout


@dataclass(frozen=True)
class EntryDetail:
    icon: str
    value: str
    unit: str


def _fmt_number(value: float, digits: int = 1) -> str:
    return f"{value:.{digits}f}"


def _fmt_plain(value: float) -> str:
    # 5.0 -> "5", 5.25 -> "5.25"
    return f"{value:g}"


def entry_details(workout: Workout) -> list[EntryDetail]:
    details = [
        EntryDetail(workout_icon(workout.kind), _fmt_plain(workout.distance_km), "km"),
        EntryDetail("⏱", _fmt_plain(workout.duration_min), "min"),
    ]
    if isinstance(workout, Running):
        details.append(EntryDetail("⚡️", _fmt_number(workout.pace_min_per_km), "min/km"))
        details.append(EntryDetail("🦶🏼", str(workout.cadence_spm), "spm"))
    elif isinstance(workout, Cycling):
        details.append(EntryDetail("⚡️", _fmt_number(workout.speed_km_per_h), "km/h"))
        details.append(EntryDetail("⛰", _fmt_plain(workout.elevation_gain_m), "m"))
    return details


def entry_summary(workout: Workout) -> str:
    parts = [f"{d.value} {d.unit}" for d in entry_details(workout)]
    return f"{workout.description}: " + " | ".join(parts)

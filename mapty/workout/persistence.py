"""Durable storage for the workout list.

Workouts are kept as one JSON array under a single key of a string
key-value store, the same way the browser version keeps them in
``localStorage``. Records are decoded back into typed workouts by their
``kind`` discriminator.
"""

from __future__ import annotations

import json
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Protocol

from loguru import logger

from mapty.workout.model import WORKOUT_TYPES, Cycling, Running, Workout

DEFAULT_STORAGE_KEY = "workouts"

# Field names written by the original browser app.
_LEGACY_KEYS: dict[str, str] = {
    "kind": "type",
    "coordinates": "coords",
    "distanceKm": "distance",
    "durationMin": "duration",
    "cadenceSpm": "cadence",
    "elevationGainM": "elevationGain",
    "createdAt": "date",
    "interactionCount": "clicks",
}


def _default_storage_path() -> Path:
    return Path.home() / ".mapty" / "storage.json"


class WorkoutRecordError(ValueError):
    """Raised when a stored workout record cannot be decoded."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """String values kept in one JSON object file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or _default_storage_path()

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as exc:
            # JSONDecodeError and UnicodeDecodeError both land here.
            logger.warning(f"Storage file {self.path} is not readable JSON, ignoring it: {exc}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Storage file {self.path} does not hold an object, ignoring it")
            return {}
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=True, indent=2), encoding="utf-8")


def workout_to_record(workout: Workout) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": workout.id,
        "kind": workout.kind,
        "coordinates": [workout.coordinates[0], workout.coordinates[1]],
        "distanceKm": workout.distance_km,
        "durationMin": workout.duration_min,
        "createdAt": workout.created_at.isoformat(),
        "interactionCount": workout.interaction_count,
        "description": workout.description,
    }
    if isinstance(workout, Running):
        record["cadenceSpm"] = workout.cadence_spm
        record["paceMinPerKm"] = workout.pace_min_per_km
    elif isinstance(workout, Cycling):
        record["elevationGainM"] = workout.elevation_gain_m
        record["speedKmPerH"] = workout.speed_km_per_h
    return record


def workout_from_record(raw: object) -> Workout | None:
    """Rebuild a typed workout, or return None for an unknown ``kind``.

    Raises WorkoutRecordError when a record of a known kind is malformed.
    """
    if not isinstance(raw, dict):
        raise WorkoutRecordError("Workout record must be an object")

    kind = _field(raw, "kind")
    workout_type = WORKOUT_TYPES.get(kind) if isinstance(kind, str) else None
    if workout_type is None:
        return None

    identity = {
        "id": _parse_id(_field(raw, "id")),
        "created_at": _parse_timestamp(_field(raw, "createdAt")),
        "interaction_count": _parse_count(_field(raw, "interactionCount")),
    }
    coordinates = _parse_coordinates(_field(raw, "coordinates"))
    distance_km = _parse_positive(_field(raw, "distanceKm"), "distanceKm")
    duration_min = _parse_positive(_field(raw, "durationMin"), "durationMin")

    if workout_type is Running:
        cadence = round(_parse_positive(_field(raw, "cadenceSpm"), "cadenceSpm"))
        if cadence < 1:
            raise WorkoutRecordError("cadenceSpm must be at least 1")
        return Running(coordinates, distance_km, duration_min, cadence, **identity)
    elevation = _parse_number(_field(raw, "elevationGainM"), "elevationGainM")
    return Cycling(coordinates, distance_km, duration_min, elevation, **identity)


class WorkoutPersistence:
    def __init__(self, storage: KeyValueStore, key: str = DEFAULT_STORAGE_KEY) -> None:
        self._storage = storage
        self._key = key

    def save(self, workouts: Iterable[Workout]) -> None:
        records = [workout_to_record(workout) for workout in workouts]
        self._storage.set(self._key, json.dumps(records, ensure_ascii=True))
        logger.debug(f"Saved {len(records)} workouts under '{self._key}'")

    def load(self) -> list[Workout]:
        raw = self._storage.get(self._key)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning(f"Stored workouts are corrupt, starting empty: {exc}")
            return []
        if not isinstance(data, list):
            logger.warning("Stored workouts are not a list, starting empty")
            return []

        out: list[Workout] = []
        seen: set[str] = set()
        for index, item in enumerate(data):
            try:
                workout = workout_from_record(item)
            except WorkoutRecordError as exc:
                logger.warning(f"Skipping stored workout #{index + 1}: {exc}")
                continue
            if workout is None:
                logger.warning(f"Skipping stored workout #{index + 1}: unknown kind")
                continue
            if workout.id in seen:
                logger.warning(f"Skipping stored workout #{index + 1}: duplicate id {workout.id}")
                continue
            seen.add(workout.id)
            out.append(workout)
        logger.info(f"Loaded {len(out)} of {len(data)} stored workouts")
        return out

    def reset(self) -> None:
        self._storage.remove(self._key)
        logger.info(f"Cleared stored workouts under '{self._key}'")


def _field(raw: dict[str, Any], name: str) -> object:
    if name in raw:
        return raw[name]
    return raw.get(_LEGACY_KEYS.get(name, name))


def _parse_id(raw: object) -> str:
    if isinstance(raw, (str, int)) and not isinstance(raw, bool) and str(raw).strip():
        return str(raw).strip()
    raise WorkoutRecordError("invalid id")


def _parse_timestamp(raw: object) -> datetime:
    if not isinstance(raw, str):
        raise WorkoutRecordError("invalid createdAt")
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise WorkoutRecordError(f"invalid createdAt '{raw}'") from exc
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def _parse_count(raw: object) -> int:
    if raw is None:
        return 0
    if isinstance(raw, bool) or not isinstance(raw, (int, float)) or raw < 0:
        raise WorkoutRecordError("invalid interactionCount")
    return int(raw)


def _parse_number(raw: object, field_name: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise WorkoutRecordError(f"invalid {field_name}")
    value = float(raw)
    if not math.isfinite(value):
        raise WorkoutRecordError(f"invalid {field_name}")
    return value


def _parse_positive(raw: object, field_name: str) -> float:
    value = _parse_number(raw, field_name)
    if value <= 0:
        raise WorkoutRecordError(f"{field_name} must be > 0")
    return value


def _parse_coordinates(raw: object) -> tuple[float, float]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise WorkoutRecordError("coordinates must be [lat, lng]")
    return (
        _parse_number(raw[0], "latitude"),
        _parse_number(raw[1], "longitude"),
    )

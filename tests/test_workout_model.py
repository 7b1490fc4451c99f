from __future__ import annotations

from datetime import datetime, timezone

from mapty.workout.model import MONTHS, Cycling, Running


def test_running_pace_and_description() -> None:
    workout = Running((10, 10), 5, 25, 180)

    assert workout.kind == "running"
    assert workout.pace_min_per_km == 5.0
    month = MONTHS[workout.created_at.month - 1]
    assert workout.description == f"Running on {month} {workout.created_at.day}"
    assert workout.coordinates == (10.0, 10.0)
    assert workout.interaction_count == 0


def test_cycling_speed() -> None:
    workout = Cycling((0, 0), 20, 60, 150)

    assert workout.kind == "cycling"
    assert workout.speed_km_per_h == 20.0
    assert workout.description.startswith("Cycling on ")


def test_derived_metrics_follow_formula() -> None:
    for distance, duration in [(1.0, 1.0), (3.3, 17.2), (42.195, 180.0), (0.4, 90.0)]:
        run = Running((1.0, 2.0), distance, duration, 170)
        ride = Cycling((1.0, 2.0), distance, duration, -12.5)
        assert run.pace_min_per_km == duration / distance
        assert ride.speed_km_per_h == distance / (duration / 60)


def test_ids_are_unique() -> None:
    ids = {Running((0, 0), 1, 1, 1).id for _ in range(200)}
    assert len(ids) == 200


def test_restored_identity_and_recompute() -> None:
    created = datetime(2024, 4, 14, 9, 30, tzinfo=timezone.utc)
    workout = Running((0, 0), 4, 24, 170, id="abc", created_at=created, interaction_count=3)

    assert workout.id == "abc"
    assert workout.description == "Running on April 14"
    assert workout.interaction_count == 3

    workout.distance_km = 6
    workout.recompute_derived()
    workout.recompute_derived()
    assert workout.pace_min_per_km == 4.0
    assert workout.description == "Running on April 14"


def test_click_increments_interaction_count() -> None:
    workout = Cycling((0, 0), 10, 30, 0)
    workout.click()
    workout.click()
    assert workout.interaction_count == 2

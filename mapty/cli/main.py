"""Command line entrypoint for Mapty."""

from __future__ import annotations

import argparse
from pathlib import Path

from mapty.core.logger import setup_logger
from mapty.map.geolocation import parse_coordinates
from mapty.ui.formatting import entry_summary
from mapty.workout.model import SORTABLE_FIELDS
from mapty.workout.persistence import JsonFileKeyValueStore, WorkoutPersistence
from mapty.workout.store import WorkoutStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mapty workout map")
    parser.add_argument(
        "--ui-web",
        action="store_true",
        help="Launch the web UI (NiceGUI) with the workout map",
    )
    parser.add_argument(
        "--web-host",
        default="127.0.0.1",
        help="Host bind for --ui-web",
    )
    parser.add_argument(
        "--web-port",
        type=int,
        default=8088,
        help="Port for --ui-web",
    )
    parser.add_argument(
        "--home",
        type=parse_coordinates,
        default=None,
        metavar="LAT,LNG",
        help="Fixed map position for --ui-web instead of browser geolocation",
    )
    parser.add_argument(
        "--storage",
        type=Path,
        default=None,
        help="Storage file (default: ~/.mapty/storage.json)",
    )
    parser.add_argument("--list", action="store_true", help="Print stored workouts")
    parser.add_argument(
        "--sort",
        choices=SORTABLE_FIELDS,
        default=None,
        help="Sort stored workouts by this field, descending, and save the order",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete all stored workouts",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log verbosity",
    )
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    return parser


def run_list(persistence: WorkoutPersistence, sort_field: str | None = None) -> int:
    store = WorkoutStore(persistence.load())
    if sort_field is not None:
        store.sort_by(sort_field)
        persistence.save(store)

    if len(store) == 0:
        print("No workouts stored")
        return 0

    for workout in store:
        lat, lng = workout.coordinates
        print(f"{workout.id[:10]}  {entry_summary(workout)}  @ {lat:.5f},{lng:.5f}")
    return 0


def run_reset(persistence: WorkoutPersistence) -> int:
    persistence.reset()
    print("All stored workouts deleted")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logger(level=args.log_level, log_file=args.log_file)

    if args.ui_web:
        from mapty.ui.web_app import run_web_ui

        return run_web_ui(
            storage_path=args.storage,
            home=args.home,
            host=args.web_host,
            port=args.web_port,
        )

    persistence = WorkoutPersistence(JsonFileKeyValueStore(args.storage))
    if args.reset:
        return run_reset(persistence)
    if args.list or args.sort is not None:
        return run_list(persistence, args.sort)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())

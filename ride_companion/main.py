"""Command-line replay of a recorded or simulated ride through the pipeline."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .config import ROUTE_STORE_DIR, TrackerSettings
from .errors import RideCompanionError
from .events import MotionUpdated
from .export import write_ride_workbook
from .models import RawFix, Waypoint
from .route import RouteState, estimated_route_hours, route_distance_m
from .session import TrackingService
from .sources import ReplayFixSource, load_fixes_csv, load_waypoints_csv, simulate_ride
from .storage import JsonRouteStore
from .utils import format_distance, format_duration

_LOGGER = logging.getLogger(__name__)


class _ReplayClock:
    """Clock that follows the replayed fixes instead of wall time."""

    def __init__(self, start: int = 0) -> None:
        self.latest = start

    def __call__(self) -> int:
        return self.latest

    def on_motion(self, event: MotionUpdated) -> None:
        self.latest = event.sample.timestamp


def _setup_logging(verbose: bool) -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Replay GPS fixes through the ride companion pipeline, tracking"
            " progress along a planned route and optionally saving the ride."
        )
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--fixes",
        type=Path,
        help="CSV of fixes (latitude, longitude, accuracy, timestamp[, speed, heading])",
    )
    source.add_argument(
        "--simulate-kmh",
        type=float,
        help="Simulate riding the planned route at this speed instead of replaying",
    )
    route = parser.add_mutually_exclusive_group()
    route.add_argument("--route-csv", type=Path, help="CSV of planned waypoints")
    route.add_argument("--route-id", help="Identifier of a saved route to follow")
    parser.add_argument(
        "--store-dir",
        type=Path,
        default=Path(ROUTE_STORE_DIR),
        help=f"Directory holding saved routes (default: {ROUTE_STORE_DIR})",
    )
    parser.add_argument("--moving-threshold", type=float, help="Moving threshold (km/h)")
    parser.add_argument("--process-noise", type=float, help="Kalman process noise")
    parser.add_argument(
        "--no-auto-start",
        action="store_true",
        help="Disable automatic start/stop of the ride timer",
    )
    parser.add_argument("--save", action="store_true", help="Save the recorded ride")
    parser.add_argument("--name", help="Name for the saved ride")
    parser.add_argument(
        "--export",
        type=Path,
        help="Write every saved ride to this Excel workbook",
    )
    parser.add_argument(
        "--list-routes", action="store_true", help="List saved routes and exit"
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _settings_from_args(args: argparse.Namespace) -> TrackerSettings:
    settings = TrackerSettings()
    changes: dict[str, float | bool] = {}
    if args.moving_threshold is not None:
        changes["moving_threshold_kmh"] = args.moving_threshold
    if args.process_noise is not None:
        changes["process_noise"] = args.process_noise
    if args.no_auto_start:
        changes["auto_start_enabled"] = False
    if changes:
        settings.update(**changes)
    return settings


def _load_waypoints(
    args: argparse.Namespace, store: JsonRouteStore
) -> List[Waypoint]:
    if args.route_csv is not None:
        return load_waypoints_csv(args.route_csv)
    if args.route_id is not None:
        saved = store.get(args.route_id)
        if saved is None:
            raise ValueError(f"No saved route with id '{args.route_id}'")
        store.touch(args.route_id)
        return list(saved.waypoints)
    return []


def _load_fixes(
    args: argparse.Namespace, waypoints: Sequence[Waypoint]
) -> List[Optional[RawFix]]:
    if args.fixes is not None:
        return load_fixes_csv(args.fixes)
    if args.simulate_kmh is not None:
        if len(waypoints) < 2:
            raise ValueError("Simulation needs a planned route with 2+ waypoints")
        return list(simulate_ride(waypoints, args.simulate_kmh))
    raise ValueError("Provide --fixes or --simulate-kmh")


def _list_routes(store: JsonRouteStore) -> int:
    routes = store.get_all()
    if not routes:
        print("No saved routes.")
        return 0
    for route in routes:
        print(
            f"{route.id}  {route.name}  {format_distance(route.distance)}"
            f"  {format_duration(route.duration)}"
        )
    return 0


def _replay(
    args: argparse.Namespace,
    settings: TrackerSettings,
    store: JsonRouteStore,
    waypoints: Sequence[Waypoint],
    fixes: Sequence[Optional[RawFix]],
) -> TrackingService:
    first = next((fix.timestamp for fix in fixes if fix is not None), 0)
    clock = _ReplayClock(first)
    source = ReplayFixSource(fixes)
    service = TrackingService(source, settings, store=store, clock=clock)
    service.bus.subscribe(MotionUpdated, clock.on_motion)

    if len(waypoints) >= 2:
        _LOGGER.info(
            "Planned route: %d waypoints, %s, ~%.1f h",
            len(waypoints),
            format_distance(route_distance_m(waypoints)),
            estimated_route_hours(waypoints),
        )

        def _start_route_on_first_fix(event: MotionUpdated) -> None:
            if service.route.state is RouteState.IDLE and service.route.start_time is None:
                service.start_route(waypoints, start_time=event.sample.timestamp)

        service.bus.subscribe(MotionUpdated, _start_route_on_first_fix)

    service.start(record=True)
    delivered = source.play()
    _LOGGER.info("Replayed %d fixes", delivered)
    return service


def _report(service: TrackingService) -> None:
    stats = service.motion.stats()
    _LOGGER.info(
        "Trip %s in %s moving (%.0f%% of %s), avg %.1f km/h, max %.1f km/h",
        format_distance(stats.trip_distance_m),
        format_duration(stats.moving_time_s),
        service.motion.moving_time_percentage(),
        format_duration(stats.total_time_s),
        stats.average_speed_kmh,
        stats.max_speed_kmh,
    )
    _LOGGER.info("Timer %s, route: %s", service.timer.formatted, service.route.status_message())


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point used via ``python -m ride_companion``."""

    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    try:
        settings = _settings_from_args(args)
    except ValueError as exc:
        _LOGGER.error("Invalid setting: %s", exc)
        return 1
    store = JsonRouteStore(args.store_dir)

    if args.list_routes:
        return _list_routes(store)

    try:
        waypoints = _load_waypoints(args, store)
        fixes = _load_fixes(args, waypoints)
    except (FileNotFoundError, ValueError, KeyError, RideCompanionError) as exc:
        _LOGGER.error("Failed to load input: %s", exc)
        return 1

    try:
        service = _replay(args, settings, store, waypoints, fixes)
    except RideCompanionError as exc:
        _LOGGER.error("Tracking failed: %s", exc)
        return 1
    _report(service)
    service.teardown()

    if args.save:
        try:
            route_id = service.save_ride(name=args.name)
        except (ValueError, RideCompanionError) as exc:
            _LOGGER.error("Could not save ride: %s", exc)
            return 1
        _LOGGER.info("Saved ride id=%s", route_id)

    if args.export is not None:
        path = write_ride_workbook(args.export, store.get_all())
        _LOGGER.info("Ride workbook written to %s", path)
    return 0

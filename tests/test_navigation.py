"""Navigation readouts: bearing, distance, cross-track and ETA."""

from __future__ import annotations

from dataclasses import replace

import pytest

from ride_companion.route import (
    eta_minutes,
    estimated_route_hours,
    ground_speed_knots,
    navigation_data,
    route_distance_m,
)

from helpers import pos, route_east


def test_ground_speed_filters_walking_noise() -> None:
    assert ground_speed_knots(None) == 0.0
    assert ground_speed_knots(0.5) == 0.0
    assert ground_speed_knots(5.0) == pytest.approx(9.7192)


def test_eta_needs_minimum_speed(settings) -> None:
    assert eta_minutes(1.0, 9.9, settings) is None
    assert eta_minutes(5.0, 10.0, settings) == pytest.approx(30.0)
    assert eta_minutes(1_000.0, 10.0, settings) == settings.eta_cap_minutes


def test_navigation_towards_first_waypoint(settings, waypoints) -> None:
    here = pos(north_m=-300.0, ts=0)
    data = navigation_data(here, waypoints, 0, 10.0, settings)
    assert data.next_waypoint.name == "A"
    assert data.distance_to_next_nm == pytest.approx(300.0 / 1852.0)
    assert data.bearing_to_next_deg == pytest.approx(0.0, abs=1e-6)
    assert data.cross_track_error_nm == 0.0
    assert data.ground_speed_knots == pytest.approx(19.4384)
    assert data.eta_minutes == pytest.approx(data.distance_to_next_nm / 19.4384 * 60)


def test_cross_track_uses_leg_into_target(settings, waypoints) -> None:
    here = pos(north_m=185.2, east_m=250.0, ts=0)
    data = navigation_data(here, waypoints, 1, 0.0, settings)
    assert data.cross_track_error_nm == pytest.approx(0.1, rel=1e-6)
    assert data.ground_speed_knots == 0.0
    assert data.eta_minutes is None


def test_navigation_without_target(settings, waypoints) -> None:
    assert navigation_data(pos(), waypoints, 3, 5.0, settings) is None
    assert navigation_data(pos(), [], 0, 5.0, settings) is None


def test_route_distance_and_estimated_time() -> None:
    route = route_east([0.0, 926.0, 1852.0])
    assert route_distance_m(route) == pytest.approx(1852.0)
    assert route_distance_m(route[:1]) == 0.0
    assert estimated_route_hours(route) == 0.0

    planned = [replace(wp, speed_knots=2.0) for wp in route]
    assert estimated_route_hours(planned) == pytest.approx(0.5)

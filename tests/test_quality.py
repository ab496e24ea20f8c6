"""Signal-quality tiers and the stationary hold detector."""

from __future__ import annotations

import pytest

from ride_companion.models import GpsQuality
from ride_companion.pipeline import GpsQualityMonitor, StationaryDetector, quality_for_accuracy

from helpers import pos


@pytest.mark.parametrize(
    "accuracy, expected",
    [
        (3.0, GpsQuality.EXCELLENT),
        (5.0, GpsQuality.GOOD),
        (9.9, GpsQuality.GOOD),
        (10.0, GpsQuality.FAIR),
        (19.9, GpsQuality.FAIR),
        (20.0, GpsQuality.POOR),
        (150.0, GpsQuality.POOR),
    ],
)
def test_quality_tiers(accuracy, expected) -> None:
    assert quality_for_accuracy(accuracy) is expected


def test_monitor_starts_without_signal(settings) -> None:
    monitor = GpsQualityMonitor(settings)
    assert monitor.quality is GpsQuality.VERY_POOR
    assert monitor.observe(3.0) is GpsQuality.EXCELLENT
    assert monitor.last_accuracy == 3.0


def test_streak_of_rejected_fixes_is_very_poor(settings) -> None:
    monitor = GpsQualityMonitor(settings)
    monitor.observe(4.0)
    tiers = [monitor.observe(35.0) for _ in range(settings.poor_streak_for_very_poor)]
    assert tiers[:-1] == [GpsQuality.POOR] * (settings.poor_streak_for_very_poor - 1)
    assert tiers[-1] is GpsQuality.VERY_POOR
    assert monitor.observe(8.0) is GpsQuality.GOOD


def test_monitor_reset(settings) -> None:
    monitor = GpsQualityMonitor(settings)
    monitor.observe(2.0)
    monitor.reset()
    assert monitor.quality is GpsQuality.VERY_POOR
    assert monitor.last_accuracy is None


def test_stationary_after_stop_delay(settings) -> None:
    detector = StationaryDetector(settings)
    assert not detector.observe(pos(ts=10_000))
    assert not detector.observe(pos(north_m=1.0, ts=11_000))
    assert not detector.observe(pos(east_m=-0.5, ts=12_999))
    assert detector.held_ms == 2_999
    assert detector.observe(pos(east_m=-0.5, ts=13_000))
    assert detector.is_stationary


def test_leaving_the_radius_moves_the_anchor(settings) -> None:
    settings.update(stationary_radius_m=3.0)
    detector = StationaryDetector(settings)
    detector.observe(pos(ts=0))
    detector.observe(pos(north_m=1.0, ts=1_000))
    detector.observe(pos(north_m=2.0, ts=2_000))
    assert not detector.observe(pos(north_m=3.5, ts=4_000))
    assert detector.anchor.timestamp == 4_000
    assert detector.held_ms == 0
    assert detector.observe(pos(north_m=4.0, ts=7_000))


def test_moving_sample_drops_the_hold(settings) -> None:
    detector = StationaryDetector(settings)
    detector.observe(pos(ts=0))
    detector.observe(pos(ts=2_000))
    assert not detector.observe(pos(ts=2_500), moving=True)
    assert detector.anchor is None
    assert not detector.observe(pos(ts=3_000))
    assert detector.held_ms == 0
    assert detector.observe(pos(ts=6_000))


def test_rolling_position_never_holds(settings) -> None:
    # 6 km/h is inside the radius for a long time but still rolling.
    detector = StationaryDetector(settings)
    step_m = 6.0 / 3.6
    for i in range(8):
        assert not detector.observe(pos(north_m=step_m * i, ts=i * 1_000))
    assert detector.held_ms == 0


def test_stationary_reset(settings) -> None:
    detector = StationaryDetector(settings)
    detector.observe(pos(ts=0))
    detector.observe(pos(ts=5_000))
    detector.reset()
    assert detector.anchor is None
    assert not detector.is_stationary

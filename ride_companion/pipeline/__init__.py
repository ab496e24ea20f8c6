"""Fix processing pipeline: filtering, speed and motion state."""

from .motion_tracker import MotionTracker
from .position_filter import PositionFilter
from .quality import GpsQualityMonitor, StationaryDetector, quality_for_accuracy
from .speed_estimator import SpeedEstimator

__all__ = [
    "MotionTracker",
    "PositionFilter",
    "SpeedEstimator",
    "GpsQualityMonitor",
    "StationaryDetector",
    "quality_for_accuracy",
]

"""
Motion analysis pipeline for squat form scoring.

PIPELINE COMPONENTS:
1. KeypointSmoother: Outlier rejection + One Euro filtering of raw landmarks
2. RepDetector: Hip-height peak detection with whole-clip fallback
3. CameraAngleClassifier: Shoulder spread / face visibility majority vote
4. ExerciseClassifier: Squat vs deadlift vs other from hip and knee ranges
5. Form checks: Eighteen metric scorers over each rep window
6. Confidence matrix: Per-metric reliability by camera angle
7. Aggregator: Overall per-metric scores across reps
8. SquatAnalyzer: Main orchestration pipeline

Usage:
    from squatcheck.cv import SquatAnalyzer

    result = SquatAnalyzer().analyze(frames)
    print(result.rep_count, result.metric("depth").rating)
"""

from squatcheck.cv.pose import (
    PoseLandmark, Landmark, PoseFrame, DetectedRep, CameraAngle, ExerciseType
)
from squatcheck.cv.keypoint_smoother import KeypointSmoother, OneEuroFilter, OutlierRejector, FilterPreset
from squatcheck.cv.rep_detector import RepDetector
from squatcheck.cv.camera_angle import CameraAngleClassifier, CameraAngleClassification
from squatcheck.cv.lift_classifier import ExerciseClassifier, ExerciseClassification
from squatcheck.cv.metric_scorer import Metric, MetricScore, MetricRating, MetricConfidence
from squatcheck.cv.form_checks import FORM_CHECKS, DepthConsistencyCheck
from squatcheck.cv.confidence import CONFIDENCE_MATRIX, get_metric_confidence
from squatcheck.cv.aggregator import aggregate, average_metric_scores
from squatcheck.cv.squat_analyzer import (
    SquatAnalyzer, AnalysisResult, RepData, TrimResult, trim_frames_to_reps, rebase_reps
)

__all__ = [
    # Data model
    "PoseLandmark",
    "Landmark",
    "PoseFrame",
    "DetectedRep",
    "CameraAngle",
    "ExerciseType",

    # Signal conditioning
    "KeypointSmoother",
    "OneEuroFilter",
    "OutlierRejector",
    "FilterPreset",

    # Rep detection
    "RepDetector",

    # Classification
    "CameraAngleClassifier",
    "CameraAngleClassification",
    "ExerciseClassifier",
    "ExerciseClassification",

    # Scoring
    "Metric",
    "MetricScore",
    "MetricRating",
    "MetricConfidence",
    "FORM_CHECKS",
    "DepthConsistencyCheck",
    "CONFIDENCE_MATRIX",
    "get_metric_confidence",
    "aggregate",
    "average_metric_scores",

    # Main pipeline
    "SquatAnalyzer",
    "AnalysisResult",
    "RepData",
    "TrimResult",
    "trim_frames_to_reps",
    "rebase_reps",
]

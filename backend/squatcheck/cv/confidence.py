"""
Metric confidence by camera angle.

A metric is only as trustworthy as the view it is measured from: sagittal
measurements (depth, back angle, bar path) need a side view, frontal-plane
measurements (valgus, symmetry, stance) need a front or rear view.
"""

from dataclasses import replace
from typing import Dict, Union

from squatcheck.cv.metric_scorer import Metric, MetricConfidence, MetricScore
from squatcheck.cv.pose import CameraAngle

H, M, LOW = MetricConfidence.HIGH, MetricConfidence.MEDIUM, MetricConfidence.LOW

_ANGLES = (
    CameraAngle.FRONTAL,
    CameraAngle.REAR,
    CameraAngle.LEFT_SIDE,
    CameraAngle.RIGHT_SIDE,
    CameraAngle.DIAGONAL,
    CameraAngle.UNCERTAIN,
)


def _row(*tiers: MetricConfidence) -> Dict[CameraAngle, MetricConfidence]:
    return dict(zip(_ANGLES, tiers))


#                                          frontal rear  left  right diag  uncertain
CONFIDENCE_MATRIX: Dict[Metric, Dict[CameraAngle, MetricConfidence]] = {
    Metric.DEPTH:              _row(M,   M,   H,   H,   H,   M),
    Metric.KNEE_TRACKING:      _row(H,   H,   LOW, LOW, M,   M),
    Metric.BACK_ANGLE:         _row(LOW, LOW, H,   H,   M,   M),
    Metric.BAR_PATH:           _row(LOW, LOW, H,   H,   M,   M),
    Metric.SYMMETRY:           _row(H,   H,   LOW, LOW, M,   M),
    Metric.BUTT_WINK:          _row(LOW, LOW, H,   H,   M,   M),
    Metric.TEMPO:              _row(H,   H,   H,   H,   H,   H),
    Metric.HEEL_RISE:          _row(M,   M,   H,   H,   H,   M),
    Metric.STANCE_WIDTH:       _row(H,   H,   LOW, LOW, M,   M),
    Metric.HIP_SHIFT:          _row(H,   H,   LOW, LOW, M,   M),
    Metric.KNEE_VALGUS:        _row(H,   H,   LOW, LOW, M,   M),
    Metric.KNEE_TRAVEL:        _row(LOW, LOW, H,   H,   M,   M),
    Metric.DEPTH_CONSISTENCY:  _row(M,   M,   H,   H,   H,   M),
    Metric.THORACIC_ROUNDING:  _row(LOW, LOW, H,   H,   M,   M),
    Metric.HIP_RISE_RATE:      _row(LOW, LOW, H,   H,   M,   M),
    Metric.REVERSAL_CONTROL:   _row(M,   M,   H,   H,   H,   M),
    Metric.STANCE_WIDTH_SHIFT: _row(H,   H,   LOW, LOW, M,   M),
    Metric.HEAD_POSITION:      _row(LOW, LOW, H,   H,   M,   M),
}


def get_metric_confidence(metric: Union[Metric, str], camera_angle: Union[CameraAngle, str]) -> MetricConfidence:
    """Confidence tier for a metric seen from a camera angle; unknown keys give medium."""
    try:
        row = CONFIDENCE_MATRIX[Metric(metric)]
        return row[CameraAngle(camera_angle)]
    except (KeyError, ValueError):
        return MetricConfidence.MEDIUM


def stamp_confidence(metric: Metric, score: MetricScore, camera_angle: CameraAngle) -> MetricScore:
    """Copy of `score` with its confidence set from the matrix."""
    return replace(score, confidence=get_metric_confidence(metric, camera_angle))

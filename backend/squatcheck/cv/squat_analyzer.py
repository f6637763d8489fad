"""
Squat analysis pipeline.

PIPELINE:
1. Input checks: person detected, well-formed frames
2. Signal conditioning (outlier rejection + One Euro filtering)
3. Visibility gate on hips/knees/ankles, minimal hip motion
4. Camera angle and exercise classification (exercise gate)
5. Rep segmentation (whole-clip fallback)
6. Per-rep form checks, depth consistency once per video
7. Confidence stamping by camera angle
8. Cross-rep aggregation

Pure batch computation: one call consumes one complete frame sequence and
returns one immutable result, or raises an AnalysisError.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Union
import logging

import numpy as np

from squatcheck.config import Settings, get_settings
from squatcheck.cv.aggregator import aggregate
from squatcheck.cv.camera_angle import CameraAngleClassifier
from squatcheck.cv.confidence import stamp_confidence
from squatcheck.cv.form_checks import FORM_CHECKS, DepthConsistencyCheck
from squatcheck.cv.keypoint_smoother import KeypointSmoother
from squatcheck.cv.lift_classifier import ExerciseClassifier
from squatcheck.cv.metric_scorer import Metric, MetricScore
from squatcheck.cv.pose import (
    NUM_LANDMARKS,
    CameraAngle,
    DetectedRep,
    ExerciseType,
    PoseFrame,
    PoseLandmark,
)
from squatcheck.cv.rep_detector import RepDetector
from squatcheck.errors import (
    InvalidFramesError,
    LowVisibilityError,
    NoPersonDetectedError,
    WrongExerciseError,
)

logger = logging.getLogger(__name__)

KEY_LANDMARKS = (
    PoseLandmark.LEFT_HIP,
    PoseLandmark.RIGHT_HIP,
    PoseLandmark.LEFT_KNEE,
    PoseLandmark.RIGHT_KNEE,
    PoseLandmark.LEFT_ANKLE,
    PoseLandmark.RIGHT_ANKLE,
)


@dataclass(frozen=True)
class RepData:
    """All metric scores for one detected rep."""
    rep_number: int
    start_frame: int
    end_frame: int
    bottom_frame: int
    metrics: Dict[Metric, MetricScore] = field(default_factory=dict)

    def __getitem__(self, metric: Union[Metric, str]) -> MetricScore:
        return self.metrics[Metric(metric)]


@dataclass(frozen=True)
class AnalysisResult:
    """Complete squat analysis for one video."""
    reps: List[RepData]
    overall: Dict[Metric, MetricScore]
    rep_count: int
    exercise_type: ExerciseType
    camera_angle: CameraAngle
    frame_count: int = 0

    def metric(self, name: Union[Metric, str]) -> MetricScore:
        return self.overall[Metric(name)]


@dataclass(frozen=True)
class TrimResult:
    """Sub-sequence of frames spanning the detected reps plus a buffer."""
    frames: List[PoseFrame]
    start_timestamp: float
    end_timestamp: float
    trim_start_index: int = 0


def validate_frames(frames: Sequence[PoseFrame]):
    """
    Reject sequences the pipeline cannot interpret.

    Raises:
        NoPersonDetectedError: empty sequence
        InvalidFramesError: wrong landmark count or non-increasing timestamps
    """
    if not frames:
        raise NoPersonDetectedError()

    previous = None
    for i, frame in enumerate(frames):
        if len(frame.landmarks) != NUM_LANDMARKS:
            raise InvalidFramesError(
                f"Frame {i} has {len(frame.landmarks)} landmarks, expected {NUM_LANDMARKS}"
            )
        if previous is not None and frame.timestamp <= previous:
            raise InvalidFramesError(f"Frame {i} timestamp {frame.timestamp} is not after {previous}")
        previous = frame.timestamp


def key_landmark_visibility(frames: Sequence[PoseFrame]) -> float:
    """Mean visibility of hips, knees and ankles over all frames."""
    return float(np.mean([[f[idx].visibility for idx in KEY_LANDMARKS] for f in frames]))


class SquatAnalyzer:
    """
    Main squat analysis pipeline.

    Components are stateless between calls, so one analyzer can be shared.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.smoother = KeypointSmoother(self.settings)
        self.rep_detector = RepDetector(self.settings)
        self.camera_classifier = CameraAngleClassifier(self.settings)
        self.exercise_classifier = ExerciseClassifier(self.settings)
        self.checks = [check(self.settings) for check in FORM_CHECKS]
        self.depth_consistency = DepthConsistencyCheck(self.settings)

    def analyze(self, frames: Sequence[PoseFrame], condition: bool = True) -> AnalysisResult:
        """
        Analyze a complete landmark sequence.

        Args:
            frames: raw frames from the landmark provider
            condition: run the signal conditioner first (disable for
                already-conditioned frames)

        Raises:
            AnalysisError subclasses for every terminal failure
        """
        validate_frames(frames)
        logger.info(f"Starting squat analysis: {len(frames)} frames")

        conditioned = self.smoother.condition(frames) if condition else list(frames)

        visibility = key_landmark_visibility(conditioned)
        if visibility < self.settings.min_key_landmark_visibility:
            logger.warning(f"Key landmark visibility too low: {visibility:.2f}")
            raise LowVisibilityError(visibility)

        # No-motion clips report no reps before the exercise gate sees them
        self.rep_detector.require_motion(conditioned)

        camera_angle = self.camera_classifier.classify(conditioned)
        exercise = self.exercise_classifier.classify(conditioned)

        if self.settings.reject_non_squat and exercise.exercise_type in (ExerciseType.DEADLIFT, ExerciseType.OTHER):
            logger.warning(f"Rejecting non-squat movement: {exercise.exercise_type.value} ({exercise.reasoning})")
            raise WrongExerciseError(exercise.exercise_type.value)

        detected = self.rep_detector.segment(conditioned)
        reps = self.score_reps(conditioned, detected, camera_angle)
        overall = aggregate([rep.metrics for rep in reps])

        logger.info(
            f"Analysis complete: {len(reps)} reps, camera {camera_angle.value}, "
            f"exercise {exercise.exercise_type.value}, depth {overall[Metric.DEPTH].score}"
        )
        return AnalysisResult(
            reps=reps,
            overall=overall,
            rep_count=len(reps),
            exercise_type=exercise.exercise_type,
            camera_angle=camera_angle,
            frame_count=len(conditioned),
        )

    def score_reps(
        self,
        frames: Sequence[PoseFrame],
        detected: Sequence[DetectedRep],
        camera_angle: CameraAngle = CameraAngle.UNCERTAIN,
    ) -> List[RepData]:
        """Run every form check on every rep and stamp confidence."""
        consistency = stamp_confidence(
            Metric.DEPTH_CONSISTENCY,
            self.depth_consistency.score_reps(frames, detected),
            camera_angle,
        )

        reps = []
        for number, rep in enumerate(detected, start=1):
            metrics: Dict[Metric, MetricScore] = {}
            for check in self.checks:
                metrics[check.metric] = stamp_confidence(check.metric, check.score(frames, rep), camera_angle)
            metrics[Metric.DEPTH_CONSISTENCY] = replace(consistency, issue_frames=list(consistency.issue_frames))

            reps.append(RepData(
                rep_number=number,
                start_frame=rep.start_frame,
                end_frame=rep.end_frame,
                bottom_frame=rep.bottom_frame,
                metrics={metric: metrics[metric] for metric in Metric},
            ))
        return reps


def trim_frames_to_reps(frames: Sequence[PoseFrame], settings: Optional[Settings] = None) -> TrimResult:
    """
    Crop a conditioned sequence to its reps plus a fixed time buffer.

    Uses peak-based detection only; without a detected rep the sequence is
    returned unchanged.
    """
    settings = settings or get_settings()
    if not frames:
        return TrimResult(frames=[], start_timestamp=0.0, end_timestamp=0.0, trim_start_index=0)

    reps = RepDetector(settings).detect(frames)
    if not reps:
        return TrimResult(
            frames=list(frames),
            start_timestamp=frames[0].timestamp,
            end_timestamp=frames[-1].timestamp,
        )

    if len(frames) > 1:
        frame_interval = (frames[-1].timestamp - frames[0].timestamp) / (len(frames) - 1)
    else:
        frame_interval = 1 / 30
    buffer_frames = math.ceil(settings.trim_buffer_seconds / frame_interval)

    start = max(0, reps[0].start_frame - buffer_frames)
    end = min(len(frames) - 1, reps[-1].end_frame + buffer_frames)
    logger.info(f"Trimmed to frames {start}-{end} of {len(frames)} ({buffer_frames} buffer frames)")

    return TrimResult(
        frames=list(frames[start:end + 1]),
        start_timestamp=frames[start].timestamp,
        end_timestamp=frames[end].timestamp,
        trim_start_index=start,
    )


def rebase_reps(reps: Sequence[RepData], offset: int) -> List[RepData]:
    """Shift rep boundaries and issue frames so they index into a trimmed sequence."""
    rebased = []
    for rep in reps:
        metrics = {
            metric: replace(score, issue_frames=[i - offset for i in score.issue_frames])
            for metric, score in rep.metrics.items()
        }
        rebased.append(replace(
            rep,
            start_frame=rep.start_frame - offset,
            end_frame=rep.end_frame - offset,
            bottom_frame=rep.bottom_frame - offset,
            metrics=metrics,
        ))
    return rebased

"""
Metric scoring primitives shared by every form check.

SCORE BANDS:
- GOOD (green):        80-100, closer to the ideal edge scores higher
- BORDERLINE (yellow): 50-79
- POOR (red):          0-49, falls linearly with the excess

Every score is rounded half-up to an integer and the rating is derived from
the rounded value, so a rating never disagrees with its score.

A check that cannot measure its quantity (too-short rep, near-zero
denominator) returns a neutral yellow score instead of failing the run.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence
import logging

from squatcheck.config import Settings
from squatcheck.cv.geometry import clamp
from squatcheck.cv.pose import DetectedRep, PoseFrame

logger = logging.getLogger(__name__)


class MetricRating(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class MetricConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Metric(str, Enum):
    """The eighteen scored metrics, in report order."""
    DEPTH = "depth"
    KNEE_TRACKING = "kneeTracking"
    BACK_ANGLE = "backAngle"
    BAR_PATH = "barPath"
    SYMMETRY = "symmetry"
    BUTT_WINK = "buttWink"
    TEMPO = "tempo"
    HEEL_RISE = "heelRise"
    STANCE_WIDTH = "stanceWidth"
    HIP_SHIFT = "hipShift"
    KNEE_VALGUS = "kneeValgus"
    KNEE_TRAVEL = "kneeTravel"
    DEPTH_CONSISTENCY = "depthConsistency"
    THORACIC_ROUNDING = "thoracicRounding"
    HIP_RISE_RATE = "hipRiseRate"
    REVERSAL_CONTROL = "reversalControl"
    STANCE_WIDTH_SHIFT = "stanceWidthShift"
    HEAD_POSITION = "headPosition"


def round_score(value: float) -> int:
    """Round half up."""
    return int(math.floor(value + 0.5))


def get_rating(score: float) -> MetricRating:
    if score >= 80:
        return MetricRating.GREEN
    if score >= 50:
        return MetricRating.YELLOW
    return MetricRating.RED


@dataclass(frozen=True)
class MetricScore:
    """Score for one metric over one rep (or the whole video)."""
    score: int
    rating: MetricRating
    summary: str
    issue_frames: List[int] = field(default_factory=list)
    confidence: MetricConfidence = MetricConfidence.HIGH

    @classmethod
    def build(cls, raw_score: float, summary: str, issue_frames: Optional[List[int]] = None) -> "MetricScore":
        score = round_score(clamp(raw_score, 0, 100))
        return cls(score=score, rating=get_rating(score), summary=summary, issue_frames=list(issue_frames or []))

    @classmethod
    def neutral(cls, summary: str, score: int = 75) -> "MetricScore":
        return cls(score=score, rating=get_rating(score), summary=summary)


def score_lower_is_better(value: float, good: float, warn: float, slope: float) -> float:
    """
    Map a fault measurement (0 = ideal) onto the three score bands.

    Args:
        value: measured quantity
        good: upper edge of the good band
        warn: upper edge of the borderline band
        slope: points lost per unit beyond `warn`
    """
    if value < good:
        return clamp(80 + (1 - value / good) * 20, 80, 100)
    if value < warn:
        return clamp(50 + ((warn - value) / (warn - good)) * 29, 50, 79)
    return clamp(49 - (value - warn) * slope, 0, 49)


def is_active_frame(frames: Sequence[PoseFrame], rep: DetectedRep, idx: int, descent_ratio: float = 0.25) -> bool:
    """True once the hips have covered `descent_ratio` of the drop to the rep bottom."""
    standing_y = frames[rep.start_frame].hip_y
    total_drop = frames[rep.bottom_frame].hip_y - standing_y
    if abs(total_drop) < 0.01:
        return True
    return (frames[idx].hip_y - standing_y) / total_drop >= descent_ratio


class InsufficientData(Exception):
    """Raised by a check that cannot measure its quantity; becomes a neutral score."""

    def __init__(self, summary: str, score: int = 75):
        self.summary = summary
        self.score = score
        super().__init__(summary)


@dataclass
class Measurement:
    value: float
    issue_frames: List[int] = field(default_factory=list)


class FormCheck:
    """Base class for per-rep form checks."""

    metric: Metric

    def __init__(self, settings: Settings):
        self.settings = settings

    def evaluate(self, frames: Sequence[PoseFrame], rep: DetectedRep) -> MetricScore:
        raise NotImplementedError

    def score(self, frames: Sequence[PoseFrame], rep: DetectedRep) -> MetricScore:
        """Score one rep; degenerate input yields a neutral score."""
        try:
            return self.evaluate(frames, rep)
        except InsufficientData as e:
            logger.debug(f"{self.metric.value}: neutral score for frames {rep.start_frame}-{rep.end_frame} ({e.summary})")
            return MetricScore.neutral(e.summary, e.score)

    # Shared helpers

    def rep_range(self, rep: DetectedRep) -> range:
        return range(rep.start_frame, rep.end_frame + 1)

    def active_range(self, frames: Sequence[PoseFrame], rep: DetectedRep) -> List[int]:
        return [
            i for i in self.rep_range(rep)
            if is_active_frame(frames, rep, i, self.settings.active_descent_ratio)
        ]

    def to_inches(self, normalized: float) -> float:
        return normalized * self.settings.assumed_subject_height_inches


class ThresholdCheck(FormCheck):
    """
    Check whose measurement is a fault magnitude scored by `score_lower_is_better`.

    Subclasses implement `measure()` and may add band-dependent issue frames.
    """

    good: float
    warn: float
    slope: float
    summaries: Dict[MetricRating, str] = {}

    def measure(self, frames: Sequence[PoseFrame], rep: DetectedRep) -> Measurement:
        raise NotImplementedError

    def band_issue_frames(self, rating: MetricRating, rep: DetectedRep, measurement: Measurement) -> List[int]:
        return []

    def evaluate(self, frames: Sequence[PoseFrame], rep: DetectedRep) -> MetricScore:
        measurement = self.measure(frames, rep)
        raw = score_lower_is_better(measurement.value, self.good, self.warn, self.slope)
        rating = get_rating(round_score(raw))
        issue_frames = measurement.issue_frames + self.band_issue_frames(rating, rep, measurement)
        return MetricScore.build(raw, self.summaries[rating], issue_frames)

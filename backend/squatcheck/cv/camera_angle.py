"""
Camera viewpoint detection from shoulder geometry and face visibility.

VIEWPOINTS:
- Side (left/right): shoulders overlap horizontally (spread < 0.08). The
  side facing the camera has the more visible arm landmarks.
- Frontal / rear: shoulders far apart (spread > 0.20). Face visible = frontal.
- Diagonal: everything in between.

Only a short window right after the lifter is first stably visible is
sampled; each sampled frame casts one vote and the majority label is kept
when it wins at least 60% of the votes.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence
import logging

import numpy as np

from squatcheck.config import Settings, get_settings
from squatcheck.cv.pose import CameraAngle, PoseFrame, PoseLandmark

logger = logging.getLogger(__name__)


@dataclass
class CameraAngleClassification:
    """Result of camera angle classification."""
    angle: CameraAngle
    confidence: float = 0.0
    votes: Dict[CameraAngle, int] = field(default_factory=dict)
    shoulder_spread: float = 0.0
    face_visibility: float = 0.0
    best_guess: Optional[CameraAngle] = None


class CameraAngleClassifier:
    """
    Classifies a single dominant camera angle for a clip.

    Thresholds are in normalized image units.
    """

    SIDE_SPREAD = 0.08
    FRONTAL_SPREAD = 0.20
    FACE_VISIBLE = 0.5
    SHOULDER_VISIBLE = 0.3

    FACE_LANDMARKS = (PoseLandmark.NOSE, PoseLandmark.LEFT_EYE, PoseLandmark.RIGHT_EYE)
    LEFT_ARM = (PoseLandmark.LEFT_SHOULDER, PoseLandmark.LEFT_ELBOW, PoseLandmark.LEFT_WRIST)
    RIGHT_ARM = (PoseLandmark.RIGHT_SHOULDER, PoseLandmark.RIGHT_ELBOW, PoseLandmark.RIGHT_WRIST)

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def _shoulders_visible(self, frame: PoseFrame) -> bool:
        return (
            frame[PoseLandmark.LEFT_SHOULDER].visibility >= self.SHOULDER_VISIBLE
            and frame[PoseLandmark.RIGHT_SHOULDER].visibility >= self.SHOULDER_VISIBLE
        )

    def find_stable_start(self, frames: Sequence[PoseFrame]) -> int:
        """Index of the first run of consecutive frames with both shoulders visible, or -1."""
        run = self.settings.camera_stable_run
        for i in range(len(frames) - run + 1):
            if all(self._shoulders_visible(f) for f in frames[i:i + run]):
                return i
        return -1

    @staticmethod
    def _mean_visibility(frame: PoseFrame, indices) -> float:
        return sum(frame[i].visibility for i in indices) / len(indices)

    def vote(self, frame: PoseFrame) -> CameraAngle:
        """Per-frame viewpoint label."""
        spread = abs(frame[PoseLandmark.LEFT_SHOULDER].x - frame[PoseLandmark.RIGHT_SHOULDER].x)

        if spread < self.SIDE_SPREAD:
            left_vis = self._mean_visibility(frame, self.LEFT_ARM)
            right_vis = self._mean_visibility(frame, self.RIGHT_ARM)
            return CameraAngle.LEFT_SIDE if left_vis >= right_vis else CameraAngle.RIGHT_SIDE

        if spread > self.FRONTAL_SPREAD:
            face_vis = self._mean_visibility(frame, self.FACE_LANDMARKS)
            return CameraAngle.FRONTAL if face_vis > self.FACE_VISIBLE else CameraAngle.REAR

        return CameraAngle.DIAGONAL

    def classify_detailed(self, frames: Sequence[PoseFrame]) -> CameraAngleClassification:
        if len(frames) < self.settings.camera_stable_run:
            return CameraAngleClassification(angle=CameraAngle.UNCERTAIN)

        stable_start = self.find_stable_start(frames)
        if stable_start < 0:
            logger.info("Camera angle uncertain: no stable shoulder window")
            return CameraAngleClassification(angle=CameraAngle.UNCERTAIN)

        samples = frames[stable_start:stable_start + self.settings.camera_max_samples]

        votes = []
        spreads = []
        face_vis = []
        for f in samples:
            if not self._shoulders_visible(f):
                continue
            spreads.append(abs(f[PoseLandmark.LEFT_SHOULDER].x - f[PoseLandmark.RIGHT_SHOULDER].x))
            face_vis.append(self._mean_visibility(f, self.FACE_LANDMARKS))
            votes.append(self.vote(f))

        if not votes:
            return CameraAngleClassification(angle=CameraAngle.UNCERTAIN)

        # Counter preserves encounter order, so ties go to the label seen first
        counts = Counter(votes)
        best_angle, best_count = max(counts.items(), key=lambda item: item[1])
        confidence = best_count / len(votes)
        angle = best_angle if confidence >= self.settings.camera_vote_threshold else CameraAngle.UNCERTAIN

        result = CameraAngleClassification(
            angle=angle,
            confidence=confidence,
            votes=dict(counts),
            shoulder_spread=float(np.mean(spreads)),
            face_visibility=float(np.mean(face_vis)),
            best_guess=best_angle,
        )

        logger.info(
            f"Camera angle: {angle.value}, confidence {confidence:.1%}, "
            f"votes={len(votes)}, shoulder spread {result.shoulder_spread:.3f}, "
            f"face visibility {result.face_visibility:.3f}"
            + (f", best guess {best_angle.value}" if angle == CameraAngle.UNCERTAIN else "")
        )
        return result

    def classify(self, frames: Sequence[PoseFrame]) -> CameraAngle:
        """Dominant camera angle for the clip."""
        return self.classify_detailed(frames).angle

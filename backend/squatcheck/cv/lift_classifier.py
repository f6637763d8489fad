"""
Exercise type detection from hip and knee movement.

MOVEMENT SIGNATURES:

1. SQUAT:
   - Large vertical hip travel
   - Deep knee flexion (wide knee angle range)

2. DEADLIFT:
   - Moderate vertical hip travel with a noticeable horizontal hip shift
   - Knees stay fairly straight

Anything with some vertical hip travel is accepted as a squat; rejecting
a real squat is worse than analyzing an ambiguous clip.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence
import logging

import numpy as np

from squatcheck.config import Settings, get_settings
from squatcheck.cv.geometry import angle_between
from squatcheck.cv.pose import ExerciseType, PoseFrame, PoseLandmark

logger = logging.getLogger(__name__)


@dataclass
class ExerciseClassification:
    """Result of exercise type classification."""
    exercise_type: ExerciseType
    hip_y_range: float = 0.0
    hip_x_range: float = 0.0
    knee_angle_range: float = 0.0
    reasoning: str = ""


class ExerciseClassifier:
    """
    Classifies squat vs deadlift vs other from pose data.

    Detection Strategy:
    1. Range of average hip y and hip x over frames with visible hips
    2. Range of hip-knee-ankle angle, both legs pooled
    3. Threshold rules, squat first
    """

    MIN_FRAMES = 4

    SQUAT_HIP_Y_RANGE = 0.10
    SQUAT_KNEE_RANGE = 30.0
    DEADLIFT_HIP_Y_RANGE = 0.08
    DEADLIFT_HIP_X_RANGE = 0.05
    ANY_SQUAT_HIP_Y_RANGE = 0.05
    LANDMARK_VISIBLE = 0.3

    LEGS = (
        (PoseLandmark.LEFT_HIP, PoseLandmark.LEFT_KNEE, PoseLandmark.LEFT_ANKLE),
        (PoseLandmark.RIGHT_HIP, PoseLandmark.RIGHT_KNEE, PoseLandmark.RIGHT_ANKLE),
    )

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def classify(self, frames: Sequence[PoseFrame]) -> ExerciseClassification:
        if len(frames) < self.MIN_FRAMES:
            return ExerciseClassification(ExerciseType.UNKNOWN, reasoning="Too few frames")

        min_vis = self.LANDMARK_VISIBLE
        hip_y: List[float] = []
        hip_x: List[float] = []
        knee_angles: List[float] = []

        for f in frames:
            lh = f[PoseLandmark.LEFT_HIP]
            rh = f[PoseLandmark.RIGHT_HIP]
            if lh.visibility < min_vis or rh.visibility < min_vis:
                continue

            hip_y.append((lh.y + rh.y) / 2)
            hip_x.append((lh.x + rh.x) / 2)

            for hip, knee, ankle in self.LEGS:
                if f[knee].visibility > min_vis and f[ankle].visibility > min_vis:
                    knee_angles.append(angle_between(f[hip], f[knee], f[ankle]))

        if len(hip_y) < 2:
            return ExerciseClassification(ExerciseType.UNKNOWN, reasoning="Hips not visible")

        hip_y_range = float(np.ptp(hip_y))
        hip_x_range = float(np.ptp(hip_x))
        knee_range = float(np.ptp(knee_angles)) if knee_angles else 0.0

        if hip_y_range > self.SQUAT_HIP_Y_RANGE and knee_range > self.SQUAT_KNEE_RANGE:
            exercise = ExerciseType.SQUAT
            reasoning = "Large hip travel with deep knee bend"
        elif (
            hip_y_range > self.DEADLIFT_HIP_Y_RANGE
            and hip_x_range > self.DEADLIFT_HIP_X_RANGE
            and knee_range < self.SQUAT_KNEE_RANGE
        ):
            exercise = ExerciseType.DEADLIFT
            reasoning = "Hip hinge with little knee bend"
        elif hip_y_range > self.ANY_SQUAT_HIP_Y_RANGE:
            exercise = ExerciseType.SQUAT
            reasoning = "Some vertical hip travel, assuming squat"
        else:
            exercise = ExerciseType.OTHER
            reasoning = "No meaningful vertical hip travel"

        logger.info(
            f"Exercise: {exercise.value} (hip y range {hip_y_range:.3f}, "
            f"hip x range {hip_x_range:.3f}, knee range {knee_range:.1f})"
        )
        return ExerciseClassification(
            exercise_type=exercise,
            hip_y_range=hip_y_range,
            hip_x_range=hip_x_range,
            knee_angle_range=knee_range,
            reasoning=reasoning,
        )

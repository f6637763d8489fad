"""Shared synthetic pose builders.

Skeleton layout (normalized image coords, y down), standing hip height 0.5:
  shoulders  y = hip - 0.25, spread 0.24 around x = 0.5
  hips       x = 0.43 / 0.57
  knees      y = 0.70, x over the ankles (+ drift * stance width on the left)
  ankles     y = 0.90, x = 0.40 / 0.60  (stance width 0.2)
  heels      y = 0.92, foot index y = 0.93
"""

from typing import Callable, Optional, Sequence

import numpy as np
import pytest

from squatcheck.config import Settings
from squatcheck.cv.pose import Landmark, NUM_LANDMARKS, PoseFrame, PoseLandmark as L

FPS = 30.0
STANCE_WIDTH = 0.2


def make_landmarks(
    hip_y: float = 0.5,
    knee_drift: float = 0.0,
    shoulder_spread: float = 0.24,
    face_visibility: float = 1.0,
    left_arm_visibility: float = 1.0,
    right_arm_visibility: float = 1.0,
    visibility: float = 1.0,
):
    lms = [Landmark(0.5, 0.5, 0.0, visibility) for _ in range(NUM_LANDMARKS)]
    shoulder_y = hip_y - 0.25
    lsx = 0.5 - shoulder_spread / 2
    rsx = 0.5 + shoulder_spread / 2

    def put(idx, x, y, vis=visibility):
        lms[idx] = Landmark(x, y, 0.0, vis)

    put(L.NOSE, 0.5, shoulder_y - 0.12, face_visibility)
    put(L.LEFT_EYE, 0.48, shoulder_y - 0.14, face_visibility)
    put(L.RIGHT_EYE, 0.52, shoulder_y - 0.14, face_visibility)
    put(L.LEFT_EAR, 0.46, shoulder_y - 0.13)
    put(L.RIGHT_EAR, 0.54, shoulder_y - 0.13)
    put(L.LEFT_SHOULDER, lsx, shoulder_y, left_arm_visibility)
    put(L.RIGHT_SHOULDER, rsx, shoulder_y, right_arm_visibility)
    put(L.LEFT_ELBOW, lsx, shoulder_y + 0.12, left_arm_visibility)
    put(L.RIGHT_ELBOW, rsx, shoulder_y + 0.12, right_arm_visibility)
    put(L.LEFT_WRIST, lsx, shoulder_y + 0.22, left_arm_visibility)
    put(L.RIGHT_WRIST, rsx, shoulder_y + 0.22, right_arm_visibility)
    put(L.LEFT_HIP, 0.43, hip_y)
    put(L.RIGHT_HIP, 0.57, hip_y)
    put(L.LEFT_KNEE, 0.40 + knee_drift * STANCE_WIDTH, 0.70)
    put(L.RIGHT_KNEE, 0.60, 0.70)
    put(L.LEFT_ANKLE, 0.40, 0.90)
    put(L.RIGHT_ANKLE, 0.60, 0.90)
    put(L.LEFT_HEEL, 0.40, 0.92)
    put(L.RIGHT_HEEL, 0.60, 0.92)
    put(L.LEFT_FOOT_INDEX, 0.40, 0.93)
    put(L.RIGHT_FOOT_INDEX, 0.60, 0.93)
    return tuple(lms)


def make_frame(timestamp: float, **kwargs) -> PoseFrame:
    return PoseFrame(timestamp=timestamp, landmarks=make_landmarks(**kwargs))


def squat_hip_signal(
    n_reps: int = 3,
    period: int = 30,
    standing: float = 0.5,
    bottom: float = 0.75,
) -> np.ndarray:
    """Cosine hip trajectory: standing at multiples of `period`, bottoms half way."""
    i = np.arange(n_reps * period)
    return standing + (bottom - standing) * (1 - np.cos(2 * np.pi * i / period)) / 2


def padded_hip_signal(n_reps: int = 3, pad: int = 120) -> np.ndarray:
    """Squats with long standing phases before and after, slightly lower at rest."""
    rest = np.full(pad, 0.51)
    rest_in = rest.copy()
    rest_in[-5:] = 0.5
    rest_out = rest.copy()
    rest_out[:5] = 0.5
    return np.concatenate([rest_in, squat_hip_signal(n_reps), rest_out])


def make_sequence(
    hip_values: Sequence[float],
    fps: float = FPS,
    drift_for: Optional[Callable[[int], float]] = None,
    **kwargs,
):
    frames = []
    for i, hip_y in enumerate(hip_values):
        drift = drift_for(i) if drift_for else 0.0
        frames.append(make_frame(i / fps, hip_y=float(hip_y), knee_drift=drift, **kwargs))
    return frames


def with_landmark(frame: PoseFrame, idx: int, **changes) -> PoseFrame:
    """Copy of `frame` with one landmark's fields replaced."""
    lms = list(frame.landmarks)
    old = lms[idx]
    lms[idx] = Landmark(
        x=changes.get("x", old.x),
        y=changes.get("y", old.y),
        z=changes.get("z", old.z),
        visibility=changes.get("visibility", old.visibility),
    )
    return PoseFrame(timestamp=frame.timestamp, landmarks=tuple(lms))


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def squat_frames():
    """90 frames at 30fps, three clean reps with bottoms at 15, 45 and 75."""
    return make_sequence(squat_hip_signal(3))

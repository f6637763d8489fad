"""
Pose landmark data model.

Frames come from an external MediaPipe Pose style provider: 33 landmarks per
frame with normalized image coordinates (y grows downward) and a per-landmark
visibility in [0, 1]. Conditioning produces new frames; frames are never
mutated in place.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Sequence, Tuple

NUM_LANDMARKS = 33


class PoseLandmark(IntEnum):
    """MediaPipe Pose landmark indices used by the analysis."""
    NOSE = 0
    LEFT_EYE = 2
    RIGHT_EYE = 5
    LEFT_EAR = 7
    RIGHT_EAR = 8
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


class CameraAngle(str, Enum):
    """Dominant camera viewpoint for a clip."""
    FRONTAL = "frontal"
    REAR = "rear"
    LEFT_SIDE = "left_side"
    RIGHT_SIDE = "right_side"
    DIAGONAL = "diagonal"
    UNCERTAIN = "uncertain"


class ExerciseType(str, Enum):
    """Coarse exercise classification."""
    SQUAT = "squat"
    DEADLIFT = "deadlift"
    OTHER = "other"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Landmark:
    """Single landmark with position and visibility."""
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0


def midpoint(a: Landmark, b: Landmark) -> Landmark:
    return Landmark(
        x=(a.x + b.x) / 2,
        y=(a.y + b.y) / 2,
        z=(a.z + b.z) / 2,
        visibility=(a.visibility + b.visibility) / 2,
    )


@dataclass(frozen=True)
class PoseFrame:
    """All landmarks for a single sampled timestamp."""
    timestamp: float
    landmarks: Tuple[Landmark, ...]

    def __getitem__(self, idx: int) -> Landmark:
        return self.landmarks[idx]

    def midpoint(self, left: int, right: int) -> Landmark:
        return midpoint(self.landmarks[left], self.landmarks[right])

    @property
    def hip_mid(self) -> Landmark:
        return self.midpoint(PoseLandmark.LEFT_HIP, PoseLandmark.RIGHT_HIP)

    @property
    def shoulder_mid(self) -> Landmark:
        return self.midpoint(PoseLandmark.LEFT_SHOULDER, PoseLandmark.RIGHT_SHOULDER)

    @property
    def hip_y(self) -> float:
        """Average hip height (larger = lower in the image)."""
        return (self.landmarks[PoseLandmark.LEFT_HIP].y + self.landmarks[PoseLandmark.RIGHT_HIP].y) / 2

    @property
    def shoulder_y(self) -> float:
        return (
            self.landmarks[PoseLandmark.LEFT_SHOULDER].y + self.landmarks[PoseLandmark.RIGHT_SHOULDER].y
        ) / 2

    @property
    def ankle_width(self) -> float:
        return abs(self.landmarks[PoseLandmark.LEFT_ANKLE].x - self.landmarks[PoseLandmark.RIGHT_ANKLE].x)


@dataclass(frozen=True)
class DetectedRep:
    """Frame boundaries of one repetition, indices into the frame sequence."""
    start_frame: int
    end_frame: int
    bottom_frame: int

    def __post_init__(self):
        if not self.start_frame <= self.bottom_frame <= self.end_frame:
            raise ValueError(
                f"Rep bottom {self.bottom_frame} outside [{self.start_frame}, {self.end_frame}]"
            )

    @property
    def frame_count(self) -> int:
        """Index span of the rep (end - start)."""
        return self.end_frame - self.start_frame


def hip_heights(frames: Sequence[PoseFrame]) -> list:
    """Average hip y for every frame."""
    return [f.hip_y for f in frames]

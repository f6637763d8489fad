"""Landmark input schemas."""

from typing import List

from pydantic import BaseModel, Field, field_validator

from squatcheck.cv.pose import NUM_LANDMARKS, Landmark, PoseFrame


class LandmarkIn(BaseModel):
    """Single landmark as produced by the pose provider."""
    x: float
    y: float
    z: float = 0.0
    visibility: float = Field(default=1.0, ge=0.0, le=1.0)

    def to_landmark(self) -> Landmark:
        return Landmark(x=self.x, y=self.y, z=self.z, visibility=self.visibility)


class PoseFrameIn(BaseModel):
    """All 33 landmarks for one sampled timestamp."""
    timestamp: float = Field(ge=0.0)
    landmarks: List[LandmarkIn] = Field(min_length=NUM_LANDMARKS, max_length=NUM_LANDMARKS)

    def to_frame(self) -> PoseFrame:
        return PoseFrame(
            timestamp=self.timestamp,
            landmarks=tuple(lm.to_landmark() for lm in self.landmarks),
        )


class PoseSequenceIn(BaseModel):
    """Ordered landmark frames for one video."""
    frames: List[PoseFrameIn]

    @field_validator("frames")
    @classmethod
    def timestamps_increasing(cls, frames: List[PoseFrameIn]) -> List[PoseFrameIn]:
        for prev, cur in zip(frames, frames[1:]):
            if cur.timestamp <= prev.timestamp:
                raise ValueError(
                    f"timestamps must be strictly increasing ({cur.timestamp} after {prev.timestamp})"
                )
        return frames

    def to_frames(self) -> List[PoseFrame]:
        return [f.to_frame() for f in self.frames]

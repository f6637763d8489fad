"""Analysis report schemas."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from squatcheck.cv.metric_scorer import MetricScore
from squatcheck.cv.squat_analyzer import AnalysisResult, RepData, TrimResult
from squatcheck.schemas.pose import PoseFrameIn, LandmarkIn


class CamelModel(BaseModel):
    """Serializes with camelCase keys for presentation layers."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MetricScoreResponse(CamelModel):
    score: int = Field(ge=0, le=100)
    rating: str
    summary: str
    issue_frames: List[int] = []
    confidence: str

    @classmethod
    def from_result(cls, score: MetricScore) -> "MetricScoreResponse":
        return cls(
            score=score.score,
            rating=score.rating.value,
            summary=score.summary,
            issue_frames=list(score.issue_frames),
            confidence=score.confidence.value,
        )


class RepDataResponse(CamelModel):
    """One rep with its metric scores keyed by metric name."""
    rep_number: int
    start_frame: int
    end_frame: int
    bottom_frame: int
    metrics: Dict[str, MetricScoreResponse]

    @classmethod
    def from_result(cls, rep: RepData) -> "RepDataResponse":
        return cls(
            rep_number=rep.rep_number,
            start_frame=rep.start_frame,
            end_frame=rep.end_frame,
            bottom_frame=rep.bottom_frame,
            metrics={m.value: MetricScoreResponse.from_result(s) for m, s in rep.metrics.items()},
        )


class AnalysisResponse(CamelModel):
    """Full squat report."""
    reps: List[RepDataResponse]
    overall: Dict[str, MetricScoreResponse]
    rep_count: int
    exercise_type: str
    camera_angle: str
    frame_count: Optional[int] = None

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisResponse":
        return cls(
            reps=[RepDataResponse.from_result(r) for r in result.reps],
            overall={m.value: MetricScoreResponse.from_result(s) for m, s in result.overall.items()},
            rep_count=result.rep_count,
            exercise_type=result.exercise_type.value,
            camera_angle=result.camera_angle.value,
            frame_count=result.frame_count,
        )


class TrimResponse(CamelModel):
    frames: List[PoseFrameIn]
    start_timestamp: float
    end_timestamp: float
    trim_start_index: int

    @classmethod
    def from_result(cls, trim: TrimResult) -> "TrimResponse":
        return cls(
            frames=[
                PoseFrameIn(
                    timestamp=f.timestamp,
                    landmarks=[
                        LandmarkIn(x=lm.x, y=lm.y, z=lm.z, visibility=lm.visibility)
                        for lm in f.landmarks
                    ],
                )
                for f in trim.frames
            ],
            start_timestamp=trim.start_timestamp,
            end_timestamp=trim.end_timestamp,
            trim_start_index=trim.trim_start_index,
        )

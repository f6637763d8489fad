"""Pydantic schemas for landmark input and analysis output."""

from squatcheck.schemas.pose import (
    LandmarkIn,
    PoseFrameIn,
    PoseSequenceIn,
)
from squatcheck.schemas.analysis import (
    MetricScoreResponse,
    RepDataResponse,
    AnalysisResponse,
    TrimResponse,
)

__all__ = [
    "LandmarkIn",
    "PoseFrameIn",
    "PoseSequenceIn",
    "MetricScoreResponse",
    "RepDataResponse",
    "AnalysisResponse",
    "TrimResponse",
]

"""Analysis configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Analysis settings loaded from environment variables (``SQUATCHECK_*``)."""

    model_config = SettingsConfigDict(
        env_prefix="SQUATCHECK_",
        env_file=".env",
        extra="ignore",
    )

    # Signal conditioning
    outlier_threshold_ratio: float = 0.15  # Max per-frame jump as a fraction of body height

    # Rep segmentation
    rep_smoothing_window: int = 5  # Centered moving average over hip height
    rep_min_prominence: float = 0.02  # Normalized units
    rep_prominence_window: int = 15  # Frames searched on each side of a candidate bottom
    min_motion_range: float = 0.005  # Below this hip range there is no squat at all

    # Input quality
    min_key_landmark_visibility: float = 0.3  # Mean visibility of hips/knees/ankles

    # Camera angle classification
    camera_stable_run: int = 5  # Consecutive frames with both shoulders visible
    camera_max_samples: int = 15
    camera_vote_threshold: float = 0.6

    # Scoring
    active_descent_ratio: float = 0.25  # Fraction of descent before a frame counts as active
    assumed_subject_height_inches: float = 72.0  # Normalized units -> inches calibration

    # Trimming
    trim_buffer_seconds: float = 2.5

    # Calling-layer policy: refuse deadlift / unrecognized exercises
    reject_non_squat: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""
Temporal landmark conditioning using One Euro filtering and outlier rejection.

SMOOTHING STRATEGY:
1. Outlier rejection: Per-frame jumps larger than 15% of body height are
   replaced by the previous position (visibility from the new observation)
2. One Euro filter: Per-coordinate adaptive low-pass. The cutoff rises with
   the smoothed speed, so fast motion keeps its shape while jitter at rest
   is removed
3. Per-region tuning: torso/hips are stiffest, legs medium, extremities loosest

One filter bank (33 landmarks x 3 coordinates) is created per conditioning
pass and discarded afterwards.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
import logging

from squatcheck.config import Settings, get_settings
from squatcheck.cv.pose import Landmark, NUM_LANDMARKS, PoseFrame, PoseLandmark

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterPreset:
    """One Euro filter tuning for a group of landmarks."""
    min_cutoff: float
    beta: float
    d_cutoff: float = 1.0


TORSO_PRESET = FilterPreset(min_cutoff=1.5, beta=0.005)
LEG_PRESET = FilterPreset(min_cutoff=0.8, beta=0.01)
EXTREMITY_PRESET = FilterPreset(min_cutoff=0.5, beta=0.015)

TORSO_LANDMARKS = frozenset({
    PoseLandmark.LEFT_SHOULDER, PoseLandmark.RIGHT_SHOULDER,
    PoseLandmark.LEFT_HIP, PoseLandmark.RIGHT_HIP,
})
LEG_LANDMARKS = frozenset({
    PoseLandmark.LEFT_KNEE, PoseLandmark.RIGHT_KNEE,
    PoseLandmark.LEFT_ANKLE, PoseLandmark.RIGHT_ANKLE,
})


def preset_for(landmark_idx: int) -> FilterPreset:
    """Filter preset for a landmark index."""
    if landmark_idx in TORSO_LANDMARKS:
        return TORSO_PRESET
    if landmark_idx in LEG_LANDMARKS:
        return LEG_PRESET
    return EXTREMITY_PRESET


class OneEuroFilter:
    """
    Adaptive exponential smoother for a single scalar signal.

    State is (previous output, previous smoothed derivative, previous
    timestamp). The first sample passes through unchanged.
    """

    def __init__(self, min_cutoff: float = 1.0, beta: float = 0.007, d_cutoff: float = 1.0):
        self.min_cutoff = min_cutoff
        self.beta = beta
        self.d_cutoff = d_cutoff
        self.x_prev = 0.0
        self.dx_prev = 0.0
        self.t_prev = 0.0
        self.initialized = False

    @classmethod
    def from_preset(cls, preset: FilterPreset) -> "OneEuroFilter":
        return cls(preset.min_cutoff, preset.beta, preset.d_cutoff)

    @staticmethod
    def _smoothing_factor(cutoff: float, dt: float) -> float:
        r = 2 * math.pi * cutoff * dt
        return r / (r + 1)

    def filter(self, x: float, t: float) -> float:
        if not self.initialized:
            self.x_prev = x
            self.dx_prev = 0.0
            self.t_prev = t
            self.initialized = True
            return x

        dt = t - self.t_prev
        if dt <= 0:
            return self.x_prev

        dx = (x - self.x_prev) / dt
        a_d = self._smoothing_factor(self.d_cutoff, dt)
        dx_smoothed = a_d * dx + (1 - a_d) * self.dx_prev

        cutoff = self.min_cutoff + self.beta * abs(dx_smoothed)
        a = self._smoothing_factor(cutoff, dt)
        x_filtered = a * x + (1 - a) * self.x_prev

        self.x_prev = x_filtered
        self.dx_prev = dx_smoothed
        self.t_prev = t
        return x_filtered


def estimate_body_height(landmarks: Sequence[Landmark]) -> float:
    """Vertical distance between mid-shoulder and mid-ankle."""
    shoulder_y = (landmarks[PoseLandmark.LEFT_SHOULDER].y + landmarks[PoseLandmark.RIGHT_SHOULDER].y) / 2
    ankle_y = (landmarks[PoseLandmark.LEFT_ANKLE].y + landmarks[PoseLandmark.RIGHT_ANKLE].y) / 2
    return abs(ankle_y - shoulder_y)


class OutlierRejector:
    """
    Replaces landmarks that jump implausibly far between consecutive frames.

    Body height is estimated from the first frame that yields a non-zero
    value; until then every frame passes through.
    """

    def __init__(self, threshold_ratio: float = 0.15):
        self.threshold_ratio = threshold_ratio
        self.body_height = 0.0
        self._previous: Optional[List[Landmark]] = None
        self.rejected_count = 0

    def process(self, landmarks: Sequence[Landmark]) -> List[Landmark]:
        if self.body_height <= 0:
            self.body_height = estimate_body_height(landmarks)

        if self._previous is None or self.body_height <= 0:
            accepted = list(landmarks)
        else:
            threshold = self.body_height * self.threshold_ratio
            accepted = []
            for i, lm in enumerate(landmarks):
                prev = self._previous[i]
                movement = math.hypot(lm.x - prev.x, lm.y - prev.y)
                if movement > threshold:
                    logger.debug(f"Outlier rejected: landmark {i}, movement {movement:.4f} > {threshold:.4f}")
                    self.rejected_count += 1
                    accepted.append(Landmark(x=prev.x, y=prev.y, z=prev.z, visibility=lm.visibility))
                else:
                    accepted.append(lm)

        self._previous = accepted
        return accepted


class KeypointSmoother:
    """
    Conditions a raw landmark stream before analysis.

    Output has the same length and timestamps as the input. Visibility is
    carried through unfiltered.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        presets: Optional[Dict[int, FilterPreset]] = None,
    ):
        self.settings = settings or get_settings()
        self.presets = presets or {i: preset_for(i) for i in range(NUM_LANDMARKS)}

    def _create_filter_bank(self) -> List[List[OneEuroFilter]]:
        return [
            [OneEuroFilter.from_preset(self.presets[i]) for _ in range(3)]
            for i in range(NUM_LANDMARKS)
        ]

    def condition(self, frames: Sequence[PoseFrame]) -> List[PoseFrame]:
        """Return a new, conditioned frame sequence."""
        filters = self._create_filter_bank()
        rejector = OutlierRejector(self.settings.outlier_threshold_ratio)

        conditioned: List[PoseFrame] = []
        for frame in frames:
            t = frame.timestamp
            accepted = rejector.process(frame.landmarks)
            landmarks = tuple(
                Landmark(
                    x=filters[j][0].filter(lm.x, t),
                    y=filters[j][1].filter(lm.y, t),
                    z=filters[j][2].filter(lm.z, t),
                    visibility=lm.visibility,
                )
                for j, lm in enumerate(accepted)
            )
            conditioned.append(PoseFrame(timestamp=t, landmarks=landmarks))

        logger.info(
            f"Conditioned {len(conditioned)} frames "
            f"(body height {rejector.body_height:.3f}, {rejector.rejected_count} outliers rejected)"
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Hip jitter {self.jitter(frames, PoseLandmark.LEFT_HIP):.4f} -> "
                f"{self.jitter(conditioned, PoseLandmark.LEFT_HIP):.4f}"
            )
        return conditioned

    @staticmethod
    def jitter(frames: Sequence[PoseFrame], landmark_idx: int) -> float:
        """Mean absolute frame-to-frame displacement of one landmark."""
        if len(frames) < 2:
            return 0.0
        xs = np.array([f[landmark_idx].x for f in frames])
        ys = np.array([f[landmark_idx].y for f in frames])
        return float(np.mean(np.hypot(np.diff(xs), np.diff(ys))))

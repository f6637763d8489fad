"""
Rep segmentation from the hip-height signal.

Average hip y grows as the lifter sinks (image y points down), so every
squat bottom is a local MAXIMUM of the signal.

DETECTION:
1. Smooth hip y with a centered moving average (window 5)
2. Candidate bottoms: strictly greater than 2 neighbours on each side
3. Prominence test: peak minus the larger of the minima in the 15-frame
   windows on either side must reach 0.02
4. Boundaries: midpoint between neighbouring bottoms; the outer edges walk
   away from the first/last bottom until the signal stops descending

FALLBACK:
No prominent bottom but the clip still moves (hip range > 0.005): the
whole clip is one rep whose bottom is the global maximum. Anything flatter
is a no-reps error.
"""

from typing import List, Optional, Sequence

import numpy as np
from scipy.signal import argrelmax
import logging

from squatcheck.config import Settings, get_settings
from squatcheck.cv.pose import DetectedRep, PoseFrame, hip_heights
from squatcheck.errors import NoRepsDetectedError

logger = logging.getLogger(__name__)

MIN_FRAMES = 5


def moving_average(values: Sequence[float], window_size: int) -> np.ndarray:
    """Centered moving average; the window shrinks at the edges."""
    data = np.asarray(values, dtype=float)
    n = len(data)
    if n == 0:
        return data
    half = window_size // 2
    csum = np.concatenate([[0.0], np.cumsum(data)])
    idx = np.arange(n)
    lo = np.maximum(0, idx - half)
    hi = np.minimum(n - 1, idx + half)
    return (csum[hi + 1] - csum[lo]) / (hi - lo + 1)


def find_valley(smoothed: np.ndarray, start: int, direction: int, boundary: int) -> int:
    """Walk from a bottom toward `boundary` until the signal stops descending."""
    i = start
    while True:
        nxt = i + direction
        if (direction < 0 and nxt < boundary) or (direction > 0 and nxt > boundary):
            break
        if smoothed[nxt] > smoothed[i]:
            break
        i = nxt
    return i


class RepDetector:
    """
    Splits a conditioned frame sequence into repetitions.

    `detect()` returns only prominence-qualified reps (possibly none);
    `segment()` adds the whole-clip fallback used for scoring.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def smoothed_hip_signal(self, frames: Sequence[PoseFrame]) -> np.ndarray:
        return moving_average(hip_heights(frames), self.settings.rep_smoothing_window)

    def find_bottoms(self, smoothed: np.ndarray) -> List[int]:
        """Indices of prominent local maxima of the smoothed hip signal."""
        n = len(smoothed)
        if n < MIN_FRAMES:
            return []

        window = self.settings.rep_prominence_window
        bottoms = []
        (candidates,) = argrelmax(smoothed, order=2)
        for i in candidates:
            i = int(i)
            if i < 2 or i > n - 3:
                continue
            left_min = float(np.min(smoothed[max(0, i - window):i + 1]))
            right_min = float(np.min(smoothed[i:min(n, i + window + 1)]))
            prominence = float(smoothed[i]) - max(left_min, right_min)
            logger.debug(f"Candidate bottom at frame {i}: prominence {prominence:.4f}")
            if prominence >= self.settings.rep_min_prominence:
                bottoms.append(i)
        return bottoms

    def detect(self, frames: Sequence[PoseFrame]) -> List[DetectedRep]:
        """Detect reps around prominent squat bottoms."""
        if len(frames) < MIN_FRAMES:
            return []

        smoothed = self.smoothed_hip_signal(frames)
        bottoms = self.find_bottoms(smoothed)
        last = len(frames) - 1

        reps = []
        for k, bottom in enumerate(bottoms):
            if k == 0:
                start = find_valley(smoothed, bottom, -1, 0)
            else:
                start = (bottoms[k - 1] + bottom) // 2

            if k == len(bottoms) - 1:
                end = find_valley(smoothed, bottom, 1, last)
            else:
                end = (bottom + bottoms[k + 1]) // 2 - 1

            reps.append(DetectedRep(
                start_frame=max(0, start),
                end_frame=min(last, end),
                bottom_frame=bottom,
            ))

        logger.info(f"Detected {len(reps)} reps (bottoms at {bottoms})")
        return reps

    def require_motion(self, frames: Sequence[PoseFrame]) -> float:
        """
        Hip height range over the clip.

        Raises:
            NoRepsDetectedError: range is below the minimal-motion floor
        """
        if not frames:
            raise NoRepsDetectedError()

        motion = float(np.ptp(hip_heights(frames)))
        if motion < self.settings.min_motion_range:
            logger.warning(f"No squat motion: hip range {motion:.4f} < {self.settings.min_motion_range}")
            raise NoRepsDetectedError()
        return motion

    def segment(self, frames: Sequence[PoseFrame]) -> List[DetectedRep]:
        """
        Detect reps, falling back to a single whole-clip rep.

        Raises:
            NoRepsDetectedError: hip height range is below the minimal-motion floor
        """
        reps = self.detect(frames)
        if reps:
            return reps

        motion = self.require_motion(frames)
        bottom = int(np.argmax(hip_heights(frames)))
        logger.warning(
            f"No prominent squat bottom found, treating whole clip as one rep "
            f"(hip range {motion:.4f}, bottom at frame {bottom})"
        )
        return [DetectedRep(start_frame=0, end_frame=len(frames) - 1, bottom_frame=bottom)]

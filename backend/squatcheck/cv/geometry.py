"""Planar geometry helpers shared by the classifiers and scorers."""

import math

import numpy as np

from squatcheck.cv.pose import Landmark, midpoint  # noqa: F401


def angle_between(a: Landmark, b: Landmark, c: Landmark) -> float:
    """Angle ABC in degrees, using x/y only. Degenerate segments give 0."""
    ba = np.array([a.x - b.x, a.y - b.y])
    bc = np.array([c.x - b.x, c.y - b.y])
    mag_ba = np.linalg.norm(ba)
    mag_bc = np.linalg.norm(bc)
    if mag_ba == 0 or mag_bc == 0:
        return 0.0
    cos_angle = clamp(float(np.dot(ba, bc) / (mag_ba * mag_bc)), -1.0, 1.0)
    return math.degrees(math.acos(cos_angle))


def angle_from_vertical(top: Landmark, bottom: Landmark) -> float:
    """Unsigned angle of the top->bottom segment from vertical, in degrees (0 = upright)."""
    dx = top.x - bottom.x
    dy = top.y - bottom.y
    return math.degrees(math.atan2(abs(dx), abs(dy)))


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))

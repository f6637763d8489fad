"""
Squat form checks.

Each check scores one rep window of conditioned frames. Positions are
normalized image coordinates (y grows downward); distances reported in
inches use the fixed subject-height calibration from settings.

Checks by what they need to see:
- Side view:    depth, back angle, bar path, butt wink, knee travel,
                thoracic rounding, hip rise rate, head position
- Front view:   knee tracking, symmetry, stance width, hip shift,
                knee valgus, stance width shift
- Any view:     tempo, heel rise, reversal control, depth consistency
"""

import math
from typing import List, Sequence

import numpy as np

from squatcheck.cv.geometry import angle_between, angle_from_vertical, clamp
from squatcheck.cv.metric_scorer import (
    FormCheck,
    InsufficientData,
    Measurement,
    Metric,
    MetricRating,
    MetricScore,
    ThresholdCheck,
    get_rating,
    round_score,
    score_lower_is_better,
)
from squatcheck.cv.pose import DetectedRep, PoseFrame, PoseLandmark as L

GREEN, YELLOW, RED = MetricRating.GREEN, MetricRating.YELLOW, MetricRating.RED


def trunk_angle(frame: PoseFrame) -> float:
    """Shoulder-hip line angle from vertical, degrees."""
    return angle_from_vertical(frame.shoulder_mid, frame.hip_mid)


def head_angle(frame: PoseFrame) -> float:
    """Nose to shoulder-midpoint angle from vertical, degrees."""
    return angle_from_vertical(frame[L.NOSE], frame.shoulder_mid)


class DepthCheck(FormCheck):
    """Hip crease below the top of the knee at the bottom of the rep."""

    metric = Metric.DEPTH

    def evaluate(self, frames: Sequence[PoseFrame], rep: DetectedRep) -> MetricScore:
        f = frames[rep.bottom_frame]
        knee_y = (f[L.LEFT_KNEE].y + f[L.RIGHT_KNEE].y) / 2
        extra_depth = f.hip_y - knee_y

        if extra_depth > 0:
            return MetricScore.build(
                clamp(80 + extra_depth * 200, 80, 100),
                "Good depth: hips dropped below parallel",
            )

        deficit = -extra_depth
        if deficit < 0.03:
            return MetricScore.build(
                clamp(50 + (1 - deficit / 0.03) * 29, 50, 79),
                "Close to parallel but hips didn't quite reach below knee level",
            )
        return MetricScore.build(
            clamp(49 - deficit * 300, 0, 49),
            "Squat depth is above parallel, try to get hips below knee level",
            [rep.bottom_frame],
        )


class KneeTrackingCheck(ThresholdCheck):
    """Horizontal knee drift away from the ankle, relative to stance width."""

    metric = Metric.KNEE_TRACKING
    good, warn, slope = 0.05, 0.1, 200
    summaries = {
        GREEN: "Good knee tracking: knees stayed aligned over toes",
        YELLOW: "Minor knee drift detected, focus on pushing knees out over toes",
        RED: "Significant knee cave detected: knees collapsed inward during the squat",
    }

    def measure(self, frames, rep):
        max_drift = 0.0
        issues = []
        for i in self.active_range(frames, rep):
            f = frames[i]
            stance = f.ankle_width
            if stance < 0.01:
                continue
            drift = max(
                abs(f[L.LEFT_KNEE].x - f[L.LEFT_ANKLE].x) / stance,
                abs(f[L.RIGHT_KNEE].x - f[L.RIGHT_ANKLE].x) / stance,
            )
            max_drift = max(max_drift, drift)
            if drift > 0.1:
                issues.append(i)
        return Measurement(max_drift, issues)


class BackAngleCheck(FormCheck):
    """Forward lean of the torso; large or erratic lean scores low."""

    metric = Metric.BACK_ANGLE

    def evaluate(self, frames, rep):
        indices = list(self.rep_range(rep))
        angles = np.array([trunk_angle(frames[i]) for i in indices])
        issues = [i for i, a in zip(indices, angles) if a > 60]

        max_angle = float(np.max(angles))
        std_dev = float(np.std(angles))

        if max_angle <= 45 and std_dev < 10:
            score = clamp(80 + (1 - max_angle / 45) * 20, 80, 100)
            summary = "Good torso position: maintained an upright back angle"
        elif max_angle <= 60:
            score = clamp(50 + ((60 - max_angle) / 15) * 29, 50, 79)
            summary = "Moderate forward lean, try to keep your chest more upright"
        else:
            score = clamp(49 - (max_angle - 60) * 2, 0, 49)
            summary = "Excessive forward lean, risk of lower back strain"

        if std_dev > 15:
            score = max(0.0, score - 10)
            summary += ". Torso angle was inconsistent throughout the rep"

        return MetricScore.build(score, summary, issues)


class BarPathCheck(ThresholdCheck):
    """Horizontal drift of the mid-shoulder point (bar proxy)."""

    metric = Metric.BAR_PATH
    good, warn, slope = 2, 4, 5
    summaries = {
        GREEN: "Good bar path: minimal horizontal drift",
        YELLOW: "Some horizontal drift in bar path, focus on keeping the bar over midfoot",
        RED: "Excessive bar path deviation: the bar shifted significantly forward or back",
    }

    def measure(self, frames, rep):
        indices = list(self.rep_range(rep))
        xs = np.array([frames[i].shoulder_mid.x for i in indices])
        deviation = np.abs(xs - xs.mean())
        issues = [i for i, d in zip(indices, deviation) if self.to_inches(d) > 4]
        return Measurement(self.to_inches(float(deviation.max())), issues)


class SymmetryCheck(ThresholdCheck):
    """Left/right balance of hips, knees and shoulders at the bottom."""

    metric = Metric.SYMMETRY
    good, warn, slope = 0.05, 0.1, 200
    summaries = {
        GREEN: "Good symmetry: both sides moved evenly",
        YELLOW: "Minor asymmetry detected, one side is working slightly harder",
        RED: "Significant asymmetry: noticeable imbalance between left and right sides",
    }

    def measure(self, frames, rep):
        f = frames[rep.bottom_frame]
        left_knee = angle_between(f[L.LEFT_HIP], f[L.LEFT_KNEE], f[L.LEFT_ANKLE])
        right_knee = angle_between(f[L.RIGHT_HIP], f[L.RIGHT_KNEE], f[L.RIGHT_ANKLE])
        mean_knee = (left_knee + right_knee) / 2
        knee_pct = abs(left_knee - right_knee) / mean_knee if mean_knee > 0 else 0.0

        ankle_y = (f[L.LEFT_ANKLE].y + f[L.RIGHT_ANKLE].y) / 2
        body_height = abs(f.shoulder_y - ankle_y)
        if body_height > 0:
            hip_pct = abs(f[L.LEFT_HIP].y - f[L.RIGHT_HIP].y) / body_height
            shoulder_pct = abs(f[L.LEFT_SHOULDER].y - f[L.RIGHT_SHOULDER].y) / body_height
        else:
            hip_pct = shoulder_pct = 0.0

        return Measurement((hip_pct + knee_pct + shoulder_pct) / 3)

    def band_issue_frames(self, rating, rep, measurement):
        return [] if rating == GREEN else [rep.bottom_frame]


class ButtWinkCheck(ThresholdCheck):
    """Pelvic tuck: trunk angle increase in the bottom window over the approach."""

    metric = Metric.BUTT_WINK
    good, warn, slope = 10, 15, 3
    summaries = {
        GREEN: "Good pelvic control: minimal butt wink at the bottom",
        YELLOW: "Moderate butt wink, some posterior pelvic tilt at depth",
        RED: "Significant butt wink: pelvis tucks under at the bottom, risking lower back strain",
    }

    def _windows(self, rep: DetectedRep):
        window = max(1, int(rep.frame_count * 0.15))
        approach = range(
            max(rep.start_frame, rep.bottom_frame - window * 2),
            min(rep.bottom_frame - window, rep.end_frame),
        )
        bottom = range(
            max(rep.start_frame, rep.bottom_frame - window),
            min(rep.end_frame, rep.bottom_frame + window) + 1,
        )
        return approach, bottom

    def measure(self, frames, rep):
        approach, bottom = self._windows(rep)
        if len(approach) == 0 or len(bottom) == 0:
            raise InsufficientData("Could not fully assess butt wink")

        approach_angle = float(np.mean([trunk_angle(frames[i]) for i in approach]))
        max_bottom_angle = max(trunk_angle(frames[i]) for i in bottom)
        return Measurement(max(0.0, max_bottom_angle - approach_angle))

    def band_issue_frames(self, rating, rep, measurement):
        if rating == GREEN:
            return []
        return list(self._windows(rep)[1])


class TempoCheck(FormCheck):
    """Descent and ascent durations from frame timestamps."""

    metric = Metric.TEMPO

    def evaluate(self, frames, rep):
        start_t = frames[rep.start_frame].timestamp
        bottom_t = frames[rep.bottom_frame].timestamp
        end_t = frames[rep.end_frame].timestamp

        eccentric = bottom_t - start_t
        concentric = end_t - bottom_t
        total = end_t - start_t

        score = 100
        issues: List[str] = []
        issue_frames: List[int] = []

        if total < 1:
            score = min(score, 30)
            issues.append("rep completed too quickly")
            issue_frames = list(self.rep_range(rep))

        if eccentric < 1:
            score = min(score, 60)
            issues.append("descent too fast (< 1s)")
        elif eccentric > 4:
            score = min(score, 70)
            issues.append("descent very slow")

        if concentric < 0.8:
            score = min(score, 65)
            issues.append("ascent very fast")
        elif 2.5 < concentric <= 3:
            score = min(score, 75)
            issues.append("ascent slightly slow")
        elif concentric > 3:
            score = min(score, 60)
            issues.append("ascent too slow (> 3s)")

        if eccentric > 0 and concentric > 0 and eccentric / concentric < 1.0:
            score = min(score, 65)
            issues.append("concentric slower than eccentric")

        timing = f"{eccentric:.1f}s down, {concentric:.1f}s up"
        if issues:
            summary = f"Tempo: {timing}: {', '.join(issues)}"
        else:
            summary = f"Good tempo: {timing}"
        return MetricScore.build(score, summary, issue_frames)


class HeelRiseCheck(ThresholdCheck):
    """Upward heel travel relative to the start of the rep."""

    metric = Metric.HEEL_RISE
    good, warn, slope = 0.015, 0.03, 500
    summaries = {
        GREEN: "Good heel contact: feet stayed flat throughout the squat",
        YELLOW: "Minor heel rise detected, work on ankle mobility or try heel-elevated shoes",
        RED: "Significant heel rise: heels lifted off the ground during the squat",
    }

    @staticmethod
    def _heel_y(frame: PoseFrame) -> float:
        return (frame[L.LEFT_HEEL].y + frame[L.RIGHT_HEEL].y) / 2

    def measure(self, frames, rep):
        start_y = self._heel_y(frames[rep.start_frame])
        max_rise = 0.0
        issues = []
        for i in self.rep_range(rep):
            rise = start_y - self._heel_y(frames[i])
            max_rise = max(max_rise, rise)
            if rise > 0.015:
                issues.append(i)
        return Measurement(max_rise, issues)


class StanceWidthCheck(FormCheck):
    """Ankle width relative to hip width at the start of the rep."""

    metric = Metric.STANCE_WIDTH

    def evaluate(self, frames, rep):
        f = frames[rep.start_frame]
        hip_width = abs(f[L.LEFT_HIP].x - f[L.RIGHT_HIP].x)
        if hip_width < 0.01:
            raise InsufficientData("Could not assess stance width: hip width too small to measure")

        ratio = f.ankle_width / hip_width

        if 1.2 <= ratio <= 1.8:
            return MetricScore.build(
                clamp(80 + (1 - abs(ratio - 1.5) / 0.3) * 20, 80, 100),
                f"Good stance width: ankles are {ratio:.1f}x hip width",
            )

        if 1.1 <= ratio < 1.2 or 1.8 < ratio <= 2.0:
            nearest = min(abs(ratio - 1.2), abs(ratio - 1.8))
            score = clamp(50 + 29 * (1 - nearest / 0.2), 50, 79)
            if ratio < 1.2:
                summary = "Stance slightly narrow, try widening your feet a bit"
            else:
                summary = "Stance slightly wide, consider narrowing your feet slightly"
            return MetricScore.build(score, summary, [rep.start_frame])

        if ratio < 1.1:
            score = clamp(49 - (1.1 - ratio) * 200, 0, 49)
            summary = "Stance too narrow: feet are closer than hip width, limiting stability"
        else:
            score = clamp(49 - (ratio - 2.0) * 100, 0, 49)
            summary = "Stance very wide: this may strain your inner thighs and limit depth"
        return MetricScore.build(score, summary, [rep.start_frame])


class HipShiftCheck(ThresholdCheck):
    """Lateral sway of the hip midpoint during the ascent."""

    metric = Metric.HIP_SHIFT
    good, warn, slope = 1.5, 3, 5
    summaries = {
        GREEN: "Good hip stability: hips stayed centered during ascent",
        YELLOW: "Minor hip shift detected: hips drifted laterally during ascent",
        RED: "Significant hip shift: hips swayed to one side, suggesting a strength imbalance",
    }

    def measure(self, frames, rep):
        indices = list(range(rep.bottom_frame, rep.end_frame + 1))
        if len(indices) < 2:
            raise InsufficientData("Could not assess hip shift")

        xs = np.array([frames[i].hip_mid.x for i in indices])
        deviation = np.abs(xs - xs.mean())
        issues = [i for i, d in zip(indices, deviation) if self.to_inches(d) > 1.5]
        return Measurement(self.to_inches(float(deviation.max())), issues)


class KneeValgusCheck(ThresholdCheck):
    """Inward knee collapse relative to the hip-ankle line, as an angle."""

    metric = Metric.KNEE_VALGUS
    good, warn, slope = 10, 15, 3
    summaries = {
        GREEN: "Good knee alignment: knees tracked in line with toes",
        YELLOW: "Minor knee valgus: knees collapsed slightly inward",
        RED: "Significant knee valgus: knees caved inward, increasing injury risk",
    }

    def measure(self, frames, rep):
        max_angle = 0.0
        issues = []
        for i in self.active_range(frames, rep):
            f = frames[i]
            lh, lk, la = f[L.LEFT_HIP], f[L.LEFT_KNEE], f[L.LEFT_ANKLE]
            rh, rk, ra = f[L.RIGHT_HIP], f[L.RIGHT_KNEE], f[L.RIGHT_ANKLE]

            # positive = knee inside the hip-ankle line
            left_inward = lk.x - (lh.x + la.x) / 2
            right_inward = (rh.x + ra.x) / 2 - rk.x

            leg_length = abs(lh.y - la.y)
            frame_max = 0.0
            if leg_length > 0:
                if left_inward > 0:
                    frame_max = max(frame_max, math.degrees(math.atan2(left_inward, leg_length)))
                if right_inward > 0:
                    frame_max = max(frame_max, math.degrees(math.atan2(right_inward, leg_length)))

            max_angle = max(max_angle, frame_max)
            if frame_max > 10:
                issues.append(i)
        return Measurement(max_angle, issues)


class KneeTravelCheck(ThresholdCheck):
    """Forward knee travel past the toes at the bottom."""

    metric = Metric.KNEE_TRAVEL
    good, warn, slope = 2, 4, 5
    summaries = {
        GREEN: "Good knee position: knees stayed near or behind toe line",
        YELLOW: "Moderate knee travel: knees tracked slightly past toes",
        RED: "Excessive forward knee travel: knees extended well past toes, increasing knee stress",
    }

    def measure(self, frames, rep):
        f = frames[rep.bottom_frame]
        travel = max(
            abs(f[L.LEFT_KNEE].x - f[L.LEFT_FOOT_INDEX].x),
            abs(f[L.RIGHT_KNEE].x - f[L.RIGHT_FOOT_INDEX].x),
        )
        return Measurement(self.to_inches(travel))

    def band_issue_frames(self, rating, rep, measurement):
        return [] if rating == GREEN else [rep.bottom_frame]


class DepthConsistencyCheck(ThresholdCheck):
    """
    Variation of bottom hip height across all reps of a video.

    Cross-rep: scored once per video with `score_reps()`.
    """

    metric = Metric.DEPTH_CONSISTENCY
    good, warn, slope = 0.02, 0.05, 500
    summaries = {
        GREEN: "Excellent depth consistency: bottom position was very consistent across reps",
        YELLOW: "Minor depth variation, some reps were deeper than others",
        RED: "Inconsistent depth: significant variation in bottom position between reps",
    }

    def score_reps(self, frames: Sequence[PoseFrame], reps: Sequence[DetectedRep]) -> MetricScore:
        if len(reps) < 2:
            return MetricScore.neutral("Single rep: consistency not applicable", score=100)

        depths = np.array([frames[r.bottom_frame].hip_y for r in reps])
        mean = float(depths.mean())
        cv = float(depths.std()) / mean if mean > 0 else 0.0

        raw = score_lower_is_better(cv, self.good, self.warn, self.slope)
        rating = get_rating(round_score(raw))
        if rating == YELLOW:
            # shallowest bottom = smallest hip y
            issues = [reps[int(np.argmin(depths))].bottom_frame]
        elif rating == RED:
            issues = [r.bottom_frame for r in reps]
        else:
            issues = []
        return MetricScore.build(raw, self.summaries[rating], issues)

    def evaluate(self, frames, rep):
        return self.score_reps(frames, [rep])


class ThoracicRoundingCheck(ThresholdCheck):
    """Upper-back rounding: head segment leaning further than the trunk."""

    metric = Metric.THORACIC_ROUNDING
    good, warn, slope = 15, 25, 2
    summaries = {
        GREEN: "Good upper back position: thoracic spine stayed neutral",
        YELLOW: "Moderate thoracic rounding: upper back collapsed slightly under load",
        RED: "Significant thoracic rounding: upper back rounded excessively",
    }

    def measure(self, frames, rep):
        max_rounding = 0.0
        issues = []
        for i in self.active_range(frames, rep):
            rounding = max(0.0, head_angle(frames[i]) - trunk_angle(frames[i]))
            max_rounding = max(max_rounding, rounding)
            if rounding > 20:
                issues.append(i)
        return Measurement(max_rounding, issues)


class HipRiseRateCheck(ThresholdCheck):
    """Good-morning pattern: hips rising faster than shoulders out of the hole."""

    metric = Metric.HIP_RISE_RATE
    good, warn, slope = 1.3, 1.8, 15
    summaries = {
        GREEN: "Good ascent mechanics: hips and shoulders rose together",
        YELLOW: "Hips rising slightly ahead of chest, mild good-morning tendency",
        RED: "Good-morning pattern: hips shot up while chest stayed low, risking lower back strain",
    }

    def measure(self, frames, rep):
        ascent = rep.end_frame - rep.bottom_frame
        if ascent < 3:
            raise InsufficientData("Could not assess hip rise rate: ascent too short")

        chunk = max(2, ascent // 5)
        step = max(1, chunk // 2)
        max_ratio = 0.0
        issues = []
        for i in range(rep.bottom_frame, rep.end_frame - chunk, step):
            f1 = frames[i]
            f2 = frames[min(i + chunk, rep.end_frame)]
            hip_rise = f1.hip_y - f2.hip_y
            shoulder_rise = f1.shoulder_y - f2.shoulder_y

            if shoulder_rise > 0.001:
                ratio = hip_rise / shoulder_rise
                max_ratio = max(max_ratio, ratio)
                if ratio > 1.5:
                    issues.append(i)
            elif hip_rise > 0.01:
                max_ratio = max(max_ratio, 3.0)
                issues.append(i)
        return Measurement(max_ratio, issues)


class ReversalControlCheck(ThresholdCheck):
    """Bounce at the bottom: change in vertical hip velocity across the turnaround."""

    metric = Metric.REVERSAL_CONTROL
    good, warn, slope = 0.3, 0.6, 30
    summaries = {
        GREEN: "Good reversal control: smooth, controlled transition at the bottom",
        YELLOW: "Moderate bounce at bottom, try pausing briefly at the bottom for more control",
        RED: "Hard bounce at bottom: rapid direction change increases injury risk",
    }

    def _window(self, rep: DetectedRep):
        window = max(2, int(rep.frame_count * 0.1))
        return max(rep.start_frame, rep.bottom_frame - window), min(rep.end_frame, rep.bottom_frame + window)

    @staticmethod
    def _velocities(frames, indices) -> List[float]:
        velocities = []
        for i in indices:
            dt = frames[i + 1].timestamp - frames[i].timestamp
            if dt > 0:
                velocities.append((frames[i + 1].hip_y - frames[i].hip_y) / dt)
        return velocities

    def measure(self, frames, rep):
        pre_start, post_end = self._window(rep)
        if post_end - pre_start < 3:
            raise InsufficientData("Could not assess reversal control")

        pre = self._velocities(frames, range(pre_start, rep.bottom_frame))
        post = self._velocities(frames, range(rep.bottom_frame, post_end))
        if not pre or not post:
            raise InsufficientData("Could not assess reversal control")

        return Measurement(abs(float(np.mean(pre)) - float(np.mean(post))))

    def band_issue_frames(self, rating, rep, measurement):
        if rating == YELLOW:
            return [rep.bottom_frame]
        if rating == RED:
            pre_start, post_end = self._window(rep)
            return list(range(pre_start, post_end + 1))
        return []


class StanceWidthShiftCheck(ThresholdCheck):
    """Feet sliding wider or narrower during the rep."""

    metric = Metric.STANCE_WIDTH_SHIFT
    good, warn, slope = 0.08, 0.15, 200
    summaries = {
        GREEN: "Good stance stability: feet stayed in position throughout the rep",
        YELLOW: "Minor stance shift: feet drifted slightly during the rep",
        RED: "Significant stance shift: feet moved noticeably wider or narrower mid-rep",
    }

    def measure(self, frames, rep):
        start_width = frames[rep.start_frame].ankle_width
        if start_width < 0.01:
            raise InsufficientData("Could not assess stance width shift")

        max_shift = 0.0
        issues = []
        for i in self.rep_range(rep):
            shift = abs(frames[i].ankle_width - start_width) / start_width
            max_shift = max(max_shift, shift)
            if shift > 0.1:
                issues.append(i)
        return Measurement(max_shift, issues)

    def band_issue_frames(self, rating, rep, measurement):
        return [rep.bottom_frame] if rating == YELLOW else []


class HeadPositionCheck(ThresholdCheck):
    """Neck alignment: nose angle from vertical above the shoulders."""

    metric = Metric.HEAD_POSITION
    good, warn, slope = 25, 40, 2
    summaries = {
        GREEN: "Good head position: neck stayed in neutral alignment",
        YELLOW: "Head position slightly off, avoid excessive neck extension or flexion",
        RED: "Poor head position: neck was excessively extended or flexed, risking cervical strain",
    }

    def measure(self, frames, rep):
        max_angle = 0.0
        issues = []
        for i in self.active_range(frames, rep):
            angle = head_angle(frames[i])
            max_angle = max(max_angle, angle)
            if angle > 35:
                issues.append(i)
        return Measurement(max_angle, issues)


# Per-rep checks in report order; depth consistency is scored across reps
FORM_CHECKS = (
    DepthCheck,
    KneeTrackingCheck,
    BackAngleCheck,
    BarPathCheck,
    SymmetryCheck,
    ButtWinkCheck,
    TempoCheck,
    HeelRiseCheck,
    StanceWidthCheck,
    HipShiftCheck,
    KneeValgusCheck,
    KneeTravelCheck,
    ThoracicRoundingCheck,
    HipRiseRateCheck,
    ReversalControlCheck,
    StanceWidthShiftCheck,
    HeadPositionCheck,
)

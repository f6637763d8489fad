"""Tests for One Euro filtering and outlier rejection."""

import logging
import math

import numpy as np
import pytest

from squatcheck.cv.keypoint_smoother import (
    EXTREMITY_PRESET,
    LEG_PRESET,
    TORSO_PRESET,
    KeypointSmoother,
    OneEuroFilter,
    OutlierRejector,
    estimate_body_height,
    preset_for,
)
from squatcheck.cv.pose import Landmark, PoseFrame, PoseLandmark as L

from conftest import make_frame, make_landmarks, make_sequence, squat_hip_signal, with_landmark


# ============================================================================
# One Euro filter
# ============================================================================

class TestOneEuroFilter:
    def test_first_sample_passes_through(self):
        f = OneEuroFilter()
        assert f.filter(0.42, 0.0) == 0.42
        assert f.initialized

    def test_constant_signal_is_unchanged(self):
        f = OneEuroFilter(min_cutoff=0.5, beta=0.015)
        outputs = [f.filter(0.3, i / 30) for i in range(20)]
        assert outputs == pytest.approx([0.3] * 20)

    def test_non_increasing_time_returns_last_output(self):
        f = OneEuroFilter()
        f.filter(0.0, 0.0)
        last = f.filter(1.0, 0.1)
        assert f.filter(5.0, 0.1) == last
        assert f.filter(5.0, 0.05) == last

    def test_step_is_smoothed(self):
        f = OneEuroFilter(min_cutoff=1.0, beta=0.0)
        f.filter(0.0, 0.0)
        out = f.filter(1.0, 1 / 30)
        assert 0.0 < out < 1.0

    def test_smoothing_factor(self):
        # r = 2*pi*fc*dt = 1 -> alpha = 0.5
        assert OneEuroFilter._smoothing_factor(1.0, 1 / (2 * math.pi)) == pytest.approx(0.5)


def test_presets_by_region():
    assert preset_for(L.LEFT_HIP) is TORSO_PRESET
    assert preset_for(L.RIGHT_SHOULDER) is TORSO_PRESET
    assert preset_for(L.LEFT_KNEE) is LEG_PRESET
    assert preset_for(L.RIGHT_ANKLE) is LEG_PRESET
    assert preset_for(L.LEFT_WRIST) is EXTREMITY_PRESET
    assert preset_for(L.NOSE) is EXTREMITY_PRESET
    assert TORSO_PRESET.min_cutoff > LEG_PRESET.min_cutoff > EXTREMITY_PRESET.min_cutoff


# ============================================================================
# Outlier rejection
# ============================================================================

class TestOutlierRejector:
    def test_body_height_from_shoulders_to_ankles(self):
        assert estimate_body_height(make_landmarks(hip_y=0.5)) == pytest.approx(0.65)

    def test_spike_replaced_by_previous_position(self):
        rejector = OutlierRejector(0.15)
        first = make_frame(0.0)
        rejector.process(first.landmarks)

        # threshold = 0.65 * 0.15 = 0.0975
        spiked = with_landmark(first, L.LEFT_WRIST, x=first[L.LEFT_WRIST].x + 0.2, visibility=0.4)
        out = rejector.process(spiked.landmarks)

        assert out[L.LEFT_WRIST].x == first[L.LEFT_WRIST].x
        assert out[L.LEFT_WRIST].y == first[L.LEFT_WRIST].y
        assert out[L.LEFT_WRIST].visibility == 0.4
        assert rejector.rejected_count == 1

    def test_sub_threshold_jump_passes(self):
        rejector = OutlierRejector(0.15)
        first = make_frame(0.0)
        rejector.process(first.landmarks)

        moved = with_landmark(first, L.LEFT_WRIST, x=first[L.LEFT_WRIST].x + 0.05)
        out = rejector.process(moved.landmarks)

        assert out[L.LEFT_WRIST] == moved[L.LEFT_WRIST]
        assert rejector.rejected_count == 0

    def test_compares_against_accepted_position(self):
        rejector = OutlierRejector(0.15)
        first = make_frame(0.0)
        rejector.process(first.landmarks)

        far = with_landmark(first, L.NOSE, y=first[L.NOSE].y + 0.3)
        rejector.process(far.landmarks)
        # Still far from the last accepted position, so still rejected
        out = rejector.process(far.landmarks)
        assert out[L.NOSE].y == first[L.NOSE].y
        assert rejector.rejected_count == 2

    def test_inactive_without_body_height(self):
        flat = tuple(Landmark(0.5, 0.5) for _ in range(33))
        rejector = OutlierRejector(0.15)
        rejector.process(flat)
        jumped = tuple(Landmark(0.9, 0.9) for _ in range(33))
        assert rejector.process(jumped) == list(jumped)

    def test_body_height_taken_from_first_non_zero_frame(self):
        rejector = OutlierRejector(0.15)
        rejector.process(tuple(Landmark(0.5, 0.5) for _ in range(33)))
        assert rejector.body_height == 0.0
        rejector.process(make_landmarks(hip_y=0.5))
        assert rejector.body_height == pytest.approx(0.65)
        rejector.process(make_landmarks(hip_y=0.6))
        assert rejector.body_height == pytest.approx(0.65)


# ============================================================================
# Conditioning
# ============================================================================

class TestKeypointSmoother:
    def test_constant_stream_is_noop(self, settings):
        frames = make_sequence([0.5] * 30)
        out = KeypointSmoother(settings).condition(frames)
        for raw, cond in zip(frames, out):
            for a, b in zip(raw.landmarks, cond.landmarks):
                assert (b.x, b.y, b.z) == pytest.approx((a.x, a.y, a.z))

    def test_preserves_length_timestamps_and_visibility(self, settings):
        frames = make_sequence(squat_hip_signal(2), visibility=0.8)
        out = KeypointSmoother(settings).condition(frames)
        assert len(out) == len(frames)
        assert [f.timestamp for f in out] == [f.timestamp for f in frames]
        assert [lm.visibility for lm in out[10].landmarks] == [lm.visibility for lm in frames[10].landmarks]

    def test_input_not_mutated(self, settings):
        frames = make_sequence(squat_hip_signal(1))
        before = [f.landmarks for f in frames]
        KeypointSmoother(settings).condition(frames)
        assert [f.landmarks for f in frames] == before

    def test_single_frame_spike_is_removed(self, settings):
        frames = make_sequence([0.5] * 20)
        spike = frames[10][L.LEFT_KNEE]
        frames[10] = with_landmark(frames[10], L.LEFT_KNEE, y=spike.y - 0.3)
        out = KeypointSmoother(settings).condition(frames)
        assert out[10][L.LEFT_KNEE].y == pytest.approx(spike.y)

    def test_reduces_jitter(self, settings):
        rng = np.random.RandomState(7)
        frames = []
        for i in range(60):
            lms = list(make_landmarks())
            noisy = lms[L.LEFT_HIP]
            lms[L.LEFT_HIP] = Landmark(noisy.x + rng.normal(0, 0.004), noisy.y + rng.normal(0, 0.004))
            frames.append(PoseFrame(timestamp=i / 30, landmarks=tuple(lms)))

        out = KeypointSmoother(settings).condition(frames)
        assert KeypointSmoother.jitter(out, L.LEFT_HIP) < KeypointSmoother.jitter(frames, L.LEFT_HIP)

    def test_debug_log_reports_hip_jitter(self, settings, caplog):
        caplog.set_level(logging.DEBUG, logger="squatcheck.cv.keypoint_smoother")
        KeypointSmoother(settings).condition(make_sequence(squat_hip_signal(1)))
        assert any(r.getMessage().startswith("Hip jitter") for r in caplog.records)

    def test_fresh_filters_per_pass(self, settings):
        smoother = KeypointSmoother(settings)
        frames = make_sequence(squat_hip_signal(1))
        first = smoother.condition(frames)
        second = smoother.condition(frames)
        assert first == second

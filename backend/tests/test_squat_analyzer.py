"""End-to-end tests for the squat analysis pipeline."""

import dataclasses

import numpy as np
import pytest

from squatcheck.config import Settings
from squatcheck.cv.metric_scorer import Metric, MetricConfidence, MetricRating, get_rating
from squatcheck.cv.pose import CameraAngle, ExerciseType, PoseFrame
from squatcheck.cv.squat_analyzer import SquatAnalyzer, key_landmark_visibility
from squatcheck.errors import (
    InvalidFramesError,
    LowVisibilityError,
    NoPersonDetectedError,
    NoRepsDetectedError,
    WrongExerciseError,
)

from conftest import make_sequence, squat_hip_signal
from test_classifiers import deadlift_frames


# ============================================================================
# Scenarios
# ============================================================================

class TestThreeRepScenario:
    def test_clean_reps(self, squat_frames, settings):
        result = SquatAnalyzer(settings).analyze(squat_frames, condition=False)

        assert result.rep_count == 3
        assert [r.rep_number for r in result.reps] == [1, 2, 3]
        assert [r.bottom_frame for r in result.reps] == [15, 45, 75]
        for rep in result.reps:
            assert rep[Metric.KNEE_TRACKING].rating == MetricRating.GREEN
            assert rep[Metric.DEPTH].rating == MetricRating.GREEN

    def test_clean_reps_with_conditioning(self, squat_frames, settings):
        result = SquatAnalyzer(settings).analyze(squat_frames)

        assert result.rep_count == 3
        assert result.frame_count == 90
        for rep in result.reps:
            assert rep[Metric.KNEE_TRACKING].rating == MetricRating.GREEN
            assert rep[Metric.DEPTH].rating == MetricRating.GREEN

    def test_knee_drift_in_one_rep(self, settings):
        frames = make_sequence(
            squat_hip_signal(3),
            drift_for=lambda i: 0.15 if 30 <= i < 60 else 0.0,
        )
        result = SquatAnalyzer(settings).analyze(frames, condition=False)

        ratings = [rep[Metric.KNEE_TRACKING].rating for rep in result.reps]
        assert ratings == [MetricRating.GREEN, MetricRating.RED, MetricRating.GREEN]
        assert all(30 <= i < 60 for i in result.reps[1][Metric.KNEE_TRACKING].issue_frames)

    def test_depth_consistency_shared(self, squat_frames, settings):
        result = SquatAnalyzer(settings).analyze(squat_frames, condition=False)
        overall = result.metric(Metric.DEPTH_CONSISTENCY)
        for rep in result.reps:
            assert rep[Metric.DEPTH_CONSISTENCY] == overall

    def test_whole_clip_fallback(self, settings):
        # Hips sink steadily without ever coming back up
        frames = make_sequence(np.linspace(0.5, 0.62, 60))
        result = SquatAnalyzer(settings).analyze(frames, condition=False)
        assert result.rep_count == 1
        rep = result.reps[0]
        assert (rep.start_frame, rep.end_frame, rep.bottom_frame) == (0, 59, 59)
        assert rep[Metric.HIP_SHIFT].score == 75
        assert rep[Metric.HIP_RISE_RATE].score == 75


class TestReport:
    def test_every_metric_scored(self, squat_frames, settings):
        result = SquatAnalyzer(settings).analyze(squat_frames)
        assert list(result.overall) == list(Metric)
        for rep in result.reps:
            assert list(rep.metrics) == list(Metric)
            for metric_score in rep.metrics.values():
                assert 0 <= metric_score.score <= 100
                assert metric_score.rating == get_rating(metric_score.score)
                assert all(rep.start_frame <= i <= rep.end_frame for i in metric_score.issue_frames)

    def test_classifications_recorded(self, squat_frames, settings):
        result = SquatAnalyzer(settings).analyze(squat_frames, condition=False)
        assert result.exercise_type == ExerciseType.SQUAT
        assert result.camera_angle == CameraAngle.FRONTAL

    def test_confidence_stamped_from_camera_angle(self, squat_frames, settings):
        result = SquatAnalyzer(settings).analyze(squat_frames, condition=False)
        for rep in result.reps:
            assert rep[Metric.KNEE_VALGUS].confidence == MetricConfidence.HIGH
            assert rep[Metric.BACK_ANGLE].confidence == MetricConfidence.LOW
        assert result.metric("depth").confidence == MetricConfidence.MEDIUM

    def test_result_is_immutable(self, squat_frames, settings):
        result = SquatAnalyzer(settings).analyze(squat_frames, condition=False)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.rep_count = 4

    def test_reps_and_scores_are_immutable(self, squat_frames, settings):
        rep = SquatAnalyzer(settings).analyze(squat_frames, condition=False).reps[0]
        with pytest.raises(dataclasses.FrozenInstanceError):
            rep.bottom_frame = 0
        with pytest.raises(dataclasses.FrozenInstanceError):
            rep[Metric.DEPTH].score = 0

    def test_depth_consistency_copies_are_independent(self, settings):
        hip = list(squat_hip_signal(2)) + list(squat_hip_signal(1, bottom=0.6))
        result = SquatAnalyzer(settings).analyze(make_sequence(hip), condition=False)
        first = result.reps[0][Metric.DEPTH_CONSISTENCY]
        assert first.issue_frames == [15, 45, 75]

        first.issue_frames.append(99)
        assert result.reps[1][Metric.DEPTH_CONSISTENCY].issue_frames == [15, 45, 75]
        assert result.metric(Metric.DEPTH_CONSISTENCY).issue_frames == [15, 45, 75]

    def test_input_frames_untouched(self, squat_frames, settings):
        before = list(squat_frames)
        SquatAnalyzer(settings).analyze(squat_frames)
        assert squat_frames == before


# ============================================================================
# Terminal errors
# ============================================================================

class TestErrors:
    def test_no_frames(self, settings):
        with pytest.raises(NoPersonDetectedError) as exc:
            SquatAnalyzer(settings).analyze([])
        assert "full body is visible" in exc.value.message
        assert exc.value.to_dict()["code"] == "no_person"

    def test_wrong_landmark_count(self, squat_frames, settings):
        frames = list(squat_frames)
        frames[3] = PoseFrame(timestamp=frames[3].timestamp, landmarks=frames[3].landmarks[:20])
        with pytest.raises(InvalidFramesError):
            SquatAnalyzer(settings).analyze(frames)

    def test_non_increasing_timestamps(self, squat_frames, settings):
        frames = list(squat_frames)
        frames[5] = PoseFrame(timestamp=frames[4].timestamp, landmarks=frames[5].landmarks)
        with pytest.raises(InvalidFramesError):
            SquatAnalyzer(settings).analyze(frames)

    def test_low_visibility(self, settings):
        frames = make_sequence(squat_hip_signal(3), visibility=0.2)
        assert key_landmark_visibility(frames) == pytest.approx(0.2)
        with pytest.raises(LowVisibilityError) as exc:
            SquatAnalyzer(settings).analyze(frames)
        assert exc.value.average_visibility == pytest.approx(0.2)
        assert "film from the side" in exc.value.message

    def test_deadlift_rejected(self, settings):
        with pytest.raises(WrongExerciseError) as exc:
            SquatAnalyzer(settings).analyze(deadlift_frames(), condition=False)
        assert exc.value.exercise_type == "deadlift"
        assert "deadlift" in exc.value.message

    def test_no_motion_is_no_reps(self, settings):
        # hip range 0.001 over the whole clip
        hip = 0.5 + 0.0005 * np.sin(np.linspace(0, 6 * np.pi, 90))
        with pytest.raises(NoRepsDetectedError) as exc:
            SquatAnalyzer(settings).analyze(make_sequence(hip))
        assert exc.value.code == "no_reps"

    def test_no_motion_without_exercise_gate(self):
        hip = 0.5 + 0.0005 * np.sin(np.linspace(0, 6 * np.pi, 90))
        with pytest.raises(NoRepsDetectedError):
            SquatAnalyzer(Settings(reject_non_squat=False)).analyze(make_sequence(hip))

    def test_small_motion_still_gated_as_other(self, settings):
        # enough hip travel to count as motion, too little to look like a squat
        frames = make_sequence(squat_hip_signal(3, bottom=0.52))
        with pytest.raises(WrongExerciseError) as exc:
            SquatAnalyzer(settings).analyze(frames, condition=False)
        assert exc.value.exercise_type == "other"

"""
Terminal analysis errors.

Every error here stops the analysis and is reported to the caller with a
message that tells the end user what to change. Metric-level problems
(too-short reps, near-zero denominators) are never raised; the scorers
return a neutral score instead.
"""

from typing import Dict, Optional


class AnalysisError(Exception):
    """Base class for errors that abort an analysis run."""

    code: str = "analysis_failed"
    default_message: str = "Analysis failed. Please try again."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code, "message": self.message}


class InvalidFramesError(AnalysisError, ValueError):
    """The landmark sequence is malformed (wrong landmark count, bad timestamps)."""

    code = "invalid_frames"
    default_message = "The pose data for this video is malformed."


class NoPersonDetectedError(AnalysisError):
    """The landmark provider produced no usable frames."""

    code = "no_person"
    default_message = (
        "Could not detect a person in the video. Make sure your full body is "
        "visible and the lighting is good."
    )


class LowVisibilityError(AnalysisError):
    """Hips, knees and ankles were mostly occluded."""

    code = "low_visibility"
    default_message = (
        "Please film from the side for best results. The camera angle made it "
        "difficult to accurately detect your pose."
    )

    def __init__(self, average_visibility: float, message: Optional[str] = None):
        self.average_visibility = average_visibility
        super().__init__(message)


class NoRepsDetectedError(AnalysisError):
    """Hip height barely changed, so there is no repetition to score."""

    code = "no_reps"
    default_message = (
        "Could not detect any squat reps. Make sure your video shows at least "
        "one full squat repetition."
    )


class WrongExerciseError(AnalysisError):
    """The movement was classified as something other than a squat."""

    code = "wrong_exercise"

    MESSAGES = {
        "deadlift": (
            "This looks like a deadlift, not a squat. Only squat analysis is "
            "currently supported."
        ),
        "other": (
            "Could not identify this as a squat exercise. Make sure the video shows "
            "a clear squat movement with visible hip and knee flexion."
        ),
    }

    def __init__(self, exercise_type: str, message: Optional[str] = None):
        self.exercise_type = exercise_type
        super().__init__(message or self.MESSAGES.get(exercise_type, self.MESSAGES["other"]))

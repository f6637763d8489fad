"""
Cross-rep aggregation of metric scores.

The overall score for a metric is the rounded mean over reps. The summary
comes from the lower-median rep and notes how many reps rated good.
"""

from dataclasses import replace
from typing import Dict, List, Mapping, Sequence

import numpy as np

from squatcheck.cv.metric_scorer import (
    Metric,
    MetricRating,
    MetricScore,
    get_rating,
    round_score,
)


def average_metric_scores(scores: Sequence[MetricScore]) -> MetricScore:
    """Combine one metric's per-rep scores into a single overall score."""
    if not scores:
        return MetricScore(score=0, rating=MetricRating.RED, summary="No reps detected")

    avg = round_score(float(np.mean([s.score for s in scores])))
    issue_frames = [frame for s in scores for frame in s.issue_frames]

    ranked = sorted(scores, key=lambda s: s.score)
    summary = ranked[(len(ranked) - 1) // 2].summary

    if len(scores) > 1:
        good = sum(1 for s in scores if s.score >= 80)
        summary += f" ({good}/{len(scores)} reps rated good)"

    return MetricScore(
        score=avg,
        rating=get_rating(avg),
        summary=summary,
        issue_frames=issue_frames,
        confidence=scores[0].confidence,
    )


def aggregate(rep_scores: Sequence[Mapping[Metric, MetricScore]]) -> Dict[Metric, MetricScore]:
    """
    Overall per-metric scores for a video.

    Depth consistency is already a whole-video score; the overall entry is a copy
    of the first rep's.
    """
    overall: Dict[Metric, MetricScore] = {}
    for metric in Metric:
        if metric == Metric.DEPTH_CONSISTENCY and rep_scores:
            first = rep_scores[0][metric]
            overall[metric] = replace(first, issue_frames=list(first.issue_frames))
            continue
        per_rep: List[MetricScore] = [scores[metric] for scores in rep_scores]
        overall[metric] = average_metric_scores(per_rep)
    return overall

"""Predicate evaluation and audience size estimation."""

from campaignhq.evaluation.estimator import (
    AudienceSizeEstimator,
    AudienceSizeTracker,
    PlaceholderEstimator,
    PopulationEstimator,
    SizeEstimate,
    estimate_size,
)
from campaignhq.evaluation.evaluator import PredicateEvaluator, matches

__all__ = [
    "AudienceSizeEstimator",
    "AudienceSizeTracker",
    "PlaceholderEstimator",
    "PopulationEstimator",
    "PredicateEvaluator",
    "SizeEstimate",
    "estimate_size",
    "matches",
]

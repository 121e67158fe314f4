"""
Folding of provenance scores into relevance/confidence values
"""
from typing import Iterable, Tuple

from models.annotation import (
    CONFIDENCE_SCORING_SYSTEM,
    RELEVANCE_SCORING_SYSTEM,
    Score,
)

# Distinguishable from a legitimate zero score
SCORE_NOT_SET = -1.0


def fold_scores(scores: Iterable[Score]) -> Tuple[float, float]:
    """
    Fold scores into (relevance, confidence).

    Last entry wins when a system repeats; unknown systems are ignored.
    Systems with no entry come back as SCORE_NOT_SET.
    """
    relevance = SCORE_NOT_SET
    confidence = SCORE_NOT_SET
    for score in scores:
        if score.scoring_system == RELEVANCE_SCORING_SYSTEM:
            relevance = score.value
        elif score.scoring_system == CONFIDENCE_SCORING_SYSTEM:
            confidence = score.value
    return relevance, confidence

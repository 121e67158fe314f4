"""
Domain Models - Storage-agnostic data structures

- Wire models (pydantic) decode feed payloads and HTTP bodies
- Graph models (dataclasses) describe what is submitted to Neo4j
- Services operate on these models, not raw driver records
"""

from .annotation import (
    Annotation,
    Concept,
    Provenance,
    Score,
    Suggestion,
    KEYPHRASE_ONTOLOGY,
    MENTIONS_PREDICATE,
    RELEVANCE_SCORING_SYSTEM,
    CONFIDENCE_SCORING_SYSTEM,
)
from .feed import FeedMessage
from .graph import BatchStats, GraphStatement, GraphWriteOperation
from .keyphrase_stats import CoOccurrence, CoOccurrences, PopularKeyphrase

__all__ = [
    # Wire
    'Annotation',
    'Concept',
    'Provenance',
    'Score',
    'Suggestion',
    'KEYPHRASE_ONTOLOGY',
    'MENTIONS_PREDICATE',
    'RELEVANCE_SCORING_SYSTEM',
    'CONFIDENCE_SCORING_SYSTEM',

    # Feed
    'FeedMessage',

    # Graph
    'BatchStats',
    'GraphStatement',
    'GraphWriteOperation',

    # Aggregates
    'CoOccurrence',
    'CoOccurrences',
    'PopularKeyphrase',
]

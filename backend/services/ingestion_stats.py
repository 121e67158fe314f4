"""
Ingestion outcome counters

Every feed message ends in exactly one message-level outcome, and every
dispatched annotation write ends in one write-level outcome. Counts are
exposed on /__health so ingestion health can be checked without reading logs.
"""
from collections import Counter
from enum import Enum
from typing import Dict, Optional


class IngestionOutcome(str, Enum):
    # Message level
    FILTERED = "filtered"
    DECODE_FAILURE = "decode_failure"
    NO_KEYPHRASES = "no_keyphrases"
    DISPATCHED = "dispatched"

    # Write level
    WRITTEN = "written"
    WRITE_FAILED = "write_failed"
    WRITE_CANCELLED = "write_cancelled"


class IngestionStats:
    """In-process counters, single event loop only"""

    def __init__(self):
        self.counts: Counter = Counter()
        self.last_error: Optional[str] = None

    def record(self, outcome: IngestionOutcome, error: Exception = None):
        self.counts[outcome] += 1
        if error is not None:
            self.last_error = f"{type(error).__name__}: {error}"

    def get(self, outcome: IngestionOutcome) -> int:
        return self.counts[outcome]

    def snapshot(self) -> Dict[str, object]:
        data: Dict[str, object] = {outcome.value: self.counts[outcome] for outcome in IngestionOutcome}
        data['last_error'] = self.last_error
        return data

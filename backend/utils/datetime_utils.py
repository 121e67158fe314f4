"""
Datetime utility functions for annotation provenance timestamps
"""
import re
from datetime import datetime

from services.exceptions import MalformedTimestampError

# RFC3339: full date, 'T', full time, optional fraction, mandatory offset
RFC3339_PATTERN = re.compile(
    r'^\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$'
)


def parse_rfc3339(timestamp: str) -> datetime:
    """
    Parse an RFC3339 timestamp into an aware datetime.

    Raises:
        MalformedTimestampError: on any parse failure
    """
    if not isinstance(timestamp, str) or not RFC3339_PATTERN.match(timestamp):
        raise MalformedTimestampError(timestamp)

    normalized = timestamp.upper()
    if normalized.endswith('Z'):
        normalized = normalized[:-1] + '+00:00'

    try:
        return datetime.fromisoformat(normalized)
    except ValueError as e:
        # Shape matched but a field is out of range (month 13, hour 25, ...)
        raise MalformedTimestampError(timestamp) from e


def to_epoch(timestamp: str) -> int:
    """Convert an RFC3339 timestamp to whole seconds since the Unix epoch"""
    return int(parse_rfc3339(timestamp).timestamp())

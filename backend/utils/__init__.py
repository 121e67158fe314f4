"""
Utility functions
"""
from .id_utils import extract_uuid_from_uri, thing_uri
from .datetime_utils import parse_rfc3339, to_epoch
from .scores import SCORE_NOT_SET, fold_scores

__all__ = [
    'extract_uuid_from_uri',
    'thing_uri',
    'parse_rfc3339',
    'to_epoch',
    'SCORE_NOT_SET',
    'fold_scores',
]

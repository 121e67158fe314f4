"""
Concept identifier helpers.

Concepts are referenced by URI (e.g. http://api.ft.com/things/<uuid>); the
graph stores only the trailing UUID.
"""
import re

from services.exceptions import MalformedURIError

THING_URI_PREFIX = "http://api.ft.com/things/"

UUID_EXTRACT_PATTERN = re.compile(
    r'.*/([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})$'
)


def extract_uuid_from_uri(uri: str) -> str:
    """
    Return the UUID a URI ends in.

    Raises:
        MalformedURIError: the URI doesn't end in /<8-4-4-4-12 lowercase hex>
    """
    match = UUID_EXTRACT_PATTERN.match(uri or "")
    if not match:
        raise MalformedURIError(uri)
    return match.group(1)


def thing_uri(uuid: str) -> str:
    return f"{THING_URI_PREFIX}{uuid}"

"""
Error taxonomy for the keyphrase annotation service.

ValidationError subclasses map to HTTP 400, StoreUnavailableError to 503.
Nothing in the core retries on any of these.
"""


class KeyphraseServiceError(Exception):
    """Base class for all service errors"""


class ValidationError(KeyphraseServiceError):
    """Input rejected before any store mutation was attempted"""


class MalformedURIError(ValidationError):
    """URI does not end in a canonical UUID"""

    def __init__(self, uri: str):
        super().__init__(f"Couldn't extract uuid from uri {uri!r}")
        self.uri = uri


class MalformedTimestampError(ValidationError):
    """Timestamp is not valid RFC3339"""

    def __init__(self, timestamp: str):
        super().__init__(f"Couldn't parse RFC3339 timestamp {timestamp!r}")
        self.timestamp = timestamp


class MissingConceptIDError(ValidationError):
    pass


class EmptyContentIDError(ValidationError):
    def __init__(self):
        super().__init__("Content uuid is required")


class StoreUnavailableError(KeyphraseServiceError):
    """Graph store request failed (connection, transaction or query error)"""


class DecodeFailureError(KeyphraseServiceError):
    """Feed payload could not be decoded into a Suggestion"""


class TypeResolutionError(KeyphraseServiceError):
    """Concept labels could not be resolved to a most specific type"""

# ==============================================================================
# Session Engine Errors
# ==============================================================================
"""
Exception hierarchy for the weblog session engine.

Every error raised by the package derives from WeblogError so callers can
catch the whole family in one place.
"""


class WeblogError(Exception):
    """Base class for all weblog errors."""


class InvalidEventError(WeblogError):
    """An event reached the core with a missing/negative timestamp or empty client id."""

    def __init__(self, message: str, client_id: str | None = None):
        super().__init__(message)
        self.client_id = client_id


class EmptyInputError(WeblogError):
    """A client group with no events reached the sessionizer."""


class BatchTimeoutError(WeblogError):
    """The whole batch did not complete within the configured timeout."""


class InvalidRecordError(WeblogError):
    """A raw log line could not be turned into an event."""

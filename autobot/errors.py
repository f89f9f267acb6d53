"""Error taxonomy shared by the service, adapters and HTTP surface."""

from typing import Optional


class AutobotError(Exception):
    """Base class for all errors raised by this package."""


class NotConfigured(AutobotError):
    """No credentials are set; raised before any network call."""


class ValidationError(AutobotError):
    """Invalid input such as an empty utterance or malformed configuration."""


class RemoteCallError(AutobotError):
    """The completion call failed (non-2xx, network failure or malformed body)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ExtractionError(AutobotError):
    """A tool call could not be turned into a UI component."""


class PersistenceError(AutobotError):
    """The event or config store could not complete a durable operation."""

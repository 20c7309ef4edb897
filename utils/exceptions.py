"""
Custom Exceptions
Failure taxonomy for source resolution, extraction, generation and persistence.
"""
from typing import Optional


class PaperPageError(Exception):
    """Base error for the project page generator."""

    kind = "error"

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(PaperPageError):
    """Missing or invalid configuration"""

    kind = "configuration"


class SourceUnavailable(PaperPageError):
    """The source descriptor could not be turned into bytes."""

    kind = "source_unavailable"

    def __init__(self, message: str, locator: Optional[str] = None, **kwargs):
        super().__init__(message, kwargs)
        self.locator = locator


class ExtractionFailed(PaperPageError):
    """The document was unparseable or yielded no text."""

    kind = "extraction_failed"


class GeneratorMalformed(PaperPageError):
    """The generator answered, but the answer was not usable JSON."""

    kind = "generator_malformed"

    def __init__(self, message: str, raw_text: str = "", **kwargs):
        super().__init__(message, kwargs)
        self.raw_text = raw_text


class GeneratorUnavailable(PaperPageError):
    """The generator call itself failed (quota, network, auth)."""

    kind = "generator_unavailable"

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider


class PersistFailed(PaperPageError):
    """The content store rejected or failed to write a record."""

    kind = "persist_failed"

    def __init__(self, message: str, record_id: Optional[str] = None, **kwargs):
        super().__init__(message, kwargs)
        self.record_id = record_id


class BatchValidationError(PaperPageError):
    """A batch input row was rejected before queueing."""

    kind = "validation"

    def __init__(self, message: str, row_number: Optional[int] = None, project_id: str = "", **kwargs):
        super().__init__(message, kwargs)
        self.row_number = row_number
        self.project_id = project_id

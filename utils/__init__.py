"""
Utils Module
Logging setup and the shared exception hierarchy
"""
from .logger import attach_package_loggers, setup_logger
from .exceptions import (
    PaperPageError,
    ConfigurationError,
    SourceUnavailable,
    ExtractionFailed,
    GeneratorMalformed,
    GeneratorUnavailable,
    PersistFailed,
    BatchValidationError,
)

__all__ = [
    "attach_package_loggers",
    "setup_logger",
    "PaperPageError",
    "ConfigurationError",
    "SourceUnavailable",
    "ExtractionFailed",
    "GeneratorMalformed",
    "GeneratorUnavailable",
    "PersistFailed",
    "BatchValidationError",
]

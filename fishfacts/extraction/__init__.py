"""Request building, output validation and the error taxonomy."""

from fishfacts.extraction.errors import (
    BatchJobError,
    ConfigurationError,
    FactExtractionError,
    ParseError,
    RateLimitError,
    ServiceError,
    ValidationError,
)

__all__ = [
    "BatchJobError",
    "ConfigurationError",
    "FactExtractionError",
    "ParseError",
    "RateLimitError",
    "ServiceError",
    "ValidationError",
]

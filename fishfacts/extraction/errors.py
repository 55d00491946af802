"""
Error taxonomy for fact extraction.

Every per-episode failure is one of the FactExtractionError subclasses below.
The pipeline catches them at the episode boundary and turns them into an
EpisodeOutcome; only ConfigurationError is allowed to abort a run.
"""


class FactExtractionError(Exception):
    """Base class for errors scoped to a single episode (or a single batch job)."""

    kind = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ParseError(FactExtractionError):
    """Malformed captions or malformed model output."""

    kind = "parse"


class ValidationError(FactExtractionError):
    """Schema or business-rule violation in a fact record."""

    kind = "validation"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}" if field else reason)


class RateLimitError(FactExtractionError):
    """The extraction service throttled the request. Retryable."""

    kind = "rate_limit"


class ServiceError(FactExtractionError):
    """Any non-rate-limit failure from the extraction service. Not retried."""

    kind = "service"

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class BatchJobError(FactExtractionError):
    """A batch job ended in a terminal state other than completed."""

    kind = "batch_job"

    def __init__(self, job_id: str, status: str, message: str | None = None):
        self.job_id = job_id
        self.status = status
        super().__init__(message or f"Batch {job_id} failed with status: {status}")


class ConfigurationError(Exception):
    """Run-level setup failure (e.g. missing API key). Aborts the whole run."""

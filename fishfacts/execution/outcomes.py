"""Per-episode outcomes shared by both execution strategies."""

from dataclasses import dataclass
from enum import Enum

from fishfacts.extraction.errors import FactExtractionError
from fishfacts.extraction.request_builder import ExtractionRequest
from fishfacts.extraction.validator import parse_model_output, write_artifact
from fishfacts.infrastructure.logger import get_logger

logger = get_logger(__name__)


class OutcomeKind(str, Enum):
    OK = "ok"
    FAIL = "fail"
    SKIPPED = "skipped"


@dataclass
class EpisodeOutcome:
    """
    How one episode ended in a run.

    Attributes:
        episode_id: Episode directory name
        kind: ok / fail / skipped
        error_kind: FactExtractionError.kind for failures (e.g. "parse")
        message: Human-readable detail for failures and skips
    """
    episode_id: str
    kind: OutcomeKind
    error_kind: str | None = None
    message: str | None = None

    @classmethod
    def ok(cls, episode_id: str) -> "EpisodeOutcome":
        return cls(episode_id=episode_id, kind=OutcomeKind.OK)

    @classmethod
    def skipped(cls, episode_id: str, message: str = "facts already exist") -> "EpisodeOutcome":
        return cls(episode_id=episode_id, kind=OutcomeKind.SKIPPED, message=message)

    @classmethod
    def failed(cls, episode_id: str, error: FactExtractionError) -> "EpisodeOutcome":
        return cls(
            episode_id=episode_id,
            kind=OutcomeKind.FAIL,
            error_kind=error.kind,
            message=error.message,
        )


def persist_output(text: str, request: ExtractionRequest) -> EpisodeOutcome:
    """
    Validate raw model output and write the episode's artifact.

    Parse, validation and write failures come back as a fail outcome.
    """
    try:
        record = parse_model_output(text, known_standard=request.known_standard)
        write_artifact(record, request.artifact_path)
    except FactExtractionError as e:
        logger.error(f"❌ {request.episode_id}: {e.kind} error: {e.message}")
        return EpisodeOutcome.failed(request.episode_id, e)
    except OSError as e:
        logger.error(f"❌ {request.episode_id}: could not write {request.artifact_path}: {e}")
        return EpisodeOutcome(
            episode_id=request.episode_id,
            kind=OutcomeKind.FAIL,
            error_kind="io",
            message=str(e),
        )
    return EpisodeOutcome.ok(request.episode_id)

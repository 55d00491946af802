"""
Fact extraction pipeline.

Runs episodes through the gate, the normalizer and the request builder, then
hands the prepared requests to an execution strategy (batch or sync).

Every episode ends as exactly one EpisodeOutcome (ok / fail / skipped); no
per-episode error escapes a run.

Usage:
    from fishfacts.pipeline.fact_pipeline import FactExtractionPipeline

    pipeline = FactExtractionPipeline(store, strategy=ThrottledExecutor(service))
    tally = pipeline.run()
    print(tally.ok, tally.fail, tally.skipped)
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Protocol, Sequence

from fishfacts.episodes.classifier import classify
from fishfacts.episodes.models import Classification
from fishfacts.episodes.store import EpisodeEntry, EpisodeStore
from fishfacts.execution.outcomes import EpisodeOutcome, OutcomeKind
from fishfacts.extraction.errors import FactExtractionError, ValidationError
from fishfacts.extraction.request_builder import ExtractionRequest, build_request
from fishfacts.infrastructure.logger import get_logger
from fishfacts.pipeline.idempotency import IdempotencyGate
from fishfacts.preprocessing.transcript_normalizer import (
    load_cues,
    normalize_cues,
    write_transcript_dumps,
)

logger = get_logger(__name__)


class ExecutionStrategy(Protocol):
    def run(self, requests: Sequence[ExtractionRequest]) -> List[EpisodeOutcome]: ...


@dataclass
class RunTally:
    """Aggregate counts for one run, plus the per-episode outcomes in caller order."""
    ok: int = 0
    fail: int = 0
    skipped: int = 0
    outcomes: List[EpisodeOutcome] = field(default_factory=list)

    def record(self, outcome: EpisodeOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.kind == OutcomeKind.OK:
            self.ok += 1
        elif outcome.kind == OutcomeKind.SKIPPED:
            self.skipped += 1
        else:
            self.fail += 1

    @property
    def exit_code(self) -> int:
        return 0 if self.fail == 0 else 1


class FactExtractionPipeline:
    """
    Orchestrates one extraction run over the episode store.

    Args:
        store: Episode store to read transcripts from and write artifacts to
        strategy: BatchOrchestrator or ThrottledExecutor
        force: Reprocess episodes that already have facts.json
        limit: Maximum number of episodes to send (skipped ones don't count)
        standard_schema: Use the narrow standard-only schema for episodes
            the classifier marks as standard
    """

    def __init__(
        self,
        store: EpisodeStore,
        strategy: ExecutionStrategy,
        force: bool = False,
        limit: int | None = None,
        standard_schema: bool = False,
    ):
        self.store = store
        self.strategy = strategy
        self.force = force
        self.limit = limit
        self.standard_schema = standard_schema

    def prepare(self, entry: EpisodeEntry, known_standard: bool | None = None) -> ExtractionRequest:
        """
        Build the extraction request for one episode.

        Args:
            entry: Episode to prepare
            known_standard: Force the schema variant; by default the narrow
                one is used only with standard_schema and a standard episode

        Raises:
            ParseError: If the captions cannot be read or parsed
        """
        cues = load_cues(entry.transcript_path)
        rows = normalize_cues(cues)
        write_transcript_dumps(cues, rows, entry.directory)

        classification = classify(entry.metadata)
        if known_standard is None:
            known_standard = self.standard_schema and classification == Classification.STANDARD

        logger.debug(
            f"Prepared {entry.dir_name}: {len(rows)} rows, "
            f"classified {classification.value}, narrow schema={known_standard}"
        )
        return build_request(entry.dir_name, rows, entry.artifact_path, known_standard)

    def _execute(
        self,
        order: List[str],
        outcomes: Dict[str, EpisodeOutcome],
        requests: List[ExtractionRequest],
    ) -> RunTally:
        if requests:
            logger.info(f"🚀 Sending {len(requests)} episode(s) for extraction")
            for outcome in self.strategy.run(requests):
                outcomes[outcome.episode_id] = outcome

        tally = RunTally()
        for episode_id in order:
            tally.record(outcomes[episode_id])
        return tally

    def run(self, entries: Iterable[EpisodeEntry] | None = None) -> RunTally:
        """
        Process episodes in the order given (default: the whole store).

        Returns:
            RunTally with ok / fail / skipped counts and outcomes
        """
        if entries is None:
            entries = self.store.iter_episodes()

        gate = IdempotencyGate(force=self.force)
        order: List[str] = []
        outcomes: Dict[str, EpisodeOutcome] = {}
        requests: List[ExtractionRequest] = []
        attempted = 0

        for entry in entries:
            if entry.dir_name in order:
                continue

            if not gate.should_process(entry.artifact_path):
                order.append(entry.dir_name)
                outcomes[entry.dir_name] = EpisodeOutcome.skipped(entry.dir_name)
                continue

            if self.limit is not None and attempted >= self.limit:
                break
            attempted += 1
            order.append(entry.dir_name)

            try:
                requests.append(self.prepare(entry))
            except FactExtractionError as e:
                logger.error(f"❌ {entry.dir_name}: {e.kind} error: {e.message}")
                outcomes[entry.dir_name] = EpisodeOutcome.failed(entry.dir_name, e)

        if gate.skipped:
            logger.info(f"⏭️  Skipped {gate.skipped} episode(s) with existing facts")

        return self._execute(order, outcomes, requests)

    def retry_episodes(self, identifiers: Sequence[str]) -> RunTally:
        """
        Re-extract facts for specific standard episodes.

        Each identifier is a feed id, an itunes episode number or a title
        number. Non-standard episodes are refused; the existing facts.json is
        deleted and the episode is reprocessed with the standard-only schema.
        """
        order: List[str] = []
        outcomes: Dict[str, EpisodeOutcome] = {}
        requests: List[ExtractionRequest] = []

        for identifier in identifiers:
            logger.info(f"Looking for episode: {identifier}")
            entry = self.store.find_episode(identifier)
            if entry is None:
                error = ValidationError("episode", f"Episode not found: {identifier}")
                logger.error(f"❌ {error.message}")
                order.append(identifier)
                outcomes[identifier] = EpisodeOutcome.failed(identifier, error)
                continue

            if entry.dir_name in order:
                continue
            order.append(entry.dir_name)

            if not entry.transcript_path.exists():
                error = ValidationError("transcript", f"No transcript found for episode: {entry.dir_name}")
                logger.error(f"❌ {error.message}")
                outcomes[entry.dir_name] = EpisodeOutcome.failed(entry.dir_name, error)
                continue

            classification = classify(entry.metadata)
            if classification != Classification.STANDARD:
                error = ValidationError(
                    "episode_type",
                    f"{entry.dir_name} is not a standard episode ({classification.value})",
                )
                logger.warning(f"⚠️  {error.message}, skipping")
                outcomes[entry.dir_name] = EpisodeOutcome.failed(entry.dir_name, error)
                continue

            self.store.reset_artifact(entry.dir_name)
            try:
                requests.append(self.prepare(entry, known_standard=True))
            except FactExtractionError as e:
                logger.error(f"❌ {entry.dir_name}: {e.kind} error: {e.message}")
                outcomes[entry.dir_name] = EpisodeOutcome.failed(entry.dir_name, e)

        return self._execute(order, outcomes, requests)

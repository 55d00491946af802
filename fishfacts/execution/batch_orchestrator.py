"""
Batch orchestrator (execution strategy A).

Runs many extraction requests as one asynchronous Gemini batch job:

    submit  -> write JSONL payload, upload it, register the job
    poll    -> check status every poll interval until terminal
    collect -> download results, validate each record, write artifacts

Job status only moves forward:

    uploading -> submitted -> in_progress -> completed | failed | expired | cancelled

Any terminal status other than completed fails the whole job. Inside a
completed job every record is handled on its own: one bad record never stops
the rest from being collected.
"""

import json
import os
import tempfile
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Protocol, Sequence

from fishfacts.config.settings import settings
from fishfacts.execution.outcomes import EpisodeOutcome, OutcomeKind, persist_output
from fishfacts.extraction.errors import BatchJobError, FactExtractionError, ServiceError
from fishfacts.extraction.request_builder import ExtractionRequest
from fishfacts.infrastructure.gemini_service import response_text_from_payload
from fishfacts.infrastructure.logger import get_logger

logger = get_logger(__name__)


class BatchStatus(str, Enum):
    UPLOADING = "uploading"
    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = {
    BatchStatus.COMPLETED,
    BatchStatus.FAILED,
    BatchStatus.EXPIRED,
    BatchStatus.CANCELLED,
}

# Position in the lifecycle; all terminal states share the last rank
STATUS_RANK = {
    BatchStatus.UPLOADING: 0,
    BatchStatus.SUBMITTED: 1,
    BatchStatus.IN_PROGRESS: 2,
    BatchStatus.COMPLETED: 3,
    BatchStatus.FAILED: 3,
    BatchStatus.EXPIRED: 3,
    BatchStatus.CANCELLED: 3,
}

# Gemini batch job states (JOB_STATE_* / BATCH_STATE_*, prefix stripped)
SERVICE_STATUS_MAP = {
    "PENDING": BatchStatus.SUBMITTED,
    "QUEUED": BatchStatus.SUBMITTED,
    "RUNNING": BatchStatus.IN_PROGRESS,
    "UPDATING": BatchStatus.IN_PROGRESS,
    "PAUSED": BatchStatus.IN_PROGRESS,
    "SUCCEEDED": BatchStatus.COMPLETED,
    "PARTIALLY_SUCCEEDED": BatchStatus.COMPLETED,
    "FAILED": BatchStatus.FAILED,
    "CANCELLING": BatchStatus.CANCELLED,
    "CANCELLED": BatchStatus.CANCELLED,
    "EXPIRED": BatchStatus.EXPIRED,
}


def map_service_status(state: str) -> BatchStatus | None:
    """Translate a service job state name; None for states we don't know."""
    name = state.upper()
    for prefix in ("JOB_STATE_", "BATCH_STATE_"):
        if name.startswith(prefix):
            name = name[len(prefix):]
    return SERVICE_STATUS_MAP.get(name)


def correlation_id(index: int, episode_id: str) -> str:
    return f"request_{index}_{episode_id}"


@dataclass
class BatchJob:
    """A batch job and its forward-only status."""
    id: str | None = None
    status: BatchStatus = BatchStatus.UPLOADING

    def advance(self, status: BatchStatus) -> bool:
        """
        Move to `status` if that is a forward step.

        Returns:
            True if the status changed; regressions and anything after a
            terminal state are ignored
        """
        if self.status.is_terminal or STATUS_RANK[status] <= STATUS_RANK[self.status]:
            return False
        self.status = status
        return True


@dataclass
class BatchTally:
    ok: int = 0
    fail: int = 0
    outcomes: List[EpisodeOutcome] = field(default_factory=list)

    def record(self, outcome: EpisodeOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.kind == OutcomeKind.OK:
            self.ok += 1
        else:
            self.fail += 1


class BatchService(Protocol):
    def upload_batch_file(self, path: Path) -> str: ...
    def create_batch_job(self, file_name: str, display_name: str) -> str: ...
    def get_batch_state(self, job_name: str) -> str: ...
    def download_batch_results(self, job_name: str) -> str: ...


class BatchOrchestrator:
    """
    Drives batch jobs through submit, poll and collect.

    The orchestrator keeps the correlation map (correlation id -> request)
    for every job it submitted, so results can be routed back to their
    artifact paths.
    """

    def __init__(
        self,
        service: BatchService,
        poll_interval: float | None = None,
        max_wait_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        work_dir: Path | None = None,
    ):
        """
        Args:
            service: Batch-capable service (GeminiService)
            poll_interval: Seconds between status checks (default from settings)
            max_wait_seconds: Give up polling after this long (default from
                settings; 0 or less waits forever)
            sleep: Poll sleep, injectable for tests
            clock: Monotonic clock, injectable for tests
            work_dir: Directory for the temporary JSONL payload
        """
        self.service = service
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.batch_poll_interval_seconds
        )
        if max_wait_seconds is None:
            max_wait_seconds = settings.batch_max_wait_hours * 3600
        self.max_wait_seconds = max_wait_seconds if max_wait_seconds > 0 else None
        self._sleep = sleep
        self._clock = clock
        self.work_dir = work_dir

        self.jobs: Dict[str, BatchJob] = {}
        self._requests: Dict[str, Dict[str, ExtractionRequest]] = {}

    def submit(self, requests: Sequence[ExtractionRequest]) -> str:
        """
        Package requests into a JSONL payload, upload it and register the job.

        Returns:
            Job id
        """
        if not requests:
            raise ValueError("Cannot submit an empty batch")

        job = BatchJob()
        correlation = {
            correlation_id(index, request.episode_id): request
            for index, request in enumerate(requests)
        }

        fd, payload_path = tempfile.mkstemp(
            prefix="fishfacts_batch_", suffix=".jsonl", dir=self.work_dir
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                for cid, request in correlation.items():
                    f.write(request.to_batch_line(cid) + "\n")

            logger.info(f"📤 Uploading batch payload with {len(requests)} requests")
            file_name = self.service.upload_batch_file(Path(payload_path))
            job.id = self.service.create_batch_job(
                file_name, display_name=f"fishfacts-{len(requests)}-episodes"
            )
        finally:
            Path(payload_path).unlink(missing_ok=True)

        job.advance(BatchStatus.SUBMITTED)
        self.jobs[job.id] = job
        self._requests[job.id] = correlation
        logger.info(f"✅ Batch job created: {job.id}")
        return job.id

    def poll(self, job_id: str) -> BatchJob:
        """
        Wait for the job to reach a terminal state.

        Raises:
            BatchJobError: Terminal state other than completed, or timeout
        """
        job = self.jobs[job_id]
        started = self._clock()

        while not job.status.is_terminal:
            raw_state = self.service.get_batch_state(job_id)
            status = map_service_status(raw_state)
            if status is None:
                logger.warning(f"Unknown batch state {raw_state!r} for {job_id}")
            elif job.advance(status):
                logger.info(f"Batch {job_id}: {job.status.value}")
            elif status != job.status:
                logger.debug(f"Ignoring status regression {status.value} for {job_id}")

            if job.status.is_terminal:
                break

            if self.max_wait_seconds is not None and self._clock() - started >= self.max_wait_seconds:
                raise BatchJobError(
                    job_id,
                    job.status.value,
                    f"Batch {job_id} still {job.status.value} after {self.max_wait_seconds:.0f}s",
                )
            self._sleep(self.poll_interval)

        if job.status != BatchStatus.COMPLETED:
            raise BatchJobError(job_id, job.status.value)
        return job

    def collect(self, job_id: str) -> BatchTally:
        """
        Download results and route each record to its artifact.

        Records with an unknown correlation id, an error entry, empty output
        or invalid JSON are counted as failures. Requests that got no result
        line at all are failures too.
        """
        job = self.jobs[job_id]
        if job.status != BatchStatus.COMPLETED:
            raise BatchJobError(job_id, job.status.value, f"Cannot collect {job_id}: {job.status.value}")

        pending = dict(self._requests[job_id])
        content = self.service.download_batch_results(job_id)
        tally = BatchTally()

        for line_number, line in enumerate(content.splitlines(), 1):
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as e:
                logger.error(f"❌ Unreadable result line {line_number} in {job_id}: {e}")
                tally.fail += 1
                continue
            if not isinstance(entry, dict):
                logger.error(f"❌ Result line {line_number} in {job_id} is not an object")
                tally.fail += 1
                continue

            key = entry.get("key")
            request = pending.pop(key, None)
            if request is None:
                logger.error(f"❌ Unknown correlation id {key!r} in {job_id}")
                tally.fail += 1
                continue

            if entry.get("error"):
                error = ServiceError(f"Batch request failed: {entry['error']}")
                logger.error(f"❌ {request.episode_id}: {error.message}")
                tally.record(EpisodeOutcome.failed(request.episode_id, error))
                continue

            text = response_text_from_payload(entry.get("response") or {})
            tally.record(persist_output(text, request))

        for request in pending.values():
            error = ServiceError("No result returned for request")
            logger.error(f"❌ {request.episode_id}: {error.message}")
            tally.record(EpisodeOutcome.failed(request.episode_id, error))

        del self._requests[job_id]
        logger.info(f"📊 Batch {job_id} collected: {tally.ok} ok, {tally.fail} failed")
        return tally

    def run(self, requests: Sequence[ExtractionRequest]) -> List[EpisodeOutcome]:
        """
        Submit, poll and collect one job.

        A job-level failure becomes a fail outcome for every request in it.
        """
        if not requests:
            return []

        try:
            job_id = self.submit(requests)
            self.poll(job_id)
            tally = self.collect(job_id)
        except FactExtractionError as e:
            logger.error(f"❌ Batch failed ({e.kind}): {e.message}")
            return [EpisodeOutcome.failed(request.episode_id, e) for request in requests]

        by_episode = {outcome.episode_id: outcome for outcome in tally.outcomes}
        return [by_episode[request.episode_id] for request in requests]

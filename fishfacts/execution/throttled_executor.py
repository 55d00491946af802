"""
Throttled synchronous executor (execution strategy B).

Processes extraction requests one at a time against the live generate
endpoint, keeping token usage inside a TokenBudgetWindow.

Per request:
1. Estimate tokens; a request larger than the window capacity fails outright
2. Wait for capacity
3. Call the service (rate limits retried with 2^attempt s backoff)
4. Record the estimate in the window
5. Validate the output and write the artifact
"""

import time
from typing import Callable, List, Protocol, Sequence

from fishfacts.config.settings import settings
from fishfacts.execution.outcomes import EpisodeOutcome, persist_output
from fishfacts.execution.token_budget import TokenBudgetWindow
from fishfacts.extraction.errors import FactExtractionError, RateLimitError, ServiceError
from fishfacts.extraction.request_builder import ExtractionRequest
from fishfacts.infrastructure.logger import get_logger

logger = get_logger(__name__)


class GenerateService(Protocol):
    def generate(self, request: ExtractionRequest) -> str: ...


class ThrottledExecutor:
    """
    Sequential executor with a rolling token budget.

    Never has more than one request in flight, so the window's accounting
    needs no locking.
    """

    def __init__(
        self,
        service: GenerateService,
        window: TokenBudgetWindow | None = None,
        max_attempts: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            service: Anything with generate(request) -> str (GeminiService)
            window: Token window (default built from settings)
            max_attempts: Attempts for rate-limited calls (default from settings)
            sleep: Backoff sleep, injectable for tests
        """
        self.service = service
        self.window = window or TokenBudgetWindow(
            limit=settings.tokens_per_minute_limit,
            safety_factor=settings.token_budget_safety_factor,
            window_seconds=settings.token_window_seconds,
            min_wait_seconds=settings.token_wait_floor_seconds,
        )
        self.max_attempts = max_attempts or settings.max_rate_limit_attempts
        self._sleep = sleep

    def _call_with_retry(self, request: ExtractionRequest, estimate: int) -> str:
        for attempt in range(self.max_attempts):
            self.window.wait_for_capacity(estimate)
            try:
                text = self.service.generate(request)
            except RateLimitError:
                if attempt == self.max_attempts - 1:
                    raise
                wait = 2 ** attempt
                logger.warning(
                    f"⚠️  Rate limited on {request.episode_id} "
                    f"(attempt {attempt + 1}/{self.max_attempts}), retrying in {wait}s"
                )
                self._sleep(wait)
                continue

            self.window.add(estimate)
            return text

        raise RateLimitError(f"Rate limited after {self.max_attempts} attempts")

    def execute(self, request: ExtractionRequest) -> EpisodeOutcome:
        """Run one request to an ok/fail outcome."""
        estimate = request.estimated_tokens()
        if estimate > self.window.capacity:
            error = ServiceError(
                f"Estimated {estimate} tokens exceeds per-minute capacity {self.window.capacity}"
            )
            logger.error(f"❌ {request.episode_id}: {error.message}")
            return EpisodeOutcome.failed(request.episode_id, error)

        logger.info(f"🤖 Extracting facts for {request.episode_id} (~{estimate} tokens)")
        try:
            text = self._call_with_retry(request, estimate)
        except FactExtractionError as e:
            logger.error(f"❌ {request.episode_id}: {e.kind} error: {e.message}")
            return EpisodeOutcome.failed(request.episode_id, e)

        return persist_output(text, request)

    def run(self, requests: Sequence[ExtractionRequest]) -> List[EpisodeOutcome]:
        """Execute requests strictly in order."""
        return [self.execute(request) for request in requests]

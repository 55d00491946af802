"""
Idempotency gate.

An episode counts as processed exactly when its facts.json exists. There is
no separate ledger: deleting the artifact is enough to get it reprocessed.
"""

from pathlib import Path

from fishfacts.infrastructure.logger import get_logger

logger = get_logger(__name__)


class IdempotencyGate:
    """Decides whether an episode needs a request, and counts the ones that don't."""

    def __init__(self, force: bool = False):
        self.force = force
        self.skipped = 0

    def should_process(self, artifact_path: Path) -> bool:
        if self.force or not artifact_path.exists():
            return True
        self.skipped += 1
        logger.debug(f"⏭️  Skipping {artifact_path.parent.name}: facts already exist")
        return False

"""
Filesystem episode store.

Layout (one directory per episode under settings.episodes_dir):

    data/episodes/
        2024-05-02_575-no-such-thing-as-a-fish/
            metadata.json         (discovery step)
            transcript.vtt        (transcription step)
            transcript.cues.json  (normalizer dump)
            transcript.csv        (normalizer dump)
            facts.json            (output artifact)

Directories listed in the ignore file (one name per line, "#" for comments)
are never offered for processing.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Set

from fishfacts.config.settings import settings
from fishfacts.episodes.models import EpisodeMetadata
from fishfacts.extraction.schemas import EpisodeFactRecord
from fishfacts.infrastructure.logger import get_logger

logger = get_logger(__name__)

METADATA_FILE = "metadata.json"
TRANSCRIPT_FILE = "transcript.vtt"
ARTIFACT_FILE = "facts.json"


def load_ignore_list(path: Path) -> Set[str]:
    """Read episode directory names to ignore; a missing file means none."""
    if not path.exists():
        return set()

    ignored = set()
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            ignored.add(line)
    return ignored


@dataclass
class EpisodeEntry:
    """An episode directory with the files the extractor needs."""
    dir_name: str
    directory: Path
    metadata: EpisodeMetadata

    @property
    def transcript_path(self) -> Path:
        return self.directory / TRANSCRIPT_FILE

    @property
    def artifact_path(self) -> Path:
        return self.directory / ARTIFACT_FILE


class EpisodeStore:
    """Read access to the episode directories plus artifact housekeeping."""

    def __init__(self, root: Path | None = None, ignore_file: Path | None = None):
        self.root = Path(root or settings.episodes_dir)
        self.ignore_file = Path(ignore_file or settings.ignore_file)
        self._ignored = load_ignore_list(self.ignore_file)
        if self._ignored:
            logger.info(f"Ignoring {len(self._ignored)} episodes from {self.ignore_file}")

    def episode_dir(self, dir_name: str) -> Path:
        return self.root / dir_name

    def artifact_path(self, dir_name: str) -> Path:
        return self.episode_dir(dir_name) / ARTIFACT_FILE

    def has_artifact(self, dir_name: str) -> bool:
        return self.artifact_path(dir_name).exists()

    def is_ignored(self, dir_name: str) -> bool:
        return dir_name in self._ignored

    def load_episode(self, dir_name: str) -> EpisodeEntry:
        """
        Load one episode by directory name.

        Raises:
            FileNotFoundError: If the directory has no metadata.json
        """
        directory = self.episode_dir(dir_name)
        metadata = EpisodeMetadata.from_file(directory / METADATA_FILE)
        return EpisodeEntry(dir_name=dir_name, directory=directory, metadata=metadata)

    def iter_episodes(self) -> Iterator[EpisodeEntry]:
        """Episodes with metadata and a transcript, sorted by directory name."""
        if not self.root.exists():
            logger.warning(f"Episodes directory not found: {self.root}")
            return

        for directory in sorted(self.root.iterdir()):
            if not directory.is_dir() or directory.name.startswith("."):
                continue
            if self.is_ignored(directory.name):
                logger.debug(f"Ignored: {directory.name}")
                continue
            if not (directory / METADATA_FILE).exists() or not (directory / TRANSCRIPT_FILE).exists():
                continue
            try:
                yield self.load_episode(directory.name)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping {directory.name}: unreadable metadata: {e}")

    def list_episodes(self) -> List[EpisodeEntry]:
        return list(self.iter_episodes())

    def find_episode(self, identifier: str) -> EpisodeEntry | None:
        """
        Find an episode by feed id, itunes episode number, or title number.

        "575" matches a title like "575. No Such Thing As ...".
        """
        if not self.root.exists():
            return None

        title_prefix = f"{identifier}."
        for directory in sorted(self.root.iterdir()):
            if not directory.is_dir() or directory.name.startswith("."):
                continue
            if not (directory / METADATA_FILE).exists():
                continue

            try:
                entry = self.load_episode(directory.name)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping {directory.name}: unreadable metadata: {e}")
                continue
            metadata = entry.metadata
            if metadata.id == identifier:
                return entry
            if metadata.itunes and metadata.itunes.episode == identifier:
                return entry
            if metadata.title.startswith(title_prefix):
                return entry
        return None

    def reset_artifact(self, dir_name: str) -> bool:
        """Delete an episode's artifact so the next run reprocesses it."""
        path = self.artifact_path(dir_name)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted existing {ARTIFACT_FILE} for: {dir_name}")
        return True

    def load_record(self, dir_name: str) -> EpisodeFactRecord | None:
        path = self.artifact_path(dir_name)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return EpisodeFactRecord.model_validate(json.load(f))

"""Episode metadata, classification and the on-disk episode store."""

from fishfacts.episodes.classifier import classify, is_standard
from fishfacts.episodes.models import Classification, EpisodeMetadata
from fishfacts.episodes.store import EpisodeEntry, EpisodeStore

__all__ = [
    "classify",
    "is_standard",
    "Classification",
    "EpisodeMetadata",
    "EpisodeEntry",
    "EpisodeStore",
]

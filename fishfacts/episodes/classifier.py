"""
Episode eligibility classifier.

Decides from feed metadata alone whether an episode follows the standard
four-fact format. Pure and deterministic: no I/O, no network.

Example:
    classify({"title": "575. No Such Thing As A Fish", "itunes": {"episode": "575"}})
    # -> Classification.STANDARD
"""

import re
from typing import Any, Mapping

from fishfacts.episodes.models import Classification, EpisodeMetadata

TITLE_NUMBER_PATTERN = re.compile(r"^\d+[.:]")
COMPILATION_PATTERN = re.compile(r"compilation", re.IGNORECASE)
BONUS_PREFIX_PATTERN = re.compile(r"^bonus", re.IGNORECASE)


def _coerce(metadata: EpisodeMetadata | Mapping[str, Any]) -> EpisodeMetadata:
    if isinstance(metadata, EpisodeMetadata):
        return metadata
    return EpisodeMetadata.model_validate(metadata)


def is_standard(metadata: EpisodeMetadata | Mapping[str, Any]) -> bool:
    """
    Check whether an episode qualifies for four-fact extraction.

    Rules:
    1. Has an itunes episode number and episodeType is not "bonus"
    2. OR episodeType is "full"
    3. OR the title starts with a number followed by "." or ":"
    ...and the title mentions neither "compilation" nor starts with "bonus".
    """
    meta = _coerce(metadata)
    itunes = meta.itunes
    episode_number = itunes.episode if itunes else None
    episode_type = itunes.episode_type if itunes else None

    has_episode_number = bool(episode_number) and episode_type != "bonus"
    is_full_episode = episode_type == "full"
    title_has_number = bool(TITLE_NUMBER_PATTERN.match(meta.title))
    title_has_compilation_or_bonus = bool(
        COMPILATION_PATTERN.search(meta.title) or BONUS_PREFIX_PATTERN.match(meta.title)
    )

    return (has_episode_number or is_full_episode or title_has_number) and not title_has_compilation_or_bonus


def classify(metadata: EpisodeMetadata | Mapping[str, Any]) -> Classification:
    """
    Classify an episode as standard, compilation, bonus or other.

    Args:
        metadata: EpisodeMetadata or the raw metadata.json mapping

    Returns:
        Classification for the episode
    """
    meta = _coerce(metadata)

    if is_standard(meta):
        return Classification.STANDARD

    episode_type = meta.itunes.episode_type if meta.itunes else None
    if episode_type == "bonus":
        if COMPILATION_PATTERN.search(meta.title):
            return Classification.COMPILATION
        return Classification.BONUS

    return Classification.OTHER

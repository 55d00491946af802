"""
Structured output schemas for fact extraction.

The same pydantic models serve two purposes:
- their JSON Schema is sent to Gemini as the response schema
- they validate whatever text comes back

Two record variants exist:
- EpisodeFactRecord: the model classifies the episode and returns 0 or 4 facts
- StandardEpisodeFactRecord: the episode is already known to be standard,
  episode_type is fixed and exactly four facts are required
"""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

START_TIME_PATTERN = r"^(\d{2}:\d{2}:\d{2}|unknown)$"

EpisodeType = Literal["standard", "compilation", "bonus", "other"]


class Fact(BaseModel):
    """One of the four facts presented in a standard episode."""

    model_config = ConfigDict(extra="forbid")

    fact_number: int = Field(strict=True, ge=1, le=4, description="Position of the fact in the show (1-4)")
    fact: str = Field(strict=True, description="The fact in the presenter's own 1-2 sentence wording")
    presenter: str = Field(strict=True, description="Full name of the presenter of the fact")
    guest: bool = Field(strict=True, description="True when the presenter is a guest, not one of the four hosts")
    start_time: str = Field(
        pattern=START_TIME_PATTERN,
        description="HH:MM:SS where the fact is introduced, or 'unknown'",
    )


class EpisodeFactRecord(BaseModel):
    """Validated fact record for one episode (general variant)."""

    model_config = ConfigDict(extra="forbid")

    episode_type: EpisodeType = Field(description="Episode classification")
    episode_summary: str = Field(strict=True, description="Two or three sentence summary of the episode")
    facts: List[Fact] = Field(
        max_length=4,
        description="Exactly four facts for standard episodes, otherwise empty",
    )


class StandardEpisodeFactRecord(BaseModel):
    """Fact record for an episode already classified as standard."""

    model_config = ConfigDict(extra="forbid")

    episode_type: Literal["standard"] = Field(description="Always 'standard'")
    episode_summary: str = Field(strict=True, description="Two or three sentence summary of the episode")
    facts: List[Fact] = Field(
        min_length=4,
        max_length=4,
        description="The four facts of the episode, numbered 1 to 4",
    )


def record_model(known_standard: bool) -> type[BaseModel]:
    """Pick the record model for the execution mode."""
    return StandardEpisodeFactRecord if known_standard else EpisodeFactRecord

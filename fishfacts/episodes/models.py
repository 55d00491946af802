"""Episode metadata models (written by the feed discovery step, read-only here)."""

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Classification(str, Enum):
    """Episode eligibility classes."""

    STANDARD = "standard"
    COMPILATION = "compilation"
    BONUS = "bonus"
    OTHER = "other"


class ItunesInfo(BaseModel):
    """The subset of the feed's itunes namespace the classifier looks at."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    episode: str | None = None
    episode_type: str | None = Field(default=None, alias="episodeType")

    @field_validator("episode", mode="before")
    @classmethod
    def _episode_as_text(cls, value):
        # Feeds carry the episode number as either a string or an int
        if value is None:
            return None
        return str(value)


class EpisodeMetadata(BaseModel):
    """
    Episode metadata as stored in <episode_dir>/metadata.json.

    Attributes:
        title: Feed title, e.g. "575. No Such Thing As A Fish"
        itunes: Optional itunes block (episode number, episodeType)
        id: Feed identifier, when known
        dir_name: Episode directory name, when known
        publish_date: ISO publish date, when known
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str
    itunes: ItunesInfo | None = None
    id: str | None = None
    dir_name: str | None = Field(default=None, alias="dirName")
    publish_date: str | None = Field(default=None, alias="publishDate")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value):
        if value is None:
            return None
        return str(value)

    @classmethod
    def from_file(cls, path: Path) -> "EpisodeMetadata":
        """Load metadata.json from disk."""
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate(json.load(f))

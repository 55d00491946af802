"""
Model output validation and artifact persistence.

Strategy for getting JSON out of model text:
1. Parse the text as-is
2. Parse the interior of a fenced code block (```json ... ```)
3. Parse the slice from the first "{" to the last "}"

The parsed object is then validated against the fact record schema and the
cross-field rules the schema cannot express.

Usage:
    from fishfacts.extraction.validator import parse_model_output, write_artifact

    record = parse_model_output(response_text)
    write_artifact(record, Path("data/episodes/2024-05-02_x/facts.json"))
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any

import pydantic

from fishfacts.extraction.errors import ParseError, ValidationError
from fishfacts.extraction.schemas import EpisodeFactRecord
from fishfacts.infrastructure.logger import get_logger

logger = get_logger(__name__)

FENCED_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
FACT_NUMBERS = {1, 2, 3, 4}


def extract_json(text: str) -> Any:
    """
    Extract a JSON value from raw model output.

    Raises:
        ParseError: If none of the three strategies yields valid JSON
    """
    if not text or not text.strip():
        raise ParseError("Empty response from model")
    text = text.strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = FENCED_BLOCK_PATTERN.search(text)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            logger.debug("Fenced block found but its content is not valid JSON")

    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            pass

    raise ParseError(f"Could not parse JSON from model output: {text[:120]!r}")


def _field_path(loc: tuple) -> str:
    return ".".join(str(part) for part in loc)


def check_business_rules(record: EpisodeFactRecord, known_standard: bool = False) -> None:
    """
    Enforce the rules that span several fields.

    - standard episodes have exactly 4 facts
    - non-standard episodes have 0 or 4 facts
    - 4 facts carry fact_number 1..4 exactly once
    """
    count = len(record.facts)

    if known_standard and record.episode_type != "standard":
        raise ValidationError("episode_type", f"expected 'standard', got '{record.episode_type}'")

    if record.episode_type == "standard":
        if count != 4:
            raise ValidationError("facts", "standard episodes must have exactly 4 facts")
    elif count not in (0, 4):
        raise ValidationError("facts", "non-standard episodes must have 0 or 4 facts")

    if count == 4:
        numbers = [fact.fact_number for fact in record.facts]
        if sorted(numbers) != sorted(FACT_NUMBERS):
            raise ValidationError("facts", "facts must include fact_number 1..4 exactly once")


def validate_record(obj: Any, known_standard: bool = False) -> EpisodeFactRecord:
    """
    Validate a parsed object as an episode fact record.

    Args:
        obj: Parsed JSON value
        known_standard: Reject anything but a standard, four-fact record

    Returns:
        EpisodeFactRecord

    Raises:
        ValidationError: With the violated field path and a readable reason
    """
    try:
        record = EpisodeFactRecord.model_validate(obj)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        raise ValidationError(_field_path(first["loc"]), first["msg"]) from e

    check_business_rules(record, known_standard=known_standard)
    return record


def parse_model_output(text: str, known_standard: bool = False) -> EpisodeFactRecord:
    """Extract and validate a fact record from raw model output."""
    return validate_record(extract_json(text), known_standard=known_standard)


def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON so readers only ever see the old or the new file, never a partial one."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix="._tmp_", suffix=".json", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def write_artifact(record: EpisodeFactRecord, path: Path) -> None:
    """Persist a validated record as the episode's output artifact."""
    write_json_atomic(path, record.model_dump(mode="json"))
    logger.info(f"✅ Wrote {path}")

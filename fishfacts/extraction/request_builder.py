"""
Extraction request construction.

Turns an episode's canonical transcript table into an ExtractionRequest:
system instructions (with the presenter roster), the transcript CSV as user
content, and the strict response schema for the chosen variant.

Usage:
    from fishfacts.extraction.request_builder import build_request

    request = build_request("2024-05-02_575-no-such-thing", rows, artifact_path)
    print(request.estimated_tokens(overhead=2000))
"""

import copy
import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from fishfacts.config.prompts.fact_extraction_prompt import (
    FACT_RULES,
    GENERAL_EXTRACTION_PROMPT,
    PRESENTERS,
    PRESENTER_ALIASES,
    STANDARD_EXTRACTION_PROMPT,
)
from fishfacts.config.settings import settings
from fishfacts.extraction.schemas import record_model
from fishfacts.preprocessing.transcript_normalizer import CanonicalRow, rows_to_csv

CHARS_PER_TOKEN = 4


def _inline_refs(node: Any, defs: Dict[str, Any]) -> Any:
    """Replace {"$ref": "#/$defs/X"} nodes with the referenced definition."""
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith("#/$defs/"):
            return _inline_refs(copy.deepcopy(defs[ref.split("/")[-1]]), defs)
        return {k: _inline_refs(v, defs) for k, v in node.items() if k != "$defs"}
    if isinstance(node, list):
        return [_inline_refs(item, defs) for item in node]
    return node


def response_schema(known_standard: bool = False) -> Dict[str, Any]:
    """
    JSON Schema for the model response.

    Args:
        known_standard: Use the narrow variant (episode_type fixed to
            "standard", exactly four facts)

    Returns:
        Self-contained JSON Schema dict (no $ref indirection)
    """
    schema = record_model(known_standard).model_json_schema()
    return _inline_refs(schema, schema.get("$defs", {}))


def system_instructions(known_standard: bool = False) -> str:
    fact_rules = FACT_RULES.format(
        presenters=", ".join(PRESENTERS),
        aliases=", ".join(f"{alias} = {name}" for alias, name in PRESENTER_ALIASES.items()),
    )
    template = STANDARD_EXTRACTION_PROMPT if known_standard else GENERAL_EXTRACTION_PROMPT
    return template.format(fact_rules=fact_rules)


@dataclass
class ExtractionRequest:
    """
    Everything needed to run one extraction call for one episode.

    Attributes:
        episode_id: Episode directory name
        canonical_table: Transcript CSV (start_hhmmss,end_hhmmss,text)
        system_instructions: Instructions including the presenter roster
        response_schema: Strict JSON Schema the output must follow
        artifact_path: Where the validated record is written
        known_standard: True when the narrow standard-only variant is used
    """
    episode_id: str
    canonical_table: str
    system_instructions: str
    response_schema: Dict[str, Any]
    artifact_path: Path
    known_standard: bool = False

    @property
    def user_content(self) -> str:
        return f"Filename: {self.episode_id}.vtt\n\nTranscript CSV:\n{self.canonical_table}"

    def estimated_tokens(self, overhead: int | None = None) -> int:
        """Crude token estimate: 4 characters per token plus a fixed overhead."""
        if overhead is None:
            overhead = settings.request_overhead_tokens
        return math.ceil(len(self.canonical_table) / CHARS_PER_TOKEN) + overhead

    def to_batch_line(self, correlation_id: str) -> str:
        """Render the request as one JSONL line of a batch payload."""
        return json.dumps({
            "key": correlation_id,
            "request": {
                "system_instruction": {"parts": [{"text": self.system_instructions}]},
                "contents": [{"role": "user", "parts": [{"text": self.user_content}]}],
                "generation_config": {
                    "temperature": settings.gemini_temperature,
                    "max_output_tokens": settings.gemini_max_output_tokens,
                    "response_mime_type": "application/json",
                    "response_json_schema": self.response_schema,
                },
            },
        }, ensure_ascii=False)


def build_request(
    episode_id: str,
    rows: List[CanonicalRow],
    artifact_path: Path,
    known_standard: bool = False,
) -> ExtractionRequest:
    """
    Build the extraction request for one episode.

    Args:
        episode_id: Episode directory name
        rows: Canonical transcript rows in cue order
        artifact_path: Destination of the validated fact record
        known_standard: Use the standard-only schema and instructions

    Returns:
        ExtractionRequest ready for either execution strategy
    """
    return ExtractionRequest(
        episode_id=episode_id,
        canonical_table=rows_to_csv(rows),
        system_instructions=system_instructions(known_standard),
        response_schema=response_schema(known_standard),
        artifact_path=artifact_path,
        known_standard=known_standard,
    )

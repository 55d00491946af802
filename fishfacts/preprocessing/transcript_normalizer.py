"""
Transcript normalizer: caption cues -> canonical timestamped table.

The speech-to-text step leaves a WebVTT file per episode. This module parses it
into Cues, rewrites each cue as a CanonicalRow (floored HH:MM:SS stamps,
collapsed whitespace) and persists the table as a JSON cue dump and a CSV.
Row order is the cue order of the source; fact start times are matched to it.

Example:
    cues = load_cues(Path("data/episodes/2024-05-02_x/transcript.vtt"))
    rows = normalize_cues(cues)
    csv_text = rows_to_csv(rows)
"""

import csv
import io
import json
import math
import re
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Iterable, List

from fishfacts.extraction.errors import ParseError
from fishfacts.infrastructure.logger import get_logger

logger = get_logger(__name__)

CSV_COLUMNS = ["start_hhmmss", "end_hhmmss", "text"]
CUES_DUMP_NAME = "transcript.cues.json"
CSV_DUMP_NAME = "transcript.csv"


@dataclass(frozen=True)
class Cue:
    """
    One caption unit from the transcription step.

    Attributes:
        start_ms: Cue start offset in milliseconds
        end_ms: Cue end offset in milliseconds
        text: Caption text as written by the transcriber
    """
    start_ms: int
    end_ms: int
    text: str


@dataclass(frozen=True)
class CanonicalRow:
    """A cue rewritten into the fixed start/end/text form sent to the model."""
    start_hhmmss: str
    end_hhmmss: str
    text: str


class VttParser:
    """
    Parser for WebVTT caption files.

    Format:
        WEBVTT

        1
        00:00:01.000 --> 00:00:04.500 align:start
        Hello and welcome to
        another episode

    Also tolerates SRT-style comma separators and short MM:SS.mmm stamps.
    """

    # Examples: "00:01:02.500", "01:02.500", "00:01:02,500"
    TIMING_PATTERN = re.compile(
        r'^\s*((?:\d+:)?\d{1,2}:\d{2}[.,]\d{1,3})\s*-->\s*((?:\d+:)?\d{1,2}:\d{2}[.,]\d{1,3})'
    )
    TAG_PATTERN = re.compile(r'<[^>]+>')
    SKIPPED_BLOCKS = ("WEBVTT", "NOTE", "STYLE", "REGION")

    def parse(self, content: str) -> List[Cue]:
        """
        Parse caption text into cues.

        Raises:
            ParseError: If a timing line is malformed or no cue is found
        """
        content = content.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")
        blocks = re.split(r'\n\s*\n', content.strip())

        cues: List[Cue] = []
        for block in blocks:
            lines = [line for line in block.split("\n") if line.strip()]
            if not lines or lines[0].strip().startswith(self.SKIPPED_BLOCKS):
                continue

            timing_index = next(
                (i for i, line in enumerate(lines[:2]) if "-->" in line), None
            )
            if timing_index is None:
                logger.debug(f"Skipping block without timing line: {lines[0][:40]!r}")
                continue

            match = self.TIMING_PATTERN.match(lines[timing_index])
            if not match:
                raise ParseError(f"Malformed cue timing: {lines[timing_index].strip()!r}")

            text = "\n".join(
                self.TAG_PATTERN.sub("", line) for line in lines[timing_index + 1:]
            )
            cues.append(Cue(
                start_ms=self._timestamp_to_ms(match.group(1)),
                end_ms=self._timestamp_to_ms(match.group(2)),
                text=text,
            ))

        if not cues:
            raise ParseError("No caption cues found")

        return cues

    def _timestamp_to_ms(self, timestamp: str) -> int:
        clock, frac = re.split(r'[.,]', timestamp)
        parts = [int(p) for p in clock.split(":")]
        while len(parts) < 3:
            parts.insert(0, 0)
        hours, minutes, seconds = parts
        return ((hours * 60 + minutes) * 60 + seconds) * 1000 + int(frac.ljust(3, "0"))


def parse_vtt(content: str) -> List[Cue]:
    return VttParser().parse(content)


def load_cues(path: Path) -> List[Cue]:
    """
    Read and parse a caption file.

    Raises:
        ParseError: If the file cannot be read or parsed
    """
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"Read failed: {path}: {e}") from e

    cues = parse_vtt(content)
    logger.debug(f"Parsed {len(cues)} cues from {path}")
    return cues


def seconds_to_hhmmss(seconds: float) -> str:
    """Format seconds as zero-padded HH:MM:SS, flooring fractions."""
    total = max(0, math.floor(seconds))
    hh = total // 3600
    mm = (total % 3600) // 60
    ss = total % 60
    return f"{hh:02d}:{mm:02d}:{ss:02d}"


def hhmmss_to_seconds(stamp: str) -> int:
    """Inverse of seconds_to_hhmmss for whole seconds."""
    try:
        hh, mm, ss = (int(part) for part in stamp.split(":"))
    except ValueError as e:
        raise ParseError(f"Invalid HH:MM:SS value: {stamp!r}") from e
    return hh * 3600 + mm * 60 + ss


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to one space and trim."""
    return re.sub(r'\s+', ' ', text).strip()


def normalize_cues(cues: Iterable[Cue]) -> List[CanonicalRow]:
    """Rewrite cues as canonical rows, keeping cue order."""
    return [
        CanonicalRow(
            start_hhmmss=seconds_to_hhmmss(cue.start_ms / 1000),
            end_hhmmss=seconds_to_hhmmss(cue.end_ms / 1000),
            text=collapse_whitespace(cue.text),
        )
        for cue in cues
    ]


def rows_to_csv(rows: Iterable[CanonicalRow]) -> str:
    """Render canonical rows as CSV with a header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for row in rows:
        writer.writerow([row.start_hhmmss, row.end_hhmmss, row.text])
    return buffer.getvalue()


def cues_to_json(cues: Iterable[Cue]) -> str:
    return json.dumps([asdict(cue) for cue in cues], indent=2, ensure_ascii=False)


def cues_from_json(content: str) -> List[Cue]:
    """
    Read a cue JSON dump back into cues.

    Accepts the current {start_ms, end_ms, text} shape and the older
    {start, end, text} dumps whose offsets are in seconds.
    """
    try:
        records = json.loads(content)
        cues = []
        for record in records:
            if "start_ms" in record:
                start_ms, end_ms = int(record["start_ms"]), int(record["end_ms"])
            else:
                start_ms = int(round(float(record["start"]) * 1000))
                end_ms = int(round(float(record["end"]) * 1000))
            cues.append(Cue(start_ms=start_ms, end_ms=end_ms, text=str(record["text"])))
        return cues
    except (ValueError, KeyError, TypeError) as e:
        raise ParseError(f"Invalid cue dump: {e}") from e


def cues_from_csv(content: str) -> List[Cue]:
    """Read a canonical CSV back into (whole-second) cues."""
    reader = csv.DictReader(io.StringIO(content))
    if reader.fieldnames != CSV_COLUMNS:
        raise ParseError(f"Unexpected CSV header: {reader.fieldnames}")
    return [
        Cue(
            start_ms=hhmmss_to_seconds(record["start_hhmmss"]) * 1000,
            end_ms=hhmmss_to_seconds(record["end_hhmmss"]) * 1000,
            text=record["text"],
        )
        for record in reader
    ]


def write_transcript_dumps(cues: List[Cue], rows: List[CanonicalRow], directory: Path) -> None:
    """
    Persist the cue JSON dump and canonical CSV next to the transcript.

    Write failures are logged and swallowed: the dumps are a by-product for
    downstream readers and never block extraction.
    """
    for name, content in (
        (CUES_DUMP_NAME, cues_to_json(cues)),
        (CSV_DUMP_NAME, rows_to_csv(rows)),
    ):
        path = directory / name
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not write {path}: {e}")

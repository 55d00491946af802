"""
Unit tests for the transcript normalizer.

Tests cover:
1. VTT parsing: cue ids, tags, NOTE blocks, SRT-style separators
2. Errors: malformed timing lines, empty captions, unreadable files
3. Canonical rows: floored HH:MM:SS, whitespace collapsing, order
4. Dumps: CSV / JSON written and read back

Run with:
    pytest tests/test_transcript_normalizer.py -v
"""

import json
import random

import pytest

from fishfacts.extraction.errors import ParseError
from fishfacts.preprocessing.transcript_normalizer import (
    CSV_DUMP_NAME,
    CUES_DUMP_NAME,
    CanonicalRow,
    Cue,
    cues_from_csv,
    cues_from_json,
    load_cues,
    normalize_cues,
    parse_vtt,
    rows_to_csv,
    seconds_to_hhmmss,
    write_transcript_dumps,
)


# ============================================================================
# VTT PARSING
# ============================================================================


class TestParseVtt:
    """Test WebVTT parsing."""

    def test_parse_basic_vtt(self, sample_vtt):
        cues = parse_vtt(sample_vtt)

        assert len(cues) == 3
        assert cues[0] == Cue(
            start_ms=1000,
            end_ms=4500,
            text="Hello and welcome to another episode\nof No Such Thing As A Fish.",
        )
        assert cues[1].start_ms == 65250
        assert cues[1].end_ms == 69999
        assert cues[2].start_ms == 3723900

    def test_voice_tags_stripped(self):
        cues = parse_vtt("WEBVTT\n\n00:00:01.000 --> 00:00:02.000\n<v Dan><b>Fact</b> one</v>\n")
        assert cues[0].text == "Fact one"

    def test_note_and_style_blocks_skipped(self):
        content = (
            "WEBVTT\n\n"
            "NOTE generated by whisper\n\n"
            "STYLE\n::cue { color: white }\n\n"
            "00:00:01.000 --> 00:00:02.000\nOnly cue\n"
        )
        cues = parse_vtt(content)
        assert [cue.text for cue in cues] == ["Only cue"]

    def test_short_stamps_and_comma_separator(self):
        cues = parse_vtt("WEBVTT\n\n01:02.5 --> 01:03,250 align:start\nShort stamps\n")
        assert cues[0].start_ms == 62500
        assert cues[0].end_ms == 63250

    def test_crlf_and_bom(self):
        content = "\ufeffWEBVTT\r\n\r\n00:00:01.000 --> 00:00:02.000\r\nWindows line endings\r\n"
        cues = parse_vtt(content)
        assert cues[0].text == "Windows line endings"

    def test_malformed_timing_raises(self):
        with pytest.raises(ParseError, match="Malformed cue timing"):
            parse_vtt("WEBVTT\n\n00:00:xx.000 --> 00:00:02.000\nBroken\n")

    def test_no_cues_raises(self):
        with pytest.raises(ParseError, match="No caption cues found"):
            parse_vtt("WEBVTT\n\nNOTE nothing here\n")

    def test_empty_file_raises(self):
        with pytest.raises(ParseError):
            parse_vtt("")

    def test_load_missing_file_raises(self, tmp_path):
        with pytest.raises(ParseError, match="Read failed"):
            load_cues(tmp_path / "missing.vtt")


# ============================================================================
# CANONICAL ROWS
# ============================================================================


class TestCanonicalRows:
    """Test cue -> canonical row conversion."""

    @pytest.mark.parametrize("seconds,expected", [
        (0, "00:00:00"),
        (59.999, "00:00:59"),
        (60, "00:01:00"),
        (3723.9, "01:02:03"),
        (-3, "00:00:00"),
        (100 * 3600, "100:00:00"),
    ])
    def test_seconds_to_hhmmss_floors(self, seconds, expected):
        assert seconds_to_hhmmss(seconds) == expected

    def test_whitespace_collapsed_and_trimmed(self):
        rows = normalize_cues([Cue(0, 999, "  lots   of\n\tspace  ")])
        assert rows == [CanonicalRow("00:00:00", "00:00:00", "lots of space")]

    def test_order_preserved(self):
        """Rows follow cue order, even when timestamps are not sorted."""
        cues = [Cue(5000, 6000, "b"), Cue(1000, 2000, "a"), Cue(9000, 9500, "c")]
        assert [row.text for row in normalize_cues(cues)] == ["b", "a", "c"]

    def test_csv_header_and_quoting(self):
        rows = [CanonicalRow("00:00:01", "00:00:04", 'He said "hello, fish"')]
        csv_text = rows_to_csv(rows)
        lines = csv_text.splitlines()
        assert lines[0] == "start_hhmmss,end_hhmmss,text"
        assert lines[1] == '00:00:01,00:00:04,"He said ""hello, fish"""'


# ============================================================================
# DUMPS
# ============================================================================


class TestDumps:
    """Test persisted dumps and reading them back."""

    def test_dump_files_written(self, tmp_path):
        cues = [Cue(1000, 4500, "Hello"), Cue(65250, 69999, "Fact one")]
        rows = normalize_cues(cues)

        write_transcript_dumps(cues, rows, tmp_path)

        dumped = json.loads((tmp_path / CUES_DUMP_NAME).read_text(encoding="utf-8"))
        assert dumped[0] == {"start_ms": 1000, "end_ms": 4500, "text": "Hello"}
        assert (tmp_path / CSV_DUMP_NAME).read_text(encoding="utf-8") == rows_to_csv(rows)

    def test_dump_failure_does_not_raise(self, tmp_path):
        """Dumps are best effort: a missing directory only logs a warning."""
        cues = [Cue(0, 1000, "x")]
        write_transcript_dumps(cues, normalize_cues(cues), tmp_path / "missing")

    def test_legacy_json_dump_in_seconds(self):
        cues = cues_from_json('[{"start": 1.5, "end": 2.25, "text": "old"}]')
        assert cues == [Cue(1500, 2250, "old")]

    def test_invalid_json_dump_raises(self):
        with pytest.raises(ParseError):
            cues_from_json('[{"text": "no offsets"}]')

    def test_csv_with_wrong_header_raises(self):
        with pytest.raises(ParseError, match="Unexpected CSV header"):
            cues_from_csv("start,end,text\n00:00:01,00:00:02,x\n")

    def test_rows_survive_reading_dumps_back(self):
        """Normalizing cues read back from either dump yields the same rows."""
        rng = random.Random(575)
        words = ["octopus", "bridge", "king", "fish", "  ", "\n", "tea,", '"quoted"']

        for _ in range(50):
            cues = []
            for _ in range(rng.randint(1, 8)):
                start = rng.randint(0, 4 * 3600 * 1000)
                text = " ".join(rng.choice(words) for _ in range(rng.randint(1, 6)))
                cues.append(Cue(start, start + rng.randint(0, 10_000), text or "x"))
            rows = normalize_cues(cues)

            dump = json.dumps([
                {"start_ms": c.start_ms, "end_ms": c.end_ms, "text": c.text} for c in cues
            ])
            assert normalize_cues(cues_from_json(dump)) == rows
            assert normalize_cues(cues_from_csv(rows_to_csv(rows))) == rows

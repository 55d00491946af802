"""Shared fixtures: on-disk episode factory and canned model output."""

import json
from pathlib import Path

import pytest

SAMPLE_VTT = """WEBVTT

1
00:00:01.000 --> 00:00:04.500
Hello and welcome to another episode
of No Such Thing As A Fish.

2
00:01:05.250 --> 00:01:09.999
It's time for fact number one, and that is Dan.

3
01:02:03.900 --> 01:02:07.100
<v Anna>My fact is that octopuses taste with their arms.
"""


def valid_record_dict(episode_type: str = "standard") -> dict:
    facts = []
    if episode_type == "standard":
        facts = [
            {
                "fact_number": n,
                "fact": f"Fact number {n} about fish.",
                "presenter": presenter,
                "guest": False,
                "start_time": f"00:{10 * n:02d}:00",
            }
            for n, presenter in zip(
                range(1, 5),
                ["Dan Schreiber", "Anna Ptaszynski", "James Harkin", "Andrew Hunter Murray"],
            )
        ]
    return {
        "episode_type": episode_type,
        "episode_summary": "The elves discuss octopuses, kings and bridges.",
        "facts": facts,
    }


@pytest.fixture
def record_dict():
    """Factory for a valid fact record as a plain dict."""
    return valid_record_dict


@pytest.fixture
def record_json():
    """Factory for a valid fact record as model output text."""
    def _make(episode_type: str = "standard") -> str:
        return json.dumps(valid_record_dict(episode_type))
    return _make


@pytest.fixture
def episodes_root(tmp_path) -> Path:
    root = tmp_path / "episodes"
    root.mkdir()
    return root


@pytest.fixture
def make_episode(episodes_root):
    """Create an episode directory with metadata.json and (optionally) a transcript."""
    def _make(
        dir_name: str,
        title: str = "575. No Such Thing As A Fish",
        itunes: dict | None = None,
        episode_id: str | None = None,
        vtt: str | None = SAMPLE_VTT,
        facts: dict | None = None,
    ) -> Path:
        directory = episodes_root / dir_name
        directory.mkdir()
        metadata = {
            "id": episode_id or dir_name,
            "title": title,
            "publishDate": "2024-05-02T05:00:00.000Z",
            "dirName": dir_name,
        }
        if itunes is not None:
            metadata["itunes"] = itunes
        (directory / "metadata.json").write_text(json.dumps(metadata), encoding="utf-8")
        if vtt is not None:
            (directory / "transcript.vtt").write_text(vtt, encoding="utf-8")
        if facts is not None:
            (directory / "facts.json").write_text(json.dumps(facts), encoding="utf-8")
        return directory
    return _make


@pytest.fixture
def sample_vtt() -> str:
    return SAMPLE_VTT

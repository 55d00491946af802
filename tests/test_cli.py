"""
Tests for the extract_facts / retry_facts command line entry points.

Run with:
    pytest tests/test_cli.py -v
"""

from unittest.mock import Mock, patch

import pytest

from fishfacts.cli import extract_facts, retry_facts
from fishfacts.config.settings import settings
from fishfacts.execution.batch_orchestrator import BatchOrchestrator
from fishfacts.execution.throttled_executor import ThrottledExecutor
from fishfacts.execution.token_budget import TokenBudgetWindow


@pytest.fixture(autouse=True)
def store_settings(monkeypatch, episodes_root, tmp_path):
    monkeypatch.setattr(settings, "episodes_dir", str(episodes_root))
    monkeypatch.setattr(settings, "ignore_file", str(tmp_path / "episodes-ignore.txt"))
    monkeypatch.setattr(settings, "gemini_api_key", None)


class TestParseArgs:
    def test_defaults(self):
        args = extract_facts.parse_args([])
        assert args.mode == "batch"
        assert args.limit == 0
        assert not args.force
        assert args.episode is None

    def test_repeatable_episode(self):
        args = extract_facts.parse_args(["--episode", "a", "--episode", "b", "--mode", "sync"])
        assert args.episode == ["a", "b"]
        assert args.mode == "sync"

    def test_negative_limit_rejected(self):
        with pytest.raises(SystemExit):
            extract_facts.parse_args(["--limit", "-1"])


class TestExtractFactsMain:
    def test_dry_run_sends_nothing(self, make_episode):
        make_episode("2024-05-02_a")

        with patch.object(extract_facts, "GeminiService") as service_cls:
            assert extract_facts.main(["--dry-run"]) == 0

        service_cls.assert_not_called()

    def test_nothing_to_do(self, make_episode, record_dict):
        make_episode("2024-05-02_a", facts=record_dict())
        assert extract_facts.main([]) == 0

    def test_missing_api_key_exits_1(self, make_episode):
        make_episode("2024-05-02_a")
        assert extract_facts.main(["--mode", "sync"]) == 1

    def test_unknown_episode_dir_exits_1(self):
        assert extract_facts.main(["--episode", "does-not-exist"]) == 1

    def test_build_strategy(self):
        service = object()
        assert isinstance(extract_facts.build_strategy("batch", service), BatchOrchestrator)
        assert isinstance(extract_facts.build_strategy("sync", service), ThrottledExecutor)


class TestRetryFactsMain:
    def test_requires_identifiers(self):
        with pytest.raises(SystemExit):
            retry_facts.parse_args([])

    def test_missing_api_key_exits_1(self):
        assert retry_facts.main(["575"]) == 1

    def test_retry_shows_new_facts(self, make_episode, record_dict, record_json, capsys):
        make_episode("2024-05-02_a", facts=record_dict("other"))
        service = Mock()
        service.generate.return_value = record_json()
        window = TokenBudgetWindow(limit=1_000_000, clock=lambda: 0.0, sleep=lambda s: None)
        executor = ThrottledExecutor(service, window=window, sleep=lambda s: None)

        with patch.object(retry_facts, "GeminiService"), \
                patch.object(retry_facts, "build_strategy", return_value=executor):
            assert retry_facts.main(["575"]) == 0

        output = capsys.readouterr().out
        assert "2024-05-02_a" in output
        assert "00:10:00" in output
        assert "00:40:00" in output

"""
Unit tests for GeminiService with a mocked SDK client (no network).

Run with:
    pytest tests/test_gemini_service.py -v
"""

from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

import pytest
from google.genai import errors as genai_errors
from google.genai import types

from fishfacts.config.settings import settings
from fishfacts.execution.batch_orchestrator import BatchOrchestrator
from fishfacts.execution.outcomes import OutcomeKind
from fishfacts.extraction.errors import ConfigurationError, RateLimitError, ServiceError
from fishfacts.extraction.request_builder import build_request
from fishfacts.infrastructure.gemini_service import (
    GeminiService,
    response_text_from_payload,
    translate_api_error,
)
from fishfacts.preprocessing.transcript_normalizer import CanonicalRow


def api_error(cls, code: int, status: str):
    return cls(code, {"error": {"code": code, "message": "boom", "status": status}})


@pytest.fixture
def request_():
    rows = [CanonicalRow("00:00:01", "00:00:04", "Hello")]
    return build_request("ep", rows, Path("facts.json"))


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def service(client):
    return GeminiService(model_name="gemini-test", client=client)


class TestConfiguration:
    """Test construction."""

    def test_missing_api_key_raises(self):
        with patch.object(settings, "gemini_api_key", None):
            with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
                GeminiService()

    def test_injected_client_needs_no_key(self, client):
        with patch.object(settings, "gemini_api_key", None):
            service = GeminiService(client=client)
        assert service.client is client


class TestErrorTranslation:
    """Test SDK error mapping."""

    def test_429_is_rate_limit(self):
        error = translate_api_error(api_error(genai_errors.ClientError, 429, "RESOURCE_EXHAUSTED"))
        assert isinstance(error, RateLimitError)

    def test_server_error_is_service_error(self):
        error = translate_api_error(api_error(genai_errors.ServerError, 503, "UNAVAILABLE"))
        assert isinstance(error, ServiceError)
        assert error.status_code == 503

    def test_bad_request_is_service_error(self):
        error = translate_api_error(api_error(genai_errors.ClientError, 400, "INVALID_ARGUMENT"))
        assert isinstance(error, ServiceError)
        assert not isinstance(error, RateLimitError)


class TestGenerate:
    """Test synchronous calls."""

    def test_returns_response_text(self, service, client, request_):
        client.models.generate_content.return_value = Mock(text='{"episode_type": "other"}')

        assert service.generate(request_) == '{"episode_type": "other"}'

        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["contents"] == request_.user_content
        assert kwargs["config"].response_mime_type == "application/json"
        assert kwargs["config"].response_json_schema == request_.response_schema

    def test_empty_response_is_empty_text(self, service, client, request_):
        client.models.generate_content.return_value = Mock(text=None)
        assert service.generate(request_) == ""

    def test_rate_limit_translated(self, service, client, request_):
        client.models.generate_content.side_effect = api_error(
            genai_errors.ClientError, 429, "RESOURCE_EXHAUSTED"
        )
        with pytest.raises(RateLimitError):
            service.generate(request_)

    def test_transport_error_is_service_error(self, service, client, request_):
        client.models.generate_content.side_effect = ConnectionError("reset by peer")
        with pytest.raises(ServiceError, match="reset by peer"):
            service.generate(request_)


class TestBatchCalls:
    """Test the batch job wrappers."""

    def test_batch_state_name(self, service, client):
        client.batches.get.return_value = Mock(state=types.JobState.JOB_STATE_RUNNING)
        assert service.get_batch_state("batches/1") == "JOB_STATE_RUNNING"

    def test_download_results(self, service, client):
        job = Mock()
        job.dest.file_name = "files/results-1"
        client.batches.get.return_value = job
        client.files.download.return_value = b'{"key": "request_0_ep"}\n'

        assert service.download_batch_results("batches/1") == '{"key": "request_0_ep"}\n'
        client.files.download.assert_called_once_with(file="files/results-1")

    def test_download_without_result_file(self, service, client):
        client.batches.get.return_value = Mock(dest=None)
        with pytest.raises(ServiceError, match="no result file"):
            service.download_batch_results("batches/1")

    def test_create_job(self, service, client):
        client.batches.create.return_value = Mock()
        client.batches.create.return_value.name = "batches/42"

        assert service.create_batch_job("files/payload", "fishfacts-2-episodes") == "batches/42"
        assert client.batches.create.call_args.kwargs["src"] == "files/payload"


class TestResponseText:
    """Test text extraction from batch response payloads."""

    def test_joins_parts(self):
        payload = {"candidates": [{"content": {"parts": [{"text": '{"a"'}, {"text": ": 1}"}]}}]}
        assert response_text_from_payload(payload) == '{"a": 1}'

    def test_skips_thought_parts(self):
        payload = {"candidates": [{"content": {"parts": [
            {"text": "thinking...", "thought": True},
            {"text": "{}"},
        ]}}]}
        assert response_text_from_payload(payload) == "{}"

    def test_no_candidates(self):
        assert response_text_from_payload({}) == ""
        assert response_text_from_payload({"candidates": [{"finishReason": "SAFETY"}]}) == ""


class TestBatchTransportErrors:
    """Test that non-SDK failures in batch calls surface as ServiceError."""

    def test_upload_connection_error(self, service, client, tmp_path):
        payload = tmp_path / "payload.jsonl"
        payload.write_text("{}\n")
        client.files.upload.side_effect = ConnectionError("network down")

        with pytest.raises(ServiceError, match="network down"):
            service.upload_batch_file(payload)

    def test_create_connection_error(self, service, client):
        client.batches.create.side_effect = TimeoutError("timed out")
        with pytest.raises(ServiceError, match="timed out"):
            service.create_batch_job("files/payload", "fishfacts-1-episodes")

    def test_status_connection_error(self, service, client):
        client.batches.get.side_effect = ConnectionError("network down")
        with pytest.raises(ServiceError, match="network down"):
            service.get_batch_state("batches/1")

    def test_download_connection_error(self, service, client):
        job = Mock()
        job.dest.file_name = "files/results-1"
        client.batches.get.return_value = job
        client.files.download.side_effect = ConnectionError("reset by peer")

        with pytest.raises(ServiceError, match="reset by peer"):
            service.download_batch_results("batches/1")

    def test_orchestrated_run_fails_every_request(self, service, client, tmp_path):
        client.files.upload.return_value = Mock()
        client.files.upload.return_value.name = "files/payload"
        client.batches.create.return_value = Mock()
        client.batches.create.return_value.name = "batches/1"
        client.batches.get.side_effect = ConnectionError("network down")
        rows = [CanonicalRow("00:00:01", "00:00:04", "Hello")]
        requests = [
            build_request(episode_id, rows, tmp_path / episode_id / "facts.json")
            for episode_id in ["ep-a", "ep-b"]
        ]
        orchestrator = BatchOrchestrator(
            service,
            poll_interval=30,
            max_wait_seconds=0,
            sleep=lambda s: None,
            clock=lambda: 0.0,
            work_dir=tmp_path,
        )

        outcomes = orchestrator.run(requests)

        assert [o.episode_id for o in outcomes] == ["ep-a", "ep-b"]
        assert all(o.kind == OutcomeKind.FAIL for o in outcomes)
        assert all(o.error_kind == "service" for o in outcomes)

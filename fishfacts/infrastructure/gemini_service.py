"""
Gemini service for fact extraction.

Wraps the google-genai SDK for the two execution strategies:
- synchronous structured-output calls (throttled executor)
- batch jobs fed by an uploaded JSONL file (batch orchestrator)

SDK errors are translated here so the rest of the engine only sees
RateLimitError (HTTP 429 / RESOURCE_EXHAUSTED) and ServiceError.

Usage:
    from fishfacts.infrastructure.gemini_service import GeminiService

    service = GeminiService()
    text = service.generate(request)
"""

from pathlib import Path
from typing import Any, Dict

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from fishfacts.config.settings import settings
from fishfacts.extraction.errors import ConfigurationError, RateLimitError, ServiceError
from fishfacts.extraction.request_builder import ExtractionRequest
from fishfacts.infrastructure.logger import get_logger

logger = get_logger(__name__)


def translate_api_error(error: genai_errors.APIError) -> Exception:
    """Map an SDK APIError onto the engine's error taxonomy."""
    if error.code == 429 or error.status == "RESOURCE_EXHAUSTED":
        return RateLimitError(f"Gemini rate limited ({error.code}): {error.message}")
    return ServiceError(f"Gemini returned {error.code}: {error.message}", status_code=error.code)


def response_text_from_payload(payload: Dict[str, Any]) -> str:
    """
    Pull the generated text out of a GenerateContentResponse in JSON form.

    Batch result files carry responses as plain JSON, so this walks the
    candidates -> content -> parts structure instead of building SDK objects.
    """
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if not part.get("thought"))


class GeminiService:
    """
    Service for extracting fact records with the Google Gemini API.

    Features:
    - Structured output via response_json_schema
    - Batch job lifecycle (upload, create, status, download)
    - Error translation into RateLimitError / ServiceError

    The API key is checked at construction: a missing key is a run-level
    failure, raised as ConfigurationError before any episode is touched.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        client: genai.Client | None = None,
    ):
        """
        Initialize Gemini service with API key and model configuration.

        Args:
            api_key: Gemini API key (default from settings)
            model_name: Model name (default from settings)
            client: Pre-built client, mainly for tests
        """
        api_key = api_key or settings.gemini_api_key
        if client is None and not api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY not set. Please set the GEMINI_API_KEY environment variable."
            )

        self.client = client or genai.Client(api_key=api_key)
        self.model_name = model_name or settings.gemini_model

        logger.info(f"Initialized GeminiService with model={self.model_name}")

    def _generation_config(self, request: ExtractionRequest) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=request.system_instructions,
            temperature=settings.gemini_temperature,
            max_output_tokens=settings.gemini_max_output_tokens,
            response_mime_type="application/json",
            response_json_schema=request.response_schema,
        )

    def generate(self, request: ExtractionRequest) -> str:
        """
        Run one synchronous extraction call.

        Returns:
            Raw response text (may be empty; the validator decides)

        Raises:
            RateLimitError: The service throttled the call
            ServiceError: Any other service or transport failure
        """
        logger.debug(
            f"Calling Gemini for {request.episode_id} "
            f"with transcript length: {len(request.canonical_table)} chars"
        )
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=request.user_content,
                config=self._generation_config(request),
            )
        except genai_errors.APIError as e:
            raise translate_api_error(e) from e
        except Exception as e:
            raise ServiceError(f"Gemini request failed: {e}") from e

        text = response.text if response is not None else None
        return text or ""

    # Batch jobs

    def upload_batch_file(self, path: Path) -> str:
        """Upload a JSONL payload and return the file name to reference it by."""
        try:
            uploaded = self.client.files.upload(
                file=str(path),
                config=types.UploadFileConfig(display_name=path.stem, mime_type="jsonl"),
            )
        except genai_errors.APIError as e:
            raise translate_api_error(e) from e
        except Exception as e:
            raise ServiceError(f"Gemini batch upload failed: {e}") from e
        logger.info(f"Uploaded batch payload {path.name} as {uploaded.name}")
        return uploaded.name

    def create_batch_job(self, file_name: str, display_name: str) -> str:
        """Register a batch job over an uploaded payload; returns the job name."""
        try:
            job = self.client.batches.create(
                model=self.model_name,
                src=file_name,
                config=types.CreateBatchJobConfig(display_name=display_name),
            )
        except genai_errors.APIError as e:
            raise translate_api_error(e) from e
        except Exception as e:
            raise ServiceError(f"Gemini batch create failed: {e}") from e
        return job.name

    def get_batch_state(self, job_name: str) -> str:
        """Return the raw job state name, e.g. "JOB_STATE_RUNNING"."""
        try:
            job = self.client.batches.get(name=job_name)
        except genai_errors.APIError as e:
            raise translate_api_error(e) from e
        except Exception as e:
            raise ServiceError(f"Gemini batch status check failed: {e}") from e
        return getattr(job.state, "name", str(job.state))

    def download_batch_results(self, job_name: str) -> str:
        """Download the JSONL result file of a finished job."""
        try:
            job = self.client.batches.get(name=job_name)
        except genai_errors.APIError as e:
            raise translate_api_error(e) from e
        except Exception as e:
            raise ServiceError(f"Gemini batch status check failed: {e}") from e

        if job.dest is None or not job.dest.file_name:
            raise ServiceError(f"Batch {job_name} has no result file")

        try:
            content = self.client.files.download(file=job.dest.file_name)
        except genai_errors.APIError as e:
            raise translate_api_error(e) from e
        except Exception as e:
            raise ServiceError(f"Gemini batch download failed: {e}") from e
        return content.decode("utf-8") if isinstance(content, bytes) else str(content)

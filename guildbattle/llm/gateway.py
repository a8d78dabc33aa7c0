"""
Transcription Gateway - Provider-agnostic interface for screenshot transcription.

Sends a leaderboard screenshot to a vision model and returns either raw
text (CSV or OCR-style lines) or schema-validated structured rows. Retry
policy lives here, at the service boundary; callers see a finished result
or a TranscriptionError.
"""

import base64
import json
import mimetypes
import os
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import jsonschema

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class TranscriptionError(Exception):
    """The transcription service failed or returned unusable output."""


@dataclass
class TranscriptionResponse:
    """Response from a transcription call."""
    text: str
    model: str
    content: Any = None
    usage: dict = field(default_factory=dict)
    latency_ms: float = 0.0


@dataclass
class AttemptError:
    """Error from one transcription attempt."""
    error_type: str
    message: str
    retryable: bool


@dataclass
class ScreenshotImage:
    """Raw image bytes plus their media type."""
    data: bytes
    media_type: str = "image/png"
    name: str = ""

    @classmethod
    def from_path(cls, path: str | Path) -> "ScreenshotImage":
        path = Path(path)
        media_type = mimetypes.guess_type(path.name)[0] or "image/png"
        return cls(data=path.read_bytes(), media_type=media_type, name=path.name)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


class TranscriptionGateway(ABC):
    """Abstract base class for transcription providers."""

    @abstractmethod
    def transcribe(
        self,
        image: ScreenshotImage,
        prompt: str,
        options: Optional[dict] = None
    ) -> TranscriptionResponse:
        """
        Transcribe a screenshot to text.

        Args:
            image: The screenshot to read
            prompt: Instructions for the model
            options: Provider-specific options (max_tokens, temperature, etc.)

        Returns:
            TranscriptionResponse with the raw text

        Raises:
            TranscriptionError: If the call fails after retries
        """
        pass

    def transcribe_structured(
        self,
        image: ScreenshotImage,
        prompt: str,
        schema: dict,
        options: Optional[dict] = None
    ) -> TranscriptionResponse:
        """Transcribe to JSON and validate it against a schema."""
        instruction = (
            f"{prompt}\n\nOutput raw JSON only, conforming to this JSON schema:\n"
            f"{json.dumps(schema, indent=2)}"
        )
        response = self.transcribe(image, instruction, options)
        try:
            content = _extract_json(response.text)
            self._validate_output(content, schema)
        except json.JSONDecodeError as e:
            raise TranscriptionError(f"Failed to parse JSON transcription: {e}") from e
        except jsonschema.ValidationError as e:
            raise TranscriptionError(f"Transcription failed schema validation: {e.message}") from e
        response.content = content
        return response

    def _validate_output(self, output: Any, schema: dict) -> None:
        """Validate output against JSON schema."""
        jsonschema.validate(instance=output, schema=schema)


class ClaudeGateway(TranscriptionGateway):
    """Claude vision implementation of the transcription gateway."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")

        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        # Import anthropic lazily to allow module to load without it installed
        try:
            import anthropic
            self.client = anthropic.Anthropic(api_key=self.api_key)
        except ImportError:
            raise ImportError("anthropic package not installed. Run: pip install anthropic")

    def transcribe(
        self,
        image: ScreenshotImage,
        prompt: str,
        options: Optional[dict] = None
    ) -> TranscriptionResponse:
        """Send the screenshot and prompt, return the model's text."""
        options = options or {}
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image.media_type,
                    "data": image.to_base64(),
                },
            },
            {"type": "text", "text": prompt},
        ]

        last_error = None
        for attempt in range(self.max_retries):
            try:
                start_time = time.time()

                response = self.client.messages.create(
                    model=self.model,
                    max_tokens=options.get("max_tokens", 2000),
                    temperature=options.get("temperature", 0.0),
                    messages=[{"role": "user", "content": content}]
                )

                latency_ms = (time.time() - start_time) * 1000
                text = "".join(
                    block.text for block in response.content
                    if getattr(block, "type", "text") == "text"
                )
                if not text.strip():
                    raise TranscriptionError("Transcription service returned no text")

                return TranscriptionResponse(
                    text=text,
                    model=response.model,
                    usage={
                        "input_tokens": response.usage.input_tokens,
                        "output_tokens": response.usage.output_tokens
                    },
                    latency_ms=latency_ms
                )

            except TranscriptionError as e:
                last_error = AttemptError(
                    error_type="empty_response",
                    message=str(e),
                    retryable=True
                )
            except Exception as e:
                error_str = str(e)
                retryable = (
                    "rate_limit" in error_str.lower()
                    or "timeout" in error_str.lower()
                    or "overloaded" in error_str.lower()
                )
                last_error = AttemptError(
                    error_type="api_error",
                    message=error_str,
                    retryable=retryable
                )

            if attempt < self.max_retries - 1 and last_error.retryable:
                time.sleep(self.retry_delay * (attempt + 1))
            elif not last_error.retryable:
                break

        raise TranscriptionError(
            f"Screenshot transcription failed after {attempt + 1} attempt(s): {last_error.message}"
        )


class MockGateway(TranscriptionGateway):
    """Mock gateway for testing without API calls."""

    def __init__(self, responses: Optional[list] = None):
        """
        Initialize mock gateway.

        Args:
            responses: Texts returned in order, one per call. An Exception
                instance in the list is raised instead.
        """
        self.responses = list(responses or [])
        self.call_log: list[dict] = []

    def add_response(self, response) -> None:
        """Queue a text (or an exception) for the next call."""
        self.responses.append(response)

    def transcribe(
        self,
        image: ScreenshotImage,
        prompt: str,
        options: Optional[dict] = None
    ) -> TranscriptionResponse:
        """Return the next queued response."""
        self.call_log.append({
            "image": image.name,
            "media_type": image.media_type,
            "prompt": prompt,
            "options": options,
        })

        if not self.responses:
            raise TranscriptionError(f"No mock response configured for image: {image.name or '<bytes>'}")

        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if not isinstance(response, str):
            response = json.dumps(response)
        return TranscriptionResponse(text=response, model="mock")


def _extract_json(text: str) -> Any:
    """Parse JSON, tolerating markdown code fences around it."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    patterns = [
        r"```json\s*([\s\S]*?)\s*```",
        r"```\s*([\s\S]*?)\s*```",
        r"[\[{][\s\S]*[\]}]"
    ]
    for pattern in patterns:
        match = re.search(pattern, text)
        if match:
            try:
                json_str = match.group(1) if "```" in pattern else match.group(0)
                return json.loads(json_str)
            except (json.JSONDecodeError, IndexError):
                continue

    raise json.JSONDecodeError("No valid JSON found in response", text, 0)


def load_schema(schema_name: str) -> dict:
    """Load a JSON schema from the schemas directory."""
    schema_path = Path(__file__).parent.parent / "schemas" / f"{schema_name}.schema.json"
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_path}")

    with open(schema_path) as f:
        return json.load(f)


def create_gateway(provider: str = "claude", **kwargs) -> TranscriptionGateway:
    """Factory function to create a transcription gateway."""
    if provider == "claude":
        return ClaudeGateway(**kwargs)
    elif provider == "mock":
        return MockGateway(**kwargs)
    else:
        raise ValueError(f"Unknown provider: {provider}")

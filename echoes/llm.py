"""Narrative generator clients: HTTP connection to a structured-output model.

The orchestrator injects a generator matching the protocol:

    async def __call__(self, request: GenerationRequest)
        -> StructuredResponse | GenerationFailure: ...

Failures come back as a GenerationFailure classified by kind (network, auth,
rate_limit, validation, unknown) instead of being raised, so the caller can
treat every failed round-trip the same way.

Two implementations are provided:

    HttpNarrativeGenerator  real HTTP client for Gemini and
                            OpenAI-compatible chat backends, selected by
                            provider_format.
    EchoGenerator           returns a fixed atmospheric response. Useful for
                            playing through the engine without a model.

Tests use the stub generators defined in conftest.py instead.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal, Protocol

import httpx

from echoes.models import ErrorKind, GenerationFailure, GenerationRequest, StructuredResponse
from echoes.prompts import build_user_prompt
from echoes.validation import validate_response

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol: every generator implementation must match this signature
# ---------------------------------------------------------------------------

class NarrativeGenerator(Protocol):
    async def __call__(
        self, request: GenerationRequest
    ) -> StructuredResponse | GenerationFailure: ...


# ---------------------------------------------------------------------------
# GeneratorError: raised inside clients, carries its classification
# ---------------------------------------------------------------------------

class GeneratorError(RuntimeError):
    """A generator round-trip failed; ``kind`` says how."""

    def __init__(self, message: str, kind: ErrorKind = "unknown") -> None:
        super().__init__(message)
        self.kind: ErrorKind = kind

    def to_failure(self) -> GenerationFailure:
        return GenerationFailure(message=str(self), kind=self.kind)


def classify_status(status_code: int) -> ErrorKind:
    if status_code in (401, 403):
        return "auth"
    if status_code == 429:
        return "rate_limit"
    if status_code in (408, 504):
        return "network"
    return "unknown"


# ---------------------------------------------------------------------------
# HttpNarrativeGenerator: connects to a real backend
# ---------------------------------------------------------------------------

ProviderFormat = Literal["gemini", "openai"]


class HttpNarrativeGenerator:
    """Async HTTP client for structured-output chat backends.

    Supported formats:
      "gemini"  POST /v1beta/models/{model}:generateContent
                Response: {"candidates": [{"content": {"parts": [{"text": "..."}]}}]}
      "openai"  POST /v1/chat/completions  {"model": ..., "messages": [...]}
                Response: {"choices": [{"message": {"content": "..."}}]}

    Both ask the model for a JSON object; the text is then checked by
    validate_response().

    Args:
        provider_url:    Base URL of the backend.
        api_key:         API key, or empty string if not required.
        provider_format: Wire format to use. Defaults to "gemini".
        model:           Model identifier.
        timeout:         HTTP timeout in seconds. Defaults to 60.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "gemini",
        model: str = "gemini-2.5-flash",
        timeout: float = 60.0,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if not self._api_key:
            return headers
        if self._format == "openai":
            headers["Authorization"] = f"Bearer {self._api_key}"
        else:
            headers["x-goog-api-key"] = self._api_key
        return headers

    def _build_request(self, request: GenerationRequest) -> tuple[str, dict]:
        """Return (url, body) for the configured format."""
        prompt = build_user_prompt(request)
        if self._format == "openai":
            url = f"{self._base_url}/v1/chat/completions"
            body: dict[str, Any] = {
                "messages": [
                    {"role": "system", "content": request.system_prompt},
                    {"role": "user", "content": prompt},
                ],
                "response_format": {"type": "json_object"},
            }
            if self._model:
                body["model"] = self._model
            return url, body

        # gemini (default)
        url = f"{self._base_url}/v1beta/models/{self._model}:generateContent"
        return url, {
            "systemInstruction": {"parts": [{"text": request.system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }

    def _parse_response(self, data: Any) -> str:
        """Extract the model's JSON text from the response envelope."""
        try:
            if self._format == "openai":
                text = data["choices"][0]["message"]["content"]
            else:
                text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise GeneratorError(
                f"Unexpected response format from {self._format} backend", kind="validation"
            ) from e
        if not isinstance(text, str):
            raise GeneratorError(
                f"Unexpected response format from {self._format} backend", kind="validation"
            )
        return text

    async def _post(self, url: str, body: dict) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise GeneratorError(
                f"Cannot connect to generator backend at {self._base_url}", kind="network"
            ) from e
        except httpx.TimeoutException as e:
            raise GeneratorError(
                f"Generator backend timed out after {self._timeout}s", kind="network"
            ) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise GeneratorError(
                f"Generator backend returned HTTP {status}", kind=classify_status(status)
            ) from e
        except httpx.TransportError as e:
            raise GeneratorError(f"Transport error talking to generator: {e}", kind="network") from e

        try:
            return resp.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise GeneratorError("Generator backend returned a non-JSON body", kind="validation") from e

    async def __call__(
        self, request: GenerationRequest
    ) -> StructuredResponse | GenerationFailure:
        url, body = self._build_request(request)
        logger.debug(
            "generator call url=%s opening=%s history=%d",
            url, request.opening, len(request.history),
        )
        try:
            text = self._parse_response(await self._post(url, body))
        except GeneratorError as e:
            logger.warning("generator call failed kind=%s: %s", e.kind, e)
            return e.to_failure()

        result = validate_response(text)
        if isinstance(result, GenerationFailure):
            logger.warning("generator output rejected: %s", result.message)
        else:
            logger.debug("generator response len=%d", len(result.narrative))
        return result


# ---------------------------------------------------------------------------
# EchoGenerator: no network; useful for offline play
# ---------------------------------------------------------------------------

class EchoGenerator:
    """Answers every command with a short fixed scene. No network calls.

    Lets you verify the engine wiring (session handling, log, typewriter,
    API) end-to-end without a model or an API key.
    """

    async def __call__(
        self, request: GenerationRequest
    ) -> StructuredResponse | GenerationFailure:
        logger.debug("EchoGenerator opening=%s command=%r", request.opening, request.command)
        if request.opening:
            narrative = (
                "You wake on cold stone. Somewhere in the dark, something "
                "breathes in time with you."
            )
        else:
            narrative = (
                f'You try to "{request.command}". The darkness listens, '
                "and for a moment nothing answers."
            )
        return StructuredResponse(
            narrative=narrative, visual_cue="none", sound_cue="wind", state_delta={}
        )

"""Clients for the generative-text provider and tolerant JSON extraction."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Protocol
from urllib.parse import quote

import requests
from openai import APIError, APIStatusError, OpenAI

from newsrewriter.config import DEFAULT_GEMINI_BASE_URL, ProviderSettings
from newsrewriter.errors import (
    BadResponse,
    ConfigError,
    EmptyResponse,
    HttpError,
    JsonParseError,
    TransportError,
)
from newsrewriter.models import AIResult, PromptRequest
from newsrewriter.services.normalizer import normalize

__all__ = [
    "GenerativeTextClient",
    "OpenAIChatClient",
    "PROVIDER_TIMEOUT",
    "TextProvider",
    "build_provider",
    "extract_candidate_text",
    "extract_json",
]

logger = logging.getLogger(__name__)

PROVIDER_TIMEOUT = 60

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class TextProvider(Protocol):
    """Anything that turns a rendered prompt into a normalized result."""

    def generate(self, prompt: PromptRequest) -> AIResult:  # pragma: no cover - protocol
        ...


def extract_json(text: str) -> Dict[str, Any]:
    """Recover a JSON object from model output.

    Code fences are stripped and the text parsed directly; failing that, the
    substring between the first ``{`` and the last ``}`` is parsed.
    """

    text = (text or "").strip()
    if not text:
        raise EmptyResponse("AI provider returned empty text.")

    clean = _FENCE_RE.sub("", text).strip()
    try:
        data = json.loads(clean)
    except json.JSONDecodeError:
        data = None
    if isinstance(data, dict):
        return data

    start = clean.find("{")
    end = clean.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise JsonParseError("AI did not return a valid JSON object.", stage="locate")

    try:
        data = json.loads(clean[start : end + 1])
    except json.JSONDecodeError as exc:
        raise JsonParseError(
            f"Failed to parse JSON from AI response: {exc}", stage="decode"
        ) from exc
    if not isinstance(data, dict):
        raise JsonParseError("AI response JSON is not an object.", stage="decode")
    return data


def extract_candidate_text(data: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate of a generateContent answer."""

    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    return "".join(
        str(part["text"]) for part in parts if isinstance(part, dict) and "text" in part
    )


def _ensure_config(api_key: str, model: str) -> None:
    if not api_key:
        raise ConfigError("Provider API key is missing.")
    if not (model or "").strip():
        raise ConfigError("AI model is not set for this campaign.")


class GenerativeTextClient:
    """Call a ``generateContent`` style endpoint over plain HTTP."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        session: requests.Session | None = None,
        timeout: float = PROVIDER_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    def endpoint(self, model: str) -> str:
        return f"{self._base_url}/models/{quote(model.strip(), safe='')}:generateContent"

    @staticmethod
    def build_body(prompt: PromptRequest) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt.system_text}]}],
            "generationConfig": {"temperature": prompt.temperature},
        }
        if prompt.use_web_tools:
            body["tools"] = [{"googleSearch": {}}]
        else:
            body["generationConfig"]["responseMimeType"] = "application/json"
        return body

    def generate(self, prompt: PromptRequest) -> AIResult:
        _ensure_config(self._api_key, prompt.model)

        logger.info("Calling provider model %s (temperature %.2f)", prompt.model, prompt.temperature)
        try:
            response = self._session.post(
                self.endpoint(prompt.model),
                params={"key": self._api_key},
                json=self.build_body(prompt),
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Provider request failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise HttpError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as exc:
            raise BadResponse("Unexpected JSON response from provider.") from exc
        if not isinstance(data, dict):
            raise BadResponse("Unexpected JSON response from provider.")

        text = extract_candidate_text(data)
        if not text.strip():
            raise EmptyResponse("Provider returned empty content.")

        return normalize(extract_json(text))


class OpenAIChatClient:
    """Same contract as :class:`GenerativeTextClient`, backed by the OpenAI SDK."""

    def __init__(
        self,
        api_key: str,
        client: OpenAI | None = None,
        timeout: float = PROVIDER_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._client = client
        self._timeout = timeout

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self._api_key, timeout=self._timeout)
        return self._client

    def generate(self, prompt: PromptRequest) -> AIResult:
        _ensure_config(self._api_key, prompt.model)
        if prompt.use_web_tools:
            logger.warning("Web retrieval tools are not requested through the chat API")

        logger.info("Calling OpenAI model %s (temperature %.2f)", prompt.model, prompt.temperature)
        try:
            response = self._get_client().chat.completions.create(
                model=prompt.model,
                messages=[{"role": "user", "content": prompt.system_text}],
                temperature=prompt.temperature,
                response_format={"type": "json_object"},
            )
        except APIStatusError as exc:
            body = exc.response.text if exc.response is not None else str(exc)
            raise HttpError(exc.status_code, body) from exc
        except APIError as exc:
            raise TransportError(f"Provider request failed: {exc}") from exc

        choices = getattr(response, "choices", None)
        if not choices:
            raise BadResponse("Unexpected response from OpenAI.")

        text = choices[0].message.content or ""
        if not text.strip():
            raise EmptyResponse("Provider returned empty content.")

        return normalize(extract_json(text))


def build_provider(settings: ProviderSettings, session: requests.Session | None = None) -> TextProvider:
    """Return the client matching ``settings.provider``."""

    if settings.provider == "openai":
        return OpenAIChatClient(settings.openai_api_key, timeout=settings.timeout)
    return GenerativeTextClient(
        settings.gemini_api_key,
        base_url=settings.base_url,
        session=session,
        timeout=settings.timeout,
    )

from __future__ import annotations

import logging
from typing import Any

import httpx

from .skin_errors import ErrorCategory, SkinAnalysisError
from .skin_settings import DEFAULT_BASE_URL, DEFAULT_MODEL, DEFAULT_TIMEOUT_SECONDS, SkinAnalysisSettings

logger = logging.getLogger(__name__)

NO_ANALYSIS_MESSAGE = "No analysis received from the AI service."


class SkinProviderError(RuntimeError):
    pass


class OpenAIChatTransport:
    """Caller-owned handle for an OpenAI-compatible chat completions endpoint.

    Only the endpoint location lives on the instance; the credential travels
    with each call. Pass ``client`` to reuse one connection pool across calls;
    the transport never closes a client it was given.
    """

    route_id = "openai"
    label = "OpenAI"

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        default_model: str = DEFAULT_MODEL,
        default_api_key: str = "",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        http_transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.strip().rstrip("/")
        self.default_model = default_model.strip()
        self.default_api_key = default_api_key.strip()
        self.timeout_seconds = timeout_seconds
        self._http_transport = http_transport
        self._client = client

    @classmethod
    def from_settings(cls, settings: SkinAnalysisSettings) -> "OpenAIChatTransport":
        return cls(
            base_url=settings.base_url,
            default_model=settings.model,
            default_api_key=settings.api_key,
            timeout_seconds=settings.timeout_seconds,
        )

    @classmethod
    def from_env(cls) -> "OpenAIChatTransport":
        return cls.from_settings(SkinAnalysisSettings.from_env())

    @property
    def configured(self) -> bool:
        return bool(self.default_api_key and self.default_model)

    def availability(self) -> dict[str, Any]:
        return {
            "id": self.route_id,
            "label": self.label,
            "configured": bool(self.configured),
            "default_model": self.default_model,
        }

    async def complete(self, *, payload: dict[str, Any], api_key: str) -> dict[str, Any]:
        if not self.base_url.startswith("http"):
            raise SkinProviderError("Invalid upstream base URL.")

        url = _build_chat_completions_url(self.base_url)
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "User-Agent": "SkinLens/1.0",
        }
        logger.info("Sending chat completion request to %s (model=%s)", url, payload.get("model"))
        try:
            if self._client is not None:
                response = await self._client.post(
                    url,
                    headers=headers,
                    json=payload,
                    timeout=self.timeout_seconds,
                )
            else:
                async with httpx.AsyncClient(
                    timeout=self.timeout_seconds,
                    transport=self._http_transport,
                ) as client:
                    response = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise SkinProviderError(f"HTTP request failed: {exc}") from exc

        if response.status_code >= 400:
            detail = _extract_error_detail(response)
            logger.warning("Upstream request failed with status %s", response.status_code)
            raise SkinProviderError(f"Upstream request failed ({response.status_code}): {detail}")
        try:
            envelope = response.json()
        except Exception as exc:
            raise SkinProviderError(f"Upstream response was not valid JSON: {exc}") from exc
        if not isinstance(envelope, dict):
            raise SkinProviderError("Invalid upstream response payload.")
        return envelope


def extract_completion_text(envelope: Any) -> str:
    """Return the text of the first completion in ``envelope``.

    Works on plain JSON dicts as well as attribute-style SDK objects. Every
    level is optional; anything missing is reported as "no analysis".
    """
    choices = _field(envelope, "choices")
    if not isinstance(choices, (list, tuple)) or not choices:
        raise SkinAnalysisError(ErrorCategory.PARSE_FAILURE, NO_ANALYSIS_MESSAGE)

    message = _field(choices[0], "message")
    content = _field(message, "content")

    text = ""
    if isinstance(content, str):
        text = content
    elif isinstance(content, (list, tuple)):
        chunks: list[str] = []
        for item in content:
            if _field(item, "type") == "text" and isinstance(_field(item, "text"), str):
                chunks.append(_field(item, "text"))
        text = "\n".join(chunks)

    if not text.strip():
        raise SkinAnalysisError(ErrorCategory.PARSE_FAILURE, NO_ANALYSIS_MESSAGE)
    return text


def _field(container: Any, name: str) -> Any:
    if container is None:
        return None
    if isinstance(container, dict):
        return container.get(name)
    return getattr(container, name, None)


def _build_chat_completions_url(base_url: str) -> str:
    normalized = base_url.strip().rstrip("/")
    if normalized.endswith("/chat/completions"):
        return normalized
    return f"{normalized}/chat/completions"


def _extract_error_detail(response: Any) -> str:
    try:
        payload = response.json()
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict):
                message = error.get("message")
                code = error.get("code") or error.get("type")
                if isinstance(message, str) and message:
                    if isinstance(code, str) and code:
                        return f"[{code}] {message}"
                    return message
                if isinstance(code, str) and code:
                    return code
            detail = payload.get("detail")
            if isinstance(detail, str) and detail:
                return detail
    except Exception:
        pass
    body = response.text.strip()
    return body[:300] if body else "Unknown provider error"

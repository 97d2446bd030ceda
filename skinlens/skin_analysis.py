from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from .skin_errors import ErrorNormalizer, SkinAnalysisError
from .skin_parser import ParsedSections, apply_result_defaults, parse_analysis_text
from .skin_providers import OpenAIChatTransport, extract_completion_text
from .skin_request import AnalysisRequest, build_vision_request, decode_image_input, validate_credential
from .skin_settings import SkinAnalysisSettings

logger = logging.getLogger(__name__)

# Reported as-is; the model's answer does not carry a usable score.
FIXED_CONFIDENCE = 0.95


class ChatCompletionTransport(Protocol):
    async def complete(self, *, payload: dict[str, Any], api_key: str) -> Any:
        ...


@dataclass
class SkinAnalysisResult:
    condition: str
    concerns: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    confidence: float = FIXED_CONFIDENCE

    def to_dict(self) -> dict[str, Any]:
        return {
            "condition": self.condition,
            "concerns": list(self.concerns),
            "recommendations": list(self.recommendations),
            "confidence": self.confidence,
        }


def build_analysis_result(sections: ParsedSections) -> SkinAnalysisResult:
    completed = apply_result_defaults(sections)
    return SkinAnalysisResult(
        condition=completed.condition,
        concerns=completed.concerns,
        recommendations=completed.recommendations,
        confidence=FIXED_CONFIDENCE,
    )


class SkinAnalysisService:
    def __init__(
        self,
        *,
        settings: SkinAnalysisSettings | None = None,
        transport: ChatCompletionTransport | None = None,
        error_normalizer: ErrorNormalizer | None = None,
    ) -> None:
        self.settings = settings or SkinAnalysisSettings.from_env()
        self.transport = transport or OpenAIChatTransport.from_settings(self.settings)
        self.error_normalizer = error_normalizer or ErrorNormalizer()

    def describe(self) -> dict[str, Any]:
        described = {
            "model": self.settings.model,
            "max_tokens": self.settings.max_tokens,
            "base_url": self.settings.base_url,
            "max_image_bytes": self.settings.max_image_bytes,
            "default_credential_configured": bool(self.settings.api_key),
        }
        availability = getattr(self.transport, "availability", None)
        if callable(availability):
            described["provider"] = availability()
        return described

    def prepare_request(self, image: Any, credential: Any) -> AnalysisRequest:
        credential_missing = credential is None or (isinstance(credential, str) and not credential.strip())
        if credential_missing and self.settings.api_key:
            credential = self.settings.api_key
        api_key = validate_credential(
            credential,
            prefix=self.settings.credential_prefix,
            min_length=self.settings.credential_min_length,
        )
        payload = decode_image_input(image, max_bytes=self.settings.max_image_bytes)
        return AnalysisRequest(image=payload, credential=api_key)

    async def analyze(self, image: Any, credential: Any) -> SkinAnalysisResult:
        try:
            request = self.prepare_request(image, credential)
            payload = build_vision_request(
                request.image,
                model=self.settings.model,
                max_tokens=self.settings.max_tokens,
            )
            logger.info(
                "Requesting skin analysis (model=%s, image_bytes=%s)",
                self.settings.model,
                len(request.image_bytes),
            )
            envelope = await self.transport.complete(payload=payload, api_key=request.credential)
            text = extract_completion_text(envelope)
            result = build_analysis_result(parse_analysis_text(text))
        except SkinAnalysisError as exc:
            logger.warning("Skin analysis failed (%s)", exc.category.value)
            raise
        # CancelledError is a BaseException and passes through unwrapped.
        except Exception as exc:
            error = self.error_normalizer.to_exception(exc)
            logger.warning("Skin analysis failed (%s): %s", error.category.value, exc.__class__.__name__)
            raise error from exc

        logger.info("Skin analysis completed with %s concerns", len(result.concerns))
        return result

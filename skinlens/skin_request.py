from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Any

from .skin_errors import ErrorCategory, SkinAnalysisError
from .skin_settings import DEFAULT_CREDENTIAL_MIN_LENGTH, DEFAULT_CREDENTIAL_PREFIX

INVALID_CREDENTIAL_MESSAGE = "Invalid API key. Please check your API key."
INVALID_IMAGE_MESSAGE = "Invalid image data."
DEFAULT_MEDIA_TYPE = "image/jpeg"

SYSTEM_PROMPT = (
    "You are a dermatology analysis assistant. When shown a skin image, provide a "
    "detailed analysis focusing on visible characteristics, potential concerns, and "
    "general skincare recommendations. Always respond using three labeled sections: "
    "Condition, Concerns, Recommendations.\n"
    "Condition: one short sentence describing the overall skin condition.\n"
    "Concerns: one bullet per noticeable concern or issue.\n"
    "Recommendations: one bullet per skincare suggestion."
)

USER_PROMPT = (
    "Describe what you see in this skin image. Focus on:\n"
    "1. Visible skin characteristics and overall condition\n"
    "2. Any noticeable concerns or issues\n"
    "3. General skincare suggestions based on what you observe"
)

_DATA_URL_PREFIX = re.compile(r"^\s*data:(image/[a-zA-Z0-9.+-]+);base64,", flags=re.IGNORECASE)


@dataclass(frozen=True)
class ImagePayload:
    data: bytes
    media_type: str = DEFAULT_MEDIA_TYPE

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.to_base64()}"


@dataclass(frozen=True)
class AnalysisRequest:
    image: ImagePayload
    credential: str

    @property
    def image_bytes(self) -> bytes:
        return self.image.data


def validate_credential(
    credential: Any,
    *,
    prefix: str = DEFAULT_CREDENTIAL_PREFIX,
    min_length: int = DEFAULT_CREDENTIAL_MIN_LENGTH,
) -> str:
    if not isinstance(credential, str):
        raise SkinAnalysisError(ErrorCategory.INVALID_CREDENTIAL, INVALID_CREDENTIAL_MESSAGE)
    value = credential.strip()
    if not value or len(value) < min_length:
        raise SkinAnalysisError(ErrorCategory.INVALID_CREDENTIAL, INVALID_CREDENTIAL_MESSAGE)
    if prefix and not value.startswith(prefix):
        raise SkinAnalysisError(ErrorCategory.INVALID_CREDENTIAL, INVALID_CREDENTIAL_MESSAGE)
    return value


def decode_image_input(raw: Any, *, max_bytes: int | None = None) -> ImagePayload:
    """Turn a data URL or bare base64 string into raw image bytes.

    The ``data:image/<subtype>;base64,`` header is optional. Its media type is
    kept so the image can be forwarded upstream unchanged.
    """
    if not isinstance(raw, str):
        raise SkinAnalysisError(ErrorCategory.INVALID_IMAGE, INVALID_IMAGE_MESSAGE)

    media_type = DEFAULT_MEDIA_TYPE
    encoded = raw
    match = _DATA_URL_PREFIX.match(raw)
    if match:
        media_type = match.group(1).lower()
        encoded = raw[match.end() :]

    encoded = re.sub(r"\s+", "", encoded)
    if not encoded:
        raise SkinAnalysisError(ErrorCategory.INVALID_IMAGE, INVALID_IMAGE_MESSAGE)

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SkinAnalysisError(ErrorCategory.INVALID_IMAGE, INVALID_IMAGE_MESSAGE) from exc

    if not data:
        raise SkinAnalysisError(ErrorCategory.INVALID_IMAGE, INVALID_IMAGE_MESSAGE)
    if max_bytes is not None and len(data) > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise SkinAnalysisError(
            ErrorCategory.INVALID_IMAGE,
            f"Image is too large. Please select an image under {limit_mb:g}MB.",
        )
    return ImagePayload(data=data, media_type=media_type)


def build_vision_request(image: ImagePayload, *, model: str, max_tokens: int) -> dict[str, Any]:
    return {
        "model": model,
        "messages": [
            {
                "role": "system",
                "content": SYSTEM_PROMPT,
            },
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": USER_PROMPT},
                    {
                        "type": "image_url",
                        "image_url": {
                            "url": image.to_data_url(),
                        },
                    },
                ],
            },
        ],
        "max_tokens": max_tokens,
    }

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

GENERIC_FAILURE_MESSAGE = "Failed to analyze image. Please try again."


class ErrorCategory(str, Enum):
    INVALID_CREDENTIAL = "InvalidCredential"
    QUOTA_EXCEEDED = "QuotaExceeded"
    RATE_LIMITED = "RateLimited"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    INVALID_IMAGE = "InvalidImage"
    PARSE_FAILURE = "ParseFailure"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class NormalizedError:
    category: ErrorCategory
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "category": self.category.value,
            "message": self.message,
        }


class SkinAnalysisError(RuntimeError):
    """Failure surfaced to callers of the analysis service.

    Carries one of the fixed categories plus a message that is safe to show
    to the end user.
    """

    def __init__(self, category: ErrorCategory, message: str) -> None:
        super().__init__(message)
        self.category = category
        self.message = message

    @property
    def normalized(self) -> NormalizedError:
        return NormalizedError(category=self.category, message=self.message)


@dataclass(frozen=True)
class ErrorRule:
    category: ErrorCategory
    needles: tuple[str, ...]
    message: str

    def matches(self, text: str) -> bool:
        return any(needle in text for needle in self.needles)


DEFAULT_ERROR_RULES: tuple[ErrorRule, ...] = (
    ErrorRule(
        category=ErrorCategory.INVALID_CREDENTIAL,
        needles=("API key",),
        message="Invalid API key. Please check your API key.",
    ),
    ErrorRule(
        category=ErrorCategory.QUOTA_EXCEEDED,
        needles=("insufficient_quota",),
        message="Quota exceeded. Please check your billing.",
    ),
    ErrorRule(
        category=ErrorCategory.RATE_LIMITED,
        needles=("rate_limit",),
        message="Too many requests. Please wait and try again.",
    ),
    ErrorRule(
        category=ErrorCategory.SERVICE_UNAVAILABLE,
        needles=("model_not_found", "deprecated"),
        message="The AI service is temporarily unavailable.",
    ),
)


class ErrorNormalizer:
    def __init__(self, rules: tuple[ErrorRule, ...] | list[ErrorRule] | None = None) -> None:
        self.rules = tuple(DEFAULT_ERROR_RULES if rules is None else rules)

    def extended(self, *extra_rules: ErrorRule) -> "ErrorNormalizer":
        """Return a normalizer that tries ``extra_rules`` before the current ones."""
        return ErrorNormalizer(rules=(*extra_rules, *self.rules))

    def normalize(self, failure: Any) -> NormalizedError:
        if isinstance(failure, SkinAnalysisError):
            return failure.normalized
        if not isinstance(failure, BaseException):
            return NormalizedError(category=ErrorCategory.UNKNOWN, message=GENERIC_FAILURE_MESSAGE)

        text = str(failure).strip()
        if not text:
            return NormalizedError(category=ErrorCategory.UNKNOWN, message=GENERIC_FAILURE_MESSAGE)

        for rule in self.rules:
            if rule.matches(text):
                return NormalizedError(category=rule.category, message=rule.message)
        return NormalizedError(category=ErrorCategory.UNKNOWN, message=text)

    def to_exception(self, failure: Any) -> SkinAnalysisError:
        if isinstance(failure, SkinAnalysisError):
            return failure
        normalized = self.normalize(failure)
        return SkinAnalysisError(normalized.category, normalized.message)


def normalize_error(failure: Any) -> NormalizedError:
    return ErrorNormalizer().normalize(failure)

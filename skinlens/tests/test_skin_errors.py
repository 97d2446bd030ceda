from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from skinlens.skin_errors import (  # noqa: E402
    GENERIC_FAILURE_MESSAGE,
    ErrorCategory,
    ErrorNormalizer,
    ErrorRule,
    SkinAnalysisError,
    normalize_error,
)
from skinlens.skin_providers import SkinProviderError  # noqa: E402


def test_normalize_maps_known_upstream_phrases():
    cases = [
        (
            "Upstream request failed (401): [invalid_api_key] Incorrect API key provided: sk-abc***",
            ErrorCategory.INVALID_CREDENTIAL,
            "Invalid API key. Please check your API key.",
        ),
        (
            "Upstream request failed (429): [insufficient_quota] You exceeded your current quota",
            ErrorCategory.QUOTA_EXCEEDED,
            "Quota exceeded. Please check your billing.",
        ),
        (
            "Upstream request failed (429): [rate_limit_exceeded] Rate limit reached",
            ErrorCategory.RATE_LIMITED,
            "Too many requests. Please wait and try again.",
        ),
        (
            "Upstream request failed (404): [model_not_found] The model does not exist",
            ErrorCategory.SERVICE_UNAVAILABLE,
            "The AI service is temporarily unavailable.",
        ),
        (
            "The model gpt-4-vision-preview has been deprecated",
            ErrorCategory.SERVICE_UNAVAILABLE,
            "The AI service is temporarily unavailable.",
        ),
    ]
    for message, category, user_message in cases:
        normalized = normalize_error(SkinProviderError(message))
        assert normalized.category == category
        assert normalized.message == user_message


def test_normalize_rule_order_prefers_credential_over_quota():
    normalized = normalize_error(RuntimeError("API key has insufficient_quota"))

    assert normalized.category == ErrorCategory.INVALID_CREDENTIAL


def test_normalize_matching_is_case_sensitive():
    normalized = normalize_error(RuntimeError("api key missing"))

    assert normalized.category == ErrorCategory.UNKNOWN
    assert normalized.message == "api key missing"


def test_normalize_passes_through_unmatched_message():
    normalized = normalize_error(ValueError("Connection reset by peer"))

    assert normalized.category == ErrorCategory.UNKNOWN
    assert normalized.message == "Connection reset by peer"


def test_normalize_without_usable_failure_uses_generic_message():
    for failure in (None, "plain string", 42, RuntimeError(""), RuntimeError("   ")):
        normalized = normalize_error(failure)
        assert normalized.category == ErrorCategory.UNKNOWN
        assert normalized.message == GENERIC_FAILURE_MESSAGE


def test_normalize_keeps_existing_skin_analysis_error():
    original = SkinAnalysisError(ErrorCategory.INVALID_IMAGE, "Invalid image data.")
    normalizer = ErrorNormalizer()

    assert normalizer.normalize(original).category == ErrorCategory.INVALID_IMAGE
    assert normalizer.to_exception(original) is original


def test_normalizer_accepts_custom_rules():
    normalizer = ErrorNormalizer().extended(
        ErrorRule(
            category=ErrorCategory.SERVICE_UNAVAILABLE,
            needles=("overloaded",),
            message="The AI service is busy.",
        )
    )

    busy = normalizer.normalize(RuntimeError("server_error: engine overloaded"))
    quota = normalizer.normalize(RuntimeError("insufficient_quota"))

    assert busy.category == ErrorCategory.SERVICE_UNAVAILABLE
    assert busy.message == "The AI service is busy."
    assert quota.category == ErrorCategory.QUOTA_EXCEEDED


def test_normalizer_with_empty_rule_table_passes_everything_through():
    normalized = ErrorNormalizer(rules=()).normalize(RuntimeError("insufficient_quota"))

    assert normalized.category == ErrorCategory.UNKNOWN
    assert normalized.message == "insufficient_quota"


def test_normalized_error_serializes_category_value():
    error = SkinAnalysisError(ErrorCategory.RATE_LIMITED, "Too many requests. Please wait and try again.")

    assert error.normalized.to_dict() == {
        "category": "RateLimited",
        "message": "Too many requests. Please wait and try again.",
    }

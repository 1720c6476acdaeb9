"""Delivery classifier: decides whether a processing failure is worth a retry.

Errors are matched by case-insensitive substring against two pattern sets.
Retryable patterns are checked first and win over non-retryable ones; an error
matching neither set is retried.
"""
from __future__ import annotations

from typing import Iterable

from listener.app.domain.models import Verdict

RETRYABLE_PATTERNS: tuple[str, ...] = (
    "connection refused",
    "timeout",
    "temporary failure",
    "database is locked",
    "too many connections",
    "network unreachable",
)

NON_RETRYABLE_PATTERNS: tuple[str, ...] = (
    "invalid",
    "malformed",
    "not found",
    "unauthorized",
    "forbidden",
    "unhandled event type",
    "failed to unmarshal",
    "event data is not of type",
)


class Classifier:
    def __init__(
        self,
        retryable_patterns: Iterable[str] = RETRYABLE_PATTERNS,
        non_retryable_patterns: Iterable[str] = NON_RETRYABLE_PATTERNS,
    ) -> None:
        self._retryable = tuple(p.lower() for p in retryable_patterns)
        self._non_retryable = tuple(p.lower() for p in non_retryable_patterns)

    def classify(self, error: BaseException | str) -> Verdict:
        message = _error_text(error).lower()
        if any(pattern in message for pattern in self._retryable):
            return Verdict.RETRYABLE
        if any(pattern in message for pattern in self._non_retryable):
            return Verdict.NOT_RETRYABLE
        return Verdict.RETRYABLE

    __call__ = classify


def _error_text(error: BaseException | str) -> str:
    if isinstance(error, str):
        return error
    try:
        return str(error)
    except Exception:
        # a broken __str__ still gets a verdict
        return type(error).__name__


DEFAULT_CLASSIFIER = Classifier()


def classify(error: BaseException | str) -> Verdict:
    return DEFAULT_CLASSIFIER.classify(error)

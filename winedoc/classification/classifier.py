"""Wine label vs. receipt classification of OCR text.

Scores the text against two indicator vocabularies, adds bonuses for
strong signals, and routes it to the extractor for the winning type.
"""

import re
from dataclasses import dataclass
from enum import StrEnum
from functools import lru_cache

from winedoc.utils.logger import get_logger

from .policy import POLICY_V1, ScoringPolicy, TypeScoring

logger = get_logger(__name__)


class DocumentType(StrEnum):
    """Kinds of documents the pipeline distinguishes."""

    WINE_LABEL = "wine_label"
    RECEIPT = "receipt"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying a piece of OCR text."""

    type: DocumentType
    confidence: float
    indicators: tuple[str, ...] = ()


@lru_cache(maxsize=512)
def _word_pattern(indicator: str) -> re.Pattern[str]:
    """Match an indicator as a whole word.

    Word characters are ASCII only, so an indicator with a Hangul or
    accented edge matches only where that edge touches an ASCII letter or
    digit (``2018년산`` does, ``레드 와인`` does not).
    """
    return re.compile(r"\b" + re.escape(indicator) + r"\b", re.IGNORECASE | re.ASCII)


class DocumentClassifier:
    """Classifies OCR text as a wine label, a receipt, or unknown.

    Args:
        policy: Scoring policy; defaults to the ``v1`` policy.
    """

    def __init__(self, policy: ScoringPolicy = POLICY_V1) -> None:
        self.policy = policy

    def _contains(self, text: str, indicator: str) -> bool:
        if any(symbol in indicator for symbol in self.policy.substring_symbols):
            return indicator in text
        return _word_pattern(indicator).search(text) is not None

    def find_indicators(self, text: str, scoring: TypeScoring) -> list[str]:
        """Return the indicators of one vocabulary present in normalized text."""
        return [ind for ind in scoring.indicators if self._contains(text, ind)]

    @staticmethod
    def score(text: str, scoring: TypeScoring, matched: list[str]) -> float:
        """Compute the clamped score of one document type.

        Args:
            text: Normalized (lower-cased, trimmed) text.
            scoring: Vocabulary and bonus rules of the type.
            matched: Indicators already found in ``text``.

        Returns:
            Score in ``[0, 1]``.
        """
        total = 0.0
        total += len(matched) * scoring.indicator_weight
        for bonus in scoring.bonuses:
            if bonus.applies(text):
                total += bonus.weight
        return max(0.0, min(total, 1.0))

    def classify(self, text: str | None) -> ClassificationResult:
        """Classify OCR text.

        Never raises; empty or missing text is ``UNKNOWN`` with zero
        confidence.

        Args:
            text: Raw OCR text.

        Returns:
            Document type, confidence and the indicators that supported it.
        """
        if not text or not text.strip():
            return ClassificationResult(DocumentType.UNKNOWN, 0.0, ())

        normalized = text.lower().strip()
        policy = self.policy

        label_found = self.find_indicators(normalized, policy.label)
        receipt_found = self.find_indicators(normalized, policy.receipt)
        label_score = self.score(normalized, policy.label, label_found)
        receipt_score = self.score(normalized, policy.receipt, receipt_found)
        gap = abs(label_score - receipt_score)

        if label_score > receipt_score and label_score > policy.threshold:
            result = ClassificationResult(
                DocumentType.WINE_LABEL,
                min(label_score + gap * policy.gap_boost, policy.max_confidence),
                tuple(label_found),
            )
        elif receipt_score > label_score and receipt_score > policy.threshold:
            result = ClassificationResult(
                DocumentType.RECEIPT,
                min(receipt_score + gap * policy.gap_boost, policy.max_confidence),
                tuple(receipt_found),
            )
        else:
            result = ClassificationResult(
                DocumentType.UNKNOWN,
                max(label_score, receipt_score),
                tuple(label_found + receipt_found),
            )

        logger.debug(
            "Classified text as %s (confidence=%.2f, label=%.2f, receipt=%.2f, policy=%s)",
            result.type,
            result.confidence,
            label_score,
            receipt_score,
            policy.version,
        )
        return result

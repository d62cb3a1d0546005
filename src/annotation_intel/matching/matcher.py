"""Locate freeform annotations inside extracted text units."""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Iterable, Sequence

from annotation_intel.config import MatchingConfig
from annotation_intel.types import MatchedAnnotation, RawAnnotation, TextUnit

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


class PositionMatcher:
    """Scores every unit against an annotation and keeps the best one.

    Per unit, the first applicable strategy decides the confidence:

    1. normalized unit text contains the annotation -> 1.0
    2. normalized unit context contains the annotation -> ``context_confidence``
    3. word-set Jaccard similarity above ``similarity_threshold``
       -> similarity * ``similarity_weight``
    4. share of long annotation words present in the context at or above
       ``keyword_threshold`` -> overlap * ``keyword_weight``

    Only units reaching ``min_confidence`` qualify. A later unit replaces the
    current best only with strictly higher confidence, so ties resolve to
    the earliest unit in extraction order.
    """

    def __init__(self, config: MatchingConfig | None = None) -> None:
        self.config = config or MatchingConfig()

    def match(
        self, annotation: RawAnnotation, units: Iterable[TextUnit]
    ) -> MatchedAnnotation | None:
        annotation_text = (annotation.text or "").strip()
        if len(annotation_text) < self.config.min_annotation_chars:
            return None
        normalized = self.normalize_text(annotation_text)
        if not normalized:
            return None

        best_unit: TextUnit | None = None
        best_confidence = 0.0
        for unit in units:
            confidence = self.confidence(normalized, unit)
            if confidence >= self.config.min_confidence and (
                best_unit is None or confidence > best_confidence
            ):
                best_unit = unit
                best_confidence = confidence

        if best_unit is None:
            return None

        return MatchedAnnotation(
            id=annotation.id or uuid.uuid4().hex,
            text=annotation.text,
            comment=annotation.comment,
            annotation_type=annotation.annotation_type,
            color=annotation.color,
            author=annotation.author,
            timestamp=annotation.timestamp,
            position=best_unit,
            confidence=best_confidence,
        )

    def match_all(
        self, annotations: Iterable[RawAnnotation], units: Iterable[TextUnit]
    ) -> list[MatchedAnnotation | None]:
        """Match many annotations against one unit sequence, in input order."""

        unit_list = list(units)
        results: list[MatchedAnnotation | None] = []
        for annotation in annotations:
            matched = self.match(annotation, unit_list)
            if matched is None:
                logger.debug("Could not locate annotation %s in document", annotation.id)
            results.append(matched)
        return results

    def for_position(
        self, page: int, paragraph: int, matched: Iterable[MatchedAnnotation | None]
    ) -> list[MatchedAnnotation]:
        """Annotations on ``page`` within the neighbouring paragraphs.

        Unmatched slots (``None``) from :meth:`match_all` are skipped.
        """

        window = self.config.neighbour_paragraphs
        nearby = [
            item
            for item in matched
            if item is not None
            and item.position.page == page
            and abs(item.position.paragraph_index - paragraph) <= window
        ]
        return sorted(
            nearby,
            key=lambda item: (item.position.paragraph_index, item.position.sentence_index),
        )

    def confidence(self, normalized_annotation: str, unit: TextUnit) -> float:
        unit_text = self.normalize_text(unit.text)
        if normalized_annotation in unit_text:
            return 1.0

        context = self.normalize_text(unit.context)
        if normalized_annotation in context:
            return self.config.context_confidence

        similarity = self.token_similarity(normalized_annotation, unit_text)
        if similarity > self.config.similarity_threshold:
            return similarity * self.config.similarity_weight

        overlap = self.keyword_overlap(
            normalized_annotation, context, min_length=self.config.keyword_min_length
        )
        if overlap >= self.config.keyword_threshold:
            return overlap * self.config.keyword_weight

        return 0.0

    @staticmethod
    def normalize_text(text: str) -> str:
        return _WHITESPACE.sub(" ", _NON_WORD.sub(" ", text.lower())).strip()

    @staticmethod
    def token_similarity(a: str, b: str) -> float:
        a_tokens = set(a.split())
        b_tokens = set(b.split())
        if not a_tokens or not b_tokens:
            return 0.0
        return len(a_tokens & b_tokens) / len(a_tokens | b_tokens)

    @staticmethod
    def keyword_overlap(annotation: str, context: str, *, min_length: int = 4) -> float:
        keywords = [word for word in annotation.split() if len(word) >= min_length]
        if not keywords:
            return 0.0
        context_words = set(context.split())
        return sum(1 for word in keywords if word in context_words) / len(keywords)


def match_annotations(
    annotations: Sequence[RawAnnotation],
    units: Iterable[TextUnit],
    config: MatchingConfig | None = None,
) -> list[MatchedAnnotation]:
    """Positioned annotations only; unmatched inputs are dropped."""

    matcher = PositionMatcher(config)
    return [item for item in matcher.match_all(annotations, units) if item is not None]

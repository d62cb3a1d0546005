"""Quality scoring, ranking and filtering for shared annotations."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime, timezone

from annotation_intel.config import ScoringConfig
from annotation_intel.obs.tracing import Timer
from annotation_intel.types import AuthorStats, EnrichedAnnotation, QualityMetrics

logger = logging.getLogger(__name__)

StatsProvider = Callable[[str], Awaitable[AuthorStats | None]]

_LIST_MARKER = re.compile(r"[1-9]\.|•|\*|-")

_TYPE_BONUS = {"note": 30.0, "highlight": 20.0, "image": 15.0}
_OTHER_TYPE_BONUS = 10.0

# (age upper bound in days, score)
_RECENCY_STEPS: tuple[tuple[float, float], ...] = (
    (1.0, 100.0),
    (7.0, 80.0),
    (30.0, 60.0),
    (90.0, 40.0),
    (365.0, 20.0),
)
_OLDEST_RECENCY = 10.0

_GRADES: tuple[tuple[float, str], ...] = (
    (90.0, "A+"),
    (85.0, "A"),
    (80.0, "B+"),
    (75.0, "B"),
    (70.0, "C+"),
    (60.0, "C"),
)


def _clamp(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
    return max(lower, min(value, upper))


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def grade_for(total_score: float) -> str:
    for floor, grade in _GRADES:
        if total_score >= floor:
            return grade
    return "D"


class QualityScorer:
    """Computes a 0-100 composite quality score for shared annotations.

    The scorer holds configuration only. ``now`` is injectable so recency is
    deterministic under test.
    """

    def __init__(
        self,
        config: ScoringConfig | None = None,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or ScoringConfig()
        self._now = now or _utcnow
        self._important_colors = {color.lower() for color in self.config.important_colors}
        self._academic_keywords = tuple(word.lower() for word in self.config.academic_keywords)

    def score(self, annotation: EnrichedAnnotation) -> QualityMetrics:
        """Score one annotation.

        Only an annotation with neither highlighted text nor a comment is
        invalid and scores zero. A standalone note with an empty text but a
        comment is still scored, rather than treating every empty text as
        invalid input.
        """

        if not (annotation.text or annotation.comment):
            logger.warning("Annotation %s has no text or comment; scoring as zero", annotation.annotation_id)
            return QualityMetrics.zero()

        content = _clamp(self.content_quality(annotation))
        social = _clamp(self.social_engagement(annotation))
        reputation = _clamp(self.author_reputation(annotation.author_stats))
        recency = _clamp(self.recency(annotation.created_at))
        relevance = _clamp(self.relevance(annotation))

        weights = self.config.weights
        total = (
            content * weights.content_quality
            + social * weights.social_engagement
            + reputation * weights.author_reputation
            + recency * weights.recency
            + relevance * weights.relevance
        )
        total = round(_clamp(total), 2)
        return QualityMetrics(
            content_quality=content,
            social_engagement=social,
            author_reputation=reputation,
            recency=recency,
            relevance=relevance,
            total_score=total,
            grade=grade_for(total),
        )

    async def score_batch(
        self,
        annotations: Iterable[EnrichedAnnotation],
        *,
        stats_provider: StatsProvider | None = None,
        limiter: asyncio.Semaphore | None = None,
    ) -> dict[str, QualityMetrics]:
        """Score annotations in fixed-size chunks with a pause between chunks.

        ``stats_provider`` replaces each annotation's author stats with a fresh
        lookup; ``limiter`` bounds how many lookups run at once.
        """

        items = list(annotations)
        results: dict[str, QualityMetrics] = {}
        size = self.config.batch_size
        delay = self.config.batch_delay_seconds

        with Timer() as timer:
            for start in range(0, len(items), size):
                chunk = items[start : start + size]
                scored = await asyncio.gather(
                    *(self._score_with_stats(item, stats_provider, limiter) for item in chunk)
                )
                for item, metrics in zip(chunk, scored):
                    results[item.annotation_id] = metrics

                if delay > 0 and start + size < len(items):
                    await asyncio.sleep(delay)

        logger.info("Scored %d annotations in %.1f ms", len(results), timer.elapsed_ms)
        return results

    def rank(
        self,
        annotations: Iterable[EnrichedAnnotation],
        metrics: Mapping[str, QualityMetrics] | None = None,
    ) -> list[EnrichedAnnotation]:
        """Order by total score descending, newer first on equal scores."""

        items = list(annotations)
        scores = self._score_lookup(items, metrics)
        return sorted(
            items,
            key=lambda item: (
                -scores[item.annotation_id],
                -as_utc(item.created_at).timestamp(),
            ),
        )

    def filter_by_min_score(
        self,
        annotations: Iterable[EnrichedAnnotation],
        threshold: float,
        metrics: Mapping[str, QualityMetrics] | None = None,
    ) -> list[EnrichedAnnotation]:
        items = list(annotations)
        scores = self._score_lookup(items, metrics)
        return [item for item in items if scores[item.annotation_id] >= threshold]

    def content_quality(self, annotation: EnrichedAnnotation) -> float:
        text_length = len(annotation.text or "")
        comment = annotation.comment or ""
        comment_length = len(comment)

        if text_length >= 150:
            score = 40.0
        elif text_length >= 50:
            score = 30.0
        elif text_length >= 10:
            score = 20.0
        else:
            score = 5.0

        if comment_length >= 100:
            score += 35.0
        elif comment_length >= 20:
            score += 25.0
        elif comment_length > 0:
            score += 10.0

        if text_length > 0 and comment_length > 0:
            score += 15.0

        if comment:
            if "?" in comment:
                score += 5.0
            if _LIST_MARKER.search(comment):
                score += 5.0
            lowered = comment.lower()
            if any(keyword in lowered for keyword in self._academic_keywords):
                score += 10.0

        return score

    @staticmethod
    def social_engagement(annotation: EnrichedAnnotation) -> float:
        likes = min(annotation.likes_count * 5.0, 50.0)
        comments = min(annotation.comments_count * 10.0, 50.0)
        return likes + comments

    @staticmethod
    def author_reputation(stats: AuthorStats | None) -> float:
        if stats is None:
            return 0.0
        return (
            min(stats.annotations_count * 2.0, 30.0)
            + min(stats.likes_received * 1.5, 35.0)
            + min(stats.comments_received * 2.0, 25.0)
            + min(stats.followers_count * 3.0, 10.0)
        )

    def recency(self, created_at: datetime) -> float:
        age_days = (as_utc(self._now()) - as_utc(created_at)).total_seconds() / 86400.0
        for upper_bound, score in _RECENCY_STEPS:
            if age_days < upper_bound:
                return score
        return _OLDEST_RECENCY

    def relevance(self, annotation: EnrichedAnnotation) -> float:
        score = 50.0 + _TYPE_BONUS.get(annotation.annotation_type, _OTHER_TYPE_BONUS)
        if annotation.page_number:
            score += 10.0
        if annotation.color and annotation.color.lower() in self._important_colors:
            score += 10.0
        return score

    async def _score_with_stats(
        self,
        annotation: EnrichedAnnotation,
        stats_provider: StatsProvider | None,
        limiter: asyncio.Semaphore | None,
    ) -> QualityMetrics:
        if stats_provider is None or not annotation.author_id:
            return self.score(annotation)

        try:
            if limiter is not None:
                async with limiter:
                    stats = await stats_provider(annotation.author_id)
            else:
                stats = await stats_provider(annotation.author_id)
        except Exception as exc:
            logger.warning("Author stats lookup failed for %s: %s", annotation.author_id, exc)
            stats = None

        return self.score(replace(annotation, author_stats=stats))

    def _score_lookup(
        self,
        annotations: Sequence[EnrichedAnnotation],
        metrics: Mapping[str, QualityMetrics] | None,
    ) -> dict[str, float]:
        scores: dict[str, float] = {}
        for item in annotations:
            if metrics is None:
                scores[item.annotation_id] = self.score(item).total_score
                continue
            found = metrics.get(item.annotation_id)
            if found is not None:
                scores[item.annotation_id] = found.total_score
            else:
                scores[item.annotation_id] = float(item.quality_score or 0.0)
        return scores

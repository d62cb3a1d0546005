"""Preference-aware annotation recommendations."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from pydantic import BaseModel, Field

from annotation_intel.scoring.scorer import QualityScorer, StatsProvider
from annotation_intel.types import EnrichedAnnotation, QualityMetrics

FOLLOWED_AUTHOR_BOOST = 15.0
TOPIC_MATCH_BOOST = 5.0


class RecommendationPreferences(BaseModel):
    """Reader preferences that shape recommendations."""

    followed_users: list[str] = Field(default_factory=list)
    preferred_topics: list[str] = Field(default_factory=list)
    min_quality_score: float = Field(default=60.0, ge=0.0, le=100.0)
    max_results: int = Field(default=20, ge=1)


@dataclass(slots=True)
class Recommendation:
    annotation: EnrichedAnnotation
    metrics: QualityMetrics
    recommendation_score: float


class AnnotationRecommender:
    """Boosts quality scores by reader preferences and keeps the best ones."""

    def __init__(self, scorer: QualityScorer | None = None) -> None:
        self.scorer = scorer or QualityScorer()

    async def recommend(
        self,
        annotations: Sequence[EnrichedAnnotation],
        preferences: RecommendationPreferences | None = None,
        *,
        metrics: Mapping[str, QualityMetrics] | None = None,
        stats_provider: StatsProvider | None = None,
    ) -> list[Recommendation]:
        prefs = preferences or RecommendationPreferences()
        if metrics is None:
            metrics = await self.scorer.score_batch(annotations, stats_provider=stats_provider)

        followed = set(prefs.followed_users)
        topics = [topic.lower() for topic in prefs.preferred_topics if topic]
        candidates: list[Recommendation] = []

        for annotation in annotations:
            quality = metrics.get(annotation.annotation_id) or QualityMetrics.zero()
            if quality.total_score < prefs.min_quality_score:
                continue

            boosted = quality.total_score
            if annotation.author_id in followed:
                boosted += FOLLOWED_AUTHOR_BOOST
            if topics:
                haystack = f"{annotation.text or ''} {annotation.comment or ''}".lower()
                boosted += TOPIC_MATCH_BOOST * sum(1 for topic in topics if topic in haystack)

            candidates.append(
                Recommendation(
                    annotation=annotation,
                    metrics=quality,
                    recommendation_score=boosted,
                )
            )

        candidates.sort(key=lambda item: item.recommendation_score, reverse=True)
        return candidates[: prefs.max_results]

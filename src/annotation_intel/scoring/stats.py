"""Aggregate statistics over scored annotation collections."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from annotation_intel.scoring.scorer import as_utc
from annotation_intel.types import EnrichedAnnotation, QualityMetrics, QualityStats

EXCELLENT_FLOOR = 80.0
GOOD_FLOOR = 60.0
AVERAGE_FLOOR = 40.0
TREND_DELTA = 5.0


@dataclass(slots=True)
class AuthorEngagement:
    author_id: str
    name: str
    count: int = 0
    total_likes: int = 0
    total_comments: int = 0
    engagement_score: float = 0.0


def get_quality_stats(metrics: Mapping[str, QualityMetrics]) -> QualityStats:
    """Count, central values and a four-bucket distribution of total scores."""

    scores = sorted(item.total_score for item in metrics.values())
    if not scores:
        return QualityStats(count=0, average=0.0, median=0.0, min=0.0, max=0.0)

    count = len(scores)
    middle = count // 2
    if count % 2 == 0:
        median = (scores[middle - 1] + scores[middle]) / 2
    else:
        median = scores[middle]

    distribution = {
        "excellent": sum(1 for score in scores if score >= EXCELLENT_FLOOR),
        "good": sum(1 for score in scores if GOOD_FLOOR <= score < EXCELLENT_FLOOR),
        "average": sum(1 for score in scores if AVERAGE_FLOOR <= score < GOOD_FLOOR),
        "poor": sum(1 for score in scores if score < AVERAGE_FLOOR),
    }
    return QualityStats(
        count=count,
        average=round(sum(scores) / count, 2),
        median=round(median, 2),
        min=scores[0],
        max=scores[-1],
        distribution=distribution,
    )


def top_authors(
    annotations: Iterable[EnrichedAnnotation], limit: int = 10
) -> list[AuthorEngagement]:
    """Authors ordered by ``count*10 + likes*2 + comments*3``."""

    authors: dict[str, AuthorEngagement] = {}
    for annotation in annotations:
        entry = authors.get(annotation.author_id)
        if entry is None:
            entry = AuthorEngagement(author_id=annotation.author_id, name=annotation.author_name)
            authors[annotation.author_id] = entry
        entry.count += 1
        entry.total_likes += annotation.likes_count
        entry.total_comments += annotation.comments_count
        entry.engagement_score = entry.count * 10 + entry.total_likes * 2 + entry.total_comments * 3

    ranked = sorted(authors.values(), key=lambda entry: entry.engagement_score, reverse=True)
    return ranked[:limit]


def _quality_of(
    annotation: EnrichedAnnotation, metrics: Mapping[str, QualityMetrics] | None
) -> float:
    if metrics is not None and annotation.annotation_id in metrics:
        return metrics[annotation.annotation_id].total_score
    return float(annotation.quality_score or 0.0)


def quality_trend(
    annotations: Sequence[EnrichedAnnotation],
    metrics: Mapping[str, QualityMetrics] | None = None,
) -> dict[str, Any]:
    """Compare mean quality of the newer half against the older half."""

    if len(annotations) < 2:
        return {"trend": "stable", "change": 0.0}

    ordered = sorted(annotations, key=lambda item: as_utc(item.created_at))
    midpoint = len(ordered) // 2
    older = [_quality_of(item, metrics) for item in ordered[:midpoint]]
    newer = [_quality_of(item, metrics) for item in ordered[midpoint:]]
    change = sum(newer) / len(newer) - sum(older) / len(older)

    if change > TREND_DELTA:
        trend = "improving"
    elif change < -TREND_DELTA:
        trend = "declining"
    else:
        trend = "stable"
    return {"trend": trend, "change": round(change, 2)}


def analyze_trends(
    annotations: Iterable[EnrichedAnnotation],
    *,
    days: int = 30,
    now: datetime | None = None,
    metrics: Mapping[str, QualityMetrics] | None = None,
) -> dict[str, Any]:
    """Activity summary for annotations created within the last ``days``."""

    if days < 1:
        raise ValueError("days must be at least 1")

    current = as_utc(now or datetime.now(timezone.utc))
    cutoff = current - timedelta(days=days)
    recent = [item for item in annotations if as_utc(item.created_at) >= cutoff]

    daily: dict[str, dict[str, int]] = {}
    for item in sorted(recent, key=lambda entry: as_utc(entry.created_at)):
        key = as_utc(item.created_at).date().isoformat()
        bucket = daily.setdefault(key, {"count": 0, "total_likes": 0})
        bucket["count"] += 1
        bucket["total_likes"] += item.likes_count

    return {
        "total_annotations": len(recent),
        "daily_stats": daily,
        "average_per_day": round(len(recent) / days, 2),
        "top_authors": top_authors(recent),
        "quality_trend": quality_trend(recent, metrics),
    }

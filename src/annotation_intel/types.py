"""Shared domain models."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(slots=True, frozen=True)
class DocumentPage:
    """Raw text of one document page as supplied by the text provider."""

    page_number: int
    text: str

    @classmethod
    def from_fragments(cls, page_number: int, fragments: Iterable[str]) -> "DocumentPage":
        return cls(page_number=page_number, text=" ".join(fragments))


@dataclass(slots=True, frozen=True)
class TextUnit:
    """One addressable sentence span of a page with surrounding context.

    Offsets are relative to the page text, so
    ``page_text[start_offset:end_offset] == text`` always holds.
    """

    page: int
    paragraph_index: int
    sentence_index: int
    start_offset: int
    end_offset: int
    text: str
    context: str


def _first(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None


@dataclass(slots=True)
class RawAnnotation:
    """An annotation record as stored by the host, before positioning."""

    text: str
    id: str | None = None
    comment: str | None = None
    annotation_type: str = "highlight"
    color: str = "#ffff00"
    author: str = "Unknown"
    timestamp: datetime | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "RawAnnotation":
        """Build from a host record, accepting the host's key aliases."""

        timestamp = _first(payload, "dateAdded", "timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        ident = _first(payload, "id")
        return cls(
            text=str(_first(payload, "annotationText", "text") or ""),
            id=str(ident) if ident is not None else None,
            comment=_first(payload, "annotationComment", "comment"),
            annotation_type=_first(payload, "annotationType", "type") or "highlight",
            color=_first(payload, "annotationColor", "color") or "#ffff00",
            author=_first(payload, "author") or "Unknown",
            timestamp=timestamp,
        )


@dataclass(slots=True)
class MatchedAnnotation:
    """A raw annotation anchored to the text unit it was located in."""

    id: str
    text: str
    comment: str | None
    annotation_type: str
    color: str
    author: str
    timestamp: datetime | None
    position: TextUnit
    confidence: float


@dataclass(slots=True, frozen=True)
class AuthorStats:
    """Aggregate contribution counters for one author."""

    annotations_count: int = 0
    likes_received: int = 0
    comments_received: int = 0
    followers_count: int = 0


@dataclass(slots=True)
class EnrichedAnnotation:
    """A shared annotation with social counters attached by the caller."""

    annotation_id: str
    text: str
    created_at: datetime
    comment: str | None = None
    annotation_type: str = "highlight"
    color: str | None = None
    page_number: int | None = None
    author_id: str = ""
    author_name: str = ""
    likes_count: int = 0
    comments_count: int = 0
    author_stats: AuthorStats | None = None
    quality_score: float | None = None


@dataclass(slots=True, frozen=True)
class QualityMetrics:
    """Five clamped sub-metrics and their weighted total, all in [0, 100]."""

    content_quality: float
    social_engagement: float
    author_reputation: float
    recency: float
    relevance: float
    total_score: float
    grade: str = "D"

    @classmethod
    def zero(cls) -> "QualityMetrics":
        return cls(
            content_quality=0.0,
            social_engagement=0.0,
            author_reputation=0.0,
            recency=0.0,
            relevance=0.0,
            total_score=0.0,
        )


@dataclass(slots=True)
class QualityStats:
    """Aggregate view over a scored collection."""

    count: int
    average: float
    median: float
    min: float
    max: float
    distribution: dict[str, int] = field(
        default_factory=lambda: {"excellent": 0, "good": 0, "average": 0, "poor": 0}
    )

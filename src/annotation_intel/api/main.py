"""FastAPI entrypoint exposing extraction, matching and scoring."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from annotation_intel.config import ExtractionConfig, MatchingConfig, ScoringConfig
from annotation_intel.ingest.extractor import DocumentSource, InMemoryDocument, TextStructureExtractor
from annotation_intel.ingest.loader import LoaderRegistry
from annotation_intel.matching.matcher import PositionMatcher, match_annotations
from annotation_intel.obs.tracing import configure_logging
from annotation_intel.scoring.recommend import AnnotationRecommender, RecommendationPreferences
from annotation_intel.scoring.scorer import QualityScorer
from annotation_intel.scoring.stats import get_quality_stats
from annotation_intel.types import (
    AuthorStats,
    DocumentPage,
    EnrichedAnnotation,
    RawAnnotation,
)

UNMATCHED_MESSAGE = "Could not locate annotation in document"


class PageIn(BaseModel):
    page_number: int
    text: str = ""
    fragments: list[str] | None = None

    def to_domain(self) -> DocumentPage:
        if self.fragments is not None:
            return DocumentPage.from_fragments(self.page_number, self.fragments)
        return DocumentPage(page_number=self.page_number, text=self.text)


class DocumentRequest(BaseModel):
    pages: list[PageIn] = Field(default_factory=list)
    path: str | None = None


class MatchRequest(DocumentRequest):
    annotations: list[dict[str, Any]] = Field(default_factory=list)


class NearbyRequest(MatchRequest):
    page: int = Field(ge=1)
    paragraph: int = Field(ge=0)


class AuthorStatsIn(BaseModel):
    annotations_count: int = Field(default=0, ge=0)
    likes_received: int = Field(default=0, ge=0)
    comments_received: int = Field(default=0, ge=0)
    followers_count: int = Field(default=0, ge=0)


class EnrichedAnnotationIn(BaseModel):
    id: str = Field(min_length=1)
    text: str = ""
    comment: str | None = None
    annotation_type: str = "highlight"
    color: str | None = None
    page_number: int | None = None
    author_id: str = ""
    author_name: str = ""
    likes_count: int = Field(default=0, ge=0)
    comments_count: int = Field(default=0, ge=0)
    created_at: datetime
    author_stats: AuthorStatsIn | None = None
    quality_score: float | None = None

    def to_domain(self) -> EnrichedAnnotation:
        stats = AuthorStats(**self.author_stats.model_dump()) if self.author_stats else None
        return EnrichedAnnotation(
            annotation_id=self.id,
            text=self.text,
            comment=self.comment,
            annotation_type=self.annotation_type,
            color=self.color,
            page_number=self.page_number,
            author_id=self.author_id,
            author_name=self.author_name,
            likes_count=self.likes_count,
            comments_count=self.comments_count,
            created_at=self.created_at,
            author_stats=stats,
            quality_score=self.quality_score,
        )


class ScoreRequest(BaseModel):
    annotations: list[EnrichedAnnotationIn] = Field(default_factory=list)


class RankRequest(ScoreRequest):
    min_score: float | None = Field(default=None, ge=0.0, le=100.0)


class RecommendRequest(ScoreRequest):
    preferences: RecommendationPreferences = Field(default_factory=RecommendationPreferences)


configure_logging()

app = FastAPI(title="Annotation Intelligence", version="0.1.0")

_loaders = LoaderRegistry()
_extractor = TextStructureExtractor(ExtractionConfig())
_matcher = PositionMatcher(MatchingConfig())
_scorer = QualityScorer(ScoringConfig())
_recommender = AnnotationRecommender(_scorer)


def _load_document(request: DocumentRequest) -> DocumentSource:
    if request.path:
        try:
            return _loaders.load_path(request.path)
        except (OSError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not request.pages:
        raise HTTPException(status_code=400, detail="Either pages or path is required")
    return InMemoryDocument([page.to_domain() for page in request.pages])


def _raw_annotations(request: MatchRequest) -> list[RawAnnotation]:
    try:
        return [RawAnnotation.from_mapping(item) for item in request.annotations]
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "min_confidence": _matcher.config.min_confidence,
        "score_weights": _scorer.config.weights.model_dump(),
    }


@app.post("/documents/units")
def document_units(request: DocumentRequest) -> dict[str, Any]:
    units = [asdict(unit) for unit in _extractor.extract(_load_document(request))]
    return {"count": len(units), "units": units}


@app.post("/annotations/match")
def locate_annotations(request: MatchRequest) -> dict[str, Any]:
    units = list(_extractor.extract(_load_document(request)))
    annotations = _raw_annotations(request)
    items: list[dict[str, Any]] = []
    for annotation, matched in zip(annotations, _matcher.match_all(annotations, units)):
        if matched is None:
            items.append({"id": annotation.id, "match": None, "message": UNMATCHED_MESSAGE})
        else:
            items.append({"id": matched.id, "match": asdict(matched), "message": None})
    return {
        "matched": sum(1 for item in items if item["match"] is not None),
        "items": items,
    }


@app.post("/annotations/nearby")
def nearby_annotations(request: NearbyRequest) -> dict[str, Any]:
    units = list(_extractor.extract(_load_document(request)))
    matched = match_annotations(_raw_annotations(request), units, _matcher.config)
    nearby = _matcher.for_position(request.page, request.paragraph, matched)
    return {"items": [asdict(item) for item in nearby]}


@app.post("/annotations/score")
async def score_annotations(request: ScoreRequest) -> dict[str, Any]:
    metrics = await _scorer.score_batch([item.to_domain() for item in request.annotations])
    return {"items": {key: asdict(value) for key, value in metrics.items()}}


@app.post("/annotations/rank")
async def rank_annotations(request: RankRequest) -> dict[str, Any]:
    annotations = [item.to_domain() for item in request.annotations]
    metrics = await _scorer.score_batch(annotations)
    ranked = _scorer.rank(annotations, metrics)
    if request.min_score is not None:
        ranked = _scorer.filter_by_min_score(ranked, request.min_score, metrics)
    return {
        "items": [
            {
                "id": item.annotation_id,
                "annotation": asdict(item),
                "metrics": asdict(metrics[item.annotation_id]),
            }
            for item in ranked
        ]
    }


@app.post("/annotations/stats")
async def annotation_stats(request: ScoreRequest) -> dict[str, Any]:
    metrics = await _scorer.score_batch([item.to_domain() for item in request.annotations])
    return asdict(get_quality_stats(metrics))


@app.post("/annotations/recommend")
async def recommend_annotations(request: RecommendRequest) -> dict[str, Any]:
    annotations = [item.to_domain() for item in request.annotations]
    recommendations = await _recommender.recommend(annotations, request.preferences)
    return {
        "items": [
            {
                "id": item.annotation.annotation_id,
                "recommendation_score": item.recommendation_score,
                "metrics": asdict(item.metrics),
            }
            for item in recommendations
        ]
    }

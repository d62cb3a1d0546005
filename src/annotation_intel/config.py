"""Configuration models for the annotation intelligence layer."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

DEFAULT_IMPORTANT_COLORS: tuple[str, ...] = (
    "red",
    "orange",
    "yellow",
    "#ff0000",
    "#ff6600",
    "#ffff00",
)

DEFAULT_ACADEMIC_KEYWORDS: tuple[str, ...] = (
    "research",
    "study",
    "analysis",
    "evidence",
    "hypothesis",
    "conclusion",
    "methodology",
    "findings",
)


class ExtractionConfig(BaseModel):
    """Configures page -> paragraph -> sentence decomposition."""

    context_chars: int = Field(default=100, ge=0)
    min_paragraph_chars: int = Field(default=20, ge=0)
    min_sentence_chars: int = Field(default=10, ge=0)
    split_on_capitalized_sentences: bool = True


class MatchingConfig(BaseModel):
    """Configures multi-strategy position matching."""

    min_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    context_confidence: float = Field(default=0.9, ge=0.0, le=1.0)
    similarity_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    similarity_weight: float = Field(default=0.8, ge=0.0, le=1.0)
    keyword_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    keyword_weight: float = Field(default=0.7, ge=0.0, le=1.0)
    keyword_min_length: int = Field(default=4, ge=1)
    min_annotation_chars: int = Field(default=10, ge=1)
    neighbour_paragraphs: int = Field(default=1, ge=0)


class ScoreWeights(BaseModel):
    """Convex weights for the five quality sub-metrics."""

    content_quality: float = Field(default=0.30, ge=0.0, le=1.0)
    social_engagement: float = Field(default=0.25, ge=0.0, le=1.0)
    author_reputation: float = Field(default=0.20, ge=0.0, le=1.0)
    recency: float = Field(default=0.15, ge=0.0, le=1.0)
    relevance: float = Field(default=0.10, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_sum(self) -> "ScoreWeights":
        total = (
            self.content_quality
            + self.social_engagement
            + self.author_reputation
            + self.recency
            + self.relevance
        )
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"score weights must sum to 1.0, got {total:.4f}")
        return self


class ScoringConfig(BaseModel):
    """Configures quality scoring policy and batch scheduling."""

    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    important_colors: tuple[str, ...] = DEFAULT_IMPORTANT_COLORS
    academic_keywords: tuple[str, ...] = DEFAULT_ACADEMIC_KEYWORDS
    batch_size: int = Field(default=10, ge=1)
    batch_delay_seconds: float = Field(default=0.1, ge=0.0)

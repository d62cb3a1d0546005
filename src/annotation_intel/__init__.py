"""Annotation intelligence: position matching and quality scoring."""

from .config import ExtractionConfig, MatchingConfig, ScoringConfig

__all__ = ["ExtractionConfig", "MatchingConfig", "ScoringConfig"]

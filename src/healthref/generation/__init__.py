"""
Generation layer: model backends, prompts and output parsing.

This module handles:
- Multi-backend model calls with ordered fallback
- Prompt rendering for extraction, simplification and budget passes
- Parsing model JSON into recommendation drafts
"""

from healthref.generation.backends import (
    BACKEND_FAMILIES,
    Backend,
    BackendFamily,
    ConfigurationError,
    ErrorKind,
    classify_error,
)
from healthref.generation.gateway import (
    AllBackendsRateLimitedError,
    ExhaustedError,
    ModelGateway,
)
from healthref.generation.parser import (
    EvidenceDraft,
    ExtractionDraft,
    ParseError,
    RecommendationDraft,
    RecommendationParser,
)
from healthref.generation.prompts import Prompt, PromptBuilder

__all__ = [
    "BACKEND_FAMILIES",
    "Backend",
    "BackendFamily",
    "ConfigurationError",
    "ErrorKind",
    "classify_error",
    "ModelGateway",
    "ExhaustedError",
    "AllBackendsRateLimitedError",
    "Prompt",
    "PromptBuilder",
    "RecommendationParser",
    "RecommendationDraft",
    "EvidenceDraft",
    "ExtractionDraft",
    "ParseError",
]

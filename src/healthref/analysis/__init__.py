"""
Analysis layer: validation, simplification and the full pipeline.

This module handles:
- Provenance validation of extracted recommendations
- Plain-language simplification with echo detection
- Budget-friendly alternatives
- Orchestrating search and generation into one result
"""

from healthref.analysis.budget import BudgetOptionGenerator
from healthref.analysis.glossary import TermDefinition, find_terms_in, lookup_term
from healthref.analysis.pipeline import AnalysisRun, HealthAnalyzer, analyze_condition
from healthref.analysis.results import (
    BudgetOption,
    HealthAnalysisResult,
    TechnicalTerm,
    ValidatedRecommendation,
)
from healthref.analysis.simplifier import SimplifiedText, Simplifier, SimplifyRequest
from healthref.analysis.validator import ProvenanceValidator

__all__ = [
    "HealthAnalyzer",
    "AnalysisRun",
    "analyze_condition",
    "ProvenanceValidator",
    "Simplifier",
    "SimplifyRequest",
    "SimplifiedText",
    "BudgetOptionGenerator",
    "HealthAnalysisResult",
    "ValidatedRecommendation",
    "TechnicalTerm",
    "BudgetOption",
    "TermDefinition",
    "lookup_term",
    "find_terms_in",
]

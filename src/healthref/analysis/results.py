"""Result records produced by the analysis pipeline."""

from pydantic import Field

from healthref.generation.parser import CamelModel, EvidenceDraft, RecommendationDraft


class TechnicalTerm(CamelModel):
    term: str
    explanation: str = ""


class ValidatedRecommendation(RecommendationDraft):
    """
    A recommendation that passed provenance validation.

    Evidence URLs and DOIs are reconciled against the fetched sources.
    Simplified texts are only set when they are genuine paraphrases.
    """

    summary_simplified: str | None = None
    mechanism_simplified: str | None = None
    technical_terms: list[TechnicalTerm] | None = None

    @classmethod
    def from_draft(cls, draft: RecommendationDraft) -> "ValidatedRecommendation":
        return cls.model_validate(draft.model_dump())

    def evidence_chunks(self, attribute: str) -> list[str]:
        """Non-empty chunk texts of one kind across all evidence items."""
        return [
            getattr(ev, attribute)
            for ev in self.evidence
            if getattr(ev, attribute)
        ]


class BudgetOption(CamelModel):
    name: str
    description: str = ""
    source: str = ""
    source_url: str = ""
    cost: str | None = None


class HealthAnalysisResult(CamelModel):
    """Terminal artifact of one pipeline run."""

    condition: str
    mechanisms: list[str] = Field(default_factory=list)
    recommendations: list[ValidatedRecommendation] = Field(default_factory=list)
    budget_options: list[BudgetOption] | None = None

    @classmethod
    def empty(cls, condition: str) -> "HealthAnalysisResult":
        return cls(condition=condition, mechanisms=[], recommendations=[])

    def to_dict(self) -> dict:
        """camelCase JSON-ready dict; absent optional fields are omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = [
    "BudgetOption",
    "EvidenceDraft",
    "HealthAnalysisResult",
    "TechnicalTerm",
    "ValidatedRecommendation",
]

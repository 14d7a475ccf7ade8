"""
Complete analysis pipeline combining all components.

Pipeline stages:
1. Source search: PubMed, Google Scholar and trusted health sites
2. Extraction: one model call over the fetched documents
3. Provenance validation: drop or trim ungrounded recommendations
4. Simplification: one batch call for plain-language texts
5. Budget options (optional)

Only configuration problems escape `analyze`. Every other failure in the
extraction stage produces an empty result, and the simplification and
budget stages recover on their own.

Usage:
    from healthref.analysis import HealthAnalyzer

    async with HealthAnalyzer() as analyzer:
        run = await analyzer.run("diabetes", include_budget=True)

    for rec in run.result.recommendations:
        print(f"{rec.name}: {rec.summary}")
"""

from dataclasses import dataclass, field

from healthref.analysis.budget import BudgetOptionGenerator
from healthref.analysis.glossary import lookup_term
from healthref.analysis.results import HealthAnalysisResult, TechnicalTerm, ValidatedRecommendation
from healthref.analysis.simplifier import Simplifier, SimplifyRequest
from healthref.analysis.validator import ProvenanceValidator
from healthref.condition import ConditionQuery
from healthref.config import settings
from healthref.generation.backends import ConfigurationError
from healthref.generation.gateway import ExhaustedError, ModelGateway
from healthref.generation.parser import ParseError, RecommendationParser
from healthref.generation.prompts import PromptBuilder
from healthref.logging import get_logger
from healthref.sources.cache import TTLCache
from healthref.sources.documents import SourceDocument
from healthref.sources.search import SourceSearch

logger = get_logger(__name__, component="analysis_pipeline")

SUMMARY_CONTEXT = "recommendation summary"
MECHANISM_CONTEXT = "biological mechanism"


@dataclass
class AnalysisRun:
    """
    Result of a full search + analysis run.

    Carries the per-source search counts alongside the analysis so
    callers can report where the documents came from.
    """
    query: ConditionQuery
    result: HealthAnalysisResult
    search_stats: dict[str, int] = field(default_factory=dict)
    cached: bool = False

    def __len__(self) -> int:
        return len(self.result.recommendations)

    def __bool__(self) -> bool:
        return bool(self.result.recommendations)


def _merge_terms(*groups: list[TechnicalTerm]) -> list[TechnicalTerm]:
    """Deduplicate terms case-insensitively; blank explanations come from the glossary."""
    merged: dict[str, TechnicalTerm] = {}
    for group in groups:
        for term in group:
            key = term.term.strip().lower()
            if key in merged:
                continue
            explanation = term.explanation.strip()
            if not explanation:
                definition = lookup_term(key)
                explanation = definition.explanation if definition else ""
            merged[key] = TechnicalTerm(term=term.term.strip(), explanation=explanation)
    return list(merged.values())


class HealthAnalyzer:
    """
    Evidence-grounded recommendations for one health condition.

    Configuration:
        gateway: Model gateway shared by all generation passes
        search: Source search used by `run` (built on demand)
        cache: Result cache for `run`, keyed by condition and budget flag

    Example:
        analyzer = HealthAnalyzer()
        result = await analyzer.analyze("diabetes", documents)
        print(result.to_dict())
    """

    def __init__(
        self,
        gateway: ModelGateway | None = None,
        search: SourceSearch | None = None,
        cache: TTLCache | None = None,
        prompts: PromptBuilder | None = None,
        parser: RecommendationParser | None = None,
    ):
        self.gateway = gateway or ModelGateway()
        self.prompts = prompts or PromptBuilder()
        self.parser = parser or RecommendationParser()
        self.simplifier = Simplifier(self.gateway, self.prompts)
        self.budget = BudgetOptionGenerator(self.gateway, self.prompts)

        self.cache = cache if cache is not None else TTLCache(settings.cache_ttl_seconds)
        self._search = search
        self._owns_search = search is None

    @property
    def search(self) -> SourceSearch:
        if self._search is None:
            self._search = SourceSearch(cache=self.cache)
        return self._search

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _simplify(self, recommendations: list[ValidatedRecommendation]) -> None:
        """Attach simplified texts and technical terms in place."""
        batch: list[SimplifyRequest] = []
        # (recommendation index, attribute to set)
        slots: list[tuple[int, str]] = []

        for index, rec in enumerate(recommendations):
            if rec.summary and rec.summary.strip():
                batch.append(SimplifyRequest(rec.summary, SUMMARY_CONTEXT))
                slots.append((index, "summary_simplified"))
            if rec.mechanism and rec.mechanism.strip():
                batch.append(SimplifyRequest(rec.mechanism, MECHANISM_CONTEXT))
                slots.append((index, "mechanism_simplified"))

        results = await self.simplifier.simplify(batch)

        terms: dict[int, list[list[TechnicalTerm]]] = {}
        for (index, attribute), simplified in zip(slots, results):
            if simplified.is_simplified:
                setattr(recommendations[index], attribute, simplified.simplified)
            terms.setdefault(index, []).append(simplified.technical_terms)

        for index, groups in terms.items():
            merged = _merge_terms(*groups)
            recommendations[index].technical_terms = merged or None

    async def analyze(
        self,
        query: ConditionQuery | str,
        documents: list[SourceDocument],
        include_budget: bool = False,
    ) -> HealthAnalysisResult:
        """
        Extract, validate and simplify recommendations from documents.

        Args:
            query: Parsed condition, or the raw condition text
            documents: Source documents to extract from
            include_budget: Whether to run the budget-options pass

        Returns:
            HealthAnalysisResult; empty when nothing could be extracted

        Raises:
            ConfigurationError: Unknown backend family or missing credential
        """
        if isinstance(query, str):
            query = ConditionQuery.parse(query)
        condition = query.raw

        if not documents:
            logger.info("analysis_no_documents", condition=condition)
            return HealthAnalysisResult.empty(condition)

        logger.info("analysis_start", condition=condition, documents=len(documents))

        # ===== Extraction =====
        prompt = self.prompts.extraction(query, documents)
        try:
            response = await self.gateway.generate(prompt.user, prompt.system)
            draft = self.parser.parse(response)
        except ConfigurationError:
            raise
        except ParseError as e:
            logger.warning("extraction_unparseable", condition=condition, error=str(e)[:200])
            return HealthAnalysisResult.empty(condition)
        except ExhaustedError as e:
            logger.error("extraction_exhausted", condition=condition, candidates=e.candidates)
            return HealthAnalysisResult.empty(condition)
        except Exception as e:
            logger.error("extraction_failed", condition=condition, error=str(e)[:200])
            return HealthAnalysisResult.empty(condition)

        # ===== Validation =====
        validator = ProvenanceValidator(condition, documents)
        recommendations = validator.validate(draft.recommendations)

        # ===== Simplification =====
        if recommendations:
            await self._simplify(recommendations)

        result = HealthAnalysisResult(
            condition=condition,
            mechanisms=draft.mechanisms,
            recommendations=recommendations,
        )

        # ===== Budget options =====
        if include_budget:
            names = [rec.name for rec in recommendations]
            result.budget_options = await self.budget.generate(condition, names) if names else []

        logger.info(
            "analysis_complete",
            condition=condition,
            mechanisms=len(result.mechanisms),
            recommendations=len(result.recommendations),
        )
        return result

    async def run(self, raw_condition: str, include_budget: bool = False) -> AnalysisRun:
        """
        Search sources for a condition and analyze them.

        Non-empty results are cached for the configured TTL.

        Raises:
            ValueError: If the condition is blank
            ConfigurationError: Unknown backend family or missing credential
        """
        query = ConditionQuery.parse(raw_condition)
        cache_key = f"{query.normalized}|budget={include_budget}"

        cached = self.cache.get("analysis", cache_key)
        if cached is not None:
            logger.info("analysis_cache_hit", condition=query.raw)
            return AnalysisRun(
                query,
                cached.result.model_copy(deep=True),
                dict(cached.search_stats),
                cached=True,
            )

        gathered = await self.search.gather(query)
        result = await self.analyze(query, gathered.documents, include_budget)
        analysis_run = AnalysisRun(query, result, gathered.stats)

        if result.recommendations:
            # The cached copy is never handed out directly
            self.cache.set(
                "analysis",
                cache_key,
                AnalysisRun(query, result.model_copy(deep=True), dict(gathered.stats)),
            )
        return analysis_run

    async def aclose(self) -> None:
        """Close the owned source search and its HTTP client."""
        if self._owns_search and self._search is not None:
            await self._search.aclose()
            self._search = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


# Convenience function for simple use cases
async def analyze_condition(raw_condition: str, include_budget: bool = False) -> AnalysisRun:
    """
    Simple function interface for a full run.

    Creates an analyzer, runs it, and cleans up.
    Use HealthAnalyzer directly for multiple conditions.
    """
    async with HealthAnalyzer() as analyzer:
        return await analyzer.run(raw_condition, include_budget=include_budget)


__all__ = [
    "AnalysisRun",
    "HealthAnalyzer",
    "analyze_condition",
]

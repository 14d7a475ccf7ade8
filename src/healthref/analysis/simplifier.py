"""
Plain-language paraphrasing of summaries and mechanisms.

All texts of a run go to the model in one batch call. Results are mapped
back by position, so the response must contain exactly one item per input
in the same order; any other length is treated as a failed call.

Models sometimes "simplify" by returning the input unchanged. A result
only counts as simplified when its normalized edit-distance similarity to
the original is below the threshold (0.9 by default).

Simplification is best-effort: on any failure every item falls back to
its original text with no technical terms.

Usage:
    simplifier = Simplifier(gateway)
    results = await simplifier.simplify([
        SimplifyRequest("Increases insulin sensitivity", "biological mechanism"),
    ])
    if results[0].is_simplified:
        print(results[0].simplified)
"""

from dataclasses import dataclass, field

from pydantic import ValidationError

from healthref.analysis.results import TechnicalTerm
from healthref.config import settings
from healthref.generation.gateway import ModelGateway
from healthref.generation.parser import ParseError, load_json
from healthref.generation.prompts import PromptBuilder
from healthref.logging import get_logger

logger = get_logger(__name__, component="simplifier")


def levenshtein_distance(a: str, b: str) -> int:
    """Classic dynamic-programming edit distance, one row at a time."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, 1):
        current = [i]
        for j, char_b in enumerate(b, 1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


def similarity(a: str, b: str) -> float:
    """(max_len - distance) / max_len on normalized text; 1.0 for two empty strings."""
    a, b = _normalize(a), _normalize(b)
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(a, b)) / longest


def is_actually_simplified(original: str, simplified: str, threshold: float | None = None) -> bool:
    """True when the simplified text is a real paraphrase, not an echo."""
    threshold = threshold if threshold is not None else settings.simplification_threshold
    if not simplified or not simplified.strip():
        return False
    if _normalize(original) == _normalize(simplified):
        return False
    return similarity(original, simplified) < threshold


@dataclass(frozen=True)
class SimplifyRequest:
    text: str
    context: str | None = None


@dataclass
class SimplifiedText:
    original: str
    simplified: str
    technical_terms: list[TechnicalTerm] = field(default_factory=list)

    @property
    def is_simplified(self) -> bool:
        return is_actually_simplified(self.original, self.simplified)

    @classmethod
    def unchanged(cls, original: str) -> "SimplifiedText":
        return cls(original=original, simplified=original, technical_terms=[])


def _parse_terms(raw) -> list[TechnicalTerm]:
    if not isinstance(raw, list):
        return []

    terms = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            term = TechnicalTerm.model_validate(item)
        except ValidationError:
            continue
        if term.term.strip():
            terms.append(term)
    return terms


class Simplifier:
    """Batch paraphraser with echo detection."""

    def __init__(self, gateway: ModelGateway, prompts: PromptBuilder | None = None):
        self.gateway = gateway
        self.prompts = prompts or PromptBuilder()

    @staticmethod
    def _fallback(batch: list[SimplifyRequest]) -> list[SimplifiedText]:
        return [SimplifiedText.unchanged(item.text) for item in batch]

    @staticmethod
    def _items(data) -> list:
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in ("items", "texts", "results"):
                if isinstance(data.get(key), list):
                    return data[key]
        raise ParseError("Simplification response has no item list")

    @staticmethod
    def _map_item(request: SimplifyRequest, item) -> SimplifiedText:
        if not isinstance(item, dict):
            return SimplifiedText.unchanged(request.text)

        simplified = item.get("simplified")
        return SimplifiedText(
            original=request.text,
            simplified=simplified if isinstance(simplified, str) and simplified.strip() else request.text,
            technical_terms=_parse_terms(item.get("technicalTerms")),
        )

    async def simplify(self, batch: list[SimplifyRequest]) -> list[SimplifiedText]:
        """
        Paraphrase every text in one model call.

        Returns:
            One SimplifiedText per request, same length and order
        """
        if not batch:
            return []

        prompt = self.prompts.simplification([(item.text, item.context) for item in batch])

        try:
            response = await self.gateway.generate(prompt.user, prompt.system)
            items = self._items(load_json(response))
        except Exception as e:
            logger.warning("simplification_failed", error=str(e)[:200], count=len(batch))
            return self._fallback(batch)

        if len(items) != len(batch):
            logger.warning(
                "simplification_length_mismatch",
                expected=len(batch),
                received=len(items),
            )
            return self._fallback(batch)

        try:
            results = [self._map_item(request, item) for request, item in zip(batch, items)]
        except Exception as e:
            logger.warning("simplification_malformed_items", error=str(e)[:200], count=len(batch))
            return self._fallback(batch)

        echoed = sum(1 for r in results if not r.is_simplified)
        logger.info("simplification_complete", count=len(results), echoed=echoed)
        return results

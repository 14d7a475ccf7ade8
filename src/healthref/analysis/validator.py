"""
Provenance validation and specificity heuristics for recommendation drafts.

Core rule: a structured value (reps, duration, dosage, ...) is displayable
only if an evidence item carries the verbatim chunk it was taken from, and
the value can be found in that chunk.

Processing per draft, in order:
1. Placeholder scrubbing  ("not specified", "n/a", ... fields are deleted;
                          evidence text only when it is nothing but filler)
2. Chunk gating           (no chunk -> no fields; value not in chunk -> field removed)
3. Name specificity       ("Exercise", "Submaximal Exercise" -> rejected)
4. Mechanism vagueness    (short "is beneficial"-style mechanisms -> rejected)
5. Domain relevance       (metabolic mechanisms for neurological conditions -> rejected)
6. Evidence reconciliation (URL/DOI replaced by the fetched source's values)

Nothing here raises. Dropped recommendations and stripped fields are
expected outcomes and are only logged.
"""

import re

from healthref.analysis.results import ValidatedRecommendation
from healthref.condition import ConditionDomain, classify_condition
from healthref.config import settings
from healthref.generation.parser import EXERCISE_FIELDS, INTAKE_FIELDS, RecommendationDraft
from healthref.logging import get_logger
from healthref.sources.documents import SourceDocument

logger = get_logger(__name__, component="validator")

PLACEHOLDER_PATTERN = re.compile(
    r"\bnot\s+(?:specified|reported|mentioned|available|stated)\b"
    r"|\bunspecified\b"
    r"|\bunknown\b"
    r"|(?<!\w)n/?a(?!\w)",
    re.IGNORECASE,
)

GENERIC_NAMES = {"exercise", "activity", "diet", "nutrition", "food", "therapy"}

GENERIC_NAME_PATTERNS = (
    re.compile(r"^(submaximal|therapeutic|general|moderate|intensive)\s+(exercise|activity|diet|nutrition)$"),
    re.compile(r"^.*\(general\)$"),
    re.compile(r"^(dietary|nutritional)\s+interventions?$"),
)

VAGUE_MECHANISM_PHRASES = (
    "acts as a way",
    "helps with treatment",
    "is beneficial",
    "helps improve",
    "is good for",
    "can help",
)

METABOLIC_MECHANISM_TERMS = ("insulin", "glucose", "blood sugar", "glycemic", "metabolic", "diabetes")
NEUROLOGICAL_MECHANISM_TERMS = (
    "neuroinflammation",
    "neuroplasticity",
    "cognitive",
    "axonal",
    "brain injury",
    "concussion",
)

# (fields on the recommendation, chunk attribute, section attribute)
GATED_GROUPS = (
    (EXERCISE_FIELDS, "exercise_details_chunk", "section_for_exercises"),
    (INTAKE_FIELDS, "dosage_details_chunk", "section_for_dosage"),
)

EVIDENCE_TEXT_FIELDS = (
    "exercise_details_chunk",
    "section_for_exercises",
    "dosage_details_chunk",
    "section_for_dosage",
)


def is_placeholder(value: str | None) -> bool:
    """True for blank values and "not specified"-style filler."""
    if value is None:
        return False
    return not value.strip() or bool(PLACEHOLDER_PATTERN.search(value))


def is_placeholder_text(value: str | None) -> bool:
    """
    True for evidence text that is nothing but filler.

    Verbatim chunks routinely mention "unknown" or "Na" (sodium), so only
    a text consisting entirely of a placeholder counts.
    """
    if value is None:
        return False
    text = value.strip().strip(".")
    return not text or bool(PLACEHOLDER_PATTERN.fullmatch(text))


def is_generic_name(name: str | None) -> bool:
    normalized = " ".join((name or "").lower().split())
    if not normalized:
        return True
    if normalized in GENERIC_NAMES:
        return True
    return any(pattern.match(normalized) for pattern in GENERIC_NAME_PATTERNS)


def is_vague_mechanism(mechanism: str | None, min_length: int = 50) -> bool:
    """Short mechanisms built around a vague phrase carry no biology."""
    text = (mechanism or "").lower()
    if len(text) >= min_length:
        return False
    return any(phrase in text for phrase in VAGUE_MECHANISM_PHRASES)


def is_off_domain(mechanism: str | None, condition: str) -> bool:
    """
    True if the mechanism belongs to the other physiological domain.

    Only neurological-only and metabolic-only conditions are checked;
    mentioning the condition itself always keeps the recommendation.
    """
    text = (mechanism or "").lower()
    condition_lower = condition.lower()
    if not text or condition_lower in text:
        return False

    has_metabolic = any(term in text for term in METABOLIC_MECHANISM_TERMS)
    has_neurological = any(term in text for term in NEUROLOGICAL_MECHANISM_TERMS)

    domain = classify_condition(condition)
    if domain is ConditionDomain.NEUROLOGICAL:
        return has_metabolic and not has_neurological
    if domain is ConditionDomain.METABOLIC:
        return has_neurological and not has_metabolic
    return False


def _value_in_chunks(value: str, chunks: list[str]) -> bool:
    needle = value.lower()
    return any(needle in chunk.lower() for chunk in chunks)


class ProvenanceValidator:
    """
    Filter and trim drafts for one condition and its source documents.

    Example:
        validator = ProvenanceValidator("diabetes", documents)
        recommendations = validator.validate(draft.recommendations)
    """

    def __init__(
        self,
        condition: str,
        documents: list[SourceDocument],
        mechanism_min_length: int | None = None,
    ):
        self.condition = condition
        self.documents = documents
        self.mechanism_min_length = mechanism_min_length or settings.mechanism_min_length

        self._by_id = {doc.id: doc for doc in documents if doc.id}
        self._by_title = {doc.title: doc for doc in documents if doc.title}

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------

    def scrub_placeholders(self, rec: ValidatedRecommendation) -> None:
        for group_fields, _, _ in GATED_GROUPS:
            for field_name in group_fields:
                value = getattr(rec, field_name)
                if isinstance(value, list):
                    kept = [item for item in value if not is_placeholder(item)]
                    setattr(rec, field_name, kept or None)
                elif is_placeholder(value):
                    setattr(rec, field_name, None)

        for ev in rec.evidence:
            for attribute in EVIDENCE_TEXT_FIELDS:
                if is_placeholder_text(getattr(ev, attribute)):
                    setattr(ev, attribute, None)

    def gate_on_chunks(self, rec: ValidatedRecommendation) -> None:
        for group_fields, chunk_attribute, section_attribute in GATED_GROUPS:
            chunks = rec.evidence_chunks(chunk_attribute)

            if not chunks:
                for field_name in group_fields:
                    setattr(rec, field_name, None)
                for ev in rec.evidence:
                    setattr(ev, chunk_attribute, None)
                    setattr(ev, section_attribute, None)
                continue

            for field_name in group_fields:
                value = getattr(rec, field_name)
                if value is None:
                    continue
                if isinstance(value, list):
                    grounded = [item for item in value if _value_in_chunks(item, chunks)]
                    if len(grounded) < len(value):
                        logger.debug("ungrounded_items_removed", name=rec.name, field=field_name)
                    setattr(rec, field_name, grounded or None)
                elif not _value_in_chunks(value, chunks):
                    logger.debug("ungrounded_field_removed", name=rec.name, field=field_name)
                    setattr(rec, field_name, None)

    def reconcile_evidence(self, rec: ValidatedRecommendation) -> None:
        for ev in rec.evidence:
            document = self._by_id.get(ev.paper_id) or self._by_title.get(ev.paper_title)
            if document is None:
                continue
            ev.paper_url = document.url or ev.paper_url
            ev.doi = document.doi or ev.doi

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def rejection_reason(self, rec: ValidatedRecommendation) -> str | None:
        if is_generic_name(rec.name):
            return "generic_name"
        if is_vague_mechanism(rec.mechanism, self.mechanism_min_length):
            return "vague_mechanism"
        if is_off_domain(rec.mechanism, self.condition):
            return "off_domain_mechanism"
        return None

    def validate(self, drafts: list[RecommendationDraft]) -> list[ValidatedRecommendation]:
        validated = []

        for draft in drafts:
            rec = ValidatedRecommendation.from_draft(draft)

            self.scrub_placeholders(rec)
            self.gate_on_chunks(rec)

            reason = self.rejection_reason(rec)
            if reason:
                logger.info(
                    "recommendation_rejected",
                    name=rec.name,
                    reason=reason,
                    mechanism=(rec.mechanism or "")[:80],
                )
                continue

            self.reconcile_evidence(rec)
            validated.append(rec)

        logger.info(
            "validation_complete",
            condition=self.condition,
            drafts=len(drafts),
            kept=len(validated),
        )
        return validated

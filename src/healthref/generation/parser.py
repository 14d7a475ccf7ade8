"""
Parse the extraction model's JSON output into recommendation drafts.

The model is asked for bare JSON but sometimes wraps it in a Markdown code
fence or adds a sentence around it. Those wrappers are stripped; anything
that still is not a single JSON object is a ParseError. A malformed
top-level document is not retried: the cause is model non-compliance,
not a transient failure.

Individual recommendations that do not fit the schema (missing name,
unknown type) are skipped so one bad entry does not discard the rest.
"""

import json
import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from healthref.logging import get_logger

logger = get_logger(__name__, component="parser")

# Outermost fenced block; greedy so fences inside JSON strings stay intact
FENCED_BLOCK = re.compile(r"```(?:json)?[ \t]*\n?(.*)```", re.IGNORECASE | re.DOTALL)
OPENING_FENCE = re.compile(r"^```(?:json)?", re.IGNORECASE)

EXERCISE_FIELDS = ("specific_exercises", "reps", "sets", "duration", "frequency")
INTAKE_FIELDS = ("dosage", "serving_size", "frequency_of_intake")


class ParseError(ValueError):
    """The model output is not a single JSON object."""


class CamelModel(BaseModel):
    """Base model reading and writing camelCase JSON keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _to_optional_text(value):
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return value


class EvidenceDraft(CamelModel):
    """A citation proposed by the model, optionally with verbatim chunks."""

    paper_title: str = ""
    paper_url: str = ""
    paper_id: str = ""
    quote: str | None = None
    doi: str | None = None
    relevant_section: str | None = None
    section_for_exercises: str | None = None
    exercise_details_chunk: str | None = None
    section_for_dosage: str | None = None
    dosage_details_chunk: str | None = None

    @field_validator("paper_title", "paper_url", "paper_id", mode="before")
    @classmethod
    def _coerce_required_text(cls, value):
        return "" if value is None else _to_optional_text(value)

    @field_validator(
        "quote",
        "doi",
        "relevant_section",
        "section_for_exercises",
        "exercise_details_chunk",
        "section_for_dosage",
        "dosage_details_chunk",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value):
        return _to_optional_text(value)


class RecommendationDraft(CamelModel):
    """A model-proposed recommendation before provenance validation."""

    type: Literal["food", "activity"]
    name: str
    category: Literal["beneficial", "risky"] = "beneficial"
    mechanism: str | None = None
    summary: str = ""

    # Exercise fields, only valid with an exercise_details_chunk
    specific_exercises: list[str] | None = None
    reps: str | None = None
    sets: str | None = None
    duration: str | None = None
    frequency: str | None = None

    # Intake fields, only valid with a dosage_details_chunk
    dosage: str | None = None
    serving_size: str | None = None
    frequency_of_intake: str | None = None

    evidence: list[EvidenceDraft] = Field(default_factory=list)

    @field_validator("type", "category", mode="before")
    @classmethod
    def _lowercase(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("name", "summary", mode="before")
    @classmethod
    def _coerce_name(cls, value):
        return "" if value is None else _to_optional_text(value)

    @field_validator(
        "mechanism", "reps", "sets", "duration", "frequency",
        "dosage", "serving_size", "frequency_of_intake",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value):
        return _to_optional_text(value)

    @field_validator("specific_exercises", mode="before")
    @classmethod
    def _coerce_list(cls, value):
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [str(v) for v in value if v is not None]
        return value

    @field_validator("evidence", mode="before")
    @classmethod
    def _drop_bad_evidence(cls, value):
        if value is None:
            return []
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
        return value


class ExtractionDraft(BaseModel):
    """Top-level extraction output."""

    mechanisms: list[str] = Field(default_factory=list)
    recommendations: list[RecommendationDraft] = Field(default_factory=list)


def strip_code_fences(text: str) -> str:
    """Remove an outer Markdown code fence and any prose around the JSON body."""
    cleaned = text.strip()

    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    match = FENCED_BLOCK.search(cleaned)
    if match and (not starts or match.start() < min(starts)):
        cleaned = match.group(1).strip()
    else:
        # A truncated reply may open a fence and never close it
        cleaned = OPENING_FENCE.sub("", cleaned).strip()

    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    if not starts:
        return cleaned

    start = min(starts)
    end = cleaned.rfind("}" if cleaned[start] == "{" else "]")
    if end > start:
        cleaned = cleaned[start:end + 1]
    return cleaned


def load_json(text: str):
    """
    Parse model output as JSON after stripping wrappers.

    Raises:
        ParseError: Empty or malformed output
    """
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        raise ParseError("Model returned an empty response")

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ParseError(f"Model returned malformed JSON: {e}") from e


def load_json_object(text: str) -> dict:
    """
    Parse model output that must be one JSON object.

    Raises:
        ParseError: Empty, malformed, or not an object
    """
    data = load_json(text)
    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


class RecommendationParser:
    """Turn raw extraction output into an ExtractionDraft."""

    def parse(self, text: str) -> ExtractionDraft:
        data = load_json_object(text)

        raw_mechanisms = data.get("mechanisms") or []
        if isinstance(raw_mechanisms, str):
            raw_mechanisms = [raw_mechanisms]
        mechanisms = [str(m) for m in raw_mechanisms if m]

        raw_recommendations = data.get("recommendations") or []
        if not isinstance(raw_recommendations, list):
            raise ParseError("'recommendations' must be a list")

        recommendations = []
        for index, raw in enumerate(raw_recommendations):
            try:
                recommendations.append(RecommendationDraft.model_validate(raw))
            except ValidationError as e:
                logger.info(
                    "recommendation_skipped_invalid",
                    index=index,
                    errors=e.error_count(),
                )

        logger.info(
            "extraction_parsed",
            mechanisms=len(mechanisms),
            recommendations=len(recommendations),
            skipped=len(raw_recommendations) - len(recommendations),
        )
        return ExtractionDraft(mechanisms=mechanisms, recommendations=recommendations)

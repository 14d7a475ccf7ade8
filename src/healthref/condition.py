"""
Condition queries and condition-domain classification.

Users often describe a condition together with what caused it:
- "concussion after car accident"
- "back pain from bench pressing"

Splitting off the cause lets the prompt prioritise the specific
cause+condition pair while still accepting general advice for the
condition alone.

Usage:
    from healthref.condition import ConditionQuery

    query = ConditionQuery.parse("Concussion after car accident")
    query.base_condition  # "concussion"
    query.cause           # "car accident"
"""

import re
from dataclasses import dataclass
from enum import Enum

# Connector phrases that separate a condition from its cause
CAUSE_CONNECTOR = re.compile(
    r"\s+(?:after|from|due to|caused by|following)\s+",
    re.IGNORECASE,
)

METABOLIC_CONDITION_TERMS = (
    "diabetes",
    "insulin",
    "glucose",
    "metabolic",
    "blood sugar",
    "hyperglycemia",
    "hypoglycemia",
)

NEUROLOGICAL_CONDITION_TERMS = (
    "concussion",
    "brain",
    "neurological",
    "cognitive",
    "neuro",
    "tbi",
    "traumatic brain",
)


class ConditionDomain(str, Enum):
    """Broad physiological domain of a condition."""

    METABOLIC = "metabolic"
    NEUROLOGICAL = "neurological"
    MIXED = "mixed"
    OTHER = "other"


@dataclass(frozen=True)
class ConditionQuery:
    """
    A free-text condition split into base condition and optional cause.

    base_condition is never empty. cause is None when no connector
    phrase was found.
    """
    raw: str
    base_condition: str
    cause: str | None = None

    @classmethod
    def parse(cls, raw: str) -> "ConditionQuery":
        """
        Split a raw condition string on the first cause connector.

        Raises:
            ValueError: If the condition is empty or only whitespace
        """
        text = " ".join(raw.split()) if raw else ""
        if not text:
            raise ValueError("Condition must not be empty")

        parts = CAUSE_CONNECTOR.split(text.lower())
        if len(parts) > 1 and parts[0].strip():
            cause = " ".join(p.strip() for p in parts[1:] if p.strip())
            return cls(raw=text, base_condition=parts[0].strip(), cause=cause or None)

        return cls(raw=text, base_condition=text, cause=None)

    @property
    def has_cause(self) -> bool:
        return self.cause is not None

    @property
    def normalized(self) -> str:
        """Lowercased condition text, used as a cache key."""
        return self.raw.lower()

    @property
    def domain(self) -> ConditionDomain:
        return classify_condition(self.raw)


def classify_condition(condition: str) -> ConditionDomain:
    """Classify a condition by keyword membership."""
    text = condition.lower()
    metabolic = any(term in text for term in METABOLIC_CONDITION_TERMS)
    neurological = any(term in text for term in NEUROLOGICAL_CONDITION_TERMS)

    if metabolic and neurological:
        return ConditionDomain.MIXED
    if metabolic:
        return ConditionDomain.METABOLIC
    if neurological:
        return ConditionDomain.NEUROLOGICAL
    return ConditionDomain.OTHER

"""
Glossary of common technical terms with plain-language explanations.

Used to fill in explanations the simplification model left blank, and by
the `healthref terms` command for quick lookups.
"""

import re
from dataclasses import dataclass
from enum import Enum


class TermCategory(str, Enum):
    MEDICAL = "medical"
    EXERCISE = "exercise"
    NUTRITION = "nutrition"
    GENERAL = "general"


@dataclass(frozen=True)
class TermDefinition:
    term: str
    explanation: str
    category: TermCategory


def _entries(category: TermCategory, *pairs: tuple[str, str]) -> dict[str, TermDefinition]:
    return {term.lower(): TermDefinition(term, explanation, category) for term, explanation in pairs}


TECHNICAL_TERMS: dict[str, TermDefinition] = {
    **_entries(
        TermCategory.EXERCISE,
        ("submaximal exercise", "Exercise performed at moderate intensity, below your maximum effort level."),
        ("eccentric loading", "The lowering phase of an exercise where muscles lengthen under tension (e.g., lowering a weight)."),
        ("concentric contraction", "Muscle contraction where the muscle shortens while generating force (e.g., lifting a weight)."),
        ("chain-loaded weights", "Weight training equipment where chains are added to a barbell, increasing resistance as you lift."),
        ("resistance training", "Exercise that uses resistance (weights, bands, or body weight) to strengthen muscles."),
        ("aerobic exercise", "Cardiovascular exercise that increases heart rate and breathing (e.g., running, swimming, cycling)."),
        ("anaerobic exercise", "High-intensity exercise performed in short bursts without relying on oxygen (e.g., sprinting, weightlifting)."),
        ("VO2 max", "The maximum amount of oxygen your body can use during intense exercise, indicating cardiovascular fitness."),
        ("progressive overload", "Gradually increasing the difficulty of exercise over time to continue making fitness gains."),
    ),
    **_entries(
        TermCategory.MEDICAL,
        ("insulin resistance", "A condition where cells in your body don't respond well to insulin, leading to high blood sugar levels."),
        ("insulin sensitivity", "How well your body responds to insulin. Higher sensitivity means your body uses insulin more effectively."),
        ("glucose uptake", "The process by which cells absorb sugar (glucose) from the bloodstream for energy."),
        ("glucose metabolism", "How your body processes and uses sugar (glucose) for energy."),
        ("oxidative stress", "An imbalance between harmful molecules (free radicals) and antioxidants in your body, which can damage cells."),
        ("inflammation", "Your body's natural response to injury or illness, but chronic inflammation can contribute to disease."),
        ("chronic inflammation", "Long-term inflammation that can damage tissues and contribute to various health conditions."),
        ("neuroinflammation", "Inflammation in the brain or nervous system."),
        ("neuroplasticity", "The brain's ability to change and adapt by forming new connections."),
        ("endothelial function", "How well the cells lining your blood vessels work."),
        ("protein synthesis", "The process of building new proteins, including muscle."),
        ("antioxidant", "Compounds that protect cells from damage caused by harmful molecules called free radicals."),
        ("free radicals", "Unstable molecules that can damage cells and contribute to aging and disease."),
        ("metabolic syndrome", "A group of conditions (high blood pressure, high blood sugar, excess body fat) that increase heart disease and diabetes risk."),
        ("cardiovascular", "Relating to the heart and blood vessels (heart and circulatory system)."),
        ("hypertension", "High blood pressure, a condition where the force of blood against artery walls is too high."),
        ("hypoglycemia", "Low blood sugar levels, which can cause dizziness, confusion, and other symptoms."),
        ("hyperglycemia", "High blood sugar levels, often associated with diabetes."),
    ),
    **_entries(
        TermCategory.NUTRITION,
        ("glycemic index", "A measure of how quickly a food raises blood sugar levels after eating."),
        ("glycemic load", "A measure that considers both how quickly a food raises blood sugar and how much carbohydrate it contains."),
        ("macronutrients", "The main nutrients your body needs in large amounts: carbohydrates, proteins, and fats."),
        ("micronutrients", "Vitamins and minerals your body needs in smaller amounts for proper functioning."),
        ("omega-3 fatty acids", "Healthy fats found in fish, nuts, and seeds that support heart and brain health."),
        ("saturated fat", "A type of fat found in animal products and some plant oils that can raise cholesterol levels."),
        ("unsaturated fat", "Healthy fats found in olive oil, avocados, and nuts that can help lower cholesterol."),
        ("trans fat", "Unhealthy artificial fats that raise bad cholesterol and increase heart disease risk."),
        ("dietary fiber", "Plant material that your body can't digest, helping with digestion and blood sugar control."),
        ("probiotics", "Beneficial bacteria found in fermented foods that support gut health."),
        ("prebiotics", "Types of fiber that feed beneficial bacteria in your gut."),
        ("phytochemicals", "Natural compounds in plants that may have health benefits (e.g., antioxidants in fruits and vegetables)."),
        ("polyphenols", "Natural compounds in plants (found in tea, berries, dark chocolate) that have antioxidant properties."),
        ("bioavailability", "How well your body can absorb and use a nutrient from food."),
    ),
}


def lookup_term(term: str) -> TermDefinition | None:
    """Case-insensitive exact lookup."""
    return TECHNICAL_TERMS.get(" ".join(term.lower().split()))


def has_term(term: str) -> bool:
    return lookup_term(term) is not None


def terms_by_category(category: TermCategory | str) -> list[TermDefinition]:
    category = TermCategory(category)
    return [d for d in TECHNICAL_TERMS.values() if d.category is category]


def search_terms(query: str) -> list[TermDefinition]:
    """Definitions whose term contains the query (case-insensitive)."""
    needle = query.lower().strip()
    return [d for d in TECHNICAL_TERMS.values() if needle in d.term.lower()]


def find_terms_in(text: str) -> list[TermDefinition]:
    """
    Glossary terms that occur in a text as whole words.

    Longer terms win over the shorter terms they contain, so
    "chronic inflammation" does not also report "inflammation".
    """
    lowered = text.lower()
    found: list[TermDefinition] = []
    for key in sorted(TECHNICAL_TERMS, key=len, reverse=True):
        if not re.search(rf"(?<!\w){re.escape(key)}(?!\w)", lowered):
            continue
        if any(key in f.term.lower() for f in found):
            continue
        found.append(TECHNICAL_TERMS[key])
    return found

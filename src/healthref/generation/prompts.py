"""
Prompt construction for the extraction, simplification and budget passes.

The extraction prompt is the first line of defence for grounding: it asks
the model to copy a verbatim chunk from the source BEFORE filling any
structured field, and to take field values only from that chunk. The
provenance validator enforces the same rule afterwards.

Usage:
    from healthref.generation.prompts import PromptBuilder

    builder = PromptBuilder()
    prompt = builder.extraction(ConditionQuery.parse("diabetes"), documents)
    text = await gateway.generate(prompt.user, prompt.system)
"""

import json
from dataclasses import dataclass

from healthref.condition import ConditionQuery
from healthref.config import settings
from healthref.sources.documents import SourceDocument

EXTRACTION_SYSTEM_PROMPT = (
    "You are a medical research analyst. Extract health recommendations from "
    "scientific papers and format them as JSON. Always cite specific papers with "
    "quotes or section references."
)

SIMPLIFICATION_SYSTEM_PROMPT = (
    "You are a health communication expert. Simplify technical language for "
    "general audiences."
)

BUDGET_SYSTEM_PROMPT = (
    "You are a health advisor. Suggest budget-friendly alternatives using "
    "government sources. Format as JSON."
)

OUTPUT_SCHEMA = """{
  "mechanisms": ["mechanism1", "mechanism2"],
  "recommendations": [
    {
      "type": "food" or "activity",
      "name": "SPECIFIC name (e.g. 'Running', 'Spinach', 'Caffeine', NOT 'Exercise' or 'Submaximal Exercise')",
      "category": "beneficial" or "risky",
      "mechanism": "SPECIFIC biological mechanism (e.g. 'increases insulin sensitivity by enhancing glucose uptake in muscle cells')",
      "summary": "brief explanation with specific details",
      "specificExercises": ["Exercise 1", "Exercise 2"] (activities only, copied from exerciseDetailsChunk),
      "reps": "e.g. '3 sets of 8-12 reps' (only if in exerciseDetailsChunk)",
      "sets": "e.g. '3 sets' (only if in exerciseDetailsChunk)",
      "duration": "e.g. '30 minutes' (only if in exerciseDetailsChunk)",
      "frequency": "e.g. '3 times per week' (only if in exerciseDetailsChunk)",
      "dosage": "e.g. '200mg daily' (only if in dosageDetailsChunk)",
      "servingSize": "e.g. '3-4 oz' (only if in dosageDetailsChunk)",
      "frequencyOfIntake": "e.g. 'daily', 'with meals' (only if in dosageDetailsChunk)",
      "evidence": [
        {
          "paperTitle": "title",
          "paperUrl": "url",
          "paperId": "id",
          "quote": "relevant quote or section",
          "doi": "doi if available",
          "sectionForExercises": "where the exercise details are, e.g. 'Methods section' - ONLY if this paper has them",
          "exerciseDetailsChunk": "EXACT text copied from the paper containing the exercise details - ONLY if this paper has them",
          "sectionForDosage": "where the dosage/intake details are, e.g. 'Intervention section' - ONLY if this paper has them",
          "dosageDetailsChunk": "EXACT text copied from the paper containing the dosage/intake details - ONLY if this paper has them"
        }
      ]
    }
  ]
}"""

CHUNK_FIRST_PROTOCOL = """EXTRACT SPECIFIC DETAILS - FOLLOW THIS EXACT WORKFLOW:

STEP 1: FIND THE EXACT TEXT CHUNK IN THE PUBLICATION FIRST
- For ACTIVITIES/EXERCISES: find the passage (usually Methods, Intervention or Results) that states the exercises, reps, sets, duration or frequency. Copy it EXACTLY as written into "exerciseDetailsChunk" and note its location in "sectionForExercises".
- For FOODS/SUPPLEMENTS: find the passage that states the dosage, serving size or frequency of intake. Copy it EXACTLY as written into "dosageDetailsChunk" and note its location in "sectionForDosage".

STEP 2: EXTRACT STRUCTURED FIELDS FROM THE EXACT CHUNK
- ONLY if you found a chunk in Step 1, extract structured fields FROM THAT CHUNK.
- Every value MUST appear in the chunk text: a reader must be able to Ctrl+F each value in the chunk.
  Example: chunk "Participants performed bench press, 3 sets of 8-12 reps, 3 times per week"
  -> specificExercises: ["Bench Press"], reps: "3 sets of 8-12 reps", frequency: "3 times per week"
- DO NOT make up, infer, paraphrase or summarise values.
- DO NOT include a field whose value would be "not specified", "not reported", "not mentioned" or similar. Omit it.
- If no chunk with exercise/dosage details exists, DO NOT include any exercise/dosage fields or chunks at all."""

SPECIFICITY_RULES = """CRITICAL REQUIREMENTS FOR RECOMMENDATIONS:
- Each recommendation must be SPECIFIC and ACTIONABLE ("Running", "Spinach", "Bench Press"), NOT a category ("Exercise", "Diet", "Physical activity").
- Names with vague qualifiers ("Submaximal Exercise", "Exercise (General)", "Dietary Intervention", "Nutritional Interventions") are TOO GENERIC: extract the specific exercises or foods instead.
- Create a SEPARATE recommendation for EACH specific item; do not group them. Aim for 10-15+ recommendations when the papers support it.

CRITICAL REQUIREMENTS FOR MECHANISM:
- Explain HOW the food/activity affects "{condition}" through a concrete biological process.
- The mechanism MUST be relevant to "{condition}". Do not use metabolic mechanisms (insulin, glucose) for neurological conditions like concussion, or neurological mechanisms (neuroinflammation, cognitive) for metabolic conditions like diabetes.
- NOT vague statements such as "acts as a way to help with treatment", "is beneficial", "helps improve health"."""


@dataclass(frozen=True)
class Prompt:
    """A rendered system + user prompt pair."""
    system: str
    user: str


def _cause_scope(query: ConditionQuery) -> str:
    if not query.has_cause:
        return ""
    return f"""
NOTE: This query includes both a condition ("{query.base_condition}") and a specific cause/context ("{query.cause}").
- PRIORITIZE: Recommendations that address "{query.raw}" (the specific cause + condition combination)
- ALSO INCLUDE: General recommendations for "{query.base_condition}" (the condition alone)
- IGNORE: Recommendations for "{query.base_condition}" caused by OTHER unrelated causes
"""


class PromptBuilder:
    """
    Render prompts for every model pass.

    Each source document is truncated to content_chars characters to
    bound the prompt size.
    """

    def __init__(self, content_chars: int | None = None):
        self.content_chars = content_chars or settings.prompt_content_chars

    def render_document(self, index: int, document: SourceDocument) -> str:
        lines = [
            f"Source {index}:",
            f"Title: {document.title}",
            f"Source: {document.display_source}",
            f"ID: {document.id}",
        ]
        if document.abstract_text:
            lines.append(f"Content: {document.abstract_text[:self.content_chars]}")
        else:
            lines.append("No content available")
        lines.append(f"URL: {document.url}")
        if document.doi:
            lines.append(f"DOI: {document.doi}")
        if document.venue:
            lines.append(f"Publication: {document.venue}")
        if document.year:
            lines.append(f"Year: {document.year}")
        return "\n".join(lines)

    def extraction(self, query: ConditionQuery, documents: list[SourceDocument]) -> Prompt:
        condition = query.raw
        papers = "\n---\n".join(
            self.render_document(i, doc) for i, doc in enumerate(documents, 1)
        )

        user = f"""{EXTRACTION_SYSTEM_PROMPT}

Analyze the following sources related to "{condition}" and extract:
{_cause_scope(query)}
CRITICAL: Only extract recommendations that are DIRECTLY relevant to "{condition}".
- DO NOT extract recommendations from papers about other conditions.
- If a mechanism mentions processes unrelated to "{condition}", EXCLUDE that recommendation.

1. SPECIFIC foods and activities that are BENEFICIAL for "{condition}"
2. SPECIFIC foods and activities that are RISKY for "{condition}"
3. The biological mechanisms involved that are RELEVANT to "{condition}"
4. For each recommendation, cite specific sources by their ID, with quotes

{SPECIFICITY_RULES.format(condition=condition)}

{CHUNK_FIRST_PROTOCOL}

Format your response as JSON with this structure:
{OUTPUT_SCHEMA}

Sources to analyze:
{papers}

Respond ONLY with valid JSON, no markdown formatting."""

        return Prompt(system=EXTRACTION_SYSTEM_PROMPT, user=user)

    def simplification(self, items: list[tuple[str, str | None]]) -> Prompt:
        """
        Render the batch paraphrase prompt.

        Args:
            items: (text, context) pairs, in the order results must come back
        """
        texts = "\n\n---\n\n".join(
            f"Text {i}:\n" + (f"Context: {context}\n" if context else "") + text
            for i, (text, context) in enumerate(items, 1)
        )

        user = f"""Your job is to REWRITE technical medical/scientific text into simple, everyday language that a regular person can understand.

Texts to analyze:
{texts}

CRITICAL INSTRUCTIONS:
1. REWRITE each text using different words. This is PARAPHRASING, not copying.
2. Replace technical terms with simple explanations.
3. Use shorter sentences and everyday language.
4. Keep the scientific meaning accurate.

Example:
- Original: "Increases insulin sensitivity by enhancing glucose uptake in muscle cells"
- Simplified: "Helps your body respond better to insulin by making muscle cells absorb sugar from your blood more effectively"

Return a JSON object with exactly {len(items)} items, in the same order as the texts:
{{
  "items": [
    {{
      "original": "original text 1",
      "simplified": "REWRITTEN version using different words",
      "technicalTerms": [{{"term": "...", "explanation": "one sentence"}}]
    }}
  ]
}}

Return ONLY valid JSON, no markdown."""

        return Prompt(system=SIMPLIFICATION_SYSTEM_PROMPT, user=user)

    def budget(self, condition: str, names: list[str]) -> Prompt:
        user = f"""Based on the condition "{condition}" and these recommendations, suggest budget-friendly alternatives using government and public-health sources (USDA, CDC, NIH, etc.).

Format as JSON:
{{
  "options": [
    {{
      "name": "option name",
      "description": "description",
      "source": "source name (e.g., USDA, CDC)",
      "sourceUrl": "url to source",
      "cost": "estimated cost if available"
    }}
  ]
}}

Recommendations: {json.dumps(names)}

Respond ONLY with valid JSON."""

        return Prompt(system=BUDGET_SYSTEM_PROMPT, user=user)

"""Tests for provenance validation and the specificity heuristics."""

import pytest

from healthref.analysis.validator import (
    ProvenanceValidator,
    is_generic_name,
    is_off_domain,
    is_placeholder,
    is_placeholder_text,
    is_vague_mechanism,
)
from healthref.generation.parser import RecommendationDraft

GOOD_MECHANISM = (
    "Increases insulin sensitivity by enhancing glucose uptake in skeletal "
    "muscle during and after aerobic exercise"
)


def draft(**overrides) -> RecommendationDraft:
    data = {
        "type": "activity",
        "name": "Brisk walking",
        "mechanism": GOOD_MECHANISM,
        "summary": "Walking lowers blood sugar.",
        "evidence": [],
    }
    data.update(overrides)
    return RecommendationDraft.model_validate(data)


class TestHeuristics:

    @pytest.mark.parametrize("value", [
        "Not specified", "NOT SPECIFIED", "not reported", "Unknown", "N/A", "n/a", "na", "  ",
    ])
    def test_placeholders(self, value):
        assert is_placeholder(value)

    @pytest.mark.parametrize("value", ["30 minutes", "banana", "3 sets", "Unknownst"])
    def test_real_values_are_not_placeholders(self, value):
        assert not is_placeholder(value)

    def test_none_is_not_a_placeholder(self):
        assert not is_placeholder(None)

    @pytest.mark.parametrize("value", ["Not specified", "N/A", "unknown.", "  "])
    def test_evidence_text_that_is_only_filler(self, value):
        assert is_placeholder_text(value)

    @pytest.mark.parametrize("value", [
        "Running, 30 minutes; the mechanism remains unknown.",
        "Adverse events were not reported.",
        "Participants ate 2 servings daily; serum Na was stable.",
    ])
    def test_evidence_text_mentioning_filler_words_is_kept(self, value):
        assert not is_placeholder_text(value)

    @pytest.mark.parametrize("name", [
        "Exercise", "exercise", "Activity", "Diet", "Submaximal Exercise",
        "Therapeutic Activity", "Aerobic exercise (general)", "Dietary interventions", "",
    ])
    def test_generic_names(self, name):
        assert is_generic_name(name)

    @pytest.mark.parametrize("name", ["Running", "Bench Press", "Brisk walking", "Oatmeal"])
    def test_specific_names(self, name):
        assert not is_generic_name(name)

    def test_short_vague_mechanism(self):
        assert is_vague_mechanism("Running is beneficial")
        assert is_vague_mechanism("Can help with recovery")

    def test_long_mechanism_is_never_vague(self):
        mechanism = "Is beneficial because it " + "reduces hepatic glucose output " * 3

        assert not is_vague_mechanism(mechanism)

    def test_short_specific_mechanism_is_not_vague(self):
        assert not is_vague_mechanism("Lowers LDL cholesterol")

    def test_metabolic_mechanism_off_domain_for_concussion(self):
        assert is_off_domain("Improves insulin sensitivity and glucose control", "concussion")

    def test_neurological_mechanism_off_domain_for_diabetes(self):
        assert is_off_domain("Reduces neuroinflammation and supports neuroplasticity", "diabetes")

    def test_mechanism_naming_the_condition_is_kept(self):
        assert not is_off_domain("Glucose regulation relevant to concussion recovery", "concussion")

    def test_mechanism_in_both_domains_is_kept(self):
        assert not is_off_domain("Glucose supply supports cognitive recovery", "concussion")

    def test_other_domains_are_not_filtered(self):
        assert not is_off_domain("Improves insulin sensitivity", "knee osteoarthritis")


class TestProvenanceValidator:

    def test_grounded_fields_kept_and_placeholders_removed(self, diabetes_documents, running_recommendation):
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        [rec] = validator.validate([RecommendationDraft.model_validate(running_recommendation)])

        assert rec.duration == "30 minutes"
        assert rec.frequency == "3 times per week"
        assert rec.reps is None

    def test_fields_without_chunk_are_removed(self, diabetes_documents, running_recommendation):
        running_recommendation["evidence"][0]["exerciseDetailsChunk"] = None
        running_recommendation["dosage"] = "2 servings"
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        [rec] = validator.validate([RecommendationDraft.model_validate(running_recommendation)])

        assert rec.duration is None
        assert rec.frequency is None
        assert rec.dosage is None
        assert rec.evidence[0].section_for_exercises is None

    def test_field_not_in_chunk_is_removed(self, diabetes_documents, running_recommendation):
        running_recommendation["sets"] = "4 sets"
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        [rec] = validator.validate([RecommendationDraft.model_validate(running_recommendation)])

        assert rec.sets is None
        assert rec.duration == "30 minutes"

    def test_grounding_is_case_insensitive(self, diabetes_documents, running_recommendation):
        running_recommendation["duration"] = "30 MINUTES"
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        [rec] = validator.validate([RecommendationDraft.model_validate(running_recommendation)])

        assert rec.duration == "30 MINUTES"

    def test_exercise_list_items_grounded_individually(self, diabetes_documents, running_recommendation):
        running_recommendation["specificExercises"] = ["running", "swimming"]
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        [rec] = validator.validate([RecommendationDraft.model_validate(running_recommendation)])

        assert rec.specific_exercises == ["running"]

    def test_chunk_mentioning_unknown_still_grounds_fields(self, diabetes_documents, running_recommendation):
        evidence = running_recommendation["evidence"][0]
        evidence["exerciseDetailsChunk"] = (
            "Moderate-intensity running, 30 minutes, 3 times per week; "
            "the mechanism remains unknown."
        )
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        [rec] = validator.validate([RecommendationDraft.model_validate(running_recommendation)])

        assert rec.duration == "30 minutes"
        assert rec.frequency == "3 times per week"
        assert rec.evidence[0].exercise_details_chunk.endswith("remains unknown.")

    def test_dosage_chunk_mentioning_sodium_still_grounds_fields(self, diabetes_documents):
        oats = draft(
            type="food",
            name="Oatmeal",
            dosage="40 g",
            evidence=[{
                "paperTitle": "Oats",
                "paperId": "111",
                "dosageDetailsChunk": "Subjects ate 40 g of oats daily; serum Na was stable.",
            }],
        )
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        [rec] = validator.validate([oats])

        assert rec.dosage == "40 g"

    def test_placeholder_chunk_is_dropped(self, diabetes_documents, running_recommendation):
        running_recommendation["evidence"][0]["exerciseDetailsChunk"] = "Not specified"
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        [rec] = validator.validate([RecommendationDraft.model_validate(running_recommendation)])

        assert rec.duration is None
        assert rec.evidence[0].exercise_details_chunk is None

    def test_intake_fields_need_dosage_chunk(self, diabetes_documents):
        oats = draft(
            type="food",
            name="Oatmeal",
            dosage="40 g",
            servingSize="1 cup",
            evidence=[{
                "paperTitle": "Oats",
                "paperId": "111",
                "dosageDetailsChunk": "Subjects ate 40 g of oats daily.",
            }],
        )
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        [rec] = validator.validate([oats])

        assert rec.dosage == "40 g"
        assert rec.serving_size is None

    @pytest.mark.parametrize("name", ["Exercise", "Submaximal Exercise"])
    def test_generic_names_rejected(self, diabetes_documents, name):
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        assert validator.validate([draft(name=name)]) == []

    @pytest.mark.parametrize("name", ["Running", "Bench Press"])
    def test_specific_names_kept(self, diabetes_documents, name):
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        assert len(validator.validate([draft(name=name)])) == 1

    def test_vague_mechanism_rejected(self, diabetes_documents):
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        assert validator.validate([draft(mechanism="It is beneficial")]) == []

    def test_off_domain_rejected_for_concussion(self, diabetes_documents):
        validator = ProvenanceValidator("concussion", diabetes_documents)

        assert validator.validate([draft()]) == []

    def test_same_mechanism_kept_for_diabetes(self, diabetes_documents):
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        assert len(validator.validate([draft()])) == 1

    def test_evidence_reconciled_by_id(self, diabetes_documents, running_recommendation):
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        [rec] = validator.validate([RecommendationDraft.model_validate(running_recommendation)])

        assert rec.evidence[0].paper_url == "https://pubmed.ncbi.nlm.nih.gov/111/"
        assert rec.evidence[0].doi == "10.1000/diabetes.111"

    def test_evidence_reconciled_by_title(self, diabetes_documents):
        rec_draft = draft(evidence=[{
            "paperTitle": "Diabetes and physical activity",
            "paperUrl": "https://invented.example/page",
            "paperId": "unknown-id",
        }])
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        [rec] = validator.validate([rec_draft])

        assert rec.evidence[0].paper_url == "https://www.cdc.gov/diabetes/activity.html"

    def test_unmatched_evidence_left_alone(self, diabetes_documents):
        rec_draft = draft(evidence=[{"paperTitle": "Elsewhere", "paperUrl": "https://x.org", "paperId": "9"}])
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        [rec] = validator.validate([rec_draft])

        assert rec.evidence[0].paper_url == "https://x.org"

    def test_drafts_are_not_mutated(self, diabetes_documents, running_recommendation):
        original = RecommendationDraft.model_validate(running_recommendation)
        validator = ProvenanceValidator("diabetes", diabetes_documents)

        validator.validate([original])

        assert original.reps == "Not specified"
        assert original.evidence[0].paper_url == "https://example.com/made-up"

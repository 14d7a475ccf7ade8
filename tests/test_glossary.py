"""Tests for the technical-terms glossary."""

from healthref.analysis.glossary import (
    TECHNICAL_TERMS,
    TermCategory,
    find_terms_in,
    has_term,
    lookup_term,
    search_terms,
    terms_by_category,
)


def test_lookup_is_case_insensitive():
    definition = lookup_term("Insulin  Resistance")

    assert definition.term == "insulin resistance"
    assert definition.category is TermCategory.MEDICAL


def test_mixed_case_entries_can_be_found():
    assert has_term("vo2 max")
    assert not has_term("photosynthesis")


def test_terms_by_category():
    nutrition = terms_by_category("nutrition")

    assert nutrition
    assert all(d.category is TermCategory.NUTRITION for d in nutrition)
    assert len(nutrition) + len(terms_by_category(TermCategory.MEDICAL)) + len(
        terms_by_category(TermCategory.EXERCISE)
    ) == len(TECHNICAL_TERMS)


def test_search_terms_by_substring():
    names = {d.term for d in search_terms("glyc")}

    assert names == {"glycemic index", "glycemic load", "hypoglycemia", "hyperglycemia"}


def test_find_terms_in_prefers_longer_terms():
    text = "Chronic inflammation and oxidative stress worsen insulin resistance."

    names = [d.term for d in find_terms_in(text)]

    assert "chronic inflammation" in names
    assert "inflammation" not in names
    assert "oxidative stress" in names
    assert "insulin resistance" in names


def test_find_terms_in_requires_whole_words():
    assert find_terms_in("The antioxidants were measured") == []

"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from healthref.analysis.pipeline import AnalysisRun
from healthref.analysis.results import HealthAnalysisResult
from healthref.api.main import app, get_analyzer
from healthref.condition import ConditionQuery
from healthref.generation.backends import ConfigurationError


class FakeAnalyzer:

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls = []

    async def run(self, raw_condition, include_budget=False):
        self.calls.append((raw_condition, include_budget))
        if self.error:
            raise self.error
        result = HealthAnalysisResult.empty(raw_condition)
        if include_budget:
            result.budget_options = []
        return AnalysisRun(
            ConditionQuery.parse(raw_condition),
            result,
            {"pubmed": 12, "google_scholar": 3, "web": 2, "analyzed": 9},
        )


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
def client(analyzer):
    app.dependency_overrides[get_analyzer] = lambda: analyzer
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_analyze_returns_analysis_and_stats(client, analyzer):
    response = client.post("/api/analyze", json={"condition": "diabetes", "includeBudget": True})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["analysis"]["condition"] == "diabetes"
    assert body["analysis"]["budgetOptions"] == []
    assert body["searchStats"] == {"pubmed": 12, "googleScholar": 3, "web": 2, "analyzed": 9}
    assert analyzer.calls == [("diabetes", True)]


def test_include_budget_defaults_to_false(client, analyzer):
    client.post("/api/analyze", json={"condition": "diabetes"})

    assert analyzer.calls == [("diabetes", False)]


@pytest.mark.parametrize("payload", [{}, {"condition": ""}, {"condition": "   "}])
def test_blank_condition_is_400(client, analyzer, payload):
    response = client.post("/api/analyze", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "Condition is required"}
    assert analyzer.calls == []


def test_configuration_error_is_500(analyzer):
    failing = FakeAnalyzer(error=ConfigurationError("API key required for groq"))
    app.dependency_overrides[get_analyzer] = lambda: failing
    try:
        response = TestClient(app).post("/api/analyze", json={"condition": "diabetes"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to analyze condition"
    assert "API key required" in response.json()["details"]


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"

"""Pytest configuration and shared fixtures."""

import json
import os

import pytest

# Settings are read once at import; keep real credentials out of the tests
for _key in (
    "GROQ_API_KEY",
    "TOGETHER_API_KEY",
    "OPENROUTER_API_KEY",
    "ANTHROPIC_API_KEY",
    "SEMANTIC_SCHOLAR_API_KEY",
    "AI_BACKEND",
    "AI_MODEL",
):
    os.environ.pop(_key, None)

from healthref.generation.backends import Backend  # noqa: E402
from healthref.sources.documents import Origin, SourceDocument  # noqa: E402


class FakeBackend(Backend):
    """
    In-memory backend scripted per model id.

    Each entry in `outcomes` is either the text to return or an exception
    to raise. Models with no entry return `default`.
    """

    def __init__(self, outcomes: dict | None = None, default: str = "{}", family: str = "groq"):
        self.family = family
        self.outcomes = outcomes or {}
        self.default = default
        self.calls: list[dict] = []

    async def generate(self, messages, model_id, temperature, max_tokens, json_mode):
        self.calls.append({
            "messages": messages,
            "model_id": model_id,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "json_mode": json_mode,
        })
        outcome = self.outcomes.get(model_id, self.default)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def models_called(self) -> list[str]:
        return [call["model_id"] for call in self.calls]


class ScriptedGateway:
    """Stands in for ModelGateway: replies are consumed in call order."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts: list[tuple[str, str]] = []

    async def generate(self, prompt, system_prompt="", backend_hint=None):
        self.prompts.append((prompt, system_prompt))
        if not self.replies:
            raise AssertionError("Unexpected gateway call")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, (dict, list)):
            return json.dumps(reply)
        return reply

    @property
    def call_count(self) -> int:
        return len(self.prompts)


class StatusError(Exception):
    """Error carrying an HTTP status, shaped like the SDK errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@pytest.fixture
def fake_backend_factory():
    return FakeBackend


@pytest.fixture
def scripted_gateway():
    return ScriptedGateway


@pytest.fixture
def running_chunk() -> str:
    return (
        "Participants completed 30 minutes of running 3 times per week "
        "for twelve weeks under supervision."
    )


@pytest.fixture
def diabetes_documents(running_chunk) -> list[SourceDocument]:
    """One PubMed abstract and one web page about diabetes."""
    return [
        SourceDocument(
            origin=Origin.LITERATURE_DB,
            title="Aerobic training and glycemic control in type 2 diabetes",
            abstract_text=f"Methods: {running_chunk} Results: HbA1c fell by 0.6%.",
            url="https://pubmed.ncbi.nlm.nih.gov/111/",
            id="111",
            doi="10.1000/diabetes.111",
            venue="Diabetes Care",
            year="2021",
            label="PubMed",
        ),
        SourceDocument(
            origin=Origin.WEB_SCRAPE,
            title="Diabetes and physical activity",
            abstract_text="Regular physical activity helps manage blood sugar.",
            url="https://www.cdc.gov/diabetes/activity.html",
            id="https://www.cdc.gov/diabetes/activity.html",
            venue="CDC",
            label="Web (CDC)",
        ),
    ]


@pytest.fixture
def running_recommendation(running_chunk) -> dict:
    """A well-grounded activity recommendation as the model would return it."""
    return {
        "type": "activity",
        "name": "Running",
        "category": "beneficial",
        "mechanism": (
            "Increases insulin sensitivity by enhancing glucose uptake in "
            "skeletal muscle during and after aerobic exercise"
        ),
        "summary": "Regular running improved glycemic control in adults with type 2 diabetes.",
        "duration": "30 minutes",
        "frequency": "3 times per week",
        "reps": "Not specified",
        "evidence": [
            {
                "paperTitle": "Aerobic training and glycemic control in type 2 diabetes",
                "paperUrl": "https://example.com/made-up",
                "paperId": "111",
                "quote": "HbA1c fell by 0.6%",
                "sectionForExercises": "Methods",
                "exerciseDetailsChunk": running_chunk,
            }
        ],
    }


@pytest.fixture
def status_error():
    return StatusError

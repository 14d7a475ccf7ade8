"""
Generative model backends.

Every backend exposes the same capability: turn a list of chat messages
into text, optionally asking for a JSON object. Vendors differ in SDK,
endpoint and error shapes, so failures are classified here into the few
kinds the gateway cares about.

Backend families:
- groq, together, openrouter: OpenAI-compatible chat completions,
  called through the openai SDK with a custom base_url
- anthropic: Anthropic Messages API through the anthropic SDK
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from healthref.logging import get_logger

logger = get_logger(__name__, component="backends")


class ConfigurationError(Exception):
    """Backend family unknown or its credential missing. Never retried."""


class ErrorKind(str, Enum):
    RATE_LIMITED = "rate-limited"
    MODEL_UNAVAILABLE = "model-unavailable"
    BILLING_OR_QUOTA = "billing-or-quota"
    UNCLASSIFIED = "unclassified"


RATE_LIMIT_SIGNALS = ("429", "rate limit", "rate_limit", "too many requests", "quota")
MODEL_UNAVAILABLE_SIGNALS = ("not found", "invalid", "decommissioned", "not available", "does not exist")
BILLING_SIGNALS = ("billing", "payment", "subscription")


def _status_code(exc: BaseException) -> int | None:
    for candidate in (
        getattr(exc, "status_code", None),
        getattr(exc, "status", None),
        getattr(getattr(exc, "response", None), "status_code", None),
    ):
        if isinstance(candidate, int):
            return candidate
    return None


def _error_code(exc: BaseException) -> str | None:
    code = getattr(exc, "code", None)
    if code is None:
        body = getattr(exc, "body", None)
        if isinstance(body, dict):
            error = body.get("error", body)
            if isinstance(error, dict):
                code = error.get("code") or error.get("type")
    return str(code).lower() if code is not None else None


def classify_error(exc: BaseException) -> ErrorKind:
    """
    Classify a backend failure into exactly one ErrorKind.

    Checked in order: rate limit, model unavailable, billing.
    """
    message = str(exc).lower()
    status = _status_code(exc)
    code = _error_code(exc)

    if (
        status == 429
        or code in ("429", "rate_limit_exceeded", "rate_limit_error")
        or any(signal in message for signal in RATE_LIMIT_SIGNALS)
    ):
        return ErrorKind.RATE_LIMITED

    if "model" in message and any(signal in message for signal in MODEL_UNAVAILABLE_SIGNALS):
        return ErrorKind.MODEL_UNAVAILABLE

    if status == 402 or any(signal in message for signal in BILLING_SIGNALS):
        return ErrorKind.BILLING_OR_QUOTA

    return ErrorKind.UNCLASSIFIED


class Backend(ABC):
    """Abstract text-generation capability for one backend family."""

    family: str = ""

    @abstractmethod
    async def generate(
        self,
        messages: list[dict[str, str]],
        model_id: str,
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> str:
        """Return the model's text content for the given chat messages."""


class OpenAICompatibleBackend(Backend):
    """
    Chat completions against any OpenAI-compatible endpoint.

    SDK retries are disabled: a rate-limited model should hand over to the
    next candidate straight away instead of sleeping.
    """

    def __init__(
        self,
        family: str,
        api_key: str,
        base_url: str,
        default_headers: dict[str, str] | None = None,
    ):
        from openai import AsyncOpenAI

        self.family = family
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers=default_headers,
            max_retries=0,
        )

    async def generate(
        self,
        messages: list[dict[str, str]],
        model_id: str,
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": model_id,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self.client.chat.completions.create(**kwargs)
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class AnthropicBackend(Backend):
    """Anthropic Messages API. JSON is requested through the prompt only."""

    family = "anthropic"

    def __init__(self, api_key: str):
        from anthropic import AsyncAnthropic

        self.client = AsyncAnthropic(api_key=api_key, max_retries=0)

    async def generate(
        self,
        messages: list[dict[str, str]],
        model_id: str,
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> str:
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        chat = [m for m in messages if m["role"] != "system"]

        kwargs: dict[str, Any] = {
            "model": model_id,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": chat,
        }
        if system:
            kwargs["system"] = system

        response = await self.client.messages.create(**kwargs)
        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )


@dataclass(frozen=True)
class BackendFamily:
    """
    One provider configuration: endpoint, default model and fallbacks.

    fallback_models is ordered by preference and may contain the default.
    """
    name: str
    env_var: str
    default_model: str
    fallback_models: tuple[str, ...]
    base_url: str | None = None

    def candidates(self, primary: str | None = None) -> list[str]:
        """Primary model first, then the fallbacks without the primary."""
        primary = primary or self.default_model
        return [primary, *(m for m in self.fallback_models if m != primary)]


BACKEND_FAMILIES: dict[str, BackendFamily] = {
    "groq": BackendFamily(
        name="groq",
        env_var="GROQ_API_KEY",
        default_model="llama-3.3-70b-versatile",
        fallback_models=(
            "llama-3.3-70b-versatile",
            "openai/gpt-oss-120b",
            "meta-llama/llama-4-scout-17b-16e-instruct",
            "llama-3.1-8b-instant",
        ),
        base_url="https://api.groq.com/openai/v1",
    ),
    "together": BackendFamily(
        name="together",
        env_var="TOGETHER_API_KEY",
        default_model="meta-llama/Llama-3.1-70B-Instruct-Turbo",
        fallback_models=(
            "meta-llama/Llama-3.1-70B-Instruct-Turbo",
            "meta-llama/Llama-3-70B-Instruct",
            "mistralai/Mixtral-8x7B-Instruct-v0.1",
        ),
        base_url="https://api.together.xyz/v1",
    ),
    "openrouter": BackendFamily(
        name="openrouter",
        env_var="OPENROUTER_API_KEY",
        default_model="openai/gpt-oss-120b",
        fallback_models=(
            "openai/gpt-oss-120b",
            "openai/gpt-oss-20b",
            "meta-llama/llama-3.1-70b-instruct",
            "anthropic/claude-3.5-sonnet",
        ),
        base_url="https://openrouter.ai/api/v1",
    ),
    "anthropic": BackendFamily(
        name="anthropic",
        env_var="ANTHROPIC_API_KEY",
        default_model="claude-sonnet-4-20250514",
        fallback_models=(
            "claude-sonnet-4-20250514",
            "claude-3-5-haiku-20241022",
            "claude-3-haiku-20240307",
        ),
    ),
}


def get_family(name: str) -> BackendFamily:
    try:
        return BACKEND_FAMILIES[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported backend family: {name}. "
            f"Choose one of: {', '.join(BACKEND_FAMILIES)}"
        ) from None


def build_backend(family: BackendFamily, api_key: str, app_url: str = "") -> Backend:
    """Create the SDK-backed Backend for a family."""
    if family.name == "anthropic":
        return AnthropicBackend(api_key=api_key)

    headers = None
    if family.name == "openrouter":
        headers = {"HTTP-Referer": app_url, "X-Title": "Health References"}

    logger.debug("building_backend", family=family.name, base_url=family.base_url)
    return OpenAICompatibleBackend(
        family=family.name,
        api_key=api_key,
        base_url=family.base_url,
        default_headers=headers,
    )

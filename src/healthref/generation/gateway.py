"""
Model gateway with ordered fallback across candidate models.

Generative model providers rate-limit each model independently and report
errors in different shapes. For one logical request the gateway walks an
ordered candidate list (primary model, then the family's fallbacks) and
returns the first success.

Attempts are strictly sequential; each candidate is a fallback for the
same request, never a parallel race.

Usage:
    from healthref.generation.gateway import ModelGateway

    gateway = ModelGateway()
    text = await gateway.generate(prompt, system_prompt)
"""

from healthref.config import settings
from healthref.generation.backends import (
    Backend,
    ConfigurationError,
    ErrorKind,
    build_backend,
    classify_error,
    get_family,
)
from healthref.logging import get_logger

logger = get_logger(__name__, component="gateway")


class ExhaustedError(Exception):
    """Every candidate model was tried and none succeeded."""

    def __init__(self, message: str, candidates: list[str]):
        super().__init__(message)
        self.candidates = candidates


class AllBackendsRateLimitedError(ExhaustedError):
    """Every candidate model failed with a rate-limit error."""


class ModelGateway:
    """
    Resilient entry point for all generation calls.

    Configuration:
        family: Backend family to use (defaults to settings.ai_backend)
        primary_model: Model tried first (defaults to settings.ai_model,
                       then the family's default model)
        backends: Pre-built backends keyed by family name. When a family
                  has no entry, one is built from its configured credential.
        fallback_on_unclassified: Whether unrecognised errors move on to
                  the next candidate instead of failing fast

    Example:
        gateway = ModelGateway(family="together")
        text = await gateway.generate("List three foods...", "You are...")
    """

    def __init__(
        self,
        family: str | None = None,
        primary_model: str | None = None,
        backends: dict[str, Backend] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool | None = None,
        fallback_on_unclassified: bool | None = None,
    ):
        self.family = (family or settings.ai_backend).lower()
        self.primary_model = primary_model or settings.ai_model
        self.temperature = temperature if temperature is not None else settings.ai_temperature
        self.max_tokens = max_tokens or settings.ai_max_tokens
        self.json_mode = json_mode if json_mode is not None else settings.ai_json_mode
        self.fallback_on_unclassified = (
            fallback_on_unclassified
            if fallback_on_unclassified is not None
            else settings.ai_fallback_on_unclassified
        )
        self._backends: dict[str, Backend] = dict(backends or {})

    def candidates(self, family: str | None = None) -> list[str]:
        """Ordered model ids tried for a family."""
        family_name = (family or self.family).lower()
        # The primary override only applies to the configured family
        primary = self.primary_model if family_name == self.family else None
        return get_family(family_name).candidates(primary)

    def _backend_for(self, family_name: str) -> Backend:
        backend = self._backends.get(family_name)
        if backend is not None:
            return backend

        family = get_family(family_name)
        api_key = settings.api_key_for(family.name)
        if api_key is None or not api_key.get_secret_value():
            raise ConfigurationError(
                f"API key required for {family.name}. Set {family.env_var} in .env"
            )

        backend = build_backend(family, api_key.get_secret_value(), app_url=settings.app_url)
        self._backends[family_name] = backend
        return backend

    async def generate(
        self,
        prompt: str,
        system_prompt: str = "",
        backend_hint: str | None = None,
    ) -> str:
        """
        Generate text, falling back through candidate models.

        Args:
            prompt: User prompt
            system_prompt: Optional system instructions
            backend_hint: Backend family to use for this call instead of
                          the configured one

        Returns:
            Text content of the first successful candidate

        Raises:
            ConfigurationError: Unknown family or missing credential
            AllBackendsRateLimitedError: Every candidate was rate-limited
            ExhaustedError: Every candidate failed with classified errors
            Exception: The last candidate's own error when it was unclassified
        """
        family_name = (backend_hint or self.family).lower()
        backend = self._backend_for(family_name)
        models = self.candidates(family_name)

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        rate_limited: list[str] = []
        attempted: list[str] = []
        last_error: Exception | None = None

        for index, model in enumerate(models):
            is_last = index == len(models) - 1
            attempted.append(model)
            logger.info("gateway_attempt", family=family_name, model=model, attempt=index + 1)

            try:
                text = await backend.generate(
                    messages,
                    model_id=model,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    json_mode=self.json_mode,
                )
            except Exception as e:
                last_error = e
                kind = classify_error(e)

                if kind is ErrorKind.RATE_LIMITED:
                    rate_limited.append(model)

                if kind is ErrorKind.UNCLASSIFIED and (is_last or not self.fallback_on_unclassified):
                    logger.error("gateway_failed", family=family_name, model=model, error=str(e))
                    raise

                if not is_last:
                    logger.warning(
                        "gateway_fallback",
                        family=family_name,
                        model=model,
                        kind=kind.value,
                        next_model=models[index + 1],
                        error=str(e)[:200],
                    )
                else:
                    logger.warning("gateway_candidate_failed", model=model, kind=kind.value)
                continue

            logger.info("gateway_success", family=family_name, model=model, attempts=index + 1)
            return text

        if rate_limited and len(rate_limited) == len(attempted):
            logger.error("gateway_all_rate_limited", family=family_name, models=rate_limited)
            raise AllBackendsRateLimitedError(
                f"Rate limit reached for all {family_name} models "
                f"({', '.join(rate_limited)}). Please try again later.",
                candidates=rate_limited,
            ) from last_error

        logger.error("gateway_exhausted", family=family_name, models=attempted)
        raise ExhaustedError(
            f"All {family_name} models failed ({', '.join(attempted)})",
            candidates=attempted,
        ) from last_error

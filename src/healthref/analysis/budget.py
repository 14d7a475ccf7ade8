"""
Budget-friendly alternatives from government and public-health sources.

Optional third model pass. It never affects the rest of the analysis:
any failure yields an empty list.
"""

from pydantic import ValidationError

from healthref.analysis.results import BudgetOption
from healthref.generation.gateway import ModelGateway
from healthref.generation.parser import load_json_object
from healthref.generation.prompts import PromptBuilder
from healthref.logging import get_logger

logger = get_logger(__name__, component="budget")


class BudgetOptionGenerator:

    def __init__(self, gateway: ModelGateway, prompts: PromptBuilder | None = None):
        self.gateway = gateway
        self.prompts = prompts or PromptBuilder()

    async def generate(self, condition: str, names: list[str]) -> list[BudgetOption]:
        prompt = self.prompts.budget(condition, names)

        try:
            response = await self.gateway.generate(prompt.user, prompt.system)
            data = load_json_object(response)
        except Exception as e:
            logger.warning("budget_options_failed", error=str(e)[:200])
            return []

        raw_options = data.get("options") or []
        if not isinstance(raw_options, list):
            logger.warning("budget_options_malformed", kind=type(raw_options).__name__)
            return []

        options = []
        for raw in raw_options:
            try:
                options.append(BudgetOption.model_validate(raw))
            except ValidationError:
                logger.debug("budget_option_skipped", raw=str(raw)[:100])

        logger.info("budget_options_generated", count=len(options))
        return options

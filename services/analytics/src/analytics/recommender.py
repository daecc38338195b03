# services/analytics/src/analytics/recommender.py
"""
Recommendation clients.

``AgentRecommendationClient`` asks an OpenAI model (through the Agents SDK)
for a structured recommendation. ``FallbackRecommendationClient`` answers
with the fixed fallback without any network call. Both satisfy
``RecommendationClient`` and never raise from ``get_recommendation``.
"""

import asyncio
import os
from typing import Any, Dict, Optional

from agents import Agent, RunConfig, Runner, set_default_openai_key
from jinja2 import Environment, FileSystemLoader, select_autoescape
from libs.insights_shared.logging import get_logger
from libs.insights_shared.metrics import Metrics

from .config import AnalyticsConfig
from .interfaces import RecommendationClient
from .models import RecommendationResult, UserRecord

logger = get_logger(__name__)

PROMPTS_DIR = os.path.join(os.path.dirname(__file__), "prompts")

# Profile attributes sent to the model
PROMPT_FIELDS = (
    "age",
    "gender",
    "location",
    "income",
    "interests",
    "last_login_days_ago",
    "average_order_value",
    "total_spending",
    "product_category_preference",
)

AGENT_INSTRUCTIONS = (
    "You are a personalization engine for an online store. "
    "Answer only with the requested structured recommendation."
)


class RecommendationError(Exception):
    """The recommendation engine returned something unusable."""


def fallback_recommendation() -> RecommendationResult:
    """The fixed recommendation shown whenever the AI engine is unavailable."""
    return RecommendationResult(
        recommended_products=[
            "Generic Top Seller A",
            "Generic Top Seller B",
            "Gift Card",
        ],
        reasoning=(
            "Unable to connect to AI engine. Showing default best-sellers. "
            "Please check your API configuration."
        ),
        marketing_subject_line="Discover our latest collection!",
        churn_risk="Low",
    )


class FallbackRecommendationClient(RecommendationClient):
    """Offline client: always returns the fallback recommendation."""

    async def get_recommendation(self, user: UserRecord) -> RecommendationResult:
        logger.debug(f"AI engine disabled, using fallback for user {user.id}")
        return fallback_recommendation()


class AgentRecommendationClient(RecommendationClient):
    """
    Live client backed by an Agents SDK agent with a structured output type.

    Each call is bounded by ``timeout`` seconds. Timeouts, SDK errors and
    output that does not validate as a RecommendationResult all resolve to
    the fallback recommendation.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        template_name: str = "recommendation.j2",
        currency_symbol: str = "₹",
    ):
        set_default_openai_key(api_key)
        self.model = model
        self.timeout = timeout
        self.currency_symbol = currency_symbol

        self.env = Environment(
            loader=FileSystemLoader(PROMPTS_DIR),
            autoescape=select_autoescape(),
        )
        self.prompt_tpl = self.env.get_template(template_name)
        logger.info(f"Loaded recommendation prompt template: {template_name}")

        self.agent = Agent(
            name="RecommendationEngine",
            instructions=AGENT_INSTRUCTIONS,
            output_type=RecommendationResult,
        )

    @property
    def live(self) -> bool:
        return True

    def render_prompt(self, user: UserRecord) -> str:
        """Render the prompt for one user; missing values read as 'unknown'."""
        profile: Dict[str, Any] = {}
        for name in PROMPT_FIELDS:
            value = getattr(user, name)
            profile[name] = "unknown" if value is None else value
        return self.prompt_tpl.render(profile=profile, currency=self.currency_symbol)

    @staticmethod
    def _coerce_output(output: Any) -> RecommendationResult:
        if isinstance(output, RecommendationResult):
            return output
        if isinstance(output, str):
            return RecommendationResult.model_validate_json(output)
        if isinstance(output, dict):
            return RecommendationResult.model_validate(output)
        raise RecommendationError(
            f"Unexpected output type from agent: {type(output).__name__}"
        )

    async def _run(self, user: UserRecord) -> RecommendationResult:
        result = await Runner.run(
            starting_agent=self.agent,
            input=self.render_prompt(user),
            run_config=RunConfig(model=self.model),
        )
        if result.final_output is None:
            raise RecommendationError("No output from recommendation agent")
        return self._coerce_output(result.final_output)

    async def get_recommendation(self, user: UserRecord) -> RecommendationResult:
        try:
            return await asyncio.wait_for(self._run(user), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Recommendation for user {user.id} timed out after {self.timeout}s"
            )
            reason = "timeout"
        except Exception as e:
            logger.warning(
                f"Error fetching recommendation for user {user.id}: {e}", exc_info=True
            )
            reason = type(e).__name__

        Metrics.counter("recommendation_fallback_total", {"reason": reason})
        return fallback_recommendation()


def build_recommendation_client(
    cfg: AnalyticsConfig, api_key: Optional[str] = None
) -> RecommendationClient:
    """
    Pick the recommendation client for a configuration.

    Without an API key no live call is ever attempted.
    """
    api_key = api_key or cfg.openai_api_key
    if not api_key:
        logger.warning(
            "API key not detected. AI recommendations will use fallback responses."
        )
        return FallbackRecommendationClient()

    return AgentRecommendationClient(
        api_key=api_key,
        model=cfg.recommendation_model,
        timeout=cfg.recommendation_timeout,
        template_name=cfg.prompt_template,
        currency_symbol=cfg.currency_symbol,
    )

"""Analytics service configuration."""

from typing import Optional

from libs.insights_shared.config import BaseServiceConfig
from pydantic import Field


class AnalyticsConfig(BaseServiceConfig):
    """Analytics service specific configuration."""

    # Service settings
    port: int = Field(8004, description="Port the service listens on")

    # Data settings - loaded at startup as the "Sample Data" dataset
    data_path: str = Field(
        "data/sample_users.csv",
        description="Path to the bundled sample users CSV file",
    )
    max_upload_chars: int = Field(
        5_000_000, ge=1, description="Largest CSV body accepted by POST /dataset"
    )

    # Recommendation settings. Without a key the service never calls out and
    # always answers with the fallback recommendation.
    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    recommendation_model: str = Field("gpt-4o-mini")
    recommendation_timeout: float = Field(
        30.0, gt=0, description="Seconds before a live recommendation call is abandoned"
    )
    prompt_template: str = Field("recommendation.j2")
    currency_symbol: str = Field("₹")

    @property
    def ai_enabled(self) -> bool:
        return bool(self.openai_api_key)


# Singleton instance
config = AnalyticsConfig()

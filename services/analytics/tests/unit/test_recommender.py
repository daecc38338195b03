# services/analytics/tests/unit/test_recommender.py

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from analytics.config import AnalyticsConfig
from analytics.models import RecommendationResult
from analytics.recommender import (
    AgentRecommendationClient,
    FallbackRecommendationClient,
    build_recommendation_client,
    fallback_recommendation,
)
from helpers import make_record, make_result
from pydantic import ValidationError

pytestmark = pytest.mark.unit


@pytest.fixture
def agent_client():
    return AgentRecommendationClient(api_key="sk-test", model="gpt-test", timeout=1.0)


def _run_result(output):
    result = MagicMock()
    result.final_output = output
    return result


def test_fallback_recommendation_content():
    fallback = fallback_recommendation()

    assert fallback.recommended_products == [
        "Generic Top Seller A",
        "Generic Top Seller B",
        "Gift Card",
    ]
    assert fallback.marketing_subject_line == "Discover our latest collection!"
    assert fallback.churn_risk == "Low"
    assert fallback.reasoning.startswith("Unable to connect to AI engine.")


def test_result_serializes_with_camel_case_names():
    data = make_result("#1").model_dump(by_alias=True)
    assert set(data) == {
        "recommendedProducts",
        "reasoning",
        "marketingSubjectLine",
        "churnRisk",
    }


def test_result_rejects_unknown_churn_risk():
    with pytest.raises(ValidationError):
        RecommendationResult.model_validate(
            {
                "recommendedProducts": ["A"],
                "reasoning": "r",
                "marketingSubjectLine": "s",
                "churnRisk": "Extreme",
            }
        )


@pytest.mark.asyncio
async def test_fallback_client_never_calls_engine():
    client = FallbackRecommendationClient()
    with patch("analytics.recommender.Runner") as mock_runner:
        result = await client.get_recommendation(make_record())

    assert result == fallback_recommendation()
    assert client.live is False
    mock_runner.run.assert_not_called()


def test_build_client_without_key_uses_fallback():
    cfg = AnalyticsConfig(openai_api_key=None)
    client = build_recommendation_client(cfg)

    assert isinstance(client, FallbackRecommendationClient)
    assert client.live is False


def test_build_client_with_key_is_live():
    cfg = AnalyticsConfig(
        openai_api_key=None, recommendation_model="gpt-test", recommendation_timeout=5
    )
    client = build_recommendation_client(cfg, api_key="sk-test")

    assert isinstance(client, AgentRecommendationClient)
    assert client.live is True
    assert client.model == "gpt-test"
    assert client.timeout == 5


def test_prompt_includes_profile_and_currency(agent_client):
    user = make_record(age=None, income=38037, interests="Sports")
    prompt = agent_client.render_prompt(user)

    assert "38037" in prompt
    assert "Sports" in prompt
    assert "unknown" in prompt
    assert "₹" in prompt


@pytest.mark.asyncio
async def test_structured_output_is_returned(agent_client):
    expected = make_result("#1")
    with patch("analytics.recommender.Runner") as mock_runner:
        mock_runner.run = AsyncMock(return_value=_run_result(expected))
        result = await agent_client.get_recommendation(make_record())

    assert result == expected
    kwargs = mock_runner.run.call_args.kwargs
    assert kwargs["starting_agent"] is agent_client.agent
    assert kwargs["run_config"].model == "gpt-test"


@pytest.mark.asyncio
async def test_json_text_output_is_validated(agent_client):
    payload = json.dumps(make_result("#1").model_dump(by_alias=True))
    with patch("analytics.recommender.Runner") as mock_runner:
        mock_runner.run = AsyncMock(return_value=_run_result(payload))
        result = await agent_client.get_recommendation(make_record())

    assert result == make_result("#1")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "output",
    [
        "not json at all",
        '{"recommendedProducts": ["A"]}',
        None,
        42,
    ],
)
async def test_unusable_output_falls_back(agent_client, output):
    with patch("analytics.recommender.Runner") as mock_runner:
        mock_runner.run = AsyncMock(return_value=_run_result(output))
        result = await agent_client.get_recommendation(make_record())

    assert result == fallback_recommendation()


@pytest.mark.asyncio
async def test_engine_error_falls_back(agent_client):
    with patch("analytics.recommender.Runner") as mock_runner:
        mock_runner.run = AsyncMock(side_effect=RuntimeError("network down"))
        result = await agent_client.get_recommendation(make_record())

    assert result == fallback_recommendation()


@pytest.mark.asyncio
async def test_slow_engine_times_out_to_fallback():
    client = AgentRecommendationClient(api_key="sk-test", timeout=0.05)

    async def never_finishes(*args, **kwargs):
        await asyncio.sleep(10)

    with patch("analytics.recommender.Runner") as mock_runner:
        mock_runner.run = AsyncMock(side_effect=never_finishes)
        result = await client.get_recommendation(make_record())

    assert result == fallback_recommendation()


@pytest.mark.asyncio
async def test_fallback_is_counted():
    client = AgentRecommendationClient(api_key="sk-test")
    with patch("analytics.recommender.Runner") as mock_runner:
        with patch("analytics.recommender.Metrics") as mock_metrics:
            mock_runner.run = AsyncMock(side_effect=RuntimeError("boom"))
            await client.get_recommendation(make_record())

    mock_metrics.counter.assert_called_once_with(
        "recommendation_fallback_total", {"reason": "RuntimeError"}
    )

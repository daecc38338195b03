# services/analytics/tests/helpers.py
# Test utilities and helpers

import asyncio
from typing import Dict, List

from analytics.interfaces import RecommendationClient
from analytics.models import RecommendationResult, UserRecord

HEADER = (
    ",User_ID,Age,Gender,Location,Income,Interests,Last_Login_Days_Ago,"
    "Purchase_Frequency,Average_Order_Value,Total_Spending,"
    "Product_Category_Preference,Time_Spent_on_Site_Minutes,Pages_Viewed,"
    "Newsletter_Subscription"
)


def make_record(**overrides) -> UserRecord:
    """Build a valid UserRecord, overriding any attribute."""
    data = {
        "id": "#1",
        "age": 30,
        "gender": "Female",
        "location": "Urban",
        "income": 50000,
        "interests": "Sports",
        "last_login_days_ago": 5,
        "purchase_frequency": 3,
        "average_order_value": 100,
        "total_spending": 1000,
        "product_category_preference": "Books",
        "time_spent_minutes": 100,
        "pages_viewed": 10,
        "newsletter_subscription": False,
    }
    data.update(overrides)
    return UserRecord(**data)


def make_result(user_id: str) -> RecommendationResult:
    """A recognizable recommendation for one user."""
    return RecommendationResult(
        recommended_products=[f"Product for {user_id}", "Running Shoes", "Yoga Mat"],
        reasoning=f"Picked for {user_id}",
        marketing_subject_line=f"Hello {user_id}",
        churn_risk="Medium",
    )


class StubRecommendationClient(RecommendationClient):
    """Deterministic client that records which users it was asked about."""

    def __init__(self):
        self.calls: List[str] = []

    async def get_recommendation(self, user: UserRecord) -> RecommendationResult:
        self.calls.append(user.id)
        return make_result(user.id)


class RaisingRecommendationClient(RecommendationClient):
    """Client that breaks the no-raise contract."""

    async def get_recommendation(self, user: UserRecord) -> RecommendationResult:
        raise RuntimeError("backend exploded")


class GatedRecommendationClient(RecommendationClient):
    """Holds each call until the test releases the gate for that user."""

    def __init__(self):
        self.gates: Dict[str, asyncio.Event] = {}
        self.started: Dict[str, asyncio.Event] = {}

    def gate(self, user_id: str) -> asyncio.Event:
        return self.gates.setdefault(user_id, asyncio.Event())

    def started_event(self, user_id: str) -> asyncio.Event:
        return self.started.setdefault(user_id, asyncio.Event())

    async def get_recommendation(self, user: UserRecord) -> RecommendationResult:
        self.started_event(user.id).set()
        await self.gate(user.id).wait()
        return make_result(user.id)

# services/analytics/src/analytics/models.py
"""
Analytics service models: user profiles, dashboard aggregates and
AI recommendations.
"""

import math
from enum import Enum
from typing import List, Literal, Optional

from libs.insights_shared.models import PaginatedResponse
from pydantic import BaseModel, ConfigDict, Field, computed_field


class UserRecord(BaseModel):
    """
    One customer/session profile from the uploaded users CSV.

    Numeric fields other than ``income`` hold ``None`` when the source value
    could not be read as an integer.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="User identifier as written in the file",
        examples=["#1"],
    )
    age: Optional[int] = Field(None, description="Age in years", examples=[56])
    gender: str = Field(..., description="Free-form gender label", examples=["Male"])
    location: str = Field(
        ..., description="Location segment", examples=["Suburban"]
    )
    income: int = Field(..., description="Yearly income", examples=[38037])
    interests: str = Field(..., description="Main interest", examples=["Sports"])
    last_login_days_ago: Optional[int] = Field(
        None, description="Days since the last login", examples=[5]
    )
    purchase_frequency: Optional[int] = Field(
        None, description="Purchases per period", examples=[7]
    )
    average_order_value: Optional[int] = Field(
        None, description="Average order value", examples=[18]
    )
    total_spending: Optional[int] = Field(
        None, description="Lifetime spending", examples=[2546]
    )
    product_category_preference: str = Field(
        ..., description="Favourite product category", examples=["Books"]
    )
    time_spent_minutes: Optional[int] = Field(
        None, description="Minutes spent on site", examples=[584]
    )
    pages_viewed: Optional[int] = Field(
        None, description="Pages viewed", examples=[38]
    )
    newsletter_subscription: bool = Field(
        False, description="Subscribed to the newsletter"
    )

    model_config = ConfigDict(frozen=True)


Dataset = List[UserRecord]


## AGGREGATE MODELS ##


class Kpis(BaseModel):
    """Headline numbers shown above the dashboard charts."""

    total_users: int = Field(..., ge=0)
    avg_total_spending: float = Field(..., description="Mean lifetime spending")
    avg_order_value: float = Field(..., description="Mean average-order-value")
    active_users: int = Field(
        ..., ge=0, description="Users who logged in within the last 14 days"
    )


class LabelCount(BaseModel):
    """Count of users sharing one label (category, gender)."""

    name: str
    value: int = Field(..., ge=0)


class LocationIncome(BaseModel):
    """Mean income of the users at one location."""

    name: str
    avg_income: float = Field(..., description="Full-precision mean income")
    user_count: int = Field(..., ge=0)

    @computed_field
    @property
    def avg_income_display(self) -> int:
        """Mean income rounded half-up for display."""
        return int(math.floor(self.avg_income + 0.5))


class BucketAverage(BaseModel):
    """One age bucket with the mean spending of its users (0 when empty)."""

    label: str
    avg_spending: float
    user_count: int = Field(..., ge=0)


class BucketCount(BaseModel):
    """One recency bucket with its user count."""

    label: str
    user_count: int = Field(..., ge=0)


class IncomeSpendAge(BaseModel):
    """Correlation point for one user, in dataset order."""

    income: int
    total_spending: Optional[int] = None
    age: Optional[int] = None


class AggregateView(BaseModel):
    """Every derived KPI and chart series for one dataset."""

    kpis: Kpis
    categories: List[LabelCount]
    location_income: List[LocationIncome]
    age_spend: List[BucketAverage]
    recency: List[BucketCount]
    genders: List[LabelCount]
    income_spend_age: List[IncomeSpendAge]

    model_config = ConfigDict(frozen=True)


## RECOMMENDATION MODELS ##


ChurnRisk = Literal["Low", "Medium", "High"]


class RecommendationResult(BaseModel):
    """
    Personalized marketing recommendation for one user.

    Serialized with the camelCase field names the recommendation engine
    is asked to produce.
    """

    recommended_products: List[str] = Field(
        ...,
        alias="recommendedProducts",
        description="List of 3-5 specific product names recommended for this user.",
    )
    reasoning: str = Field(
        ...,
        description="Why these products fit the user's demographic and behavior.",
    )
    marketing_subject_line: str = Field(
        ...,
        alias="marketingSubjectLine",
        description="A catchy email subject line targeted at this user.",
    )
    churn_risk: ChurnRisk = Field(
        ...,
        alias="churnRisk",
        description="Risk of the user disengaging, based on login and purchase frequency.",
    )

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class RecommendationStatus(str, Enum):
    """Lifecycle of the displayed recommendation."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"


class RecommendationSlot(BaseModel):
    """The recommendation currently displayed (or being fetched)."""

    status: RecommendationStatus = RecommendationStatus.IDLE
    user_id: Optional[str] = None
    generation: int = 0
    result: Optional[RecommendationResult] = None


## VIEW / API MODELS ##


class ViewState(str, Enum):
    """Dashboard screens a client can switch between."""

    DASHBOARD = "DASHBOARD"
    EXPLORER = "EXPLORER"
    RECOMMENDER = "RECOMMENDER"


class DataSource(str, Enum):
    """Where the loaded dataset came from."""

    SAMPLE = "Sample Data"
    IMPORTED = "Imported CSV"


class DatasetLoadResponse(BaseModel):
    """Outcome of a successful dataset upload."""

    loaded_count: int = Field(..., ge=1)
    skipped_count: int = Field(..., ge=0)
    data_source: DataSource
    message: str


class DashboardResponse(BaseModel):
    """Aggregates plus the data-source banner for the overview screen."""

    record_count: int
    data_source: DataSource
    aggregates: AggregateView


class UsersResponse(PaginatedResponse[UserRecord]):
    """Page of user profiles, optionally filtered by a search term."""

    returned_count: int = Field(..., ge=0)
    search: Optional[str] = None


class ViewRequest(BaseModel):
    view: ViewState


class ViewResponse(BaseModel):
    view: ViewState
    selected_user_id: Optional[str] = None


class RecommendationRequest(BaseModel):
    """Ask for a recommendation; defaults to the selected user."""

    user_id: Optional[str] = None


class RecommendationResponse(BaseModel):
    """Result of one recommendation request."""

    user_id: str
    generation: int
    superseded: bool = Field(
        False,
        description="True when a newer request replaced this one before it finished",
    )
    recommendation: RecommendationResult

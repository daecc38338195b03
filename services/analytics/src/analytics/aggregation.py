"""
Dashboard aggregation.

Every function here is a pure function of a dataset: nothing is cached or
mutated, and a new dataset always gets a freshly computed AggregateView.

Missing numeric values (``None`` on the record, NaN in the frame) are left
out of the sum and the count of the aggregate they would feed. An aggregate
without any usable value is 0.
"""

from typing import List, Optional

import numpy as np
import pandas as pd
from libs.insights_shared.logging import get_logger

from .models import (
    AggregateView,
    BucketAverage,
    BucketCount,
    Dataset,
    IncomeSpendAge,
    Kpis,
    LabelCount,
    LocationIncome,
)

logger = get_logger(__name__)

ACTIVE_DAYS_THRESHOLD = 14

AGE_BUCKETS = ("18-24", "25-34", "35-44", "45-54", "55-64", "65+")
# Upper bounds of the first five buckets; anything else goes to "65+"
AGE_UPPER_BOUNDS = (24, 34, 44, 54, 64)

RECENCY_BUCKET_WIDTH = 5
RECENCY_BUCKETS = (
    "0-4 days",
    "5-9 days",
    "10-14 days",
    "15-19 days",
    "20-24 days",
    "25-29 days",
    "30+ days",
)
LAST_RECENCY_INDEX = len(RECENCY_BUCKETS) - 1

NUMERIC_COLUMNS = [
    "age",
    "income",
    "last_login_days_ago",
    "purchase_frequency",
    "average_order_value",
    "total_spending",
    "time_spent_minutes",
    "pages_viewed",
]
LABEL_COLUMNS = [
    "id",
    "gender",
    "location",
    "interests",
    "product_category_preference",
]


def _mean(values: pd.Series) -> float:
    """Mean of the non-missing values, or 0.0 when there are none."""
    values = values.dropna()
    if values.empty:
        return 0.0
    return float(values.mean())


def to_frame(dataset: Dataset) -> pd.DataFrame:
    """
    Build a DataFrame with one row per record, in dataset order.

    Numeric columns are float64 so that missing values become NaN.
    """
    df = pd.DataFrame([record.model_dump() for record in dataset])
    if df.empty:
        df = pd.DataFrame(columns=NUMERIC_COLUMNS + LABEL_COLUMNS)
    for col in NUMERIC_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce").astype("float64")
    return df


def age_bucket_for(age: Optional[int]) -> str:
    """
    Return the age bucket label for one age.

    Upper bounds are tested in order and the first match wins; an age that
    matches none of them (including a missing age) falls into "65+".

    Scalar form of the rule ``age_spend_buckets`` applies to a whole frame;
    the tests check the two agree.
    """
    if age is not None:
        for label, upper in zip(AGE_BUCKETS, AGE_UPPER_BOUNDS):
            if age <= upper:
                return label
    return AGE_BUCKETS[-1]


def recency_bucket_index(days: Optional[int]) -> int:
    """
    Return the recency histogram index for a last-login value.

    Five-day buckets clamped to [0, 6]; a missing value counts as "30+ days".
    Scalar form of the rule ``recency_histogram`` applies to a whole frame.
    """
    if days is None:
        return LAST_RECENCY_INDEX
    return min(max(days // RECENCY_BUCKET_WIDTH, 0), LAST_RECENCY_INDEX)


def compute_kpis(df: pd.DataFrame) -> Kpis:
    active = df["last_login_days_ago"] <= ACTIVE_DAYS_THRESHOLD
    return Kpis(
        total_users=len(df),
        avg_total_spending=_mean(df["total_spending"]),
        avg_order_value=_mean(df["average_order_value"]),
        active_users=int(active.sum()),
    )


def _label_counts(df: pd.DataFrame, column: str) -> List[LabelCount]:
    # sort=False keeps first-seen order
    counts = df.groupby(column, sort=False).size()
    return [LabelCount(name=str(name), value=int(n)) for name, n in counts.items()]


def category_distribution(df: pd.DataFrame) -> List[LabelCount]:
    return _label_counts(df, "product_category_preference")


def gender_distribution(df: pd.DataFrame) -> List[LabelCount]:
    return _label_counts(df, "gender")


def location_income(df: pd.DataFrame) -> List[LocationIncome]:
    """Mean income per location, first-seen order, full precision."""
    grouped = df.groupby("location", sort=False)["income"].agg(["mean", "size"])
    return [
        LocationIncome(
            name=str(name),
            avg_income=float(row["mean"]),
            user_count=int(row["size"]),
        )
        for name, row in grouped.iterrows()
    ]


def age_spend_buckets(df: pd.DataFrame) -> List[BucketAverage]:
    """Mean total spending per age bucket, always six buckets in fixed order."""
    # NaN compares False everywhere, so missing ages take the default
    conditions = [df["age"] <= upper for upper in AGE_UPPER_BOUNDS]
    labels = np.select(conditions, AGE_BUCKETS[:-1], default=AGE_BUCKETS[-1])

    buckets = []
    for label in AGE_BUCKETS:
        members = df.loc[labels == label, "total_spending"]
        buckets.append(
            BucketAverage(
                label=label, avg_spending=_mean(members), user_count=len(members)
            )
        )
    return buckets


def recency_histogram(df: pd.DataFrame) -> List[BucketCount]:
    """User counts per five-day last-login bucket, seven buckets in fixed order."""
    days = df["last_login_days_ago"]
    index = (
        np.floor(days / RECENCY_BUCKET_WIDTH)
        .fillna(LAST_RECENCY_INDEX)
        .clip(lower=0, upper=LAST_RECENCY_INDEX)
        .astype(int)
    )
    counts = np.bincount(index.to_numpy(), minlength=len(RECENCY_BUCKETS))
    return [
        BucketCount(label=label, user_count=int(n))
        for label, n in zip(RECENCY_BUCKETS, counts)
    ]


def income_spend_age(dataset: Dataset) -> List[IncomeSpendAge]:
    return [
        IncomeSpendAge(income=r.income, total_spending=r.total_spending, age=r.age)
        for r in dataset
    ]


def aggregate(dataset: Dataset) -> AggregateView:
    """
    Compute every dashboard KPI and chart series for a dataset.

    Args:
        dataset: Parsed user records; callers should not pass an empty one,
            since the means are meaningless there (they come out as 0)

    Returns:
        A new AggregateView
    """
    df = to_frame(dataset)
    view = AggregateView(
        kpis=compute_kpis(df),
        categories=category_distribution(df),
        location_income=location_income(df),
        age_spend=age_spend_buckets(df),
        recency=recency_histogram(df),
        genders=gender_distribution(df),
        income_spend_age=income_spend_age(dataset),
    )
    logger.debug(f"Aggregated {len(df)} records")
    return view

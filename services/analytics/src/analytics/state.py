"""
Dashboard application state.

The parser and aggregation functions are stateless; everything a client
sees (loaded dataset, selection, active screen, displayed recommendation)
lives on one ``DashboardState`` owned by the HTTP layer.

Recommendation requests carry a generation number. Loading a dataset,
selecting a user or starting another request bumps the generation, and a
request whose generation is no longer current has its result discarded.
"""

import asyncio
from pathlib import Path
from typing import List, Optional, Tuple

from libs.insights_shared.logging import get_logger
from libs.insights_shared.metrics import Metrics

from .aggregation import aggregate
from .interfaces import RecommendationClient
from .models import (
    AggregateView,
    Dataset,
    DataSource,
    RecommendationResult,
    RecommendationSlot,
    RecommendationStatus,
    UserRecord,
    ViewState,
)
from .parser import EmptyResultError, ParseReport, parse_rows
from .recommender import fallback_recommendation

logger = get_logger(__name__)


class DashboardState:
    """Current dataset, its aggregates, and the client's UI state."""

    def __init__(self):
        self.dataset: Dataset = []
        self.aggregates: Optional[AggregateView] = None
        self.source: DataSource = DataSource.SAMPLE
        self.selected_user_id: Optional[str] = None
        self.active_view: ViewState = ViewState.DASHBOARD
        self.recommendation = RecommendationSlot()
        self._generation = 0

    # -- dataset -----------------------------------------------------------

    @property
    def has_data(self) -> bool:
        return bool(self.dataset)

    def replace_dataset(
        self,
        dataset: Dataset,
        source: DataSource,
        aggregates: Optional[AggregateView] = None,
    ) -> None:
        """
        Swap in a new dataset together with its aggregates.

        Args:
            dataset: Non-empty list of records
            source: Where the records came from
            aggregates: Precomputed ``aggregate(dataset)``; computed here when omitted
        """
        if not dataset:
            raise EmptyResultError()
        dataset = list(dataset)
        if aggregates is None:
            aggregates = aggregate(dataset)
        self.dataset = dataset
        self.aggregates = aggregates
        self.source = source
        self.selected_user_id = None
        self.active_view = ViewState.DASHBOARD
        self._invalidate_recommendation()
        Metrics.gauge("dataset_records", len(self.dataset), {"source": source.value})
        logger.info(f"Loaded {len(self.dataset)} user profiles ({source.value})")

    def load_text(
        self, raw_text: str, source: DataSource = DataSource.IMPORTED
    ) -> ParseReport:
        """
        Parse CSV text and make it the current dataset.

        Raises:
            EmptyResultError: If nothing parsed; the previous dataset is kept
        """
        report = parse_rows(raw_text)
        if not report.records:
            logger.warning(
                f"Upload produced no valid records ({len(report.skipped)} rows "
                f"skipped); keeping {len(self.dataset)} existing records"
            )
            raise EmptyResultError(skipped_count=len(report.skipped))
        self.replace_dataset(report.records, source)
        return report

    def load_file(
        self, path: Path, source: DataSource = DataSource.SAMPLE
    ) -> ParseReport:
        """Read a CSV file from disk and load it."""
        raw_text = Path(path).read_text(encoding="utf-8")
        return self.load_text(raw_text, source)

    # -- selection / navigation ---------------------------------------------

    def find_user(self, user_id: str) -> Optional[UserRecord]:
        """First record with the given id (ids may repeat)."""
        return next((u for u in self.dataset if u.id == user_id), None)

    def selected_user(self) -> Optional[UserRecord]:
        """The selected user, else the first user, else None."""
        if self.selected_user_id is not None:
            user = self.find_user(self.selected_user_id)
            if user is not None:
                return user
        return self.dataset[0] if self.dataset else None

    def select_user(self, user_id: str) -> UserRecord:
        """
        Select a user and switch to the recommendation screen.

        Raises:
            KeyError: If no record has this id
        """
        user = self.find_user(user_id)
        if user is None:
            raise KeyError(user_id)
        self.selected_user_id = user_id
        self.active_view = ViewState.RECOMMENDER
        self._invalidate_recommendation()
        return user

    def set_view(self, view: ViewState) -> None:
        self.active_view = view

    def search_users(self, term: str = "") -> List[UserRecord]:
        """Case-insensitive match on id, location or interests."""
        needle = term.strip().lower()
        if not needle:
            return list(self.dataset)
        return [
            u
            for u in self.dataset
            if needle in u.id.lower()
            or needle in u.location.lower()
            or needle in u.interests.lower()
        ]

    # -- recommendations ----------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    def _invalidate_recommendation(self) -> None:
        self._generation += 1
        self.recommendation = RecommendationSlot(generation=self._generation)

    async def request_recommendation(
        self, client: RecommendationClient, user_id: Optional[str] = None
    ) -> Tuple[UserRecord, int, RecommendationResult, bool]:
        """
        Fetch a recommendation and display it unless a newer request won.

        A client that raises is answered with the fallback recommendation.
        If the request is cancelled while it is still current, the slot goes
        back to idle.

        Args:
            client: Recommendation backend
            user_id: User to analyze; defaults to the selected user

        Returns:
            (user, generation, result, superseded)

        Raises:
            KeyError: If user_id is given and unknown
            LookupError: If no user is available at all
        """
        if user_id is not None:
            user = self.find_user(user_id)
            if user is None:
                raise KeyError(user_id)
        else:
            user = self.selected_user()
            if user is None:
                raise LookupError("No user profiles loaded")

        self._generation += 1
        token = self._generation
        self.recommendation = RecommendationSlot(
            status=RecommendationStatus.LOADING, user_id=user.id, generation=token
        )

        try:
            result = await client.get_recommendation(user)
        except asyncio.CancelledError:
            # Never leave the slot loading for a request nobody will finish
            if token == self._generation:
                self.recommendation = RecommendationSlot(generation=token)
            raise
        except Exception as e:
            logger.warning(
                f"Recommendation client failed for user {user.id}: {e}", exc_info=True
            )
            Metrics.counter(
                "recommendation_fallback_total", {"reason": type(e).__name__}
            )
            result = fallback_recommendation()

        if token != self._generation:
            logger.info(
                f"Discarding recommendation for user {user.id}: "
                f"request {token} superseded by {self._generation}"
            )
            return user, token, result, True

        self.recommendation = RecommendationSlot(
            status=RecommendationStatus.LOADED,
            user_id=user.id,
            generation=token,
            result=result,
        )
        return user, token, result, False

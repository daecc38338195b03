# analytics/interfaces.py
"""
Provider-agnostic interface between the dashboard and whatever produces
marketing recommendations.
"""

from abc import ABC, abstractmethod

from .models import RecommendationResult, UserRecord


class RecommendationClient(ABC):
    """
    Abstract interface for recommendation backends.
    Dashboard state depends only on this interface, not on a provider.
    """

    @abstractmethod
    async def get_recommendation(self, user: UserRecord) -> RecommendationResult:
        """
        Produce a recommendation for one user.

        Implementations must not raise: any failure resolves to the
        fallback recommendation instead.

        Args:
            user: The user profile to analyze

        Returns:
            RecommendationResult for the user
        """
        pass

    @property
    def live(self) -> bool:
        """Whether calls reach a real model."""
        return False

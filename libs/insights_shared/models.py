# libs/insights_shared/models.py
"""
Shared Pydantic models used across all services.
"""

from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

# Generic type for paginated responses
T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Generic paginated response template for consistent pagination across services.

    The type parameter T represents the model of items being returned.

    When browsing a large dataset:
    - Use offset to get subsequent pages: offset=0, 100, 200, etc.
    - Check total_count to know when you've reached the end
    - Example: "Show me users 500-600" → use offset=500, limit=100
    """

    items: List[T] = Field(..., description="List of items in this page")
    total_count: int = Field(..., description="Total number of items across all pages")
    limit: int = Field(..., description="Maximum number of items per page")
    offset: int = Field(..., description="Starting index of this page")


class ErrorResponse(BaseModel):
    """
    Standard error response model used across all services.

    Provides a consistent error format for all API endpoints,
    with a machine-readable error code and human-readable detail message.

    Example:
        {
            "error": "Not Found",
            "detail": "User with ID '#42' not found"
        }
    """

    error: str = Field(..., description="Error code or type")
    detail: Optional[str] = Field(None, description="Human-readable error details")


class HealthStatus(str, Enum):
    """
    Health status enum for health check responses.

    Used in /health endpoints to indicate the operational status of the service.
    """

    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


class HealthResponse(BaseModel):
    """
    Standard health check response model for /health endpoints.

    Example:
        {
            "status": "ok",
            "version": "0.3.0",
            "details": {
                "record_count": 20,
                "data_source": "Sample Data",
                "ai_enabled": false
            }
        }
    """

    status: HealthStatus = Field(..., description="Overall health status")
    version: str = Field(..., description="Service version identifier")
    details: Dict[str, Any] = Field(
        default_factory=dict, description="Service-specific health details"
    )

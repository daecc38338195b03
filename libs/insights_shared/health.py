# libs/insights_shared/health.py
"""
Health check utilities for all services.
"""

from typing import Any, Dict, Optional

from .models import HealthResponse, HealthStatus


def derive_health_status(details: Dict[str, Any]) -> HealthStatus:
    """
    Pick a health status from service details.

    An ``error`` entry means ERROR; a loaded-but-empty dataset
    (``record_count == 0``) means WARNING; anything else is OK.
    """
    if details.get("error"):
        return HealthStatus.ERROR
    if details.get("record_count") == 0:
        return HealthStatus.WARNING
    return HealthStatus.OK


def format_health_response(
    details: Dict[str, Any], version: str, status: Optional[HealthStatus] = None
) -> HealthResponse:
    """
    Create a standardized health response.

    Args:
        details: Service-specific health details
        version: Service version
        status: Explicit health status; derived from details when omitted

    Returns:
        Formatted health response
    """
    if status is None:
        status = derive_health_status(details)
    return HealthResponse(status=status, details=details, version=version)

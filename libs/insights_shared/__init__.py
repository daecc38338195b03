"""
Shared utilities for the shopper-insights project.

This package provides configuration, logging, error helpers, middleware
and models used by the analytics service.
"""

# Configuration
from .config import BaseServiceConfig

# Error helpers
from .errors import not_found_error, service_error, validation_error

# Guardrails
from .guardrails import GuardrailViolation, validate_input_length, validate_search_term

# Health check
from .health import derive_health_status, format_health_response

# Logging
from .logging import configure_logging, get_logger

# Metrics
from .metrics import Metrics

# Middleware
from .middleware import CorrelationIdMiddleware, MetricsMiddleware

# Models
from .models import ErrorResponse, HealthResponse, HealthStatus, PaginatedResponse

__all__ = [
    # Configuration
    "BaseServiceConfig",
    # Errors
    "validation_error",
    "not_found_error",
    "service_error",
    # Guardrails
    "GuardrailViolation",
    "validate_input_length",
    "validate_search_term",
    # Health
    "derive_health_status",
    "format_health_response",
    # Logging
    "configure_logging",
    "get_logger",
    # Middleware
    "CorrelationIdMiddleware",
    "MetricsMiddleware",
    # Metrics
    "Metrics",
    # Models
    "ErrorResponse",
    "HealthResponse",
    "HealthStatus",
    "PaginatedResponse",
]

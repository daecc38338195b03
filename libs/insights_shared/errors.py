"""
Standardized error responses and HTTP exception helpers.

Every helper returns (never raises) an ``HTTPException`` whose ``detail`` is an
``ErrorResponse`` dump, so endpoints can ``raise validation_error(...)``.
"""

from typing import Any, Optional, Union

from fastapi import HTTPException

from .models import ErrorResponse


def _http_error(status_code: int, error: str, detail: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=ErrorResponse(error=error, detail=detail).model_dump(),
    )


def validation_error(
    detail: str = "Invalid input parameters",
    field: Optional[str] = None,
    value: Optional[Any] = None,
) -> HTTPException:
    """
    Create a 422 Unprocessable Entity exception.

    Args:
        detail: Error message explaining the validation error
        field: Optional field name that failed validation
        value: Optional invalid value provided

    Returns:
        HTTPException with 422 status code and structured error content
    """
    error_msg = detail
    if field:
        error_msg = f"{detail} for field '{field}'"
        if value is not None:
            error_msg += f" with value '{value}'"
    return _http_error(422, "Validation Error", error_msg)


def not_found_error(
    entity_type: str, entity_id: Union[str, int], detail: Optional[str] = None
) -> HTTPException:
    """
    Create a 404 Not Found exception.

    Args:
        entity_type: Type of entity not found (e.g., "user", "dataset")
        entity_id: Identifier of the entity not found
        detail: Optional additional details about the error

    Returns:
        HTTPException with 404 status code and structured error content
    """
    error_msg = f"{entity_type.title()} with ID '{entity_id}' not found"
    if detail:
        error_msg += f". {detail}"
    return _http_error(404, "Not Found", error_msg)


def service_error(
    message: str = "Internal service error", status_code: int = 500
) -> HTTPException:
    """
    Create a service error exception (500 unless told otherwise).

    Args:
        message: Error message explaining the service error
        status_code: HTTP status code to use

    Returns:
        HTTPException with provided status code and structured error content
    """
    return _http_error(status_code, "Service Error", message)

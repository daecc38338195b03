# services/analytics/src/analytics/app.py
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import Body, Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_mcp import FastApiMCP
from libs.insights_shared.errors import not_found_error, service_error, validation_error
from libs.insights_shared.guardrails import (
    GuardrailViolation,
    validate_input_length,
    validate_search_term,
)
from libs.insights_shared.health import format_health_response
from libs.insights_shared.logging import configure_logging, get_logger
from libs.insights_shared.middleware import CorrelationIdMiddleware, MetricsMiddleware
from libs.insights_shared.models import HealthResponse

from .aggregation import aggregate
from .config import config
from .interfaces import RecommendationClient
from .models import (
    DashboardResponse,
    DatasetLoadResponse,
    DataSource,
    RecommendationRequest,
    RecommendationResponse,
    RecommendationSlot,
    UserRecord,
    UsersResponse,
    ViewRequest,
    ViewResponse,
)
from .parser import EmptyResultError, parse_rows
from .recommender import build_recommendation_client
from .state import DashboardState

configure_logging(config.log_level, "analytics", "libs.insights_shared")
logger = get_logger(__name__)

# A UTF-8 character takes at most four bytes
UTF8_MAX_BYTES = 4


@asynccontextmanager
async def lifespan(app: FastAPI):
    # STARTUP
    state = DashboardState()
    sample_path = Path(config.data_path)
    try:
        state.load_file(sample_path, DataSource.SAMPLE)
    except FileNotFoundError:
        logger.warning(f"Sample data not found at {sample_path}; starting empty")
    except EmptyResultError:
        logger.warning(f"Sample data at {sample_path} has no valid rows")

    app.state.dashboard = state
    app.state.recommendation_client = build_recommendation_client(config)

    yield  # application is running


app = FastAPI(
    title="Shopper Insights Analytics Service",
    description="User dataset dashboards and AI marketing recommendations",
    version="0.3.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware, exclude_paths=["/health", "/mcp"])
app.add_middleware(CorrelationIdMiddleware)


def get_dashboard_state(request: Request) -> DashboardState:
    """
    Dependency provider for the dashboard state.
    In tests, this can be overridden to provide a prepared state.
    """
    state = getattr(request.app.state, "dashboard", None)
    if state is None:
        raise service_error("Dashboard state not initialized", status_code=503)
    return state


def get_recommendation_client(request: Request) -> RecommendationClient:
    """
    Dependency provider for the recommendation backend.
    In tests, this can be overridden with a deterministic stub.
    """
    client = getattr(request.app.state, "recommendation_client", None)
    if client is None:
        raise service_error("Recommendation client not initialized", status_code=503)
    return client


async def _read_body_limited(request: Request, max_bytes: int) -> bytes:
    """Read the request body, stopping as soon as it passes max_bytes."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise GuardrailViolation(
            f"Upload too large: {declared} bytes (max: {max_bytes})",
            violation_type="length",
        )

    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > max_bytes:
            raise GuardrailViolation(
                f"Upload too large: more than {max_bytes} bytes",
                violation_type="length",
            )
        chunks.append(chunk)
    return b"".join(chunks)


def _require_data(state: DashboardState) -> None:
    if not state.has_data:
        raise not_found_error("dataset", "current", "Upload a CSV file first")


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["analytics"],
    operation_id="analytics_health",
)
async def health(
    state: DashboardState = Depends(get_dashboard_state),
    client: RecommendationClient = Depends(get_recommendation_client),
):
    """
    Service health check endpoint.
    Returns record count, data source and whether live AI is enabled.
    """
    return format_health_response(
        details={
            "record_count": len(state.dataset),
            "data_source": state.source.value,
            "ai_enabled": client.live,
        },
        version=app.version,
    )


@app.post(
    "/dataset",
    response_model=DatasetLoadResponse,
    tags=["dataset"],
    operation_id="upload_dataset",
)
async def upload_dataset(
    request: Request,
    state: DashboardState = Depends(get_dashboard_state),
):
    """
    Replace the current dataset with an uploaded users CSV.

    The request body is the raw file text. The first line is treated as a
    header. When no row parses, the previous dataset stays loaded and a 422
    is returned.
    """
    body = await _read_body_limited(request, config.max_upload_chars * UTF8_MAX_BYTES)
    try:
        raw_text = body.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise validation_error("Upload must be UTF-8 encoded text")
    validate_input_length(raw_text, config.max_upload_chars)

    report = await run_in_threadpool(parse_rows, raw_text)
    if not report.records:
        error = EmptyResultError(skipped_count=len(report.skipped))
        logger.warning(f"Rejected upload: {error} ({error.skipped_count} rows skipped)")
        raise validation_error(str(error))

    aggregates = await run_in_threadpool(aggregate, report.records)
    state.replace_dataset(report.records, DataSource.IMPORTED, aggregates)

    return DatasetLoadResponse(
        loaded_count=len(report.records),
        skipped_count=len(report.skipped),
        data_source=state.source,
        message=f"Successfully loaded {len(report.records)} user profiles.",
    )


@app.get(
    "/dashboard",
    response_model=DashboardResponse,
    tags=["analytics"],
    operation_id="get_dashboard",
)
async def get_dashboard(state: DashboardState = Depends(get_dashboard_state)):
    """
    KPIs and chart series for the loaded dataset.

    Includes category and gender counts, mean income per location,
    mean spending per age bucket, the last-login histogram and one
    (income, spending, age) point per user.
    """
    _require_data(state)
    return DashboardResponse(
        record_count=len(state.dataset),
        data_source=state.source,
        aggregates=state.aggregates,
    )


@app.get(
    "/users",
    response_model=UsersResponse,
    tags=["analytics"],
    operation_id="list_users",
)
async def list_users(
    search: str = "",
    limit: int = 50,
    offset: int = 0,
    state: DashboardState = Depends(get_dashboard_state),
):
    """
    Browse user profiles page by page.

    Args:
        search: Case-insensitive text matched against id, location and interests
        limit: Maximum number of users per page (capped at 1000)
        offset: Number of matching users to skip
    """
    term = validate_search_term(search)
    limit = max(1, min(limit, 1000))
    offset = max(0, offset)

    matches = state.search_users(term)
    page = matches[offset : offset + limit]
    return UsersResponse(
        items=page,
        total_count=len(matches),
        returned_count=len(page),
        limit=limit,
        offset=offset,
        search=term or None,
    )


@app.get(
    "/users/selected",
    response_model=UserRecord,
    tags=["analytics"],
    operation_id="get_selected_user",
)
async def get_selected_user(state: DashboardState = Depends(get_dashboard_state)):
    """The selected user, or the first user when nothing is selected."""
    user = state.selected_user()
    if user is None:
        raise not_found_error("dataset", "current", "Upload a CSV file first")
    return user


@app.get(
    "/users/{user_id}",
    response_model=UserRecord,
    tags=["analytics"],
    operation_id="get_user",
)
async def get_user(user_id: str, state: DashboardState = Depends(get_dashboard_state)):
    """Profile of one user (the first one if the id repeats)."""
    user = state.find_user(user_id)
    if user is None:
        raise not_found_error("user", user_id)
    return user


@app.post(
    "/users/{user_id}/select",
    response_model=ViewResponse,
    tags=["navigation"],
    operation_id="select_user",
)
async def select_user(user_id: str, state: DashboardState = Depends(get_dashboard_state)):
    """Select a user and switch to the recommendation screen."""
    try:
        state.select_user(user_id)
    except KeyError:
        raise not_found_error("user", user_id)
    return ViewResponse(view=state.active_view, selected_user_id=state.selected_user_id)


@app.get(
    "/view",
    response_model=ViewResponse,
    tags=["navigation"],
    operation_id="get_view",
)
async def get_view(state: DashboardState = Depends(get_dashboard_state)):
    return ViewResponse(view=state.active_view, selected_user_id=state.selected_user_id)


@app.put(
    "/view",
    response_model=ViewResponse,
    tags=["navigation"],
    operation_id="set_view",
)
async def set_view(
    payload: ViewRequest, state: DashboardState = Depends(get_dashboard_state)
):
    state.set_view(payload.view)
    return ViewResponse(view=state.active_view, selected_user_id=state.selected_user_id)


@app.post(
    "/recommendations",
    response_model=RecommendationResponse,
    tags=["analytics"],
    operation_id="request_recommendation",
)
async def request_recommendation(
    payload: Optional[RecommendationRequest] = Body(None),
    state: DashboardState = Depends(get_dashboard_state),
    client: RecommendationClient = Depends(get_recommendation_client),
):
    """
    Generate product recommendations, a subject line and a churn-risk
    estimate for one user (the selected user by default).

    If another request starts before this one finishes, this result is
    returned with superseded=true and is not displayed.
    """
    user_id = payload.user_id if payload else None
    try:
        user, generation, result, superseded = await state.request_recommendation(
            client, user_id
        )
    except KeyError:
        raise not_found_error("user", user_id)
    except LookupError:
        raise not_found_error("dataset", "current", "Upload a CSV file first")

    return RecommendationResponse(
        user_id=user.id,
        generation=generation,
        superseded=superseded,
        recommendation=result,
    )


@app.get(
    "/recommendations/current",
    response_model=RecommendationSlot,
    tags=["analytics"],
    operation_id="get_current_recommendation",
)
async def get_current_recommendation(
    state: DashboardState = Depends(get_dashboard_state),
):
    """The recommendation currently displayed, with its loading status."""
    return state.recommendation


@app.exception_handler(GuardrailViolation)
async def guardrail_exception_handler(request: Request, exc: GuardrailViolation):
    """Handle guardrail violations with proper error responses."""
    return JSONResponse(
        status_code=400,
        content={"error": "GuardrailViolation", "detail": str(exc)},
    )


# Mount MCP tools
mcp = FastApiMCP(
    app,
    name="analytics-service",
    description="Shopper insights dashboard and recommendations",
    describe_full_response_schema=True,
    include_operations=[
        "analytics_health",
        "get_dashboard",
        "list_users",
        "get_selected_user",
        "get_user",
        "request_recommendation",
        "get_current_recommendation",
    ],
)
mcp.mount_http()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.port)

"""
Product API: Health Check Route
==================================

What:  GET / returns a fixed status payload with the current server time.
How:   No dependencies and no readiness gate: the process answers even while
       the database connection is still being established.
Who:   Load balancers, uptime monitors, `curl` during deployment.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from product_api.schemas.product import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    # Settings bound by create_app, not the module singleton
    return HealthResponse(
        status="ok",
        service=request.app.state.settings.service_name,
        time=datetime.now(timezone.utc),
    )

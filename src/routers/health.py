"""Health endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.core.config import get_settings
from src.models.reports import HealthReport
from src.services.health import evaluate_health
from src.services.probe import EnvironmentProbe, build_runtime_context, get_probe

router = APIRouter(tags=["health"])


# PUBLIC_INTERFACE
@router.get(
    "/health",
    summary="Health Check",
    description="Container health verdict: 200 when every check passes, 503 otherwise.",
    operation_id="health_check",
    response_model=HealthReport,
    responses={503: {"model": HealthReport, "description": "At least one check failed"}},
)
def health_check(probe: EnvironmentProbe = Depends(get_probe)):
    """Return the health report with a 200/503 status code."""
    context = build_runtime_context(probe, get_settings())
    report = evaluate_health(probe, context)
    return JSONResponse(status_code=report.http_status, content=report.model_dump())

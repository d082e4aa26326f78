from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_health_service
from app.schemas.health import HealthCheckResponse
from app.services.health_service import HealthService

router = APIRouter(tags=["Health"])


@router.get(
    "/health-check",
    response_model=HealthCheckResponse,
    responses={500: {"model": HealthCheckResponse}},
)
def health_check(
    service: Annotated[HealthService, Depends(get_health_service)],
) -> JSONResponse:
    """Health check endpoint.

    Pings Redis and the database. Used by load balancers and monitoring
    systems; returns 500 with the failing dependency in ``message`` when a
    probe fails.
    """

    status = service.check()
    body = HealthCheckResponse(
        message=status.message,
        service_name=status.service_name,
        instance_id=status.instance_id,
    )
    return JSONResponse(status_code=200 if status.healthy else 500, content=body.model_dump())

from fastapi import APIRouter
from fastapi.responses import Response

from backend.cvtailor.models.contracts import HealthResponse
from backend.cvtailor.utils.prometheus_metrics import get_content_type, get_metrics

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse()


@router.get("/metrics")
def metrics():
    return Response(content=get_metrics(), media_type=get_content_type())

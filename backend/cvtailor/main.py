import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette import status

from backend.cvtailor.api.routes.health import router as health_router
from backend.cvtailor.api.routes.llm import router as llm_router
from backend.cvtailor.api.routes.sessions import router as sessions_router
from backend.cvtailor.config import settings
from backend.cvtailor.core.errors import (
    InputValidationError,
    PipelineBusy,
    SchemaViolation,
    TailorError,
)
from backend.cvtailor.models.contracts import ErrorResponse

logger = logging.getLogger(__name__)


def _status_for(exc: TailorError) -> int:
    if isinstance(exc, InputValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, PipelineBusy):
        return status.HTTP_409_CONFLICT
    return status.HTTP_502_BAD_GATEWAY


async def tailor_error_handler(request: Request, exc: TailorError) -> JSONResponse:
    body = ErrorResponse(
        error=exc.kind,
        detail="The AI service returned an unusable response. Please try again."
        if isinstance(exc, SchemaViolation) else exc.message,
        field_errors=getattr(exc, "field_errors", {}),
    )
    logger.info("%s %s -> %s", request.method, request.url.path, exc.kind)
    return JSONResponse(status_code=_status_for(exc), content=body.model_dump())


def create_app() -> FastAPI:
    app = FastAPI(title="CV Tailor API", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TailorError, tailor_error_handler)

    app.include_router(health_router)
    app.include_router(sessions_router)
    app.include_router(llm_router)
    return app

app = create_app()

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agencyflow import __version__
from agencyflow.core.config import get_settings
from agencyflow.core.errors import (
    ForbiddenError,
    ImmutableRecordError,
    InsufficientCreditsError,
    InvalidStateError,
    LedgerRecordError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
    WorkflowError,
)
from agencyflow.core.logger import setup_logger
from agencyflow.api.middleware.request_context import RequestContextMiddleware
from agencyflow.api.routers import (
    agency,
    campaigns,
    clients,
    client_portal,
    creators,
    deliverables,
    health,
    internal,
    payments,
    projects,
)
from agencyflow.api.schemas.common import ErrorResponse

settings = get_settings()
setup_logger()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Campaign, deliverable approval and creator workflow for marketing agencies",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request context - request id, client IP and user agent for activity entries
app.add_middleware(RequestContextMiddleware)

# Domain error -> HTTP status
ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidStateError: status.HTTP_409_CONFLICT,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InsufficientCreditsError: status.HTTP_402_PAYMENT_REQUIRED,
    UnauthenticatedError: status.HTTP_401_UNAUTHORIZED,
    ImmutableRecordError: status.HTTP_409_CONFLICT,
    LedgerRecordError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_status(exc: WorkflowError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    status_code = error_status(exc)
    if status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    body = ErrorResponse(
        error=type(exc).__name__,
        detail=exc.message,
        code=exc.code,
        **exc.extensions(),
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


# Include routers
app.include_router(health.router)
app.include_router(clients.router, prefix="/api")
app.include_router(projects.router, prefix="/api")
app.include_router(campaigns.router, prefix="/api")
app.include_router(deliverables.router, prefix="/api")
app.include_router(creators.router, prefix="/api")
app.include_router(payments.router, prefix="/api")
app.include_router(agency.router, prefix="/api")
app.include_router(client_portal.router, prefix="/api")
app.include_router(internal.router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else None,
    }

"""
ASGI entrypoint: `uvicorn resource_registry.api.main:app`.

On startup the Resources table is reconciled on the master database (and the
tenants when enabled) and the seed catalog is applied; see
resource_registry.services.initializer.
"""
from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from resource_registry import __version__
from resource_registry.api.errors import register_error_handlers
from resource_registry.api.routes.resources import router as resources_router
from resource_registry.core.logging import configure_logging, correlation_id_var
from resource_registry.core.settings import AppSettings, get_app_settings
from resource_registry.db.session import dispose_engines
from resource_registry.schemas.common import MessageResponse
from resource_registry.services.initializer import run_resource_initialization

configure_logging()
logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

health_router = APIRouter(tags=["Health"])


# PUBLIC_INTERFACE
@health_router.get("/health", response_model=MessageResponse, summary="Health Check")
def health_check() -> MessageResponse:
    """Liveness probe; does not touch the database."""
    return MessageResponse(message="Healthy")


async def _with_correlation_id(request: Request, call_next):
    cid = request.headers.get(CORRELATION_HEADER) or str(uuid4())
    token = correlation_id_var.set(cid)
    request.state.correlation_id = cid
    logger.info("%s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)
    response.headers[CORRELATION_HEADER] = cid
    return response


# PUBLIC_INTERFACE
def create_app(settings: AppSettings) -> FastAPI:
    """Assemble the FastAPI application: middleware, error envelope, routers, lifecycle hooks."""
    application = FastAPI(
        title=settings.APP_NAME,
        version=__version__,
        openapi_tags=[
            {"name": "Health", "description": "Liveness probe."},
            {"name": "Resources", "description": "Navigation resources: CRUD, search and reordering."},
        ],
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.middleware("http")(_with_correlation_id)
    register_error_handlers(application)

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(health_router)
    api_v1.include_router(resources_router)
    application.include_router(api_v1)

    @application.on_event("startup")
    async def initialize_resources() -> None:
        summary = await run_resource_initialization(settings)
        failed = [o.target for o in summary.outcomes if not o.ok]
        if failed:
            logger.warning("Resource initialization finished with failed targets: %s", ", ".join(failed))

    @application.on_event("shutdown")
    async def release_engines() -> None:
        await dispose_engines()

    return application


app = create_app(get_app_settings())

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from access_codes.bootstrap import build_code_service
from access_codes.domain.errors import (
    DomainError,
    GenerationExhausted,
    MembershipFault,
    StoreFault,
)
from access_codes.infrastructure.db.pool import close_pool
from access_codes.infrastructure.redis_cache.pool import close_redis
from access_codes.logging import setup_logging
from access_codes.presentation.api import api
from access_codes.presentation.routes.health import router as health_router
from access_codes.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    service = build_code_service(settings)
    service.initialize()
    app.state.code_service = service  # expose to dependencies

    try:
        yield
    finally:
        # shutdown
        service.close()
        close_redis()
        close_pool()


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    unavailable = isinstance(exc, (StoreFault, GenerationExhausted, MembershipFault))
    status_code = 503 if unavailable else 500
    logger.error(
        "request failed",
        extra={
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error": str(exc),
        },
    )
    return JSONResponse(status_code=status_code, content={"detail": type(exc).__name__})


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title="Access Codes API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.add_exception_handler(DomainError, domain_error_handler)
    app.include_router(health_router)
    app.include_router(api)
    return app


app = create_app()

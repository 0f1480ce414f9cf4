"""
Cobbler Workshop API - FastAPI application

Run with:
    python -m cobbler.main
    uvicorn cobbler.main:app --port 3001
"""

import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cobbler import __version__
from cobbler.routes import ROUTERS
from cobbler.services import reset_enquiry_service, reset_stage_query_service, reset_workflow_engine
from cobbler.store import reset_store
from cobbler.utils.config import settings
from cobbler.utils.errors import BillingValidationError, CobblerError
from cobbler.utils.logging_config import configure_logging
from cobbler.utils.responses import error_response
from cobbler.utils.schema import init_schema

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.STORE_BACKEND.lower() == "postgres":
        init_schema()
    logger.info(f"Cobbler Workshop API {__version__} started ({settings.ENVIRONMENT})")
    yield
    # Services hold the store they were built with
    reset_enquiry_service()
    reset_stage_query_service()
    reset_workflow_engine()
    reset_store()
    logger.info("Cobbler Workshop API stopped")


async def cobbler_error_handler(request: Request, exc: CobblerError):
    extra = {}
    if isinstance(exc, BillingValidationError):
        extra["invalidLines"] = exc.invalid_lines
    return JSONResponse(status_code=exc.status_code, content=error_response(exc.error, exc.message, **extra))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    logger.info(f"Validation failed on {request.method} {request.url.path}: {details}")
    message = "; ".join(f"{d['field']}: {d['message']}" for d in details)
    return JSONResponse(status_code=400, content=error_response("Validation failed", message, details=details))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_response(str(exc.detail)))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    message = str(exc) if settings.is_development else "Something went wrong"
    return JSONResponse(status_code=500, content=error_response("Internal server error", message))


def create_app() -> FastAPI:
    """Build the FastAPI application"""
    app = FastAPI(
        title="Cobbler Workshop API",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Token"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.1f} ms)",
            extra={"method": request.method, "path": request.url.path,
                   "status_code": response.status_code, "duration_ms": round(duration_ms, 1)},
        )
        return response

    app.add_exception_handler(CobblerError, cobbler_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    for router in ROUTERS:
        app.include_router(router)

    return app


app = create_app()


def run():
    """Console entry point"""
    uvicorn.run(
        "cobbler.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()

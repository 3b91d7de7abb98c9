import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.backends import backend_manager
from app.core.config import get_settings
from app.core.db import init_db_schema
from app.core.logging import configure_logging
from app.core.middleware import RequestContextMiddleware
from app.routers import get_api_router
from app.services import exceptions as service_exceptions


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()

    logger = logging.getLogger("app.errors")

    app = FastAPI(title=settings.PROJECT_NAME)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RequestContextMiddleware)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Field locations and messages only: the body may carry a one-time code.
        errors = [{"loc": error.get("loc"), "msg": error.get("msg")} for error in exc.errors()]
        logger.warning("Validation error on %s %s detail=%s", request.method, request.url.path, errors)
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": errors})

    @app.exception_handler(service_exceptions.BackendUnavailable)
    async def backend_unavailable_handler(request: Request, exc: service_exceptions.BackendUnavailable):
        logger.error("Backend unavailable on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "service temporarily unavailable"},
        )

    @app.exception_handler(service_exceptions.SigningError)
    async def signing_error_handler(request: Request, exc: service_exceptions.SigningError):
        logger.error("Token signing failed on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "internal server error"},
        )

    api_router = get_api_router()
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.on_event("startup")
    def startup_event():
        init_db_schema()
        backend_manager.init_backends(settings)

    @app.on_event("shutdown")
    def shutdown_event():
        backend_manager.reset()

    return app


app = create_app()

from datetime import datetime
import logging
from pathlib import Path
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from coverage_server.api.routes import api_router
from coverage_server.config.settings import settings
from coverage_server.core.dependencies import get_llm_service
from coverage_server.core.project import coverage_dir
from coverage_server.plugins.loader import load_plugins

logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def error_body(message: str) -> dict:
    return {
        "success": False,
        "error": message,
        "timestamp": datetime.utcnow().isoformat()
    }


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""

    app = FastAPI(
        title="Vitest Coverage Server",
        description="Vitest setup, coverage analysis and test generation for JavaScript projects",
        version=settings.version,
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc"
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            client_ip=request.client.host if request.client else None
        )

        response = await call_next(request)

        process_time = time.time() - start_time

        logger.info(
            "Request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            process_time=process_time
        )

        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None)
        )

    # Exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            method=request.method,
            url=str(request.url),
            error=str(exc),
            exc_info=True
        )

        message = "Internal server error" if settings.environment == "production" else str(exc)
        return JSONResponse(status_code=500, content=error_body(message))

    # Include API routes
    app.include_router(api_router, prefix=settings.api_prefix)

    # Built-in plugins, then any extra plugin directories
    plugins = load_plugins(app, prefix=settings.api_prefix)
    for plugins_dir in settings.plugin_dirs:
        plugins.extend(load_plugins(app, plugins_dir, prefix=settings.api_prefix))
    app.state.plugins = plugins

    # the directory may only appear after the first coverage run
    coverage_path = coverage_dir(Path(settings.project_root))
    app.mount("/coverage", StaticFiles(directory=str(coverage_path), check_dir=False), name="coverage")

    return app


# Create the application instance
app = create_app()


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info(
        "Application starting up",
        project_root=settings.project_root,
        plugins=app.state.plugins
    )

    llm_service = get_llm_service()
    if llm_service.is_configured:
        logger.info("AI test generation enabled", provider=llm_service.provider_name)
    else:
        logger.warning("AI test generation disabled", provider=llm_service.provider_name)

    logger.info("Application startup completed")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Application shutting down")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )

"""FastAPI application entry point.

Score Statistics Processor - queue consumer with an ops surface.
The processor runs as a background task for the lifetime of the app.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from score_processor.routes import api_router
from score_processor.schemas import ErrorDetail, ErrorResponse
from score_processor.services.errors import ScoreProcessorError
from score_processor.settings import get_settings
from score_processor.stores.postgres import close_db, init_db, ping_db
from score_processor.stores.redis import close_redis, init_redis
from score_processor.worker import create_processor, start_processor, stop_processor

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup fails if the database, Redis or the beatmap store cannot be
    initialized: the processor cannot run safely without any of them.
    """
    await init_db()
    await ping_db()
    logger.info("Database connected")

    await init_redis()

    processor = await create_processor()
    task, cancel = start_processor(processor)
    app.state.processor = processor

    yield

    # Shutdown
    await stop_processor(task, cancel)
    app.state.processor = None
    await close_redis()
    await close_db()


def create_app(*, with_lifespan: bool = True) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Turns queued scores into persisted user statistics",
        lifespan=lifespan if with_lifespan else None,
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
    )
    app.state.processor = None

    @app.exception_handler(ScoreProcessorError)
    async def processor_exception_handler(request: Request, exc: ScoreProcessorError) -> JSONResponse:
        """Processor errors surfaced through the API (e.g. queue transport failures)."""
        body = ErrorResponse(error=ErrorDetail(code=type(exc).__name__, message=str(exc)))
        return JSONResponse(status_code=503, content=body.model_dump())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        body = ErrorResponse(
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message=str(exc) if settings.debug else "Internal server error",
            )
        )
        return JSONResponse(status_code=500, content=body.model_dump())

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "score_processor.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

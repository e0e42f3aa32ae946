"""
AEO Alignment Backend
FastAPI application: content ingestion webhook, job triggers, health
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aeo.config import get_settings

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    from aeo.utils import init_db, close_db
    await init_db()
    yield
    await close_db()


async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort 500; the exception detail is exposed only in DEBUG"""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    content = {"detail": "Internal server error"}
    if get_settings().DEBUG:
        content = {"detail": str(exc), "type": type(exc).__name__}
    return JSONResponse(status_code=500, content=content)


def create_app() -> FastAPI:
    """Factory function to create FastAPI app"""
    settings = get_settings()

    application = FastAPI(
        title="AEO Alignment API",
        description="""
        Brand visibility auditing across LLM providers

        ## Features
        - Content ingestion webhook (HMAC-signed)
        - On-demand audit, reinforcement and content-build jobs
        """,
        version=API_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc" if settings.is_development else None,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(Exception, unhandled_error)

    from aeo.api.routes import api_router
    application.include_router(api_router, prefix="/api")

    @application.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "version": API_VERSION,
            "environment": get_settings().APP_ENV,
        }

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()

    uvicorn.run(
        "aeo.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        workers=1 if settings.is_development else settings.WORKERS,
    )

"""
FastAPI entry point for the rental match engine.

Serves cached recommendations, match scores, similar listings and price
fairness insights on top of the Postgres listing store and the Redis record
store.
"""

import logging
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routers import health_router, listing_router, recommendation_router
from ...domain.exceptions import MatchEngineError
from ...infrastructure.config import AppConfig
from ...infrastructure.repository_factory import get_repository_factory, close_repository_factory

load_dotenv()

config = AppConfig()

logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    repository_factory = await get_repository_factory(config)
    try:
        health = await repository_factory.health_check()
        if not health.get("overall"):
            raise RuntimeError(f"Data layer unhealthy at startup: {health}")

        app.state.repository_factory = repository_factory
        app.state.config = config
        logger.info("Rental match API ready")
        yield
    finally:
        await close_repository_factory()
        logger.info("Rental match API stopped")


app = FastAPI(
    title="Rental Match API",
    description="Matching, ranking and price-fairness engine for a rental marketplace.",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        f"{request.method} {request.url.path} {response.status_code} "
        f"{time.perf_counter() - started:.3f}s"
    )
    return response


def _error_response(request: Request, status_code: int, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "status_code": status_code, "path": request.url.path}
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(request, exc.status_code, exc.detail)


@app.exception_handler(MatchEngineError)
async def match_engine_exception_handler(request: Request, exc: MatchEngineError):
    # Domain errors that escaped a router are client errors
    return _error_response(request, 400, str(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error_response(request, 500, "Internal server error")


app.include_router(health_router.router, prefix="/health", tags=["Health Check"])
app.include_router(recommendation_router.router, prefix="/api/v1/recommendations", tags=["Recommendations"])
app.include_router(listing_router.router, prefix="/api/v1/listings", tags=["Listings"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rental_match.application.api.main:app",
        host="0.0.0.0",
        port=8000,
        log_level=config.log_level.lower()
    )

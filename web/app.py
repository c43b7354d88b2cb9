"""FastAPI application for the training tracker."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from metrics.config import RATE_LIMIT_SWEEP_INTERVAL_SECONDS
from metrics.exceptions import (
    ActivityNotFoundError,
    InsufficientDataError,
    InvalidPhysiologyError,
    UserNotFoundError,
)
from web.rate_limit import FixedWindowRateLimiter

logger = logging.getLogger(__name__)


async def _sweep_rate_limiter(limiter: FixedWindowRateLimiter, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        limiter.sweep()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the rate limiter sweep while the application is up."""
    task = asyncio.create_task(
        _sweep_rate_limiter(app.state.rate_limiter, RATE_LIMIT_SWEEP_INTERVAL_SECONDS)
    )
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


# Create FastAPI app
app = FastAPI(
    title="Training Tracker",
    description="Training load, heart rate zones, personal records and badges",
    lifespan=lifespan,
)
app.state.rate_limiter = FixedWindowRateLimiter()


@app.exception_handler(UserNotFoundError)
@app.exception_handler(ActivityNotFoundError)
async def not_found_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(InvalidPhysiologyError)
async def invalid_physiology_handler(request: Request, exc: InvalidPhysiologyError):
    logger.info("Rejected request on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc), "fc_max": exc.fc_max, "fc_repos": exc.fc_repos},
    )


@app.exception_handler(InsufficientDataError)
async def insufficient_data_handler(request: Request, exc: InsufficientDataError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc), "required": exc.required, "available": exc.available},
    )


@app.get("/health")
async def health():
    return {"status": "healthy"}


# Import and include routers after app is created
from web.routes import analytics, badges, records, training

app.include_router(training.router, prefix="/users/{user_id}", tags=["training"])
app.include_router(records.router, prefix="/users/{user_id}/records", tags=["records"])
app.include_router(badges.router, prefix="/users/{user_id}/badges", tags=["badges"])
app.include_router(analytics.router, prefix="/users/{user_id}", tags=["analytics"])

"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from marketplace.api.router import api_router
from marketplace.db.engine import create_all, engine
from marketplace.errors import MarketplaceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_all()
    yield
    await engine.dispose()


app = FastAPI(
    title="Homestead Marketplace",
    description="Real-estate listings with content moderation, appeals and an audit trail.",
    version="0.3.0",
    lifespan=lifespan,
)


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    if exc.retryable:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=int(exc.status_code), content=exc.to_dict())


app.include_router(api_router)


@app.get("/health")
async def health():
    return {"ok": True}

"""Error taxonomy for moderation/appeal operations and the boundaries that raise it."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """Base error. Carries the HTTP status the adapter layer should answer with.

    ``retryable`` tells callers whether repeating the same request can
    succeed; only persistence failures are retryable.
    """

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    retryable: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.code = self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "detail": self.message,
            "code": self.code,
            "retryable": self.retryable,
        }
        if self.details:
            body["details"] = self.details
        return body


class Unauthenticated(MarketplaceError):
    status_code = HTTPStatus.UNAUTHORIZED


class Forbidden(MarketplaceError):
    status_code = HTTPStatus.FORBIDDEN


class NotFound(MarketplaceError):
    status_code = HTTPStatus.NOT_FOUND


class ValidationError(MarketplaceError):
    status_code = HTTPStatus.BAD_REQUEST


class InvalidState(MarketplaceError):
    status_code = HTTPStatus.BAD_REQUEST


class Conflict(MarketplaceError):
    status_code = HTTPStatus.CONFLICT


class PersistenceFailure(MarketplaceError):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    retryable = True


@asynccontextmanager
async def persistence_guard(db: AsyncSession, what: str):
    """Roll back and re-raise store errors on a primary write as PersistenceFailure."""
    try:
        yield
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Persistence failure during %s: %s", what, exc)
        raise PersistenceFailure(f"Failed to {what}") from exc


@asynccontextmanager
async def best_effort(what: str):
    """Run a side effect whose failure must never abort the caller.

    Anything raised inside the block is logged and swallowed.
    """
    try:
        yield
    except Exception:
        logger.exception("Best-effort %s failed", what)

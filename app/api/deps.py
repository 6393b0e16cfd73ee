import asyncio
from collections.abc import Awaitable
from datetime import UTC, datetime
from typing import TypeVar

from app.core.config import settings
from app.core.db import get_session
from app.core.errors import StoreFailure
from app.services.slot_engine import BookingPolicy

T = TypeVar("T")

__all__ = ["get_now", "get_policy", "get_session", "with_store_timeout"]


def get_now() -> datetime:
    """Wall clock for cutoff checks; overridden in tests."""
    return datetime.now(UTC)


def get_policy() -> BookingPolicy:
    return BookingPolicy.from_settings(settings)


async def with_store_timeout(call: Awaitable[T]) -> T:
    """Bound a store round-trip by the request-scoped timeout."""
    try:
        async with asyncio.timeout(settings.store_timeout_seconds):
            return await call
    except TimeoutError as e:
        raise StoreFailure("Booking store timed out, please retry") from e

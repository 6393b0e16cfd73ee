from collections.abc import AsyncGenerator
from datetime import UTC, date, datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_now, get_policy, get_session
from app.core.db import init_db, make_engine, make_session_maker
from app.main import app
from app.models.room import Room
from app.services.booking_service import create_booking
from app.services.slot_engine import BookingPolicy, BookingRequest


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def policy() -> BookingPolicy:
    return BookingPolicy()


@pytest.fixture
def clock() -> FrozenClock:
    # 22:00 on Sunday 2024-06-09: bookings for Monday 2024-06-10 have just opened
    return FrozenClock(datetime(2024, 6, 9, 22, 0, tzinfo=UTC))


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield make_session_maker(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as s:
        yield s


@pytest_asyncio.fixture
async def room(session_maker) -> Room:
    async with session_maker() as s:
        r = Room(name="Focus Room", description="Quiet room", capacity=4)
        s.add(r)
        await s.commit()
        await s.refresh(r)
        return r


@pytest.fixture
def book(session_maker, policy):
    """Run one booking request in its own session, like a separate HTTP request."""

    async def _book(now: datetime, user_id: str, room_id: str, day: date, hour: int, **overrides):
        fields = {
            "user_id": user_id,
            "room_id": room_id,
            "date": day,
            "start_hour": hour,
            "start_minute": 0,
            "end_hour": hour,
            "end_minute": 59,
        }
        fields.update(overrides)
        async with session_maker() as s:
            try:
                booking = await create_booking(s, BookingRequest(**fields), now, policy)
                await s.commit()
            except Exception:
                await s.rollback()
                raise
        return booking

    return _book


@pytest_asyncio.fixture
async def client(session_maker, clock, policy) -> AsyncGenerator[AsyncClient, None]:
    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _override_session
    app.dependency_overrides[get_now] = clock
    app.dependency_overrides[get_policy] = lambda: policy
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()

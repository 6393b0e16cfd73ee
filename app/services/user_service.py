import logging
import re
import time
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import upsert_insert
from app.core.errors import StoreFailure, ValidationError
from app.models.user import User, UserPublic
from app.services.slot_service import from_naive_utc

logger = logging.getLogger(__name__)


def _utc_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def generated_email(name: str) -> str:
    """``Jane Doe`` -> ``jane.doe.<millis>@example.com``."""
    local = re.sub(r"\s+", ".", name.strip().lower())
    return f"{local}.{int(time.time() * 1000)}@{settings.placeholder_email_domain}"


def placeholder_email(user_id: str) -> str:
    return f"user-{user_id}@{settings.placeholder_email_domain}"


async def get_user(session: AsyncSession, user_id: str) -> User | None:
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(session: AsyncSession, name: str | None) -> User:
    if not name or not name.strip():
        raise ValidationError("Name is required")
    user = User(name=name.strip(), email=generated_email(name))
    session.add(user)
    await session.flush()
    await session.refresh(user)
    logger.info("Created user %s (%s)", user.id, user.name)
    return user


async def ensure_user(session: AsyncSession, user_id: str) -> User:
    """Return the user, creating a placeholder record if the id is unknown.

    Safe to race: the insert is ON CONFLICT DO NOTHING, so a concurrent request that
    created the same user first just turns this into a lookup. The row is read
    FOR UPDATE, which serializes one user's concurrent bookings on PostgreSQL.
    """
    stmt = (
        upsert_insert(session, User)
        .values(
            id=user_id,
            name=settings.placeholder_user_name,
            email=placeholder_email(user_id),
            created_at=_utc_naive(),
        )
        .on_conflict_do_nothing()
        .returning(User.id)
    )
    result = await session.execute(stmt)
    if result.scalar_one_or_none() is not None:
        logger.info("Provisioned placeholder user %s", user_id)
    else:
        logger.debug("User %s already exists", user_id)

    locked = await session.execute(select(User).where(User.id == user_id).with_for_update())
    user = locked.scalar_one_or_none()
    if user is None:
        # The insert lost to a row holding the same email under another id.
        raise StoreFailure(f"Could not provision user {user_id}")
    return user


async def list_users(session: AsyncSession, name: str | None = None) -> list[User]:
    if name:
        q = (
            select(User)
            .where(func.lower(User.name) == name.strip().lower())
            .order_by(User.created_at.desc())
        )
    else:
        q = select(User).order_by(User.name)
    result = await session.execute(q)
    return list(result.scalars().all())


def user_to_public(user: User) -> UserPublic:
    return UserPublic(
        id=user.id,
        name=user.name,
        email=user.email,
        created_at=from_naive_utc(user.created_at),
    )

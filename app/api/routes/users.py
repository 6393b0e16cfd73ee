from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_session, with_store_timeout
from app.models.user import UserCreate, UserPublic
from app.services.user_service import create_user, list_users, user_to_public

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def add_user(body: UserCreate, session: AsyncSession = Depends(get_session)) -> UserPublic:
    """Name-only user record; the client keeps the returned id for later bookings."""
    user = await with_store_timeout(create_user(session, body.name))
    return user_to_public(user)


@router.get("", response_model=list[UserPublic])
async def get_users(
    name: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> list[UserPublic]:
    users = await with_store_timeout(list_users(session, name=name))
    return [user_to_public(u) for u in users]

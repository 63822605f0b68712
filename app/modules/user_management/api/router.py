from typing import Any, List
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.modules.user_management.schemas.user import (
    AccountUpdate,
    DiscoverUser,
    ProfileInfo,
    ProfileUpdate,
    UserCreate,
    UserWithProfile,
)
from app.modules.user_management.services.user import (
    count_users,
    delete_user,
    find_user,
    get_profile,
    list_users_excluding,
    register_user,
    search_users_by_username,
    update_account,
    update_profile,
)

router = APIRouter()
logger = logging.getLogger("app")

@router.post("", response_model=UserWithProfile, status_code=status.HTTP_201_CREATED)
async def create_user(
    *,
    db: AsyncSession = Depends(get_db),
    user_in: UserCreate,
) -> Any:
    """Register a user together with its profile"""
    return await register_user(db, user_in)

@router.get("/search", response_model=List[UserWithProfile])
async def search_users(
    *,
    db: AsyncSession = Depends(get_db),
    q: str = Query(..., min_length=1, description="Case-insensitive username fragment"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
) -> Any:
    """Search for users by username"""
    return await search_users_by_username(db, q, offset=skip, limit=limit)

@router.get("/count", response_model=dict)
async def read_user_count(db: AsyncSession = Depends(get_db)) -> Any:
    return {"count": await count_users(db)}

@router.get("/by-username/{username}", response_model=UserWithProfile)
async def read_user_by_username(username: str, db: AsyncSession = Depends(get_db)) -> Any:
    """Get a specific user by username"""
    user = await find_user(db, username=username)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user

@router.get("/{user_id}", response_model=UserWithProfile)
async def read_user(user_id: str, db: AsyncSession = Depends(get_db)) -> Any:
    user = await find_user(db, user_id=user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user

@router.put("/{user_id}", response_model=UserWithProfile)
async def update_user_account(
    *,
    db: AsyncSession = Depends(get_db),
    user_id: str,
    account_in: AccountUpdate,
) -> Any:
    """Change password, or email and username"""
    return await update_account(db, user_id, account_in)

@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user(user_id: str, db: AsyncSession = Depends(get_db)) -> Response:
    """Delete a user and everything that belongs to them"""
    await delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/{user_id}/profile", response_model=ProfileInfo)
async def read_profile(user_id: str, db: AsyncSession = Depends(get_db)) -> Any:
    profile = await get_profile(db, user_id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found"
        )
    return profile

@router.put("/{user_id}/profile", response_model=ProfileInfo)
async def update_user_profile(
    *,
    db: AsyncSession = Depends(get_db),
    user_id: str,
    profile_in: ProfileUpdate,
) -> Any:
    return await update_profile(db, user_id, profile_in)

@router.get("/{user_id}/discover", response_model=List[DiscoverUser])
async def discover_users(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    limit: int = Query(20, ge=1, le=100),
) -> Any:
    """Every other user, flagged when user_id already follows them"""
    return await list_users_excluding(db, user_id, limit=limit)

"""
User Administration API Endpoints.

ADMIN / SUPERADMIN list staff accounts and change their role, unit or
active flag. Every change lands in the administrative audit log.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.core.guards import require_processor
from motorpool.app.db.session import get_db
from motorpool.app.models.enums import UserRole
from motorpool.app.schemas.users import UserUpdate, UserResponse, UserListResponse
from motorpool.app.services.users import list_users, get_user, update_user

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=UserListResponse)
async def list_all_users(
    role: Optional[UserRole] = Query(None),
    active_only: bool = Query(False),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    users = await list_users(db, role=role, active_only=active_only)
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=len(users),
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_detail(
    user_id: int = Path(..., description="User ID"),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    return await get_user(db, user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user_account(
    data: UserUpdate,
    user_id: int = Path(..., description="User ID"),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    """
    Change role, unit or active flag.
    
    Takes effect on the user's next request; tokens are not reissued.
    Only a SUPERADMIN can grant or revoke SUPERADMIN.
    """
    return await update_user(db, user_id, data.changes(), current_user)

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blogger.database import get_db
from blogger.dependencies import UserId, get_current_user, require_admin
from blogger.models import User
from blogger.schemas import PasswordChange, UserProfileUpdate
from blogger.services import user_service

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("")
async def list_users(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_users(db)


@router.put("/profile")
async def update_profile(
    data: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.update_profile(db, current_user, data)
    return {"message": "Profile updated successfully", "user": user}


@router.get("/{user_id}")
async def get_user(user_id: UserId, db: AsyncSession = Depends(get_db)):
    return await user_service.get_user(db, user_id)


@router.put("/{user_id}/password")
async def change_password(
    user_id: UserId,
    data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await user_service.change_password(db, current_user, user_id, data)
    return {"message": "Password changed successfully"}


@router.delete("/{user_id}")
async def delete_user(
    user_id: UserId,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await user_service.delete_user(db, current_user, user_id)
    return {"message": "User deleted successfully"}

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from auth import get_any_user, get_super_admin
from database import get_db
from models import User, UserRole
from schemas import (
    FriendAdded, FriendRead, LeaderboardEntry, Message, Pagination, PromoteGymOwner,
    UserList, UserRead, UserUpdate, UserUpdated
)
from services import gyms as gym_service
from services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = user_service.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# ========== ПРОФИЛЬ ==========
@router.get("/profile", response_model=UserRead)
async def get_profile(current_user: User = Depends(get_any_user)):
    return current_user


@router.put("/profile", response_model=UserRead)
async def update_profile(
    user_data: UserUpdate,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    update_data = user_data.model_dump(exclude_unset=True, exclude_none=True)
    return user_service.update_user(db, current_user, **update_data)


# ========== ДРУЗЬЯ ==========
@router.get("/friends", response_model=List[FriendRead])
async def get_friends(
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    return user_service.get_friends(db, current_user)


@router.post("/friends/{friend_id}", response_model=FriendAdded)
async def add_friend(
    friend_id: int,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    if friend_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot add yourself as friend")

    friend = _get_user_or_404(db, friend_id)
    if not friend.is_active:
        raise HTTPException(status_code=400, detail="Cannot add inactive user as friend")

    user = user_service.add_friend(db, current_user, friend)
    return FriendAdded(
        message="Friend added successfully",
        friend=FriendRead.model_validate(friend),
        friends_count=len(user.friends),
    )


@router.delete("/friends/{friend_id}", response_model=Message)
async def remove_friend(
    friend_id: int,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    if not user_service.remove_friend(db, current_user, friend_id):
        raise HTTPException(status_code=404, detail="Friend not found")
    return {"message": "Friend removed successfully"}


# ========== ПУБЛИЧНЫЙ РЕЙТИНГ ==========
@router.get("/leaderboard", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    users = user_service.get_leaderboard(db, limit)
    return [
        LeaderboardEntry(
            rank=index + 1,
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            total_score=user.total_score,
            badges=len(user.badges),
        )
        for index, user in enumerate(users)
    ]


# ========== АДМИНИСТРАТИВНЫЕ API ==========
@router.get("", response_model=UserList)
async def admin_get_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    users = user_service.list_users(db, role=role, is_active=is_active, limit=limit, skip=(page - 1) * limit)
    stats = user_service.count_users(db)
    total = user_service.count_filtered_users(db, role=role, is_active=is_active)
    return UserList(
        users=[UserRead.model_validate(u) for u in users],
        stats=stats,
        pagination=Pagination(page=page, limit=limit, total=total),
    )


@router.post("/{user_id}/deactivate", response_model=UserUpdated)
async def admin_deactivate_user(
    user_id: int,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot deactivate yourself")

    user = user_service.update_user(db, _get_user_or_404(db, user_id), is_active=False)
    return UserUpdated(message="User deactivated successfully", user=UserRead.model_validate(user))


@router.post("/{user_id}/activate", response_model=UserUpdated)
async def admin_activate_user(
    user_id: int,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    user = user_service.update_user(db, _get_user_or_404(db, user_id), is_active=True)
    return UserUpdated(message="User activated successfully", user=UserRead.model_validate(user))


@router.delete("/{user_id}", response_model=Message)
async def admin_delete_user(
    user_id: int,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")

    user = _get_user_or_404(db, user_id)
    user_service.delete_user(db, user)
    logger.info("User %s deleted by admin %s", user_id, admin.id)
    return {"message": "User deleted permanently"}


@router.post("/{user_id}/promote-gym-owner", response_model=UserUpdated)
async def admin_promote_gym_owner(
    user_id: int,
    payload: Optional[PromoteGymOwner] = None,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    user = _get_user_or_404(db, user_id)
    updates = {"role": UserRole.GYM_OWNER}
    if payload and payload.gym_id is not None:
        if not gym_service.get_gym(db, payload.gym_id):
            raise HTTPException(status_code=404, detail="Gym not found")
        updates["gym_id"] = payload.gym_id

    user = user_service.update_user(db, user, **updates)
    return UserUpdated(message="User promoted to gym owner successfully", user=UserRead.model_validate(user))


@router.post("/{user_id}/promote-super-admin", response_model=UserUpdated)
async def admin_promote_super_admin(
    user_id: int,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    user = user_service.update_user(db, _get_user_or_404(db, user_id), role=UserRole.SUPER_ADMIN)
    return UserUpdated(message="User promoted to super admin successfully", user=UserRead.model_validate(user))

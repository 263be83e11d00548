import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from auth import get_admin_or_gym_owner, get_any_user, get_super_admin
from database import get_db
from models import Gym, GymStatus, User, UserRole
from schemas import (
    AddTypeExercise, AssignOwner, AssignTypeExercises, AssignUser, GymCreate, GymCreated,
    GymMember, GymRead, GymUpdate, Message
)
from services import gyms as gym_service
from services import type_exercises as type_exercise_service
from services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/gyms", tags=["gyms"])


def _get_gym_or_404(db: Session, gym_id: int) -> Gym:
    gym = gym_service.get_gym(db, gym_id)
    if not gym:
        raise HTTPException(status_code=404, detail="Gym not found")
    return gym


def _check_gym_access(gym: Gym, user: User) -> None:
    # Владелец зала управляет только своим залом
    if user.role == UserRole.GYM_OWNER and gym.owner_id != user.id:
        raise HTTPException(status_code=403, detail="You can only manage your own gym")


# ========== ПРОСМОТР ==========
@router.get("", response_model=List[GymRead])
async def get_gyms(db: Session = Depends(get_db)):
    return gym_service.get_all_gyms(db)


@router.get("/pending", response_model=List[GymRead])
async def get_pending_gyms(
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    return gym_service.get_pending_gyms(db)


@router.get("/my-gyms", response_model=List[GymRead])
async def get_my_gyms(
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    gyms = []
    if current_user.role == UserRole.GYM_OWNER:
        gyms.extend(gym_service.get_gyms_by_owner(db, current_user.id))
    if current_user.gym_id is not None and all(g.id != current_user.gym_id for g in gyms):
        gym = gym_service.get_gym(db, current_user.gym_id)
        if gym:
            gyms.append(gym)
    return gyms


@router.get("/by-type-exercise/{type_exercise_id}", response_model=List[GymRead])
async def get_gyms_by_type_exercise(
    type_exercise_id: int,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    return gym_service.get_gyms_by_type_exercise(db, type_exercise_id)


# ========== УЧАСТНИКИ ЗАЛА ==========
@router.delete("/users/{user_id}", response_model=Message)
async def remove_user_from_gym(
    user_id: int,
    current_user: User = Depends(get_admin_or_gym_owner),
    db: Session = Depends(get_db)
):
    user = user_service.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.gym_id is None:
        raise HTTPException(status_code=400, detail="User is not assigned to any gym")

    _check_gym_access(_get_gym_or_404(db, user.gym_id), current_user)
    user_service.assign_to_gym(db, user, None)
    return {"message": "User removed from gym successfully"}


# ========== СОЗДАНИЕ И ОДОБРЕНИЕ ==========
@router.post("", response_model=GymCreated, status_code=status.HTTP_201_CREATED)
async def create_gym(
    gym_data: GymCreate,
    current_user: User = Depends(get_admin_or_gym_owner),
    db: Session = Depends(get_db)
):
    is_admin = current_user.role == UserRole.SUPER_ADMIN
    data = gym_data.model_dump()
    owner_id = data.pop("owner_id") or current_user.id
    if not is_admin:
        owner_id = current_user.id
    elif not user_service.get_user(db, owner_id):
        raise HTTPException(status_code=404, detail="Owner not found")

    gym = gym_service.create_gym(
        db,
        created_by=current_user.id,
        owner_id=owner_id,
        status=GymStatus.APPROVED if is_admin else GymStatus.PENDING,
        approved_by_admin=current_user.id if is_admin else None,
        **data
    )
    logger.info("Gym %s created by user %s", gym.id, current_user.id)
    return GymCreated(
        message="Gym created and approved successfully" if is_admin else "Gym created and pending admin approval",
        gym=GymRead.model_validate(gym),
    )


@router.post("/{gym_id}/assign-owner", response_model=GymRead)
async def assign_owner(
    gym_id: int,
    payload: AssignOwner,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    gym = _get_gym_or_404(db, gym_id)
    owner = user_service.get_user(db, payload.owner_id)
    if not owner:
        raise HTTPException(status_code=404, detail="Owner not found")

    gym = gym_service.approve_gym(db, gym, admin.id, owner_id=owner.id)
    if owner.role == UserRole.USER:
        user_service.update_user(db, owner, role=UserRole.GYM_OWNER)
    return gym


@router.patch("/{gym_id}/approve", response_model=GymRead)
async def approve_gym(
    gym_id: int,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    return gym_service.approve_gym(db, _get_gym_or_404(db, gym_id), admin.id)


@router.patch("/{gym_id}/reject", response_model=GymRead)
async def reject_gym(
    gym_id: int,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    return gym_service.reject_gym(db, _get_gym_or_404(db, gym_id))


@router.put("/{gym_id}", response_model=GymRead)
async def update_gym(
    gym_id: int,
    gym_data: GymUpdate,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    gym = _get_gym_or_404(db, gym_id)
    update_data = gym_data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No data to update")
    return gym_service.update_gym(db, gym, **update_data)


@router.delete("/{gym_id}", response_model=Message)
async def delete_gym(
    gym_id: int,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    gym_service.delete_gym(db, _get_gym_or_404(db, gym_id))
    logger.info("Gym %s deleted by admin %s", gym_id, admin.id)
    return {"message": "Gym deleted successfully"}


# ========== ТИПЫ УПРАЖНЕНИЙ ==========
@router.post("/{gym_id}/assign-type-exercises", response_model=GymRead)
async def assign_type_exercises(
    gym_id: int,
    payload: AssignTypeExercises,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    gym = _get_gym_or_404(db, gym_id)
    found = type_exercise_service.get_type_exercises_by_ids(db, set(payload.type_exercise_ids))
    if len(found) != len(set(payload.type_exercise_ids)):
        raise HTTPException(status_code=404, detail="Some type exercises not found")
    return gym_service.set_type_exercises(db, gym, payload.type_exercise_ids)


@router.post("/{gym_id}/add-type-exercise", response_model=GymRead)
async def add_type_exercise(
    gym_id: int,
    payload: AddTypeExercise,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    gym = _get_gym_or_404(db, gym_id)
    type_exercise = type_exercise_service.get_type_exercise(db, payload.type_exercise_id)
    if not type_exercise:
        raise HTTPException(status_code=404, detail="Type exercise not found")
    return gym_service.add_type_exercise(db, gym, type_exercise)


@router.delete("/{gym_id}/type-exercises/{type_exercise_id}", response_model=GymRead)
async def remove_type_exercise(
    gym_id: int,
    type_exercise_id: int,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    return gym_service.remove_type_exercise(db, _get_gym_or_404(db, gym_id), type_exercise_id)


@router.post("/{gym_id}/assign-user", response_model=GymMember)
async def assign_user_to_gym(
    gym_id: int,
    payload: AssignUser,
    current_user: User = Depends(get_admin_or_gym_owner),
    db: Session = Depends(get_db)
):
    gym = _get_gym_or_404(db, gym_id)
    _check_gym_access(gym, current_user)

    user = user_service.get_user(db, payload.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user_service.assign_to_gym(db, user, gym.id)


@router.get("/{gym_id}/users", response_model=List[GymMember])
async def get_gym_users(
    gym_id: int,
    current_user: User = Depends(get_admin_or_gym_owner),
    db: Session = Depends(get_db)
):
    gym = _get_gym_or_404(db, gym_id)
    _check_gym_access(gym, current_user)
    return user_service.get_users_by_gym(db, gym.id)

from typing import List, Optional

from sqlalchemy import select, desc
from sqlalchemy.orm import Session

from models import Gym, GymStatus, TypeExercise, gym_type_exercises
from services import type_exercises as type_exercise_service


def create_gym(db: Session, **data) -> Gym:
    gym = Gym(**data)
    db.add(gym)
    db.commit()
    db.refresh(gym)
    return gym


def get_gym(db: Session, gym_id: int) -> Optional[Gym]:
    return db.get(Gym, gym_id)


def get_all_gyms(db: Session) -> List[Gym]:
    return db.execute(select(Gym).order_by(desc(Gym.created_at), desc(Gym.id))).scalars().all()


def get_gyms_by_owner(db: Session, owner_id: int) -> List[Gym]:
    return db.execute(select(Gym).where(Gym.owner_id == owner_id).order_by(Gym.id)).scalars().all()


def get_gym_by_owner(db: Session, owner_id: int) -> Optional[Gym]:
    return db.execute(
        select(Gym).where(Gym.owner_id == owner_id).order_by(Gym.id).limit(1)
    ).scalar_one_or_none()


def get_pending_gyms(db: Session) -> List[Gym]:
    return db.execute(
        select(Gym).where(Gym.status == GymStatus.PENDING).order_by(Gym.id)
    ).scalars().all()


def approve_gym(db: Session, gym: Gym, admin_id: int, owner_id: Optional[int] = None) -> Gym:
    if owner_id is not None:
        gym.owner_id = owner_id
    gym.status = GymStatus.APPROVED
    gym.approved_by_admin = admin_id
    db.commit()
    db.refresh(gym)
    return gym


def reject_gym(db: Session, gym: Gym) -> Gym:
    gym.status = GymStatus.REJECTED
    db.commit()
    db.refresh(gym)
    return gym


def update_gym(db: Session, gym: Gym, **data) -> Gym:
    for key, value in data.items():
        setattr(gym, key, value)
    db.commit()
    db.refresh(gym)
    return gym


def delete_gym(db: Session, gym: Gym) -> None:
    db.delete(gym)
    db.commit()


# ========== ТИПЫ УПРАЖНЕНИЙ ЗАЛА ==========
def set_type_exercises(db: Session, gym: Gym, type_exercise_ids: List[int]) -> Gym:
    gym.type_exercises = type_exercise_service.get_type_exercises_by_ids(db, set(type_exercise_ids))
    db.commit()
    db.refresh(gym)
    return gym


def add_type_exercise(db: Session, gym: Gym, type_exercise: TypeExercise) -> Gym:
    if type_exercise not in gym.type_exercises:
        gym.type_exercises.append(type_exercise)
        db.commit()
        db.refresh(gym)
    return gym


def remove_type_exercise(db: Session, gym: Gym, type_exercise_id: int) -> Gym:
    gym.type_exercises = [t for t in gym.type_exercises if t.id != type_exercise_id]
    db.commit()
    db.refresh(gym)
    return gym


def get_gyms_by_type_exercise(db: Session, type_exercise_id: int) -> List[Gym]:
    return db.execute(
        select(Gym)
        .join(gym_type_exercises, gym_type_exercises.c.gym_id == Gym.id)
        .where(
            gym_type_exercises.c.type_exercise_id == type_exercise_id,
            Gym.status == GymStatus.APPROVED
        )
        .order_by(Gym.id)
    ).scalars().all()

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exceptions import ConflictError
from models import TypeExercise


def get_all_type_exercises(db: Session) -> List[TypeExercise]:
    return db.execute(select(TypeExercise).order_by(TypeExercise.name)).scalars().all()


def get_type_exercise(db: Session, type_exercise_id: int) -> Optional[TypeExercise]:
    return db.get(TypeExercise, type_exercise_id)


def get_type_exercises_by_ids(db: Session, ids) -> List[TypeExercise]:
    if not ids:
        return []
    return db.execute(select(TypeExercise).where(TypeExercise.id.in_(ids))).scalars().all()


def get_type_exercises_by_muscle(db: Session, muscle: str) -> List[TypeExercise]:
    # Список мышц хранится в JSON, фильтруем на стороне Python
    needle = muscle.strip().lower()
    return [
        t for t in get_all_type_exercises(db)
        if any(m.lower() == needle for m in (t.targeted_muscles or []))
    ]


def _commit_unique(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Type exercise with this name already exists")


def create_type_exercise(db: Session, created_by: int, **data) -> TypeExercise:
    type_exercise = TypeExercise(created_by=created_by, **data)
    db.add(type_exercise)
    _commit_unique(db)
    db.refresh(type_exercise)
    return type_exercise


def update_type_exercise(db: Session, type_exercise: TypeExercise, **data) -> TypeExercise:
    for key, value in data.items():
        setattr(type_exercise, key, value)
    _commit_unique(db)
    db.refresh(type_exercise)
    return type_exercise


def delete_type_exercise(db: Session, type_exercise: TypeExercise) -> None:
    db.delete(type_exercise)
    db.commit()

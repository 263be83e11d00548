from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from auth import get_super_admin
from database import get_db
from models import User
from schemas import Message, TypeExerciseCreate, TypeExerciseRead, TypeExerciseUpdate
from services import type_exercises as type_exercise_service

router = APIRouter(prefix="/api/type-exercises", tags=["type-exercises"])


@router.get("", response_model=List[TypeExerciseRead])
async def get_type_exercises(db: Session = Depends(get_db)):
    return type_exercise_service.get_all_type_exercises(db)


@router.get("/search", response_model=List[TypeExerciseRead])
async def search_by_muscle(
    muscle: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    if not muscle or not muscle.strip():
        raise HTTPException(status_code=400, detail="Muscle parameter is required")
    return type_exercise_service.get_type_exercises_by_muscle(db, muscle)


@router.get("/{type_exercise_id}", response_model=TypeExerciseRead)
async def get_type_exercise(type_exercise_id: int, db: Session = Depends(get_db)):
    type_exercise = type_exercise_service.get_type_exercise(db, type_exercise_id)
    if not type_exercise:
        raise HTTPException(status_code=404, detail="Type exercise not found")
    return type_exercise


@router.post("", response_model=TypeExerciseRead, status_code=status.HTTP_201_CREATED)
async def create_type_exercise(
    payload: TypeExerciseCreate,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    return type_exercise_service.create_type_exercise(db, created_by=admin.id, **payload.model_dump())


@router.put("/{type_exercise_id}", response_model=TypeExerciseRead)
async def update_type_exercise(
    type_exercise_id: int,
    payload: TypeExerciseUpdate,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    type_exercise = type_exercise_service.get_type_exercise(db, type_exercise_id)
    if not type_exercise:
        raise HTTPException(status_code=404, detail="Type exercise not found")
    return type_exercise_service.update_type_exercise(
        db, type_exercise, **payload.model_dump(exclude_unset=True, exclude_none=True)
    )


@router.delete("/{type_exercise_id}", response_model=Message)
async def delete_type_exercise(
    type_exercise_id: int,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    type_exercise = type_exercise_service.get_type_exercise(db, type_exercise_id)
    if not type_exercise:
        raise HTTPException(status_code=404, detail="Type exercise not found")
    type_exercise_service.delete_type_exercise(db, type_exercise)
    return {"message": "Type exercise deleted successfully"}

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

import badge_engine
from auth import get_any_user
from database import get_db
from models import Challenge, ChallengeType, DifficultyLevel, User, UserRole
from schemas import (
    ChallengeCreate, ChallengeLeaderboardEntry, ChallengeRead, ChallengeUpdate, JoinRequest,
    Message, ParticipationRead, ParticipationStats, PersonalBestUpdate, ProgressUpdate,
    WorkoutSessionCreate
)
from services import challenges as challenge_service
from services import gyms as gym_service
from services import participations as participation_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/challenges", tags=["challenges"])


def _get_challenge_or_404(db: Session, challenge_id: int) -> Challenge:
    challenge = challenge_service.get_challenge(db, challenge_id)
    if not challenge:
        raise HTTPException(status_code=404, detail="Challenge not found")
    return challenge


def _check_owner_or_admin(challenge: Challenge, user: User, action: str) -> None:
    if challenge.created_by != user.id and user.role != UserRole.SUPER_ADMIN:
        raise HTTPException(
            status_code=403,
            detail=f"Only challenge creator or admin can {action} this challenge"
        )


# ========== СОЗДАНИЕ ==========
@router.post("", response_model=ChallengeRead, status_code=status.HTTP_201_CREATED)
async def create_challenge(
    challenge_data: ChallengeCreate,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    data = challenge_data.model_dump()

    if current_user.role == UserRole.GYM_OWNER:
        gym_id = current_user.gym_id
        if gym_id is None:
            own_gym = gym_service.get_gym_by_owner(db, current_user.id)
            gym_id = own_gym.id if own_gym else None
        if gym_id is None:
            raise HTTPException(status_code=400, detail="Gym owner must be associated with a gym")
        data["gym_id"] = gym_id
    elif current_user.role == UserRole.USER and data.get("gym_id") is not None:
        raise HTTPException(status_code=403, detail="Only gym owners and admins can create gym challenges")
    elif data.get("gym_id") is not None and not gym_service.get_gym(db, data["gym_id"]):
        raise HTTPException(status_code=404, detail="Gym not found")

    challenge = challenge_service.create_challenge(db, created_by=current_user.id, **data)
    logger.info("Challenge %s created by user %s", challenge.id, current_user.id)
    return challenge


# ========== ПРОСМОТР ==========
@router.get("/public", response_model=List[ChallengeRead])
async def get_public_challenges(db: Session = Depends(get_db)):
    return challenge_service.get_public_challenges(db)


@router.get("/search", response_model=List[ChallengeRead])
async def search_challenges(
    q: Optional[str] = Query(None),
    difficulty: Optional[DifficultyLevel] = None,
    type: Optional[ChallengeType] = None,
    db: Session = Depends(get_db)
):
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    return challenge_service.search_challenges(db, q.strip(), difficulty=difficulty, challenge_type=type)


@router.get("/my/challenges", response_model=List[ChallengeRead])
async def get_my_challenges(
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    return challenge_service.get_challenges(db, created_by=current_user.id)


@router.get("/my/participations", response_model=List[ParticipationRead])
async def get_my_participations(
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    return participation_service.get_user_participations(db, current_user.id)


@router.get("/my/stats", response_model=ParticipationStats)
async def get_my_stats(
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    return participation_service.get_user_stats(db, current_user.id)


# ========== УЧАСТИЕ ==========
@router.patch("/participations/{participation_id}/progress", response_model=ParticipationRead)
async def update_progress(
    participation_id: int,
    payload: ProgressUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    participation = participation_service.get_owned_participation(db, participation_id, current_user.id)
    participation, completed = participation_service.update_progress(db, participation, payload.progress)
    if completed:
        # Результат проверки бейджей в ответ не попадает
        background_tasks.add_task(badge_engine.assign_badges_in_background, current_user.id)
    return participation


@router.post("/participations/{participation_id}/workout", response_model=ParticipationRead)
async def add_workout_session(
    participation_id: int,
    payload: WorkoutSessionCreate,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    participation = participation_service.get_owned_participation(db, participation_id, current_user.id)
    exercises = [exercise.model_dump() for exercise in payload.exercises]
    total_duration = sum(exercise.duration or 0 for exercise in payload.exercises)
    total_calories = payload.calories_burned or sum(
        exercise.calories_burned or 0 for exercise in payload.exercises
    )
    return participation_service.add_workout_session(
        db,
        participation,
        exercises,
        total_duration=total_duration,
        total_calories=total_calories,
        notes=payload.notes,
    )


@router.post("/participations/{participation_id}/abandon", response_model=ParticipationRead)
async def abandon_participation(
    participation_id: int,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    participation = participation_service.get_owned_participation(db, participation_id, current_user.id)
    return participation_service.abandon(db, participation)


@router.put("/participations/{participation_id}/personal-best", response_model=ParticipationRead)
async def update_personal_best(
    participation_id: int,
    payload: PersonalBestUpdate,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    participation = participation_service.get_owned_participation(db, participation_id, current_user.id)
    record = payload.model_dump(exclude_none=True)
    if not record:
        raise HTTPException(status_code=400, detail="Personal best record is empty")
    return participation_service.update_personal_best(db, participation, record)


@router.delete("/participations/{participation_id}", response_model=Message)
async def leave_challenge(
    participation_id: int,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    participation = participation_service.get_owned_participation(db, participation_id, current_user.id)
    participation_service.leave_challenge(db, participation)
    return {"message": "Left challenge successfully"}


# ========== ЧЕЛЛЕНДЖ ПО ID ==========
@router.get("/{challenge_id}", response_model=ChallengeRead)
async def get_challenge(challenge_id: int, db: Session = Depends(get_db)):
    return _get_challenge_or_404(db, challenge_id)


@router.get("/{challenge_id}/leaderboard", response_model=List[ChallengeLeaderboardEntry])
async def get_challenge_leaderboard(challenge_id: int, db: Session = Depends(get_db)):
    challenge = _get_challenge_or_404(db, challenge_id)
    participations = participation_service.get_leaderboard(db, challenge.id)
    return [
        ChallengeLeaderboardEntry(
            rank=index + 1,
            participation_id=p.id,
            user_id=p.user_id,
            first_name=p.user.first_name,
            last_name=p.user.last_name,
            status=p.status,
            progress=p.progress,
            total_calories=p.total_calories,
        )
        for index, p in enumerate(participations)
    ]


@router.post("/{challenge_id}/join", response_model=ParticipationRead, status_code=status.HTTP_201_CREATED)
async def join_challenge(
    challenge_id: int,
    payload: Optional[JoinRequest] = None,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    challenge = _get_challenge_or_404(db, challenge_id)
    team_id = payload.team_id if payload else None
    return participation_service.join_challenge(db, current_user.id, challenge, team_id=team_id)


@router.patch("/{challenge_id}/activate", response_model=ChallengeRead)
async def activate_challenge(
    challenge_id: int,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    challenge = _get_challenge_or_404(db, challenge_id)
    _check_owner_or_admin(challenge, current_user, "activate")
    return challenge_service.activate_challenge(db, challenge)


@router.put("/{challenge_id}", response_model=ChallengeRead)
async def update_challenge(
    challenge_id: int,
    challenge_data: ChallengeUpdate,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    challenge = _get_challenge_or_404(db, challenge_id)
    _check_owner_or_admin(challenge, current_user, "update")
    update_data = challenge_data.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No data to update")
    return challenge_service.update_challenge(db, challenge, **update_data)


@router.delete("/{challenge_id}", response_model=Message)
async def delete_challenge(
    challenge_id: int,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    challenge = _get_challenge_or_404(db, challenge_id)
    _check_owner_or_admin(challenge, current_user, "delete")
    challenge_service.delete_challenge(db, challenge)
    logger.info("Challenge %s deleted by user %s", challenge_id, current_user.id)
    return {"message": "Challenge deleted successfully"}

"""
Участие пользователя в челлендже.

Состояния: JOINED -> IN_PROGRESS -> COMPLETED | ABANDONED.
COMPLETED и ABANDONED конечные: после них прогресс не меняется.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, update, desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import utcnow
from exceptions import NotFoundError, ValidationError
from models import (
    Challenge, ChallengeParticipation, ChallengeStatus, ParticipationStatus, WorkoutSession
)
from services import badges as badge_service
from services import challenges as challenge_service
from services import users as user_service

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (ParticipationStatus.COMPLETED, ParticipationStatus.ABANDONED)
LEADERBOARD_SIZE = 10


def get_participation(db: Session, participation_id: int) -> Optional[ChallengeParticipation]:
    return db.get(ChallengeParticipation, participation_id)


def get_owned_participation(db: Session, participation_id: int, user_id: int) -> ChallengeParticipation:
    participation = get_participation(db, participation_id)
    # Чужое участие выглядит как несуществующее
    if participation is None or participation.user_id != user_id:
        raise NotFoundError("Participation not found")
    return participation


def get_user_challenge_participation(
    db: Session, user_id: int, challenge_id: int
) -> Optional[ChallengeParticipation]:
    return db.execute(
        select(ChallengeParticipation).where(
            ChallengeParticipation.user_id == user_id,
            ChallengeParticipation.challenge_id == challenge_id
        )
    ).scalar_one_or_none()


def get_user_participations(db: Session, user_id: int) -> List[ChallengeParticipation]:
    return db.execute(
        select(ChallengeParticipation)
        .where(ChallengeParticipation.user_id == user_id)
        .order_by(desc(ChallengeParticipation.joined_at), desc(ChallengeParticipation.id))
    ).scalars().all()


# ========== ВСТУПЛЕНИЕ ==========
def create_participation(
    db: Session,
    user_id: int,
    challenge_id: int,
    invited_by: Optional[int] = None,
    team_id: Optional[str] = None,
) -> ChallengeParticipation:
    participation = ChallengeParticipation(
        user_id=user_id,
        challenge_id=challenge_id,
        invited_by=invited_by,
        team_id=team_id,
        status=ParticipationStatus.JOINED,
        progress=0,
        joined_at=utcnow(),
    )
    db.add(participation)
    try:
        db.commit()
    except IntegrityError:
        # проиграли гонку двух одновременных вступлений
        db.rollback()
        raise ValidationError("Already joined this challenge")
    db.refresh(participation)
    return participation


def enroll(
    db: Session,
    user_id: int,
    challenge_id: int,
    invited_by: Optional[int] = None,
    team_id: Optional[str] = None,
) -> ChallengeParticipation:
    """Создаёт участие и атомарно увеличивает счётчик участников челленджа."""
    participation = create_participation(db, user_id, challenge_id, invited_by=invited_by, team_id=team_id)
    challenge_service.increment_participants(db, challenge_id)
    db.refresh(participation)
    return participation


def join_challenge(
    db: Session, user_id: int, challenge: Challenge, team_id: Optional[str] = None
) -> ChallengeParticipation:
    if get_user_challenge_participation(db, user_id, challenge.id):
        raise ValidationError("Already joined this challenge")
    if challenge.status in (ChallengeStatus.COMPLETED, ChallengeStatus.CANCELLED):
        raise ValidationError("Challenge is not open for joining")
    if challenge_service.is_full(challenge):
        raise ValidationError("Challenge is full")
    return enroll(db, user_id, challenge.id, team_id=team_id)


def leave_challenge(db: Session, participation: ChallengeParticipation) -> None:
    challenge_id = participation.challenge_id
    db.delete(participation)
    db.commit()
    challenge_service.decrement_participants(db, challenge_id)


# ========== ПРОГРЕСС ==========
def next_status(current: ParticipationStatus, progress: int) -> ParticipationStatus:
    if progress >= 100:
        return ParticipationStatus.COMPLETED
    if progress > 0:
        return ParticipationStatus.IN_PROGRESS
    return current


def _ensure_not_terminal(participation: ChallengeParticipation) -> None:
    if participation.status in TERMINAL_STATUSES:
        raise ValidationError(f"Participation is already {participation.status.value}")


def update_progress(
    db: Session, participation: ChallengeParticipation, progress: int
) -> Tuple[ChallengeParticipation, bool]:
    """Сохраняет прогресс и производный статус.

    Возвращает (участие, завершено_сейчас). При завершении начисляется
    статистика пользователя и награда челленджа; проверку бейджей
    вызывающий код запускает сам.
    """
    if progress is None or progress < 0 or progress > 100:
        raise ValidationError("Progress must be between 0 and 100")
    _ensure_not_terminal(participation)

    participation.progress = progress
    participation.status = next_status(participation.status, progress)
    completed = participation.status == ParticipationStatus.COMPLETED
    if completed:
        participation.completed_at = utcnow()
    db.commit()
    db.refresh(participation)

    if completed:
        _apply_completion(db, participation)
    return participation, completed


def _apply_completion(db: Session, participation: ChallengeParticipation) -> None:
    user_service.record_challenge_completion(db, participation.user_id, participation.total_calories)

    rewards = participation.challenge.rewards or {}
    points = int(rewards.get("points") or 0)
    if points:
        db.execute(
            update(ChallengeParticipation)
            .where(ChallengeParticipation.id == participation.id)
            .values(points_earned=ChallengeParticipation.points_earned + points)
        )
        db.commit()
        user_service.increment_score(db, participation.user_id, points)

    reward_badges = badge_service.get_badges_by_ids(db, rewards.get("badge_ids") or [])
    for badge in reward_badges:
        if badge not in participation.badges_earned:
            participation.badges_earned.append(badge)
        if user_service.add_badge(db, participation.user_id, badge.id):
            user_service.increment_score(db, participation.user_id, badge.points or 0)
    db.commit()
    db.refresh(participation)
    logger.info(
        "User %s completed challenge %s", participation.user_id, participation.challenge_id
    )


def abandon(db: Session, participation: ChallengeParticipation) -> ChallengeParticipation:
    _ensure_not_terminal(participation)
    participation.status = ParticipationStatus.ABANDONED
    db.commit()
    db.refresh(participation)
    return participation


# ========== ТРЕНИРОВКИ ==========
def add_workout_session(
    db: Session,
    participation: ChallengeParticipation,
    exercises: List[Dict[str, Any]],
    total_duration: int = 0,
    total_calories: int = 0,
    notes: Optional[str] = None,
) -> ChallengeParticipation:
    if participation.status == ParticipationStatus.ABANDONED:
        raise ValidationError("Participation is already ABANDONED")

    session = WorkoutSession(
        participation_id=participation.id,
        date=utcnow(),
        exercises=exercises,
        total_duration=total_duration or 0,
        total_calories=total_calories or 0,
        notes=notes,
    )
    db.add(session)
    db.execute(
        update(ChallengeParticipation)
        .where(ChallengeParticipation.id == participation.id)
        .values(
            total_workouts=ChallengeParticipation.total_workouts + 1,
            total_duration=ChallengeParticipation.total_duration + session.total_duration,
            total_calories=ChallengeParticipation.total_calories + session.total_calories,
        )
    )
    db.commit()

    user = user_service.get_user(db, participation.user_id)
    if user is not None:
        user_service.record_activity(db, user)

    db.refresh(participation)
    return participation


def update_personal_best(
    db: Session, participation: ChallengeParticipation, personal_best: Dict[str, Any]
) -> ChallengeParticipation:
    record = {k: v for k, v in personal_best.items() if v is not None}
    record["achieved_at"] = utcnow().isoformat()
    participation.personal_best = record
    db.commit()
    db.refresh(participation)
    return participation


# ========== РЕЙТИНГ И СТАТИСТИКА ==========
def get_leaderboard(db: Session, challenge_id: int, limit: int = LEADERBOARD_SIZE) -> List[ChallengeParticipation]:
    return db.execute(
        select(ChallengeParticipation)
        .where(
            ChallengeParticipation.challenge_id == challenge_id,
            ChallengeParticipation.status != ParticipationStatus.ABANDONED
        )
        .order_by(
            desc(ChallengeParticipation.progress),
            desc(ChallengeParticipation.total_calories),
            ChallengeParticipation.id
        )
        .limit(limit)
    ).scalars().all()


def get_user_stats(db: Session, user_id: int) -> Dict[str, Any]:
    row = db.execute(
        select(
            func.count(ChallengeParticipation.id),
            func.coalesce(func.sum(ChallengeParticipation.total_calories), 0),
            func.coalesce(func.avg(ChallengeParticipation.progress), 0),
        ).where(ChallengeParticipation.user_id == user_id)
    ).one()
    by_status = dict(
        db.execute(
            select(ChallengeParticipation.status, func.count(ChallengeParticipation.id))
            .where(ChallengeParticipation.user_id == user_id)
            .group_by(ChallengeParticipation.status)
        ).all()
    )
    return {
        "total_challenges": row[0],
        "completed_challenges": by_status.get(ParticipationStatus.COMPLETED, 0),
        "active_challenges": by_status.get(ParticipationStatus.IN_PROGRESS, 0),
        "total_calories_burned": int(row[1]),
        "average_progress": float(row[2]),
    }

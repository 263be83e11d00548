from datetime import timedelta
from typing import List, Optional

from sqlalchemy import select, update, or_, desc, cast, String
from sqlalchemy.orm import Session

from database import utcnow
from models import Challenge, ChallengeStatus, ChallengeType, DifficultyLevel


def create_challenge(db: Session, created_by: int, **data) -> Challenge:
    challenge = Challenge(created_by=created_by, current_participants=0, **data)
    db.add(challenge)
    db.commit()
    db.refresh(challenge)
    return challenge


def get_challenge(db: Session, challenge_id: int) -> Optional[Challenge]:
    return db.get(Challenge, challenge_id)


def get_challenges(
    db: Session,
    difficulty: Optional[DifficultyLevel] = None,
    challenge_type: Optional[ChallengeType] = None,
    status: Optional[ChallengeStatus] = None,
    gym_id: Optional[int] = None,
    is_public: Optional[bool] = None,
    created_by: Optional[int] = None,
) -> List[Challenge]:
    query = select(Challenge)
    if difficulty is not None:
        query = query.where(Challenge.difficulty == difficulty)
    if challenge_type is not None:
        query = query.where(Challenge.type == challenge_type)
    if status is not None:
        query = query.where(Challenge.status == status)
    if gym_id is not None:
        query = query.where(Challenge.gym_id == gym_id)
    if is_public is not None:
        query = query.where(Challenge.is_public == is_public)
    if created_by is not None:
        query = query.where(Challenge.created_by == created_by)
    return db.execute(query.order_by(desc(Challenge.created_at), desc(Challenge.id))).scalars().all()


def get_public_challenges(db: Session) -> List[Challenge]:
    return get_challenges(db, is_public=True, status=ChallengeStatus.ACTIVE)


def search_challenges(
    db: Session,
    term: str,
    difficulty: Optional[DifficultyLevel] = None,
    challenge_type: Optional[ChallengeType] = None,
) -> List[Challenge]:
    pattern = f"%{term}%"
    query = select(Challenge).where(
        Challenge.is_public == True,
        Challenge.status == ChallengeStatus.ACTIVE,
        or_(
            Challenge.title.ilike(pattern),
            Challenge.description.ilike(pattern),
            cast(Challenge.tags, String).ilike(pattern),
        )
    )
    if difficulty is not None:
        query = query.where(Challenge.difficulty == difficulty)
    if challenge_type is not None:
        query = query.where(Challenge.type == challenge_type)
    return db.execute(query.order_by(desc(Challenge.created_at), desc(Challenge.id))).scalars().all()


def update_challenge(db: Session, challenge: Challenge, **data) -> Challenge:
    for key, value in data.items():
        setattr(challenge, key, value)
    db.commit()
    db.refresh(challenge)
    return challenge


def activate_challenge(db: Session, challenge: Challenge) -> Challenge:
    now = utcnow()
    challenge.status = ChallengeStatus.ACTIVE
    challenge.start_date = now
    challenge.end_date = now + timedelta(days=challenge.duration or 1)
    db.commit()
    db.refresh(challenge)
    return challenge


def delete_challenge(db: Session, challenge: Challenge) -> None:
    db.delete(challenge)
    db.commit()


# Счётчик участников меняется только атомарным UPDATE, никогда не пересчитывается
def increment_participants(db: Session, challenge_id: int) -> None:
    db.execute(
        update(Challenge)
        .where(Challenge.id == challenge_id)
        .values(current_participants=Challenge.current_participants + 1)
    )
    db.commit()


def decrement_participants(db: Session, challenge_id: int) -> None:
    db.execute(
        update(Challenge)
        .where(Challenge.id == challenge_id, Challenge.current_participants > 0)
        .values(current_participants=Challenge.current_participants - 1)
    )
    db.commit()


def is_full(challenge: Challenge) -> bool:
    return bool(challenge.max_participants) and challenge.current_participants >= challenge.max_participants

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select, update, insert, delete, func, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth import get_password_hash, verify_password
from database import utcnow
from exceptions import ConflictError
from models import User, UserRole, user_badges, user_friends

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def create_user(
    db: Session,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: UserRole = UserRole.USER,
) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=True,
        total_score=0,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("User already exists or invalid data")
    db.refresh(user)
    return user


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


def update_user(db: Session, user: User, **fields) -> User:
    for key, value in fields.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: User) -> None:
    db.delete(user)
    db.commit()


def find_super_admin(db: Session) -> Optional[User]:
    return db.execute(
        select(User).where(User.role == UserRole.SUPER_ADMIN).limit(1)
    ).scalar_one_or_none()


def _filter_users(query, role: Optional[UserRole], is_active: Optional[bool]):
    if role is not None:
        query = query.where(User.role == role)
    if is_active is not None:
        query = query.where(User.is_active == is_active)
    return query


def list_users(
    db: Session,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    limit: int = 20,
    skip: int = 0,
) -> List[User]:
    query = _filter_users(select(User), role, is_active)
    return db.execute(
        query.order_by(desc(User.created_at), desc(User.id)).offset(skip).limit(limit)
    ).scalars().all()


def count_filtered_users(
    db: Session, role: Optional[UserRole] = None, is_active: Optional[bool] = None
) -> int:
    query = _filter_users(select(func.count()).select_from(User), role, is_active)
    return db.execute(query).scalar() or 0


def count_users(db: Session) -> Dict[str, int]:
    total = db.execute(select(func.count()).select_from(User)).scalar() or 0
    active = db.execute(
        select(func.count()).select_from(User).where(User.is_active == True)
    ).scalar() or 0
    by_role = dict(
        db.execute(select(User.role, func.count(User.id)).group_by(User.role)).all()
    )
    return {
        "total_users": total,
        "active_users": active,
        "inactive_users": total - active,
        "super_admins": by_role.get(UserRole.SUPER_ADMIN, 0),
        "gym_owners": by_role.get(UserRole.GYM_OWNER, 0),
        "regular_users": by_role.get(UserRole.USER, 0),
    }


def get_leaderboard(db: Session, limit: int = 10) -> List[User]:
    return db.execute(
        select(User)
        .where(User.is_active == True)
        .order_by(desc(User.total_score), User.id)
        .limit(limit)
    ).scalars().all()


# ========== БЕЙДЖИ И ОЧКИ ==========
def has_badge(db: Session, user_id: int, badge_id: int) -> bool:
    return db.execute(
        select(user_badges.c.badge_id).where(
            user_badges.c.user_id == user_id,
            user_badges.c.badge_id == badge_id
        )
    ).first() is not None


def add_badge(db: Session, user_id: int, badge_id: int) -> bool:
    """Добавляет бейдж в множество пользователя. False, если он уже был."""
    if has_badge(db, user_id, badge_id):
        return False
    try:
        db.execute(insert(user_badges).values(user_id=user_id, badge_id=badge_id))
        db.commit()
    except IntegrityError:
        # параллельная выдача того же бейджа
        db.rollback()
        return False
    return True


def increment_score(db: Session, user_id: int, points: int) -> None:
    if not points:
        return
    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(total_score=User.total_score + points)
    )
    db.commit()


def record_challenge_completion(db: Session, user_id: int, calories: int) -> None:
    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(
            challenges_completed=User.challenges_completed + 1,
            total_calories_burned=User.total_calories_burned + (calories or 0),
            last_activity_date=utcnow(),
        )
    )
    db.commit()


def next_streak(last_activity: Optional[datetime], current_streak: int, now: datetime) -> int:
    """Серия дней подряд с активностью (по календарным дням UTC)."""
    if last_activity is None:
        return 1
    gap = (now.date() - last_activity.date()).days
    if gap <= 0:
        return max(current_streak, 1)
    if gap == 1:
        return current_streak + 1
    return 1


def record_activity(db: Session, user: User, now: Optional[datetime] = None) -> User:
    now = now or utcnow()
    user.streak_days = next_streak(user.last_activity_date, user.streak_days or 0, now)
    user.last_activity_date = now
    db.commit()
    db.refresh(user)
    return user


# ========== ДРУЗЬЯ ==========
def is_friend(db: Session, user_id: int, friend_id: int) -> bool:
    return db.execute(
        select(user_friends.c.friend_id).where(
            user_friends.c.user_id == user_id,
            user_friends.c.friend_id == friend_id
        )
    ).first() is not None


def add_friend(db: Session, user: User, friend: User) -> User:
    if not is_friend(db, user.id, friend.id):
        try:
            db.execute(insert(user_friends).values(user_id=user.id, friend_id=friend.id))
            db.commit()
        except IntegrityError:
            db.rollback()
    db.refresh(user)
    return user


def remove_friend(db: Session, user: User, friend_id: int) -> bool:
    result = db.execute(
        delete(user_friends).where(
            user_friends.c.user_id == user.id,
            user_friends.c.friend_id == friend_id
        )
    )
    db.commit()
    db.refresh(user)
    return result.rowcount > 0


def get_friends(db: Session, user: User) -> List[User]:
    return db.execute(
        select(User)
        .join(user_friends, user_friends.c.friend_id == User.id)
        .where(user_friends.c.user_id == user.id, User.is_active == True)
        .order_by(User.id)
    ).scalars().all()


def get_friend_ids(db: Session, user_id: int) -> set:
    return set(
        db.execute(
            select(user_friends.c.friend_id)
            .join(User, User.id == user_friends.c.friend_id)
            .where(user_friends.c.user_id == user_id, User.is_active == True)
        ).scalars().all()
    )


# ========== ЗАЛЫ ==========
def assign_to_gym(db: Session, user: User, gym_id: Optional[int]) -> User:
    user.gym_id = gym_id
    db.commit()
    db.refresh(user)
    return user


def get_users_by_gym(db: Session, gym_id: int) -> List[User]:
    return db.execute(
        select(User).where(User.gym_id == gym_id).order_by(User.id)
    ).scalars().all()

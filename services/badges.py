from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exceptions import ConflictError
from models import Badge, BadgeType


def get_all_badges(db: Session) -> List[Badge]:
    return db.execute(select(Badge).order_by(Badge.name)).scalars().all()


def get_active_badges(db: Session) -> List[Badge]:
    return db.execute(
        select(Badge).where(Badge.is_active == True).order_by(Badge.name)
    ).scalars().all()


def get_badges_by_type(db: Session, badge_type: BadgeType) -> List[Badge]:
    return db.execute(
        select(Badge)
        .where(Badge.type == badge_type, Badge.is_active == True)
        .order_by(Badge.name)
    ).scalars().all()


def get_badge(db: Session, badge_id: int) -> Optional[Badge]:
    return db.get(Badge, badge_id)


def get_badges_by_ids(db: Session, badge_ids) -> List[Badge]:
    if not badge_ids:
        return []
    return db.execute(select(Badge).where(Badge.id.in_(badge_ids))).scalars().all()


def _commit_unique(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Badge with this name already exists")


def create_badge(db: Session, created_by: int, **data) -> Badge:
    badge = Badge(created_by=created_by, is_active=True, **data)
    db.add(badge)
    _commit_unique(db)
    db.refresh(badge)
    return badge


def update_badge(db: Session, badge: Badge, **data) -> Badge:
    for key, value in data.items():
        setattr(badge, key, value)
    _commit_unique(db)
    db.refresh(badge)
    return badge


def toggle_badge_status(db: Session, badge: Badge) -> Badge:
    badge.is_active = not badge.is_active
    db.commit()
    db.refresh(badge)
    return badge


def delete_badge(db: Session, badge: Badge) -> None:
    db.delete(badge)
    db.commit()

import logging
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from config import SESSION_TTL_DAYS
from database import utcnow
from models import User, UserSession

logger = logging.getLogger(__name__)


def create_session(db: Session, user: User) -> UserSession:
    session = UserSession(
        id=secrets.token_hex(32),
        user_id=user.id,
        expires_at=utcnow() + timedelta(days=SESSION_TTL_DAYS),
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def find_active_session(db: Session, session_id: str) -> Optional[UserSession]:
    if not session_id:
        return None
    return db.execute(
        select(UserSession).where(
            UserSession.id == session_id,
            UserSession.expires_at > utcnow()
        )
    ).scalar_one_or_none()


def delete_session(db: Session, session_id: str) -> bool:
    result = db.execute(delete(UserSession).where(UserSession.id == session_id))
    db.commit()
    return result.rowcount > 0


def clean_expired_sessions(db: Session) -> int:
    result = db.execute(delete(UserSession).where(UserSession.expires_at < utcnow()))
    db.commit()
    if result.rowcount:
        logger.info("Removed %d expired sessions", result.rowcount)
    return result.rowcount

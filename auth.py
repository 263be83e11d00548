import logging
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database import get_db
from models import User, UserRole, UserSession
from services import sessions as session_service

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


# ========== ПАРОЛИ ==========
def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # битый хеш в базе
        return False


# ========== СЕССИИ ==========
async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> UserSession:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    session = session_service.find_active_session(db, credentials.credentials)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not session.user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account deactivated",
        )
    return session


async def get_current_user(session: UserSession = Depends(get_current_session)) -> User:
    return session.user


# ========== РОЛИ ==========
def require_roles(*allowed_roles: UserRole):
    """Зависимость FastAPI: пропускает только пользователей с одной из ролей."""

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            logger.debug(
                "Role check failed for %s: %s not in %s",
                current_user.email, current_user.role, allowed_roles
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return current_user

    return role_checker


get_super_admin = require_roles(UserRole.SUPER_ADMIN)
get_admin_or_gym_owner = require_roles(UserRole.SUPER_ADMIN, UserRole.GYM_OWNER)
get_any_user = require_roles(UserRole.SUPER_ADMIN, UserRole.GYM_OWNER, UserRole.USER)

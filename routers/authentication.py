from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from auth import get_current_session, get_current_user
from database import get_db
from models import User, UserSession
from schemas import LoginRequest, LoginResponse, Message, UserCreate, UserRead, UserSummary
from services import sessions as session_service
from services import users as user_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    user = user_service.authenticate(db, credentials.email, credentials.password)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials or account deactivated"
        )

    session = session_service.create_session(db, user)
    return LoginResponse(
        session_id=session.id,
        expires_at=session.expires_at,
        user=UserSummary.model_validate(user),
    )


@router.post("/register", response_model=UserSummary, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: Session = Depends(get_db)):
    if user_service.get_user_by_email(db, user_data.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    return user_service.create_user(
        db,
        email=user_data.email,
        password=user_data.password,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
    )


@router.get("/me", response_model=UserRead)
async def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/logout", response_model=Message)
async def logout(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    session_service.delete_session(db, session.id)
    return {"message": "Logged out successfully"}

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

import badge_engine
from auth import get_any_user, get_super_admin
from database import get_db
from models import Badge, BadgeType, User
from schemas import BadgeCreate, BadgeRead, BadgeUpdate, Message
from services import badges as badge_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/badges", tags=["badges"])


def _get_badge_or_404(db: Session, badge_id: int) -> Badge:
    badge = badge_service.get_badge(db, badge_id)
    if not badge:
        raise HTTPException(status_code=404, detail="Badge not found")
    return badge


# ========== ПУБЛИЧНЫЕ ==========
@router.get("", response_model=List[BadgeRead])
async def get_badges(db: Session = Depends(get_db)):
    return badge_service.get_all_badges(db)


@router.get("/active", response_model=List[BadgeRead])
async def get_active_badges(db: Session = Depends(get_db)):
    return badge_service.get_active_badges(db)


@router.get("/type/{badge_type}", response_model=List[BadgeRead])
async def get_badges_by_type(badge_type: BadgeType, db: Session = Depends(get_db)):
    return badge_service.get_badges_by_type(db, badge_type)


@router.get("/me/eligible", response_model=List[BadgeRead])
async def get_my_eligible_badges(
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    return badge_engine.check_user_eligibility(db, current_user)


@router.get("/{badge_id}", response_model=BadgeRead)
async def get_badge(badge_id: int, db: Session = Depends(get_db)):
    return _get_badge_or_404(db, badge_id)


# ========== АДМИН ==========
@router.post("", response_model=BadgeRead, status_code=status.HTTP_201_CREATED)
async def create_badge(
    badge_data: BadgeCreate,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    data = badge_data.model_dump()
    data["rules"] = [rule.model_dump(mode="json") for rule in badge_data.rules]
    badge = badge_service.create_badge(db, created_by=admin.id, **data)
    logger.info("Badge %r created by admin %s", badge.name, admin.id)
    return badge


@router.put("/{badge_id}", response_model=BadgeRead)
async def update_badge(
    badge_id: int,
    badge_data: BadgeUpdate,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    badge = _get_badge_or_404(db, badge_id)
    update_data = badge_data.model_dump(exclude_unset=True, exclude_none=True)
    if badge_data.rules is not None:
        update_data["rules"] = [rule.model_dump(mode="json") for rule in badge_data.rules]
    return badge_service.update_badge(db, badge, **update_data)


@router.patch("/{badge_id}/toggle-status", response_model=BadgeRead)
async def toggle_badge_status(
    badge_id: int,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    return badge_service.toggle_badge_status(db, _get_badge_or_404(db, badge_id))


@router.delete("/{badge_id}", response_model=Message)
async def delete_badge(
    badge_id: int,
    admin: User = Depends(get_super_admin),
    db: Session = Depends(get_db)
):
    badge_service.delete_badge(db, _get_badge_or_404(db, badge_id))
    return {"message": "Badge deleted successfully"}

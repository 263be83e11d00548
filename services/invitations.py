"""
Жизненный цикл приглашений в челлендж.

PENDING -> ACCEPTED | DECLINED | EXPIRED, все три состояния конечные.
Просроченные приглашения помечаются EXPIRED лениво: при чтении списка
ожидающих и при попытке принять приглашение.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, update, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import utcnow
from exceptions import NotFoundError, PermissionDeniedError, ValidationError
from models import (
    Challenge, ChallengeInvitation, ChallengeParticipation, InvitationStatus, InvitationType, User
)
from services import challenges as challenge_service
from services import participations as participation_service
from services import users as user_service

logger = logging.getLogger(__name__)


def get_invitation(db: Session, invitation_id: int) -> Optional[ChallengeInvitation]:
    return db.get(ChallengeInvitation, invitation_id)


def get_existing_invitation(
    db: Session, challenge_id: int, from_user_id: int, to_user_id: int
) -> Optional[ChallengeInvitation]:
    return db.execute(
        select(ChallengeInvitation).where(
            ChallengeInvitation.challenge_id == challenge_id,
            ChallengeInvitation.from_user_id == from_user_id,
            ChallengeInvitation.to_user_id == to_user_id,
            ChallengeInvitation.status == InvitationStatus.PENDING
        )
    ).scalar_one_or_none()


def get_received_invitations(
    db: Session, user_id: int, status: Optional[InvitationStatus] = None
) -> List[ChallengeInvitation]:
    query = select(ChallengeInvitation).where(ChallengeInvitation.to_user_id == user_id)
    if status is not None:
        query = query.where(ChallengeInvitation.status == status)
    return db.execute(
        query.order_by(desc(ChallengeInvitation.created_at), desc(ChallengeInvitation.id))
    ).scalars().all()


def get_sent_invitations(db: Session, user_id: int) -> List[ChallengeInvitation]:
    return db.execute(
        select(ChallengeInvitation)
        .where(ChallengeInvitation.from_user_id == user_id)
        .order_by(desc(ChallengeInvitation.created_at), desc(ChallengeInvitation.id))
    ).scalars().all()


def create_invitation(
    db: Session,
    challenge_id: int,
    from_user_id: int,
    to_user_id: int,
    invitation_type: InvitationType,
    message: Optional[str] = None,
) -> ChallengeInvitation:
    invitation = ChallengeInvitation(
        challenge_id=challenge_id,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        type=invitation_type,
        status=InvitationStatus.PENDING,
        message=message,
    )
    db.add(invitation)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Invitation already sent")
    db.refresh(invitation)
    return invitation


def expire_old_invitations(db: Session) -> int:
    result = db.execute(
        update(ChallengeInvitation)
        .where(
            ChallengeInvitation.status == InvitationStatus.PENDING,
            ChallengeInvitation.expires_at < utcnow()
        )
        .values(status=InvitationStatus.EXPIRED)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount:
        logger.info("Marked %d invitations as expired", result.rowcount)
    return result.rowcount


def get_pending_invitations(db: Session, user_id: int) -> List[ChallengeInvitation]:
    expire_old_invitations(db)
    return get_received_invitations(db, user_id, InvitationStatus.PENDING)


def _transition(db: Session, invitation: ChallengeInvitation, new_status: InvitationStatus) -> ChallengeInvitation:
    # Условный UPDATE: переход возможен только из PENDING
    result = db.execute(
        update(ChallengeInvitation)
        .where(
            ChallengeInvitation.id == invitation.id,
            ChallengeInvitation.status == InvitationStatus.PENDING
        )
        .values(status=new_status)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(invitation)
    if result.rowcount == 0:
        raise ValidationError("Invitation is no longer pending")
    return invitation


def _check_recipient(invitation: ChallengeInvitation, user: User) -> None:
    if invitation.to_user_id != user.id:
        raise PermissionDeniedError("This invitation is not for you")
    if invitation.status != InvitationStatus.PENDING:
        raise ValidationError("Invitation is no longer pending")


def accept_invitation(
    db: Session, invitation: ChallengeInvitation, user: User
) -> Tuple[ChallengeInvitation, ChallengeParticipation]:
    _check_recipient(invitation, user)

    # Статус не меняем, если челленджа уже нет
    if challenge_service.get_challenge(db, invitation.challenge_id) is None:
        raise NotFoundError("Challenge not found")

    if invitation.expires_at < utcnow():
        _transition(db, invitation, InvitationStatus.EXPIRED)
        raise ValidationError("Invitation has expired")

    existing = participation_service.get_user_challenge_participation(db, user.id, invitation.challenge_id)
    if existing is not None:
        # Приглашение теряет смысл, но запрос всё равно отклоняется
        _transition(db, invitation, InvitationStatus.ACCEPTED)
        raise ValidationError("You are already participating in this challenge")

    _transition(db, invitation, InvitationStatus.ACCEPTED)
    participation = participation_service.enroll(
        db, user.id, invitation.challenge_id, invited_by=invitation.from_user_id
    )
    return invitation, participation


def decline_invitation(db: Session, invitation: ChallengeInvitation, user: User) -> ChallengeInvitation:
    _check_recipient(invitation, user)
    return _transition(db, invitation, InvitationStatus.DECLINED)


# ========== ОТПРАВКА ==========
def invite_friends(
    db: Session,
    challenge: Challenge,
    sender: User,
    friend_ids: List[int],
    message: Optional[str] = None,
) -> Tuple[List[ChallengeInvitation], List[Dict[str, Any]]]:
    is_creator = challenge.created_by == sender.id
    if not is_creator and not participation_service.get_user_challenge_participation(db, sender.id, challenge.id):
        raise PermissionDeniedError("You must be the creator or participant to invite friends")

    friends = user_service.get_friend_ids(db, sender.id)
    invalid = [fid for fid in friend_ids if fid not in friends]
    if invalid:
        raise ValidationError("Some users are not your friends", {"invalid_friends": invalid})

    invitations = []
    errors = []
    # dict.fromkeys убирает дубли, сохраняя порядок
    for friend_id in dict.fromkeys(friend_ids):
        if get_existing_invitation(db, challenge.id, sender.id, friend_id):
            errors.append({"friend_id": friend_id, "error": "Invitation already sent"})
            continue
        if participation_service.get_user_challenge_participation(db, friend_id, challenge.id):
            errors.append({"friend_id": friend_id, "error": "User already participating"})
            continue
        try:
            invitations.append(
                create_invitation(
                    db, challenge.id, sender.id, friend_id, InvitationType.CHALLENGE_INVITE, message
                )
            )
        except ValidationError as exc:
            errors.append({"friend_id": friend_id, "error": exc.message})
    return invitations, errors


def challenge_user(
    db: Session,
    challenge: Challenge,
    sender: User,
    target_user_id: int,
    message: Optional[str] = None,
) -> ChallengeInvitation:
    target = user_service.get_user(db, target_user_id)
    if target is None or not target.is_active:
        raise NotFoundError("User not found")
    if target.id == sender.id:
        raise ValidationError("Cannot challenge yourself")
    if get_existing_invitation(db, challenge.id, sender.id, target.id):
        raise ValidationError("Challenge already sent to this user")
    if participation_service.get_user_challenge_participation(db, target.id, challenge.id):
        raise ValidationError("User already participating in this challenge")

    return create_invitation(
        db,
        challenge.id,
        sender.id,
        target.id,
        InvitationType.FRIEND_CHALLENGE,
        message or f"{sender.first_name} {sender.last_name} challenges you!",
    )

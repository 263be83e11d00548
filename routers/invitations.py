from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from auth import get_any_user
from database import get_db
from models import ChallengeInvitation, User
from schemas import (
    ChallengeUserRequest, InvitationAccepted, InvitationOverview, InvitationRead, InvitationsSent,
    InviteFriendsRequest, ParticipationRead
)
from services import challenges as challenge_service
from services import invitations as invitation_service

router = APIRouter(prefix="/api", tags=["invitations"])


def _get_invitation_or_404(db: Session, invitation_id: int) -> ChallengeInvitation:
    invitation = invitation_service.get_invitation(db, invitation_id)
    if not invitation:
        raise HTTPException(status_code=404, detail="Invitation not found")
    return invitation


# ========== ОТПРАВКА ==========
@router.post(
    "/challenges/{challenge_id}/invite",
    response_model=InvitationsSent,
    status_code=status.HTTP_201_CREATED
)
async def invite_friends(
    challenge_id: int,
    payload: InviteFriendsRequest,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    challenge = challenge_service.get_challenge(db, challenge_id)
    if not challenge:
        raise HTTPException(status_code=404, detail="Challenge not found")

    invitations, errors = invitation_service.invite_friends(
        db, challenge, current_user, payload.friend_ids, payload.message
    )
    return InvitationsSent(
        message="Invitations sent",
        invitations=[InvitationRead.model_validate(i) for i in invitations],
        errors=errors or None,
    )


@router.post(
    "/challenges/{challenge_id}/challenge",
    response_model=InvitationRead,
    status_code=status.HTTP_201_CREATED
)
async def challenge_user(
    challenge_id: int,
    payload: ChallengeUserRequest,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    challenge = challenge_service.get_challenge(db, challenge_id)
    if not challenge:
        raise HTTPException(status_code=404, detail="Challenge not found")
    return invitation_service.challenge_user(db, challenge, current_user, payload.user_id, payload.message)


# ========== ПОЛУЧЕННЫЕ ==========
@router.get("/invitations/pending", response_model=List[InvitationRead])
async def get_pending_invitations(
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    return invitation_service.get_pending_invitations(db, current_user.id)


@router.get("/invitations", response_model=InvitationOverview)
async def get_invitations(
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    return InvitationOverview(
        received=[InvitationRead.model_validate(i) for i in invitation_service.get_received_invitations(db, current_user.id)],
        sent=[InvitationRead.model_validate(i) for i in invitation_service.get_sent_invitations(db, current_user.id)],
    )


@router.post("/invitations/{invitation_id}/accept", response_model=InvitationAccepted)
async def accept_invitation(
    invitation_id: int,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    invitation = _get_invitation_or_404(db, invitation_id)
    invitation, participation = invitation_service.accept_invitation(db, invitation, current_user)
    return InvitationAccepted(
        message="Invitation accepted successfully",
        invitation=InvitationRead.model_validate(invitation),
        participation=ParticipationRead.model_validate(participation),
    )


@router.post("/invitations/{invitation_id}/decline", response_model=InvitationRead)
async def decline_invitation(
    invitation_id: int,
    current_user: User = Depends(get_any_user),
    db: Session = Depends(get_db)
):
    invitation = _get_invitation_or_404(db, invitation_id)
    return invitation_service.decline_invitation(db, invitation, current_user)

"""
palmmatch/api/invitations.py
FastAPI routes for match invitations.
"""

from fastapi import APIRouter, Depends

from palmmatch.core.auth import get_current_user_id
from palmmatch.features.matching import invitations
from palmmatch.models.invitation import CreateInvitationRequest

router = APIRouter(prefix="/v1/invitations", tags=["invitations"])


@router.post("")
async def create_invitation(request: CreateInvitationRequest, user_id: str = Depends(get_current_user_id)):
    invitation = await invitations.create_invitation(user_id, request.match_type, request.message)
    return {"success": True, "data": invitation.model_dump(mode="json")}


@router.get("/sent")
async def list_sent(user_id: str = Depends(get_current_user_id)):
    sent = await invitations.list_sent_invitations(user_id)
    return {"success": True, "data": [inv.model_dump(mode="json") for inv in sent]}


@router.post("/{code}/accept")
async def accept_invitation(code: str, user_id: str = Depends(get_current_user_id)):
    """
    Accept an invitation.

    Errors:
        404 invalid_code, 409 already_used, 410 expired, 400 self-accept
    """
    invitation = await invitations.accept_invitation(code, user_id)
    return {"success": True, "data": invitation.model_dump(mode="json")}


@router.get("/{code}")
async def get_invitation(code: str):
    invitation = await invitations.get_invitation(code)
    return {"success": True, "data": invitation.model_dump(mode="json")}

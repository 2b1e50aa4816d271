"""
palmmatch/api/matches.py
FastAPI routes for compatibility matches.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from palmmatch.core.auth import get_current_user_id
from palmmatch.features.matching import matches
from palmmatch.models.match import CompleteMatchRequest, CreateMatchRequest, RecordShareRequest

router = APIRouter(prefix="/v1/matches", tags=["matches"])


@router.post("")
async def create_match(request: CreateMatchRequest, user_id: str = Depends(get_current_user_id)):
    match = await matches.create_match(request.party_a, request.party_b, request.match_type, caller_id=user_id)
    return {"success": True, "data": match.model_dump(mode="json")}


@router.get("/public")
async def public_feed(limit: Optional[int] = Query(None, ge=1, le=100)):
    summaries = await matches.list_public_matches(limit)
    return {"success": True, "data": [s.model_dump(mode="json") for s in summaries]}


@router.get("/mine")
async def my_matches(user_id: str = Depends(get_current_user_id)):
    mine = await matches.list_matches_for_party(user_id)
    return {"success": True, "data": [m.model_dump(mode="json") for m in mine]}


@router.get("/{match_id}")
async def get_match(match_id: str):
    match = await matches.get_match(match_id)
    return {"success": True, "data": match.model_dump(mode="json")}


@router.post("/{match_id}/complete")
async def complete_match(match_id: str, request: CompleteMatchRequest, user_id: str = Depends(get_current_user_id)):
    match = await matches.complete_match(match_id, request.scores, request.analysis, caller_id=user_id)
    return {"success": True, "data": match.model_dump(mode="json")}


@router.post("/{match_id}/publish")
async def publish_match(match_id: str, user_id: str = Depends(get_current_user_id)):
    summary = await matches.publish_match(match_id, user_id)
    return {"success": True, "data": summary.model_dump(mode="json")}


@router.post("/{match_id}/shares")
async def record_share(match_id: str, request: RecordShareRequest, user_id: str = Depends(get_current_user_id)):
    match = await matches.record_share(match_id, user_id, request.platform)
    return {"success": True, "data": match.model_dump(mode="json")}

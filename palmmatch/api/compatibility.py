"""
palmmatch/api/compatibility.py
FastAPI routes for scoring, astrology and full compatibility checks.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from palmmatch.core.auth import get_current_user_id
from palmmatch.features.astrology.calculator import astro_compat
from palmmatch.features.compatibility.service import check_code_compatibility, compare
from palmmatch.features.scoring.engine import PalmScoringEngine
from palmmatch.models.invitation import MatchType
from palmmatch.models.reading import BirthProfile, ReadingDocument, ReadingSnapshot

router = APIRouter(prefix="/v1/compatibility", tags=["compatibility"])


class ScoreRequest(BaseModel):
    reading1: ReadingDocument
    reading2: ReadingDocument


class AstroRequest(BaseModel):
    profile1: BirthProfile
    profile2: BirthProfile


class CompareRequest(BaseModel):
    snapshot1: ReadingSnapshot
    snapshot2: ReadingSnapshot
    match_type: MatchType = MatchType.ROMANTIC


class CheckCodeRequest(BaseModel):
    code: str = Field(max_length=64)
    snapshot: ReadingSnapshot
    match_type: MatchType = MatchType.ROMANTIC


@router.post("/score")
def score_readings(request: ScoreRequest):
    scores = PalmScoringEngine.score(request.reading1, request.reading2)
    return {"success": True, "data": scores.model_dump()}


@router.post("/astro")
def astro(request: AstroRequest):
    result = astro_compat(request.profile1, request.profile2)
    return {"success": True, "data": result.model_dump(mode="json")}


@router.post("/compare")
def compare_snapshots(request: CompareRequest):
    report = compare(request.snapshot1, request.snapshot2, request.match_type)
    return {"success": True, "data": report.model_dump(mode="json")}


@router.post("/check-code")
async def check_code(request: CheckCodeRequest, user_id: str = Depends(get_current_user_id)):
    """
    Resolve a friend's code, score both readings and record the match.

    Headers:
        X-User-Id: caller identity
    """
    report = await check_code_compatibility(request.code, request.snapshot, user_id, request.match_type)
    return {"success": True, "data": report.model_dump(mode="json")}

"""
palmmatch/api/codes.py
FastAPI routes for compatibility codes.
"""

from fastapi import APIRouter, Depends

from palmmatch.core.auth import require_admin_key
from palmmatch.features.codes.service import get_code_broker
from palmmatch.models.codes import IssueCodeRequest, ResolveCodeRequest

router = APIRouter(prefix="/v1/codes", tags=["codes"])

DEGRADED_WARNING = "Saved on this device only for now; the code may not work everywhere until we reconnect."


@router.post("")
async def issue_code(request: IssueCodeRequest):
    """
    Issue a shareable compatibility code for a reading.

    Returns:
        {code, durable, expires_at}; `warning` is set when durable is false.
    """
    issued = await get_code_broker().issue(request.to_snapshot())
    data = issued.model_dump(mode="json")
    if not issued.durable:
        data["warning"] = DEGRADED_WARNING
    return {"success": True, "data": data}


@router.post("/resolve")
async def resolve_code(request: ResolveCodeRequest):
    record = await get_code_broker().resolve(request.code)
    return {
        "success": True,
        "data": {
            "code": record.code,
            "issuer_name": record.issuer_name,
            "reading_snapshot": record.reading_snapshot.model_dump(mode="json"),
            "uses": record.uses,
            "expires_at": record.expires_at.isoformat(),
            "durable": record.durable,
        },
    }


@router.post("/sweep", dependencies=[Depends(require_admin_key)])
async def sweep_codes():
    deleted = await get_code_broker().sweep_expired()
    return {"success": True, "data": {"deleted": deleted}}


@router.delete("/{code}", dependencies=[Depends(require_admin_key)])
async def deactivate_code(code: str):
    await get_code_broker().deactivate(code)
    return {"success": True, "data": {"active": False}}

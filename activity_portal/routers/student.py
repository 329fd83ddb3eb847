from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..core.redis import allow_request
from ..core.upstream import ApiClient
from ..deps import client_ip, get_api, require_student
from ..schemas import RedeemForm, RedemptionOutcome, ReviewSubmit
from ..services import redemption

router = APIRouter(prefix="/student", tags=["student"], dependencies=[Depends(require_student)])

@router.post("/redeem", response_model=RedemptionOutcome)
async def redeem(payload: RedeemForm, request: Request, api: ApiClient = Depends(get_api)):
    if not await allow_request(client_ip(request), "redeem"):
        raise HTTPException(status_code=429, detail="Too many requests")
    return await redemption.redeem(api, payload.code)

@router.post("/review", response_model=RedemptionOutcome)
async def submit_review(payload: ReviewSubmit, api: ApiClient = Depends(get_api)):
    return await redemption.submit_review(api, payload)

@router.get("/pending-reviews")
async def pending_reviews(api: ApiClient = Depends(get_api)):
    return await redemption.pending_reviews(api)

@router.get("/progress")
async def progress(api: ApiClient = Depends(get_api)):
    return (await api.get("/student/progress")).data or {}

@router.get("/serial-history")
async def serial_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    api: ApiClient = Depends(get_api),
):
    return (await api.get("/student/serial-history", params={"page": page, "limit": limit})).data or {}

@router.get("/upcoming-activities")
async def upcoming_activities(api: ApiClient = Depends(get_api)):
    return (await api.get("/student/upcoming-activities")).data or {}

from __future__ import annotations
from fastapi import APIRouter, Depends, Query

from ..core.upstream import ApiClient
from ..deps import get_api, require_staff
from ..schemas import (
    BulkSendRequest, BulkSendResult, SendResult, SerialBoard, SerialGenerateRequest,
    SerialRead, SerialSendRequest,
)
from ..services import serials as svc

router = APIRouter(prefix="/serials", tags=["serials"], dependencies=[Depends(require_staff)])

@router.get("/board", response_model=SerialBoard)
async def board(api: ApiClient = Depends(get_api)):
    return await svc.load_board(api)

@router.post("/send", response_model=SendResult)
async def send_one(payload: SerialSendRequest, api: ApiClient = Depends(get_api)):
    return await svc.send_serial(api, payload)

@router.post("/activities/{activity_id}/send-all", response_model=BulkSendResult)
async def send_all(activity_id: str, payload: BulkSendRequest | None = None, api: ApiClient = Depends(get_api)):
    method = payload.method if payload else "email"
    return await svc.send_all(api, activity_id, method)

@router.get("", response_model=list[SerialRead])
async def list_serials(
    activity_id: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    api: ApiClient = Depends(get_api),
):
    params = {k: v for k, v in {"activity_id": activity_id, "status": status_filter}.items() if v}
    return await svc.list_serials(api, params or None)

@router.post("/generate", status_code=201)
async def generate(payload: SerialGenerateRequest, api: ApiClient = Depends(get_api)):
    return await svc.generate_serials(api, payload)

@router.get("/stats")
async def stats(api: ApiClient = Depends(get_api)):
    return await svc.serial_stats(api)

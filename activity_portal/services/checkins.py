from __future__ import annotations
import logging

from ..core.upstream import ApiClient, UpstreamError
from ..models import IdentifierType
from ..schemas import ActivityRead, CheckinForm, CheckinPage, CheckinResult
from .validation import FormError, is_email, is_username, require

logger = logging.getLogger(__name__)

CHECKIN_OK = "ลงทะเบียนสำเร็จ! กรุณารอการส่งอีเมลจากแอดมินเพื่อยืนยันการเข้าร่วมกิจกรรม"

_REQUIRED_IDENTIFIER = {
    IdentifierType.EMAIL: "กรุณากรอกอีเมลของคุณ",
    IdentifierType.USERNAME: "กรุณากรอกชื่อผู้ใช้ของคุณ",
    IdentifierType.STUDENT_CODE: "กรุณากรอกรหัสนิสิตของคุณ",
}

def validate_checkin(form: CheckinForm) -> CheckinForm:
    """Local checks, in the order the form reports them. Raises FormError."""
    identifier = require(form.identifier_value, _REQUIRED_IDENTIFIER[form.identifier_type])
    name = require(form.name, "กรุณากรอกชื่อ-นามสกุลของคุณ")
    student_code = require(form.student_code, "กรุณากรอกรหัสนิสิตของคุณ")

    if form.identifier_type == IdentifierType.EMAIL and not is_email(identifier):
        raise FormError("กรุณากรอกอีเมลที่ถูกต้อง")
    if form.identifier_type == IdentifierType.USERNAME and not is_username(identifier):
        raise FormError("ชื่อผู้ใช้ต้องเป็นตัวอักษร ตัวเลข และ _ เท่านั้น (3-50 ตัวอักษร)")

    return CheckinForm(
        identifier_type=form.identifier_type,
        identifier_value=identifier,
        name=name,
        student_code=student_code,
    )

async def load_checkin_page(api: ApiClient, slug: str) -> CheckinPage:
    try:
        res = await api.get(f"/public/activity/{slug}")
    except UpstreamError as e:
        if e.status_code == 404:
            raise UpstreamError(404, "Activity not found") from e
        raise
    if not res.data:
        raise UpstreamError(404, "Activity not found")
    return CheckinPage(slug=slug, activity=ActivityRead.model_validate(res.data))

async def submit_checkin(api: ApiClient, slug: str, form: CheckinForm) -> CheckinResult:
    clean = validate_checkin(form)
    # duplicate check-ins come back as UpstreamError carrying the server's message
    res = await api.post(f"/public/checkin/{slug}", json=clean.model_dump(mode="json"))
    data = res.data or {}
    logger.info(f"Check-in recorded for activity slug {slug}")
    return CheckinResult(
        message=CHECKIN_OK,
        checkin_id=data.get("checkin_id"),
        activity_title=data.get("activity_title"),
        identifier_value=data.get("identifier_value", clean.identifier_value),
    )

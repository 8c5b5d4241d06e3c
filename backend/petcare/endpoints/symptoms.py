# petcare/endpoints/symptoms.py
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Query, Response, UploadFile
from sqlalchemy.orm import Session

from petcare.config import ALLOWED_IMAGE_TYPES, HISTORY_DEFAULT_LIMIT, MAX_IMAGE_BYTES
from petcare.database import get_db
from petcare.errors import (
    ConfigurationError, InvalidCaseError, ProviderRateLimitError, QuotaExceededError,
    TriageError, user_message_for,
)
from petcare.models.triage_models import AdviceRequest, EmergencyRequest, Identity, SymptomCase
from petcare.services.advice_service import assess_emergency, get_health_advice
from petcare.services.history_store import SqlHistoryStore
from petcare.services.model_invoker import get_model_invoker
from petcare.services.triage_service import TriagePipeline
from petcare.services.usage_gate import get_usage_gate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/symptoms", tags=["Symptoms"])

PROVIDER_RETRY_AFTER_SECONDS = 300


# ---------------------------
# Dependencies
# ---------------------------
def get_identity(
    response: Response,
    x_user_id: Optional[str] = Header(None),
    x_guest_session: Optional[str] = Header(None),
) -> Identity:
    """Authentication happens upstream; a verified user id arrives as X-User-Id."""
    if x_user_id and x_user_id.strip():
        return Identity(key=x_user_id.strip(), is_guest=False)
    guest = (x_guest_session or "").strip() or f"guest_{uuid.uuid4().hex}"
    response.headers["X-Guest-Session"] = guest
    return Identity(key=guest, is_guest=True)


def get_history_store(db: Session = Depends(get_db)) -> SqlHistoryStore:
    return SqlHistoryStore(db)


def get_pipeline(
    history_store: SqlHistoryStore = Depends(get_history_store),
    invoker=Depends(get_model_invoker),
    usage_gate=Depends(get_usage_gate),
) -> TriagePipeline:
    return TriagePipeline(invoker, usage_gate, history_store)


# ---------------------------
# Helpers
# ---------------------------
def _read_image(image: Optional[UploadFile]):
    if image is None or not image.filename:
        return None, None
    mime_type = (image.content_type or "").lower()
    if mime_type not in ALLOWED_IMAGE_TYPES:
        raise InvalidCaseError("Invalid file type. Only JPEG, PNG, GIF, and WebP images are allowed.")
    data = image.file.read(MAX_IMAGE_BYTES + 1)
    if len(data) > MAX_IMAGE_BYTES:
        raise InvalidCaseError(f"File size too large. Maximum size is {MAX_IMAGE_BYTES // (1024 * 1024)}MB.")
    return (data or None), mime_type


def _to_http_error(e: TriageError) -> HTTPException:
    message = user_message_for(e)
    if isinstance(e, QuotaExceededError):
        return HTTPException(status_code=429, detail={
            "message": message,
            "usageCount": e.count,
            "limit": e.limit,
            "remaining": e.remaining,
            "registerRequired": True,
        })
    if isinstance(e, InvalidCaseError):
        return HTTPException(status_code=400, detail={"message": message})
    if isinstance(e, ProviderRateLimitError):
        return HTTPException(
            status_code=503,
            detail={"message": message, "retryAfterSeconds": PROVIDER_RETRY_AFTER_SECONDS},
            headers={"Retry-After": str(PROVIDER_RETRY_AFTER_SECONDS)},
        )
    if isinstance(e, ConfigurationError):
        return HTTPException(status_code=503, detail={"message": message})
    return HTTPException(status_code=502, detail={"message": message})


# ---------------------------
# Symptom check
# ---------------------------
@router.post("/check")
def check_symptoms(
    pet_type: Optional[str] = Form(None, alias="petType"),
    symptoms: Optional[str] = Form(None),
    duration: Optional[str] = Form(None),
    severity: Optional[str] = Form(None),
    additional_info: Optional[str] = Form(None, alias="additionalInfo"),
    image: Optional[UploadFile] = File(None),
    identity: Identity = Depends(get_identity),
    pipeline: TriagePipeline = Depends(get_pipeline),
):
    if not (pet_type or "").strip() or not (symptoms or "").strip():
        raise HTTPException(status_code=400, detail={"message": "Pet type and symptoms are required"})

    try:
        image_bytes, image_mime_type = _read_image(image)
        case = SymptomCase(
            pet_type=pet_type.strip(),
            symptoms=symptoms.strip(),
            duration=duration,
            severity=severity,
            additional_info=additional_info,
            image_bytes=image_bytes,
            image_mime_type=image_mime_type,
        )
        outcome = pipeline.analyze(case, identity)
    except TriageError as e:
        logger.error(f"❌ Symptom check failed for {identity.key}: {e.__class__.__name__}: {e}")
        raise _to_http_error(e)

    return {
        "success": True,
        "data": outcome.model_dump(by_alias=True, mode="json"),
        "isGuest": identity.is_guest,
        "links": {"findVet": "/api/vets", "bookAppointment": "/api/appointments"},
    }


# ---------------------------
# Usage & history
# ---------------------------
@router.get("/usage")
def usage_stats(identity: Identity = Depends(get_identity), usage_gate=Depends(get_usage_gate)):
    if not identity.is_guest:
        return {"success": True, "isGuest": False, "unlimited": True}
    status = usage_gate.status(identity.key)
    return {
        "success": True,
        "isGuest": True,
        "usageCount": status.count,
        "limit": status.limit,
        "remainingUses": status.remaining,
        "hasReachedLimit": status.exhausted,
        "message": "Sign in to get unlimited access",
    }


@router.get("/history")
def symptom_history(
    limit: int = Query(HISTORY_DEFAULT_LIMIT, ge=1, le=100),
    identity: Identity = Depends(get_identity),
    history_store: SqlHistoryStore = Depends(get_history_store),
):
    if identity.is_guest:
        raise HTTPException(status_code=401, detail={"message": "Authentication required to view history"})
    entries = history_store.list_recent(identity.key, limit)
    return {
        "success": True,
        "data": [entry.model_dump(by_alias=True, mode="json") for entry in entries],
        "count": len(entries),
    }


# ---------------------------
# Advice & emergency
# ---------------------------
@router.post("/advice")
def health_advice(req: AdviceRequest, invoker=Depends(get_model_invoker)):
    if not req.question.strip():
        raise HTTPException(status_code=400, detail={"message": "Question is required"})
    try:
        return {"success": True, "advice": get_health_advice(invoker, req.question.strip(), req.pet_type)}
    except TriageError as e:
        logger.error(f"❌ Health advice failed: {e}")
        raise _to_http_error(e)


@router.post("/emergency")
def emergency_assessment(req: EmergencyRequest, invoker=Depends(get_model_invoker)):
    if not req.pet_type.strip() or not req.symptoms.strip():
        raise HTTPException(status_code=400, detail={"message": "Pet type and symptoms are required"})
    try:
        assessment = assess_emergency(invoker, req.pet_type.strip(), req.symptoms.strip(), req.vital_signs)
    except TriageError as e:
        logger.error(f"❌ Emergency assessment failed: {e}")
        raise _to_http_error(e)
    return {
        "success": True,
        "assessment": assessment,
        "emergencyVets": {"message": "Find emergency veterinary clinics near you", "endpoint": "/api/vets?emergency=true"},
    }

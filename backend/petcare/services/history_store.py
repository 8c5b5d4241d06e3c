# petcare/services/history_store.py
import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from petcare.errors import ExternalServiceError
from petcare.models.triage import SymptomCheck
from petcare.models.triage_models import (
    Condition, HistoryEntry, SymptomCase, TriageResult, follow_up_for,
)

logger = logging.getLogger(__name__)


def _to_entry(row: SymptomCheck) -> HistoryEntry:
    case = SymptomCase(
        pet_type=row.pet_type,
        symptoms=row.symptoms,
        duration=row.duration,
        severity=row.severity_hint,
        additional_info=row.additional_info,
        image_bytes=row.image_bytes,
        image_mime_type=row.image_mime_type,
    )
    result = TriageResult(
        urgency_level=row.urgency_level,
        summary=row.summary or "",
        conditions=[Condition.model_validate(c) for c in row.conditions or []],
        recommendations=row.recommendations or [],
        raw_model_text=row.raw_model_text or "",
        disclaimer=row.disclaimer,
    )
    return HistoryEntry(
        id=row.id,
        owner_id=row.owner_id,
        case=case,
        result=result,
        follow_up_action=row.follow_up_action,
        created_at=row.created_at,
    )


class SqlHistoryStore:
    """Append-only log of analysed cases. No update or delete; removing history
    is an administrative job done directly against the database."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, owner_id: str, case: SymptomCase, result: TriageResult) -> HistoryEntry:
        row = SymptomCheck(
            owner_id=owner_id,
            created_at=datetime.now(timezone.utc),
            pet_type=case.pet_type,
            symptoms=case.symptoms,
            duration=case.duration,
            severity_hint=case.severity,
            additional_info=case.additional_info,
            image_mime_type=case.image_mime_type if case.has_image else None,
            image_bytes=case.image_bytes if case.has_image else None,
            urgency_level=result.urgency_level,
            summary=result.summary,
            conditions=[c.model_dump(mode="json") for c in result.conditions],
            recommendations=list(result.recommendations),
            raw_model_text=result.raw_model_text,
            disclaimer=result.disclaimer,
            follow_up_action=follow_up_for(result.urgency_level),
        )
        self.db.add(row)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save symptom check for {owner_id}: {e}")
            raise ExternalServiceError(f"History store unavailable: {e}") from e
        self.db.refresh(row)
        logger.info(f"💾 Symptom check {row.id} saved for {owner_id} (urgency={row.urgency_level})")
        return _to_entry(row)

    def list_recent(self, owner_id: str, limit: int = 20) -> List[HistoryEntry]:
        rows = (
            self.db.query(SymptomCheck)
            .filter(SymptomCheck.owner_id == owner_id)
            .order_by(SymptomCheck.created_at.desc(), SymptomCheck.id.desc())
            .limit(max(0, limit))
            .all()
        )
        return [_to_entry(row) for row in rows]

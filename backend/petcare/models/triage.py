# petcare/models/triage.py
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, LargeBinary, event
from datetime import datetime, timezone
from petcare.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class SymptomCheck(Base):
    """One analysed symptom case. Rows are an audit log: inserted once, never updated."""

    __tablename__ = "symptom_check"
    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(128), nullable=False, index=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False, index=True)

    # submitted case
    pet_type = Column(String(50), nullable=False)
    symptoms = Column(Text, nullable=False)
    duration = Column(String(100), nullable=True)
    severity_hint = Column(String(50), nullable=True)
    additional_info = Column(Text, nullable=True)
    image_mime_type = Column(String(50), nullable=True)
    image_bytes = Column(LargeBinary, nullable=True)

    # normalized result
    urgency_level = Column(String(20), nullable=False, index=True)
    summary = Column(Text, nullable=True)
    conditions = Column(JSON, nullable=False)
    recommendations = Column(JSON, nullable=False)
    raw_model_text = Column(Text, nullable=True)
    disclaimer = Column(Text, nullable=False)
    follow_up_action = Column(String(20), nullable=False)


@event.listens_for(SymptomCheck, "before_update")
def _refuse_update(mapper, connection, target):
    raise ValueError(f"SymptomCheck {target.id} is append-only")

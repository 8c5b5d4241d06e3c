# petcare/models/triage_models.py
from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, Optional, Literal, Tuple
from datetime import datetime

UrgencyLevel = Literal["low", "medium", "high", "emergency"]
FollowUpAction = Literal["monitor", "schedule", "emergency"]

DISCLAIMER = (
    "This analysis is for educational purposes only and is not a veterinary diagnosis. "
    "Please consult a licensed veterinarian for proper diagnosis and treatment."
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class SymptomCase(_Frozen):
    pet_type: str
    symptoms: str
    duration: Optional[str] = None
    severity: Optional[str] = None
    additional_info: Optional[str] = None
    image_bytes: Optional[bytes] = Field(default=None, exclude=True, repr=False)
    image_mime_type: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return bool(self.image_bytes)


class Condition(_Frozen):
    name: str
    severity: UrgencyLevel
    confidence: Optional[float] = None
    description: str = ""
    recommended_actions: Tuple[str, ...] = ()


class TriageResult(_Frozen):
    urgency_level: UrgencyLevel
    summary: str = ""
    conditions: Tuple[Condition, ...] = Field(default=(), max_length=3)
    recommendations: Tuple[str, ...] = ()
    raw_model_text: str = ""
    disclaimer: str = DISCLAIMER


class Identity(_Frozen):
    key: str
    is_guest: bool


class UsageStatus(_Frozen):
    identity: str
    count: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    @property
    def exhausted(self) -> bool:
        return self.count >= self.limit


class HistoryEntry(_Frozen):
    id: int
    owner_id: str
    case: SymptomCase
    result: TriageResult
    follow_up_action: FollowUpAction
    created_at: datetime


class TriageOutcome(_Frozen):
    result: TriageResult
    timestamp: datetime
    history_id: int
    follow_up_action: FollowUpAction
    care_tips: Tuple[str, ...] = ()

    @computed_field
    @property
    def disclaimer(self) -> str:
        return self.result.disclaimer

    @computed_field(alias="rawText")
    @property
    def raw_text(self) -> str:
        return self.result.raw_model_text


def follow_up_for(urgency: str) -> FollowUpAction:
    if urgency == "emergency":
        return "emergency"
    if urgency == "high":
        return "schedule"
    return "monitor"


# ------------------------------- Request bodies -------------------------------
class AdviceRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question: str
    pet_type: Optional[str] = None


class EmergencyRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    pet_type: str
    symptoms: str
    vital_signs: Optional[Dict[str, Any]] = None

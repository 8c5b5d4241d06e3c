# petcare/services/result_normalizer.py
import logging
import math
from typing import Any, Dict, Optional, Tuple

from petcare.models.triage_models import Condition, TriageResult, DISCLAIMER

logger = logging.getLogger(__name__)

MAX_CONDITIONS = 3
DEFAULT_URGENCY = "medium"

# ------------------------------- Enum mapping -------------------------------
_URGENCY_MAP = {
    "critical": "emergency",
    "emergency": "emergency",
    "high": "high",
    "moderate": "medium",
    "medium": "medium",
    "low": "low",
}

# ------------------------------- Field aliases -------------------------------
# Priority order: the first key holding a non-empty value wins.
FIELD_ALIASES = {
    "urgency_level": ("urgencyLevel", "urgency"),
    "summary": ("summary",),
    "conditions": ("conditions", "possibleConditions"),
    "name": ("name",),
    "severity": ("severity", "urgency"),
    "confidence": ("confidence",),
    "description": ("description", "summary"),
    "recommended_actions": ("recommendedActions", "immediateCare", "recommendations"),
    "recommendations": ("recommendations",),
}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


def lookup(data: Dict[str, Any], field: str) -> Any:
    for key in FIELD_ALIASES[field]:
        value = data.get(key)
        if not _is_empty(value):
            return value
    return None


def map_urgency(value: Any) -> str:
    """Map a free-form urgency word onto low/medium/high/emergency."""
    if not isinstance(value, str):
        return DEFAULT_URGENCY
    return _URGENCY_MAP.get(value.strip().lower(), DEFAULT_URGENCY)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _string_list(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(item.strip() for item in value if isinstance(item, str) and item.strip())


def _confidence(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    return value if math.isfinite(value) else None


def _normalize_condition(entry: Any, index: int, overall: str) -> Condition:
    if isinstance(entry, str):
        entry = {"name": entry}
    if not isinstance(entry, dict):
        entry = {}

    severity = lookup(entry, "severity")
    return Condition(
        name=_text(lookup(entry, "name")) or f"Condition {index + 1}",
        severity=map_urgency(severity) if severity is not None else overall,
        confidence=_confidence(lookup(entry, "confidence")),
        description=_text(lookup(entry, "description")),
        recommended_actions=_string_list(lookup(entry, "recommended_actions")),
    )


def _build(parsed: Any, raw_text: str) -> TriageResult:
    data = parsed if isinstance(parsed, dict) else {}
    overall = map_urgency(lookup(data, "urgency_level"))

    conditions = lookup(data, "conditions")
    if not isinstance(conditions, list):
        conditions = []

    return TriageResult(
        urgency_level=overall,
        summary=_text(lookup(data, "summary")),
        conditions=tuple(
            _normalize_condition(entry, idx, overall)
            for idx, entry in enumerate(conditions[:MAX_CONDITIONS])
        ),
        recommendations=_string_list(lookup(data, "recommendations")),
        raw_model_text=raw_text if isinstance(raw_text, str) else "",
        disclaimer=DISCLAIMER,
    )


def normalize_result(parsed: Any, raw_text: str = "") -> TriageResult:
    """Turn whatever the model produced into a complete TriageResult.

    Never raises: every field has a fallback, so callers never have to
    branch on a missing value.
    """
    try:
        return _build(parsed, raw_text)
    except Exception as e:
        logger.error(f"❌ Normalization fell back to defaults: {e}")
        return TriageResult(
            urgency_level=DEFAULT_URGENCY,
            raw_model_text=raw_text if isinstance(raw_text, str) else "",
            disclaimer=DISCLAIMER,
        )

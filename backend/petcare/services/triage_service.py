import logging
from datetime import datetime, timezone
from typing import List

from petcare.errors import ExternalServiceError
from petcare.models.triage_models import (
    Identity, SymptomCase, TriageOutcome, TriageResult, follow_up_for,
)
from petcare.services.prompt_composer import compose_prompt
from petcare.services.response_parser import parse_model_output
from petcare.services.result_normalizer import normalize_result

# ------------------------------- Logging -------------------------------
logger = logging.getLogger(__name__)

MAX_CARE_TIPS = 10


# ------------------------------- Care tips -------------------------------
def collect_care_tips(result: TriageResult, limit: int = MAX_CARE_TIPS) -> List[str]:
    tips = []
    for condition in result.conditions:
        tips.extend(condition.recommended_actions)
    tips.extend(result.recommendations)
    return tips[:limit]


# ------------------------------- Main Triage Pipeline -------------------------------
class TriagePipeline:
    """Symptom case in, normalized and persisted triage result out.

    Guests go through the usage gate: the per-identity guard is held from the
    quota check until the counter is incremented, and the counter only moves
    when a result was produced and stored. Any failure leaves both the history
    and the counter untouched. A counter that fails to increment after the
    result is stored is logged and the outcome is still returned.
    """

    def __init__(self, invoker, usage_gate, history_store):
        self.invoker = invoker
        self.usage_gate = usage_gate
        self.history_store = history_store

    def analyze(self, case: SymptomCase, identity: Identity) -> TriageOutcome:
        logger.info("=== Incoming Symptom Case ===")
        logger.info(f"identity: {identity.key} (guest={identity.is_guest})")
        logger.info(f"pet_type: {case.pet_type}")
        logger.info(f"symptoms: {case.symptoms}")
        logger.info(f"image: {case.image_mime_type if case.has_image else 'none'}")
        logger.info("=============================")

        if not identity.is_guest:
            return self._run(case, identity)

        with self.usage_gate.guard(identity.key):
            self.usage_gate.check(identity.key)
            outcome = self._run(case, identity)
            try:
                self.usage_gate.increment(identity.key)
            except ExternalServiceError as e:
                # The result is already stored; the guest keeps it.
                logger.error(f"❌ Usage increment failed for {identity.key} after check {outcome.history_id}: {e}")
            return outcome

    def _run(self, case: SymptomCase, identity: Identity) -> TriageOutcome:
        prompt = compose_prompt(case)
        raw_text = self.invoker.invoke(prompt, case.image_bytes, case.image_mime_type)
        parsed = parse_model_output(raw_text)
        result = normalize_result(parsed, raw_text)

        entry = self.history_store.create(identity.key, case, result)

        logger.info("=== Triage Result ===")
        logger.info(f"urgency_level: {result.urgency_level}")
        logger.info(f"conditions: {[c.name for c in result.conditions]}")
        logger.info(f"history_id: {entry.id}")
        logger.info("=====================")

        return TriageOutcome(
            result=result,
            timestamp=datetime.now(timezone.utc),
            history_id=entry.id,
            follow_up_action=follow_up_for(result.urgency_level),
            care_tips=collect_care_tips(result),
        )

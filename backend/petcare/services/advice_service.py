# petcare/services/advice_service.py
import json
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

ADVICE_DISCLAIMER = "This is general educational information. Always consult a licensed veterinarian for medical advice."
EMERGENCY_CONTACT = "Call your nearest emergency veterinary clinic immediately if this is a critical situation."


def compose_advice_prompt(question: str, pet_type: str) -> str:
    return "\n".join([
        "You are a knowledgeable veterinary assistant. Answer the following pet health question with accurate, helpful information.",
        "",
        f"Pet Type: {pet_type}",
        f"Question: {question}",
        "",
        "Provide a clear, concise answer. Include:",
        "- Direct answer to the question",
        "- Any important warnings or precautions",
        "- When to consult a veterinarian if relevant",
        "",
        "Keep the response under 300 words and remind the owner to consult a professional veterinarian for specific medical advice.",
    ])


def compose_emergency_prompt(pet_type: str, symptoms: str, vital_signs: Optional[Dict[str, Any]] = None) -> str:
    lines = [
        "You are an emergency veterinary triage assistant. Assess the following situation and provide immediate guidance.",
        "",
        f"Pet Type: {pet_type}",
        f"Symptoms: {symptoms}",
    ]
    if vital_signs:
        lines.append(f"Vital Signs: {json.dumps(vital_signs, sort_keys=True)}")
    lines += [
        "",
        "Provide:",
        "1. Emergency Level: (Low/Moderate/High/CRITICAL)",
        "2. Immediate Actions: What to do RIGHT NOW",
        "3. Transport Instructions: How to safely transport the pet",
        "4. What NOT to do",
        "5. Expected timeline for seeking help",
        "",
        "Be clear, direct, and prioritize pet safety. If this is a life-threatening emergency, make that very clear.",
    ]
    return "\n".join(lines)


def get_health_advice(invoker, question: str, pet_type: Optional[str] = None) -> dict:
    pet_type = pet_type or "general pet"
    text = invoker.invoke(compose_advice_prompt(question, pet_type))
    logger.info(f"💬 Health advice generated for {pet_type} ({len(text)} chars)")
    return {
        "question": question,
        "pet_type": pet_type,
        "advice": text,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "disclaimer": ADVICE_DISCLAIMER,
    }


def assess_emergency(invoker, pet_type: str, symptoms: str, vital_signs: Optional[Dict[str, Any]] = None) -> dict:
    """Free-text emergency guidance. Not counted against guest usage and not stored."""
    text = invoker.invoke(compose_emergency_prompt(pet_type, symptoms, vital_signs))
    logger.info(f"🚑 Emergency assessment generated for {pet_type}")
    return {
        "assessment": text,
        "pet_type": pet_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "emergency_contact": EMERGENCY_CONTACT,
    }

# petcare/services/prompt_composer.py
from petcare.models.triage_models import SymptomCase

MAX_CONDITIONS = 3
URGENCY_LITERALS = ("low", "medium", "high", "emergency")

RESPONSE_SCHEMA = """{
  "urgencyLevel": "low" | "medium" | "high" | "emergency",
  "summary": "2-3 sentence plain-language overview of the situation",
  "conditions": [
    {
      "name": "short name of a possible cause",
      "severity": "low" | "medium" | "high" | "emergency",
      "confidence": 0.0,
      "description": "1-2 sentences on why this cause fits the symptoms",
      "recommendedActions": ["what the owner can do right now"]
    }
  ],
  "recommendations": ["general care tip or when to see a vet"]
}"""


def _line(label: str, value) -> str:
    return f"- {label}: {value.strip() if value and value.strip() else 'Not specified'}"


def compose_prompt(case: SymptomCase) -> str:
    """Build the triage prompt for a symptom case.

    Pure function of the case: no clock, no randomness, so the same case
    always yields the same text. The JSON contract is spelled out in full
    because the model has no enforced structured-output mode here.
    """
    enum_list = ", ".join(f'"{u}"' for u in URGENCY_LITERALS)
    lines = [
        "You are a veterinary triage assistant helping pet owners understand how urgent their pet's symptoms are.",
        "You do not diagnose. You categorize the case by urgency and list possible causes for educational purposes.",
        "",
        "Pet information:",
        _line("Type", case.pet_type),
        _line("Symptoms", case.symptoms),
        _line("Duration", case.duration),
        _line("Owner-reported severity", case.severity),
    ]
    if case.additional_info and case.additional_info.strip():
        lines.append(_line("Additional info", case.additional_info))
    if case.has_image:
        lines += [
            "",
            "A photo of the pet is attached. Use only what is clearly visible in it and say so in the summary if it was inconclusive.",
        ]
    lines += [
        "",
        "Respond with ONE JSON object and nothing else, exactly in this shape:",
        RESPONSE_SCHEMA,
        "",
        "Rules:",
        f"- \"urgencyLevel\" and every \"severity\" MUST be one of: {enum_list} (lowercase).",
        f"- List at most {MAX_CONDITIONS} conditions, most likely first.",
        "- \"confidence\" is a number between 0 and 1.",
        "- Use exactly the keys shown. Do not add other keys.",
        "- Do NOT wrap the JSON in markdown code fences and do NOT add any text before or after it.",
        "- If the pet may be in immediate danger, use \"emergency\" and tell the owner to contact an emergency vet now.",
    ]
    return "\n".join(lines)

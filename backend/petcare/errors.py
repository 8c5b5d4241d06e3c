# petcare/errors.py
from typing import Optional


class TriageError(Exception):
    """Base class for every failure the symptom pipeline reports."""


class ConfigurationError(TriageError):
    """Model credential missing or rejected. Raised before any analysis happens."""


class UpstreamParseError(TriageError):
    """The model answered, but nothing in the answer parses as a JSON object."""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


class QuotaExceededError(TriageError):
    """A guest identity has used up its free analyses."""

    def __init__(self, count: int, limit: int):
        super().__init__(f"Guest usage limit reached ({count}/{limit})")
        self.count = count
        self.limit = limit

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)


class ExternalServiceError(TriageError):
    """Network or provider failure while calling the model."""


class ProviderRateLimitError(ExternalServiceError):
    """The model provider refused the call because of its own quota or rate limit."""


class InvalidCaseError(TriageError):
    """The submitted symptom case is incomplete or carries an unusable image."""


# ------------------------------- User-facing messages -------------------------------
REGISTER_MESSAGE = (
    "You have used all free symptom checks for this session. "
    "Register for a free account to get unlimited access."
)
GENERIC_FAILURE_MESSAGE = "Symptom analysis failed. Please try again in a few minutes."


def user_message_for(exc: Exception) -> str:
    """Collapse any pipeline failure into the text shown to the pet owner."""
    if isinstance(exc, QuotaExceededError):
        return REGISTER_MESSAGE
    if isinstance(exc, InvalidCaseError):
        return str(exc)
    return GENERIC_FAILURE_MESSAGE

# petcare/services/gemini_provider.py
import logging

from google import genai
from google.genai import errors, types

from petcare.config import GEMINI_MODEL, GEMINI_VISION_MODEL, GEMINI_TIMEOUT_SECONDS
from petcare.errors import ConfigurationError, ExternalServiceError, ProviderRateLimitError

logger = logging.getLogger(__name__)


def _translate_api_error(e: errors.APIError) -> Exception:
    text = str(e)
    if e.code == 429 or "RESOURCE_EXHAUSTED" in text or "quota" in text.lower():
        return ProviderRateLimitError(f"Gemini quota exceeded: {e.message or e.status}")
    if e.code in (401, 403) or "API key" in text:
        return ConfigurationError(f"Gemini rejected the API key: {e.message or e.status}")
    return ExternalServiceError(f"Gemini API error {e.code}: {e.message or e.status}")


class GeminiHandle:
    """A configured Gemini client plus the models used for text and image cases."""

    def __init__(self, client: genai.Client, text_model: str, vision_model: str):
        self._client = client
        self.text_model = text_model
        self.vision_model = vision_model

    def _generate(self, model: str, contents) -> str:
        try:
            resp = self._client.models.generate_content(model=model, contents=contents)
        except errors.APIError as e:
            raise _translate_api_error(e) from e
        return resp.text or ""

    def generate(self, prompt: str) -> str:
        return self._generate(self.text_model, [prompt])

    def generate_with_image(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        image = types.Part.from_bytes(data=image_bytes, mime_type=mime_type)
        return self._generate(self.vision_model, [image, prompt])


class GeminiProvider:
    def __init__(
        self,
        text_model: str = GEMINI_MODEL,
        vision_model: str = GEMINI_VISION_MODEL,
        timeout_seconds: float = GEMINI_TIMEOUT_SECONDS,
    ):
        self.text_model = text_model
        self.vision_model = vision_model
        self.timeout_seconds = timeout_seconds

    def initialize(self, credential: str) -> GeminiHandle:
        client = genai.Client(
            api_key=credential,
            http_options=types.HttpOptions(timeout=int(self.timeout_seconds * 1000)),
        )
        logger.info(f"✅ Gemini client initialized (text={self.text_model}, vision={self.vision_model})")
        return GeminiHandle(client, self.text_model, self.vision_model)

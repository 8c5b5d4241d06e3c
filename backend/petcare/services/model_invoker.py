# petcare/services/model_invoker.py
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from functools import partial
from typing import Optional

from petcare.config import GEMINI_API_KEY, GEMINI_TIMEOUT_SECONDS
from petcare.errors import ConfigurationError, ExternalServiceError, TriageError

logger = logging.getLogger(__name__)

PLACEHOLDER_KEYS = {"your_gemini_api_key_here", "changeme"}
DEFAULT_IMAGE_MIME = "image/jpeg"


def validate_credential(credential: Optional[str]) -> str:
    if not credential or not credential.strip() or credential.strip() in PLACEHOLDER_KEYS:
        raise ConfigurationError("Gemini API key is not configured")
    return credential.strip()


class ModelInvoker:
    """Single entry point to the generative model.

    `provider` must offer `initialize(credential) -> handle`, where the handle has
    `generate(prompt)` and `generate_with_image(prompt, image_bytes, mime_type)`.
    The handle is built on first use and shared afterwards. Each `invoke` makes
    at most one provider call, bounded by `timeout_seconds`. A call still queued
    when the timeout expires never starts; a running one is abandoned, not cancelled.
    """

    def __init__(self, provider, credential: Optional[str], timeout_seconds: float = GEMINI_TIMEOUT_SECONDS,
                 max_workers: int = 8):
        self._provider = provider
        self._credential = credential
        self._timeout = timeout_seconds
        self._handle = None
        self._init_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="model-call")

    def _get_handle(self):
        if self._handle is not None:
            return self._handle
        credential = validate_credential(self._credential)
        with self._init_lock:
            if self._handle is None:
                try:
                    self._handle = self._provider.initialize(credential)
                except TriageError:
                    raise
                except Exception as e:
                    raise ConfigurationError(f"Model provider failed to initialize: {e}") from e
        return self._handle

    def invoke(self, prompt: str, image_bytes: Optional[bytes] = None, mime_type: Optional[str] = None) -> str:
        handle = self._get_handle()
        if image_bytes:
            call = partial(handle.generate_with_image, prompt, image_bytes, mime_type or DEFAULT_IMAGE_MIME)
            path = "multimodal"
        else:
            call = partial(handle.generate, prompt)
            path = "text"

        logger.info(f"🤖 Calling model ({path}, prompt={len(prompt)} chars)")
        future = self._executor.submit(call)
        try:
            text = future.result(timeout=self._timeout)
        except FutureTimeout as e:
            # Only a call still queued behind busy workers can be cancelled.
            if future.cancel():
                logger.error(f"⏱️ Model call dropped from queue after {self._timeout}s")
            else:
                logger.error(f"⏱️ Model call timed out after {self._timeout}s")
            raise ExternalServiceError(f"Model call timed out after {self._timeout}s") from e
        except TriageError:
            raise
        except Exception as e:
            logger.error(f"❌ Model call failed: {e}")
            raise ExternalServiceError(f"Model call failed: {e}") from e

        return text if isinstance(text, str) else ""

    def shutdown(self):
        self._executor.shutdown(wait=False)


# ------------------------------- Process-wide invoker -------------------------------
_invoker: Optional[ModelInvoker] = None
_invoker_lock = threading.Lock()


def get_model_invoker() -> ModelInvoker:
    """Build the Gemini-backed invoker on first request."""
    global _invoker
    if _invoker is None:
        from petcare.services.gemini_provider import GeminiProvider

        with _invoker_lock:
            if _invoker is None:
                _invoker = ModelInvoker(GeminiProvider(), GEMINI_API_KEY)
    return _invoker
